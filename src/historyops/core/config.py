"""Runtime settings resolved from the environment.

Settings are read once per CLI invocation. Command-line options take
precedence over the values resolved here.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from historyops.core.compaction import CompactionPolicy

POLICY_ENV = "HISTORYOPS_DEFAULT_POLICY"
LOG_LEVEL_ENV = "HISTORYOPS_LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    """
    Resolved runtime settings.

    Attributes:
        default_policy: Keep or drop events on which every filter abstains.
        log_level: Logging level name, or None to leave logging unconfigured.
    """

    default_policy: CompactionPolicy = CompactionPolicy.KEEP
    log_level: str | None = None


def _parse_policy(raw: str | None) -> CompactionPolicy:
    if raw is None or not raw.strip():
        return CompactionPolicy.KEEP
    try:
        return CompactionPolicy(raw.strip().lower())
    except ValueError as exc:
        choices = ", ".join(p.value for p in CompactionPolicy)
        raise ValueError(
            f"Invalid {POLICY_ENV} value: '{raw}' (expected one of: {choices})"
        ) from exc


def _parse_log_level(raw: str | None) -> str | None:
    """Return a known logging level name, ignoring unknown values."""
    if not raw:
        return None
    level = raw.strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    return None


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ.

    Raises:
        ValueError: If HISTORYOPS_DEFAULT_POLICY holds an unknown policy.
    """
    env = os.environ if env is None else env
    return Settings(
        default_policy=_parse_policy(env.get(POLICY_ENV)),
        log_level=_parse_log_level(env.get(LOG_LEVEL_ENV)),
    )
