"""Application context management for the CLI."""

from dataclasses import dataclass

from historyops.cli.common.exits import die
from historyops.cli.common.output import setup_logging
from historyops.core.config import Settings, load_settings
from historyops.core.tracker import LiveEntityTracker


@dataclass
class EventLogAppContext:
    """Application context holding settings and the live-entity tracker."""

    settings: Settings
    tracker: LiveEntityTracker


def build_eventlog_context(*, verbose: bool = False) -> EventLogAppContext:
    """Build and return the application context for event-log commands.

    Args:
        verbose: Force debug logging regardless of HISTORYOPS_LOG_LEVEL.

    Returns:
        EventLogAppContext: Context with resolved settings and a fresh tracker.
    """
    try:
        settings = load_settings()
    except ValueError as exc:
        die(str(exc), code=1)
    level = "DEBUG" if verbose else settings.log_level
    if level:
        setup_logging(level)
    return EventLogAppContext(settings=settings, tracker=LiveEntityTracker())
