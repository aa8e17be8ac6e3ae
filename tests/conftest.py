from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

# Ensure tests always import the local src tree, not an older installed wheel.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))


@pytest.fixture
def write_event_log(tmp_path: Path):
    """Return a helper writing JSON records as a JSON-lines event log."""

    def _write(records: list[dict], name: str = "events.jsonl") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(json.dumps(r) for r in records) + "\n")
        return path

    return _write
