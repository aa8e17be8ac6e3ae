"""Progress formatting utilities for the CLI."""

from __future__ import annotations

from typing import Iterable

from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from historyops.cli.common.output import console
from historyops.core.events import ListenerEvent, event_kind
from historyops.core.tracker import LiveEntityTracker

_MAX_KIND_WIDTH = 48
_REFRESH_EVERY = 500


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _short_kind(kind: str) -> str:
    """Drop the package prefix of fully qualified event kinds."""
    short = kind.rsplit(".", 1)[-1].rsplit("$", 1)[-1]
    return _truncate(short, _MAX_KIND_WIDTH)


def replay_with_progress(
    tracker: LiveEntityTracker,
    events: Iterable[tuple[int, ListenerEvent]],
) -> int:
    """
    Feed every event to the tracker while showing a transient spinner with
    the number of events replayed and the kind of the latest one.

    Returns the number of events replayed.
    """
    count = 0

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[bold]Replaying[/]"),
        TextColumn("events=[bold]{task.completed:.0f}[/]"),
        TextColumn("[dim]{task.fields[kind]}[/]"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )

    with progress:
        task_id = progress.add_task("replay", total=None, kind="")
        for _, event in events:
            tracker.handle(event)
            count += 1
            if count % _REFRESH_EVERY == 0:
                progress.update(
                    task_id,
                    completed=count,
                    kind=_short_kind(event_kind(event)),
                )
        progress.update(task_id, completed=count)

    return count
