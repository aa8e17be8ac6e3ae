"""Commands for inspecting execution-history event logs."""

from pathlib import Path
from typing import Iterable

import typer

from historyops.cli.common.context import EventLogAppContext, build_eventlog_context
from historyops.cli.common.exits import die, warn_exit
from historyops.cli.common.options import (
    DroppedOnlyOpt,
    EventLogArg,
    PolicyOpt,
    ShowEventsOpt,
    VerboseOpt,
)
from historyops.cli.common.output import out
from historyops.cli.common.progress import replay_with_progress
from historyops.core.adapters.eventlog import EventLogError, read_event_log
from historyops.core.compaction import (
    CompactionPolicy,
    classify_events,
    create_filters,
    summarize,
)
from historyops.core.events import ListenerEvent

app = typer.Typer(
    help="Replay event logs and classify their events",
    no_args_is_help=True,
)


@app.callback()
def _init(ctx: typer.Context, verbose: bool = VerboseOpt):
    """Initialize settings, logging and a fresh tracker."""
    ctx.obj = build_eventlog_context(verbose=verbose)


def _read(path: Path) -> list[tuple[int, ListenerEvent]]:
    """Load every event of a log, exiting on read errors."""
    try:
        with out.status("Reading event log..."):
            return list(read_event_log(path))
    except EventLogError as e:
        die(str(e), code=1)


def _replay(
    appctx: EventLogAppContext,
    events: Iterable[tuple[int, ListenerEvent]],
    path: Path,
) -> int:
    """Replay events into the context's tracker, exiting on read errors."""
    try:
        count = replay_with_progress(appctx.tracker, events)
    except EventLogError as e:
        die(str(e), code=1)
    if not count:
        warn_exit(f"No events found in {path}", code=0)
    return count


@app.command()
def live(ctx: typer.Context, path: Path = EventLogArg):
    """
    Show the SQL executions and related entities still live at the end of a log.
    """
    appctx: EventLogAppContext = ctx.obj

    count = _replay(appctx, read_event_log(path), path)

    out.kv({"Event log": path, "Events replayed": count})
    out.live_entities_table(appctx.tracker.snapshot())


@app.command()
def classify(
    ctx: typer.Context,
    path: Path = EventLogArg,
    default_policy: CompactionPolicy | None = PolicyOpt,
    show_events: bool = ShowEventsOpt,
    dropped_only: bool = DroppedOnlyOpt,
):
    """
    Classify every event of a log against the live SQL entities at its end.
    """
    appctx: EventLogAppContext = ctx.obj
    policy = default_policy or appctx.settings.default_policy

    events = _read(path)
    _replay(appctx, events, path)

    with out.status("Classifying events..."):
        filters = create_filters([appctx.tracker])
        decisions = classify_events(events, filters, policy)

    out.kv({"Event log": path, "Default policy": policy.value})

    if show_events:
        shown = [d for d in decisions if not d.keep] if dropped_only else decisions
        out.decisions_table(shown)

    out.summary_table(summarize(decisions))
