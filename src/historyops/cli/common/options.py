"""Common CLI options for the CLI."""

import typer

EventLogArg = typer.Argument(
    ...,
    help="JSON-lines event log to replay",
    exists=True,
    dir_okay=False,
    readable=True,
)

PolicyOpt = typer.Option(
    None,
    "--default-policy",
    help="Keep or drop events no filter decides on (env: HISTORYOPS_DEFAULT_POLICY)",
    case_sensitive=False,
)

ShowEventsOpt = typer.Option(
    False,
    "--events",
    "-e",
    help="List the decision for every event",
)

DroppedOnlyOpt = typer.Option(
    False,
    "--dropped-only",
    help="With --events, only list events that would be dropped",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)
