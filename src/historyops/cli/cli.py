"""CLI application for execution-history event-log tooling."""

import typer

from historyops.cli.commands.eventlog import app as eventlog_app

app = typer.Typer(
    help="historyops - execution-history event-log tooling",
    no_args_is_help=True,
)

app.add_typer(
    eventlog_app, name="log", help="Replay event logs and classify their events."
)


if __name__ == "__main__":
    app()
