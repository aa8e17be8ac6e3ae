"""Output formatting utilities for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.theme import Theme

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)

_RESULT_STYLES = {
    "ACCEPT": "ok",
    "REJECT": "err",
    "UNDECIDED": "meta",
}

_MAX_IDS_SHOWN = 20


def setup_logging(level: str) -> None:
    """Route standard logging through the shared Rich console."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _format_ids(ids: Iterable[int]) -> str:
    """Render a sorted, capped list of ids."""
    ordered = sorted(ids)
    shown = ", ".join(str(i) for i in ordered[:_MAX_IDS_SHOWN])
    if len(ordered) > _MAX_IDS_SHOWN:
        shown = f"{shown}, ... (+{len(ordered) - _MAX_IDS_SHOWN})"
    return shown


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def warn(self, msg: str) -> None:
        """Print a warning message."""
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        """Print an error message."""
        console.print(f"[err]✗[/] {msg}")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def live_entities_table(self, live: Any, title: str = "Live entities") -> None:
        """
        Expects an object with .sql_executions .jobs .stages .tasks .rdds
        (like historyops.core.tracker.LiveEntities)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Entity", style="title", no_wrap=True)
        t.add_column("Count", style="ok", justify="right")
        t.add_column("Ids", style="meta")

        for label, ids in (
            ("SQL executions", live.sql_executions),
            ("Jobs", live.jobs),
            ("Stages", live.stages),
            ("Tasks", live.tasks),
            ("RDDs", live.rdds),
        ):
            t.add_row(label, str(len(ids)), _format_ids(ids))

        console.print(t)

    def summary_table(self, summary: Any, title: str = "Compaction summary") -> None:
        """
        Expects an object with .accepted .rejected .undecided .kept .dropped
        (like historyops.core.compaction.CompactionSummary)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Outcome", no_wrap=True)
        t.add_column("Events", justify="right")

        t.add_row("[ok]ACCEPT[/]", str(summary.accepted))
        t.add_row("[err]REJECT[/]", str(summary.rejected))
        t.add_row("[meta]UNDECIDED[/]", str(summary.undecided))
        t.add_section()
        t.add_row("Kept", f"[ok]{summary.kept}[/]")
        t.add_row("Dropped", f"[err]{summary.dropped}[/]")

        console.print(t)

    def decisions_table(
        self, decisions: Iterable[Any], title: str = "Event decisions"
    ) -> None:
        """
        Expects objects with .index .kind .result .keep
        (e.g. historyops.core.compaction.EventDecision)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Line", style="meta", justify="right", no_wrap=True)
        t.add_column("Event")
        t.add_column("Result", no_wrap=True)
        t.add_column("Keep", no_wrap=True)

        for d in decisions:
            value = d.result.value if hasattr(d.result, "value") else str(d.result)
            style = _RESULT_STYLES.get(value, "meta")
            keep = "[ok]yes[/]" if d.keep else "[err]no[/]"
            t.add_row(str(d.index), d.kind, f"[{style}]{value}[/{style}]", keep)

        console.print(t)


out = Out()
