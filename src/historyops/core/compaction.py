"""Compaction decisions across several event filters.

This module decides, for each event of a historical log, whether a
compaction pass should keep it. Every registered filter is consulted and
the answers are combined with combine_results. When all filters abstain,
the configured CompactionPolicy decides.

Nothing here rewrites logs; callers get a decision per event and act on it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from historyops.core.events import ListenerEvent, event_kind
from historyops.core.filters import (
    EventFilter,
    EventFilterBuilder,
    FilterResult,
    combine_results,
)


class CompactionPolicy(str, Enum):
    """What to do with an event no filter has an opinion on."""

    KEEP = "keep"
    DROP = "drop"


@dataclass(frozen=True)
class EventDecision:
    """
    Compaction decision for a single event.

    Attributes:
        index: Position of the event in the log (line number for files).
        kind: Event kind name.
        result: Combined result of all filters.
        keep: Whether the event survives compaction.
    """

    index: int
    kind: str
    result: FilterResult
    keep: bool


@dataclass(frozen=True)
class CompactionSummary:
    """Aggregated counts over a list of decisions."""

    accepted: int
    rejected: int
    undecided: int
    kept: int
    dropped: int

    @property
    def total(self) -> int:
        return self.kept + self.dropped


def create_filters(builders: Iterable[EventFilterBuilder]) -> list[EventFilter]:
    """Snapshot every builder into a filter, in builder order."""
    return [b.create_filter() for b in builders]


def classify_event(
    event: ListenerEvent, filters: Sequence[EventFilter]
) -> FilterResult:
    """Return the combined result of all filters for one event."""
    return combine_results(f.classify(event) for f in filters)


def keep_result(result: FilterResult, policy: CompactionPolicy) -> bool:
    """Map a combined result onto keep/drop using the abstain policy."""
    if result is FilterResult.ACCEPT:
        return True
    if result is FilterResult.REJECT:
        return False
    return policy is CompactionPolicy.KEEP


def should_keep(
    event: ListenerEvent,
    filters: Sequence[EventFilter],
    policy: CompactionPolicy = CompactionPolicy.KEEP,
) -> bool:
    """
    Decide whether an event survives compaction.

    Args:
        event: Event to decide on.
        filters: Every registered filter.
        policy: Applied when all filters return UNDECIDED.

    Returns:
        True if the event must be kept.
    """
    return keep_result(classify_event(event, filters), policy)


def classify_events(
    events: Iterable[tuple[int, ListenerEvent]],
    filters: Sequence[EventFilter],
    policy: CompactionPolicy = CompactionPolicy.KEEP,
) -> list[EventDecision]:
    """
    Decide on every event of a log.

    Args:
        events: Pairs of (index, event), e.g. as produced by read_event_log.
        filters: Every registered filter.
        policy: Applied when all filters return UNDECIDED.

    Returns:
        One EventDecision per event, in input order.
    """
    decisions: list[EventDecision] = []
    for index, event in events:
        result = classify_event(event, filters)
        decisions.append(
            EventDecision(
                index=index,
                kind=event_kind(event),
                result=result,
                keep=keep_result(result, policy),
            )
        )
    return decisions


def summarize(decisions: Iterable[EventDecision]) -> CompactionSummary:
    """Count decisions per result and per keep/drop outcome."""
    results: Counter[FilterResult] = Counter()
    kept = dropped = 0
    for d in decisions:
        results[d.result] += 1
        if d.keep:
            kept += 1
        else:
            dropped += 1
    return CompactionSummary(
        accepted=results[FilterResult.ACCEPT],
        rejected=results[FilterResult.REJECT],
        undecided=results[FilterResult.UNDECIDED],
        kept=kept,
        dropped=dropped,
    )
