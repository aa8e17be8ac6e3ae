"""Event filter abstractions and the three-valued filter result.

An event filter classifies a single historical event as ACCEPT, REJECT or
UNDECIDED. Several independent filters are usually consulted for the same
event; their answers are combined with combine_results, where any ACCEPT
wins and UNDECIDED abstains.

Filters are pure, side-effect-free objects. Once built they may be shared
between threads without synchronization.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from historyops.core.events import ListenerEvent


class FilterResult(str, Enum):
    """
    Classification of one event by one filter.

    Values:
        ACCEPT: The event is still needed and must be kept.
        REJECT: The event is definitely no longer needed.
        UNDECIDED: The filter has no authority over this event.
    """

    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    UNDECIDED = "UNDECIDED"


class EventFilter(ABC):
    """Abstract base class for all event filters."""

    @abstractmethod
    def classify(self, event: ListenerEvent) -> FilterResult:
        """
        Classify a single event.

        Args:
            event: Event to evaluate.

        Returns:
            The filter's FilterResult for the event. Never raises for a
            well-typed event.
        """
        ...


class EventFilterBuilder(Protocol):
    """Interface for objects that build an event filter from their state."""

    def create_filter(self) -> EventFilter:
        """Return a filter reflecting the builder's current state."""
        ...


def combine_results(results: Iterable[FilterResult]) -> FilterResult:
    """
    Combine the answers of several filters for the same event.

    ACCEPT from any filter wins. Otherwise REJECT from any filter wins.
    UNDECIDED is the identity: it never turns into REJECT, and combining
    nothing but UNDECIDED answers (or no answers at all) stays UNDECIDED.
    """
    rejected = False
    for result in results:
        if result is FilterResult.ACCEPT:
            return FilterResult.ACCEPT
        if result is FilterResult.REJECT:
            rejected = True
    return FilterResult.REJECT if rejected else FilterResult.UNDECIDED
