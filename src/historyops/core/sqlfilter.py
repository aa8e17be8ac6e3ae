"""Event filter for live SQL executions and their jobs.

The filter is built from a snapshot of LiveEntityTracker and accepts events
that belong to SQL executions which were still running when the snapshot was
taken, together with the job-lineage events of their jobs, stages, tasks and
RDDs.

It only has authority over SQL execution events. For job-lineage events a
negative answer from the job filter is turned into UNDECIDED rather than
REJECT: the job may belong to an execution that already finished and is kept
by another filter, or may not be related to SQL at all.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterable

from historyops.core.events import (
    JOB_LINEAGE_EVENTS,
    SQL_EXECUTION_EVENTS,
    ListenerEvent,
    QueryProgressEvent,
)
from historyops.core.filters import EventFilter, FilterResult
from historyops.core.jobfilter import JobEventFilter, JobLineageFilter

if TYPE_CHECKING:
    from historyops.core.tracker import LiveEntities

logger = logging.getLogger(__name__)

JobFilterFactory = Callable[
    [Iterable[int], Iterable[int], Iterable[int], Iterable[int]], JobLineageFilter
]


class SQLLiveEntitiesEventFilter(EventFilter):
    """Filter accepting events related to live SQL executions."""

    def __init__(
        self,
        live: LiveEntities,
        job_filter_factory: JobFilterFactory = JobEventFilter,
    ):
        """
        Create a filter from a tracker snapshot.

        Args:
            live: Point-in-time snapshot of the live entities.
            job_filter_factory: Builds the job-lineage collaborator from the
                                live jobs, stages, tasks and RDDs.
        """
        self.live_sql_executions = live.sql_executions
        self.job_filter = job_filter_factory(
            live.jobs, live.stages, live.tasks, live.rdds
        )
        logger.debug("live SQL executions: %s", sorted(self.live_sql_executions))

    def classify(self, event: ListenerEvent) -> FilterResult:
        if isinstance(event, SQL_EXECUTION_EVENTS):
            if event.execution_id in self.live_sql_executions:
                return FilterResult.ACCEPT
            return FilterResult.REJECT

        if isinstance(event, JOB_LINEAGE_EVENTS):
            # A job-level negative only means "not known to be live".
            if self.job_filter.classify(event) is FilterResult.ACCEPT:
                return FilterResult.ACCEPT
            return FilterResult.UNDECIDED

        if isinstance(event, QueryProgressEvent):
            # Reports for finished batches
            return FilterResult.REJECT

        return FilterResult.UNDECIDED
