"""Job-lineage event filter.

This filter answers, for job, stage, task and RDD lifecycle events, whether
the event relates to an entity known to be live. It knows nothing about SQL
executions and is used by the SQL filter as a collaborator.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from historyops.core.events import (
    ExecutorMetricsUpdate,
    JobEnd,
    JobStart,
    ListenerEvent,
    SpeculativeTaskSubmitted,
    StageCompleted,
    StageSubmitted,
    TaskEnd,
    TaskGettingResult,
    TaskStart,
    UnpersistRDD,
)
from historyops.core.filters import EventFilter, FilterResult


class JobLineageFilter(Protocol):
    """Interface for the job-lineage collaborator used by the SQL filter."""

    def classify(self, event: ListenerEvent) -> FilterResult:
        """
        Return ACCEPT for events about live entities, REJECT for known event
        kinds about entities that are not live, UNDECIDED for other kinds.
        """
        ...


def _live(is_live: bool) -> FilterResult:
    return FilterResult.ACCEPT if is_live else FilterResult.REJECT


class JobEventFilter(EventFilter):
    """
    Filter that accepts job-lineage events for live jobs, stages, tasks
    and RDDs.
    """

    def __init__(
        self,
        live_jobs: Iterable[int],
        live_stages: Iterable[int],
        live_tasks: Iterable[int],
        live_rdds: Iterable[int],
    ):
        """
        Create a job-lineage filter over fixed sets of live ids.

        Args:
            live_jobs: Ids of live jobs.
            live_stages: Ids of live stages.
            live_tasks: Ids of live tasks.
            live_rdds: Ids of live RDDs.
        """
        self.live_jobs = frozenset(live_jobs)
        self.live_stages = frozenset(live_stages)
        self.live_tasks = frozenset(live_tasks)
        self.live_rdds = frozenset(live_rdds)

    def classify(self, event: ListenerEvent) -> FilterResult:
        if isinstance(event, (JobStart, JobEnd)):
            return _live(event.job_id in self.live_jobs)
        if isinstance(event, (StageSubmitted, StageCompleted, SpeculativeTaskSubmitted)):
            return _live(event.stage_id in self.live_stages)
        if isinstance(event, (TaskStart, TaskGettingResult, TaskEnd)):
            return _live(event.task_id in self.live_tasks)
        if isinstance(event, UnpersistRDD):
            return _live(event.rdd_id in self.live_rdds)
        if isinstance(event, ExecutorMetricsUpdate):
            return _live(
                any(
                    u.task_id in self.live_tasks or u.stage_id in self.live_stages
                    for u in event.accum_updates
                )
            )
        # Not a job-lineage event
        return FilterResult.UNDECIDED
