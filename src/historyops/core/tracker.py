"""Live SQL execution tracking.

LiveEntityTracker consumes lifecycle events one at a time and keeps track of
the SQL executions that are still running, together with the jobs, stages,
tasks and RDDs that belong to them. Only jobs that carry an execution id are
tracked: without that relation a finished job cannot be told apart from a
live one.

The bookkeeping lives in five tables guarded by a single lock:

    execution -> jobs
    job       -> stages
    stage     -> tasks
    stage     -> RDDs
    interesting stages (declared by a tracked job)

Events are expected from a single dispatching thread, but snapshot() and
create_filter() may be called from any thread and always observe the tables
between two events, never in the middle of one.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from historyops.core.events import (
    EXECUTION_ID_KEY,
    JobStart,
    ListenerEvent,
    SQLExecutionEnd,
    SQLExecutionStart,
    StageSubmitted,
    TaskStart,
)
from historyops.core.jobfilter import JobEventFilter
from historyops.core.sqlfilter import JobFilterFactory, SQLLiveEntitiesEventFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveEntities:
    """
    Point-in-time view of the live entities of a tracker.

    Attributes:
        sql_executions: Ids of SQL executions that have not ended.
        jobs: Ids of jobs belonging to those executions.
        stages: Ids of submitted stages of those jobs.
        tasks: Ids of started tasks of those stages.
        rdds: Ids of RDDs computed by those stages.
    """

    sql_executions: frozenset[int] = frozenset()
    jobs: frozenset[int] = frozenset()
    stages: frozenset[int] = frozenset()
    tasks: frozenset[int] = frozenset()
    rdds: frozenset[int] = frozenset()


def parse_execution_id(job_start: JobStart) -> int | None:
    """
    Return the SQL execution id a job belongs to.

    Returns None for jobs that are not created by SQL, and for jobs whose
    execution id property cannot be parsed.
    """
    raw = job_start.properties.get(EXECUTION_ID_KEY)
    if raw is None:
        return None
    try:
        # Only exact integers: floats would be truncated, bools are ints.
        if isinstance(raw, bool) or not isinstance(raw, (str, int)):
            raise TypeError(f"unsupported type {type(raw).__name__}")
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Ignoring job %s: invalid %s value %r",
            job_start.job_id,
            EXECUTION_ID_KEY,
            raw,
        )
        return None


class LiveEntityTracker:
    """Tracks live SQL executions and the entities attributed to them."""

    def __init__(self):
        """Create an empty tracker."""
        self._lock = threading.Lock()
        self._execution_to_jobs: dict[int, set[int]] = {}
        self._job_to_stages: dict[int, frozenset[int]] = {}
        self._stage_to_tasks: dict[int, set[int]] = {}
        self._stage_to_rdds: dict[int, frozenset[int]] = {}
        self._stages: set[int] = set()

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def handle(self, event: ListenerEvent) -> None:
        """
        Update the tracked state for a single event.

        Event kinds that do not affect liveness are ignored.
        """
        if isinstance(event, SQLExecutionStart):
            self.on_execution_start(event.execution_id)
        elif isinstance(event, SQLExecutionEnd):
            self.on_execution_end(event.execution_id)
        elif isinstance(event, JobStart):
            self.on_job_start(parse_execution_id(event), event.job_id, event.stage_ids)
        elif isinstance(event, StageSubmitted):
            self.on_stage_submitted(event.stage_id, event.rdd_ids)
        elif isinstance(event, TaskStart):
            self.on_task_start(event.stage_id, event.task_id)

    def replay(self, events: Iterable[ListenerEvent]) -> int:
        """Feed every event to handle() in order and return how many were seen."""
        count = 0
        for event in events:
            self.handle(event)
            count += 1
        return count

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def on_execution_start(self, execution_id: int) -> None:
        """Register a new execution. Restarting a known id resets its jobs."""
        with self._lock:
            self._execution_to_jobs[execution_id] = set()

    def on_job_start(
        self, execution_id: int | None, job_id: int, stage_ids: Iterable[int]
    ) -> None:
        """
        Record a job of a SQL execution and mark its stages as interesting.

        Jobs without an execution id are not created by SQL and are ignored.
        The execution entry is created when its start event has not been
        seen yet.
        """
        if execution_id is None:
            return
        stages = frozenset(stage_ids)
        with self._lock:
            self._execution_to_jobs.setdefault(execution_id, set()).add(job_id)
            self._job_to_stages[job_id] = stages
            self._stages.update(stages)

    def on_stage_submitted(self, stage_id: int, rdd_ids: Iterable[int]) -> None:
        """Record the RDDs of an interesting stage and start tracking its tasks."""
        with self._lock:
            if stage_id not in self._stages:
                return
            self._stage_to_rdds[stage_id] = frozenset(rdd_ids)
            self._stage_to_tasks.setdefault(stage_id, set())

    def on_task_start(self, stage_id: int, task_id: int) -> None:
        """Record a task of a tracked stage."""
        with self._lock:
            tasks = self._stage_to_tasks.get(stage_id)
            if tasks is not None:
                tasks.add(task_id)

    def on_execution_end(self, execution_id: int) -> None:
        """
        Drop an execution together with its jobs and their stages, tasks
        and RDDs.
        """
        with self._lock:
            jobs = self._execution_to_jobs.pop(execution_id, None)
            if jobs is None:
                return
            stages_to_drop: set[int] = set()
            for job_id in jobs:
                stages_to_drop.update(self._job_to_stages.pop(job_id, ()))
            self._stages -= stages_to_drop
            for stage_id in stages_to_drop:
                self._stage_to_tasks.pop(stage_id, None)
                self._stage_to_rdds.pop(stage_id, None)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def live_sql_executions(self) -> set[int]:
        with self._lock:
            return set(self._execution_to_jobs)

    def live_jobs(self) -> set[int]:
        with self._lock:
            return {j for jobs in self._execution_to_jobs.values() for j in jobs}

    def live_stages(self) -> set[int]:
        with self._lock:
            return set(self._stage_to_rdds)

    def live_tasks(self) -> set[int]:
        with self._lock:
            return {t for tasks in self._stage_to_tasks.values() for t in tasks}

    def live_rdds(self) -> set[int]:
        with self._lock:
            return {r for rdds in self._stage_to_rdds.values() for r in rdds}

    def snapshot(self) -> LiveEntities:
        """Return all five live sets as observed at one instant."""
        with self._lock:
            return LiveEntities(
                sql_executions=frozenset(self._execution_to_jobs),
                jobs=frozenset(
                    j for jobs in self._execution_to_jobs.values() for j in jobs
                ),
                stages=frozenset(self._stage_to_rdds),
                tasks=frozenset(
                    t for tasks in self._stage_to_tasks.values() for t in tasks
                ),
                rdds=frozenset(
                    r for rdds in self._stage_to_rdds.values() for r in rdds
                ),
            )

    def create_filter(
        self, job_filter_factory: JobFilterFactory = JobEventFilter
    ) -> SQLLiveEntitiesEventFilter:
        """Build an immutable filter from a snapshot of the current state."""
        return SQLLiveEntitiesEventFilter(self.snapshot(), job_filter_factory)
