"""Core event models for execution-history logs.

This module defines the typed lifecycle events consumed by the live-entity
tracker and classified by event filters. Every event is a small immutable
record carrying only the ids the liveness bookkeeping needs. Event kinds the
model does not know are represented by OtherEvent so that they can flow
through the tracker and the filters without special casing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

EXECUTION_ID_KEY = "spark.sql.execution.id"


@dataclass(frozen=True)
class SQLExecutionStart:
    """A SQL execution has started."""

    execution_id: int


@dataclass(frozen=True)
class SQLExecutionEnd:
    """A SQL execution has finished."""

    execution_id: int


@dataclass(frozen=True)
class SQLAdaptiveExecutionUpdate:
    """The physical plan of a running SQL execution was re-optimized."""

    execution_id: int


@dataclass(frozen=True)
class DriverAccumUpdates:
    """Driver-side metric updates reported for a SQL execution."""

    execution_id: int


@dataclass(frozen=True)
class JobStart:
    """
    A job has been submitted.

    Attributes:
        job_id: Identifier of the job.
        stage_ids: Ids of every stage the job may run.
        properties: Job properties. SQL jobs carry their owning execution id
                    under EXECUTION_ID_KEY; other jobs do not.
    """

    job_id: int
    stage_ids: tuple[int, ...] = ()
    properties: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class JobEnd:
    job_id: int


@dataclass(frozen=True)
class StageSubmitted:
    """
    A stage has been submitted for execution.

    Attributes:
        stage_id: Identifier of the stage.
        rdd_ids: Ids of the RDDs (datasets) computed by the stage.
    """

    stage_id: int
    rdd_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class StageCompleted:
    stage_id: int


@dataclass(frozen=True)
class SpeculativeTaskSubmitted:
    stage_id: int


@dataclass(frozen=True)
class TaskStart:
    stage_id: int
    task_id: int


@dataclass(frozen=True)
class TaskGettingResult:
    task_id: int


@dataclass(frozen=True)
class TaskEnd:
    stage_id: int
    task_id: int


@dataclass(frozen=True)
class UnpersistRDD:
    rdd_id: int


@dataclass(frozen=True)
class AccumUpdate:
    """Single (task, stage) pair reported by an executor metrics update."""

    task_id: int
    stage_id: int


@dataclass(frozen=True)
class ExecutorMetricsUpdate:
    executor_id: str
    accum_updates: tuple[AccumUpdate, ...] = ()


@dataclass(frozen=True)
class QueryProgressEvent:
    """Periodic progress report of a streaming query for a finished batch."""

    query_id: str | None = None


@dataclass(frozen=True)
class OtherEvent:
    """
    Any event kind without a dedicated model.

    Attributes:
        kind: Raw event kind name as found in the log.
        payload: Raw event payload, kept for reporting only.
    """

    kind: str
    payload: Mapping[str, Any] = field(default_factory=dict)


ListenerEvent = Union[
    SQLExecutionStart,
    SQLExecutionEnd,
    SQLAdaptiveExecutionUpdate,
    DriverAccumUpdates,
    JobStart,
    JobEnd,
    StageSubmitted,
    StageCompleted,
    SpeculativeTaskSubmitted,
    TaskStart,
    TaskGettingResult,
    TaskEnd,
    UnpersistRDD,
    ExecutorMetricsUpdate,
    QueryProgressEvent,
    OtherEvent,
]

SQL_EXECUTION_EVENTS = (
    SQLExecutionStart,
    SQLExecutionEnd,
    SQLAdaptiveExecutionUpdate,
    DriverAccumUpdates,
)

JOB_LINEAGE_EVENTS = (
    JobStart,
    JobEnd,
    StageSubmitted,
    StageCompleted,
    SpeculativeTaskSubmitted,
    TaskStart,
    TaskGettingResult,
    TaskEnd,
    UnpersistRDD,
    ExecutorMetricsUpdate,
)


def event_kind(event: ListenerEvent) -> str:
    """Return a display name for the event kind."""
    if isinstance(event, OtherEvent):
        return event.kind
    return type(event).__name__
