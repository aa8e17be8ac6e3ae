from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from historyops.core.events import (
    AccumUpdate,
    DriverAccumUpdates,
    ExecutorMetricsUpdate,
    JobEnd,
    JobStart,
    ListenerEvent,
    OtherEvent,
    QueryProgressEvent,
    SpeculativeTaskSubmitted,
    SQLAdaptiveExecutionUpdate,
    SQLExecutionEnd,
    SQLExecutionStart,
    StageCompleted,
    StageSubmitted,
    TaskEnd,
    TaskGettingResult,
    TaskStart,
    UnpersistRDD,
)

logger = logging.getLogger(__name__)

_SQL_UI = "org.apache.spark.sql.execution.ui."
_STREAMING = "org.apache.spark.sql.streaming.StreamingQueryListener$"


class EventLogError(ValueError):
    """Raised when an event log cannot be read or decoded."""


def _task_id(record: Mapping[str, Any]) -> int:
    return int(record["Task Info"]["Task ID"])


def _job_start(record: Mapping[str, Any]) -> JobStart:
    properties = record.get("Properties") or {}
    return JobStart(
        job_id=int(record["Job ID"]),
        stage_ids=tuple(int(s) for s in record.get("Stage IDs", [])),
        properties=dict(properties),
    )


def _stage_submitted(record: Mapping[str, Any]) -> StageSubmitted:
    info = record["Stage Info"]
    return StageSubmitted(
        stage_id=int(info["Stage ID"]),
        rdd_ids=tuple(int(r["RDD ID"]) for r in info.get("RDD Info", [])),
    )


def _metrics_update(record: Mapping[str, Any]) -> ExecutorMetricsUpdate:
    return ExecutorMetricsUpdate(
        executor_id=str(record.get("Executor ID", "")),
        accum_updates=tuple(
            AccumUpdate(task_id=int(u["Task ID"]), stage_id=int(u["Stage ID"]))
            for u in record.get("Metrics Updated", [])
        ),
    )


def _query_progress(record: Mapping[str, Any]) -> QueryProgressEvent:
    progress = record.get("progress") or {}
    query_id = progress.get("id") if isinstance(progress, Mapping) else None
    return QueryProgressEvent(query_id=query_id)


_PARSERS: dict[str, Callable[[Mapping[str, Any]], ListenerEvent]] = {
    f"{_SQL_UI}SparkListenerSQLExecutionStart": lambda r: SQLExecutionStart(
        int(r["executionId"])
    ),
    f"{_SQL_UI}SparkListenerSQLExecutionEnd": lambda r: SQLExecutionEnd(
        int(r["executionId"])
    ),
    f"{_SQL_UI}SparkListenerSQLAdaptiveExecutionUpdate": lambda r: (
        SQLAdaptiveExecutionUpdate(int(r["executionId"]))
    ),
    f"{_SQL_UI}SparkListenerDriverAccumUpdates": lambda r: DriverAccumUpdates(
        int(r["executionId"])
    ),
    "SparkListenerJobStart": _job_start,
    "SparkListenerJobEnd": lambda r: JobEnd(int(r["Job ID"])),
    "SparkListenerStageSubmitted": _stage_submitted,
    "SparkListenerStageCompleted": lambda r: StageCompleted(
        int(r["Stage Info"]["Stage ID"])
    ),
    "SparkListenerSpeculativeTaskSubmitted": lambda r: SpeculativeTaskSubmitted(
        int(r["Stage ID"])
    ),
    "SparkListenerTaskStart": lambda r: TaskStart(int(r["Stage ID"]), _task_id(r)),
    "SparkListenerTaskGettingResult": lambda r: TaskGettingResult(_task_id(r)),
    "SparkListenerTaskEnd": lambda r: TaskEnd(int(r["Stage ID"]), _task_id(r)),
    "SparkListenerUnpersistRDD": lambda r: UnpersistRDD(int(r["RDD ID"])),
    "SparkListenerExecutorMetricsUpdate": _metrics_update,
    f"{_STREAMING}QueryProgressEvent": _query_progress,
}


def parse_event(record: Mapping[str, Any]) -> ListenerEvent:
    """
    Convert one decoded event-log record into a typed event.

    Records of unknown kinds, and records whose id fields are missing or
    malformed, become OtherEvent so that they can still be classified.

    Raises:
        EventLogError: If the record has no "Event" field.
    """
    kind = record.get("Event") if isinstance(record, Mapping) else None
    if not isinstance(kind, str) or not kind:
        raise EventLogError("Record has no 'Event' field")

    parser = _PARSERS.get(kind)
    if parser is None:
        return OtherEvent(kind=kind, payload=record)
    try:
        return parser(record)
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        logger.debug("Treating malformed %s record as unknown event: %s", kind, exc)
        return OtherEvent(kind=kind, payload=record)


def read_event_log(path: Path) -> Iterator[tuple[int, ListenerEvent]]:
    """
    Read a JSON-lines event log.

    Blank lines are skipped. Each yielded pair holds the 1-based line number
    and the parsed event.

    Raises:
        EventLogError: If the file cannot be read, or a line is not valid
                       UTF-8 or not a JSON event record.
    """
    try:
        fh = path.open("rb")
    except OSError as exc:
        raise EventLogError(f"Cannot read event log {path}: {exc}") from exc

    with fh:
        for lineno, raw in enumerate(fh, start=1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise EventLogError(
                    f"{path}:{lineno}: not valid UTF-8 ({exc.reason})"
                ) from exc
            if not line.strip():
                continue
            try:
                event = parse_event(json.loads(line))
            except json.JSONDecodeError as exc:
                raise EventLogError(f"{path}:{lineno}: invalid JSON ({exc.msg})") from exc
            except EventLogError as exc:
                raise EventLogError(f"{path}:{lineno}: {exc}") from exc
            yield lineno, event
