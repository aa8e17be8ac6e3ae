import threading

import pytest

from historyops.core.events import (
    EXECUTION_ID_KEY,
    JobEnd,
    JobStart,
    OtherEvent,
    SQLExecutionEnd,
    SQLExecutionStart,
    StageSubmitted,
    TaskStart,
)
from historyops.core.sqlfilter import SQLLiveEntitiesEventFilter
from historyops.core.tracker import LiveEntities, LiveEntityTracker, parse_execution_id


def _sql_job(job_id: int, execution_id, stage_ids) -> JobStart:
    return JobStart(
        job_id=job_id,
        stage_ids=tuple(stage_ids),
        properties={EXECUTION_ID_KEY: str(execution_id)},
    )


def _scenario_a() -> LiveEntityTracker:
    tracker = LiveEntityTracker()
    tracker.replay(
        [
            SQLExecutionStart(1),
            _sql_job(10, 1, [100]),
            StageSubmitted(100, (1000,)),
            TaskStart(stage_id=100, task_id=9999),
        ]
    )
    return tracker


def _assert_empty(tracker: LiveEntityTracker) -> None:
    assert tracker.live_sql_executions() == set()
    assert tracker.live_jobs() == set()
    assert tracker.live_stages() == set()
    assert tracker.live_tasks() == set()
    assert tracker.live_rdds() == set()


def test_tracks_execution_with_job_stage_task_and_rdd():
    tracker = _scenario_a()

    assert tracker.live_sql_executions() == {1}
    assert tracker.live_jobs() == {10}
    assert tracker.live_stages() == {100}
    assert tracker.live_rdds() == {1000}
    assert tracker.live_tasks() == {9999}


def test_execution_end_drops_everything_it_owns():
    tracker = _scenario_a()

    tracker.handle(SQLExecutionEnd(1))

    _assert_empty(tracker)


def test_job_without_execution_id_is_not_tracked():
    tracker = LiveEntityTracker()

    tracker.handle(JobStart(job_id=1, stage_ids=(1, 2), properties={}))
    tracker.handle(StageSubmitted(1, (5,)))
    tracker.handle(TaskStart(stage_id=1, task_id=7))

    _assert_empty(tracker)


def test_job_with_malformed_execution_id_is_skipped_and_replay_continues():
    tracker = LiveEntityTracker()

    tracker.replay(
        [
            JobStart(job_id=1, stage_ids=(1,), properties={EXECUTION_ID_KEY: "abc"}),
            _sql_job(2, 7, [2]),
        ]
    )

    assert tracker.live_sql_executions() == {7}
    assert tracker.live_jobs() == {2}


@pytest.mark.parametrize("raw", [float("inf"), 1e400, 1.7, True, [1], "1.5"])
def test_job_with_non_integer_execution_id_is_skipped(raw):
    tracker = LiveEntityTracker()

    tracker.replay(
        [
            JobStart(job_id=1, stage_ids=(1,), properties={EXECUTION_ID_KEY: raw}),
            _sql_job(2, 7, [2]),
        ]
    )

    assert tracker.live_sql_executions() == {7}
    assert tracker.live_jobs() == {2}


def test_parse_execution_id():
    assert parse_execution_id(_sql_job(1, 42, [])) == 42
    assert parse_execution_id(JobStart(job_id=1)) is None
    assert parse_execution_id(JobStart(job_id=1, properties={EXECUTION_ID_KEY: ""})) is None


def test_job_start_before_execution_start_creates_execution():
    tracker = LiveEntityTracker()

    tracker.handle(_sql_job(3, 9, [30]))

    assert tracker.live_sql_executions() == {9}
    assert tracker.live_jobs() == {3}


def test_restarting_an_execution_resets_its_jobs():
    tracker = _scenario_a()

    tracker.handle(SQLExecutionStart(1))

    assert tracker.live_sql_executions() == {1}
    assert tracker.live_jobs() == set()


def test_stage_not_declared_by_a_tracked_job_is_ignored():
    tracker = LiveEntityTracker()
    tracker.handle(_sql_job(1, 1, [10]))

    tracker.handle(StageSubmitted(11, (110,)))
    tracker.handle(TaskStart(stage_id=11, task_id=1))

    assert tracker.live_stages() == set()
    assert tracker.live_rdds() == set()
    assert tracker.live_tasks() == set()


def test_task_for_unsubmitted_stage_is_ignored():
    tracker = LiveEntityTracker()
    tracker.handle(_sql_job(1, 1, [10]))

    tracker.handle(TaskStart(stage_id=10, task_id=1))

    assert tracker.live_tasks() == set()


def test_resubmitted_stage_keeps_its_tasks():
    tracker = _scenario_a()

    tracker.handle(StageSubmitted(100, (1001,)))

    assert tracker.live_tasks() == {9999}
    assert tracker.live_rdds() == {1001}


def test_execution_end_leaves_other_executions_untouched():
    tracker = LiveEntityTracker()
    tracker.replay(
        [
            SQLExecutionStart(1),
            SQLExecutionStart(2),
            _sql_job(10, 1, [100, 101]),
            _sql_job(20, 2, [200]),
            StageSubmitted(100, (1000,)),
            StageSubmitted(101, (1010,)),
            StageSubmitted(200, (2000,)),
            TaskStart(stage_id=100, task_id=1),
            TaskStart(stage_id=101, task_id=2),
            TaskStart(stage_id=200, task_id=3),
        ]
    )

    tracker.handle(SQLExecutionEnd(1))

    assert tracker.live_sql_executions() == {2}
    assert tracker.live_jobs() == {20}
    assert tracker.live_stages() == {200}
    assert tracker.live_tasks() == {3}
    assert tracker.live_rdds() == {2000}


def test_ending_unknown_execution_is_a_no_op():
    tracker = _scenario_a()

    tracker.handle(SQLExecutionEnd(99))

    assert tracker.live_sql_executions() == {1}
    assert tracker.live_tasks() == {9999}


def test_ended_execution_stages_are_no_longer_interesting():
    tracker = _scenario_a()
    tracker.handle(SQLExecutionEnd(1))

    tracker.handle(StageSubmitted(100, (1000,)))
    tracker.handle(TaskStart(stage_id=100, task_id=1))

    _assert_empty(tracker)


def test_unrelated_events_are_ignored():
    tracker = _scenario_a()
    before = tracker.snapshot()

    tracker.replay([JobEnd(10), OtherEvent(kind="CustomEvent")])

    assert tracker.snapshot() == before


def test_replay_returns_number_of_events():
    tracker = LiveEntityTracker()

    assert tracker.replay([SQLExecutionStart(1), OtherEvent(kind="x")]) == 2


def test_accessors_return_independent_copies():
    tracker = _scenario_a()

    jobs = tracker.live_jobs()
    jobs.add(12345)

    assert tracker.live_jobs() == {10}


def test_snapshot_matches_accessors():
    tracker = _scenario_a()

    assert tracker.snapshot() == LiveEntities(
        sql_executions=frozenset({1}),
        jobs=frozenset({10}),
        stages=frozenset({100}),
        tasks=frozenset({9999}),
        rdds=frozenset({1000}),
    )


def test_snapshot_is_not_affected_by_later_events():
    tracker = _scenario_a()

    snapshot = tracker.snapshot()
    tracker.handle(SQLExecutionEnd(1))

    assert snapshot.jobs == {10}
    assert snapshot.tasks == {9999}


def test_create_filter_builds_sql_filter_from_snapshot():
    tracker = _scenario_a()

    event_filter = tracker.create_filter()

    assert isinstance(event_filter, SQLLiveEntitiesEventFilter)
    assert event_filter.live_sql_executions == {1}


def test_snapshots_taken_during_replay_are_never_torn():
    tracker = LiveEntityTracker()
    done = threading.Event()
    torn: list[LiveEntities] = []

    def _snapshots():
        while not done.is_set():
            snap = tracker.snapshot()
            # A job is live exactly when its execution is, and stages,
            # tasks and RDDs of execution n always come as a group.
            for execution_id in snap.sql_executions:
                if execution_id in snap.jobs and (
                    (execution_id * 10 in snap.stages)
                    != (execution_id * 100 in snap.rdds)
                ):
                    torn.append(snap)
            if any(job not in snap.sql_executions for job in snap.jobs):
                torn.append(snap)

    reader = threading.Thread(target=_snapshots)
    reader.start()
    try:
        for n in range(1, 300):
            tracker.replay(
                [
                    SQLExecutionStart(n),
                    _sql_job(n, n, [n * 10]),
                    StageSubmitted(n * 10, (n * 100,)),
                    TaskStart(stage_id=n * 10, task_id=n),
                    SQLExecutionEnd(n),
                ]
            )
    finally:
        done.set()
        reader.join()

    assert torn == []
    assert tracker.snapshot() == LiveEntities()
