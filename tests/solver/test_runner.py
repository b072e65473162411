"""Tests for background and batch solving."""

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import pytest

from flowassign import FailureKind, SolveJob, solve, solve_many


@pytest.fixture
def blocked_executor():
    """Single-thread executor whose only thread is busy until released."""
    release = threading.Event()
    pool = ThreadPoolExecutor(max_workers=1)
    pool.submit(release.wait)
    yield pool, release
    release.set()
    pool.shutdown(wait=True)


class TestSolveJob:
    def test_result_matches_direct_solve(self, ten_by_five):
        job = SolveJob(*ten_by_five)
        result = job.result(timeout=30)
        assert result == solve(*ten_by_five)
        assert job.done()

    def test_progress_complete_after_solve(self, ten_by_five):
        job = SolveJob(*ten_by_five)
        job.result(timeout=30)
        assert job.progress == (10, 10)
        assert job.fraction == pytest.approx(1.0)

    def test_initial_progress(self, blocked_executor, two_by_two):
        pool, release = blocked_executor
        job = SolveJob(*two_by_two, executor=pool)
        assert job.progress == (0, 2)
        assert job.fraction == 0.0
        assert not job.done()
        release.set()
        assert job.result(timeout=30).ok

    def test_cancel_before_start(self, blocked_executor, ten_by_five):
        pool, release = blocked_executor
        job = SolveJob(*ten_by_five, executor=pool)
        job.cancel()
        assert job.cancelled
        release.set()

        result = job.result(timeout=30)
        assert not result.ok
        assert result.kind is FailureKind.CANCELLED

    def test_result_timeout(self, blocked_executor, two_by_two):
        pool, release = blocked_executor
        job = SolveJob(*two_by_two, executor=pool)
        with pytest.raises(FutureTimeout):
            job.result(timeout=0.01)
        release.set()
        assert job.result(timeout=30).ok

    def test_no_workers(self):
        job = SolveJob([(0, 1)], [])
        assert job.result(timeout=30).ok
        assert job.fraction == 1.0

    def test_failure_is_returned(self):
        job = SolveJob([(1, 1)], [[None]])
        assert job.result(timeout=30).kind is FailureKind.TASK_INFEASIBLE


class TestSolveMany:
    def test_serial_and_parallel_agree(self, two_by_two, reroute_needed, ten_by_five):
        instances = [two_by_two, reroute_needed, ten_by_five, ([(1, 1)], [[None]])]
        serial = solve_many(instances)
        parallel = solve_many(instances, parallelism=3)

        assert serial[:3] == parallel[:3]
        assert [r.ok for r in serial] == [True, True, True, False]
        assert serial[3].kind is parallel[3].kind is FailureKind.TASK_INFEASIBLE
        assert serial[2].total_cost == pytest.approx(12.5)

    def test_empty_batch(self):
        assert solve_many([], parallelism=4) == []

    def test_invalid_parallelism(self, two_by_two):
        with pytest.raises(ValueError, match="parallelism"):
            solve_many([two_by_two], parallelism=0)
