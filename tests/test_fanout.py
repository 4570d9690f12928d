"""
Tests for fan-out execution (bucket_audit/fanout.py).
"""

from __future__ import annotations

import threading
import time

from bucket_audit.fanout import TaskOutcome, iter_fanout, race_for_true, run_fanout


def blocker(event: threading.Event, value=None):
    """Build a task that waits on an event, then returns a value."""
    def task():
        event.wait(5)
        return value
    return task


def fail():
    raise RuntimeError("boom")


class TestTaskOutcome:
    """Tests for TaskOutcome."""

    def test_ok(self):
        """Test the ok property."""
        assert TaskOutcome(label="a", result=1).ok
        assert not TaskOutcome(label="a", error="x").ok
        assert not TaskOutcome(label="a", timed_out=True).ok


class TestRunFanout:
    """Tests for run_fanout() and iter_fanout()."""

    def test_empty(self):
        """Test that no tasks yields no outcomes."""
        assert run_fanout([]) == []
        assert list(iter_fanout([])) == []

    def test_one_outcome_per_task(self):
        """Test results, errors and labels."""
        outcomes = run_fanout([
            ("one", lambda: 1),
            ("two", lambda: 2),
            ("bad", fail),
        ])
        by_label = {o.label: o for o in outcomes}
        assert len(outcomes) == 3
        assert by_label["one"].result == 1
        assert by_label["two"].result == 2
        assert by_label["bad"].error == "boom"
        assert by_label["bad"].result is None

    def test_completion_order(self):
        """Test that outcomes arrive in completion order, not submission order."""
        release = threading.Event()
        try:
            seen = []
            for outcome in iter_fanout([("slow", blocker(release, "s")), ("fast", lambda: "f")]):
                seen.append(outcome.label)
                release.set()
            assert seen == ["fast", "slow"]
        finally:
            release.set()

    def test_timeout_reports_once(self):
        """Test that a hung task is reported exactly once as timed out."""
        release = threading.Event()
        calls = []
        try:
            start = time.monotonic()
            outcomes = run_fanout(
                [("hang", blocker(release)), ("quick", lambda: "ok")],
                timeout=0.2,
                on_complete=calls.append,
            )
            elapsed = time.monotonic() - start
        finally:
            release.set()

        assert [o.label for o in calls] == [o.label for o in outcomes]
        assert sorted(o.label for o in outcomes) == ["hang", "quick"]
        hung = next(o for o in outcomes if o.label == "hang")
        assert hung.timed_out and hung.result is None
        assert elapsed < 3

    def test_queued_tasks_not_expired(self):
        """Test that the timeout clock starts when a task starts running."""
        outcomes = run_fanout(
            [(f"t{i}", lambda: time.sleep(0.1) or "done") for i in range(3)],
            timeout=0.5,
            max_workers=1,
        )
        assert [o.result for o in outcomes] == ["done", "done", "done"]

    def test_hung_task_frees_its_slot(self):
        """Test that a queued task still runs when the only worker slot hangs."""
        release = threading.Event()
        try:
            start = time.monotonic()
            outcomes = run_fanout(
                [("hang", blocker(release)), ("quick", lambda: "ok")],
                timeout=0.2,
                max_workers=1,
            )
            elapsed = time.monotonic() - start
        finally:
            release.set()

        by_label = {o.label: o for o in outcomes}
        assert [o.label for o in outcomes] == ["hang", "quick"]
        assert by_label["hang"].timed_out
        assert by_label["quick"].result == "ok"
        assert elapsed < 1.0

    def test_every_slot_hung(self):
        """Test that queued tasks are reported even when all workers hang."""
        release = threading.Event()
        try:
            start = time.monotonic()
            outcomes = run_fanout(
                [(f"hang{i}", blocker(release)) for i in range(2)] + [("quick", lambda: 1)],
                timeout=0.2,
                max_workers=2,
            )
            elapsed = time.monotonic() - start
        finally:
            release.set()

        assert sorted(o.label for o in outcomes if o.timed_out) == ["hang0", "hang1"]
        assert next(o for o in outcomes if o.label == "quick").result == 1
        assert elapsed < 1.5

    def test_abandoned_workers_are_daemons(self):
        """Test that a hung task cannot hold up interpreter exit."""
        release = threading.Event()
        try:
            run_fanout([("stuck", blocker(release))], timeout=0.1)
            stuck = [t for t in threading.enumerate() if t.name.endswith("-stuck")]
            assert stuck
            assert all(t.daemon for t in stuck)
        finally:
            release.set()

    def test_on_complete_runs_on_caller_thread(self):
        """Test that progress callbacks are not invoked from workers."""
        threads = set()
        run_fanout(
            [("a", lambda: 1), ("b", lambda: 2)],
            on_complete=lambda outcome: threads.add(threading.get_ident()),
        )
        assert threads == {threading.get_ident()}


class TestRaceForTrue:
    """Tests for race_for_true()."""

    def test_all_false(self):
        """Test that False requires every probe to finish."""
        assert race_for_true([("a", lambda: False), ("b", lambda: False)]) is False

    def test_empty(self):
        """Test that an empty race is False."""
        assert race_for_true([]) is False

    def test_true_resolving_last_wins(self):
        """Test that quick False results do not decide the race."""
        release = threading.Event()

        def slow_true():
            release.wait(5)
            return True

        timer = threading.Timer(0.1, release.set)
        timer.start()
        try:
            assert race_for_true([
                ("f1", lambda: False),
                ("f2", lambda: False),
                ("t", slow_true),
            ]) is True
        finally:
            release.set()
            timer.cancel()

    def test_true_does_not_wait_for_others(self):
        """Test early resolution while another probe is still running."""
        release = threading.Event()
        try:
            start = time.monotonic()
            assert race_for_true([("hang", blocker(release, False)), ("t", lambda: True)]) is True
            assert time.monotonic() - start < 3
        finally:
            release.set()

    def test_errors_and_timeouts_count_as_false(self):
        """Test that failing or hung probes do not make the race True."""
        release = threading.Event()
        try:
            assert race_for_true(
                [("bad", fail), ("hang", blocker(release, True))],
                timeout=0.2,
            ) is False
        finally:
            release.set()

    def test_truthy_non_bool_is_not_true(self):
        """Test that only a literal True resolves the race."""
        assert race_for_true([("odd", lambda: 1)]) is False
