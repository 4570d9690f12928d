"""
Fan-out execution with per-task timeouts.

Each task runs on its own daemon worker thread and shares nothing; it hands
its result back through its own future, and outcomes are collected on the
caller's thread in completion order. At most ``max_workers`` tasks run at
once. A task that runs longer than the timeout is abandoned: it is reported
as timed out, its eventual result is ignored, and it stops counting against
``max_workers`` so the queued tasks behind it still start. Abandoned
threads are daemons and never hold up interpreter exit.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, wait
from contextlib import closing
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Sequence, TypeVar

from .config import DEFAULT_MAX_WORKERS

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = tuple[str, Callable[[], T]]

THREAD_NAME_PREFIX = "bucket-audit"


@dataclass(frozen=True)
class TaskOutcome(Generic[T]):
    """
    Result of one fan-out task.

    Attributes:
        label: Caller-supplied task label (e.g. repository name)
        result: Return value, None on error or timeout
        error: Error description if the task raised
        timed_out: Whether the task was abandoned after its timeout
    """
    label: str
    result: T | None = None
    error: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out


def _start_worker(label: str, fn: Callable[[], T]) -> Future:
    """Run ``fn`` on a new daemon thread and return the future it completes."""
    future: Future = Future()

    def run() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn()
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(result)

    threading.Thread(target=run, name=f"{THREAD_NAME_PREFIX}-{label}", daemon=True).start()
    return future


def _collect(label: str, future: Future) -> TaskOutcome:
    try:
        return TaskOutcome(label=label, result=future.result())
    except Exception as e:
        logger.debug("Task %s failed: %s", label, e)
        return TaskOutcome(label=label, error=str(e) or e.__class__.__name__)


def iter_fanout(
    tasks: Sequence[Task],
    timeout: float | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Iterator[TaskOutcome]:
    """
    Run tasks concurrently and yield their outcomes as they finish.

    Every task yields exactly one outcome: its result, its error, or a
    timeout. A task's timeout counts from the moment its thread starts;
    since abandoned tasks free their slot, every task is reported within
    its own timeout of being started, even when ``max_workers`` tasks hang.
    Closing the iterator early leaves queued tasks unstarted and abandons
    running ones without waiting for them.

    Args:
        tasks: (label, callable) pairs
        timeout: Per-task budget in seconds, None for no limit
        max_workers: Upper bound on concurrently running, non-abandoned tasks

    Yields:
        TaskOutcome per task, in completion order
    """
    queued = deque(tasks)
    running: dict[Future, tuple[str, float]] = {}
    limit = max(1, max_workers)

    while queued or running:
        while queued and len(running) < limit:
            label, fn = queued.popleft()
            running[_start_worker(label, fn)] = (label, time.monotonic())

        wait_for = None
        if timeout is not None:
            earliest = min(started for _, started in running.values())
            wait_for = max(0.0, earliest + timeout - time.monotonic())
        done, _ = wait(running, timeout=wait_for, return_when=FIRST_COMPLETED)

        for future in done:
            label, _ = running.pop(future)
            yield _collect(label, future)

        if timeout is None:
            continue
        now = time.monotonic()
        for future, (label, started) in list(running.items()):
            if not future.done() and now - started >= timeout:
                del running[future]
                logger.debug("Task %s timed out after %ss", label, timeout)
                yield TaskOutcome(label=label, timed_out=True)


def run_fanout(
    tasks: Sequence[Task],
    timeout: float | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    on_complete: Callable[[TaskOutcome], None] | None = None,
) -> list[TaskOutcome]:
    """
    Run tasks concurrently and return every outcome in completion order.

    ``on_complete`` is invoked on the calling thread once per task.
    """
    outcomes = []
    for outcome in iter_fanout(tasks, timeout=timeout, max_workers=max_workers):
        outcomes.append(outcome)
        if on_complete is not None:
            on_complete(outcome)
    return outcomes


def race_for_true(
    probes: Sequence[Task[bool]],
    timeout: float | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> bool:
    """
    Resolve True as soon as any probe returns True.

    False is returned only after every probe has returned False, raised, or
    timed out; a quick False never decides the race while another probe is
    still running. Probes still running when True arrives are left to finish
    in the background and their results are discarded.
    """
    with closing(iter_fanout(probes, timeout=timeout, max_workers=max_workers)) as outcomes:
        for outcome in outcomes:
            if outcome.ok and outcome.result is True:
                logger.debug("Probe %s reported stale", outcome.label)
                return True
    return False
