"""Clock-driven deferred task queue used to pace AI turns."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from heapq import heappop, heappush

TaskCallback = Callable[[], None]


@dataclass(slots=True)
class _Task:
    task_id: int
    due_seconds: float
    callback: TaskCallback
    label: str = ""
    cancelled: bool = False


class PacingScheduler:
    """One-shot delayed callbacks driven by an explicit clock."""

    def __init__(self) -> None:
        self._now_seconds = 0.0
        self._next_task_id = 1
        self._tasks: dict[int, _Task] = {}
        self._queue: list[tuple[float, int]] = []

    @property
    def now_seconds(self) -> float:
        return self._now_seconds

    @property
    def pending_count(self) -> int:
        """Return count of tasks still waiting to run."""
        return sum(1 for task in self._tasks.values() if not task.cancelled)

    def pending_labels(self) -> list[str]:
        """Labels of waiting tasks in due order."""
        ordered = sorted(
            (task for task in self._tasks.values() if not task.cancelled),
            key=lambda task: (task.due_seconds, task.task_id),
        )
        return [task.label for task in ordered]

    def call_later(self, delay_seconds: float, callback: TaskCallback, *, label: str = "") -> int:
        """Schedule ``callback`` to run ``delay_seconds`` from now."""
        if delay_seconds < 0.0:
            raise ValueError("delay_seconds must be >= 0")
        task_id = self._next_task_id
        self._next_task_id += 1
        due_seconds = self._now_seconds + delay_seconds
        self._tasks[task_id] = _Task(
            task_id=task_id, due_seconds=due_seconds, callback=callback, label=label
        )
        heappush(self._queue, (due_seconds, task_id))
        return task_id

    def cancel(self, task_id: int) -> None:
        """Cancel a scheduled task if it exists."""
        task = self._tasks.get(task_id)
        if task is not None:
            task.cancelled = True

    def advance(self, delta_seconds: float) -> int:
        """Advance the clock and run due callbacks."""
        if delta_seconds < 0.0:
            raise ValueError("delta_seconds must be >= 0")
        return self.run_due(self._now_seconds + delta_seconds)

    def run_due(self, now_seconds: float) -> int:
        """Run callbacks due at or before ``now_seconds``.

        Callbacks may schedule further tasks; those run in the same call when
        they are already due.
        """
        if now_seconds < self._now_seconds:
            raise ValueError("now_seconds cannot move backwards")
        self._now_seconds = now_seconds
        executed = 0
        while self._queue and self._queue[0][0] <= self._now_seconds:
            _, task_id = heappop(self._queue)
            task = self._tasks.pop(task_id, None)
            if task is None or task.cancelled:
                continue
            task.callback()
            executed += 1
        return executed

    def next_due(self) -> float | None:
        """Due time of the earliest waiting task."""
        while self._queue:
            _, task_id = self._queue[0]
            task = self._tasks.get(task_id)
            if task is not None and not task.cancelled:
                return task.due_seconds
            heappop(self._queue)
            self._tasks.pop(task_id, None)
        return None
