from __future__ import annotations

import pytest

from flotilla.app.pacing import PacingScheduler


def test_call_later_runs_when_due() -> None:
    scheduler = PacingScheduler()
    calls: list[str] = []
    scheduler.call_later(1.5, lambda: calls.append("think"))

    assert scheduler.advance(1.0) == 0
    assert calls == []
    assert scheduler.advance(0.5) == 1
    assert calls == ["think"]
    assert scheduler.pending_count == 0


def test_tasks_run_in_due_order() -> None:
    scheduler = PacingScheduler()
    calls: list[str] = []
    scheduler.call_later(2.0, lambda: calls.append("late"))
    scheduler.call_later(1.0, lambda: calls.append("early"))
    assert scheduler.pending_labels() == ["", ""]
    scheduler.advance(3.0)
    assert calls == ["early", "late"]


def test_cancel_prevents_execution() -> None:
    scheduler = PacingScheduler()
    calls: list[str] = []
    task_id = scheduler.call_later(0.1, lambda: calls.append("never"))
    scheduler.cancel(task_id)
    assert scheduler.pending_count == 0
    assert scheduler.advance(1.0) == 0
    assert calls == []


def test_callback_can_chain_a_due_task() -> None:
    scheduler = PacingScheduler()
    calls: list[str] = []

    def first() -> None:
        calls.append("first")
        scheduler.call_later(0.0, lambda: calls.append("second"), label="second")

    scheduler.call_later(1.0, first, label="first")
    assert scheduler.pending_labels() == ["first"]
    assert scheduler.advance(1.0) == 2
    assert calls == ["first", "second"]


def test_next_due_skips_cancelled_tasks() -> None:
    scheduler = PacingScheduler()
    cancelled = scheduler.call_later(1.0, lambda: None)
    scheduler.call_later(2.5, lambda: None)
    scheduler.cancel(cancelled)
    assert scheduler.next_due() == 2.5


def test_time_arguments_are_validated() -> None:
    scheduler = PacingScheduler()
    with pytest.raises(ValueError):
        scheduler.call_later(-0.1, lambda: None)
    with pytest.raises(ValueError):
        scheduler.advance(-0.1)
    scheduler.advance(1.0)
    with pytest.raises(ValueError):
        scheduler.run_due(0.5)
