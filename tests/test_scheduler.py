from __future__ import annotations

import logging

import pytest

from mousevr.scheduler import DeferredScheduler


def test_callbacks_fire_in_time_order(clock) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[str] = []
    scheduler.schedule("late", 6.0, lambda: fired.append("late"))
    scheduler.schedule("early", 2.0, lambda: fired.append("early"))

    assert scheduler.pending() == ["early", "late"]
    clock.advance(1.0)
    assert scheduler.run_due() == 0
    clock.advance(1.0)
    assert scheduler.run_due() == 1
    clock.advance(10.0)
    assert scheduler.run_due() == 1
    assert fired == ["early", "late"]
    assert len(scheduler) == 0


def test_same_time_keeps_registration_order(clock) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[int] = []
    for n in range(4):
        scheduler.schedule("tick", 1.0, lambda n=n: fired.append(n))

    scheduler.run_due(now=1.0)

    assert fired == [0, 1, 2, 3]


def test_explicit_now_overrides_clock(clock) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[str] = []
    scheduler.schedule("cue_on", 5.0, lambda: fired.append("cue_on"))

    scheduler.run_due(now=4.999)
    assert fired == []
    scheduler.run_due(now=5.0)
    assert fired == ["cue_on"]


def test_callbacks_scheduled_while_firing_wait_for_next_pass(clock) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[str] = []

    def first() -> None:
        fired.append("first")
        scheduler.schedule("second", 0.0, lambda: fired.append("second"))

    scheduler.schedule("first", 0.0, first)
    assert scheduler.run_due() == 1
    assert fired == ["first"]
    assert scheduler.run_due() == 1
    assert fired == ["first", "second"]


def test_cancel_and_clear(clock) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[str] = []
    scheduler.schedule("check_success", 2.0, lambda: fired.append("check_success"))
    scheduler.schedule("check_failure", 6.0, lambda: fired.append("check_failure"))

    assert scheduler.cancel("check_success") == 1
    assert scheduler.pending() == ["check_failure"]
    clock.advance(10.0)
    scheduler.run_due()
    assert fired == ["check_failure"]

    scheduler.schedule("cue_on", 1.0, lambda: fired.append("cue_on"))
    scheduler.clear()
    clock.advance(10.0)
    assert scheduler.run_due() == 0


def test_failing_callback_is_logged(clock, caplog: pytest.LogCaptureFixture) -> None:
    scheduler = DeferredScheduler(clock)
    fired: list[str] = []

    def broken() -> None:
        raise RuntimeError("boom")

    scheduler.schedule("broken", 0.0, broken)
    scheduler.schedule("fine", 0.0, lambda: fired.append("fine"))

    with caplog.at_level(logging.ERROR, logger="mousevr"):
        assert scheduler.run_due() == 2

    assert fired == ["fine"]
    assert any("broken" in rec.getMessage() for rec in caplog.records)


def test_negative_delay_rejected(clock) -> None:
    with pytest.raises(ValueError):
        DeferredScheduler(clock).schedule("bad", -1.0, lambda: None)
