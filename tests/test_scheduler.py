"""Debounce scheduling tests."""

from __future__ import annotations

import asyncio
import logging

import pytest

from inkwell.annotations.scheduler import AnnotationScheduler


def test_burst_of_triggers_collapses_into_one_pass(fake_loop) -> None:
    fired: list[int] = []
    scheduler = AnnotationScheduler(fired.append, loop=fake_loop, debounce_seconds=0.3)

    for _ in range(3):
        scheduler.schedule()

    assert len(fake_loop.live) == 1
    assert fake_loop.live[0].delay == pytest.approx(0.3)
    assert fake_loop.run_pending() == 1
    assert fired == [3]
    assert scheduler.runs == 1
    assert not scheduler.pending


def test_schedule_now_replaces_pending_debounce(fake_loop) -> None:
    fired: list[int] = []
    scheduler = AnnotationScheduler(fired.append, loop=fake_loop)

    scheduler.schedule()
    scheduler.schedule_now()

    assert [timer.delay for timer in fake_loop.live] == [0.0]
    fake_loop.run_pending()
    assert fired == [2]


def test_superseded_timer_does_not_fire(fake_loop) -> None:
    fired: list[int] = []
    scheduler = AnnotationScheduler(fired.append, loop=fake_loop)
    scheduler.schedule()
    first = fake_loop.timers[0]
    scheduler.schedule()

    first.callback(*first.args)

    assert fired == []
    assert scheduler.pending


def test_close_cancels_and_blocks_new_work(fake_loop) -> None:
    fired: list[int] = []
    scheduler = AnnotationScheduler(fired.append, loop=fake_loop)
    scheduler.schedule()

    scheduler.close()

    assert scheduler.closed
    assert not scheduler.schedule()
    assert fake_loop.run_pending() == 0
    assert fired == []


def test_negative_debounce_is_rejected() -> None:
    with pytest.raises(ValueError):
        AnnotationScheduler(lambda generation: None, debounce_seconds=-1)
    scheduler = AnnotationScheduler(lambda generation: None)
    with pytest.raises(ValueError):
        scheduler.debounce_seconds = -0.5


def test_callback_errors_are_logged(fake_loop, caplog: pytest.LogCaptureFixture) -> None:
    def _boom(generation: int) -> None:
        raise RuntimeError("pass failed")

    caplog.set_level(logging.WARNING, logger="inkwell.annotations.scheduler")
    scheduler = AnnotationScheduler(_boom, loop=fake_loop)
    scheduler.schedule_now()

    fake_loop.run_pending()

    assert scheduler.runs == 1
    assert "Annotation pass failed" in caplog.text


def test_schedule_without_running_loop_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    fired: list[int] = []
    caplog.set_level(logging.WARNING, logger="inkwell.annotations.scheduler")
    scheduler = AnnotationScheduler(fired.append)

    assert scheduler.schedule() is False
    assert scheduler.schedule_now() is False
    assert not scheduler.pending
    assert scheduler.generation == 0
    assert fired == []
    assert "No running event loop" in caplog.text


@pytest.mark.asyncio
async def test_debounce_on_running_event_loop() -> None:
    fired: list[int] = []
    scheduler = AnnotationScheduler(fired.append, debounce_seconds=0.02)

    for _ in range(5):
        scheduler.schedule()
        await asyncio.sleep(0.001)
    await asyncio.sleep(0.1)

    assert fired == [5]
    scheduler.close()
