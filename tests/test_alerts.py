"""Unit tests for the alert decision engine."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from services.alerts import AlertController


class FakeNotifier:
    """Records messages; outcomes are popped from ``results`` (default success)."""

    def __init__(self, results: Optional[list] = None, gate: Optional[asyncio.Event] = None) -> None:
        self.messages: List[str] = []
        self.results = list(results or [])
        self.gate = gate
        self.closed = False

    async def send(self, message: str) -> bool:
        self.messages.append(message)
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            outcome = self.results.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return True

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def test_excursion_sequence_fires_once_and_rearms() -> None:
    async def scenario() -> None:
        notifier = FakeNotifier()
        controller = AlertController(notifier)

        assert controller.evaluate(32) is not None
        await controller.drain()
        assert controller.alert_sent is True
        assert controller.last_alert_time is not None

        assert controller.evaluate(33) is None
        await controller.drain()
        assert len(notifier.messages) == 1

        assert controller.evaluate(36) is None
        assert controller.alert_sent is False

        assert controller.evaluate(31) is not None
        await controller.drain()
        assert len(notifier.messages) == 2
        assert "31" in notifier.messages[1]
        assert controller.alert_sent is True

    asyncio.run(scenario())


def test_message_contains_sampled_temperature() -> None:
    async def scenario() -> None:
        notifier = FakeNotifier()
        controller = AlertController(notifier)
        controller.evaluate(32.5)
        await controller.drain()
        assert "32.5" in notifier.messages[0]

    asyncio.run(scenario())


def test_second_sample_during_inflight_delivery_dispatches_again() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        notifier = FakeNotifier(gate=gate)
        controller = AlertController(notifier)

        first = controller.evaluate(32)
        await asyncio.sleep(0)
        assert first is not None
        assert controller.alert_sent is False

        second = controller.evaluate(33)
        assert second is not None
        assert controller.in_flight == 2

        gate.set()
        await controller.drain()
        assert len(notifier.messages) == 2
        assert controller.alert_sent is True
        assert controller.in_flight == 0

    asyncio.run(scenario())


def test_inflight_guard_suppresses_concurrent_dispatch() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        notifier = FakeNotifier(gate=gate)
        controller = AlertController(notifier, inflight_guard=True)

        assert controller.evaluate(32) is not None
        await asyncio.sleep(0)
        assert controller.evaluate(33) is None

        gate.set()
        await controller.drain()
        assert len(notifier.messages) == 1
        assert controller.alert_sent is True

    asyncio.run(scenario())


@pytest.mark.parametrize(
    ("temperature", "dispatched"),
    [(30.0, True), (35.0, True), (29.999, False), (35.001, False)],
)
def test_critical_window_bounds_are_inclusive(temperature: float, dispatched: bool) -> None:
    async def scenario() -> None:
        notifier = FakeNotifier()
        controller = AlertController(notifier)
        task = controller.evaluate(temperature)
        await controller.drain()
        assert (task is not None) is dispatched
        assert (len(notifier.messages) == 1) is dispatched
        assert controller.alert_sent is dispatched

    asyncio.run(scenario())


def test_failed_delivery_leaves_controller_armed_for_retry() -> None:
    async def scenario() -> None:
        notifier = FakeNotifier(results=[False, True])
        controller = AlertController(notifier)

        controller.evaluate(32)
        await controller.drain()
        assert controller.alert_sent is False
        assert controller.last_alert_time is None

        assert controller.evaluate(32) is not None
        await controller.drain()
        assert controller.alert_sent is True
        assert len(notifier.messages) == 2

    asyncio.run(scenario())


def test_notifier_exception_is_logged_and_contained(caplog) -> None:
    async def scenario() -> None:
        notifier = FakeNotifier(results=[RuntimeError("provider down")])
        controller = AlertController(notifier)
        task = controller.evaluate(34)
        await controller.drain()
        assert task is not None and task.exception() is None
        assert controller.alert_sent is False

    with caplog.at_level(logging.WARNING):
        asyncio.run(scenario())

    records = [record for record in caplog.records if record.name == "services.alerts"]
    assert any("delivery failed" in record.getMessage() for record in records)
    assert any("provider down" in getattr(record, "reason", "") for record in records)


@pytest.mark.parametrize("temperature", [None, float("nan")])
def test_missing_temperature_is_a_noop(temperature) -> None:
    async def scenario() -> None:
        notifier = FakeNotifier()
        controller = AlertController(notifier)
        controller.alert_sent = True

        assert controller.evaluate(temperature) is None
        assert controller.alert_sent is True
        assert notifier.messages == []

    asyncio.run(scenario())


def test_reset_is_logged_only_when_alert_was_sent(caplog) -> None:
    async def scenario() -> None:
        controller = AlertController(FakeNotifier())
        controller.evaluate(20)
        controller.evaluate(32)
        await controller.drain()
        controller.evaluate(20)

    with caplog.at_level(logging.INFO):
        asyncio.run(scenario())

    resets = [
        record for record in caplog.records if getattr(record, "event", None) == "alert_reset"
    ]
    assert len(resets) == 1


def test_cooldown_gates_new_excursion_after_recent_alert() -> None:
    async def scenario() -> None:
        clock = FakeClock()
        notifier = FakeNotifier()
        controller = AlertController(notifier, cooldown_seconds=60, clock=clock)

        controller.evaluate(32)
        await controller.drain()
        controller.evaluate(36)

        clock.advance(10)
        assert controller.evaluate(31) is None

        clock.advance(51)
        assert controller.evaluate(31) is not None
        await controller.drain()
        assert len(notifier.messages) == 2

    asyncio.run(scenario())


def test_cooldown_passed_rules() -> None:
    clock = FakeClock()
    controller = AlertController(FakeNotifier(), cooldown_seconds=60, clock=clock)

    assert controller.cooldown_passed(clock.now) is True

    controller.last_alert_time = clock.now
    assert controller.cooldown_passed(clock.now + timedelta(seconds=60)) is False
    assert controller.cooldown_passed(clock.now + timedelta(seconds=61)) is True

    disabled = AlertController(FakeNotifier(), cooldown_seconds=0, clock=clock)
    disabled.last_alert_time = clock.now
    assert disabled.cooldown_passed(clock.now) is True


def test_negative_cooldown_is_disabled() -> None:
    assert AlertController(FakeNotifier(), cooldown_seconds=-5).cooldown_seconds == 0.0


def test_shutdown_cancels_pending_dispatch() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        controller = AlertController(FakeNotifier(gate=gate))
        controller.evaluate(32)
        await asyncio.sleep(0)
        assert controller.in_flight == 1

        await controller.shutdown()
        assert controller.in_flight == 0
        assert controller.alert_sent is False

    asyncio.run(scenario())


def test_snapshot_reports_state() -> None:
    async def scenario() -> None:
        controller = AlertController(FakeNotifier(), cooldown_seconds=5, inflight_guard=True)
        controller.evaluate(33)
        await controller.drain()
        return controller.snapshot()

    snapshot = asyncio.run(scenario())

    assert snapshot.alert_sent is True
    assert snapshot.last_alert_time is not None
    assert snapshot.in_flight == 0
    assert snapshot.cooldown_seconds == 5
    assert snapshot.inflight_guard is True
    assert (snapshot.window_min, snapshot.window_max) == (30.0, 35.0)
