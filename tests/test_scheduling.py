from __future__ import annotations

import asyncio
from typing import Any

import pytest

from pystoreservice.exceptions import SchedulerError
from pystoreservice.models import Action
from pystoreservice.scheduling import DispatchScheduler, LoopTimers, ManualTimers


class _RecordingStore:
    def __init__(self) -> None:
        self.actions: list[Action] = []

    def dispatch(self, action: Action) -> Any:
        self.actions.append(action)
        return action

    def get_state(self) -> Any:  # pragma: no cover
        return None

    def subscribe(self, listener: Any) -> Any:  # pragma: no cover
        return lambda: None

    def replace_reducer(self, reducer: Any) -> None:  # pragma: no cover
        return None


def test_manual_timers_fire_in_due_then_arm_order() -> None:
    timers = ManualTimers()
    fired: list[str] = []
    timers.arm("late", 2.0, lambda: fired.append("late"))
    timers.arm("first", 0.0, lambda: fired.append("first"))
    timers.arm("second", 0.0, lambda: fired.append("second"))

    assert timers.advance(1.0) == 2
    assert fired == ["first", "second"]
    assert timers.now == 1.0

    assert timers.advance(1.0) == 1
    assert fired == ["first", "second", "late"]


def test_manual_timers_rearm_replaces_previous_callback() -> None:
    timers = ManualTimers()
    fired: list[int] = []
    timers.arm("k", 0.0, lambda: fired.append(1))
    timers.arm("k", 0.0, lambda: fired.append(2))

    assert timers.pending == 1
    timers.run_all()
    assert fired == [2]


def test_manual_timers_cancel() -> None:
    timers = ManualTimers()
    timers.arm("k", 0.0, lambda: None)
    timers.cancel("k")
    assert not timers.is_armed("k")
    assert timers.run_all() == 0


def test_manual_timers_run_all_guards_against_endless_rearming() -> None:
    timers = ManualTimers()

    def _again() -> None:
        timers.arm("k", 0.0, _again)

    timers.arm("k", 0.0, _again)
    with pytest.raises(SchedulerError):
        timers.run_all(max_callbacks=50)


def test_loop_timers_without_running_loop_raise() -> None:
    with pytest.raises(SchedulerError):
        LoopTimers().arm("k", 0.0, lambda: None)


def test_deferred_work_without_running_loop_runs_inline_when_asked() -> None:
    scheduler = DispatchScheduler(timers=LoopTimers(), delay=0.0)
    fired: list[str] = []

    completion = scheduler.defer("notify", lambda: fired.append("notify"), run_inline=True)

    assert fired == ["notify"]
    assert completion.done
    assert not scheduler.has_pending()


def test_scheduled_dispatch_without_running_loop_is_dropped() -> None:
    store = _RecordingStore()
    scheduler = DispatchScheduler(timers=LoopTimers(), delay=0.0)
    scheduler.store = store

    completion = scheduler.dispatch_scheduled(Action(type="ServiceCounter", payload={"a": 1}))

    assert store.actions == []
    assert completion.done
    assert not scheduler.has_pending()


def test_dispatch_immediate_without_store_is_a_noop() -> None:
    scheduler = DispatchScheduler(timers=ManualTimers())
    assert scheduler.dispatch_immediate(Action(type="ServiceX", payload={"a": 1})) is None


def test_dispatch_immediate_falls_back_to_resolver_store() -> None:
    default_store = _RecordingStore()
    scheduler = DispatchScheduler(timers=ManualTimers(), store_resolver=lambda: default_store)

    scheduler.dispatch_immediate(Action(type="ServiceX"))

    assert [action.type for action in default_store.actions] == ["ServiceX"]


def test_scheduled_dispatches_collapse_to_latest_action() -> None:
    timers = ManualTimers()
    store = _RecordingStore()
    scheduler = DispatchScheduler(timers=timers)
    scheduler.store = store

    first = scheduler.dispatch_scheduled(Action(type="ServiceX", payload={"a": 1}))
    second = scheduler.dispatch_scheduled(Action(type="ServiceX", payload={"a": 2}))
    assert store.actions == []
    assert not first.done

    timers.run_all()

    assert [action.payload for action in store.actions] == [{"a": 2}]
    assert first.done and second.done
    assert not scheduler.has_pending()


def test_different_action_types_are_debounced_separately() -> None:
    timers = ManualTimers()
    store = _RecordingStore()
    scheduler = DispatchScheduler(timers=timers)
    scheduler.store = store

    scheduler.dispatch_scheduled(Action(type="ServiceA"))
    scheduler.dispatch_scheduled(Action(type="ServiceB"))
    timers.run_all()

    assert sorted(action.type for action in store.actions) == ["ServiceA", "ServiceB"]


def test_immediate_dispatch_absorbs_scheduled_one() -> None:
    timers = ManualTimers()
    store = _RecordingStore()
    scheduler = DispatchScheduler(timers=timers)
    scheduler.store = store

    pending = scheduler.dispatch_scheduled(Action(type="ServiceX", payload={"a": 1}))
    scheduler.dispatch_immediate(Action(type="ServiceX", payload={"a": 2}))

    assert pending.done
    assert timers.run_all() == 0
    assert [action.payload for action in store.actions] == [{"a": 2}]


@pytest.mark.asyncio
async def test_scheduled_dispatch_completion_resolves_on_loop() -> None:
    store = _RecordingStore()
    scheduler = DispatchScheduler(timers=LoopTimers(), delay=0.001)
    scheduler.store = store

    completion = scheduler.dispatch_scheduled(Action(type="ServiceX", payload={"a": 1}))
    await asyncio.wait_for(completion.wait(), timeout=1.0)

    assert len(store.actions) == 1


@pytest.mark.asyncio
async def test_drain_waits_for_work_armed_while_draining() -> None:
    scheduler = DispatchScheduler(timers=LoopTimers(), delay=0.0)
    order: list[str] = []

    def _first() -> None:
        order.append("first")
        scheduler.defer("second", lambda: order.append("second"))

    scheduler.defer("first", _first)
    await asyncio.wait_for(scheduler.drain(), timeout=1.0)

    assert order == ["first", "second"]


@pytest.mark.asyncio
async def test_drain_runs_manual_timers() -> None:
    timers = ManualTimers()
    scheduler = DispatchScheduler(timers=timers)
    fired: list[int] = []
    scheduler.defer("k", lambda: fired.append(1))

    await scheduler.drain()

    assert fired == [1]
