"""Deferred dispatch and notification scheduling.

Owns:
- the :class:`Timers` abstraction (``arm``/``cancel`` by key)
- an asyncio-backed implementation and a manual virtual clock
- :class:`DispatchScheduler`, which debounces dispatches per action type
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable, Hashable
from typing import Any, Protocol

from pystoreservice._constants import DEFAULT_DISPATCH_DELAY, DISPATCH_TIMER
from pystoreservice.exceptions import SchedulerError
from pystoreservice.models import Action, StoreHandle

_logger = logging.getLogger(__name__)


class Timers(Protocol):
    """Keyed one-shot timers. Arming a key replaces whatever was armed under it."""

    def arm(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None: ...

    def cancel(self, key: Hashable) -> None: ...

    def is_armed(self, key: Hashable) -> bool: ...


class LoopTimers:
    """Timers backed by ``loop.call_later``.

    Without an explicit loop the running loop is used at arm time; arming
    outside of a running loop raises :class:`SchedulerError`, which
    :meth:`DispatchScheduler.defer` turns into inline or dropped work.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[Hashable, asyncio.TimerHandle] = {}

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError as exc:
            raise SchedulerError("No running event loop; pass a loop or use ManualTimers") from exc

    def arm(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None:
        loop = self._get_loop()
        self.cancel(key)

        def _fire() -> None:
            self._handles.pop(key, None)
            callback()

        self._handles[key] = loop.call_later(delay, _fire)

    def cancel(self, key: Hashable) -> None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()

    def is_armed(self, key: Hashable) -> bool:
        return key in self._handles


class ManualTimers:
    """Deterministic timers driven by an explicit virtual clock.

    Nothing fires until :meth:`advance` or :meth:`run_all` is called.
    Entries due at the same instant fire in the order they were armed.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._entries: dict[Hashable, tuple[float, int, Callable[[], None]]] = {}

    @property
    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._entries)

    def arm(self, key: Hashable, delay: float, callback: Callable[[], None]) -> None:
        self._entries[key] = (self._now + max(delay, 0.0), next(self._seq), callback)

    def cancel(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def is_armed(self, key: Hashable) -> bool:
        return key in self._entries

    def _pop_next(self, until: float | None) -> tuple[float, Callable[[], None]] | None:
        if not self._entries:
            return None
        key, (due, _seq, callback) = min(self._entries.items(), key=lambda item: item[1][:2])
        if until is not None and due > until:
            return None
        del self._entries[key]
        return due, callback

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward, firing everything that falls due. Returns the number fired."""
        target = self._now + seconds
        fired = 0
        while (entry := self._pop_next(target)) is not None:
            due, callback = entry
            self._now = max(self._now, due)
            callback()
            fired += 1
        self._now = target
        return fired

    def run_all(self, max_callbacks: int = 10_000) -> int:
        """Fire timers until none are left, including ones armed while running."""
        fired = 0
        while (entry := self._pop_next(None)) is not None:
            due, callback = entry
            self._now = max(self._now, due)
            callback()
            fired += 1
            if fired >= max_callbacks:
                raise SchedulerError(f"Timers still re-arming after {fired} callbacks")
        return fired


class Completion:
    """Signal that resolves once a deferred piece of work has run.

    A completion also resolves when its work is superseded by a later
    request for the same key, or absorbed by an immediate dispatch.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def done(self) -> bool:
        return self._event.is_set()

    def resolve(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def __await__(self) -> Any:
        return self.wait().__await__()


class DispatchScheduler:
    """Hands actions to a store, either now or debounced per action type."""

    def __init__(
        self,
        *,
        timers: Timers | None = None,
        store_resolver: Callable[[], StoreHandle | None] | None = None,
        delay: float = DEFAULT_DISPATCH_DELAY,
    ) -> None:
        self.store: StoreHandle | None = None
        self.timers: Timers = timers if timers is not None else LoopTimers()
        self._store_resolver = store_resolver
        self._delay = delay
        self._waiting: dict[Hashable, list[Completion]] = {}

    def resolve_store(self) -> StoreHandle | None:
        if self.store is not None:
            return self.store
        if self._store_resolver is not None:
            return self._store_resolver()
        return None

    def has_pending(self, key: Hashable | None = None) -> bool:
        if key is None:
            return bool(self._waiting)
        return key in self._waiting

    def defer(
        self,
        key: Hashable,
        fn: Callable[[], Any],
        delay: float | None = None,
        *,
        run_inline: bool = False,
    ) -> Completion:
        """Run *fn* after *delay*, replacing anything already deferred under *key*.

        When the timers cannot be armed (no running event loop) the work runs
        straight away if *run_inline* is set and is dropped otherwise. The
        returned completion is resolved in both cases.
        """
        completion = Completion()
        waiters = self._waiting.setdefault(key, [])
        waiters.append(completion)

        def _fire() -> None:
            fired = self._waiting.pop(key, [])
            try:
                fn()
            finally:
                for waiter in fired:
                    waiter.resolve()

        try:
            self.timers.arm(key, self._delay if delay is None else delay, _fire)
        except SchedulerError:
            _logger.debug(
                "Cannot defer key=%s; %s",
                key,
                "running inline" if run_inline else "dropping it",
                exc_info=True,
            )
            if run_inline:
                _fire()
            else:
                for waiter in self._waiting.pop(key, []):
                    waiter.resolve()
        return completion

    def cancel(self, key: Hashable) -> None:
        """Drop deferred work for *key*; anyone awaiting it is released."""
        self.timers.cancel(key)
        for waiter in self._waiting.pop(key, []):
            waiter.resolve()

    def dispatch_immediate(self, action: Action) -> Any:
        self.cancel((DISPATCH_TIMER, action.type))
        store = self.resolve_store()
        if store is None:
            _logger.debug("No store attached; dropping dispatch type=%s", action.type)
            return None
        _logger.debug("Dispatching type=%s keys=%s", action.type, sorted(action.payload))
        return store.dispatch(action)

    def dispatch_scheduled(self, action: Action) -> Completion:
        """Debounced dispatch: only the last action per type within the delay goes out."""
        return self.defer((DISPATCH_TIMER, action.type), lambda: self.dispatch_immediate(action))

    async def drain(self) -> None:
        """Wait until no deferred work is outstanding."""
        while self._waiting:
            if isinstance(self.timers, ManualTimers):
                if self.timers.run_all() == 0:
                    raise SchedulerError("Deferred work is waiting on timers that are not armed")
                await asyncio.sleep(0)
                continue
            pending = [waiter for waiters in self._waiting.values() for waiter in waiters]
            await asyncio.gather(*(waiter.wait() for waiter in pending))
