"""Services: private state slices reconciled against a composite store state.

A :class:`StoreService` owns one dot path inside the host store's state.
Local writes go through :meth:`StoreService.set_state`, which records them
as pending and asks the store to run its reducer; :meth:`StoreService.reduce`
then folds the pending changes into the composite state and notifies
subscribers on a later tick.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from pystoreservice._constants import DEFAULT_STORE_NAME, NOTIFY_TIMER
from pystoreservice.config import StoreServiceConfig
from pystoreservice.exceptions import InvalidPathError
from pystoreservice.models import Action, Middleware, SlicePhase, SliceSnapshot, StoreHandle
from pystoreservice.naming import action_type_for
from pystoreservice.scheduling import DispatchScheduler, Timers
from pystoreservice.state.diff import UNCHANGED, value_diff, values_match
from pystoreservice.state.paths import is_dot_path, lookup, set_path

if TYPE_CHECKING:
    from pystoreservice.registry import ServiceRegistry

_logger = logging.getLogger(__name__)

StateListener = Callable[[dict[str, Any]], None]


@dataclass(frozen=True, slots=True)
class ServiceHooks:
    """Optional lifecycle callbacks, each receiving the service first.

    on_init
        Runs once, after the first reconcile pass has committed.
    on_reduce
        Runs at the start of every reconcile pass.
    on_state_changing
        Receives the merged incoming changes and returns the changes to commit.
    on_state_changed
        Runs before subscribers whenever a committed change is announced.
    on_route
        Receives the normalised route passed to :meth:`StoreService.set_route`.
    """

    on_init: Callable[[StoreService], None] | None = None
    on_reduce: Callable[[StoreService], None] | None = None
    on_state_changing: Callable[[StoreService, dict[str, Any]], Mapping[str, Any]] | None = None
    on_state_changed: Callable[[StoreService, dict[str, Any]], None] | None = None
    on_route: Callable[[StoreService, str], None] | None = None


def normalize_route(route: str) -> str:
    """Strip hash prefixes and leading slashes; backslashes become slashes."""
    route = route.replace("\\", "/")
    if route.startswith("#"):
        route = route[1:]
    return route.lstrip("/")


class StoreService:
    """A small slice of the host store's state, augmented with business logic.

    Usage::

        class Counter(StoreService):
            def __init__(self) -> None:
                super().__init__("counter", {"value": 0})

            def increment(self) -> None:
                self.set_state({"value": self.state["value"] + 1})

        registry = ServiceRegistry()
        counter = registry.define("counter", Counter)
        store = Store(registry.wrap_reducer(app_reducer), middlewares=[registry.middleware()])
    """

    def __init__(
        self,
        path: str,
        initial: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
        hooks: ServiceHooks | None = None,
        config: StoreServiceConfig | None = None,
        timers: Timers | None = None,
    ) -> None:
        if not is_dot_path(path):
            raise InvalidPathError(f"Service slice path must be a dot path - got {path!r}", path=path)
        self._path = path
        self._name = name or type(self).__name__
        self._action_type = action_type_for(self._name)
        self._hooks = hooks or ServiceHooks()
        self._config = config or StoreServiceConfig()

        self._initial: Mapping[str, Any] = MappingProxyType(dict(initial or {}))
        self._last: dict[str, Any] = dict(self._initial)
        self._pending: dict[str, Any] = {}
        self._subscriptions: list[StateListener] = []

        self._phase = SlicePhase.UNINITIALIZED
        self._has_initialized = False
        self._commit_count = 0
        self._store_state: Any = None
        self._registry: ServiceRegistry | None = None
        self.route: str | None = None

        self._owns_timers = timers is not None
        self._scheduler = DispatchScheduler(
            timers=timers,
            store_resolver=self._registry_store,
            delay=self._config.dispatch_delay,
        )

    # ------------------------------------------------------------------
    # Identity and read views
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> str:
        return self._path

    @property
    def action_type(self) -> str:
        """The type of every action this service dispatches."""
        return self._action_type

    @property
    def config(self) -> StoreServiceConfig:
        return self._config

    @property
    def initial_state(self) -> Mapping[str, Any]:
        """The read-only state the service was created with."""
        return self._initial

    @property
    def state(self) -> dict[str, Any]:
        """A fresh copy of the committed state with pending changes on top."""
        return {**self._last, **self._pending}

    @property
    def pending(self) -> dict[str, Any]:
        return dict(self._pending)

    @property
    def phase(self) -> SlicePhase:
        return self._phase

    @property
    def is_reconciling(self) -> bool:
        return self._phase is SlicePhase.RECONCILING

    @property
    def has_initialized(self) -> bool:
        return self._has_initialized

    @property
    def store_state(self) -> Any:
        """The composite state seen by the most recent reconcile pass."""
        return self._store_state

    @property
    def scheduler(self) -> DispatchScheduler:
        return self._scheduler

    def snapshot(self) -> SliceSnapshot:
        return SliceSnapshot(
            name=self._name,
            path=self._path,
            action_type=self._action_type,
            phase=self._phase,
            last_known=self._last,
            pending=self._pending,
            subscribers=len(self._subscriptions),
        )

    # ------------------------------------------------------------------
    # Store wiring
    # ------------------------------------------------------------------

    def bind_registry(self, registry: ServiceRegistry) -> None:
        """Called by :meth:`ServiceRegistry.define`; adopts the registry's timers and default store."""
        self._registry = registry
        if not self._owns_timers:
            self._scheduler.timers = registry.timers

    def _registry_store(self) -> StoreHandle | None:
        if self._registry is None:
            return None
        return self._registry.stores.get(DEFAULT_STORE_NAME)

    @property
    def middleware(self) -> Middleware:
        """Middleware attaching this single service to a store.

        :meth:`ServiceRegistry.middleware` is preferred for single-store
        applications.
        """

        def _middleware(store: StoreHandle) -> Callable[[Callable[[Action], Any]], Callable[[Action], Any]]:
            self._scheduler.store = store
            _logger.debug("Service %s attached to store", self._name)
            return lambda next_dispatch: next_dispatch

        return _middleware

    @property
    def reducer(self) -> Callable[[Any, Action], Any]:
        return self.reduce

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with the new state after every committed change.

        The listener is called once straight away with the current state.
        Subscribing a listener that is already subscribed does nothing.
        Returns a callable that unsubscribes it.
        """
        if listener not in self._subscriptions:
            self._subscriptions.append(listener)
            listener(self.state)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: StateListener) -> None:
        if listener in self._subscriptions:
            self._subscriptions.remove(listener)

    # ------------------------------------------------------------------
    # Local mutation
    # ------------------------------------------------------------------

    def set_state(self, changes: Mapping[str, Any]) -> bool:
        """Record changes to the state, similar to a React component.

        Values equal to the current state are ignored. A value equal to the
        committed state drops the pending change for that key instead.

        Returns
        -------
        bool
            Whether the resolved state changed.
        """
        depth = self._config.diff_depth
        current = self.state
        changed = False
        for key, value in changes.items():
            if key in current and values_match(current[key], value, depth):
                continue
            if key in self._last and values_match(self._last[key], value, depth):
                self._pending.pop(key, None)
            else:
                self._pending[key] = value
            changed = True

        if not changed:
            return False

        action = Action(type=self._action_type, payload=self._pending)
        if self.is_reconciling or self._config.defer_dispatch:
            # Subscribers hear about it once the deferred dispatch commits.
            self._scheduler.dispatch_scheduled(action)
            return True

        commits = self._commit_count
        self._scheduler.dispatch_immediate(action)
        if self._commit_count == commits:
            # No store reduced the action; still announce the local change.
            self._schedule_state_changed()
        return True

    async def flush(self) -> None:
        """Wait for deferred dispatches and notifications to go out."""
        await self._scheduler.drain()

    def set_route(self, route: str) -> None:
        self.route = normalize_route(route)
        if self._has_initialized:
            self._run_hook("on_route", self.route)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reduce(self, store_state: Any, action: Action | None = None) -> Any:
        """Reducer merging this slice into the composite *store_state*.

        Always returns the composite state, changed or not, so it chains
        with other reducers.
        """
        if store_state:
            self._store_state = store_state
        else:
            store_state = {}

        self._phase = SlicePhase.RECONCILING
        try:
            self._run_hook("on_reduce")
            incoming = lookup(store_state, self._path)
            incoming_diff = value_diff(self.state, incoming, self._config.reconcile_depth)
            if incoming_diff is not UNCHANGED or self._pending:
                self._commit(store_state, incoming)
            if not self._has_initialized:
                self._has_initialized = True
                self._init()
        finally:
            self._phase = SlicePhase.IDLE if self._has_initialized else SlicePhase.UNINITIALIZED
        return store_state

    def _commit(self, store_state: Any, incoming: Any) -> None:
        merged: dict[str, Any] = dict(incoming) if isinstance(incoming, Mapping) else {}
        merged.update(self._pending)
        hook = self._hooks.on_state_changing
        if hook is not None:
            merged = dict(hook(self, merged))
        committed = {**self._last, **merged}
        set_path(store_state, self._path, dict(committed))
        self._last = committed
        self._pending = {}
        self._commit_count += 1
        _logger.debug("Committed slice path=%s keys=%s", self._path, sorted(merged))
        self._schedule_state_changed()

    def _init(self) -> None:
        _logger.debug("Initialising service %s at %s", self._name, self._path)
        self._run_hook("on_init")
        if self.route is not None:
            self._run_hook("on_route", self.route)

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def _schedule_state_changed(self) -> None:
        key = (NOTIFY_TIMER, self._action_type)
        if not self._has_initialized:
            self._scheduler.cancel(key)
            return
        self._scheduler.defer(key, self._call_state_changed, self._config.notify_delay, run_inline=True)

    def _call_state_changed(self) -> None:
        callbacks: list[StateListener] = []
        hook = self._hooks.on_state_changed
        if hook is not None:
            callbacks.append(lambda state: hook(self, state))
        callbacks.extend(self._subscriptions)
        for callback in callbacks:
            try:
                callback(self.state)
            except Exception:
                _logger.debug("State listener failed for service=%s", self._name, exc_info=True)

    def _run_hook(self, name: str, *args: Any) -> Any:
        hook = getattr(self._hooks, name)
        if hook is None:
            return None
        return hook(self, *args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self._path!r}, phase={self._phase.value})"
