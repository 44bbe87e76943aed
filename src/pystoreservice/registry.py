"""Registry context holding every service of an application.

The registry is the entry point: define services on it, then build the
host store with :meth:`ServiceRegistry.wrap_reducer` and
:meth:`ServiceRegistry.middleware`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from typing import Any, TypeVar

from pystoreservice._constants import DEFAULT_STORE_NAME
from pystoreservice.exceptions import ServiceRegistrationError
from pystoreservice.models import Action, Dispatch, Middleware, Reducer, StoreHandle
from pystoreservice.scheduling import LoopTimers, Timers
from pystoreservice.service import StoreService

_logger = logging.getLogger(__name__)

TService = TypeVar("TService", bound=StoreService)


class ServiceRegistry:
    """Lazily constructed, memoised services keyed by identifier."""

    def __init__(self, *, timers: Timers | None = None) -> None:
        self.timers: Timers = timers if timers is not None else LoopTimers()
        self.stores: dict[str, StoreHandle] = {}
        self._services: dict[str, StoreService] = {}
        self._action_types: dict[str, str] = {}
        self._defining: set[str] = set()

    def define(self, identifier: str, factory: Callable[[], TService]) -> TService:
        """Return the service registered as *identifier*, creating it on first use.

        Raises
        ------
        ServiceRegistrationError
            If *identifier* is already bound to a service that is not an
            instance of *factory* (when *factory* is a class), if the factory
            does not return a :class:`StoreService`, if its action type is
            already claimed by another identifier, or if the factory
            recursively defines its own identifier.
        """
        existing = self._services.get(identifier)
        if existing is not None:
            if isinstance(factory, type) and not isinstance(existing, factory):
                raise ServiceRegistrationError(
                    f"Service {identifier!r} is already defined as {type(existing).__name__}",
                    identifier=identifier,
                )
            return existing  # type: ignore[return-value]

        if identifier in self._defining:
            raise ServiceRegistrationError(
                f"Service {identifier!r} is being defined recursively",
                identifier=identifier,
            )
        self._defining.add(identifier)
        try:
            service = factory()
        finally:
            self._defining.discard(identifier)

        if not isinstance(service, StoreService):
            raise ServiceRegistrationError(
                f"Factory for {identifier!r} returned {type(service).__name__}, not a StoreService",
                identifier=identifier,
            )
        owner = self._action_types.get(service.action_type)
        if owner is not None:
            raise ServiceRegistrationError(
                f"Action type {service.action_type!r} of {identifier!r} is already used by {owner!r}",
                identifier=identifier,
            )

        service.bind_registry(self)
        self._services[identifier] = service
        self._action_types[service.action_type] = identifier
        _logger.debug(
            "Defined service id=%s path=%s action_type=%s",
            identifier,
            service.path,
            service.action_type,
        )
        return service

    def get(self, identifier: str) -> StoreService | None:
        return self._services.get(identifier)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._services

    def __iter__(self) -> Iterator[StoreService]:
        return iter(list(self._services.values()))

    def __len__(self) -> int:
        return len(self._services)

    def services(self, match_paths: str | Iterable[str] | None = None) -> list[StoreService]:
        """Services in definition order, optionally only those whose path contains one of *match_paths*."""
        if isinstance(match_paths, str):
            match_paths = [match_paths]
        services = list(self._services.values())
        if match_paths is None:
            return services
        needles = list(match_paths)
        return [service for service in services if any(needle in service.path for needle in needles)]

    def reducer(self, match_paths: str | Iterable[str] | None = None) -> Reducer:
        """A reducer running every matching service's reducer in turn.

        Matching is re-evaluated on every call, so services defined after
        the store was built take part too.
        """

        def _reduce(state: Any, action: Action) -> Any:
            for service in self.services(match_paths):
                state = service.reduce(state, action)
            return state

        return _reduce

    def wrap_reducer(self, store_reducer: Reducer, match_paths: str | Iterable[str] | None = None) -> Reducer:
        """Wrap the application's reducer so services reconcile after it.

        This should be the first point of entry. Passing *match_paths* is
        only useful when services are spread over several stores.
        """
        if not callable(store_reducer):
            raise TypeError("store_reducer must be callable")
        service_reducer = self.reducer(match_paths)

        def _reduce(state: Any, action: Action) -> Any:
            state = store_reducer(state, action)
            return service_reducer(state, action)

        return _reduce

    def middleware(self, name: str = DEFAULT_STORE_NAME) -> Middleware:
        """Middleware recording the store under *name*; required for dispatching to work."""

        def _middleware(store: StoreHandle) -> Callable[[Dispatch], Dispatch]:
            self.stores[name] = store
            _logger.debug("Registry attached to store name=%s", name)
            return lambda next_dispatch: next_dispatch

        return _middleware

    async def flush(self) -> None:
        """Wait until no service has deferred work outstanding."""
        while any(service.scheduler.has_pending() for service in self._services.values()):
            for service in list(self._services.values()):
                await service.flush()
