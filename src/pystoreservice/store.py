"""Minimal in-process host store.

Implements the :class:`~pystoreservice.models.StoreHandle` contract for
applications that have no store of their own, and for tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

from pystoreservice._constants import INIT_ACTION_TYPE, REPLACE_ACTION_TYPE
from pystoreservice.exceptions import ReentrantDispatchError
from pystoreservice.models import Action, Dispatch, Listener, Middleware, Reducer

_logger = logging.getLogger(__name__)


class Store:
    """Single reducer, synchronous dispatch, middleware chain.

    Middlewares are attached before the initial action is dispatched, so
    services see their store from the very first reconcile pass.
    """

    def __init__(
        self,
        reducer: Reducer,
        state: Any = None,
        *,
        middlewares: Iterable[Middleware] = (),
    ) -> None:
        self._reducer = reducer
        self._state = state
        self._listeners: list[Listener] = []
        self._is_dispatching = False
        self._dispatch: Dispatch = self._dispatch_to_reducer

        chain = [middleware(self) for middleware in middlewares]
        dispatch: Dispatch = self._dispatch_to_reducer
        for wrap in reversed(chain):
            dispatch = wrap(dispatch)
        self._dispatch = dispatch

        self.dispatch(Action(type=INIT_ACTION_TYPE))

    def dispatch(self, action: Action) -> Any:
        return self._dispatch(action)

    def _dispatch_to_reducer(self, action: Action) -> Action:
        if self._is_dispatching:
            raise ReentrantDispatchError(f"Reducers may not dispatch actions (got {action.type!r})")
        self._is_dispatching = True
        try:
            self._state = self._reducer(self._state, action)
        finally:
            self._is_dispatching = False
        for listener in list(self._listeners):
            listener()
        return action

    def get_state(self) -> Any:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def replace_reducer(self, reducer: Reducer) -> None:
        self._reducer = reducer
        _logger.debug("Reducer replaced")
        self.dispatch(Action(type=REPLACE_ACTION_TYPE))
