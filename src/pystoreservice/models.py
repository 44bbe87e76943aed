"""Actions, phases and the host-store contract."""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Any, Protocol, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pystoreservice.state.paths import is_dot_path


class Action(BaseModel):
    """A dispatched action.

    Service actions carry only the fields that changed in ``payload``.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("type")
    @classmethod
    def _require_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("action type must be non-empty")
        return value


class SlicePhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    RECONCILING = "reconciling"
    IDLE = "idle"


class SliceSnapshot(BaseModel):
    """Point-in-time view of one service's slice, for logging and inspection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    path: str
    action_type: str
    phase: SlicePhase
    last_known: dict[str, Any] = Field(default_factory=dict)
    pending: dict[str, Any] = Field(default_factory=dict)
    subscribers: int = 0

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not is_dot_path(value):
            raise ValueError(f"path must be a dot path, got {value!r}")
        return value

    @property
    def state(self) -> dict[str, Any]:
        return {**self.last_known, **self.pending}


Reducer: TypeAlias = Callable[[Any, Action], Any]
Dispatch: TypeAlias = Callable[[Action], Any]
Listener: TypeAlias = Callable[[], None]


class StoreHandle(Protocol):
    """What a host store must offer to have services attached to it."""

    def dispatch(self, action: Action) -> Any: ...

    def get_state(self) -> Any: ...

    def subscribe(self, listener: Listener) -> Callable[[], None]: ...

    def replace_reducer(self, reducer: Reducer) -> None: ...


Middleware: TypeAlias = Callable[[StoreHandle], Callable[[Dispatch], Dispatch]]
