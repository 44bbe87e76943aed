"""Service configuration for pystoreservice."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pystoreservice._constants import (
    DEFAULT_DIFF_DEPTH,
    DEFAULT_DISPATCH_DELAY,
    DEFAULT_NOTIFY_DELAY,
    DEFAULT_RECONCILE_DEPTH,
)
from pystoreservice.exceptions import StoreServiceConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class StoreServiceConfig:
    """Per-service tuning.

    Parameters
    ----------
    diff_depth : int
        Depth used by ``set_state`` to decide whether an incoming field
        value differs from the current one.
    reconcile_depth : int
        Depth used by the reducer to decide whether the composite state
        drifted from the slice's own view.  Use 1 when only top-level
        field changes matter.
    dispatch_delay : float
        Seconds before a deferred dispatch fires.  Later requests for the
        same action type re-arm the timer, so all requests made within
        this window collapse into one dispatch.
    notify_delay : float
        Seconds between a committed change and the subscriber callbacks.
    defer_dispatch : bool
        Always take the deferred dispatch path, even outside a reconcile
        pass.  This makes every burst of ``set_state`` calls coalesce into
        a single action.
    """

    diff_depth: int = DEFAULT_DIFF_DEPTH
    reconcile_depth: int = DEFAULT_RECONCILE_DEPTH
    dispatch_delay: float = DEFAULT_DISPATCH_DELAY
    notify_delay: float = DEFAULT_NOTIFY_DELAY
    defer_dispatch: bool = False

    def __post_init__(self) -> None:
        for name in ("diff_depth", "reconcile_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise StoreServiceConfigError(f"{name} must be a non-negative int, got {value!r}")
        for name in ("dispatch_delay", "notify_delay"):
            value = getattr(self, name)
            if value < 0:
                raise StoreServiceConfigError(f"{name} must not be negative, got {value!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreServiceConfig:
        """Create configuration from environment variables.

        Reads ``STORESERVICE_DIFF_DEPTH``, ``STORESERVICE_RECONCILE_DEPTH``,
        ``STORESERVICE_DISPATCH_DELAY``, ``STORESERVICE_NOTIFY_DELAY`` and
        ``STORESERVICE_DEFER_DISPATCH``. Explicit keyword arguments override
        environment values.

        Raises
        ------
        StoreServiceConfigError
            If a variable cannot be parsed or holds an out-of-range value.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_INT_MAP = {
            "STORESERVICE_DIFF_DEPTH": "diff_depth",
            "STORESERVICE_RECONCILE_DEPTH": "reconcile_depth",
        }
        _ENV_FLOAT_MAP = {
            "STORESERVICE_DISPATCH_DELAY": "dispatch_delay",
            "STORESERVICE_NOTIFY_DELAY": "notify_delay",
        }
        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)
        except ValueError as exc:
            raise StoreServiceConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "defer_dispatch" not in overrides:
            config_kwargs["defer_dispatch"] = _env_bool(env.get("STORESERVICE_DEFER_DISPATCH"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
