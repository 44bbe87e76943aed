"""Custom exception hierarchy for pystoreservice."""

from __future__ import annotations


class StoreServiceError(Exception):
    """Base exception for all pystoreservice errors."""


class StoreServiceConfigError(StoreServiceError):
    """Invalid configuration value."""


class InvalidPathError(StoreServiceError, ValueError):
    """A dot path contains illegal characters, whitespace or empty segments."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class UnaddressableTargetError(StoreServiceError):
    """No container exists at the parent of the path being written.

    This is a caller bug: the composite state has not been initialised at
    the location the slice expects to live in.
    """

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class ServiceRegistrationError(StoreServiceError):
    """A service identifier or action type was registered incompatibly."""

    def __init__(self, message: str, *, identifier: str = "") -> None:
        self.identifier = identifier
        super().__init__(message)


class SchedulerError(StoreServiceError):
    """Timers could not be armed, or a manual clock kept re-arming past its limit."""


class ReentrantDispatchError(StoreServiceError):
    """An action was dispatched into a store that is still reducing.

    Services avoid this by deferring dispatches made during a reconcile
    pass; seeing it usually means a reducer dispatched directly.
    """
