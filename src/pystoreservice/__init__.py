"""pystoreservice - State slices reconciled against a shared store state."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pystoreservice")
except PackageNotFoundError:
    __version__ = "0+local"
from pystoreservice.config import StoreServiceConfig
from pystoreservice.exceptions import (
    InvalidPathError,
    ReentrantDispatchError,
    SchedulerError,
    ServiceRegistrationError,
    StoreServiceConfigError,
    StoreServiceError,
    UnaddressableTargetError,
)
from pystoreservice.models import Action, SlicePhase, SliceSnapshot, StoreHandle
from pystoreservice.naming import action_type_for, pascal_case, to_words
from pystoreservice.registry import ServiceRegistry
from pystoreservice.scheduling import Completion, DispatchScheduler, LoopTimers, ManualTimers, Timers
from pystoreservice.service import ServiceHooks, StoreService
from pystoreservice.state.diff import REMOVED, UNCHANGED, value_diff, values_match
from pystoreservice.state.paths import is_dot_path, lookup, set_path
from pystoreservice.store import Store

__all__ = [
    "__version__",
    "Action",
    "Completion",
    "DispatchScheduler",
    "InvalidPathError",
    "LoopTimers",
    "ManualTimers",
    "REMOVED",
    "ReentrantDispatchError",
    "SchedulerError",
    "ServiceHooks",
    "ServiceRegistrationError",
    "ServiceRegistry",
    "SlicePhase",
    "SliceSnapshot",
    "Store",
    "StoreHandle",
    "StoreService",
    "StoreServiceConfig",
    "StoreServiceConfigError",
    "StoreServiceError",
    "Timers",
    "UNCHANGED",
    "UnaddressableTargetError",
    "action_type_for",
    "is_dot_path",
    "lookup",
    "pascal_case",
    "set_path",
    "to_words",
    "value_diff",
    "values_match",
]
