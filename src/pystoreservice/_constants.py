"""Internal constants shared across the library."""

#: Depth used by :func:`pystoreservice.state.diff.value_diff` when no depth is given.
DEFAULT_DIFF_DEPTH = 3

#: Depth used when a reconcile pass compares the slice with the composite state.
DEFAULT_RECONCILE_DEPTH = 3

#: Seconds between a deferred dispatch request and the dispatch itself.
DEFAULT_DISPATCH_DELAY: float = 0.001

#: Seconds between a committed change and the subscriber notification.
DEFAULT_NOTIFY_DELAY: float = 0.0

#: Prefix folded into every service action type before PascalCasing.
ACTION_TYPE_PREFIX = "Service_"

#: Action dispatched by the bundled host store when it is created.
INIT_ACTION_TYPE = "@@pystoreservice/INIT"

#: Action dispatched by the bundled host store after its reducer is replaced.
REPLACE_ACTION_TYPE = "@@pystoreservice/REPLACE"

#: Name of the store registered by :meth:`ServiceRegistry.middleware` by default.
DEFAULT_STORE_NAME = "default"

# ------------------------------------------------------------------
# Timer keys
# ------------------------------------------------------------------

DISPATCH_TIMER = "dispatch"
NOTIFY_TIMER = "notify"
