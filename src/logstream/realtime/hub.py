"""Process-wide realtime singletons.

One registry, one sender, one broadcaster per process. Routes get the
broadcaster through get_broadcaster() so tests can override it.
"""

from logstream.config import settings
from logstream.realtime.broadcast import Broadcaster
from logstream.realtime.delivery import BackpressureSender
from logstream.realtime.registry import SubscriptionRegistry

registry = SubscriptionRegistry()
sender = BackpressureSender(
    retry_interval=settings.retry_interval,
    warn_after=settings.retry_warn_threshold,
)
broadcaster = Broadcaster(registry, sender)


def get_broadcaster() -> Broadcaster:
    """FastAPI dependency — the process-wide broadcaster."""
    return broadcaster
