from .lifecycle import (
    LifecycleState,
    CancellationToken,
    BackgroundService,
    sleep_or_cancel,
    run_until_cancelled,
)
from .messages import ReplicationMessage
from .producer import ReplicationProducer
from .consumer import ReplicationConsumer

__all__ = [
    "LifecycleState",
    "CancellationToken",
    "BackgroundService",
    "sleep_or_cancel",
    "run_until_cancelled",
    "ReplicationMessage",
    "ReplicationProducer",
    "ReplicationConsumer",
]
