"""Topic based publish/subscribe over MongoDB capped collections."""
from .models import NotificationChannel, Publisher, ShutdownCoordinator, Subscriber, ensure_collection, open_channel
from .schemas import ChannelOptions, ChannelState, Message, PublishAck
from .utilities import (
    AlreadyExists,
    ChannelClosedError,
    ConfigError,
    InvalidSize,
    NotificationError,
    ProvisioningError,
    PublishError,
    ShutdownError,
    StorageError,
    TailError,
    parse_size,
)

__all__ = [
    "open_channel",
    "NotificationChannel",
    "Publisher",
    "Subscriber",
    "ShutdownCoordinator",
    "ensure_collection",
    "ChannelOptions",
    "ChannelState",
    "Message",
    "PublishAck",
    "parse_size",
    "NotificationError",
    "ConfigError",
    "InvalidSize",
    "StorageError",
    "AlreadyExists",
    "ProvisioningError",
    "PublishError",
    "TailError",
    "ShutdownError",
    "ChannelClosedError",
]
