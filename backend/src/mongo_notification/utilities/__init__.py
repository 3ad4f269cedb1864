from .constants import (
    DEFAULT_COLLECTION_SIZE,
    DEFAULT_DATABASE,
    ERROR_EVENT,
    SIZE_UNITS,
    TAIL_MAX_AWAIT_MS,
    TAIL_RETRY_INTERVAL,
)
from .errors import (
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
)
from .utility_functions import make_message, parse_size
