class NotificationError(Exception):
    '''Base class for every error raised by mongo_notification.'''


class ConfigError(NotificationError):
    '''Missing or invalid channel option, raised before any I/O.'''


class InvalidSize(ConfigError):
    '''A collection size that cannot be turned into a byte count.'''


class StorageError(NotificationError):
    '''Failure reported by the storage collaborator.'''


class AlreadyExists(StorageError):
    '''The capped collection for a topic has already been created.'''


class ProvisioningError(NotificationError):
    '''Creating the capped collection failed for a reason other than AlreadyExists.'''


class PublishError(NotificationError):
    '''A single append to the capped collection failed.'''


class TailError(NotificationError):
    '''The tailable cursor failed while the channel was subscribed.'''


class ShutdownError(NotificationError):
    '''Releasing the tail, cursor or connection failed during close.'''


class ChannelClosedError(NotificationError):
    '''The channel has been closed and cannot publish anymore.'''
