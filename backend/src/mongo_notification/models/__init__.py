from .channel import NotificationChannel, open_channel
from .provisioner import ensure_collection
from .publisher import Publisher
from .shutdown import ShutdownCoordinator
from .subscriber import Subscriber
