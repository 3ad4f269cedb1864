from .schemas import ChannelOptions, ChannelState, Message, PublishAck
