from mousevr.channel.inbound import InboundMessage, MessageChannel
from mousevr.channel.listener import ZmqStreamListener

__all__ = ["InboundMessage", "MessageChannel", "ZmqStreamListener"]
