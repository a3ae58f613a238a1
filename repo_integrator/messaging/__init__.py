"""Cross-context messaging for the OAuth handshake."""

from .channel import ChannelBusyError, ChannelMessage, MessageChannel, MessageType, Subscription
from .popup import BrowserPopupLauncher, PopupGeometry, PopupHandle, PopupLauncher

__all__ = [
    "ChannelBusyError",
    "ChannelMessage",
    "MessageChannel",
    "MessageType",
    "Subscription",
    "BrowserPopupLauncher",
    "PopupGeometry",
    "PopupHandle",
    "PopupLauncher",
]
