"""Cross-context message channel between the OAuth popup and the client."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Message types posted by the OAuth callback page."""
    OAUTH_SUCCESS = "oauth-success"
    OAUTH_ERROR = "oauth-error"


class ChannelBusyError(RuntimeError):
    """Another subscriber already owns the channel."""
    pass


@dataclass(frozen=True)
class ChannelMessage:
    """A message together with the origin of the context that posted it."""
    origin: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> Optional[str]:
        return self.data.get("type")


# Listeners return False to reject a message (e.g. untrusted origin)
MessageCallback = Callable[[ChannelMessage], Optional[bool]]


class Subscription:
    """Registration of a single listener on a channel."""

    def __init__(self, channel: "MessageChannel", callback: MessageCallback):
        self._channel = channel
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._channel.owner is self

    def unsubscribe(self) -> None:
        """Release the channel. Safe to call more than once."""
        self._channel._release(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.unsubscribe()


class MessageChannel:
    """Single-owner message channel.

    Only one listener may be registered at a time; it must unsubscribe before
    another can register. Messages published while nobody listens are dropped.
    """

    def __init__(self):
        self.owner: Optional[Subscription] = None

    @property
    def busy(self) -> bool:
        return self.owner is not None

    def subscribe(self, callback: MessageCallback) -> Subscription:
        if self.owner is not None:
            raise ChannelBusyError("A handshake is already listening on this channel")
        self.owner = Subscription(self, callback)
        return self.owner

    def publish(self, data: Dict[str, Any], origin: str) -> bool:
        """Deliver a message to the current listener.

        Returns False when no listener is registered or the listener
        rejected the message.
        """
        owner = self.owner
        if owner is None:
            logger.debug(f"Dropping {data.get('type')} message from {origin}: no listener")
            return False
        accepted = owner.callback(ChannelMessage(origin=origin, data=dict(data)))
        return accepted is not False

    def _release(self, subscription: Subscription) -> None:
        if self.owner is subscription:
            self.owner = None
