"""OAuth connection broker.

Runs one GitHub OAuth handshake: asks the backend for an authorization URL,
opens it in a popup and waits for the callback page to post a message back on
the cross-context channel. Cancellation in any form (blocked popup, popup
closed, error message, timeout) resolves to ``None`` rather than raising.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
import logging

from repo_integrator.clients import GitHubBackendClient
from repo_integrator.core.config import Settings, get_settings
from repo_integrator.messaging import (
    ChannelMessage,
    MessageChannel,
    MessageType,
    PopupGeometry,
    PopupHandle,
    PopupLauncher,
)

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class OAuthResult:
    """Successful handshake outcome."""
    connection_id: str


class OAuthConnectionBroker:
    """Negotiates a GitHub OAuth handshake across the popup and this client.

    One call to ``connect`` owns one handshake. Concurrent calls are not
    deduplicated; the channel refuses a second listener with
    ``ChannelBusyError``.
    """

    def __init__(
        self,
        client: GitHubBackendClient,
        channel: MessageChannel,
        launcher: PopupLauncher,
        settings: Optional[Settings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.client = client
        self.channel = channel
        self.launcher = launcher
        self.settings = settings or get_settings()
        self._sleep = sleep

    @property
    def origin(self) -> str:
        return self.settings.callback_origin

    @property
    def trusted_origins(self):
        return self.settings.trusted_origins

    def popup_geometry(self) -> PopupGeometry:
        return PopupGeometry.centered(self.settings.popup_width, self.settings.popup_height)

    async def connect(self) -> Optional[OAuthResult]:
        """Run one handshake and return the new connection, or None."""
        auth = await self.client.get_auth_url()

        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def settle(result: Optional[OAuthResult]) -> None:
            if not outcome.done():
                outcome.set_result(result)

        def on_message(message: ChannelMessage) -> bool:
            if message.origin not in self.trusted_origins:
                logger.warning(f"Ignoring OAuth message from untrusted origin {message.origin}")
                return False
            if message.type == MessageType.OAUTH_SUCCESS.value and message.data.get("connectionId"):
                loop.call_soon_threadsafe(settle, OAuthResult(str(message.data["connectionId"])))
                return True
            if message.type == MessageType.OAUTH_ERROR.value:
                logger.warning(f"OAuth handshake failed: {message.data.get('message')}")
                loop.call_soon_threadsafe(settle, None)
                return True
            return False

        subscription = self.channel.subscribe(on_message)
        popup: Optional[PopupHandle] = None
        watcher: Optional[asyncio.Task] = None
        try:
            popup = self.launcher.open(auth.auth_url, self.popup_geometry())
            if popup is None:
                logger.warning("OAuth popup was blocked")
                return None

            watcher = asyncio.create_task(self._watch_popup(popup, settle))
            try:
                result = await asyncio.wait_for(outcome, timeout=self.settings.oauth_timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("OAuth handshake timed out")
                result = None

            if result is not None:
                logger.info(f"OAuth handshake completed for connection {result.connection_id}")
            return result
        finally:
            subscription.unsubscribe()
            if watcher is not None:
                watcher.cancel()
            if popup is not None and not popup.closed:
                popup.close()

    async def _watch_popup(self, popup: PopupHandle, settle: Callable[[Optional[OAuthResult]], None]) -> None:
        """Resolve with no result once the popup is closed without signaling."""
        while True:
            if popup.closed:
                logger.info("OAuth popup closed before completing")
                settle(None)
                return
            await self._sleep(self.settings.popup_close_check_interval)
