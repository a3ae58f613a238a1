"""OAuth callback receiver application."""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional
import logging

from fastapi import FastAPI
import uvicorn

from repo_integrator.api import health, oauth_callback
from repo_integrator.core.config import Settings, get_settings
from repo_integrator.messaging import MessageChannel

logger = logging.getLogger(__name__)


def create_app(channel: Optional[MessageChannel] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Create the callback receiver bound to a message channel."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"OAuth callback receiver listening on {settings.callback_origin}")
        yield
        logger.info("OAuth callback receiver stopped")

    app = FastAPI(
        title="Repo Integrator OAuth Callback",
        description="Receives GitHub OAuth redirects for the repository integration client",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.channel = channel or MessageChannel()
    app.state.settings = settings

    app.include_router(health.router, tags=["health"])
    app.include_router(oauth_callback.router, prefix="/oauth", tags=["oauth"])
    return app


class OAuthCallbackServer:
    """Runs the callback receiver inside the current event loop.

    The receiver must share its channel with the broker waiting for the
    callback, so it only runs in-process alongside the handshake.
    """

    def __init__(self, channel: MessageChannel, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.channel = channel
        self.app = create_app(channel, self.settings)
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        config = uvicorn.Config(
            self.app,
            host=self.settings.callback_host,
            port=self.settings.callback_port,
            log_config=None,
            lifespan="on",
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve())
        while not self._server.started:
            if self._task.done():
                # serve() exits early when the port cannot be bound
                self._task.result()
                raise RuntimeError(f"OAuth callback receiver failed to start on {self.settings.callback_origin}")
            await asyncio.sleep(0.05)

    async def stop(self) -> None:
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._server = None
        self._task = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
