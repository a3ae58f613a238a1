"""Integration directory: the list of submitted integrations.

Loads integrations and connections together. While any listed integration is
still being prepared (initializing, analyzing, generating) the whole list is
re-fetched on the poll cadence; once none is, the auto-refresh stops.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set, Union
import logging

from repo_integrator.clients import BackendError, GitHubBackendClient
from repo_integrator.core.config import Settings, get_settings
from repo_integrator.models import Connection, Integration, IntegrationStatus, StatusColor
from repo_integrator.models.status import parse_status

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

ALL_STATUSES = "all"


@dataclass(frozen=True)
class StatusBadge:
    """Compact status label for list rows."""
    label: str
    color: StatusColor


def status_badge(status: IntegrationStatus) -> StatusBadge:
    status = parse_status(status)
    return StatusBadge(label=status.badge_label, color=status.color)


class IntegrationDirectory:
    """Cached integration list with auto-refresh while jobs are in progress."""

    def __init__(
        self,
        client: GitHubBackendClient,
        settings: Optional[Settings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.interval = self.settings.poll_interval_seconds
        self._sleep = sleep

        self.integrations: List[Integration] = []
        self.connections: List[Connection] = []
        self.loading = False
        self.error: Optional[str] = None
        self.load_count = 0

        self._refresh_task: Optional[asyncio.Task] = None
        self._scheduled: Set[asyncio.Task] = set()
        self._closed = False

    @property
    def has_in_progress(self) -> bool:
        return any(integration.in_progress for integration in self.integrations)

    @property
    def auto_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    async def load(self) -> List[Integration]:
        """Load integrations and connections, then update the auto-refresh."""
        await self._fetch()
        self._update_auto_refresh()
        return self.integrations

    async def _fetch(self) -> None:
        self.load_count += 1
        self.loading = True
        try:
            integrations, connections = await asyncio.gather(
                self.client.list_integrations(limit=self.settings.integrations_list_limit),
                self.client.list_connections(),
            )
        except BackendError as e:
            if not self._closed:
                logger.warning(f"Failed to load integrations: {e}")
                self.error = str(e) or "Failed to load integrations"
            return
        finally:
            self.loading = False

        if self._closed:
            return
        self.integrations = integrations
        self.connections = connections
        self.error = None

    def _update_auto_refresh(self) -> None:
        if self._closed:
            return
        if self.has_in_progress:
            if not self.auto_refreshing:
                logger.debug("Integrations in progress; starting list auto-refresh")
                self._refresh_task = asyncio.create_task(self._auto_refresh_loop())
        elif self.auto_refreshing and self._refresh_task is not asyncio.current_task():
            self._refresh_task.cancel()
            self._refresh_task = None

    async def _auto_refresh_loop(self) -> None:
        while True:
            await self._sleep(self.interval)
            if self._closed:
                return
            await self._fetch()
            if not self.has_in_progress:
                logger.debug("No integrations in progress; list auto-refresh stopped")
                self._refresh_task = None
                return

    def schedule_reload(self, delay: float) -> asyncio.Task:
        """Reload the list once after delay seconds."""
        async def reload():
            await self._sleep(delay)
            if not self._closed:
                await self.load()

        task = asyncio.create_task(reload())
        self._scheduled.add(task)
        task.add_done_callback(self._scheduled.discard)
        return task

    def filtered(
        self,
        search: str = "",
        status: Union[IntegrationStatus, str] = ALL_STATUSES,
    ) -> List[Integration]:
        """Integrations whose repository name contains search and whose status matches."""
        wanted = None if status == ALL_STATUSES else parse_status(status)
        query = search.lower()
        return [
            integration for integration in self.integrations
            if query in integration.repository_name.lower()
            and (wanted is None or integration.status == wanted)
        ]

    def status_badge(self, status: IntegrationStatus) -> StatusBadge:
        return status_badge(status)

    def close(self) -> None:
        """Stop the auto-refresh and drop scheduled reloads."""
        self._closed = True
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None
        for task in list(self._scheduled):
            task.cancel()
