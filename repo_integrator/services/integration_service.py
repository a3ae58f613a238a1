"""Integration service: repository choice, submission and progress tracking."""

import asyncio
from typing import Awaitable, Callable, Optional
import logging

from repo_integrator.clients import GitHubBackendClient
from repo_integrator.core.config import Settings, get_settings
from repo_integrator.models import Repository
from repo_integrator.schemas import StartIntegrationRequest, StartIntegrationResponse
from repo_integrator.services.configurator import (
    ConfigurationError,
    IntegrationConfiguration,
    IntegrationConfigurator,
)
from repo_integrator.services.integration_directory import IntegrationDirectory
from repo_integrator.services.progress_poller import (
    ChangeListener,
    PollingHandle,
    ProgressPoller,
    ProgressView,
)

logger = logging.getLogger(__name__)


class IntegrationService:
    """Service tying repository selection, submission and progress together.

    At most one integration's progress is tracked at a time; tracking another
    one stops the previous handle.
    """

    def __init__(
        self,
        client: GitHubBackendClient,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        directory: Optional[IntegrationDirectory] = None,
        poller: Optional[ProgressPoller] = None,
        on_progress: Optional[ChangeListener] = None,
    ):
        self.client = client
        self.settings = settings or get_settings()
        self.directory = directory or IntegrationDirectory(client, self.settings, sleep)
        self.poller = poller or ProgressPoller(client, self.settings, sleep)
        self.on_progress = on_progress

        self.selected_repository: Optional[Repository] = None
        self.selected_connection_id: Optional[str] = None
        self.active: Optional[PollingHandle] = None

    def select_repository(self, repository: Repository, connection_id: str) -> IntegrationConfigurator:
        """Remember the chosen repository and return a configurator for it."""
        self.selected_repository = repository
        self.selected_connection_id = connection_id
        return IntegrationConfigurator(
            repository_name=repository.name,
            detected_language=repository.language,
        )

    def cancel_selection(self) -> None:
        self.selected_repository = None
        self.selected_connection_id = None

    async def start_integration(self, configuration: IntegrationConfiguration) -> StartIntegrationResponse:
        """Submit the selected repository and start tracking its progress.

        Backend failures propagate unchanged so the caller can show them
        inline; the selection is kept in that case.
        """
        repository = self.selected_repository
        if repository is None or self.selected_connection_id is None:
            raise ConfigurationError("No repository selected")
        if not configuration.selected_features:
            raise ConfigurationError("Select at least one feature")

        request = StartIntegrationRequest(
            connection_id=self.selected_connection_id,
            repository_id=repository.id,
            repository_name=repository.name,
            repository_full_name=repository.full_name,
            integration_type=configuration.integration_type,
            selected_features=configuration.selected_features,
        )
        response = await self.client.start_integration(request)
        self.cancel_selection()

        view = ProgressView(response.integration_id, on_change=self.on_progress)
        view.seed(response.status)
        self.track(response.integration_id, view=view)

        await self.directory.load()
        for delay in self.settings.post_submit_refresh_delays:
            self.directory.schedule_reload(delay)

        return response

    def track(self, integration_id: str, view: Optional[ProgressView] = None) -> PollingHandle:
        """Show an integration's progress, replacing any tracked one."""
        self.close_details()
        self.active = self.poller.start(
            integration_id,
            view=view,
            on_change=self.on_progress,
        )
        return self.active

    def close_details(self) -> None:
        if self.active is not None:
            self.active.stop()
            self.active = None

    def close(self) -> None:
        """Stop progress polling and the directory's refreshes."""
        self.close_details()
        self.directory.close()
        logger.debug("Integration service closed")
