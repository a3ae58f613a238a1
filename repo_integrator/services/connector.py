"""Connector flow: account connection and repository selection."""

from typing import Callable, List, Optional
import logging

from repo_integrator.clients import BackendError
from repo_integrator.messaging import ChannelBusyError
from repo_integrator.models import Connection, Repository
from repo_integrator.services.connection_directory import ConnectionDirectory, DirectoryStep
from repo_integrator.services.oauth_broker import OAuthConnectionBroker

logger = logging.getLogger(__name__)


class ConnectorFlow:
    """Drives connection -> repository selection.

    Errors are kept in ``error`` for inline display instead of being raised.
    """

    CANCELLED_MESSAGE = "GitHub connection was cancelled or blocked"

    def __init__(
        self,
        directory: ConnectionDirectory,
        broker: OAuthConnectionBroker,
        on_connect: Optional[Callable[[str], None]] = None,
        on_select_repository: Optional[Callable[[Repository, str], None]] = None,
    ):
        self.directory = directory
        self.broker = broker
        self.on_connect = on_connect
        self.on_select_repository = on_select_repository
        self.step = DirectoryStep.CONNECT
        self.error: Optional[str] = None
        self.loading = False
        self.connecting = False
        self.search_query = ""

    @property
    def connections(self) -> List[Connection]:
        return self.directory.connections

    @property
    def visible_repositories(self) -> List[Repository]:
        return self.directory.search_repositories(self.search_query)

    async def open(self) -> DirectoryStep:
        """Load connections and pick the starting step."""
        self.loading = True
        try:
            outcome = await self.directory.load()
            self.step = outcome.step
        except BackendError as e:
            self.error = str(e) or "Failed to load connections"
        finally:
            self.loading = False
        return self.step

    async def connect(self) -> Optional[str]:
        """Run the OAuth handshake and select the new connection."""
        if self.connecting:
            logger.debug("Ignoring connect request while a handshake is pending")
            return None

        self.connecting = True
        self.loading = True
        self.error = None
        try:
            result = await self.broker.connect()
            if result is None:
                self.error = self.CANCELLED_MESSAGE
                return None

            if self.on_connect:
                self.on_connect(result.connection_id)

            await self.directory.list_connections()
            if self.directory.get(result.connection_id) is not None:
                self.directory.select(result.connection_id)
                self.step = DirectoryStep.SELECT_REPOSITORY
            return result.connection_id
        except ChannelBusyError as e:
            self.error = str(e)
        except BackendError as e:
            self.error = str(e) or "Failed to connect GitHub"
        finally:
            self.connecting = False
            self.loading = False
        return None

    async def choose_connection(self, connection_id: str) -> None:
        """Switch to another linked account, re-syncing its repositories."""
        self.loading = True
        try:
            await self.directory.select_connection(connection_id)
            self.step = DirectoryStep.SELECT_REPOSITORY
        except (BackendError, ValueError) as e:
            self.error = str(e) or "Failed to load repositories"
        finally:
            self.loading = False

    def choose_repository(self, repository: Repository) -> None:
        selected = self.directory.selected
        if selected is not None and self.on_select_repository:
            self.on_select_repository(repository, selected.id)

    def back_to_connections(self) -> None:
        self.step = DirectoryStep.CONNECT
