"""Connection directory: linked GitHub accounts and their repositories."""

from dataclasses import dataclass, field
from typing import List, Optional
from enum import Enum
import logging

from repo_integrator.clients import GitHubBackendClient
from repo_integrator.models import Connection, Repository, RepositoryListing

logger = logging.getLogger(__name__)


class DirectoryStep(str, Enum):
    """Where the connector should start."""
    CONNECT = "connect"
    SELECT_REPOSITORY = "select-repo"


@dataclass
class DirectoryOutcome:
    """Result of the first directory load."""
    step: DirectoryStep
    connections: List[Connection] = field(default_factory=list)
    selected: Optional[Connection] = None

    @property
    def begin_oauth(self) -> bool:
        return self.step == DirectoryStep.CONNECT


class ConnectionDirectory:
    """Fetches and caches linked connections and their repositories.

    Backend failures are raised to the caller unchanged; nothing is retried.
    """

    def __init__(self, client: GitHubBackendClient):
        self.client = client
        self.connections: List[Connection] = []
        self.selected: Optional[Connection] = None
        self.initial_step: Optional[DirectoryStep] = None

    @property
    def repositories(self) -> List[Repository]:
        return list(self.selected.repositories) if self.selected else []

    async def list_connections(self) -> List[Connection]:
        """Fetch connections and replace the cached list."""
        connections = await self.client.list_connections()
        self.connections = connections
        if self.selected is not None:
            self.selected = self.get(self.selected.id)
        logger.debug(f"Loaded {len(connections)} GitHub connections")
        return connections

    async def load(self) -> DirectoryOutcome:
        """First-render load.

        Decides once whether the user has to connect an account first or can
        go straight to repository selection with the first connection.
        Later calls refresh the list and keep that first step.
        """
        connections = await self.list_connections()
        if self.initial_step is None:
            if connections:
                self.selected = connections[0]
                self.initial_step = DirectoryStep.SELECT_REPOSITORY
            else:
                self.initial_step = DirectoryStep.CONNECT
        return self.outcome

    @property
    def outcome(self) -> Optional[DirectoryOutcome]:
        """First-load step with the current connections and selection."""
        if self.initial_step is None:
            return None
        return DirectoryOutcome(
            step=self.initial_step,
            connections=list(self.connections),
            selected=self.selected,
        )

    def get(self, connection_id: str) -> Optional[Connection]:
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None

    def select(self, connection_id: str) -> Connection:
        """Select a cached connection without refetching its repositories."""
        connection = self.get(connection_id)
        if connection is None:
            raise ValueError(f"Unknown connection: {connection_id}")
        self.selected = connection
        return connection

    async def get_repositories(self, connection_id: str, force_refresh: bool = False) -> RepositoryListing:
        """Fetch a connection's repositories and update the cache."""
        listing = await self.client.get_repositories(connection_id, refresh=force_refresh)

        for index, connection in enumerate(self.connections):
            if connection.id == connection_id:
                updated = connection.model_copy(update={
                    "repositories": listing.repositories,
                    "last_synced": listing.last_synced or connection.last_synced,
                })
                self.connections[index] = updated
                if self.selected is not None and self.selected.id == connection_id:
                    self.selected = updated
                break

        return listing

    async def select_connection(self, connection_id: str) -> Connection:
        """Select a connection and re-sync its repositories."""
        self.select(connection_id)
        await self.get_repositories(connection_id, force_refresh=True)
        return self.selected

    def search_repositories(self, query: str = "") -> List[Repository]:
        """Repositories of the selected connection matching query."""
        if not query:
            return self.repositories
        return [repo for repo in self.repositories if repo.matches(query)]

    async def disconnect(self, connection_id: str) -> None:
        """Disconnect remotely and drop the connection from the list."""
        await self.client.disconnect(connection_id)
        self.connections = [c for c in self.connections if c.id != connection_id]
        if self.selected is not None and self.selected.id == connection_id:
            self.selected = None
