"""Client for the backend's GitHub integration endpoints."""

from typing import Optional, List
import logging

from repo_integrator.clients.base import BackendClient, ApiError
from repo_integrator.core.config import GITHUB_ENDPOINTS
from repo_integrator.models import (
    Connection,
    Integration,
    IntegrationProgress,
    IntegrationStatus,
    RepositoryListing,
)
from repo_integrator.schemas import OAuthInitResponse, StartIntegrationRequest, StartIntegrationResponse

logger = logging.getLogger(__name__)


class GitHubBackendClient(BackendClient):
    """GitHub connection and integration endpoints."""

    async def get_auth_url(self) -> OAuthInitResponse:
        """Request an authorization URL and anti-forgery state."""
        payload = await self.request("GET", GITHUB_ENDPOINTS["auth"])
        return self.parse(OAuthInitResponse, payload)

    async def list_connections(self) -> List[Connection]:
        """List the user's linked GitHub accounts."""
        payload = await self.request("GET", GITHUB_ENDPOINTS["connections"])
        return [self.parse(Connection, item) for item in self._as_list(payload)]

    async def get_repositories(self, connection_id: str, refresh: bool = False) -> RepositoryListing:
        """List repositories of a connection, optionally forcing a re-sync."""
        payload = await self.request(
            "GET",
            GITHUB_ENDPOINTS["repositories"].format(connection_id=connection_id),
            params={"refresh": refresh},
        )
        return self.parse(RepositoryListing, payload)

    async def disconnect(self, connection_id: str) -> None:
        """Remove a connection."""
        await self.request(
            "DELETE",
            GITHUB_ENDPOINTS["connection"].format(connection_id=connection_id),
        )
        logger.info(f"Disconnected GitHub connection {connection_id}")

    async def start_integration(self, request: StartIntegrationRequest) -> StartIntegrationResponse:
        """Submit an integration job."""
        payload = await self.request("POST", GITHUB_ENDPOINTS["integrations"], json=request.to_wire())
        response = self.parse(StartIntegrationResponse, payload)
        logger.info(
            f"Started integration {response.integration_id} for {request.repository_full_name}",
            extra={"integration_id": response.integration_id, "integration_type": request.integration_type.value},
        )
        return response

    async def get_integration_status(self, integration_id: str) -> IntegrationProgress:
        """Fetch the progress projection of an integration."""
        payload = await self.request(
            "GET",
            GITHUB_ENDPOINTS["integration"].format(integration_id=integration_id),
        )
        return self.parse(IntegrationProgress, payload)

    async def list_integrations(
        self,
        status: Optional[IntegrationStatus] = None,
        limit: Optional[int] = None,
    ) -> List[Integration]:
        """List submitted integrations."""
        params = {}
        if status is not None:
            params["status"] = IntegrationStatus(status).value
        if limit is not None:
            params["limit"] = limit
        payload = await self.request("GET", GITHUB_ENDPOINTS["integrations"], params=params or None)
        return [self.parse(Integration, item) for item in self._as_list(payload)]

    @staticmethod
    def _as_list(payload) -> list:
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise ApiError("Expected a list from backend")
        return payload
