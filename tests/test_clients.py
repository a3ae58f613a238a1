"""Tests for the backend API client."""

import httpx
import pytest

from repo_integrator.clients import (
    ApiError,
    AuthenticationError,
    GitHubBackendClient,
    NetworkError,
    RateLimitError,
)
from repo_integrator.models import IntegrationStatus, IntegrationType, SelectedFeature
from repo_integrator.schemas import StartIntegrationRequest

from conftest import (
    FakeBackend,
    connection_payload,
    integration_payload,
    progress_payload,
    repository_payload,
)


class TestGitHubBackendClient:
    """Test endpoint calls and payload parsing."""

    @pytest.mark.asyncio
    async def test_get_auth_url(self, client, backend):
        backend.on("GET", "/github/auth", json_body={"authUrl": "https://github.com/login/oauth/authorize?x=1", "state": "s1"})

        auth = await client.get_auth_url()

        assert auth.auth_url.startswith("https://github.com/login/oauth/authorize")
        assert auth.state == "s1"
        request = backend.requests[0]
        assert request.headers["Authorization"] == "Bearer test-token"
        assert str(request.url) == "http://backend.test/api/github/auth"

    @pytest.mark.asyncio
    async def test_list_connections_unwraps_envelope(self, client, backend):
        backend.on("GET", "/github/connections", json_body={
            "success": True,
            "data": [connection_payload("c1", repositories=[repository_payload()])],
        })

        connections = await client.list_connections()

        assert len(connections) == 1
        assert connections[0].id == "c1"
        assert connections[0].github_username == "octocat"
        assert connections[0].repositories[0].full_name == "octocat/web-app"

    @pytest.mark.asyncio
    async def test_get_repositories_sends_refresh_flag(self, client, backend):
        backend.on("GET", "/github/connections/c1/repositories", json_body={
            "repositories": [repository_payload(7, "api")],
            "lastSynced": "2024-02-01T00:00:00Z",
        })

        listing = await client.get_repositories("c1", refresh=True)

        assert listing.repositories[0].id == 7
        assert backend.requests[0].url.params["refresh"] == "true"

    @pytest.mark.asyncio
    async def test_start_integration_body(self, client, backend):
        backend.on("POST", "/github/integrations", json_body={
            "integrationId": "i1",
            "status": "initializing",
            "repositoryName": "web-app",
            "branchName": "integrate/cost-tracking",
        })
        request = StartIntegrationRequest(
            connection_id="c1",
            repository_id=1,
            repository_name="web-app",
            repository_full_name="octocat/web-app",
            integration_type=IntegrationType.PACKAGE,
            selected_features=[SelectedFeature(name="cost-tracking")],
        )

        response = await client.start_integration(request)

        assert response.integration_id == "i1"
        assert response.status == IntegrationStatus.INITIALIZING
        assert FakeBackend.body(backend.requests[0]) == {
            "connectionId": "c1",
            "repositoryId": 1,
            "repositoryName": "web-app",
            "repositoryFullName": "octocat/web-app",
            "integrationType": "package",
            "selectedFeatures": [{"name": "cost-tracking", "enabled": True}],
        }

    @pytest.mark.asyncio
    async def test_get_integration_status(self, client, backend):
        backend.on("GET", "/github/integrations/i1", json_body=progress_payload(
            "i1", "generating", 60, analysis={"language": "python", "framework": "fastapi", "entryPoints": ["main.py"]},
        ))

        progress = await client.get_integration_status("i1")

        assert progress.status == IntegrationStatus.GENERATING
        assert progress.analysis.framework == "fastapi"
        assert progress.analysis.entry_points == ["main.py"]

    @pytest.mark.asyncio
    async def test_list_integrations_params(self, client, backend):
        backend.on("GET", "/github/integrations", json_body=[integration_payload("i1", "analyzing")])

        integrations = await client.list_integrations(status="analyzing", limit=50)

        assert integrations[0].in_progress
        params = backend.requests[0].url.params
        assert params["status"] == "analyzing"
        assert params["limit"] == "50"

    @pytest.mark.asyncio
    async def test_disconnect_no_content(self, client, backend):
        backend.on("DELETE", "/github/connections/c1", handler=lambda request: httpx.Response(204))

        assert await client.disconnect("c1") is None
        assert backend.requests[0].method == "DELETE"


class TestErrorMapping:
    """Test how failures surface to callers."""

    @pytest.mark.asyncio
    async def test_api_error_message_from_body(self, client, backend):
        backend.on("GET", "/github/connections", json_body={"message": "Database unavailable"}, status_code=500)

        with pytest.raises(ApiError) as exc_info:
            await client.list_connections()

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Database unavailable"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code,error_type", [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (429, RateLimitError),
        (404, ApiError),
    ])
    async def test_status_code_mapping(self, client, backend, status_code, error_type):
        backend.on("GET", "/github/auth", json_body={"error": "nope"}, status_code=status_code)

        with pytest.raises(error_type):
            await client.get_auth_url()

    @pytest.mark.asyncio
    async def test_network_error(self, settings):
        def unreachable(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with GitHubBackendClient(settings, transport=httpx.MockTransport(unreachable)) as client:
            with pytest.raises(NetworkError):
                await client.list_connections()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self, client, backend):
        backend.on("GET", "/github/integrations/i1", json_body={"integrationId": "i1", "status": "exploded"})

        with pytest.raises(ApiError):
            await client.get_integration_status("i1")

    @pytest.mark.asyncio
    async def test_list_expected(self, client, backend):
        backend.on("GET", "/github/connections", json_body={"unexpected": True})

        with pytest.raises(ApiError):
            await client.list_connections()
