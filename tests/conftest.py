"""Pytest configuration and fixtures for repo integrator tests."""

import asyncio
import heapq
import itertools
import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio

from repo_integrator.clients import GitHubBackendClient
from repo_integrator.core.config import Settings
from repo_integrator.messaging import PopupGeometry, PopupHandle, PopupLauncher


BACKEND_URL = "http://backend.test/api"


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake backend."""
    return Settings(
        api_base_url=BACKEND_URL,
        api_token="test-token",
        environment="test",
        callback_host="127.0.0.1",
        callback_port=8765,
        poll_interval_seconds=3.0,
        popup_close_check_interval=0.5,
        oauth_timeout_seconds=300.0,
        integrations_list_limit=50,
        post_submit_refresh_delays=[2.0, 5.0],
    )


async def settle(rounds: int = 50) -> None:
    """Let pending tasks run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    """Injected sleep that only wakes when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []
        self._waiters = []
        self._seq = itertools.count()

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (self.now + delay, next(self._seq), future))
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, _, future in self._waiters if not future.done())

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking sleepers in order."""
        target = self.now + seconds
        await settle()
        while self._waiters and self._waiters[0][0] <= target:
            wake_at, _, future = heapq.heappop(self._waiters)
            self.now = wake_at
            if not future.done():
                future.set_result(None)
                await settle()
        self.now = target
        await settle()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class FakePopup(PopupHandle):
    """Popup whose closing the test controls."""

    def __init__(self, url: str, geometry: PopupGeometry):
        self.url = url
        self.geometry = geometry
        self._closed = False
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self.close_calls += 1
        self._closed = True

    def user_closes(self) -> None:
        self._closed = True


class FakeLauncher(PopupLauncher):
    """Records opened popups; can simulate a popup blocker."""

    def __init__(self, blocked: bool = False):
        self.blocked = blocked
        self.popups: List[FakePopup] = []
        self.on_open: Optional[Callable[[FakePopup], None]] = None

    def open(self, url: str, geometry: PopupGeometry) -> Optional[PopupHandle]:
        if self.blocked:
            return None
        popup = FakePopup(url, geometry)
        self.popups.append(popup)
        if self.on_open:
            self.on_open(popup)
        return popup

    @property
    def last(self) -> Optional[FakePopup]:
        return self.popups[-1] if self.popups else None


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


class FakeBackend:
    """Routes backend requests to per-endpoint handlers and records them."""

    def __init__(self):
        self.routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, handler=None, json_body=None, status_code: int = 200):
        if handler is None:
            def handler(request, _body=json_body, _status=status_code):
                return httpx.Response(_status, json=_body)
        self.routes[(method, "/api" + path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route for {request.method} {request.url.path}"})
        return handler(request)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == "/api" + path]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def client(settings, backend):
    """GitHub backend client wired to the fake backend."""
    client = GitHubBackendClient(settings, transport=httpx.MockTransport(backend))
    yield client
    await client.aclose()


def repository_payload(repo_id: int = 1, name: str = "web-app", owner: str = "octocat", **extra) -> dict:
    payload = {
        "id": repo_id,
        "name": name,
        "fullName": f"{owner}/{name}",
        "private": False,
        "defaultBranch": "main",
        "url": f"https://github.com/{owner}/{name}",
    }
    payload.update(extra)
    return payload


def connection_payload(connection_id: str = "c1", username: str = "octocat", repositories=None) -> dict:
    return {
        "_id": connection_id,
        "userId": "u1",
        "githubUserId": 42,
        "githubUsername": username,
        "repositories": repositories if repositories is not None else [],
        "isActive": True,
        "lastSynced": "2024-01-01T00:00:00Z",
    }


def integration_payload(integration_id: str = "i1", status: str = "initializing", name: str = "web-app") -> dict:
    return {
        "_id": integration_id,
        "userId": "u1",
        "connectionId": "c1",
        "repositoryName": name,
        "repositoryFullName": f"octocat/{name}",
        "branchName": "integrate/cost-tracking",
        "status": status,
        "integrationType": "package",
        "selectedFeatures": [{"name": "cost-tracking", "enabled": True}],
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": "2024-01-01T00:00:00Z",
    }


def progress_payload(integration_id: str = "i1", status: str = "initializing", progress: int = 0, **extra) -> dict:
    payload = {
        "integrationId": integration_id,
        "status": status,
        "progress": progress,
        "currentStep": status,
    }
    payload.update(extra)
    return payload
