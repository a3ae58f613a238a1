"""Base backend client and error types."""

from typing import Optional, Dict, Any, Type, TypeVar
import logging

import httpx
from pydantic import BaseModel, ValidationError

from repo_integrator.core.config import Settings, get_settings


logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendError(Exception):
    """Base backend error."""
    pass


class NetworkError(BackendError):
    """Backend could not be reached."""
    pass


class ApiError(BackendError):
    """Backend answered with an error status or an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(ApiError):
    """Authentication failed."""
    pass


class RateLimitError(ApiError):
    """Rate limit exceeded."""
    pass


class BackendClient:
    """Async HTTP client for the integration backend."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.http_client = httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            headers=self._default_headers(),
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.http_client.aclose()

    def _default_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.api_token:
            headers["Authorization"] = f"Bearer {self.settings.api_token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an API request and return the decoded payload."""
        try:
            response = await self.http_client.request(
                method=method,
                url=path,
                params=params,
                json=json,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            message = self._error_message(e.response)
            logger.warning(f"{method} {path} failed with {status_code}: {message}")
            if status_code == 429:
                raise RateLimitError(message, status_code) from e
            elif status_code in (401, 403):
                raise AuthenticationError(message, status_code) from e
            else:
                raise ApiError(message, status_code) from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} could not reach backend: {e}")
            raise NetworkError(f"Backend unreachable: {e}") from e

        return self._unwrap(response)

    def _unwrap(self, response: httpx.Response) -> Any:
        """Decode the body, unwrapping a {success, data} envelope."""
        if response.status_code == 204 or not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as e:
            raise ApiError("Backend returned invalid JSON", response.status_code) from e
        if isinstance(payload, dict) and "data" in payload and "success" in payload:
            return payload["data"]
        return payload

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract a human-readable message from an error response."""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            for key in ("message", "error", "detail"):
                if isinstance(payload.get(key), str):
                    return payload[key]
        return f"Request failed with status {response.status_code}"

    @staticmethod
    def parse(model: Type[ModelT], payload: Any) -> ModelT:
        """Validate a payload into a model."""
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise ApiError(f"Unexpected {model.__name__} payload from backend: {e}") from e
