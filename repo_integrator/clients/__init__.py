"""Backend API clients."""

from .base import BackendClient, BackendError, NetworkError, ApiError, AuthenticationError, RateLimitError
from .github import GitHubBackendClient

__all__ = [
    "BackendClient",
    "BackendError",
    "NetworkError",
    "ApiError",
    "AuthenticationError",
    "RateLimitError",
    "GitHubBackendClient",
]
