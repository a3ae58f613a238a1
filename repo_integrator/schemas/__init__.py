"""Backend API schemas."""

from .integration import OAuthInitResponse, StartIntegrationRequest, StartIntegrationResponse

__all__ = [
    "OAuthInitResponse",
    "StartIntegrationRequest",
    "StartIntegrationResponse",
]
