"""Backend API request and response schemas."""

from typing import Optional, List
from pydantic import Field, field_validator

from repo_integrator.models import IntegrationStatus, IntegrationType, SelectedFeature
from repo_integrator.models.base import CamelModel
from repo_integrator.models.status import parse_status


class OAuthInitResponse(CamelModel):
    """OAuth initialization response."""
    auth_url: str
    state: str


class StartIntegrationRequest(CamelModel):
    """Body of an integration submission."""
    connection_id: str
    repository_id: int
    repository_name: str
    repository_full_name: str
    integration_type: IntegrationType
    selected_features: List[SelectedFeature] = Field(default_factory=list)


class StartIntegrationResponse(CamelModel):
    """Response to an integration submission."""
    integration_id: str
    status: IntegrationStatus
    repository_name: Optional[str] = None
    branch_name: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return parse_status(value)
