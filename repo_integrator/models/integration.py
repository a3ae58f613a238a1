"""Integration job models."""

from datetime import datetime
from typing import Optional, List
from pydantic import Field, field_validator
from enum import Enum

from repo_integrator.models.base import CamelModel
from repo_integrator.models.status import IntegrationStatus, parse_status, progress_for


class IntegrationType(str, Enum):
    """How the integration is wired into the repository."""
    PACKAGE = "package"
    CLI = "cli"
    LANGUAGE_SDK = "language-sdk"
    HTTP_HEADERS = "http-headers"


class Feature(CamelModel):
    """A selectable integration feature (local UI state)."""
    id: str
    name: str
    description: str = ""
    enabled: bool = False
    recommended: bool = False


class SelectedFeature(CamelModel):
    """Feature as submitted to the backend."""
    name: str
    enabled: bool = True


class Integration(CamelModel):
    """A submitted integration job, as listed by the backend."""
    id: str = Field(alias="_id")
    user_id: Optional[str] = None
    connection_id: Optional[str] = None
    repository_name: str
    repository_full_name: Optional[str] = None
    branch_name: Optional[str] = None
    pr_number: Optional[int] = None
    pr_url: Optional[str] = None
    status: IntegrationStatus
    integration_type: IntegrationType
    selected_features: List[SelectedFeature] = Field(default_factory=list)
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return parse_status(value)

    @property
    def in_progress(self) -> bool:
        return self.status.in_progress


class IntegrationAnalysis(CamelModel):
    """Repository analysis summary produced by the backend."""
    language: Optional[str] = None
    framework: Optional[str] = None
    entry_points: List[str] = Field(default_factory=list)


class IntegrationProgress(CamelModel):
    """Read-only progress projection of an integration job."""
    integration_id: str
    status: IntegrationStatus
    progress: int = 0
    current_step: str = ""
    analysis: Optional[IntegrationAnalysis] = None
    pr_url: Optional[str] = None
    error_message: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        return parse_status(value)

    def normalized(self) -> "IntegrationProgress":
        """Copy whose progress follows the fixed status mapping."""
        progress = progress_for(self.status, self.progress)
        if progress == self.progress:
            return self
        return self.model_copy(update={"progress": progress})
