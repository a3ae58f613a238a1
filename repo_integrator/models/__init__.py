"""Data models for the repository integration client."""

from .connection import Connection, Repository, RepositoryListing
from .integration import (
    Feature,
    Integration,
    IntegrationAnalysis,
    IntegrationProgress,
    IntegrationType,
    SelectedFeature,
)
from .status import (
    IntegrationStatus,
    IntegrationStep,
    StatusColor,
    StepState,
    UnknownStatusError,
)

__all__ = [
    "Connection",
    "Repository",
    "RepositoryListing",
    "Feature",
    "Integration",
    "IntegrationAnalysis",
    "IntegrationProgress",
    "IntegrationType",
    "SelectedFeature",
    "IntegrationStatus",
    "IntegrationStep",
    "StatusColor",
    "StepState",
    "UnknownStatusError",
]
