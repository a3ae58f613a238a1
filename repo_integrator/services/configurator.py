"""Integration configurator: integration type and feature selection."""

from typing import List, Optional

from pydantic import BaseModel, Field

from repo_integrator.models import Feature, IntegrationType, SelectedFeature


class ConfigurationError(ValueError):
    """Configuration cannot be submitted."""
    pass


DEFAULT_FEATURES: List[Feature] = [
    Feature(
        id="cost-tracking",
        name="Cost Tracking",
        description="Real-time monitoring of AI API costs with detailed breakdowns",
        enabled=True,
        recommended=True,
    ),
    Feature(
        id="telemetry",
        name="Telemetry & Monitoring",
        description="Track performance metrics, latency, and usage patterns",
        enabled=True,
        recommended=True,
    ),
    Feature(
        id="cortex-optimization",
        name="Cortex Optimization",
        description="Reduce token usage with intelligent prompt compression",
    ),
    Feature(
        id="budget-management",
        name="Budget Management",
        description="Set spending limits and receive alerts",
    ),
    Feature(
        id="analytics",
        name="Advanced Analytics",
        description="Detailed insights and cost optimization recommendations",
    ),
]


def default_integration_type(detected_language: Optional[str]) -> IntegrationType:
    """Python repositories get the language SDK, everything else the package."""
    if detected_language and detected_language.lower() == "python":
        return IntegrationType.LANGUAGE_SDK
    return IntegrationType.PACKAGE


class IntegrationConfiguration(BaseModel):
    """What the user chose, ready for submission."""
    integration_type: IntegrationType
    selected_features: List[SelectedFeature] = Field(default_factory=list)


class IntegrationConfigurator:
    """Collects the integration type and enabled features.

    Makes no network calls; ``build`` hands the result to the submission.
    """

    def __init__(
        self,
        repository_name: Optional[str] = None,
        detected_language: Optional[str] = None,
        features: Optional[List[Feature]] = None,
    ):
        self.repository_name = repository_name
        self.integration_type = default_integration_type(detected_language)
        self.features = [feature.model_copy() for feature in (features or DEFAULT_FEATURES)]

    def set_integration_type(self, integration_type) -> None:
        self.integration_type = IntegrationType(integration_type)

    def _feature(self, feature_id: str) -> Feature:
        for feature in self.features:
            if feature.id == feature_id:
                return feature
        raise ConfigurationError(f"Unknown feature: {feature_id}")

    def toggle_feature(self, feature_id: str) -> bool:
        """Flip a feature and return its new state."""
        feature = self._feature(feature_id)
        feature.enabled = not feature.enabled
        return feature.enabled

    def set_feature(self, feature_id: str, enabled: bool) -> None:
        self._feature(feature_id).enabled = enabled

    @property
    def enabled_count(self) -> int:
        return sum(1 for feature in self.features if feature.enabled)

    @property
    def can_submit(self) -> bool:
        return self.enabled_count > 0

    def selected_features(self) -> List[SelectedFeature]:
        """Enabled features as submitted: feature id with enabled=True."""
        return [SelectedFeature(name=f.id, enabled=True) for f in self.features if f.enabled]

    def build(self) -> IntegrationConfiguration:
        if not self.can_submit:
            raise ConfigurationError("Select at least one feature")
        return IntegrationConfiguration(
            integration_type=self.integration_type,
            selected_features=self.selected_features(),
        )
