"""Client-side services for connecting repositories and tracking integrations."""

from .configurator import ConfigurationError, IntegrationConfiguration, IntegrationConfigurator
from .connection_directory import ConnectionDirectory, DirectoryOutcome, DirectoryStep
from .connector import ConnectorFlow
from .integration_directory import IntegrationDirectory, StatusBadge
from .integration_service import IntegrationService
from .oauth_broker import OAuthConnectionBroker, OAuthResult
from .progress_poller import PollingHandle, ProgressPoller, ProgressView

__all__ = [
    "ConfigurationError",
    "IntegrationConfiguration",
    "IntegrationConfigurator",
    "ConnectionDirectory",
    "DirectoryOutcome",
    "DirectoryStep",
    "ConnectorFlow",
    "IntegrationDirectory",
    "StatusBadge",
    "IntegrationService",
    "OAuthConnectionBroker",
    "OAuthResult",
    "PollingHandle",
    "ProgressPoller",
    "ProgressView",
]
