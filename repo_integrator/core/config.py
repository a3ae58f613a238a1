"""Configuration settings for the repository integration client."""

from typing import FrozenSet, Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

# Bind addresses that listen on every interface
WILDCARD_HOSTS = ("0.0.0.0", "::", "")

# Hosts a browser may use to reach a receiver on this machine
LOOPBACK_HOSTS = ("127.0.0.1", "localhost", "[::1]")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Service Configuration
    service_name: str = "repo-integrator"
    environment: str = "development"
    debug: bool = False

    # Backend API
    api_base_url: str = "http://localhost:8000/api"
    api_token: Optional[str] = None
    request_timeout: float = 30.0

    # Progress synchronization
    poll_interval_seconds: float = 3.0
    integrations_list_limit: int = 50
    post_submit_refresh_delays: List[float] = [2.0, 5.0]

    # OAuth popup
    popup_width: int = 600
    popup_height: int = 700
    popup_close_check_interval: float = 0.5
    oauth_timeout_seconds: float = 300.0

    # Local OAuth callback receiver
    callback_host: str = "127.0.0.1"
    callback_port: int = 8765
    # Origin the browser reaches the receiver at, when not a loopback address
    app_origin: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def callback_origin(self) -> str:
        """Origin the callback page is served from (scheme://host:port)."""
        if self.app_origin:
            return self.app_origin.rstrip("/")
        host = self.callback_host
        if host in WILDCARD_HOSTS:
            host = "127.0.0.1"
        elif ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.callback_port}"

    @property
    def trusted_origins(self) -> FrozenSet[str]:
        """Origins whose OAuth messages are accepted.

        The receiver is reachable under every loopback alias of its port,
        whichever one the backend redirects the browser to.
        """
        origins = {self.callback_origin}
        origins.update(f"http://{host}:{self.callback_port}" for host in LOOPBACK_HOSTS)
        return frozenset(origins)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Backend endpoint paths, relative to api_base_url
GITHUB_ENDPOINTS = {
    "auth": "/github/auth",
    "connections": "/github/connections",
    "connection": "/github/connections/{connection_id}",
    "repositories": "/github/connections/{connection_id}/repositories",
    "integrations": "/github/integrations",
    "integration": "/github/integrations/{integration_id}",
}
