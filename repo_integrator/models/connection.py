"""Source-control connection models."""

from datetime import datetime
from typing import Optional, List
from pydantic import ConfigDict, Field

from repo_integrator.models.base import CamelModel


class Repository(CamelModel):
    """Snapshot of a repository as listed for a connection."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    full_name: str
    private: bool = False
    default_branch: str = "main"
    description: Optional[str] = None
    language: Optional[str] = None
    url: Optional[str] = None

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name or full name."""
        needle = query.lower()
        return needle in self.name.lower() or needle in self.full_name.lower()


class Connection(CamelModel):
    """A linked GitHub account and its repository listing."""

    id: str = Field(alias="_id")
    user_id: Optional[str] = None
    github_user_id: Optional[int] = None
    github_username: str
    avatar_url: Optional[str] = None
    repositories: List[Repository] = Field(default_factory=list)
    is_active: bool = True
    last_synced: Optional[datetime] = None


class RepositoryListing(CamelModel):
    """Repositories of one connection with the time they were synced."""

    repositories: List[Repository] = Field(default_factory=list)
    last_synced: Optional[datetime] = None
