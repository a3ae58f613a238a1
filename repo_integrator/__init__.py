"""Client for connecting GitHub repositories and tracking generated integrations."""

__version__ = "1.0.0"
