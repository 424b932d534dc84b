"""Error taxonomy for Project Forge."""

from typing import Optional


class ProjectForgeError(Exception):
    """Base class for all Project Forge errors."""


class ConfigurationError(ProjectForgeError):
    """A required credential or setting is missing."""


class UpstreamError(ProjectForgeError):
    """An external call failed or returned a body of the wrong shape."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ProjectForgeError):
    """The incoming request is missing required fields."""
