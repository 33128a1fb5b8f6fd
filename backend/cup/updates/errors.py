"""
Error types raised while checking images against registries.

Every failure that can happen while checking a single image derives from
RegistryError so the update engine can turn it into an Unknown result
without affecting other images.
"""

from typing import Optional


class RegistryError(Exception):
    """Base class for registry protocol failures."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url


class AuthRequired(RegistryError):
    """Registry answered 401 and no token was sent."""
    pass


class AuthRejected(RegistryError):
    """Registry answered 401 even though a token was sent."""
    pass


class NotFound(RegistryError):
    """Repository, tag or endpoint does not exist (404)."""
    pass


class ConnectionFailed(RegistryError):
    """Could not connect to the registry."""
    pass


class RegistryTimeout(RegistryError):
    """Connecting to or reading from the registry timed out."""
    pass


class RetriesExhausted(RegistryError):
    """Transient failures persisted through every retry attempt."""
    pass


class MalformedServerResponse(RegistryError):
    """A header or JSON field we rely on was missing or unparseable."""
    pass


class UnrecognizedTagFormat(RegistryError):
    """Tag is not a recognizable version and no local digest is available."""
    pass


class UnsupportedAuthScheme(RegistryError):
    """Registry demands an authentication scheme other than Bearer."""
    pass


class ConfigError(ValueError):
    """Invalid user configuration (config file, overrides, version regex)."""
    pass
