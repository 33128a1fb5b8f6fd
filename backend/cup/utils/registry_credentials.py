"""
Registry Credentials Utility

Centralized lookup of per-registry settings (credentials, insecure flag,
ignore flag). Used by the orchestrator when building the per-registry
phase and by the registry client to pick the URL scheme.
"""

import logging
from typing import Dict, Optional

from cup.models.config_models import RegistryConfig
from cup.utils.reference import DEFAULT_REGISTRY, DOCKER_HUB_ALIASES

logger = logging.getLogger(__name__)


def _normalize(registry: str) -> str:
    registry = registry.lower()
    if registry in DOCKER_HUB_ALIASES:
        return DEFAULT_REGISTRY
    return registry


def get_registry_config(registries: Dict[str, RegistryConfig], registry: str) -> RegistryConfig:
    """
    Get the configuration for a registry host.

    Keys are matched case-insensitively, and the Docker Hub aliases
    ("docker.io", "index.docker.io", ...) all map to registry-1.docker.io.

    Args:
        registries: Mapping of configured registry hosts to their settings
        registry: Registry host from an image reference (e.g., "ghcr.io", "localhost:5000")

    Returns:
        The matching RegistryConfig, or a default one (no auth, secure, not ignored)
    """
    wanted = _normalize(registry)
    for host, config in registries.items():
        if _normalize(host) == wanted:
            return config
    return RegistryConfig()


def get_registry_credentials(registries: Dict[str, RegistryConfig], registry: str) -> Optional[str]:
    """
    Get the Basic-auth secret for a registry, if one is configured.

    Returns:
        The base64 "username:password" secret, ready for an Authorization header
    """
    credentials = get_registry_config(registries, registry).authentication
    if credentials:
        logger.debug(f"Using credentials for registry '{registry}'")
    return credentials

