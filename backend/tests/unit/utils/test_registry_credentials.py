"""
Unit tests for registry settings lookup.

Tests verify:
- Lookup by registry host, case-insensitive
- Docker Hub aliases resolve to the same entry
- Defaults for unconfigured registries
"""

from cup.models.config_models import RegistryConfig
from cup.utils.registry_credentials import get_registry_config, get_registry_credentials


class TestGetRegistryConfig:
    """Tests for get_registry_config function"""

    def test_returns_config_for_matching_registry(self):
        """Should return the entry configured for the host"""
        registries = {"ghcr.io": RegistryConfig(authentication="c2VjcmV0"), "quay.io": RegistryConfig(ignore=True)}

        assert get_registry_config(registries, "quay.io").ignore is True

    def test_host_is_case_insensitive(self):
        registries = {"Registry.Example.com:5000": RegistryConfig(insecure=True)}

        assert get_registry_config(registries, "registry.example.com:5000").insecure is True

    def test_docker_hub_aliases(self):
        """docker.io in the config applies to registry-1.docker.io references"""
        registries = {"docker.io": RegistryConfig(authentication="aHViOnB3")}

        assert get_registry_config(registries, "registry-1.docker.io").authentication == "aHViOnB3"
        assert get_registry_config(registries, "index.docker.io").authentication == "aHViOnB3"

    def test_default_for_unconfigured_registry(self):
        config = get_registry_config({}, "ghcr.io")

        assert config == RegistryConfig()
        assert config.insecure is False


class TestGetRegistryCredentials:
    """Tests for get_registry_credentials function"""

    def test_returns_secret(self):
        registries = {"ghcr.io": RegistryConfig(authentication="dXNlcjpwYXNz")}

        assert get_registry_credentials(registries, "ghcr.io") == "dXNlcjpwYXNz"

    def test_returns_none_without_authentication(self):
        registries = {"ghcr.io": RegistryConfig(insecure=True)}

        assert get_registry_credentials(registries, "ghcr.io") is None
        assert get_registry_credentials({}, "quay.io") is None
