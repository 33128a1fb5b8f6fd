"""
Shared pytest fixtures for Cup tests.

Fixtures provided:
- fake_http: In-memory HttpClient replacement with request recording
- cup_config: Default config (no registries, no servers)
- mock_docker_client: Mock docker SDK client with one image and one container
"""

import os
import sys
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cup.models.config_models import CupConfig
from tests.test_helpers import FakeHttpClient


@pytest.fixture
def fake_http():
    """Fresh FakeHttpClient; unregistered URLs answer 404."""
    return FakeHttpClient()


@pytest.fixture
def cup_config():
    """Config with every option at its default."""
    return CupConfig()


@pytest.fixture
def mock_docker_client():
    """
    Mock docker SDK client for testing without a real daemon.

    One pulled image (nginx:1.25.2) used by one container, plus one
    locally built image without repo digests. No swarm services.
    """
    client = MagicMock()

    pulled = MagicMock()
    pulled.id = "sha256:1111"
    pulled.short_id = "sha256:1111"
    pulled.attrs = {
        'RepoTags': ['nginx:1.25.2'],
        'RepoDigests': ['nginx@sha256:aaaa', 'nginx@sha256:bbbb'],
    }

    built = MagicMock()
    built.id = "sha256:2222"
    built.short_id = "sha256:2222"
    built.attrs = {'RepoTags': ['myapp:dev'], 'RepoDigests': []}

    container = MagicMock()
    container.name = "web"
    container.attrs = {'Image': 'sha256:1111'}

    client.images.list = MagicMock(return_value=[pulled, built])
    client.containers.list = MagicMock(return_value=[container])
    client.services.list = MagicMock(return_value=[])
    return client
