"""
Image reference parsing.

Splits a reference into registry, repository and tag, applying the Docker
defaults for omitted parts.
"""

from typing import Tuple

DEFAULT_REGISTRY = "registry-1.docker.io"
DEFAULT_TAG = "latest"

# Names users commonly configure for Docker Hub
DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io", "registry.hub.docker.com")


def split_reference(reference: str) -> Tuple[str, str, str]:
    """
    Split an image reference into (registry, repository, tag).

    The first path component is a registry when it is "localhost" or
    contains a "." or ":". Official Docker Hub images get the "library/"
    prefix. A digest suffix ("@sha256:...") is dropped.

    Examples:
        alpine → (registry-1.docker.io, library/alpine, latest)
        ghcr.io/sergi0g/cup:latest → (ghcr.io, sergi0g/cup, latest)
        localhost:1234/test → (localhost:1234, test, latest)
        docker.example.com:5000/repo/alpine:3.7 → (docker.example.com:5000, repo/alpine, 3.7)

    Raises:
        ValueError: if the reference is empty or has more than one tag separator
    """
    if not reference or not reference.strip():
        raise ValueError("Image reference is empty")

    components = reference.split("/")
    first = components[0]
    if len(components) > 1 and (first == "localhost" or "." in first or ":" in first):
        registry = first
        remainder = "/".join(components[1:])
    else:
        registry = DEFAULT_REGISTRY
        remainder = reference

    if registry in DOCKER_HUB_ALIASES:
        registry = DEFAULT_REGISTRY

    name = remainder.split("@", 1)[0]
    pieces = name.split(":")
    if len(pieces) > 2:
        raise ValueError(f"Invalid image reference: {reference}")

    repository = pieces[0]
    tag = pieces[1] if len(pieces) == 2 and pieces[1] else DEFAULT_TAG

    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"library/{repository}"

    return registry, repository, tag
