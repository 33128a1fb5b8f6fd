"""
Local image discovery from the Docker daemon.

Lists tagged images together with the digests recorded when they were
pulled, the containers that use them, and images run by swarm services.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import docker
from docker.errors import DockerException

from cup.utils.async_docker import async_docker_call

logger = logging.getLogger(__name__)


@dataclass
class LocalImage:
    """An image present in the local runtime."""
    reference: str
    digests: List[str] = field(default_factory=list)
    used_by: List[str] = field(default_factory=list)


class DockerImageSource:
    """
    Reads local images through the docker SDK.

    Args:
        socket: Daemon URL or socket path (e.g., "unix:///var/run/docker.sock",
            "tcp://remote:2375"). Uses the environment (DOCKER_HOST) when None.
        client: Optional pre-built DockerClient
    """

    def __init__(self, socket: Optional[str] = None, client: Optional[docker.DockerClient] = None):
        self.socket = socket
        self._client = client

    def _get_client(self) -> docker.DockerClient:
        if self._client is None:
            if self.socket:
                base_url = self.socket
                if base_url.startswith("/"):
                    base_url = f"unix://{base_url}"
                self._client = docker.DockerClient(base_url=base_url)
            else:
                self._client = docker.from_env()
        return self._client

    async def list_images(self) -> List[LocalImage]:
        """
        List local images that can be checked.

        Images without a tag (dangling) or without a repo digest (built
        locally, never pulled) are skipped. On a swarm manager, images pinned
        by services are added too.

        Raises:
            DockerException: the daemon is unreachable
        """
        try:
            client = await async_docker_call(self._get_client)
            images = await async_docker_call(client.images.list)
            containers = await async_docker_call(client.containers.list, all=True)
        except DockerException as e:
            logger.error(f"Failed to list images from Docker: {e}")
            raise

        users: Dict[str, List[str]] = {}
        for container in containers:
            image_id = container.attrs.get("Image")
            if image_id:
                users.setdefault(image_id, []).append(container.name)

        local_images = []
        for image in images:
            tags = image.attrs.get("RepoTags") or []
            repo_digests = image.attrs.get("RepoDigests") or []
            if not tags or not repo_digests:
                logger.debug(f"Skipping image {image.short_id}: no tags or digests")
                continue
            local_images.append(LocalImage(
                reference=tags[0],
                digests=[digest.split("@", 1)[1] for digest in repo_digests if "@" in digest],
                used_by=users.get(image.id, []),
            ))

        known = {image.reference for image in local_images}
        for image in await self._list_service_images(client):
            if image.reference not in known:
                known.add(image.reference)
                local_images.append(image)

        logger.info(f"Found {len(local_images)} local images")
        return local_images

    async def _list_service_images(self, client: docker.DockerClient) -> List[LocalImage]:
        """
        Images run by swarm services, pinned as "reference@digest".

        Only a swarm manager can list services; anywhere else this returns
        nothing.
        """
        try:
            services = await async_docker_call(client.services.list)
        except DockerException as e:
            logger.debug(f"Not listing swarm services: {e}")
            return []

        images: Dict[str, LocalImage] = {}
        for service in services:
            spec = service.attrs.get("Spec") or {}
            container_spec = (spec.get("TaskTemplate") or {}).get("ContainerSpec") or {}
            pinned = container_spec.get("Image")
            if not pinned or "@" not in pinned:
                continue
            reference, digest = pinned.split("@", 1)
            image = images.setdefault(reference, LocalImage(reference=reference))
            if digest not in image.digests:
                image.digests.append(digest)
            image.used_by.append(spec.get("Name") or service.name)
        return list(images.values())
