"""
Update Checker Service

Checks every image for available updates in two phases:
1. Per registry (registries run concurrently): probe for an auth challenge
   and fetch one token covering all of the registry's repositories.
2. Per image (all concurrently): run the update engine with the
   registry's token.

Results from peer servers are merged in, and the combined list is sorted
by status precedence, then reference.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional, Tuple

from cup.docker_monitor.image_source import LocalImage
from cup.models.config_models import CupConfig
from cup.updates.errors import RegistryError
from cup.updates.federation import fetch_servers
from cup.updates.registry_client import RegistryClient
from cup.updates.types import CheckResult, Image, Parts
from cup.updates.update_engine import UpdateEngine
from cup.utils.http_client import HttpClient
from cup.utils.registry_credentials import get_registry_config, get_registry_credentials
from cup.version.selector import SchemeSelector

logger = logging.getLogger(__name__)


def group_by_registry(images: Iterable[Image]) -> Dict[str, List[Image]]:
    """Group images by registry host, keeping first-seen order."""
    groups: Dict[str, List[Image]] = {}
    for image in images:
        groups.setdefault(image.parts.registry, []).append(image)
    return groups


def sort_results(results: Iterable[CheckResult]) -> List[CheckResult]:
    """Major, Minor, Patch, Available, Up to date, Unknown; then by reference."""
    return sorted(results, key=lambda result: result.sort_key)


class UpdateChecker:
    """
    Service that checks images for available updates.

    Workflow:
    1. Collect images (local runtime images plus configured extras, or the
       references passed in)
    2. Drop images from ignored registries and excluded references
    3. Authenticate once per registry
    4. Check all images concurrently
    5. Merge results reported by peer servers
    6. Sort

    Args:
        config: Loaded config file
        image_source: Provider of local images (`async list_images()`), optional
        http: Shared HttpClient; one is opened per run when not given
        http_timeout: Request timeout for the HttpClient opened per run
        http_retries: Retry count for the HttpClient opened per run
        include_servers: Whether to merge peer server results
    """

    def __init__(
        self,
        config: CupConfig,
        image_source=None,
        http: Optional[HttpClient] = None,
        http_timeout: float = 30.0,
        http_retries: int = 3,
        include_servers: bool = True,
    ):
        self.config = config
        self.image_source = image_source
        self._http = http
        self.http_timeout = http_timeout
        self.http_retries = http_retries
        self.include_servers = include_servers
        self.selector = SchemeSelector(config.images.overrides)

    def is_skipped(self, reference: str) -> bool:
        """Whether a reference is excluded by prefix or belongs to an ignored registry."""
        for prefix in self.config.images.exclude:
            if reference.startswith(prefix):
                logger.debug(f"Skipping {reference}: excluded by prefix {prefix!r}")
                return True
        registry = Parts.from_reference(reference).registry
        if get_registry_config(self.config.registries, registry).ignore:
            logger.debug(f"Skipping {reference}: registry {registry} is ignored")
            return True
        return False

    def build_images(
        self,
        local_images: List[LocalImage],
        references: Optional[List[str]] = None,
    ) -> List[Image]:
        """
        Build the worklist.

        Without `references`, every local image plus the configured extra
        references is checked. With `references`, only those are checked,
        using local digests when the image is present locally. References
        are matched to local images by registry, repository and tag, so
        `nginx` finds a local `nginx:latest`.

        Raises:
            UnrecognizedTagFormat: a reference that is not local has no
                recognizable version
            ValueError: a reference cannot be parsed
        """
        local_by_parts = {Parts.from_reference(image.reference): image for image in local_images}
        if references is None:
            wanted = [image.reference for image in local_images]
            wanted.extend(self.config.images.extra)
        else:
            wanted = references

        images: List[Image] = []
        seen = set()
        for reference in wanted:
            parts = Parts.from_reference(reference)
            local = local_by_parts.get(parts)
            if local is not None:
                reference = local.reference
            if parts in seen or self.is_skipped(reference):
                continue
            seen.add(parts)
            scheme = self.selector.for_reference(reference)
            if local is not None:
                images.append(Image.from_local(local.reference, local.digests, local.used_by, scheme))
            else:
                images.append(Image.from_reference(reference, scheme))
        return images

    async def check(self, references: Optional[List[str]] = None) -> List[CheckResult]:
        """
        Run a full check and return sorted results.

        Peer servers are only queried for full runs (no explicit references).
        """
        started = time.perf_counter()
        local_images = await self.image_source.list_images() if self.image_source else []
        images = self.build_images(local_images, references)
        logger.info(f"Checking {len(images)} images")

        async with self._open_http() as http:
            results = await self.check_images(images, http)
            if self.include_servers and references is None and self.config.servers:
                results.extend(await fetch_servers(http, self.config.servers))

        results = sort_results(results)
        elapsed = time.perf_counter() - started
        logger.info(f"Update check complete: {len(results)} results in {elapsed:.2f}s")
        return results

    async def check_images(self, images: List[Image], http: HttpClient) -> List[CheckResult]:
        """Authenticate per registry, then check every image concurrently."""
        client = RegistryClient(http, self.config.registries)
        engine = UpdateEngine(client, self.config.ignore_update_type)
        groups = group_by_registry(images)

        # Phase 1: registries are independent, so authenticate them concurrently
        registries = list(groups)
        outcomes = await asyncio.gather(
            *(self._authenticate(client, registry, groups[registry]) for registry in registries)
        )
        tokens: Dict[str, Tuple[Optional[str], Optional[str]]] = dict(zip(registries, outcomes))

        # Phase 2: token map is complete and read-only from here on
        results: List[CheckResult] = []
        checks = []
        for image in images:
            token, error = tokens[image.parts.registry]
            if error is not None:
                results.append(CheckResult.unknown(image, error))
            else:
                checks.append(engine.check(image, token))
        results.extend(await asyncio.gather(*checks))
        return results

    async def _authenticate(
        self,
        client: RegistryClient,
        registry: str,
        images: List[Image],
    ) -> Tuple[Optional[str], Optional[str]]:
        """
        Probe a registry and fetch its token if challenged.

        Returns:
            (token, None) on success, (None, reason) when the registry's
            images cannot be checked
        """
        try:
            challenge = await client.probe_auth(registry)
            if challenge is None:
                return None, None
            credentials = get_registry_credentials(self.config.registries, registry)
            token = await client.get_token(images, challenge, credentials)
            return token, None
        except RegistryError as e:
            logger.warning(f"Failed to authenticate with {registry}: {e.message}")
            return None, e.message

    @asynccontextmanager
    async def _open_http(self) -> AsyncIterator[HttpClient]:
        if self._http is not None:
            yield self._http
            return
        async with HttpClient(timeout=self.http_timeout, max_retries=self.http_retries) as http:
            yield http
