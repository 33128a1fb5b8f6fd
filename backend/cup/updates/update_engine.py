"""
Per-image update decision.

An image is checked one of two ways, fixed when the image was built:
- version: list remote tags of the same family and classify the best one
- digest: compare the remote manifest digest with the local digests

Registry failures never escape: they become an Unknown result for the
image being checked.
"""

import logging
import time
from typing import Optional

from cup.models.config_models import UpdateType
from cup.status import TAG_DOES_NOT_EXIST, Status
from cup.updates.errors import RegistryError
from cup.updates.registry_client import RegistryClient
from cup.updates.types import CheckResult, Image

logger = logging.getLogger(__name__)

NO_MATCHING_TAGS = "No matching tags found in registry"

# Version statuses hidden by each ignore_update_type level
_IGNORED_STATUSES = {
    UpdateType.NONE: frozenset(),
    UpdateType.PATCH: frozenset({Status.PATCH}),
    UpdateType.MINOR: frozenset({Status.PATCH, Status.MINOR}),
    UpdateType.MAJOR: frozenset({Status.PATCH, Status.MINOR, Status.MAJOR}),
}


class UpdateEngine:
    """
    Checks single images against their registry.

    Args:
        client: Registry client shared by all checks of a run
        ignore_update_type: Version update level reported as up to date
    """

    def __init__(self, client: RegistryClient, ignore_update_type: UpdateType = UpdateType.NONE):
        self.client = client
        self.ignore_update_type = UpdateType(ignore_update_type)

    async def check(self, image: Image, token: Optional[str] = None) -> CheckResult:
        """Check one image. Always returns a result, Unknown on failure."""
        started = time.perf_counter()
        try:
            if image.version is not None:
                result = await self._check_version(image, token)
            else:
                result = await self._check_digest(image, token)
        except RegistryError as e:
            logger.debug(f"{image.reference}: check failed: {e.message}")
            result = CheckResult.unknown(image, e.message)

        result.time_ms = int((time.perf_counter() - started) * 1000)
        logger.debug(f"{image.reference}: {result.status.label} ({result.time_ms} ms)")
        return result

    async def _check_version(self, image: Image, token: Optional[str]) -> CheckResult:
        local = image.version
        best = await self.client.latest_tag(image, token)
        if best is None:
            return CheckResult.unknown(image, NO_MATCHING_TAGS)

        ordering = image.scheme.compare(best, local)
        if ordering == 0:
            # Same tag text; the tag may have been re-pushed
            if image.local_digests:
                return await self._check_digest(image, token)
            return CheckResult.for_image(image, Status.UP_TO_DATE, new_tag=best.tag, new_version=best.version_string)

        status = image.scheme.classify(best, local)
        if status is Status.UNKNOWN:
            return CheckResult.unknown(image, TAG_DOES_NOT_EXIST)

        if status in _IGNORED_STATUSES[self.ignore_update_type]:
            logger.debug(f"{image.reference}: ignoring {status.value} update to {best.tag}")
            status = Status.UP_TO_DATE

        return CheckResult.for_image(image, status, new_tag=best.tag, new_version=best.version_string)

    async def _check_digest(self, image: Image, token: Optional[str]) -> CheckResult:
        remote_digest = await self.client.get_digest(image, token)
        status = Status.UP_TO_DATE if remote_digest in image.local_digests else Status.AVAILABLE
        return CheckResult.for_image(image, status, remote_digest=remote_digest)
