"""
Digest-only scheme: never parses a version, images are compared by digest.
"""

from typing import Optional

from cup.status import Status
from cup.version.base import VersionScheme, VersionTag


class DigestScheme(VersionScheme):
    name = "digest"
    digest_only = True

    def parse(self, tag: str) -> Optional[VersionTag]:
        return None

    def compare(self, a: VersionTag, b: VersionTag) -> Optional[int]:
        return None

    def classify(self, remote: VersionTag, local: VersionTag) -> Status:
        return Status.UNKNOWN
