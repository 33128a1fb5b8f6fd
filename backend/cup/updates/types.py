"""
Shared types for update checks.

This module contains the dataclasses passed between the orchestrator, the
update engine and the report builder: image references split into parts,
images ready to be checked, and per-image check results.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cup.status import Status
from cup.updates.errors import UnrecognizedTagFormat
from cup.utils.reference import split_reference
from cup.version import StandardScheme, VersionScheme, VersionTag

logger = logging.getLogger(__name__)

VERSION_MODE = "version"
DIGEST_MODE = "digest"


@dataclass(frozen=True)
class Parts:
    """Registry host, repository path and tag of a reference."""
    registry: str
    repository: str
    tag: str

    @classmethod
    def from_reference(cls, reference: str) -> 'Parts':
        registry, repository, tag = split_reference(reference)
        return cls(registry=registry, repository=repository, tag=tag)

    def to_dict(self) -> Dict[str, str]:
        return {"registry": self.registry, "repository": self.repository, "tag": self.tag}


@dataclass
class Image:
    """
    An image to check, built once at ingestion.

    `version` is set when the image's scheme parsed the local tag; the image
    is then checked by comparing tags. Otherwise it is checked by digest,
    which requires at least one local digest.
    """
    reference: str
    parts: Parts
    scheme: VersionScheme
    version: Optional[VersionTag] = None
    local_digests: Tuple[str, ...] = ()
    used_by: Tuple[str, ...] = ()

    @property
    def mode(self) -> str:
        return VERSION_MODE if self.version is not None else DIGEST_MODE

    @classmethod
    def create(
        cls,
        reference: str,
        scheme: Optional[VersionScheme] = None,
        local_digests: Tuple[str, ...] = (),
        used_by: Tuple[str, ...] = (),
    ) -> 'Image':
        """
        Build an image from its reference, local digests and scheme.

        Raises:
            UnrecognizedTagFormat: the tag is not a version under the scheme
                and no local digest is available to compare instead
        """
        scheme = scheme or StandardScheme()
        parts = Parts.from_reference(reference)
        version = scheme.parse(parts.tag)
        if version is None and not local_digests:
            if scheme.digest_only:
                message = f"Image {reference} uses digest comparison but is not available locally"
            else:
                message = (
                    f"Image {reference} is not available locally and does not have "
                    f"a recognizable tag format!"
                )
            raise UnrecognizedTagFormat(message)
        if version is None:
            logger.debug(f"{reference}: tag {parts.tag!r} is not a version, comparing digests")
        return cls(
            reference=reference,
            parts=parts,
            scheme=scheme,
            version=version,
            local_digests=tuple(local_digests),
            used_by=tuple(used_by),
        )

    @classmethod
    def from_local(
        cls,
        reference: str,
        digests: List[str],
        used_by: Optional[List[str]] = None,
        scheme: Optional[VersionScheme] = None,
    ) -> 'Image':
        """Image reported by the container runtime (has local digests)."""
        return cls.create(reference, scheme, tuple(digests), tuple(used_by or ()))

    @classmethod
    def from_reference(cls, reference: str, scheme: Optional[VersionScheme] = None) -> 'Image':
        """Image only known by reference (not pulled locally)."""
        return cls.create(reference, scheme)


@dataclass
class CheckResult:
    """
    Outcome of checking one image, local or reported by a peer server.

    Results are produced fresh on every refresh and sort by status
    precedence, then alphabetically by reference.
    """
    reference: str
    parts: Parts
    mode: str
    status: Status
    time_ms: int = 0
    server: Optional[str] = None
    error: Optional[str] = None

    # Version details
    current_tag: Optional[str] = None
    new_tag: Optional[str] = None
    current_version: Optional[str] = None
    new_version: Optional[str] = None

    # Digest details
    local_digests: List[str] = field(default_factory=list)
    remote_digest: Optional[str] = None

    used_by: List[str] = field(default_factory=list)

    # Peer entries are passed through as received
    raw_entry: Optional[Dict[str, Any]] = field(default=None, repr=False, compare=False)

    @property
    def sort_key(self) -> Tuple[int, str]:
        return self.status.precedence, self.reference

    @classmethod
    def for_image(cls, image: Image, status: Status, **details) -> 'CheckResult':
        """Result for a local image, carrying its parts, digests and users."""
        details.setdefault("local_digests", list(image.local_digests))
        if image.version is not None:
            details.setdefault("current_tag", image.version.tag)
            details.setdefault("current_version", image.version.version_string)
        return cls(
            reference=image.reference,
            parts=image.parts,
            mode=image.mode,
            status=status,
            used_by=list(image.used_by),
            **details,
        )

    @classmethod
    def unknown(cls, image: Image, reason: str, time_ms: int = 0) -> 'CheckResult':
        return cls.for_image(image, Status.UNKNOWN, error=reason, time_ms=time_ms)

    def info(self) -> Optional[Dict[str, Any]]:
        """Update details for the report, or None when nothing is known."""
        if self.status in (Status.UNKNOWN, Status.UP_TO_DATE):
            return None
        if self.new_tag is not None and self.remote_digest is None:
            return {
                "type": "version",
                "version_update_type": _version_update_type(self.status),
                "new_tag": self.new_tag,
                "current_version": self.current_version,
                "new_version": self.new_version,
            }
        return {
            "type": "digest",
            "local_digests": list(self.local_digests),
            "remote_digest": self.remote_digest,
        }

    def to_report_entry(self) -> Dict[str, Any]:
        """Serialize for the JSON report (the document peers consume)."""
        if self.raw_entry is not None:
            return {**self.raw_entry, "server": self.server}
        return {
            "reference": self.reference,
            "parts": self.parts.to_dict(),
            "result": {
                "has_update": self.status.has_update,
                "info": self.info(),
                "error": self.error,
            },
            "time": self.time_ms,
            "server": self.server,
            "used_by": list(self.used_by),
        }

    @classmethod
    def from_report_entry(cls, entry: Dict[str, Any], server: str) -> 'CheckResult':
        """
        Rebuild a result from a peer's report entry, keeping the peer's status.

        Raises:
            ValueError: the entry lacks a reference or has an invalid shape
        """
        reference = entry.get("reference")
        if not isinstance(reference, str) or not reference:
            raise ValueError("Report entry has no reference")
        result = entry.get("result") or {}
        if not isinstance(result, dict):
            raise ValueError(f"Report entry for {reference} has an invalid result")
        info = result.get("info") or {}
        if not isinstance(info, dict):
            raise ValueError(f"Report entry for {reference} has invalid update info")
        try:
            time_ms = int(entry.get("time") or 0)
            local_digests = list(info.get("local_digests") or [])
            used_by = list(entry.get("used_by") or [])
        except (TypeError, ValueError):
            raise ValueError(f"Report entry for {reference} has invalid field types")
        parts_data = entry.get("parts") or {}
        try:
            parts = Parts(
                registry=parts_data["registry"],
                repository=parts_data["repository"],
                tag=parts_data["tag"],
            )
        except (KeyError, TypeError):
            parts = Parts.from_reference(reference)

        status = _status_from_entry(result.get("has_update"), info)
        mode = VERSION_MODE if info.get("type") == "version" else DIGEST_MODE
        return cls(
            reference=reference,
            parts=parts,
            mode=mode,
            status=status,
            time_ms=time_ms,
            server=server,
            error=result.get("error"),
            new_tag=info.get("new_tag"),
            current_version=info.get("current_version"),
            new_version=info.get("new_version"),
            local_digests=local_digests,
            remote_digest=info.get("remote_digest"),
            used_by=used_by,
            raw_entry=entry,
        )


def _version_update_type(status: Status) -> str:
    if status is Status.MAJOR:
        return "major"
    if status is Status.MINOR:
        return "minor"
    if status is Status.PATCH:
        return "patch"
    return "other"


def _status_from_entry(has_update: Optional[bool], info: Dict[str, Any]) -> Status:
    if has_update is None:
        return Status.UNKNOWN
    if not has_update:
        return Status.UP_TO_DATE
    if info.get("type") == "version":
        return {
            "major": Status.MAJOR,
            "minor": Status.MINOR,
            "patch": Status.PATCH,
        }.get(info.get("version_update_type"), Status.AVAILABLE)
    return Status.AVAILABLE
