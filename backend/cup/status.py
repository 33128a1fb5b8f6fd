"""
Update status of a checked image.

Statuses are totally ordered for display purposes:
Major > Minor > Patch > Available > Up to date > Unknown
"""

from enum import Enum
from typing import Optional


class Status(Enum):
    """Outcome of an update check. Definition order is sort order."""
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    AVAILABLE = "available"
    UP_TO_DATE = "up_to_date"
    UNKNOWN = "unknown"

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]

    @property
    def has_update(self) -> Optional[bool]:
        """True/False for known results, None when the check failed"""
        if self is Status.UNKNOWN:
            return None
        return self is not Status.UP_TO_DATE

    @property
    def is_version_update(self) -> bool:
        return self in (Status.MAJOR, Status.MINOR, Status.PATCH)

    @property
    def label(self) -> str:
        return _LABELS[self]


_PRECEDENCE = {status: index for index, status in enumerate(Status)}

_LABELS = {
    Status.MAJOR: "Major update",
    Status.MINOR: "Minor update",
    Status.PATCH: "Patch update",
    Status.AVAILABLE: "Update available",
    Status.UP_TO_DATE: "Up to date",
    Status.UNKNOWN: "Unknown",
}

# Reason attached to results whose remote tag sorts below the local one
TAG_DOES_NOT_EXIST = "Tag does not exist"
