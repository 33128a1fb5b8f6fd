"""
Version Model

Parses image tags into comparable versions with a reversible format
template and classifies updates. Each versioning style is a VersionScheme:

- StandardScheme: major[.minor[.patch]] anywhere in the tag (default)
- ExtendedScheme: components taken from a user-supplied regex
- DateScheme: year/month/day build dates
- DigestScheme: no version, digest comparison only
"""

from enum import Enum
from typing import Optional

from cup.updates.errors import ConfigError
from cup.version.base import VersionScheme, VersionTag, render_template
from cup.version.component import VersionComponent
from cup.version.date import DateScheme
from cup.version.digest import DigestScheme
from cup.version.extended import ExtendedScheme
from cup.version.standard import StandardScheme, VersionMatcher


class VersionType(str, Enum):
    """Versioning scheme selected for an image through configuration."""
    AUTO = "auto"
    STANDARD = "standard"
    EXTENDED = "extended"
    DATE = "date"
    DIGEST = "digest"


def build_scheme(version_type: VersionType, regex: Optional[str] = None) -> VersionScheme:
    """
    Create the scheme for a version type.

    AUTO uses the standard scheme; images whose tag it cannot parse fall
    back to digest comparison when they are constructed.
    """
    version_type = VersionType(version_type)
    if version_type in (VersionType.AUTO, VersionType.STANDARD):
        return StandardScheme()
    if version_type == VersionType.EXTENDED:
        if not regex:
            raise ConfigError("The extended version type requires a regex")
        return ExtendedScheme(regex)
    if version_type == VersionType.DATE:
        return DateScheme()
    return DigestScheme()


__all__ = [
    'VersionType',
    'VersionScheme',
    'VersionTag',
    'VersionComponent',
    'VersionMatcher',
    'StandardScheme',
    'ExtendedScheme',
    'DateScheme',
    'DigestScheme',
    'build_scheme',
    'render_template',
]
