"""
Chooses the versioning scheme for each image from configured overrides.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from cup.version import StandardScheme, VersionScheme, build_scheme

logger = logging.getLogger(__name__)


class SchemeSelector:
    """
    Maps image references to version schemes.

    Schemes are built once, when the selector is constructed, so every image
    matching the same override shares one compiled matcher. The first
    override whose matcher accepts the reference wins; otherwise the
    default (standard) scheme is used.

    Args:
        overrides: objects with `matches(reference)`, `version_type` and
            `regex` attributes (see cup.models.config_models.ImageOverride)
        default: scheme used when nothing matches
    """

    def __init__(self, overrides: Iterable = (), default: Optional[VersionScheme] = None):
        self._default = default or StandardScheme()
        self._rules: List[Tuple[object, VersionScheme]] = [
            (override, build_scheme(override.version_type, override.regex))
            for override in overrides
        ]

    def for_reference(self, reference: str) -> VersionScheme:
        for override, scheme in self._rules:
            if override.matches(reference):
                logger.debug(f"Using {scheme!r} for {reference}")
                return scheme
        return self._default
