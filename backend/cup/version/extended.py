"""
Extended versioning scheme driven by a user-supplied regex.

For tags not covered by the standard scheme, e.g. linuxserver builds like
"v0.7.1-ls84". Every capture group of the regex is one numeric component,
compared in group order. Groups must be either all named or all anonymous.
"""

import logging
import re
from typing import List, Optional, Tuple

from cup.updates.errors import ConfigError
from cup.version.base import VersionScheme, VersionTag, build_template
from cup.version.component import VersionComponent

logger = logging.getLogger(__name__)


class ExtendedScheme(VersionScheme):
    """
    Components are the capture groups of `pattern`, in group order.

    The first group is classified as a major update, the second as minor,
    every later one as patch.

    Raises:
        ConfigError: if the pattern does not compile, has no groups, or
            mixes named and anonymous groups
    """

    name = "extended"

    def __init__(self, pattern: str):
        try:
            self.regex = re.compile(pattern)
        except re.error as e:
            raise ConfigError(f"Invalid version regex {pattern!r}: {e}")

        named = len(self.regex.groupindex)
        if self.regex.groups == 0:
            raise ConfigError(f"Version regex {pattern!r} has no capture groups")
        if 0 < named < self.regex.groups:
            raise ConfigError(
                f"Version regex {pattern!r} mixes named and anonymous capture groups"
            )
        self.pattern = pattern
        self.named = named > 0

    def parse(self, tag: str) -> Optional[VersionTag]:
        match = self.regex.search(tag)
        if match is None:
            return None

        spans: List[Tuple[int, int]] = []
        for index in range(1, self.regex.groups + 1):
            if match.group(index) is None:
                if self.named:
                    # Every named group is a required component
                    logger.debug(f"Group {index} of {self.pattern!r} did not match {tag!r}")
                    return None
                continue
            spans.append(match.span(index))

        if not spans:
            return None

        template = build_template(tag, spans)
        if template is None:
            logger.debug(f"Overlapping capture groups in {self.pattern!r} for {tag!r}")
            return None

        try:
            components = tuple(VersionComponent.from_text(tag[start:end]) for start, end in spans)
        except ValueError:
            return None
        return VersionTag(components=components, template=template, kind=self.name)

    def __repr__(self) -> str:
        return f"ExtendedScheme({self.pattern!r})"
