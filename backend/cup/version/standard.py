"""
Standard (SemVer-inspired) versioning scheme.

Describes tags containing one to three dot-separated numbers named major,
minor and patch, with arbitrary text around them: "1.25.3", "v0.107.53",
"15.4-alpine", "pg14-v0.2.0". Minor and patch are optional. In practice
this covers most versioned images and is the default scheme.
"""

import re
from typing import List, Optional, Tuple

from cup.version.base import VersionScheme, VersionTag, build_template
from cup.version.component import VersionComponent

STANDARD_VERSION_PATTERN = r"([0-9]+)(?:\.([0-9]+))?(?:\.([0-9]+))?"


class VersionMatcher:
    """
    Compiled version pattern plus best-match selection.

    A tag may contain several numeric runs ("pg14-v0.2.0"). The match with the
    most captured groups is the most specific one; on a tie the first match
    encountered wins.
    """

    def __init__(self, pattern: str = STANDARD_VERSION_PATTERN):
        self.regex = re.compile(pattern)

    def best_match(self, tag: str) -> Optional[re.Match]:
        best: Optional[re.Match] = None
        best_count = 0
        for match in self.regex.finditer(tag):
            count = sum(1 for group in match.groups() if group is not None)
            if count > best_count:
                best = match
                best_count = count
        return best

    def spans(self, match: re.Match) -> List[Tuple[int, int]]:
        return [
            match.span(index)
            for index in range(1, (self.regex.groups or 0) + 1)
            if match.group(index) is not None
        ]


class StandardScheme(VersionScheme):
    """
    major[.minor[.patch]] versions found anywhere in a tag.

    Examples:
        "5.3.2"          → (5, 3, 2),  "{}.{}.{}"
        "12-alpine"      → (12,),      "{}-alpine"
        "7.3.3.50"       → (7, 3, 3),  "{}.{}.{}.50"
        "24.04.11.2.1"   → (24, 04, 11), "{}.{}.{}.2.1"
    """

    name = "standard"

    def __init__(self, matcher: Optional[VersionMatcher] = None):
        self.matcher = matcher or VersionMatcher()

    def parse(self, tag: str) -> Optional[VersionTag]:
        match = self.matcher.best_match(tag)
        if match is None:
            return None

        spans = self.matcher.spans(match)
        template = build_template(tag, spans)
        if template is None:
            return None

        components = tuple(
            VersionComponent.from_text(tag[start:end]) for start, end in spans
        )
        return VersionTag(components=components, template=template, kind=self.name)
