"""
Date-based versioning scheme.

Some images are tagged with their build date instead of a version number:
"2024.05.01", "20240501", "2024-05-01-alpine". Dates carry no notion of
major/minor/patch, so a newer date is reported as a generic update.
"""

import re
from typing import Optional

from cup.status import Status
from cup.version.base import VersionScheme, VersionTag, build_template
from cup.version.component import VersionComponent

DATE_VERSION_PATTERN = r"(?<![0-9])([0-9]{4})([.\-_]?)([0-9]{2})\2([0-9]{2})(?![0-9])"


class DateScheme(VersionScheme):
    """year, month and day read from the first date-looking run in a tag"""

    name = "date"

    def __init__(self, pattern: str = DATE_VERSION_PATTERN):
        self.regex = re.compile(pattern)

    def parse(self, tag: str) -> Optional[VersionTag]:
        for match in self.regex.finditer(tag):
            month = int(match.group(3))
            day = int(match.group(4))
            if not (1 <= month <= 12 and 1 <= day <= 31):
                continue

            spans = [match.span(1), match.span(3), match.span(4)]
            template = build_template(tag, spans)
            if template is None:
                continue
            # Date fields are fixed width, so "05" and "12" stay comparable
            components = tuple(
                VersionComponent(value=int(tag[start:end]), width=end - start)
                for start, end in spans
            )
            return VersionTag(components=components, template=template, kind=self.name)
        return None

    def status_for_index(self, index: int) -> Status:
        return Status.AVAILABLE
