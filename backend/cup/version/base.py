"""
Version tags and the scheme interface every versioning strategy implements.

A scheme turns a tag into a VersionTag (components + format template),
orders two VersionTags and classifies the difference between a remote
and a local tag as a Status. The update engine only talks to this
interface, so adding a versioning scheme never touches orchestration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from cup.status import Status
from cup.version.component import VersionComponent

PLACEHOLDER = "{}"


@dataclass(frozen=True)
class VersionTag:
    """
    A tag parsed into numeric components and a format template.

    The template is the original tag with every matched component replaced
    by "{}". Rendering the components back into it yields the tag again:
        "v0.107.53" → components (0, 107, 53), template "v{}.{}.{}"
    """
    components: Tuple[VersionComponent, ...]
    template: str
    kind: str

    @property
    def major(self) -> VersionComponent:
        return self.components[0]

    @property
    def minor(self) -> Optional[VersionComponent]:
        return self.components[1] if len(self.components) > 1 else None

    @property
    def patch(self) -> Optional[VersionComponent]:
        return self.components[2] if len(self.components) > 2 else None

    @property
    def tag(self) -> str:
        """Original tag text"""
        return render_template(self.template, self.components)

    @property
    def version_string(self) -> str:
        """Components joined with dots, e.g. "1.25.3" for "1.25.3-alpine" """
        return ".".join(str(component) for component in self.components)

    def same_shape(self, other: 'VersionTag') -> bool:
        """Whether two tags belong to the same family (kind, template, component count)"""
        return (
            self.kind == other.kind
            and self.template == other.template
            and len(self.components) == len(other.components)
        )

    def __str__(self) -> str:
        return self.tag


def build_template(tag: str, spans: Sequence[Tuple[int, int]]) -> Optional[str]:
    """
    Replace each (start, end) span of the tag with a placeholder.

    Spans must be ordered and non-overlapping; returns None otherwise.
    Pieces are assembled left to right from the original text, so offsets
    never shift while replacing.
    """
    pieces: List[str] = []
    position = 0
    for start, end in spans:
        if start < position or end <= start:
            return None
        pieces.append(tag[position:start])
        pieces.append(PLACEHOLDER)
        position = end
    pieces.append(tag[position:])
    return "".join(pieces)


def render_template(template: str, components: Iterable[object]) -> str:
    """Fill placeholders left to right with the string form of each component."""
    literals = template.split(PLACEHOLDER)
    values = [str(component) for component in components]
    if len(values) != len(literals) - 1:
        raise ValueError(
            f"Template {template!r} expects {len(literals) - 1} components, got {len(values)}"
        )
    rendered = [literals[0]]
    for value, literal in zip(values, literals[1:]):
        rendered.append(value)
        rendered.append(literal)
    return "".join(rendered)


def compare_components(
    left: Sequence[VersionComponent],
    right: Sequence[VersionComponent],
) -> Tuple[Optional[int], Optional[int]]:
    """
    Lexicographic comparison of two component sequences of equal length.

    Returns (ordering, index of first differing component). The ordering is
    None when a component pair is incomparable before any difference is found.
    """
    for index, (a, b) in enumerate(zip(left, right)):
        ordering = a.compare(b)
        if ordering is None:
            return None, index
        if ordering != 0:
            return ordering, index
    return 0, None


class VersionScheme(ABC):
    """Strategy for parsing, ordering and classifying tags of one versioning style."""

    #: Short identifier, also stored on every VersionTag the scheme produces
    name: str = "base"

    #: Digest-only schemes never produce VersionTags
    digest_only: bool = False

    @abstractmethod
    def parse(self, tag: str) -> Optional[VersionTag]:
        """Parse a tag, or return None when it does not follow this scheme."""

    def compare(self, a: VersionTag, b: VersionTag) -> Optional[int]:
        """
        Order two tags: -1, 0, 1, or None when they are not comparable.

        Tags are only comparable when they share template and component count.
        """
        if not a.same_shape(b):
            return None
        ordering, _ = compare_components(a.components, b.components)
        return ordering

    def classify(self, remote: VersionTag, local: VersionTag) -> Status:
        """
        Classify the update from local to remote.

        Returns UNKNOWN when remote does not sort at or above local.
        """
        if not remote.same_shape(local):
            return Status.UNKNOWN
        ordering, index = compare_components(remote.components, local.components)
        if ordering is None or ordering < 0:
            return Status.UNKNOWN
        if ordering == 0:
            return Status.UP_TO_DATE
        return self.status_for_index(index)

    def status_for_index(self, index: int) -> Status:
        """Status for an update whose first differing component is at `index`"""
        if index == 0:
            return Status.MAJOR
        if index == 1:
            return Status.MINOR
        return Status.PATCH

    def latest(self, candidates: Iterable[VersionTag], local: VersionTag) -> Optional[VersionTag]:
        """
        Greatest candidate comparable with the local tag.

        Candidates that cannot be ordered against the local tag or the
        current best are skipped.
        """
        best: Optional[VersionTag] = None
        for candidate in candidates:
            if self.compare(candidate, local) is None:
                continue
            if best is None:
                best = candidate
                continue
            ordering = self.compare(candidate, best)
            if ordering is not None and ordering > 0:
                best = candidate
        return best

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
