"""
A single numeric component of a version tag.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VersionComponent:
    """
    Numeric value plus the zero-pad width it was written with.

    Width is the textual length when the source text starts with "0" and
    has more than one digit, otherwise 0; a lone "0" is unpadded.
    Components written with different widths cannot be compared: "2" and
    "02" are not ordered relative to each other.

    Examples:
        "21"   → value=21, width=0
        "0021" → value=21, width=4
        "0"    → value=0, width=0
    """
    value: int
    width: int = 0

    @classmethod
    def from_text(cls, text: str) -> 'VersionComponent':
        if not text or not all("0" <= char <= "9" for char in text):
            raise ValueError(f"Version component must be a decimal number: {text!r}")
        width = len(text) if len(text) > 1 and text.startswith("0") else 0
        return cls(value=int(text), width=width)

    def compare(self, other: 'VersionComponent') -> Optional[int]:
        """Return -1, 0 or 1, or None when the widths differ."""
        if self.width != other.width:
            return None
        return (self.value > other.value) - (self.value < other.value)

    def __str__(self) -> str:
        return str(self.value).zfill(self.width)
