import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class DirectiveKind(Enum):
    """Kinds of lines found in a scroll's trailing metadata block."""

    HIDDEN = "@hidden "
    SOURCE = "@source "
    TYPE = "@type "
    OTHER = "@"
    TAGS = ""

    @property
    def prefix(self) -> str:
        return self.value


@dataclass(frozen=True)
class Directive:
    """
    A classified metadata line.

    ``payload`` is the line with the directive prefix removed, except for
    OTHER lines which keep their prefix so the directive stays identifiable.
    """

    kind: DirectiveKind
    payload: str


@dataclass
class Scroll:
    """
    One indexed document: free-text content plus its structured metadata.
    """

    id: str
    content: str = ""
    type: str = ""
    tags: List[str] = None
    source_lines: List[str] = None
    hidden: List[str] = None
    other_lines: List[str] = None

    def __post_init__(self):
        if self.tags is None:
            self.tags = []
        if self.source_lines is None:
            self.source_lines = []
        if self.hidden is None:
            self.hidden = []
        if self.other_lines is None:
            self.other_lines = []

    def to_row(self) -> Dict[str, Any]:
        """Column values for the scrolls table; list fields are JSON encoded."""
        return {
            "id": self.id,
            "content": self.content,
            "type": self.type,
            "source": json.dumps(self.source_lines),
            "tags": json.dumps(self.tags),
            "hidden": json.dumps(self.hidden),
            "other": json.dumps(self.other_lines),
        }

    def to_fts_row(self) -> Dict[str, str]:
        """Text handed to the English-analysed full-text table."""
        return {
            "content": self.content,
            "source": "\n".join(self.source_lines),
            "tags": "\n".join(self.tags),
            "hidden": "\n".join(self.hidden),
            "other": "\n".join(self.other_lines),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Scroll":
        return cls(
            id=row["id"],
            content=row.get("content") or "",
            type=row.get("type") or "",
            source_lines=json.loads(row.get("source") or "[]"),
            tags=json.loads(row.get("tags") or "[]"),
            hidden=json.loads(row.get("hidden") or "[]"),
            other_lines=json.loads(row.get("other") or "[]"),
        )


@dataclass(frozen=True)
class Statistics:
    """Number of indexed scrolls and the combined size of the library."""

    num_scrolls: int
    total_size: int

    def describe(self) -> str:
        size_kib = self.total_size / 1024.0
        return "The library contains %d scrolls with a total size of %.1f kiB." % (
            self.num_scrolls,
            size_kib,
        )
