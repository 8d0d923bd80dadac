"""
Query translation.

Users type space separated words that are all required unless marked
otherwise. The search engine expects query-string syntax where unmarked
terms are optional, so ``translate_query`` rewrites one into the other and
``parse_query`` turns the engine syntax into boolean clauses.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

# Fields that may be addressed as ``field:term``
QUERY_FIELDS = ("id", "content", "type", "source", "tags", "hidden", "other")

_TOKEN_PATTERN = re.compile(r'([+-]?)(?:([A-Za-z_]+):)?("[^"]*"?|\S+)')


def translate_query(raw: str) -> str:
    """
    Rewrite a user query into engine syntax.

    ``-word`` and ``+word`` are kept, ``~word`` becomes the optional ``word``
    and every other word is made required by prefixing ``+``.
    """
    translated = []
    for word in raw.split():
        if word[0] in "-+":
            translated.append(word)
        elif word[0] == "~":
            # Remove prefix to make term optional
            if word[1:]:
                translated.append(word[1:])
        else:
            translated.append("+" + word)
    return " ".join(translated)


class Occurrence(Enum):
    MUST = "+"
    MUST_NOT = "-"
    SHOULD = ""


@dataclass(frozen=True)
class QueryClause:
    """One term of a parsed query."""

    occurrence: Occurrence
    term: str
    field: Optional[str] = None
    prefix: bool = False


def parse_query(query: str) -> List[QueryClause]:
    """
    Parse engine query syntax into clauses.

    Supports ``+``/``-`` occurrence markers, ``field:term`` scoping for the
    fields in QUERY_FIELDS, double-quoted phrases and a trailing ``*`` for
    prefix matching. Terms that end up empty are dropped.
    """
    clauses = []
    for match in _TOKEN_PATTERN.finditer(query):
        marker, field, term = match.groups()

        if field is not None and field.lower() not in QUERY_FIELDS:
            term = f"{field}:{term}"
            field = None
        elif field is not None:
            field = field.lower()

        prefix = False
        if term.startswith('"'):
            term = term.strip('"').strip()
        elif term.endswith("*"):
            term = term.rstrip("*")
            prefix = True

        if not term:
            continue

        clauses.append(
            QueryClause(
                occurrence=Occurrence(marker),
                term=term,
                field=field,
                prefix=prefix,
            )
        )
    return clauses
