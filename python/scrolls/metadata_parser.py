"""
Metadata parsing for scrolls.

A scroll is a LaTeX snippet whose metadata lives in its final block of
comments, for example::

    \\LaTeX\\ code ...

    % @source Author: Title
    % @source Lemma 3.2, p. 41
    % @type proposition, definition
    % counter-example, analysis, TopOloGY, Weierstraß

This scroll is a proposition tagged 'counter-example', 'analysis', 'TopOloGY'
and 'Weierstraß', found in "Author: Title" as Lemma 3.2 on page 41. Only the
last contiguous run of comment lines counts as metadata; blank lines are
ignored.
"""

from typing import List

from .models import Directive, DirectiveKind, Scroll

COMMENT_MARKER = "%"

# Checked in order, first match wins. TAGS is the fallback for unprefixed lines.
_PREFIXED_KINDS = (
    DirectiveKind.HIDDEN,
    DirectiveKind.SOURCE,
    DirectiveKind.TYPE,
    DirectiveKind.OTHER,
)


def find_metadata_lines(doc: str) -> List[str]:
    """
    Return the lines of the last comment block without the leading markers.

    Leading and trailing whitespace is removed and lines that are empty
    after stripping the marker are dropped.
    """
    metadata: List[str] = []
    for line in doc.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue

        # A non-comment line means the last comment block has not started yet
        if not trimmed.startswith(COMMENT_MARKER):
            metadata = []
            continue

        trimmed = trimmed.lstrip(COMMENT_MARKER + " \t")
        if trimmed:
            metadata.append(trimmed)
    return metadata


def parse_tags(line: str) -> List[str]:
    """Split a comma separated list of tags, trimming each and dropping empties."""
    # Case is preserved
    return [tag.strip() for tag in line.split(",") if tag.strip()]


def classify_line(line: str) -> Directive:
    """Classify a single metadata line by its directive prefix."""
    for kind in _PREFIXED_KINDS:
        if not line.startswith(kind.prefix):
            continue
        if kind is DirectiveKind.OTHER:
            # Keep the prefix, otherwise there is no way to tell what the line means
            return Directive(kind, line)
        return Directive(kind, line[len(kind.prefix):])
    return Directive(DirectiveKind.TAGS, line)


def parse(scroll_id: str, doc: str) -> Scroll:
    """Parse the raw text of a scroll into a Scroll record."""
    scroll = Scroll(id=scroll_id)

    for line in find_metadata_lines(doc):
        directive = classify_line(line)
        kind = directive.kind

        if kind is DirectiveKind.HIDDEN:
            scroll.hidden.extend(parse_tags(directive.payload))
        elif kind is DirectiveKind.SOURCE:
            scroll.source_lines.append(directive.payload.strip())
        elif kind is DirectiveKind.TYPE:
            # Only the first type counts, the others are discarded
            if not scroll.type:
                scroll.type = directive.payload.strip().split(",")[0].strip()
        elif kind is DirectiveKind.OTHER:
            scroll.other_lines.append(directive.payload)
        elif kind is DirectiveKind.TAGS:
            scroll.tags.extend(parse_tags(directive.payload))
        else:
            raise ValueError(f"Unhandled directive kind: {kind}")

    scroll.content = strip_comments(doc)
    return scroll


def strip_comments(doc: str) -> str:
    """
    Remove every paragraph that starts with a comment.

    Paragraphs are separated by blank lines and are kept or dropped as a
    whole, depending only on their first line. Empty paragraphs are kept, so
    longer runs of blank lines survive.
    """
    paragraphs = []
    for paragraph in doc.split("\n\n"):
        trimmed = paragraph.strip()
        if trimmed.startswith(COMMENT_MARKER):
            continue
        paragraphs.append(trimmed)
    return "\n\n".join(paragraphs).strip()
