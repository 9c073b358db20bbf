"""Split text into matched and unmatched segments for rendering."""

from todo_palette.core.search.text import find_occurrences, fold_text
from todo_palette.models.todo import Segment


def segments(text: str, query: str) -> tuple[Segment, ...]:
    """Split ``text`` around the occurrences of ``query``.

    Matching is case- and diacritic-insensitive, leftmost-first and
    non-overlapping, and uses the same occurrence rule as the search filter.
    Joining the segment texts always gives back ``text``.

    Args:
        text: Text to decorate.
        query: Search text; surrounding whitespace is ignored.

    Returns:
        Ordered segments. An empty query, or one that never occurs, yields the
        whole text (even when empty) as a single unmatched segment.
    """
    spans = find_occurrences(text, fold_text(query.strip()))
    if not spans:
        return (Segment(text, False),)

    out: list[Segment] = []
    cursor = 0
    for begin, stop in spans:
        if begin > cursor:
            out.append(Segment(text[cursor:begin], False))
        out.append(Segment(text[begin:stop], True))
        cursor = stop
    if cursor < len(text):
        out.append(Segment(text[cursor:], False))
    return tuple(out)


def render_marked(text: str, query: str, *, prefix: str = "**", suffix: str = "**") -> str:
    """Render ``text`` with markers around every match of ``query``."""
    return "".join(
        f"{prefix}{seg.text}{suffix}" if seg.is_match else seg.text
        for seg in segments(text, query)
    )
