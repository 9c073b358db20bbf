"""Case- and diacritic-insensitive text folding."""

import unicodedata


def fold_char(char: str) -> str:
    """Fold one character; combining marks fold to the empty string."""
    decomposed = unicodedata.normalize("NFD", char.casefold())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def fold_text(text: str) -> str:
    """Fold a whole string for comparison ("Café" and "cafe" fold equal)."""
    return "".join(fold_char(c) for c in text)


def fold_with_offsets(text: str) -> tuple[str, list[int], set[int]]:
    """Fold ``text`` and keep a map back to the original characters.

    Returns ``(folded, owner, starts)`` where ``owner[k]`` is the index in
    ``text`` of the character that produced ``folded[k]``, and ``starts`` holds
    the folded positions where a character's expansion begins. A match in the
    folded string is only usable when it begins on such a position and ends
    on an expansion boundary; otherwise it would split an original character.
    """
    pieces: list[str] = []
    owner: list[int] = []
    starts: set[int] = set()
    position = 0
    for index, char in enumerate(text):
        folded = fold_char(char)
        if not folded:
            continue
        starts.add(position)
        pieces.append(folded)
        owner.extend([index] * len(folded))
        position += len(folded)
    return "".join(pieces), owner, starts


def find_occurrences(text: str, needle: str) -> list[tuple[int, int]]:
    """Return ``(start, stop)`` spans in ``text`` where the folded ``needle`` occurs.

    ``needle`` must already be folded. Spans are leftmost-first and
    non-overlapping, and never split a character's expansion.
    """
    if not needle:
        return []
    folded, owner, starts = fold_with_offsets(text)
    spans: list[tuple[int, int]] = []
    search_from = 0
    while True:
        hit = folded.find(needle, search_from)
        if hit == -1:
            return spans
        end = hit + len(needle)
        # Reject hits that begin or end inside one character's expansion (ß -> ss).
        if hit not in starts or (end < len(folded) and end not in starts):
            search_from = hit + 1
            continue
        spans.append((owner[hit], owner[end] if end < len(folded) else len(text)))
        search_from = end


def contains_folded(text: str, needle: str) -> bool:
    """True if the folded ``needle`` occurs in ``text`` on character boundaries."""
    return bool(find_occurrences(text, needle))
