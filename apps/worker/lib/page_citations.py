"""
Helpers for the inline ``[Page N]`` citation markers carried by stage-1 prose.
"""
from __future__ import annotations

import re
from typing import Iterator, Optional

PAGE_MARKER_RE = re.compile(r"\[\s*page\s+(\d+)\s*\]", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def iter_page_markers(prose: str) -> Iterator[tuple[int, int]]:
    """Yield (offset, page_number) for every marker in order of appearance."""
    for match in PAGE_MARKER_RE.finditer(prose or ""):
        page = int(match.group(1))
        if page >= 1:
            yield match.start(), page


def cited_pages(prose: str) -> list[int]:
    """Distinct page numbers cited anywhere in the prose, ascending."""
    return sorted({page for _, page in iter_page_markers(prose)})


def page_at(prose: str, offset: int) -> Optional[int]:
    """Page of the nearest marker at or before *offset*, if any."""
    current: Optional[int] = None
    for marker_offset, page in iter_page_markers(prose):
        if marker_offset > offset:
            break
        current = page
    return current


def page_following(prose: str, offset: int) -> Optional[int]:
    """Page of the first marker at or after *offset*, if any."""
    for marker_offset, page in iter_page_markers(prose):
        if marker_offset >= offset:
            return page
    return None


def _normalise(text: str) -> tuple[str, list[int]]:
    """
    Lowercase, blank out markers and collapse whitespace, keeping a map from
    each output character back to its source offset.
    """
    masked = list(text)
    for match in PAGE_MARKER_RE.finditer(text):
        masked[match.start():match.end()] = " " * (match.end() - match.start())

    chars: list[str] = []
    offsets: list[int] = []
    in_space = False
    for idx, ch in enumerate(masked):
        if ch.isspace():
            if in_space or not chars:
                continue
            in_space = True
            chars.append(" ")
        else:
            in_space = False
            chars.append(ch.lower())
        offsets.append(idx)
    return "".join(chars), offsets


def locate_quote(prose: str, quote: str) -> Optional[int]:
    """
    Find *quote* in *prose* (case and whitespace insensitive, markers ignored
    on both sides) and return the page governing its first occurrence: the
    nearest preceding marker, or the first following one when the quote
    comes before every marker.
    """
    needle = _WS_RE.sub(" ", PAGE_MARKER_RE.sub(" ", quote or "")).strip().lower()
    if not needle or not prose:
        return None
    haystack, offsets = _normalise(prose)
    pos = haystack.find(needle)
    if pos < 0:
        return None
    start = offsets[pos]
    return page_at(prose, start) or page_following(prose, start)
