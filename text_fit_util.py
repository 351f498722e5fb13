"""Utility helpers for wrapping and fitting overlay text on ID cards.

Widths are approximated from character counts; no font metrics are read.
"""
from __future__ import annotations

import math
from typing import List, NamedTuple, Optional

from card_config import AUTO_SIZE_CHAR_FACTOR, AUTO_SIZE_FONT_FACTOR, CHAR_WIDTH_RATIO


class FitResult(NamedTuple):
    font_size: float
    char_limit: int


def estimate_text_width(text: str, font_size: float, font_weight: str = "bold") -> float:
    """Approximate the rendered width of ``text`` in pixels."""

    if not text:
        return 0.0
    ratio = CHAR_WIDTH_RATIO.get(font_weight, CHAR_WIDTH_RATIO["normal"])
    return float(len(text)) * font_size * ratio


def chars_for_width(max_width: float, font_size: float, font_weight: str = "bold") -> int:
    """Inverse of :func:`estimate_text_width`, never less than one character."""

    ratio = CHAR_WIDTH_RATIO.get(font_weight, CHAR_WIDTH_RATIO["normal"])
    if font_size <= 0 or max_width <= 0:
        return 1
    return max(1, int(math.floor(max_width / (font_size * ratio))))


def _hard_split(token: str, first_limit: int, next_limit: int) -> List[str]:
    chunks: List[str] = []
    remaining = token
    limit = first_limit
    while len(remaining) > limit:
        chunks.append(remaining[:limit])
        remaining = remaining[limit:]
        limit = next_limit
    if remaining:
        chunks.append(remaining)
    return chunks


def wrap_text(text: Optional[str], primary_limit: int, secondary_limit: Optional[int] = None) -> List[str]:
    """Greedily wrap ``text`` into lines.

    ``primary_limit`` applies to the first line and ``secondary_limit`` (when
    given) to every later one. Words are joined while the joined line stays
    strictly shorter than the limit. A word longer than the limit of the line
    it would start is split into limit-sized chunks.
    """

    if primary_limit <= 0:
        raise ValueError("primary_limit must be positive")
    if secondary_limit is not None and secondary_limit <= 0:
        raise ValueError("secondary_limit must be positive")

    words = (text or "").split()
    if not words:
        return []

    later_limit = secondary_limit if secondary_limit is not None else primary_limit
    lines: List[str] = []
    current = ""

    for word in words:
        if current:
            limit = later_limit if lines else primary_limit
            candidate = f"{current} {word}"
            if len(candidate) < limit:
                current = candidate
                continue
            lines.append(current)
            current = ""

        limit = later_limit if lines else primary_limit
        if len(word) <= limit:
            current = word
            continue

        chunks = _hard_split(word, limit, later_limit)
        lines.extend(chunks[:-1])
        current = chunks[-1]

    if current:
        lines.append(current)
    return lines


def fit_text(
    text: Optional[str],
    font_size: float,
    char_limit: int,
    min_font_size: float,
    max_lines: int,
) -> FitResult:
    """Shrink the font and widen the character budget until ``text`` fits.

    Each round scales the font by 0.9 (floored, never below
    ``min_font_size``) and the character budget by 1.15. Text that still
    overflows once the floor is reached is accepted as-is.
    """

    size = max(float(font_size), float(min_font_size))
    limit = max(1, int(char_limit))
    max_lines = max(1, int(max_lines))

    while len(wrap_text(text, limit)) > max_lines and size > min_font_size:
        size = max(float(min_font_size), float(math.floor(size * AUTO_SIZE_FONT_FACTOR)))
        limit = int(math.floor(limit * AUTO_SIZE_CHAR_FACTOR))

    return FitResult(size, limit)


__all__ = [
    "FitResult",
    "chars_for_width",
    "estimate_text_width",
    "fit_text",
    "wrap_text",
]
