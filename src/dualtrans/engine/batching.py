"""Batch splitting and in-band ``[k]`` numbering for combined LLM calls."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class BatchItem:
    """One text with a caller-chosen identifier."""

    id: str | int
    text: str


def split_batches(
    items: Sequence[BatchItem],
    max_items: int,
    max_chars: int,
) -> list[list[BatchItem]]:
    """Greedy bin-packing of *items* into ordered batches.

    A batch is closed as soon as adding the next item would exceed either
    *max_items* or *max_chars*. Items are never split or dropped; an item
    longer than *max_chars* on its own gets a batch to itself.
    """
    if max_items < 1:
        raise ValueError("max_items must be at least 1")
    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")

    batches: list[list[BatchItem]] = []
    current: list[BatchItem] = []
    current_chars = 0
    for item in items:
        size = len(item.text)
        if current and (
            len(current) >= max_items or current_chars + size > max_chars
        ):
            batches.append(current)
            current = []
            current_chars = 0
        current.append(item)
        current_chars += size
    if current:
        batches.append(current)
    return batches


def number_texts(texts: Sequence[str]) -> str:
    """``["a", "b"]`` -> ``"[1] a\\n\\n[2] b"``."""
    return "\n\n".join(f"[{k}] {text}" for k, text in enumerate(texts, start=1))


_LINE_MARKER_RE = re.compile(r"(?:^|\n)[ \t]*\[(\d+)\][ \t]*")
_ANY_MARKER_RE = re.compile(r"\[(\d+)\]\s*")


def _collect(response: str, pattern: re.Pattern[str], count: int) -> dict[int, str]:
    matches = [m for m in pattern.finditer(response) if 1 <= int(m.group(1)) <= count]
    found: dict[int, str] = {}
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(response)
        number = int(match.group(1))
        segment = response[match.end() : end].strip()
        if number not in found and segment:
            found[number] = segment
    return found


def demux_numbered(response: str, count: int) -> list[str | None]:
    """Map ``[k]`` markers in *response* back to positions ``0..count-1``.

    Markers at the start of a line are preferred; markers anywhere are
    used only when line-start markers do not cover every position. Each
    marker is matched by its number, so reordered answers still land in
    the right slot. Positions without a marker are ``None``.
    """
    if count <= 0:
        return []
    found = _collect(response, _LINE_MARKER_RE, count)
    if len(found) < count:
        loose = _collect(response, _ANY_MARKER_RE, count)
        if len(loose) > len(found):
            found = loose
    return [found.get(k) for k in range(1, count + 1)]
