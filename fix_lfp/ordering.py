"""
Deepest-first ordering of matched entries.

A descendant's path is always strictly longer than its ancestor's, so sorting
by length (longest first) guarantees children are moved out before their
parent directory is checked for emptiness.
"""

import os
from typing import Iterable

from .scanner import ScanEntry


def order_deepest_first(entries: Iterable[ScanEntry]) -> list[ScanEntry]:
    """
    Return a new list sorted by cached path length, longest first.

    Entries of equal length keep their discovery order. Two such entries can
    never be ancestor and descendant of each other.
    """
    return sorted(entries, key=lambda e: e.length, reverse=True)


def is_ancestor(ancestor: str, path: str) -> bool:
    """True if `ancestor` is a proper ancestor directory of `path`."""
    prefix = ancestor.rstrip(os.sep) + os.sep
    return path.startswith(prefix) and len(path) > len(prefix)


def violates_ordering(entries: list[ScanEntry]) -> tuple[ScanEntry, ScanEntry] | None:
    """
    Find the first ancestor that is placed before one of its descendants.

    Args:
        entries: Entries in processing order.

    Returns:
        (ancestor, descendant) for the first violation, or None if the order
        is safe to process.
    """
    seen: dict[str, ScanEntry] = {}
    for entry in entries:
        # Walk up the parents of this entry and look for one already processed
        parent = os.path.dirname(entry.path)
        while parent and parent != os.path.dirname(parent):
            if parent in seen:
                return seen[parent], entry
            parent = os.path.dirname(parent)
        seen[entry.path] = entry
    return None
