"""
Flow Puzzle - Level Fingerprints

Two levels with the same size and anchor layout count as the same level,
whatever their interior routing. Seen-sets are immutable: recording a
fingerprint returns a new set.
"""

import hashlib
from typing import FrozenSet, Iterable


SeenSet = FrozenSet[str]

DIGEST_LENGTH = 20


def canonical_layout(puzzle) -> str:
    """Size plus anchors sorted by cell index, e.g. '5x5|0:2;4:1;...'."""
    pairs = sorted((int(cell), int(anchor.color_id)) for cell, anchor in puzzle.anchors.items())
    body = ";".join(f"{cell}:{color_id}" for cell, color_id in pairs)
    return f"{puzzle.width}x{puzzle.height}|{body}"


def fingerprint(puzzle) -> str:
    """Stable short hash of a level's size and anchor layout."""
    digest = hashlib.sha256(canonical_layout(puzzle).encode("utf-8")).hexdigest()
    return f"{puzzle.width}x{puzzle.height}-{digest[:DIGEST_LENGTH]}"


def is_known(fp: str, seen: Iterable[str]) -> bool:
    return fp in seen


def record_seen(fp: str, seen: Iterable[str]) -> SeenSet:
    """Returns seen plus fp. Nothing is ever removed."""
    return frozenset(seen) | {fp}


def merge_seen(*snapshots: Iterable[str]) -> SeenSet:
    """Union of several seen-set snapshots."""
    merged = set()
    for snapshot in snapshots:
        merged.update(snapshot)
    return frozenset(merged)
