"""Textual similarity of URLs, used to guess the intended host."""

from __future__ import annotations


def _common(a: str, b: str) -> int:
    """Characters in common: the longest common substring, then recurse on both sides."""
    if not a or not b:
        return 0

    best = pos_a = pos_b = 0
    for i in range(len(a)):
        for j in range(len(b)):
            k = 0
            while i + k < len(a) and j + k < len(b) and a[i + k] == b[j + k]:
                k += 1
            # first longest substring wins
            if k > best:
                best, pos_a, pos_b = k, i, j

    if best == 0:
        return 0
    return (
        best
        + _common(a[:pos_a], b[:pos_b])
        + _common(a[pos_a + best:], b[pos_b + best:])
    )


def similar_text(a: str, b: str) -> tuple[int, float]:
    """
    Number of matching characters and the similarity percentage of a and b.

    The percentage is matching * 2 * 100 / (len(a) + len(b)).
    """
    if not a and not b:
        return 0, 0.0
    sim = _common(a, b)
    return sim, sim * 200.0 / (len(a) + len(b))
