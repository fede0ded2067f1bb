"""Containment-weighted similarity of two protein sequences.

The score is derived from a weighted edit distance whose insertion and
deletion costs depend on which sequence is longer. Turning the longer
sequence into the shorter one may delete residues cheaply (cost 1) but
insert only at a prohibitive cost (100); the reverse holds when the
first sequence is the shorter one. With the default substitution cost of
100 only exact residue runs contribute, so the score approximates the
fraction of the longer sequence covered by the shorter one::

    score = ((len_a + len_b - distance) / 2) / max(len_a, len_b)

The score is 0 when the distance exceeds ``len_a + len_b`` and None when
either sequence is missing.

Example:
    >>> orf_similarity("MKVLA", "MKVLA")
    1.0
    >>> orf_similarity("MKV", "MKVLAG")
    0.5
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from splicelens.config import DEFAULT_SUBSTITUTION_COST

EXPENSIVE_INDEL = 100
CHEAP_INDEL = 1


def edit_distance(
    a: str,
    b: str,
    insertion: int = 1,
    deletion: int = 1,
    substitution: int = 1,
) -> int:
    """Weighted Levenshtein distance transforming ``a`` into ``b``.

    Rows of the dynamic programming table are computed with numpy; the
    insertion recurrence along a row is resolved with a running minimum.

    Args:
        a: Source sequence.
        b: Target sequence.
        insertion: Cost of inserting one character of ``b``.
        deletion: Cost of deleting one character of ``a``.
        substitution: Cost of replacing a character.

    Returns:
        Minimum total cost.
    """
    if not a:
        return len(b) * insertion
    if not b:
        return len(a) * deletion

    target = np.frombuffer(b.encode(), dtype=np.uint8)
    steps = np.arange(len(b) + 1, dtype=np.int64) * insertion
    previous = steps.copy()

    for i, char in enumerate(a.encode(), 1):
        sub_costs = np.where(target == char, 0, substitution)
        current = np.empty_like(previous)
        current[0] = i * deletion
        current[1:] = np.minimum(previous[1:] + deletion, previous[:-1] + sub_costs)
        current = np.minimum.accumulate(current - steps) + steps
        previous = current

    return int(previous[-1])


def _missing(value: object) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def orf_similarity(
    a: str | None,
    b: str | None,
    substitution_cost: int = DEFAULT_SUBSTITUTION_COST,
) -> float | None:
    """Similarity of two amino acid sequences in [0, 1].

    Args:
        a: First sequence.
        b: Second sequence.
        substitution_cost: Cost of a residue substitution.

    Returns:
        Score in [0, 1], or None if either sequence is missing.
    """
    if _missing(a) or _missing(b):
        return None

    len_a, len_b = len(a), len(b)
    if len_a == 0 and len_b == 0:
        return 1.0

    if len_a > len_b:
        insertion, deletion = EXPENSIVE_INDEL, CHEAP_INDEL
    elif len_a == len_b:
        insertion, deletion = CHEAP_INDEL, CHEAP_INDEL
    else:
        insertion, deletion = CHEAP_INDEL, EXPENSIVE_INDEL

    distance = edit_distance(a, b, insertion, deletion, substitution_cost)
    if distance > len_a + len_b:
        return 0.0
    return ((len_a + len_b - distance) / 2) / max(len_a, len_b)
