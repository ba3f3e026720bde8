# File: fusionplanner/app/core/fusion/fidelity.py
# Version: v0.2.0
"""
Set fidelity: probability that no two overhangs of an assembly cross-ligate.

Metric
------
For overhangs a, b the mismatch distance is
    d(a, b) = min(Hamming(a, b), Hamming(a, rc(b)))
(a ≈ b competes for b's partner; a ≈ rc(b) pairs with b directly).
Cross-ligation probability by distance:
    d = 0 -> 1.00, d = 1 -> 0.05, d = 2 -> 0.01, d >= 3 -> 0
An exact palindrome self-pairs with probability 1.0.

    setFidelity = Π_{i<j} (1 - P(d_ij)) × Π_i (1 - P_self(i))

The product only shrinks as overhangs are added, which lets partial
assignments be pruned as soon as they drop below the required fidelity.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

from fusionplanner.app.core.primer.thermodynamics import revcomp

CROSSTALK_PROBABILITY: Dict[int, float] = {0: 1.0, 1: 0.05, 2: 0.01}
CROSSTALK_MAX_MISMATCHES = max(CROSSTALK_PROBABILITY)


def hamming_distance(a: str, b: str) -> int:
    if len(a) != len(b):
        raise ValueError("hamming_distance requires equal-length sequences")
    return sum(1 for x, y in zip(a, b) if x != y)


@lru_cache(maxsize=65536)
def mismatch_distance(a: str, b: str) -> int:
    a = a.upper()
    b = b.upper()
    return min(hamming_distance(a, b), hamming_distance(a, revcomp(b)))


@lru_cache(maxsize=65536)
def pair_crosstalk(a: str, b: str) -> float:
    """Cross-ligation probability between two overhangs of an assembly."""
    return CROSSTALK_PROBABILITY.get(mismatch_distance(a, b), 0.0)


def self_crosstalk(a: str) -> float:
    a = a.upper()
    return 1.0 if a and a == revcomp(a) else 0.0


def set_fidelity(overhangs: Sequence[str]) -> float:
    if not overhangs:
        return 1.0
    fid = 1.0
    for i, a in enumerate(overhangs):
        fid *= 1.0 - self_crosstalk(a)
        for b in overhangs[i + 1 :]:
            fid *= 1.0 - pair_crosstalk(a, b)
    return max(0.0, min(1.0, fid))


def fidelity_factor(chosen: Sequence[str], new: str) -> float:
    """Multiplier applied to the fidelity of `chosen` when `new` joins the set."""
    f = 1.0 - self_crosstalk(new)
    for o in chosen:
        f *= 1.0 - pair_crosstalk(o, new)
    return f


def overhang_damage(overhangs: Sequence[str]) -> List[float]:
    """Per-overhang loss: 1 - Π over every term involving that overhang."""
    out: List[float] = []
    for i, a in enumerate(overhangs):
        others = [b for j, b in enumerate(overhangs) if j != i]
        out.append(1.0 - fidelity_factor(others, a))
    return out


def crosstalk_pairs(overhangs: Sequence[str]) -> List[Tuple[int, int, float]]:
    """(i, j, probability) for every pair with non-zero cross-ligation risk."""
    pairs: List[Tuple[int, int, float]] = []
    for i in range(len(overhangs)):
        for j in range(i + 1, len(overhangs)):
            p = pair_crosstalk(overhangs[i], overhangs[j])
            if p > 0.0:
                pairs.append((i, j, p))
    return pairs
