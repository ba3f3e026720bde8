# File: fusionplanner/app/core/primer/constraints.py
# Version: v0.3.0
"""
Sequence-level checks for junction homology regions.

Includes:
- Homopolymer run length
- 3' GC clamp count
- G-quadruplex motif screen
- Ungapped complementarity runs (self-/cross-dimer proxy)
"""

from __future__ import annotations

import re
from typing import Tuple

from .thermodynamics import revcomp

# Four G-tracts of 3+ separated by short loops (canonical G4 motif)
_G4_PATTERN = re.compile(r"G{3,}\w{1,7}G{3,}\w{1,7}G{3,}\w{1,7}G{3,}")
_RUN = re.compile(r"(.)\1*")


def longest_homopolymer(seq: str) -> int:
    """Length of the longest single-base run (0 for an empty string)."""
    runs = [len(m.group(0)) for m in _RUN.finditer(seq.upper())]
    return max(runs, default=0)


def gc_clamp_count(seq: str, window: int = 5) -> int:
    """Number of G/C bases among the last `window` bases (3' end)."""
    tail = seq[-window:].upper() if window > 0 else ""
    return sum(1 for c in tail if c in ("G", "C"))


def has_g_quadruplex(seq: str) -> bool:
    s = seq.upper()
    return bool(_G4_PATTERN.search(s) or _G4_PATTERN.search(revcomp(s)))


def consecutive_complement_runs(a: str, b_rc: str) -> Tuple[int, int]:
    """
    Slide `a` along `b_rc` (already reverse-complemented) without gaps.

    Returns (longest run of matching bases, most matches at any single offset).
    """
    a = a.upper()
    b_rc = b_rc.upper()
    longest = 0
    most = 0
    for offset in range(1 - len(b_rc), len(a)):
        lo = max(0, offset)
        hi = min(len(a), offset + len(b_rc))
        hits = [a[i] == b_rc[i - offset] for i in range(lo, hi)]
        most = max(most, sum(hits))
        run = 0
        for hit in hits:
            run = run + 1 if hit else 0
            longest = max(longest, run)
    return longest, most


def check_dimer_risk(a: str, b: str) -> Tuple[int, int]:
    """Complementarity between two 5'->3' strands as (longest run, total) base pairs."""
    return consecutive_complement_runs(a, revcomp(b))
