# File: fusionplanner/app/core/fusion/efficiency.py
# Version: v0.2.0
"""
Ligation-efficiency model for single overhangs.

The factor starts at 1.0 and is multiplied by:
- pattern penalties (TNNA, all-GC, no-GC, 3+ base runs, near-palindromes)
- a table of individually measured poor overhangs

When an overhang is in the measured table, pattern penalties only apply at 30%
of their strength (the measured value already includes most of that effect).

Bands: efficiency >= 0.90 is optimal, >= 0.70 acceptable.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Tuple

from fusionplanner.app.core.primer.thermodynamics import revcomp

OPTIMAL_EFFICIENCY = 0.90
ACCEPTABLE_EFFICIENCY = 0.70
SPECIFIC_PATTERN_SCALE = 0.3

# name -> (factor, warning tag)
PATTERN_PENALTIES: Dict[str, Tuple[float, str]] = {
    "TNNA": (0.70, "tnna_pattern"),
    "HIGH_GC": (0.85, "high_gc"),
    "LOW_GC": (0.80, "low_gc"),
    "HOMOPOLYMER": (0.65, "homopolymer_run"),
    "NEAR_PALINDROME": (0.75, "near_palindrome"),
}

SPECIFIC_PENALTIES: Dict[str, float] = {
    "TAAA": 0.65,
    "TTTA": 0.65,
    "AAAA": 0.55,
    "TTTT": 0.55,
    "CCCC": 0.50,
    "GGGG": 0.45,
    "ATAT": 0.50,
    "TATA": 0.50,
    "GCGC": 0.45,
    "CGCG": 0.45,
    "ACGT": 0.40,
    "CATG": 0.35,
    "GATC": 0.30,
}

_TNNA = re.compile(r"^T..A$")
_RUN3 = re.compile(r"(.)\1{2,}")


@dataclass(frozen=True)
class OverhangEfficiency:
    overhang: str
    efficiency: float
    warnings: Tuple[str, ...]
    penalties: Tuple[Tuple[str, float], ...]

    @property
    def is_optimal(self) -> bool:
        return self.efficiency >= OPTIMAL_EFFICIENCY

    @property
    def is_acceptable(self) -> bool:
        return self.efficiency >= ACCEPTABLE_EFFICIENCY


def gc_count(overhang: str) -> int:
    return sum(1 for c in overhang.upper() if c in ("G", "C"))


def self_mismatches(overhang: str) -> int:
    """Hamming distance between an overhang and its own reverse complement."""
    oh = overhang.upper()
    return sum(1 for a, b in zip(oh, revcomp(oh)) if a != b)


def is_palindrome(overhang: str) -> bool:
    return bool(overhang) and self_mismatches(overhang) == 0


def is_homopolymer(overhang: str) -> bool:
    oh = overhang.upper()
    return bool(oh) and oh == oh[0] * len(oh)


def _pattern_hits(oh: str) -> Dict[str, bool]:
    gc = gc_count(oh)
    return {
        "TNNA": bool(_TNNA.match(oh)),
        "HIGH_GC": gc == len(oh),
        "LOW_GC": gc == 0,
        "HOMOPOLYMER": bool(_RUN3.search(oh)),
        "NEAR_PALINDROME": self_mismatches(oh) == 1,
    }


@lru_cache(maxsize=4096)
def calculate_efficiency(overhang: str) -> OverhangEfficiency:
    oh = (overhang or "").upper()
    if not oh:
        return OverhangEfficiency(oh, 0.0, ("invalid_overhang",), ())

    factor = 1.0
    warnings = []
    penalties = []

    specific = SPECIFIC_PENALTIES.get(oh)
    if specific is not None:
        factor *= specific
        warnings.append("known_low_efficiency")
        penalties.append((oh, specific))

    for name, hit in _pattern_hits(oh).items():
        if not hit:
            continue
        base, tag = PATTERN_PENALTIES[name]
        f = 1.0 - (1.0 - base) * SPECIFIC_PATTERN_SCALE if specific is not None else base
        factor *= f
        warnings.append(tag)
        penalties.append((name, f))

    return OverhangEfficiency(oh, round(factor, 6), tuple(warnings), tuple(penalties))
