# File: fusionplanner/app/core/primer/scoring.py
# Version: v0.2.0
"""
Per-feature scores for a junction homology region.

Higher is better; every feature maps to [0, 100] and `combine` takes the
weighted mean. Components:
- Tm distance from the ideal window
- GC deviation from the ideal range
- Region length (short regions near sequence ends anneal poorly)
- 3' GC clamp
- Homopolymer runs
- Hairpin / homodimer / 3' end ΔG
- G-quadruplex motif
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass
class ScoreContext:
    tm_min: float
    tm_max: float
    gc_min: float
    gc_max: float
    homopolymer_max: int
    hairpin_dg_min: float
    homodimer_dg_min: float
    three_prime_dg_min: float
    target_length: int


def _clamp(a: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, a))


def score_tm(ctx: ScoreContext, tm: float) -> float:
    # 10 points lost per °C outside the window
    if ctx.tm_min <= tm <= ctx.tm_max:
        return 100.0
    dist = min(abs(tm - ctx.tm_min), abs(tm - ctx.tm_max))
    return _clamp(100.0 - 10.0 * dist, 0.0, 100.0)


def score_gc(ctx: ScoreContext, gc: float) -> float:
    if ctx.gc_min <= gc <= ctx.gc_max:
        return 100.0
    dist = min(abs(gc - ctx.gc_min), abs(gc - ctx.gc_max))
    return _clamp(100.0 - 4.0 * dist, 0.0, 100.0)


def score_length(ctx: ScoreContext, length: int) -> float:
    if ctx.target_length <= 0:
        return 100.0
    return _clamp(100.0 * length / ctx.target_length, 0.0, 100.0)


def score_gc_clamp(clamp_count: int) -> float:
    """1-3 G/C in the 3' window is ideal; none or a fully G/C tail is penalized."""
    if 1 <= clamp_count <= 3:
        return 100.0
    if clamp_count == 0:
        return 40.0
    return 60.0 if clamp_count == 4 else 30.0


def score_homopolymer(ctx: ScoreContext, run: int) -> float:
    if run <= ctx.homopolymer_max:
        return 100.0
    return _clamp(100.0 - 25.0 * (run - ctx.homopolymer_max), 0.0, 100.0)


def score_dg(dg: float, dg_min: float, slope: float = 15.0) -> float:
    """ΔG at or above the tolerated minimum scores 100; each kcal/mol beyond costs `slope`."""
    if dg >= dg_min:
        return 100.0
    return _clamp(100.0 - slope * (dg_min - dg), 0.0, 100.0)


def score_g4(has_g4: bool) -> float:
    return 20.0 if has_g4 else 100.0


def combine(features: Dict[str, float], weights: Dict[str, float]) -> float:
    """Weighted mean of feature scores; missing features count as 100."""
    total_w = sum(w for w in weights.values() if w > 0)
    if total_w <= 0:
        return 100.0
    acc = 0.0
    for name, w in weights.items():
        if w <= 0:
            continue
        acc += w * features.get(name, 100.0)
    return _clamp(acc / total_w, 0.0, 100.0)
