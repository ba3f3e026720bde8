# File: fusionplanner/app/core/primer/evaluator.py
# Version: v0.4.0
"""
Primer evaluation service consumed by the fusion-site scoring engine.

What this file does
-------------------
- Defines the `PrimerEvaluator` interface: the scoring engine hands it the
  homology region on either side of a junction and receives opaque 0..100 scores.
- Ships `ThermoPrimerEvaluator`, the default implementation backed by primer3
  (Tm, hairpin, homodimer, 3' end stability) and a k-mer off-target index.

Coordinates
-----------
- Regions are passed 5'->3' as the primer would read them; the reverse region is
  already reverse-complemented by the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from fusionplanner.app.core.fusion.cache import BoundedCache, NullCache
from fusionplanner.app.core.primer.constraints import (
    check_dimer_risk,
    gc_clamp_count,
    has_g_quadruplex,
    longest_homopolymer,
)
from fusionplanner.app.core.primer.offtarget import build_kmer_index, count_offtargets
from fusionplanner.app.core.primer.parameters import PrimerEvaluationParameters
from fusionplanner.app.core.primer import scoring as ps
from fusionplanner.app.core.primer.thermodynamics import (
    compute_tm,
    end_stability_dg,
    gc_percent,
    hairpin_dg,
    homodimer_dg,
    revcomp,
)

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50.0
KMER_INDEX_CACHE_SIZE = 8


# --- DTOs ----------------------------------------------------------------------------------------

@dataclass(frozen=True)
class HomologyEvaluation:
    score: float
    length: int
    tm: float = 0.0
    gc: float = 0.0
    hairpin_dg: float = 0.0
    homodimer_dg: float = 0.0
    three_prime_dg: float = 0.0
    issues: tuple = ()


@dataclass(frozen=True)
class RiskEvaluation:
    score: float
    forward_offtargets: int = 0
    reverse_offtargets: int = 0
    cross_dimer_run: int = 0
    issues: tuple = ()


class PrimerEvaluator(Protocol):
    """Scores junction homology regions; implementations must be thread-safe and pure."""

    def evaluate_region(self, region: str) -> HomologyEvaluation:
        ...

    def evaluate_risk(self, forward_region: str, reverse_region: str, template: str, circular: bool = False) -> RiskEvaluation:
        ...


# --- Default implementation ----------------------------------------------------------------------

@dataclass
class ThermoPrimerEvaluator:
    """
    primer3-backed evaluator.

    Scores depend only on `params`. `index_cache` holds template k-mer indexes
    so one template is indexed once per scoring pass; pass a `NullCache` to
    rebuild the index on every lookup.
    """
    params: PrimerEvaluationParameters = field(default_factory=PrimerEvaluationParameters)
    index_cache: BoundedCache | NullCache = field(
        default_factory=lambda: BoundedCache(KMER_INDEX_CACHE_SIZE, name="kmer-index"),
        compare=False,
        repr=False,
    )

    @property
    def cache_token(self) -> str:
        """Identity of this configuration inside shared score caches."""
        return "thermo:" + self.params.model_dump_json()

    def _context(self) -> ps.ScoreContext:
        p = self.params
        return ps.ScoreContext(
            tm_min=p.tmMin,
            tm_max=p.tmMax,
            gc_min=p.gcMin,
            gc_max=p.gcMax,
            homopolymer_max=p.homopolymerMax,
            hairpin_dg_min=p.hairpinDgMin,
            homodimer_dg_min=p.homodimerDgMin,
            three_prime_dg_min=p.threePrimeDgMin,
            target_length=p.homologyLength,
        )

    def evaluate_region(self, region: str) -> HomologyEvaluation:
        region = (region or "").upper()
        if len(region) < self.params.minHomologyLength:
            return HomologyEvaluation(score=NEUTRAL_SCORE, length=len(region), issues=("region_too_short",))

        ctx = self._context()
        tm = compute_tm(region, method=self.params.tmMethod)
        gc = gc_percent(region)
        hp = hairpin_dg(region)
        hd = homodimer_dg(region)
        end_dg = end_stability_dg(region, revcomp(region))

        features = {
            "wTm": ps.score_tm(ctx, tm),
            "wGC": ps.score_gc(ctx, gc),
            "wLength": ps.score_length(ctx, len(region)),
            "wGCClamp": ps.score_gc_clamp(gc_clamp_count(region, self.params.gcClampWindow)),
            "wHomopolymer": ps.score_homopolymer(ctx, longest_homopolymer(region)),
            "wHairpin": ps.score_dg(hp, ctx.hairpin_dg_min),
            "wHomodimer": ps.score_dg(hd, ctx.homodimer_dg_min),
            "wThreePrime": ps.score_dg(end_dg, ctx.three_prime_dg_min, slope=10.0),
            "wG4": ps.score_g4(has_g_quadruplex(region)),
        }
        issues: List[str] = [name for name, val in features.items() if val < 60.0]
        score = ps.combine(features, self.params.weights.model_dump())
        return HomologyEvaluation(
            score=round(score, 4),
            length=len(region),
            tm=tm,
            gc=gc,
            hairpin_dg=hp,
            homodimer_dg=hd,
            three_prime_dg=end_dg,
            issues=tuple(issues),
        )

    def evaluate_risk(self, forward_region: str, reverse_region: str, template: str, circular: bool = False) -> RiskEvaluation:
        """
        Mispriming and primer-primer interaction risk (100 = no risk found).

        - 3' k-mer hits beyond the intended site: -25 (3+), -15 (2), -5 (1) per primer
        - forward/reverse complementarity run: -15 (6+), -5 (4+)
        """
        k = self.params.offtargetWindow
        score = 100.0
        issues: List[str] = []
        offs = []
        index = None
        if len(template) >= k:
            index = self.index_cache.get_or_compute(
                (template.upper(), k, circular), lambda: build_kmer_index(template, k, circular)
            )
        for name, region in (("forward", forward_region), ("reverse", reverse_region)):
            off = 0
            if len(region) >= k:
                _, off = count_offtargets(region, template, k=k, circular=circular, index=index)
            offs.append(off)
            if off >= 3:
                score -= 25.0
            elif off == 2:
                score -= 15.0
            elif off == 1:
                score -= 5.0
            if off:
                issues.append(f"{name}_mispriming")

        run = 0
        if forward_region and reverse_region:
            run, _ = check_dimer_risk(forward_region[-12:], reverse_region[-12:])
            if run >= 6:
                score -= 15.0
                issues.append("primer_dimer")
            elif run >= 4:
                score -= 5.0

        return RiskEvaluation(
            score=ps._clamp(score, 0.0, 100.0),
            forward_offtargets=offs[0],
            reverse_offtargets=offs[1],
            cross_dimer_run=run,
            issues=tuple(issues),
        )


def default_evaluator(params: Optional[PrimerEvaluationParameters] = None) -> ThermoPrimerEvaluator:
    ev = ThermoPrimerEvaluator(params or PrimerEvaluationParameters())
    logger.debug("Primer evaluator ready: tm_method=%s, homology=%d", ev.params.tmMethod, ev.params.homologyLength)
    return ev
