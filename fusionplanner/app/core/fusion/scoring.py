# File: fusionplanner/app/core/fusion/scoring.py
# Version: v0.5.0
"""
Multi-factor junction scoring.

Five sub-scores, each in [0, 100]:
- overhangQuality   : ligation efficiency × intrinsic overhang fidelity,
                      penalized when a homopolymer run spans the cut
- forwardPrimer     : PrimerEvaluator on the region downstream of the overhang
- reversePrimer     : PrimerEvaluator on the (reverse-complemented) upstream region
- riskFactors       : evaluator mispriming/dimer risk minus a site-recreation penalty
- biologicalContext : codon boundary, protein-domain integrity, scar preference and
                      in-frame stop codons (neutral 100 for non-coding sequences)

composite = Σ wᵢ·sᵢ clamped to [0, 100].

Sub-scores depend only on (sequence, enzyme, position, bioContext, evaluator), so
they are memoized under that key; weights enter only in the composite step.
"""

from __future__ import annotations

__all__ = ["SubScores", "JunctionScore", "ScoredCandidate", "ScoringEngine", "overhang_quality", "sequence_digest"]

import hashlib
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from Bio.Data import CodonTable

from fusionplanner.app.core.primer.constraints import longest_homopolymer
from fusionplanner.app.core.primer.evaluator import PrimerEvaluator, default_evaluator
from fusionplanner.app.core.primer.thermodynamics import revcomp
from .batch_scoring import BatchOptions, map_ordered
from .cache import BoundedCache, NullCache
from .control import CancelToken, check_cancel
from .efficiency import calculate_efficiency, self_mismatches
from .enzymes import Enzyme
from .parameters import BioContext, ScoringWeights
from .scanner import Candidate

logger = logging.getLogger(__name__)

# === Constants ================================================================
HOMOLOGY_LENGTH = 25
BOUNDARY_RUN_LIMIT = 4
BOUNDARY_RUN_FACTOR = 0.85
SITE_RECREATION_PENALTY = 30.0

# Self-complementarity (mismatches vs own RC) -> intrinsic fidelity
INTRINSIC_FIDELITY = {0: 0.0, 1: 0.85, 2: 0.92}

CODON_POSITION_SCORE = {0: 100.0, 1: 80.0, 2: 60.0}
DOMAIN_INSIDE_SCORE = 30.0
DOMAIN_NEAR_SCORE = 70.0
DOMAIN_NEAR_DISTANCE = 10
STOP_CODON_PENALTY = 40.0

SCAR_BASE = 80.0
CODING_PREFERRED = frozenset({"GGAG", "GGTG", "GCAG", "AATG", "GCTT", "TACT", "AGGT", "GCTG", "TCTG"})
CODING_AVOID = frozenset({"TGAT", "TAAT", "TAGT", "ATGA", "ATAA", "CTAG", "GTAA", "GTAG", "GTGA"})
LINKER_PREFERRED = frozenset({"GGAG", "GGTG", "GGCG", "GCAG", "TCTG", "TCAG"})

STOP_CODONS = frozenset(CodonTable.unambiguous_dna_by_id[1].stop_codons)


# === Dataclasses ==============================================================

@dataclass(frozen=True)
class SubScores:
    overhang_quality: float
    forward_primer: float
    reverse_primer: float
    risk_factors: float
    biological_context: float

    def as_tuple(self) -> Tuple[float, float, float, float, float]:
        return (
            self.overhang_quality,
            self.forward_primer,
            self.reverse_primer,
            self.risk_factors,
            self.biological_context,
        )


@dataclass(frozen=True)
class JunctionScore:
    sub_scores: SubScores
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: Candidate
    sub_scores: SubScores
    composite: float
    warnings: Tuple[str, ...] = ()

    @property
    def position(self) -> int:
        return self.candidate.position

    @property
    def overhang(self) -> str:
        return self.candidate.overhang


# === Helpers ==================================================================

def sequence_digest(seq: str) -> str:
    return hashlib.sha256(seq.encode("ascii")).hexdigest()


def _clamp(a: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, a))


def _slice(seq: str, start: int, end: int, circular: bool) -> str:
    """seq[start:end] with wrap-around for circular sequences, clipped otherwise."""
    n = len(seq)
    if circular:
        return "".join(seq[i % n] for i in range(start, end))
    return seq[max(0, start) : min(n, end)]


def overhang_quality(seq: str, pos: int, overhang_length: int, circular: bool = False) -> float:
    """0..100 quality of the overhang at `pos` (used by scoring and domestication)."""
    oh = seq[pos : pos + overhang_length]
    eff = calculate_efficiency(oh).efficiency
    fid = INTRINSIC_FIDELITY.get(self_mismatches(oh), 1.0)
    neighbourhood = _slice(seq, pos - 2, pos + overhang_length + 2, circular)
    run_factor = BOUNDARY_RUN_FACTOR if longest_homopolymer(neighbourhood) >= BOUNDARY_RUN_LIMIT else 1.0
    return round(100.0 * eff * fid * run_factor, 4)


# === Engine ===================================================================

class ScoringEngine:
    """Score junction candidates for one enzyme."""

    def __init__(
        self,
        enzyme: Enzyme,
        evaluator: Optional[PrimerEvaluator] = None,
        cache: Optional[BoundedCache | NullCache] = None,
        homology_length: Optional[int] = None,
        batch: Optional[BatchOptions] = None,
    ):
        self.enzyme = enzyme
        self.evaluator = evaluator or default_evaluator()
        self.cache = cache if cache is not None else NullCache()
        self.cache.bind_enzyme(enzyme.name)
        if homology_length is None:
            ev_params = getattr(self.evaluator, "params", None)
            homology_length = getattr(ev_params, "homologyLength", HOMOLOGY_LENGTH)
        self.homology_length = homology_length
        self.batch = batch or BatchOptions()
        self._evaluator_token = getattr(self.evaluator, "cache_token", type(self.evaluator).__name__)

    # ---------- Sub-scores ----------

    def primer_regions(self, seq: str, pos: int, circular: bool) -> Tuple[str, str]:
        L = self.enzyme.overhang_length
        H = self.homology_length
        forward = _slice(seq, pos + L, pos + L + H, circular)
        reverse = revcomp(_slice(seq, pos - H, pos, circular))
        return forward, reverse

    def recreates_site(self, seq: str, pos: int, circular: bool) -> bool:
        """True when a recognition motif overlaps the junction footprint."""
        w = len(self.enzyme.recognition) + self.enzyme.cut_offset
        region = _slice(seq, pos - w, pos + self.enzyme.overhang_length + w, circular)
        return self.enzyme.recognition in region or self.enzyme.recognition_rc in region

    def biological_context(self, seq: str, pos: int, bio: BioContext) -> Tuple[float, List[str]]:
        if not bio.isCodingSequence:
            return 100.0, []
        L = self.enzyme.overhang_length
        warnings: List[str] = []

        codon_pos = (pos - bio.codingFrame) % 3
        codon = CODON_POSITION_SCORE[codon_pos]
        if codon_pos:
            warnings.append("codon_offset")

        domain = 100.0
        for d in bio.proteinDomains:
            if pos < d.end and pos + L > d.start:
                domain = min(domain, DOMAIN_INSIDE_SCORE)
                warnings.append("inside_protein_domain")
            elif min(abs(pos - d.start), abs(pos - d.end), abs(pos + L - d.start), abs(pos + L - d.end)) < DOMAIN_NEAR_DISTANCE:
                domain = min(domain, DOMAIN_NEAR_SCORE)
                warnings.append("near_domain_boundary")

        oh = seq[pos : pos + L]
        scar = SCAR_BASE
        if bio.scarPreference == "coding":
            if oh in CODING_AVOID:
                scar -= 50.0
                warnings.append("scar_avoided")
            elif oh in CODING_PREFERRED:
                scar += 10.0
        elif bio.scarPreference == "linker":
            if oh in LINKER_PREFERRED:
                scar += 15.0
        else:
            scar = 100.0

        bio_score = 0.30 * codon + 0.35 * domain + 0.35 * scar

        # In-frame codons touching the overhang
        first = pos - ((pos - bio.codingFrame) % 3)
        for start in range(first, pos + L, 3):
            if start >= 0 and start + 3 <= len(seq) and seq[start : start + 3] in STOP_CODONS:
                bio_score -= STOP_CODON_PENALTY
                warnings.append("in_frame_stop_codon")
                break

        return _clamp(bio_score), list(dict.fromkeys(warnings))

    def junction_score(self, seq: str, candidate: Candidate, bio: BioContext, circular: bool, digest: Optional[str] = None) -> JunctionScore:
        """Weight-free sub-scores for one candidate (memoized)."""
        digest = digest or sequence_digest(seq)
        key = (digest, self.enzyme.name, candidate.position, bio.cache_key(), circular, self._evaluator_token)
        return self.cache.get_or_compute(key, lambda: self._compute(seq, candidate, bio, circular))

    def _compute(self, seq: str, candidate: Candidate, bio: BioContext, circular: bool) -> JunctionScore:
        pos = candidate.position
        warnings: List[str] = list(candidate.warnings)

        quality = overhang_quality(seq, pos, self.enzyme.overhang_length, circular)

        fwd_region, rev_region = self.primer_regions(seq, pos, circular)
        fwd = self.evaluator.evaluate_region(fwd_region)
        rev = self.evaluator.evaluate_region(rev_region)
        warnings.extend(f"forward_{i}" for i in fwd.issues)
        warnings.extend(f"reverse_{i}" for i in rev.issues)

        risk_eval = self.evaluator.evaluate_risk(fwd_region, rev_region, seq, circular)
        risk = risk_eval.score
        warnings.extend(risk_eval.issues)
        if self.recreates_site(seq, pos, circular):
            risk -= SITE_RECREATION_PENALTY
            warnings.append("site_recreation_risk")

        bio_score, bio_warn = self.biological_context(seq, pos, bio)
        warnings.extend(bio_warn)

        sub = SubScores(
            overhang_quality=_clamp(quality),
            forward_primer=_clamp(fwd.score),
            reverse_primer=_clamp(rev.score),
            risk_factors=_clamp(risk),
            biological_context=bio_score,
        )
        return JunctionScore(sub_scores=sub, warnings=tuple(dict.fromkeys(warnings)))

    # ---------- Composite ----------

    @staticmethod
    def composite(sub: SubScores, weights: ScoringWeights) -> float:
        total = sum(w * s for w, s in zip(weights.as_tuple(), sub.as_tuple()))
        return _clamp(total)

    def score_candidate(
        self,
        seq: str,
        candidate: Candidate,
        weights: ScoringWeights,
        bio: BioContext,
        circular: bool = False,
        digest: Optional[str] = None,
    ) -> ScoredCandidate:
        js = self.junction_score(seq, candidate, bio, circular, digest)
        return ScoredCandidate(
            candidate=candidate,
            sub_scores=js.sub_scores,
            composite=self.composite(js.sub_scores, weights),
            warnings=js.warnings,
        )

    def score_candidates(
        self,
        seq: str,
        candidates: Sequence[Candidate],
        weights: ScoringWeights,
        bio: BioContext,
        circular: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> List[ScoredCandidate]:
        digest = sequence_digest(seq)
        check_cancel(cancel, "scoring")

        def one(c: Candidate) -> ScoredCandidate:
            return self.score_candidate(seq, c, weights, bio, circular, digest)

        scored = map_ordered(one, list(candidates), options=self.batch)
        check_cancel(cancel, "scoring")
        if scored:
            logger.info(
                "Scored %d candidates (%s): composite min=%.2f max=%.2f, cache hits=%d misses=%d",
                len(scored), self.enzyme.name,
                min(s.composite for s in scored), max(s.composite for s in scored),
                self.cache.stats.hits, self.cache.stats.misses,
            )
        return scored
