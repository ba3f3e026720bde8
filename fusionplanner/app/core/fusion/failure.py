# File: fusionplanner/app/core/fusion/failure.py
# Version: v0.2.0
"""
Post-hoc failure prediction for a chosen junction set.

Per-junction failure probability from the sub-scores:
    q = (0.4*overhangQuality + 0.2*forwardPrimer + 0.2*reversePrimer + 0.2*riskFactors) / 100
    p = clamp(0.02 + 0.5 * (1 - q)^2, 0, 0.95)
    predictedSuccessRate = Π (1 - p)

Individual risks (cross-ligation, palindromes, GC extremes, stop codons, ...)
are reported with a probability, a severity band and a mitigation where one is
known. Recommendation bands: >= 0.80 proceed, >= 0.60 caution, else redesign.
"""

from __future__ import annotations

__all__ = ["FailurePredictor", "junction_failure_probability", "severity_for"]

import logging
import math
from typing import List, Optional, Sequence

from .efficiency import is_palindrome, self_mismatches
from .fidelity import crosstalk_pairs
from .schemas import DomesticationSite, FailurePrediction, FailureSummary, Prediction
from .scoring import ScoredCandidate, SubScores

logger = logging.getLogger(__name__)

HIGH_SEVERITY = 0.30
MEDIUM_SEVERITY = 0.15
PROCEED_RATE = 0.80
CAUTION_RATE = 0.60
JUNCTION_REPORT_MIN = 0.05
WEAK_PRIMER_SCORE = 60.0
TARGET_CLONES = 3

# Fixed probabilities for flag-driven risks
RISK_PROBABILITY = {
    "high_gc": 0.10,
    "near_palindrome": 0.15,
    "unresolved_site": 0.90,
    "in_frame_stop_codon": 0.20,
    "domain_disruption": 0.15,
    "site_recreation_risk": 0.30,
    "mispriming": 0.12,
    "primer_dimer": 0.10,
}

MITIGATIONS = {
    "junction_failure": "Move the junction a few bases or lengthen the homology arm.",
    "low_efficiency": "Prefer an overhang outside the known low-efficiency list.",
    "high_gc": "Shift the junction towards a region with mixed base composition.",
    "low_gc": "Shift the junction towards a region with mixed base composition.",
    "weak_primer_region": "Extend or shift the primer binding region.",
    "cross_ligation": "Replace one of the two overhangs with a more distinct one.",
    "self_ligation": "Choose a non-palindromic overhang.",
    "near_palindrome": "Choose an overhang with at least two mismatches to its reverse complement.",
    "low_set_fidelity": "Reduce the fragment count or enable fidelity-first weights.",
    "internal_site": "Domesticate the site by a silent mutation or switch enzyme.",
    "in_frame_stop_codon": "Shift the junction by one codon.",
    "domain_disruption": "Place the junction in a linker between domains.",
    "site_recreation_risk": "Check that the scar does not rebuild the recognition motif.",
    "mispriming": "Lengthen the primer or move it away from repeated sequence.",
    "primer_dimer": "Shift one primer to break the complementary 3' ends.",
}


def junction_failure_probability(sub: SubScores) -> float:
    q = (
        0.4 * sub.overhang_quality
        + 0.2 * sub.forward_primer
        + 0.2 * sub.reverse_primer
        + 0.2 * sub.risk_factors
    ) / 100.0
    return max(0.0, min(0.95, 0.02 + 0.5 * (1.0 - q) ** 2))


def severity_for(probability: float) -> str:
    if probability >= HIGH_SEVERITY:
        return "high"
    if probability >= MEDIUM_SEVERITY:
        return "medium"
    return "low"


def _prediction(kind: str, probability: float, message: str, positions: Sequence[int], mitigation_key: Optional[str] = None) -> Prediction:
    probability = max(0.0, min(1.0, probability))
    return Prediction(
        severity=severity_for(probability),
        type=kind,
        probability=round(probability, 4),
        message=message,
        mitigation=MITIGATIONS.get(mitigation_key or kind),
        positions=list(positions),
    )


class FailurePredictor:
    """Turn a junction set into a ranked list of failure risks plus a go/no-go summary."""

    def __init__(self, min_set_fidelity: float = 0.90):
        self.min_set_fidelity = min_set_fidelity

    def _junction_risks(self, sc: ScoredCandidate) -> List[Prediction]:
        out: List[Prediction] = []
        pos, oh = sc.position, sc.overhang
        sub = sc.sub_scores
        tags = set(sc.warnings) | set(sc.candidate.flags)

        p = junction_failure_probability(sub)
        if p >= JUNCTION_REPORT_MIN:
            out.append(_prediction("junction_failure", p, f"Junction {pos} ({oh}) has an estimated {p:.0%} failure rate", [pos]))

        eff = sc.candidate.efficiency
        if "low_efficiency" in tags:
            out.append(_prediction("low_efficiency", (1.0 - eff) * 0.6, f"Overhang {oh} ligates at {eff:.0%} relative efficiency", [pos]))
        if "high_gc" in tags:
            out.append(_prediction("gc_extreme", RISK_PROBABILITY["high_gc"], f"Overhang {oh} is all G/C", [pos], "high_gc"))
        elif "low_gc" in tags:
            out.append(_prediction("gc_extreme", RISK_PROBABILITY["high_gc"], f"Overhang {oh} has no G/C", [pos], "low_gc"))

        for side, score in (("forward", sub.forward_primer), ("reverse", sub.reverse_primer)):
            if score < WEAK_PRIMER_SCORE:
                out.append(
                    _prediction(
                        "weak_primer_region",
                        (1.0 - score / 100.0) * 0.5,
                        f"Weak {side} primer region at junction {pos} (score {score:.0f})",
                        [pos],
                    )
                )

        if is_palindrome(oh):
            out.append(_prediction("self_ligation", 1.0, f"Overhang {oh} is palindromic and self-ligates", [pos]))
        elif self_mismatches(oh) == 1:
            out.append(_prediction("near_palindrome", RISK_PROBABILITY["near_palindrome"], f"Overhang {oh} is one base from palindromic", [pos]))

        if "in_frame_stop_codon" in tags:
            out.append(_prediction("in_frame_stop_codon", RISK_PROBABILITY["in_frame_stop_codon"], f"Junction {pos} touches an in-frame stop codon", [pos]))
        if "inside_protein_domain" in tags:
            out.append(_prediction("domain_disruption", RISK_PROBABILITY["domain_disruption"], f"Junction {pos} splits a protein domain", [pos]))
        if "site_recreation_risk" in tags:
            out.append(_prediction("site_recreation_risk", RISK_PROBABILITY["site_recreation_risk"], f"Recognition motif overlaps junction {pos}", [pos]))
        if "forward_mispriming" in tags or "reverse_mispriming" in tags:
            out.append(_prediction("mispriming", RISK_PROBABILITY["mispriming"], f"Primer 3' ends at junction {pos} match elsewhere in the template", [pos]))
        if "primer_dimer" in tags:
            out.append(_prediction("primer_dimer", RISK_PROBABILITY["primer_dimer"], f"Primers at junction {pos} share complementary 3' ends", [pos]))
        return out

    def predict(
        self,
        junctions: Sequence[ScoredCandidate],
        set_fidelity: float,
        unresolved_sites: Sequence[DomesticationSite] = (),
    ) -> FailurePrediction:
        predictions: List[Prediction] = []
        success = 1.0
        for sc in junctions:
            success *= 1.0 - junction_failure_probability(sc.sub_scores)
            predictions.extend(self._junction_risks(sc))

        overhangs = [sc.overhang for sc in junctions]
        for i, j, p in crosstalk_pairs(overhangs):
            predictions.append(
                _prediction(
                    "cross_ligation",
                    p,
                    f"Overhangs {overhangs[i]} and {overhangs[j]} may cross-ligate",
                    [junctions[i].position, junctions[j].position],
                )
            )

        if set_fidelity < self.min_set_fidelity:
            predictions.append(
                _prediction(
                    "low_set_fidelity",
                    1.0 - set_fidelity,
                    f"Set fidelity {set_fidelity:.3f} is below the required {self.min_set_fidelity:.2f}",
                    [sc.position for sc in junctions],
                )
            )

        for site in unresolved_sites:
            predictions.append(
                _prediction(
                    "internal_site",
                    RISK_PROBABILITY["unresolved_site"],
                    f"Internal {site.motif} site at {site.position} ({site.orientation}) has no valid splitting junction",
                    [site.position],
                )
            )

        predictions.sort(key=lambda p: (-p.probability, p.type, p.positions))
        success = max(0.0, min(1.0, success))
        counts = {"high": 0, "medium": 0, "low": 0}
        for p in predictions:
            counts[p.severity] += 1

        if success >= PROCEED_RATE:
            rec = "proceed"
            text = "Proceed with assembly"
        elif success >= CAUTION_RATE:
            rec = "proceed_with_caution"
            text = "Proceed with caution and review the high-severity risks"
        else:
            rec = "redesign"
            text = "Redesign recommended: the predicted success rate is low"
        if success > 0:
            text += f"; screen at least {math.ceil(TARGET_CLONES / success)} colonies"

        logger.info(
            "Failure prediction: success=%.3f, high=%d, medium=%d, low=%d, recommendation=%s",
            success, counts["high"], counts["medium"], counts["low"], rec,
        )
        return FailurePrediction(
            predictions=predictions,
            summary=FailureSummary(
                predictedSuccessRate=round(success, 6),
                high=counts["high"],
                medium=counts["medium"],
                low=counts["low"],
                recommendation=rec,
                recommendationText=text,
            ),
        )
