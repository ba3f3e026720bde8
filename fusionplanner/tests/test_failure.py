# File: fusionplanner/tests/test_failure.py
# Version: v0.1.0
"""
Failure prediction: per-junction probability, severity bands, set-level risks
and the go/no-go recommendation.
"""

from __future__ import annotations

import pytest

from fusionplanner.app.core.fusion.efficiency import gc_count
from fusionplanner.app.core.fusion.failure import FailurePredictor, junction_failure_probability, severity_for
from fusionplanner.app.core.fusion.scanner import Candidate
from fusionplanner.app.core.fusion.schemas import DomesticationSite
from fusionplanner.app.core.fusion.scoring import ScoredCandidate, SubScores
from fusionplanner.app.core.primer.thermodynamics import revcomp


def _junction(pos, oh, score=100.0, flags=(), warnings=()):
    cand = Candidate(
        position=pos,
        overhang=oh,
        reverse_complement=revcomp(oh),
        gc_count=gc_count(oh),
        efficiency=1.0,
        flags=tuple(flags),
    )
    sub = SubScores(score, score, score, score, 100.0)
    return ScoredCandidate(candidate=cand, sub_scores=sub, composite=score, warnings=tuple(warnings))


def test_junction_probability_formula():
    assert junction_failure_probability(SubScores(100, 100, 100, 100, 0)) == pytest.approx(0.02)
    assert junction_failure_probability(SubScores(0, 0, 0, 0, 100)) == pytest.approx(0.52)
    assert junction_failure_probability(SubScores(50, 50, 50, 50, 50)) == pytest.approx(0.145)


def test_severity_bands():
    assert severity_for(0.30) == "high"
    assert severity_for(0.15) == "medium"
    assert severity_for(0.1499) == "low"


def test_clean_set_proceeds():
    out = FailurePredictor().predict([_junction(100, "AAGC"), _junction(300, "TTCA")], set_fidelity=1.0)
    assert out.predictions == []
    assert out.summary.recommendation == "proceed"
    assert out.summary.predictedSuccessRate == pytest.approx(0.98 * 0.98)
    # 3 / 0.9604 -> 4 colonies
    assert "screen at least 4 colonies" in out.summary.recommendationText


def test_cross_ligation_and_low_fidelity_reported():
    junctions = [_junction(100, "AAGC"), _junction(300, "AAGG")]
    out = FailurePredictor(min_set_fidelity=0.99).predict(junctions, set_fidelity=0.95)
    by_type = {p.type: p for p in out.predictions}
    assert by_type["cross_ligation"].probability == pytest.approx(0.05)
    assert by_type["cross_ligation"].positions == [100, 300]
    assert by_type["cross_ligation"].mitigation
    assert by_type["low_set_fidelity"].probability == pytest.approx(0.05)


def test_weak_junctions_call_for_redesign():
    out = FailurePredictor().predict([_junction(100, "AAGC", score=0.0), _junction(300, "TTCA", score=0.0)], 1.0)
    assert out.summary.recommendation == "redesign"
    assert out.summary.high >= 2
    types = [p.type for p in out.predictions]
    assert "junction_failure" in types
    assert "weak_primer_region" in types
    probs = [p.probability for p in out.predictions]
    assert probs == sorted(probs, reverse=True)


def test_middling_junctions_call_for_caution():
    out = FailurePredictor().predict([_junction(100, "AAGC", score=50.0), _junction(300, "TTCA", score=50.0)], 1.0)
    assert out.summary.predictedSuccessRate == pytest.approx(0.855 ** 2)
    assert out.summary.recommendation == "proceed_with_caution"


def test_flag_driven_risks():
    junctions = [
        _junction(100, "GATC"),
        _junction(300, "GCCG", flags=("high_gc",), warnings=("in_frame_stop_codon", "site_recreation_risk")),
    ]
    out = FailurePredictor().predict(junctions, set_fidelity=0.0)
    types = {p.type for p in out.predictions}
    assert {"self_ligation", "gc_extreme", "in_frame_stop_codon", "site_recreation_risk", "low_set_fidelity"} <= types
    self_lig = next(p for p in out.predictions if p.type == "self_ligation")
    assert self_lig.severity == "high"
    assert self_lig.positions == [100]


def test_unresolved_sites_become_risks():
    site = DomesticationSite(motif="GGTCTC", position=420, orientation="forward")
    out = FailurePredictor().predict([_junction(100, "AAGC")], 1.0, unresolved_sites=[site])
    internal = [p for p in out.predictions if p.type == "internal_site"]
    assert len(internal) == 1
    assert internal[0].positions == [420]
    assert internal[0].severity == "high"
