# File: fusionplanner/tests/test_primer_logic.py
# Version: v0.2.0
"""
Unit tests for the primer evaluation layer:
- thermodynamics (gc%, revcomp, tm)
- constraints (homopolymer, gc clamp, dimer risk)
- offtarget counting
- evaluator on homology regions
"""

from __future__ import annotations

import math

import pytest

from fusionplanner.app.core.fusion.cache import BoundedCache, NullCache
from fusionplanner.app.core.primer.constraints import check_dimer_risk, gc_clamp_count, longest_homopolymer
from fusionplanner.app.core.primer.evaluator import NEUTRAL_SCORE, ThermoPrimerEvaluator
from fusionplanner.app.core.primer.offtarget import build_kmer_index, count_offtargets
from fusionplanner.app.core.primer.parameters import PrimerEvaluationParameters
from fusionplanner.app.core.primer.thermodynamics import compute_tm, gc_percent, revcomp


def test_gc_and_revcomp():
    assert math.isclose(gc_percent("ATGC"), 50.0)
    assert revcomp("ATGC") == "GCAT"


def test_homopolymer():
    assert longest_homopolymer("ATTTTGC") == 4
    assert longest_homopolymer("AAAAA") == 5
    assert longest_homopolymer("ATGC") == 1


def test_gc_clamp():
    assert gc_clamp_count("AAAAAGCGCA", 5) == 4
    assert gc_clamp_count("GGGGGAAAAA", 5) == 0


def test_dimer_risk_basic():
    consec, total = check_dimer_risk("ATGC", "GCAT")  # perfect revcomp
    assert consec >= 4
    assert total >= 4


def test_offtargets_counts_both_strands():
    template = "ACGTACGTAAGGCCTT" + "TTTTTTTT" + revcomp("ACGTACGT")
    hits, off = count_offtargets("GGGACGTACGT", template, k=8)
    assert hits >= 2
    assert off == hits - 1


def test_offtargets_accepts_prebuilt_index():
    template = "ACGTACGTAAGGCCTT" + "TTTTTTTT" + revcomp("ACGTACGT")
    index = build_kmer_index(template, 8)
    assert count_offtargets("GGGACGTACGT", template, k=8, index=index) == count_offtargets("GGGACGTACGT", template, k=8)
    with pytest.raises(TypeError):
        index["ACGTACGT"] = 0  # read-only


def test_evaluator_indexes_each_template_once():
    template = "ACGTACGTAAGGCCTTGGGACGTACGT" * 4
    cache = BoundedCache(4, name="test-kmer-index")
    ev = ThermoPrimerEvaluator(PrimerEvaluationParameters(), index_cache=cache)
    first = ev.evaluate_risk("GGGACGTACGT", "AAGGCCTTGGGA", template)
    second = ev.evaluate_risk("GGGACGTACGT", "AAGGCCTTGGGA", template)
    assert len(cache) == 1
    assert cache.stats.hits == 1

    uncached = ThermoPrimerEvaluator(PrimerEvaluationParameters(), index_cache=NullCache())
    assert uncached.evaluate_risk("GGGACGTACGT", "AAGGCCTTGGGA", template) == first == second
    assert first.forward_offtargets > 0


def test_tm_methods_reasonable():
    seq = "AGCGTACCGATTGCAAGCTAGGTCA"
    for method in ("primer3", "nn", "wallace"):
        tm = compute_tm(seq, method=method)
        assert 40.0 < tm < 90.0


def test_evaluator_short_region_is_neutral():
    ev = ThermoPrimerEvaluator(PrimerEvaluationParameters())
    res = ev.evaluate_region("ACGTACG")
    assert res.score == NEUTRAL_SCORE
    assert "region_too_short" in res.issues


def test_evaluator_prefers_balanced_region():
    ev = ThermoPrimerEvaluator(PrimerEvaluationParameters())
    good = ev.evaluate_region("AGCGTACCGATTGCAAGCTAGGTCA")
    bad = ev.evaluate_region("AAAAAAAAAATTTTTTTTTTAAAAA")
    assert 0.0 <= bad.score < good.score <= 100.0


def test_parameters_reject_inverted_ranges():
    with pytest.raises(ValueError):
        PrimerEvaluationParameters(tmMin=70.0, tmMax=60.0)
