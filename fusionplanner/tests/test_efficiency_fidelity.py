# File: fusionplanner/tests/test_efficiency_fidelity.py
# Version: v0.2.0
"""
Overhang efficiency model and set-fidelity metric.
"""

from __future__ import annotations

import math

import pytest

from fusionplanner.app.core.fusion.efficiency import (
    SPECIFIC_PENALTIES,
    calculate_efficiency,
    is_homopolymer,
    is_palindrome,
    self_mismatches,
)
from fusionplanner.app.core.fusion.fidelity import (
    crosstalk_pairs,
    fidelity_factor,
    hamming_distance,
    mismatch_distance,
    overhang_damage,
    pair_crosstalk,
    set_fidelity,
)


def test_clean_overhang_is_optimal():
    eff = calculate_efficiency("GTCT")
    assert eff.efficiency == pytest.approx(1.0)
    assert eff.warnings == ()
    assert eff.is_optimal


def test_tnna_pattern_penalized():
    eff = calculate_efficiency("TGGA")
    assert eff.warnings == ("tnna_pattern",)
    assert eff.efficiency == pytest.approx(0.70)


def test_specific_entry_scales_pattern_penalties():
    eff = calculate_efficiency("TAAA")
    assert "known_low_efficiency" in eff.warnings
    assert "tnna_pattern" in eff.warnings
    # pattern penalties at 30% strength on top of the measured value
    expected = SPECIFIC_PENALTIES["TAAA"]
    for name, f in eff.penalties[1:]:
        expected *= f
    assert eff.efficiency == pytest.approx(round(expected, 6))
    assert eff.efficiency < 0.70
    assert not eff.is_acceptable


def test_gc_extremes_flagged():
    assert "high_gc" in calculate_efficiency("GCCG").warnings
    assert "low_gc" in calculate_efficiency("ATTA").warnings


def test_palindrome_and_homopolymer_helpers():
    assert is_palindrome("GATC")
    assert not is_palindrome("GATG")
    assert self_mismatches("GATC") == 0
    assert is_homopolymer("AAAA")
    assert not is_homopolymer("AAAT")


def test_hamming_requires_equal_length():
    assert hamming_distance("ACGT", "ACGA") == 1
    with pytest.raises(ValueError):
        hamming_distance("ACG", "ACGT")


def test_mismatch_distance_uses_reverse_complement():
    # AGGT vs ACCT: 2 mismatches directly, ACCT rc = AGGT -> 0
    assert mismatch_distance("AGGT", "ACCT") == 0
    assert pair_crosstalk("AGGT", "ACCT") == 1.0


def test_crosstalk_probability_table():
    assert pair_crosstalk("AAGC", "AAGG") == pytest.approx(0.05)   # d = 1
    assert pair_crosstalk("AAGC", "ATGG") == pytest.approx(0.01)   # d = 2
    assert pair_crosstalk("AAGC", "TTCA") == 0.0


def test_set_fidelity_products():
    assert set_fidelity([]) == 1.0
    assert set_fidelity(["AAGC", "TTCA"]) == 1.0
    assert set_fidelity(["AAGC", "AAGG"]) == pytest.approx(0.95)
    assert set_fidelity(["AAGC", "AAGC"]) == 0.0
    assert set_fidelity(["GATC"]) == 0.0   # palindrome self-ligates


def test_fidelity_factor_is_incremental():
    chosen = ["AAGC", "TTCA"]
    new = "AAGG"
    assert math.isclose(set_fidelity(chosen) * fidelity_factor(chosen, new), set_fidelity(chosen + [new]))


def test_overhang_damage_points_at_conflict():
    damage = overhang_damage(["AAGC", "TTCA", "AAGG"])
    assert damage[1] == 0.0
    assert damage[0] == pytest.approx(0.05)
    assert damage[2] == pytest.approx(0.05)
    pairs = crosstalk_pairs(["AAGC", "TTCA", "AAGG"])
    assert [(i, j) for i, j, _ in pairs] == [(0, 2)]
    assert pairs[0][2] == pytest.approx(0.05)


def test_overhang_memos_do_not_change_results():
    overhangs = ["AAGC", "AAGG", "GCTT", "TTCA"]
    before = (set_fidelity(overhangs), calculate_efficiency("AAGC"), mismatch_distance("AAGC", "GCTT"))
    calculate_efficiency.cache_clear()
    mismatch_distance.cache_clear()
    pair_crosstalk.cache_clear()
    assert (set_fidelity(overhangs), calculate_efficiency("AAGC"), mismatch_distance("AAGC", "GCTT")) == before
    assert calculate_efficiency.cache_info().maxsize is not None
    assert pair_crosstalk.cache_info().maxsize is not None
