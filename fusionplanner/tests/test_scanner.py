# File: fusionplanner/tests/test_scanner.py
# Version: v0.1.0
"""
Sequence validation, enzyme lookup and candidate enumeration.
"""

from __future__ import annotations

import pytest

from fusionplanner.app.core.fusion.enzymes import ENZYMES, get_enzyme, supported_enzymes
from fusionplanner.app.core.fusion.errors import InputError
from fusionplanner.app.core.fusion.scanner import SequenceScanner, clean_sequence, validate_sequence


def test_enzyme_lookup_is_case_insensitive_and_alias_aware():
    assert get_enzyme("bsai").name == "BsaI"
    assert get_enzyme("BpiI").name == "BbsI"
    assert get_enzyme("sapi").overhang_length == 3
    assert set(supported_enzymes()) == set(ENZYMES)
    with pytest.raises(InputError) as exc:
        get_enzyme("EcoRI")
    assert exc.value.field == "enzyme"


def test_enzyme_window_and_minimum_length():
    bsai = get_enzyme("BsaI")
    assert bsai.window == 11
    assert bsai.min_sequence_length == 44
    assert bsai.recognition_rc == "GAGACC"


def test_find_sites_both_strands():
    bsai = get_enzyme("BsaI")
    seq = "A" * 20 + "GGTCTC" + "A" * 20 + "GAGACC" + "A" * 20
    assert bsai.find_sites(seq) == [(20, "forward"), (46, "reverse")]


def test_clean_and_validate():
    bsai = get_enzyme("BsaI")
    assert clean_sequence(" ac gt\nAC ") == "ACGTAC"
    with pytest.raises(InputError):
        validate_sequence("", bsai)
    with pytest.raises(InputError) as exc:
        validate_sequence("ACGTN" * 20, bsai)
    assert exc.value.details["invalid"] == ["N"]
    with pytest.raises(InputError) as exc:
        validate_sequence("ACGT" * 5, bsai)
    assert exc.value.details["minimum"] == 44


def test_scan_covers_every_offset_except_hard_filters(random_sequence):
    seq = random_sequence(300, seed=3)
    scanner = SequenceScanner(get_enzyme("BsaI"))
    cands = scanner.scan(seq.lower())
    stats = scanner.last_statistics

    positions = [c.position for c in cands]
    assert positions == sorted(positions)
    assert stats.offsets_considered == 300 - 4 + 1
    assert stats.candidates + sum(stats.rejected.values()) == stats.offsets_considered
    for c in cands:
        assert c.overhang == seq[c.position : c.position + 4]
        assert "palindrome" not in c.flags
        assert len(set(c.overhang)) > 1


def test_scan_forbidden_regions_and_windows(random_sequence):
    seq = random_sequence(300, seed=4)
    scanner = SequenceScanner(get_enzyme("BsaI"))
    cands = scanner.scan(seq, forbidden=[(100, 150)])
    assert all(c.position + 4 <= 100 or c.position >= 150 for c in cands)

    windowed = scanner.scan(seq, windows=[(50, 80)])
    assert windowed
    assert all(50 <= c.position and c.position + 4 <= 80 for c in windowed)


def test_make_candidate_flags_and_context():
    seq = "ACGT" * 5 + "TAAA" + "GCGC" * 10
    scanner = SequenceScanner(get_enzyme("BsaI"))
    cand = scanner.make_candidate(seq, 20)
    assert cand.overhang == "TAAA"
    assert cand.low_efficiency
    assert cand.reverse_complement == "TTTA"
    assert cand.upstream == seq[10:20]
    assert cand.downstream == seq[24:34]
    with pytest.raises(InputError):
        scanner.make_candidate(seq, len(seq) - 2)


def test_circular_context_wraps():
    seq = "GGGGGCCCCC" + "ACGT" * 10
    scanner = SequenceScanner(get_enzyme("BsaI"))
    cand = scanner.make_candidate(seq, 2, circular=True)
    assert cand.upstream == seq[-8:] + seq[:2]
