# File: fusionplanner/tests/conftest.py
# Version: v0.1.0
"""
Test bootstrap: ensure project root is on sys.path so 'fusionplanner.*' imports work.

Also provides:
- `stub_evaluator`: a fast, deterministic PrimerEvaluator (GC-balance based),
  so search tests do not depend on primer3 timing.
- `random_sequence`: seeded ACGT generator that avoids internal sites of an enzyme.
- `make_pool`: builds a synthetic scored pool from (position, score, overhang).
"""
import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]  # repo root (../.. from this file)
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fusionplanner.app.core.fusion.efficiency import gc_count  # noqa: E402
from fusionplanner.app.core.fusion.enzymes import get_enzyme  # noqa: E402
from fusionplanner.app.core.fusion.scanner import Candidate  # noqa: E402
from fusionplanner.app.core.fusion.scoring import ScoredCandidate, SubScores  # noqa: E402
from fusionplanner.app.core.primer.evaluator import HomologyEvaluation, RiskEvaluation  # noqa: E402
from fusionplanner.app.core.primer.thermodynamics import revcomp  # noqa: E402


class StubEvaluator:
    """Scores a region by GC balance only; pure and thread-safe."""

    cache_token = "stub-gc-balance"

    def evaluate_region(self, region: str) -> HomologyEvaluation:
        if len(region) < 15:
            return HomologyEvaluation(score=50.0, length=len(region), issues=("region_too_short",))
        gc = 100.0 * gc_count(region) / len(region)
        score = max(0.0, 100.0 - 1.5 * abs(gc - 50.0))
        return HomologyEvaluation(score=round(score, 4), length=len(region), gc=gc)

    def evaluate_risk(self, forward_region: str, reverse_region: str, template: str, circular: bool = False) -> RiskEvaluation:
        return RiskEvaluation(score=100.0)


@pytest.fixture
def stub_evaluator():
    return StubEvaluator()


@pytest.fixture
def random_sequence():
    def _make(length: int, seed: int = 1, enzyme: str = "BsaI") -> str:
        enz = get_enzyme(enzyme)
        rng = random.Random(seed)
        while True:
            seq = "".join(rng.choice("ACGT") for _ in range(length))
            if not enz.find_sites(seq):
                return seq
    return _make


@pytest.fixture
def make_pool():
    def _make(entries):
        pool = []
        for pos, score, oh in entries:
            cand = Candidate(
                position=pos,
                overhang=oh,
                reverse_complement=revcomp(oh),
                gc_count=gc_count(oh),
                efficiency=1.0,
            )
            sub = SubScores(score, score, score, score, score)
            pool.append(ScoredCandidate(candidate=cand, sub_scores=sub, composite=float(score)))
        return pool
    return _make
