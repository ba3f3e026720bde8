# File: fusionplanner/tests/test_concurrency.py
# Version: v0.1.0
"""
Concurrent optimizations over the shared caches give the same answers as
sequential ones.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from fusionplanner.app.core.fusion.cache import BoundedCache
from fusionplanner.app.core.fusion.optimizer import FusionSiteOptimizer
from fusionplanner.app.core.fusion.parameters import Constraints, OptimizationParams


def test_concurrent_requests_match_sequential(random_sequence, stub_evaluator):
    requests = []
    for i in range(6):
        seq = random_sequence(400 + 50 * i, seed=60 + i)
        params = OptimizationParams(
            effectiveFragments=3 + i % 2,
            constraints=Constraints(minFragmentSize=60, maxFragmentSize=300, minDistanceFromEnds=20, minSetFidelity=0.8),
        )
        requests.append((seq, params))

    score_cache = BoundedCache(100_000, name="concurrency-scores")
    dom_cache = BoundedCache(16, name="concurrency-domestication")

    def run(req):
        seq, params = req
        opt = FusionSiteOptimizer(
            "BsaI", evaluator=stub_evaluator, score_cache=score_cache, domestication_cache=dom_cache
        )
        return opt.optimize(seq, params).model_dump()

    sequential = [FusionSiteOptimizer("BsaI", evaluator=stub_evaluator, use_cache=False).optimize(s, p).model_dump() for s, p in requests]
    with ThreadPoolExecutor(max_workers=4) as ex:
        concurrent = list(ex.map(run, requests + requests))

    assert concurrent[: len(requests)] == sequential
    assert concurrent[len(requests) :] == sequential
    assert score_cache.stats.hits > 0
