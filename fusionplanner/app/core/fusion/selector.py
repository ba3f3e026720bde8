# File: fusionplanner/app/core/fusion/selector.py
# Version: v0.2.0
"""
Algorithm selection and dispatch.

Auto policy depends only on the junction count J:
    J <= 6  -> branch_bound
    J <= 10 -> dp_validated
    else    -> monte_carlo
An explicit algorithm above its ceiling is rejected before any search work.
"""

from __future__ import annotations

__all__ = ["OptimizationSelector", "STRATEGIES", "MAX_JUNCTIONS", "select_algorithm", "resolve_algorithm"]

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

from . import branch_bound, dp_validated, monte_carlo
from .control import CancelToken, SearchBudget
from .errors import AlgorithmIncompatibleError
from .parameters import Algorithm, Constraints
from .problem import SearchOutcome, SearchProblem
from .scoring import ScoredCandidate

logger = logging.getLogger(__name__)

Strategy = Callable[[SearchProblem, SearchBudget, Optional[CancelToken], Optional[int]], SearchOutcome]

STRATEGIES: Dict[Algorithm, Strategy] = {
    Algorithm.BRANCH_BOUND: branch_bound.run_branch_bound,
    Algorithm.DP_VALIDATED: dp_validated.run_dp_validated,
    Algorithm.MONTE_CARLO: monte_carlo.run_monte_carlo,
}

MAX_JUNCTIONS: Dict[Algorithm, Optional[int]] = {
    Algorithm.BRANCH_BOUND: branch_bound.MAX_JUNCTIONS,
    Algorithm.DP_VALIDATED: dp_validated.MAX_JUNCTIONS,
    Algorithm.MONTE_CARLO: None,
}


def select_algorithm(junction_count: int) -> Algorithm:
    if junction_count <= branch_bound.MAX_JUNCTIONS:
        return Algorithm.BRANCH_BOUND
    if junction_count <= dp_validated.MAX_JUNCTIONS:
        return Algorithm.DP_VALIDATED
    return Algorithm.MONTE_CARLO


def resolve_algorithm(requested: Algorithm | str, junction_count: int) -> Algorithm:
    """Concrete algorithm for a request; raises AlgorithmIncompatibleError."""
    requested = Algorithm(requested)
    if requested == Algorithm.AUTO:
        return select_algorithm(junction_count)
    ceiling = MAX_JUNCTIONS[requested]
    if ceiling is not None and junction_count > ceiling:
        raise AlgorithmIncompatibleError(requested.value, junction_count, ceiling)
    return requested


@dataclass
class OptimizationSelector:
    constraints: Constraints
    budget: SearchBudget = field(default_factory=SearchBudget)
    seed: Optional[int] = None

    def select(
        self,
        pool: Sequence[ScoredCandidate],
        sequence_length: int,
        overhang_length: int,
        junction_count: int,
        mandatory: Sequence[int] = (),
        algorithm: Algorithm | str = Algorithm.AUTO,
        cancel: Optional[CancelToken] = None,
    ) -> tuple[Algorithm, SearchProblem, SearchOutcome]:
        chosen = resolve_algorithm(algorithm, junction_count)
        problem = SearchProblem(pool, sequence_length, overhang_length, junction_count, self.constraints, mandatory)
        logger.info(
            "Selector: requested=%s, using=%s, J=%d, pool=%d (of %d), mandatory=%d",
            Algorithm(algorithm).value, chosen.value, junction_count, problem.m, len(pool), len(problem.mandatory_positions),
        )
        outcome = STRATEGIES[chosen](problem, self.budget, cancel, self.seed)
        return chosen, problem, outcome
