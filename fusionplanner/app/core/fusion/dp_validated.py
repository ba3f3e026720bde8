# File: fusionplanner/app/core/fusion/dp_validated.py
# Version: v0.3.0
"""
Dynamic programming with post-hoc validation and bounded fidelity repair.

1. DP over (pool index, junctions used) with fragment-size feasibility between
   adjacent picks. Circular instances condition on the first pick so the
   closing fragment is checked exactly.
2. Set fidelity is not decomposable, so the DP optimum can fail validation.
   Every path tied at the optimum score is walked (`SearchProblem.tied_paths`,
   up to `max_tied_paths`) and the valid one with the highest fidelity wins,
   lexicographically smallest after that.
3. Repair, only when no tied path validates: take the non-mandatory overhang
   that costs the most fidelity and swap it for a nearby pool entry (within
   `repair_radius` bp, keeping order and size/distance feasibility). A swap is
   kept only if neither score nor fidelity regresses and one of them improves.
   Stops when valid, when no swap qualifies, or at `max_repair_iterations`.

`optimal` is True when a valid tied path was found and the tie walk was not
truncated.
"""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from typing import List, Optional, Tuple

from .control import CancelToken, SearchBudget, check_cancel
from .fidelity import overhang_damage
from .problem import SCORE_EPS, SearchOutcome, SearchProblem

logger = logging.getLogger(__name__)

MAX_JUNCTIONS = 10


def _no_regression(sc: float, f: float, cur_score: float, cur_fid: float) -> bool:
    if sc < cur_score - SCORE_EPS or f < cur_fid - SCORE_EPS:
        return False
    return sc > cur_score + SCORE_EPS or f > cur_fid + SCORE_EPS


def _repair_step(
    problem: SearchProblem,
    current: List[int],
    cur_score: float,
    cur_fid: float,
    radius: int,
) -> Tuple[Optional[List[int]], float, float, int]:
    """One repair move. Returns (new set or None, score, fidelity, alternatives evaluated)."""
    damage = overhang_damage(problem.overhangs_of(current))
    order = sorted(
        (s for s in range(len(current)) if not problem.is_mandatory[current[s]] and damage[s] > 0.0),
        key=lambda s: (-damage[s], s),
    )
    evaluated = 0
    taken = set(current)
    for slot in order:
        pos = problem.positions[current[slot]]
        lo_pos = problem.positions[current[slot - 1]] if slot > 0 else -1
        hi_pos = problem.positions[current[slot + 1]] if slot + 1 < len(current) else problem.n
        lo = bisect_left(problem.positions, max(pos - radius, lo_pos + 1))
        hi = bisect_right(problem.positions, min(pos + radius, hi_pos - 1)) - 1

        best: Optional[Tuple[float, float, List[int]]] = None
        for k in range(lo, hi + 1):
            if k in taken:
                continue
            trial = current[:slot] + [k] + current[slot + 1 :]
            evaluated += 1
            positions = problem.positions_of(trial)
            if not problem.validator.sizes_ok(positions):
                continue
            if not problem.validator.distance_ok(problem.positions[k]):
                continue
            sc = problem.total(trial)
            f = problem.fidelity(trial)
            if not _no_regression(sc, f, cur_score, cur_fid):
                continue
            if best is None or problem.better(sc, f, trial, best[0], best[1], best[2]):
                best = (sc, f, trial)
        if best is not None:
            return best[2], best[0], best[1], evaluated
    return None, cur_score, cur_fid, evaluated


def _pick_tied(problem: SearchProblem, paths: List[List[int]], valid_only: bool) -> Optional[Tuple[List[int], float]]:
    """Highest-fidelity path (first in lexicographic order on ties)."""
    best: Optional[Tuple[List[int], float]] = None
    for path in paths:
        if valid_only and not problem.is_valid(path):
            continue
        f = problem.fidelity(path)
        if best is None or f > best[1] + SCORE_EPS:
            best = (path, f)
    return best


def run_dp_validated(
    problem: SearchProblem,
    budget: SearchBudget,
    cancel: Optional[CancelToken] = None,
    seed: Optional[int] = None,
) -> SearchOutcome:
    reason = problem.precheck()
    if reason:
        return problem.infeasible(None, 0, reason)

    paths, score, cells, truncated = problem.tied_paths(budget.max_tied_paths, cancel)
    nodes = cells + len(paths)
    if not paths:
        return problem.infeasible(None, nodes, "no_size_feasible_set")

    chosen = _pick_tied(problem, paths, valid_only=True)
    if chosen is not None:
        path, fid = chosen
        logger.info(
            "DP summary: J=%d, pool=%d, cells=%d, tied=%d%s, score=%.3f, fid=%.4f (no repair)",
            problem.J, problem.m, cells, len(paths), "+" if truncated else "", score, fid,
        )
        return SearchOutcome(
            indices=path, score=problem.total(path), fidelity=fid, nodes_explored=nodes,
            optimal=not truncated, feasible=True,
            notes={"repair_iterations": 0, "tied_paths": len(paths), "ties_truncated": truncated},
        )

    current, fid = _pick_tied(problem, paths, valid_only=False)
    cur_score = problem.total(current)
    iterations = 0
    while iterations < budget.max_repair_iterations:
        check_cancel(cancel, "dp_repair", nodes)
        if problem.is_valid(current):
            break
        nxt, sc, f, evaluated = _repair_step(problem, current, cur_score, fid, budget.repair_radius)
        nodes += evaluated
        iterations += 1
        if nxt is None:
            break
        logger.debug("DP repair %d: fid %.4f -> %.4f, score %.3f -> %.3f", iterations, fid, f, cur_score, sc)
        current, cur_score, fid = nxt, sc, f

    converged = problem.is_valid(current)
    logger.info(
        "DP summary: J=%d, pool=%d, cells=%d, tied=%d, repair_iterations=%d, converged=%s, fid=%.4f",
        problem.J, problem.m, cells, len(paths), iterations, str(converged), fid,
    )
    if not converged:
        return problem.infeasible(current, nodes, "repair_not_converged", repair_iterations=iterations)
    return SearchOutcome(
        indices=current,
        score=cur_score,
        fidelity=fid,
        nodes_explored=nodes,
        optimal=False,
        feasible=True,
        notes={"repair_iterations": iterations, "tied_paths": len(paths), "ties_truncated": truncated},
    )
