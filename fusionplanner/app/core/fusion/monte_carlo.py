# File: fusionplanner/app/core/fusion/monte_carlo.py
# Version: v0.3.0
"""
Seeded stochastic search for large junction counts.

1) Initial set: walk the pool from left to right picking uniformly among the
   entries that can still be completed (fidelity-free completion table), so
   every draw respects fragment sizes and mandatory junctions. Draws failing
   the closing fragment or set fidelity are retried up to `max_restarts`
   times, then the DP path is tried as a last start.
2) Hill climbing: move one non-mandatory junction to a random pool entry
   between its neighbours. Valid moves that do not lower the total score are
   accepted (plateau moves allowed).
3) After `sweep_after` non-improving moves, a deterministic sweep tries every
   single-junction move; the search ends when the sweep finds no strict
   improvement or the iteration budget is spent.

Same seed + same input => same output. `optimal` is always False.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Tuple

from .control import CancelToken, SearchBudget, check_cancel
from .problem import NEG_INF, SCORE_EPS, SearchOutcome, SearchProblem

logger = logging.getLogger(__name__)

DEFAULT_SEED = 7
MIN_SWEEP_AFTER = 50


def _sample(problem: SearchProblem, relaxed: List[List[float]], rng: random.Random) -> Optional[List[int]]:
    J = problem.J
    lo, hi = problem.first_range()
    options = [j for j in range(lo, hi + 1) if relaxed[J - 1][j] != NEG_INF]
    if not options:
        return None
    path = [rng.choice(options)]
    for r in range(J - 2, -1, -1):
        lo, hi = problem.window(path[-1])
        options = [j for j in range(lo, hi + 1) if relaxed[r][j] != NEG_INF]
        if problem.circular:
            options = [j for j in options if problem.span_ok(path[0], j, len(path) + 1)]
        if not options:
            return None
        path.append(rng.choice(options))
    return path


def _initial(problem: SearchProblem, budget: SearchBudget, rng: random.Random, cancel: Optional[CancelToken]) -> Tuple[Optional[List[int]], int]:
    relaxed = problem.completion_table(problem.relaxed_tail, cancel)
    attempts = 0
    for attempts in range(1, budget.max_restarts + 1):
        check_cancel(cancel, "monte_carlo_init", attempts)
        path = _sample(problem, relaxed, rng)
        if path is not None and problem.is_valid(path):
            return path, attempts
    path, _, _ = problem.best_path(cancel)
    if path is not None and problem.is_valid(path):
        return path, attempts
    return None, attempts


def _slot_range(problem: SearchProblem, current: List[int], slot: int) -> Tuple[int, int]:
    lo = current[slot - 1] + 1 if slot > 0 else 0
    hi = current[slot + 1] - 1 if slot + 1 < len(current) else problem.m - 1
    return lo, hi


def run_monte_carlo(
    problem: SearchProblem,
    budget: SearchBudget,
    cancel: Optional[CancelToken] = None,
    seed: Optional[int] = None,
) -> SearchOutcome:
    seed = DEFAULT_SEED if seed is None else seed
    reason = problem.precheck()
    if reason:
        out = problem.infeasible(None, 0, reason)
        out.seed = seed
        return out

    rng = random.Random(seed)
    current, restarts = _initial(problem, budget, rng, cancel)
    if current is None:
        attempt, _, _ = problem.best_path(cancel)
        out = problem.infeasible(attempt, 0, "no_valid_initial_set", restarts=restarts)
        out.seed = seed
        return out

    mutable = [s for s in range(problem.J) if not problem.is_mandatory[current[s]]]
    cur_score = problem.total(current)
    cur_fid = problem.fidelity(current)
    best, best_score, best_fid = list(current), cur_score, cur_fid

    sweep_after = max(MIN_SWEEP_AFTER, 10 * problem.J)
    iterations = 0
    stall = 0
    sweeps = 0
    accepted = 0

    while mutable and iterations < budget.max_iterations:
        if stall >= sweep_after:
            sweeps += 1
            move = None
            for slot in mutable:
                lo, hi = _slot_range(problem, current, slot)
                for k in range(lo, hi + 1):
                    if k == current[slot]:
                        continue
                    if iterations >= budget.max_iterations:
                        break
                    iterations += 1
                    check_cancel(cancel, "monte_carlo_sweep", iterations)
                    trial = current[:slot] + [k] + current[slot + 1 :]
                    if not problem.is_valid(trial):
                        continue
                    sc, f = problem.total(trial), problem.fidelity(trial)
                    if move is None:
                        if sc > cur_score + SCORE_EPS:
                            move = (sc, f, trial)
                    elif problem.better(sc, f, trial, move[0], move[1], move[2]):
                        move = (sc, f, trial)
            if move is None:
                break
            current, cur_score, cur_fid = move[2], move[0], move[1]
            stall = 0
        else:
            iterations += 1
            check_cancel(cancel, "monte_carlo", iterations)
            slot = rng.choice(mutable)
            lo, hi = _slot_range(problem, current, slot)
            if hi < lo:
                stall += 1
                continue
            k = rng.randint(lo, hi)
            if k == current[slot]:
                stall += 1
                continue
            trial = current[:slot] + [k] + current[slot + 1 :]
            if not problem.is_valid(trial):
                stall += 1
                continue
            sc = problem.total(trial)
            if sc < cur_score - SCORE_EPS:
                stall += 1
                continue
            stall = 0 if sc > cur_score + SCORE_EPS else stall + 1
            accepted += 1
            current, cur_score, cur_fid = trial, sc, problem.fidelity(trial)

        if problem.better(cur_score, cur_fid, current, best_score, best_fid, best):
            best, best_score, best_fid = list(current), cur_score, cur_fid

    check_cancel(cancel, "monte_carlo", iterations)
    logger.info(
        "MC summary: J=%d, pool=%d, seed=%d, iterations=%d, accepted=%d, sweeps=%d, restarts=%d, best=%.3f fid=%.4f",
        problem.J, problem.m, seed, iterations, accepted, sweeps, restarts, best_score, best_fid,
    )
    return SearchOutcome(
        indices=best,
        score=best_score,
        fidelity=best_fid,
        nodes_explored=iterations,
        optimal=False,
        feasible=True,
        notes={"restarts": restarts, "sweeps": sweeps, "accepted": accepted},
        seed=seed,
    )
