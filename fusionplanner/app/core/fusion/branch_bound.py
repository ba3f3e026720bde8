# File: fusionplanner/app/core/fusion/branch_bound.py
# Version: v0.3.0
"""
Exact Branch & Bound over increasing junction subsets.

- Children of a node are the pool entries inside the fragment-size window of
  the last pick (or the first-pick range at the root); mandatory junctions can
  never be skipped.
- Upper bound of a child = partial score + child score + fidelity-free
  completion (`SearchProblem.completion_table`); children are expanded in
  descending bound order and the loop stops once a bound falls below the
  incumbent.
- Set fidelity only shrinks as overhangs are added, so a partial set already
  below `minSetFidelity` is pruned.
- `optimal` is reported False only when the node budget ran out; if that
  happens before any complete set is found, the fidelity-free best path is
  returned when it passes validation.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .control import CancelToken, SearchBudget, check_cancel
from .fidelity import fidelity_factor
from .problem import NEG_INF, SCORE_EPS, SearchOutcome, SearchProblem

logger = logging.getLogger(__name__)

MAX_JUNCTIONS = 6


class _BudgetExhausted(Exception):
    pass


def run_branch_bound(
    problem: SearchProblem,
    budget: SearchBudget,
    cancel: Optional[CancelToken] = None,
    seed: Optional[int] = None,
) -> SearchOutcome:
    reason = problem.precheck()
    if reason:
        return problem.infeasible(None, 0, reason)

    J = problem.J
    scores = problem.scores
    overhangs = problem.overhangs
    min_fid = problem.min_fidelity
    relaxed = problem.completion_table(problem.relaxed_tail, cancel)

    best_idx: Optional[List[int]] = None
    best_score = NEG_INF
    best_fid = -1.0
    nodes = 0
    leaves = 0

    def expand(chosen: List[int], score: float, fid: float) -> None:
        nonlocal best_idx, best_score, best_fid, nodes, leaves
        nodes += 1
        if nodes > budget.max_nodes:
            raise _BudgetExhausted()
        check_cancel(cancel, "branch_bound", nodes)

        depth = len(chosen)
        if depth == J:
            leaves += 1
            if not problem.tail_ok(chosen[-1], chosen[0]) or fid + SCORE_EPS < min_fid:
                return
            if problem.better(score, fid, chosen, best_score, best_fid, best_idx):
                best_idx, best_score, best_fid = list(chosen), score, fid
                logger.debug("B&B incumbent: score=%.4f fid=%.4f positions=%s", score, fid, problem.positions_of(chosen))
            return

        r = J - depth - 1
        lo, hi = problem.first_range() if depth == 0 else problem.window(chosen[-1])
        kids = []
        for j in range(lo, hi + 1):
            c = relaxed[r][j]
            if c != NEG_INF:
                kids.append((score + scores[j] + c, j))
        kids.sort(key=lambda t: (-t[0], t[1]))

        chosen_oh = [overhangs[k] for k in chosen]
        for ub, j in kids:
            if best_idx is not None:
                if ub < best_score - SCORE_EPS:
                    break
                if ub <= best_score + SCORE_EPS and best_fid >= 1.0 - SCORE_EPS:
                    if tuple(chosen + [j]) > tuple(best_idx[: depth + 1]):
                        continue
            new_fid = fid * fidelity_factor(chosen_oh, overhangs[j])
            if new_fid + SCORE_EPS < min_fid:
                continue
            if problem.circular and depth > 0 and not problem.span_ok(chosen[0], j, depth + 1):
                continue
            expand(chosen + [j], score + scores[j], new_fid)

    exhausted = False
    try:
        expand([], 0.0, 1.0)
    except _BudgetExhausted:
        exhausted = True
        nodes = budget.max_nodes

    logger.info(
        "B&B summary: J=%d, pool=%d, nodes=%d, leaves=%d, exhausted=%s, best=%s",
        J, problem.m, nodes, leaves, str(exhausted),
        f"{best_score:.3f}" if best_idx is not None else "none",
    )

    if best_idx is None:
        attempt, attempt_score, _ = problem.best_path(cancel)
        if exhausted and attempt is not None and problem.is_valid(attempt):
            # budget ran out before any leaf: fall back to the fidelity-free optimum when it validates
            return SearchOutcome(
                indices=attempt,
                score=attempt_score,
                fidelity=problem.fidelity(attempt),
                nodes_explored=nodes,
                optimal=False,
                feasible=True,
                notes={"leaves": leaves, "budget_exhausted": True, "fallback": "dp_path"},
            )
        return problem.infeasible(attempt, nodes, "budget_exhausted" if exhausted else "no_feasible_set")

    return SearchOutcome(
        indices=best_idx,
        score=best_score,
        fidelity=best_fid,
        nodes_explored=nodes,
        optimal=not exhausted,
        feasible=True,
        notes={"leaves": leaves, "budget_exhausted": exhausted},
    )
