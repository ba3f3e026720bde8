# File: fusionplanner/app/core/fusion/problem.py
# Version: v0.4.0
"""
Shared model of one junction-selection instance.

The scored pool is sorted by position; a solution is a strictly increasing list
of J pool indices. Fragment-size feasibility between consecutive picks reduces
to an index window, so the searches never enumerate infeasible neighbours:

    window(i) = { j : minFragmentSize <= pos[j] - pos[i] <= maxFragmentSize,
                      j <= next mandatory index after i }

The completion table answers "best score obtainable with r more picks after i"
while ignoring set fidelity:

    comp[0][i] = 0 if i may close the set else -inf
    comp[r][i] = max_{j in window(i)} (score[j] + comp[r-1][j])

Windows slide monotonically as i decreases, so each row is built in O(m) with a
monotonic deque. For linear sequences the table is exact; for circular ones the
closing fragment depends on the first pick, so a relaxed variant (used as an
upper bound) and a first-pick-conditioned variant (used by the DP) exist.

Every path whose steps stay on the table optimum is an equal-score optimal set;
`tied_paths` walks them in lexicographic order so the DP can apply the
fidelity tie-break.

Ties between equal-scoring sets go to the higher set fidelity, then to the
lexicographically smaller position list.
"""

from __future__ import annotations

__all__ = ["SearchProblem", "SearchOutcome", "NEG_INF", "SCORE_EPS"]

import logging
from bisect import bisect_left, bisect_right
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .control import CancelToken, check_cancel
from .fidelity import set_fidelity
from .parameters import Constraints
from .scoring import ScoredCandidate
from .validator import ConstraintValidator

logger = logging.getLogger(__name__)

NEG_INF = float("-inf")
SCORE_EPS = 1e-9


@dataclass
class SearchOutcome:
    indices: List[int]
    score: float
    fidelity: float
    nodes_explored: int
    optimal: bool
    feasible: bool
    notes: Dict[str, object] = field(default_factory=dict)
    seed: Optional[int] = None


class SearchProblem:
    def __init__(
        self,
        pool: Sequence[ScoredCandidate],
        sequence_length: int,
        overhang_length: int,
        junction_count: int,
        constraints: Constraints,
        mandatory_positions: Sequence[int] = (),
    ):
        self.n = sequence_length
        self.L = overhang_length
        self.J = junction_count
        self.constraints = constraints
        self.circular = constraints.circular
        self.min_frag = constraints.minFragmentSize
        self.max_frag = constraints.maxFragmentSize
        self.min_fidelity = constraints.minSetFidelity
        self.validator = ConstraintValidator(
            sequence_length, overhang_length, constraints, junction_count, mandatory_positions
        )

        mandatory = set(mandatory_positions)
        by_pos: Dict[int, ScoredCandidate] = {}
        for sc in pool:
            if sc.position in mandatory or self.validator.distance_ok(sc.position):
                by_pos.setdefault(sc.position, sc)
        self.pool: List[ScoredCandidate] = [by_pos[p] for p in sorted(by_pos)]
        self.m = len(self.pool)
        self.positions: List[int] = [c.position for c in self.pool]
        self.scores: List[float] = [c.composite for c in self.pool]
        self.overhangs: List[str] = [c.overhang for c in self.pool]

        index_of = {p: i for i, p in enumerate(self.positions)}
        self.mandatory_positions: List[int] = sorted(mandatory)
        self.missing_mandatory: List[int] = [p for p in self.mandatory_positions if p not in index_of]
        self.mandatory_idx: List[int] = [index_of[p] for p in self.mandatory_positions if p in index_of]
        self.is_mandatory: List[bool] = [False] * self.m
        for i in self.mandatory_idx:
            self.is_mandatory[i] = True

        # smallest mandatory index strictly greater than i (m when none)
        self._next_mand: List[int] = [self.m] * self.m
        nxt = self.m
        for i in range(self.m - 1, -1, -1):
            self._next_mand[i] = nxt
            if self.is_mandatory[i]:
                nxt = i
        self.first_mand = self.mandatory_idx[0] if self.mandatory_idx else self.m
        self.last_mand = self.mandatory_idx[-1] if self.mandatory_idx else -1

    # ---------- Structural checks ----------

    def precheck(self) -> Optional[str]:
        """Reason the instance cannot have any solution, or None."""
        if self.missing_mandatory:
            return "mandatory_not_in_pool"
        if len(self.mandatory_idx) > self.J:
            return "too_many_mandatory"
        if self.m < self.J:
            return "not_enough_candidates"
        fragments = self.J if self.circular else self.J + 1
        if fragments * self.min_frag > self.n or fragments * self.max_frag < self.n:
            return "fragment_bounds_unreachable"
        return None

    def window(self, i: int) -> Tuple[int, int]:
        p = self.positions[i]
        lo = bisect_left(self.positions, p + self.min_frag)
        hi = bisect_right(self.positions, p + self.max_frag) - 1
        return lo, min(hi, self._next_mand[i])

    def first_range(self) -> Tuple[int, int]:
        if self.circular:
            lo = 0
            hi = bisect_right(self.positions, self.max_frag - 1) - 1
        else:
            lo = bisect_left(self.positions, self.min_frag)
            hi = bisect_right(self.positions, self.max_frag) - 1
        return lo, min(hi, self.first_mand)

    def tail_ok(self, last: int, first: int) -> bool:
        if self.last_mand > last:
            return False
        if self.circular:
            closing = self.n - self.positions[last] + self.positions[first]
        else:
            closing = self.n - self.positions[last]
        return self.min_frag <= closing <= self.max_frag

    def relaxed_tail(self, last: int) -> bool:
        if self.last_mand > last:
            return False
        rest = self.n - self.positions[last]
        if self.circular:
            return rest <= self.max_frag
        return self.min_frag <= rest <= self.max_frag

    def span_ok(self, first: int, last: int, picks_done: int) -> bool:
        """Circular only: can the remaining fragments cover the arc from `last` back to `first`?"""
        remaining = self.J - picks_done + 1
        span = self.positions[first] + self.n - self.positions[last]
        return remaining * self.min_frag <= span <= remaining * self.max_frag

    # ---------- Completion tables ----------

    def completion_table(self, tail: Callable[[int], bool], cancel: Optional[CancelToken] = None) -> List[List[float]]:
        m = self.m
        table: List[List[float]] = [[0.0 if tail(i) else NEG_INF for i in range(m)]]
        for _ in range(1, self.J):
            check_cancel(cancel, "completion table")
            prev = table[-1]
            vals = [self.scores[j] + prev[j] if prev[j] != NEG_INF else NEG_INF for j in range(m)]
            cur = [NEG_INF] * m
            dq: deque = deque()   # indices ascending, values strictly ascending
            add = m - 1
            for i in range(m - 1, -1, -1):
                lo, hi = self.window(i)
                while add >= lo:
                    if vals[add] != NEG_INF:
                        while dq and vals[dq[0]] <= vals[add]:
                            dq.popleft()
                        dq.appendleft(add)
                    add -= 1
                while dq and dq[-1] > hi:
                    dq.pop()
                if dq:
                    cur[i] = vals[dq[-1]]
            table.append(cur)
        return table

    def reconstruct(self, first: int, table: List[List[float]]) -> List[int]:
        """Lexicographically smallest path achieving table's optimum from `first`."""
        path = [first]
        cur = first
        for r in range(self.J - 1, 0, -1):
            target = table[r][cur]
            lo, hi = self.window(cur)
            nxt = None
            for j in range(lo, hi + 1):
                below = table[r - 1][j]
                if below != NEG_INF and self.scores[j] + below >= target - SCORE_EPS:
                    nxt = j
                    break
            if nxt is None:
                raise RuntimeError("completion table reconstruction failed")
            path.append(nxt)
            cur = nxt
        return path

    def _tied_firsts(self, cancel: Optional[CancelToken] = None) -> Tuple[float, List[Tuple[int, List[List[float]]]], int]:
        """
        First picks that reach the fidelity-free optimum, with the completion
        table each one reconstructs from. Returns (optimum, [(first, table)], cells).
        """
        lo, hi = self.first_range()
        top = self.J - 1
        relaxed = self.completion_table(self.relaxed_tail, cancel)
        cells = self.m * self.J
        if not self.circular:
            reach = {i: self.scores[i] + relaxed[top][i] for i in range(lo, hi + 1) if relaxed[top][i] != NEG_INF}
            if not reach:
                return NEG_INF, [], cells
            best = max(reach.values())
            return best, [(i, relaxed) for i in sorted(reach) if reach[i] >= best - SCORE_EPS], cells

        # first picks in descending order of their relaxed bound
        firsts = sorted(
            (i for i in range(lo, hi + 1) if relaxed[top][i] != NEG_INF),
            key=lambda i: (-(self.scores[i] + relaxed[top][i]), i),
        )
        best = NEG_INF
        found: List[Tuple[int, List[List[float]], float]] = []
        for i in firsts:
            if self.scores[i] + relaxed[top][i] < best - SCORE_EPS:
                break
            cond = self.completion_table(lambda k, f=i: self.tail_ok(k, f), cancel)
            cells += self.m * self.J
            if cond[top][i] == NEG_INF:
                continue
            v = self.scores[i] + cond[top][i]
            best = max(best, v)
            found.append((i, cond, v))
        tied = sorted((i, cond) for i, cond, v in found if v >= best - SCORE_EPS)
        return best, tied, cells

    def best_path(self, cancel: Optional[CancelToken] = None) -> Tuple[Optional[List[int]], float, int]:
        """
        Highest-scoring size-feasible path ignoring fidelity (lexicographically
        smallest on ties).

        Returns (indices or None, score, table cells evaluated).
        """
        best, firsts, cells = self._tied_firsts(cancel)
        if not firsts:
            return None, NEG_INF, cells
        first, table = firsts[0]
        return self.reconstruct(first, table), best, cells

    def tied_paths(
        self, limit: int, cancel: Optional[CancelToken] = None
    ) -> Tuple[List[List[int]], float, int, bool]:
        """
        Every size-feasible path reaching the fidelity-free optimum, in
        lexicographic order, keeping at most `limit` of them.

        Returns (paths, optimum, table cells evaluated, truncated).
        """
        best, firsts, cells = self._tied_firsts(cancel)
        paths: List[List[int]] = []
        truncated = False

        def walk(path: List[int], table: List[List[float]], r: int) -> None:
            nonlocal truncated
            if r == 0:
                if len(paths) >= limit:
                    truncated = True
                else:
                    check_cancel(cancel, "tied paths", len(paths))
                    paths.append(list(path))
                return
            cur = path[-1]
            target = table[r][cur]
            lo, hi = self.window(cur)
            for j in range(lo, hi + 1):
                below = table[r - 1][j]
                if below == NEG_INF or self.scores[j] + below < target - SCORE_EPS:
                    continue
                path.append(j)
                walk(path, table, r - 1)
                path.pop()
                if truncated:
                    return

        for first, table in firsts:
            walk([first], table, self.J - 1)
            if truncated:
                break
        return paths, best, cells, truncated

    # ---------- Set helpers ----------

    def total(self, indices: Sequence[int]) -> float:
        return sum(self.scores[i] for i in indices)

    def overhangs_of(self, indices: Sequence[int]) -> List[str]:
        return [self.overhangs[i] for i in indices]

    def positions_of(self, indices: Sequence[int]) -> List[int]:
        return [self.positions[i] for i in indices]

    def fidelity(self, indices: Sequence[int]) -> float:
        return set_fidelity(self.overhangs_of(indices))

    def is_valid(self, indices: Sequence[int]) -> bool:
        if len(indices) != self.J:
            return False
        if self.mandatory_idx:
            chosen = set(indices)
            if any(i not in chosen for i in self.mandatory_idx):
                return False
        return self.validator.is_valid(self.positions_of(indices), self.overhangs_of(indices))

    @staticmethod
    def better(score: float, fid: float, idx: Sequence[int], best_score: float, best_fid: float, best_idx: Optional[Sequence[int]]) -> bool:
        if best_idx is None:
            return True
        if score > best_score + SCORE_EPS:
            return True
        if score < best_score - SCORE_EPS:
            return False
        if fid > best_fid + SCORE_EPS:
            return True
        if fid < best_fid - SCORE_EPS:
            return False
        return tuple(idx) < tuple(best_idx)

    # ---------- Fallback attempt ----------

    def evenly_spaced_attempt(self) -> List[int]:
        """Nearest pool entries to evenly spaced targets (mandatory ones kept)."""
        if not self.m:
            return []
        chosen = list(dict.fromkeys(self.mandatory_idx))[: self.J]
        need = self.J - len(chosen)
        if need > 0:
            parts = self.J if self.circular else self.J + 1
            step = self.n / parts
            offset = 0.0 if not self.circular else step / 2.0
            targets = [offset + step * (k + (0 if self.circular else 1)) for k in range(self.J)]
            taken = set(chosen)
            for t in targets:
                if need <= 0:
                    break
                k = bisect_left(self.positions, t)
                best = None
                for cand in sorted(range(max(0, k - 50), min(self.m, k + 50)), key=lambda j: (abs(self.positions[j] - t), j)):
                    if cand not in taken:
                        best = cand
                        break
                if best is not None:
                    chosen.append(best)
                    taken.add(best)
                    need -= 1
        return sorted(chosen)

    def infeasible(self, attempt: Optional[List[int]], nodes: int, reason: str, **notes) -> SearchOutcome:
        idx = sorted(attempt) if attempt else self.evenly_spaced_attempt()
        logger.info("Search infeasible: reason=%s, attempt=%s", reason, self.positions_of(idx))
        return SearchOutcome(
            indices=idx,
            score=self.total(idx),
            fidelity=self.fidelity(idx),
            nodes_explored=nodes,
            optimal=False,
            feasible=False,
            notes={"reason": reason, **notes},
        )
