# File: fusionplanner/app/core/fusion/validator.py
# Version: v0.2.0
"""
Hard-constraint validation for a complete junction set.

Fragment sizes from sorted junction positions p1 < ... < pJ over a sequence of n bp:
- linear:   [p1, p2 - p1, ..., n - pJ]     (termini are fixed boundaries)
- circular: [p2 - p1, ..., n - pJ + p1]    (last fragment wraps to the first junction)

Checks: junction count, duplicates, fragment-size bounds, clearance from both
termini (linear only: p >= d and n - (p + L) >= d), mandatory positions present,
set fidelity >= minSetFidelity. Every violation is reported.
"""

from __future__ import annotations

__all__ = ["ConstraintValidator", "ValidationReport", "fragment_sizes"]

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .fidelity import set_fidelity
from .parameters import Constraints
from .schemas import Violation

_EPS = 1e-12


def fragment_sizes(positions: Sequence[int], sequence_length: int, circular: bool) -> List[int]:
    ps = sorted(positions)
    if not ps:
        return [sequence_length]
    if circular:
        sizes = [b - a for a, b in zip(ps, ps[1:])]
        sizes.append(sequence_length - ps[-1] + ps[0])
        return sizes
    sizes = [ps[0]]
    sizes.extend(b - a for a, b in zip(ps, ps[1:]))
    sizes.append(sequence_length - ps[-1])
    return sizes


@dataclass
class ValidationReport:
    passed: bool
    violations: List[Violation] = field(default_factory=list)
    fragment_sizes: List[int] = field(default_factory=list)
    set_fidelity: float = 1.0


class ConstraintValidator:
    def __init__(
        self,
        sequence_length: int,
        overhang_length: int,
        constraints: Constraints,
        junction_count: Optional[int] = None,
        mandatory: Iterable[int] = (),
    ):
        self.n = sequence_length
        self.L = overhang_length
        self.constraints = constraints
        self.junction_count = junction_count
        self.mandatory = sorted(set(mandatory))

    # ---------- Fast checks (used inside search loops) ----------

    def sizes_ok(self, positions: Sequence[int]) -> bool:
        c = self.constraints
        return all(c.minFragmentSize <= s <= c.maxFragmentSize for s in fragment_sizes(positions, self.n, c.circular))

    def distance_ok(self, position: int) -> bool:
        if self.constraints.circular:
            return True
        d = self.constraints.minDistanceFromEnds
        return position >= d and self.n - (position + self.L) >= d

    def is_valid(self, positions: Sequence[int], overhangs: Sequence[str]) -> bool:
        if len(set(positions)) != len(positions):
            return False
        if not self.sizes_ok(positions):
            return False
        if not all(self.distance_ok(p) for p in positions):
            return False
        return set_fidelity(overhangs) + _EPS >= self.constraints.minSetFidelity

    # ---------- Full report ----------

    def validate(self, positions: Sequence[int], overhangs: Sequence[str]) -> ValidationReport:
        c = self.constraints
        violations: List[Violation] = []

        if self.junction_count is not None and len(positions) != self.junction_count:
            violations.append(Violation(constraint="junction_count", value=len(positions), limit=self.junction_count))

        seen = set()
        for i, p in enumerate(positions):
            if p in seen:
                violations.append(Violation(constraint="duplicate_position", index=i, value=p))
            seen.add(p)

        sizes = fragment_sizes(positions, self.n, c.circular)
        for i, s in enumerate(sizes):
            if s < c.minFragmentSize:
                violations.append(Violation(constraint="fragment_too_small", index=i, value=s, limit=c.minFragmentSize))
            elif s > c.maxFragmentSize:
                violations.append(Violation(constraint="fragment_too_large", index=i, value=s, limit=c.maxFragmentSize))

        for i, p in enumerate(positions):
            if not self.distance_ok(p):
                violations.append(Violation(constraint="too_close_to_end", index=i, value=p, limit=c.minDistanceFromEnds))

        for m in self.mandatory:
            if m not in seen:
                violations.append(Violation(constraint="mandatory_missing", value=m))

        fid = set_fidelity(overhangs)
        if fid + _EPS < c.minSetFidelity:
            violations.append(Violation(constraint="set_fidelity", value=round(fid, 6), limit=c.minSetFidelity))

        return ValidationReport(
            passed=not violations,
            violations=violations,
            fragment_sizes=sizes,
            set_fidelity=fid,
        )
