# File: fusionplanner/app/core/fusion/scanner.py
# Version: v0.3.0
"""
Sequence validation and junction-candidate enumeration.

A candidate is the overhang starting at a top-strand offset p (0-based):
    overhang = sequence[p : p + L]   (L = enzyme overhang length)
Every offset 0..n-L is considered. Palindromic overhangs (self-ligate) and
full homopolymers are infeasible and skipped; everything else is kept with
structural flags for the scorer to weigh.

Optional `forbidden` regions ([start, end) pairs) exclude any candidate whose
overhang overlaps them; `windows` restrict the scan to the given regions.
"""

from __future__ import annotations

__all__ = ["Candidate", "ScanStatistics", "SequenceScanner", "clean_sequence", "validate_sequence"]

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from fusionplanner.app.core.primer.thermodynamics import revcomp
from .efficiency import ACCEPTABLE_EFFICIENCY, calculate_efficiency, gc_count, is_homopolymer, is_palindrome
from .enzymes import Enzyme
from .errors import InputError

logger = logging.getLogger(__name__)

CONTEXT_LENGTH = 10
_VALID = re.compile(r"^[ACGT]+$")


@dataclass(frozen=True)
class Candidate:
    position: int
    overhang: str
    reverse_complement: str
    gc_count: int
    efficiency: float
    flags: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    upstream: str = ""
    downstream: str = ""

    @property
    def low_efficiency(self) -> bool:
        return "low_efficiency" in self.flags

    @property
    def high_gc(self) -> bool:
        return "high_gc" in self.flags


@dataclass
class ScanStatistics:
    sequence_length: int
    offsets_considered: int = 0
    candidates: int = 0
    rejected: Dict[str, int] = field(default_factory=dict)
    flagged: Dict[str, int] = field(default_factory=dict)
    mean_efficiency: float = 0.0


def clean_sequence(sequence: str) -> str:
    return re.sub(r"\s+", "", sequence or "").upper()


def validate_sequence(sequence: str, enzyme: Enzyme) -> str:
    """Normalize (strip whitespace, uppercase) and validate; raises InputError."""
    seq = clean_sequence(sequence)
    if not seq:
        raise InputError("Sequence is empty", field="sequence")
    if not _VALID.match(seq):
        bad = sorted(set(seq) - set("ACGT"))
        raise InputError(
            f"Sequence contains invalid characters: {''.join(bad[:10])}",
            field="sequence",
            details={"invalid": bad},
        )
    if len(seq) < enzyme.min_sequence_length:
        raise InputError(
            f"Sequence too short for {enzyme.name}: {len(seq)} bp < {enzyme.min_sequence_length} bp",
            field="sequence",
            details={"length": len(seq), "minimum": enzyme.min_sequence_length},
        )
    return seq


def _overlaps(start: int, end: int, regions: Sequence[Tuple[int, int]]) -> bool:
    return any(start < r_end and end > r_start for r_start, r_end in regions)


class SequenceScanner:
    """Enumerate junction candidates for one enzyme."""

    def __init__(self, enzyme: Enzyme, context_length: int = CONTEXT_LENGTH):
        self.enzyme = enzyme
        self.context_length = context_length
        self.last_statistics: Optional[ScanStatistics] = None

    def _context(self, seq: str, pos: int, circular: bool) -> Tuple[str, str]:
        n = len(seq)
        L = self.enzyme.overhang_length
        c = self.context_length
        if circular:
            up = "".join(seq[(pos - c + i) % n] for i in range(c))
            down = "".join(seq[(pos + L + i) % n] for i in range(c))
            return up, down
        return seq[max(0, pos - c) : pos], seq[pos + L : pos + L + c]

    def make_candidate(self, seq: str, pos: int, circular: bool = False) -> Candidate:
        """Build a candidate at `pos` without applying hard filters."""
        L = self.enzyme.overhang_length
        if pos < 0 or pos + L > len(seq):
            raise InputError(f"Junction position {pos} out of range", field="position", details={"position": pos})
        oh = seq[pos : pos + L]
        eff = calculate_efficiency(oh)
        flags = list(eff.warnings)
        if eff.efficiency < ACCEPTABLE_EFFICIENCY or "known_low_efficiency" in eff.warnings:
            flags.append("low_efficiency")
        if is_palindrome(oh):
            flags.append("palindrome")
        up, down = self._context(seq, pos, circular)
        return Candidate(
            position=pos,
            overhang=oh,
            reverse_complement=revcomp(oh),
            gc_count=gc_count(oh),
            efficiency=eff.efficiency,
            flags=tuple(dict.fromkeys(flags)),
            warnings=eff.warnings,
            upstream=up,
            downstream=down,
        )

    def scan(
        self,
        sequence: str,
        circular: bool = False,
        forbidden: Optional[Sequence[Tuple[int, int]]] = None,
        windows: Optional[Sequence[Tuple[int, int]]] = None,
    ) -> List[Candidate]:
        seq = validate_sequence(sequence, self.enzyme)
        L = self.enzyme.overhang_length
        stats = ScanStatistics(sequence_length=len(seq))
        reasons = {"palindrome": 0, "homopolymer": 0, "forbidden": 0, "outside_window": 0}
        out: List[Candidate] = []

        for pos in range(0, len(seq) - L + 1):
            stats.offsets_considered += 1
            oh = seq[pos : pos + L]
            if is_palindrome(oh):
                reasons["palindrome"] += 1
                continue
            if is_homopolymer(oh):
                reasons["homopolymer"] += 1
                continue
            if forbidden and _overlaps(pos, pos + L, forbidden):
                reasons["forbidden"] += 1
                continue
            if windows and not any(w_start <= pos and pos + L <= w_end for w_start, w_end in windows):
                reasons["outside_window"] += 1
                continue
            cand = self.make_candidate(seq, pos, circular)
            for flag in cand.flags:
                stats.flagged[flag] = stats.flagged.get(flag, 0) + 1
            out.append(cand)

        stats.candidates = len(out)
        stats.rejected = {k: v for k, v in reasons.items() if v}
        stats.mean_efficiency = sum(c.efficiency for c in out) / len(out) if out else 0.0
        self.last_statistics = stats

        logger.info(
            "Scan %s: len=%d, offsets=%d, candidates=%d, rejected=%s",
            self.enzyme.name, len(seq), stats.offsets_considered, stats.candidates, stats.rejected,
        )
        return out
