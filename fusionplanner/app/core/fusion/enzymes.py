# File: fusionplanner/app/core/fusion/enzymes.py
# Version: v0.2.0
"""
Type IIS enzymes supported for Golden Gate junction design.

Each enzyme cuts outside its (non-palindromic) recognition motif and leaves a
single-stranded overhang of fixed length. `window` is the footprint of one
recognition-plus-cut event: motif + spacer + overhang.
"""

from __future__ import annotations

__all__ = ["Enzyme", "ENZYMES", "get_enzyme", "supported_enzymes"]

from dataclasses import dataclass
from typing import Dict, List, Tuple

from fusionplanner.app.core.primer.thermodynamics import revcomp
from .errors import InputError

# Minimum sequence length, in enzyme windows
MIN_LENGTH_WINDOWS = 4


@dataclass(frozen=True)
class Enzyme:
    name: str
    recognition: str
    cut_offset: int        # bases between motif end and top-strand cut
    overhang_length: int

    @property
    def recognition_rc(self) -> str:
        return revcomp(self.recognition)

    @property
    def window(self) -> int:
        return len(self.recognition) + self.cut_offset + self.overhang_length

    @property
    def min_sequence_length(self) -> int:
        return MIN_LENGTH_WINDOWS * self.window

    def find_sites(self, sequence: str) -> List[Tuple[int, str]]:
        """All motif hits on both strands as (top-strand start, 'forward'|'reverse'), by position."""
        s = sequence.upper()
        hits: List[Tuple[int, str]] = []
        for motif, orientation in ((self.recognition, "forward"), (self.recognition_rc, "reverse")):
            start = 0
            while True:
                idx = s.find(motif, start)
                if idx == -1:
                    break
                hits.append((idx, orientation))
                start = idx + 1
            if self.recognition == self.recognition_rc:
                break
        return sorted(hits)

    def count_sites(self, sequence: str) -> int:
        return len(self.find_sites(sequence))


ENZYMES: Dict[str, Enzyme] = {
    "BsaI": Enzyme("BsaI", "GGTCTC", 1, 4),
    "BbsI": Enzyme("BbsI", "GAAGAC", 2, 4),
    "BsmBI": Enzyme("BsmBI", "CGTCTC", 1, 4),
    "Esp3I": Enzyme("Esp3I", "CGTCTC", 1, 4),
    "SapI": Enzyme("SapI", "GCTCTTC", 1, 3),
}

# Isoschizomers / common alternate names
_ALIASES: Dict[str, str] = {
    "BPII": "BbsI",
    "BSAI-HFV2": "BsaI",
    "ECO31I": "BsaI",
    "LGUI": "SapI",
}


def get_enzyme(name: str) -> Enzyme:
    """Case-insensitive, alias-aware lookup; unknown names raise InputError."""
    key = (name or "").strip()
    for known, enz in ENZYMES.items():
        if known.upper() == key.upper():
            return enz
    alias = _ALIASES.get(key.upper())
    if alias:
        return ENZYMES[alias]
    raise InputError(
        f"Unknown enzyme '{name}'. Supported: {', '.join(ENZYMES)}",
        field="enzyme",
    )


def supported_enzymes() -> List[str]:
    return list(ENZYMES)
