# File: fusionplanner/app/core/fusion/domestication.py
# Version: v0.4.0
"""
Internal recognition-site detection ("domestication").

A recognition motif inside the insert would be cut during assembly. One fix
is to place a junction inside the motif: each fragment then carries only part
of the site and the assembled product no longer contains it. Every such site
therefore becomes a mandatory junction and adds one fragment.

For each internal hit the detector:
- enumerates overhang offsets p in [start - L + 1, start + m - 1] (each overlaps
  the motif, so the cut splits it),
- scores each offset with the overhang-quality scorer,
- rejects palindromes/homopolymers and scores below MIN_JUNCTION_QUALITY,
- recommends the best option (valid first, then quality, then distance to the
  motif centre, then position).

Sites lying wholly inside the first/last enzyme window are the primary assembly
boundaries and are ignored.
"""

from __future__ import annotations

__all__ = ["DomesticationDetector", "MIN_JUNCTION_QUALITY", "mandatory_positions"]

import logging
from typing import List, Optional, Sequence, Tuple

from .cache import BoundedCache, NullCache
from .efficiency import is_homopolymer, is_palindrome
from .enzymes import ENZYMES, Enzyme
from .scanner import validate_sequence
from .schemas import (
    AdjacentSitePair,
    AlternativeEnzyme,
    DomesticationSite,
    DomesticationSummary,
    RecommendedJunction,
)
from .scoring import overhang_quality, sequence_digest

logger = logging.getLogger(__name__)

MIN_JUNCTION_QUALITY = 50.0
MIN_SITE_DISTANCE = 50


class DomesticationDetector:
    def __init__(
        self,
        enzyme: Enzyme,
        cache: Optional[BoundedCache | NullCache] = None,
        min_quality: float = MIN_JUNCTION_QUALITY,
        min_site_distance: int = MIN_SITE_DISTANCE,
    ):
        self.enzyme = enzyme
        self.cache = cache if cache is not None else NullCache()
        self.cache.bind_enzyme(enzyme.name)
        self.min_quality = min_quality
        self.min_site_distance = min_site_distance

    # ---------- Site discovery ----------

    def internal_sites(self, seq: str) -> List[Tuple[int, str]]:
        n = len(seq)
        w = self.enzyme.window
        m = len(self.enzyme.recognition)
        out = []
        for start, orientation in self.enzyme.find_sites(seq):
            if start + m <= w or start >= n - w:
                continue
            out.append((start, orientation))
        return out

    def _options(self, seq: str, start: int) -> List[RecommendedJunction]:
        L = self.enzyme.overhang_length
        m = len(self.enzyme.recognition)
        options: List[RecommendedJunction] = []
        for p in range(start - L + 1, start + m):
            if p < 0 or p + L > len(seq):
                continue
            oh = seq[p : p + L]
            quality = overhang_quality(seq, p, L)
            valid = not is_palindrome(oh) and not is_homopolymer(oh) and quality >= self.min_quality
            options.append(RecommendedJunction(position=p, overhang=oh, quality=quality, valid=valid))
        centre = start + m / 2.0
        options.sort(key=lambda o: (not o.valid, -o.quality, abs(o.position + L / 2.0 - centre), o.position))
        return options

    # ---------- Summary ----------

    def detect(self, sequence: str) -> DomesticationSummary:
        seq = validate_sequence(sequence, self.enzyme)
        key = ("domestication", sequence_digest(seq), self.enzyme.name, self.min_quality, self.min_site_distance)
        summary = self.cache.get_or_compute(key, lambda: self._detect(seq))
        return summary.model_copy(deep=True)

    def _detect(self, seq: str) -> DomesticationSummary:
        sites: List[DomesticationSite] = []
        motif_fwd = self.enzyme.recognition
        for start, orientation in self.internal_sites(seq):
            options = self._options(seq, start)
            best = options[0] if options else None
            has_valid = any(o.valid for o in options)
            sites.append(
                DomesticationSite(
                    motif=motif_fwd if orientation == "forward" else self.enzyme.recognition_rc,
                    position=start,
                    orientation=orientation,
                    recommendedJunction=best,
                    hasValidOption=has_valid,
                    optionsConsidered=len(options),
                )
            )

        if not sites:
            status = "compatible"
        elif all(s.hasValidOption for s in sites):
            status = "auto-fixable"
        else:
            status = "needs-attention"

        adjacent = [
            AdjacentSitePair(first=a.position, second=b.position, distance=b.position - a.position)
            for a, b in zip(sites, sites[1:])
            if b.position - a.position < self.min_site_distance
        ]

        summary = DomesticationSummary(
            enzyme=self.enzyme.name,
            status=status,
            sites=sites,
            additionalFragments=len(sites),
            adjacentSitePairs=adjacent,
            alternativeEnzymes=self.alternative_enzymes(seq),
        )
        logger.info(
            "Domestication %s: status=%s, internal_sites=%d, adjacent_pairs=%d",
            self.enzyme.name, status, len(sites), len(adjacent),
        )
        return summary

    def alternative_enzymes(self, seq: str) -> List[AlternativeEnzyme]:
        """Other supported enzymes ranked by internal-site count (site-free first)."""
        out: List[AlternativeEnzyme] = []
        for name, enz in ENZYMES.items():
            if name == self.enzyme.name:
                continue
            count = len(DomesticationDetector(enz, min_quality=self.min_quality).internal_sites(seq))
            out.append(AlternativeEnzyme(enzyme=name, siteCount=count, compatible=count == 0))
        out.sort(key=lambda a: (not a.compatible, a.siteCount, a.enzyme))
        return out


def resolve_sites(sites: Sequence[DomesticationSite]) -> Tuple[List[int], List[DomesticationSite]]:
    """Split sites into recommended junction positions and sites with no valid option."""
    positions: List[int] = []
    unresolved: List[DomesticationSite] = []
    for s in sites:
        if s.hasValidOption and s.recommendedJunction is not None:
            positions.append(s.recommendedJunction.position)
        else:
            unresolved.append(s)
    return sorted(set(positions)), unresolved


def mandatory_positions(summary: DomesticationSummary) -> List[int]:
    """Recommended junction positions of every site that has a valid option."""
    return resolve_sites(summary.sites)[0]
