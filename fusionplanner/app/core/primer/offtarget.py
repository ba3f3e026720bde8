# File: fusionplanner/app/core/primer/offtarget.py
# Version: v0.3.0
"""
Off-target priming counters.

Approach:
- Index every k-mer of the template on both strands once.
- A primer's 3' window (length k) is looked up in the index; every hit beyond the
  intended binding site is a potential mispriming event.
- Exact k-mer matching replaces the older ungapped sliding scan: scoring runs over
  every junction candidate of a sequence, so lookups must be O(1).
- The index is not memoized here. Callers that score many primers against one
  template build it once and pass it in (see `ThermoPrimerEvaluator.index_cache`).
"""

from __future__ import annotations

from collections import Counter
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .thermodynamics import revcomp

THREE_PRIME_WINDOW = 8


def build_kmer_index(template: str, k: int = THREE_PRIME_WINDOW, circular: bool = False) -> Mapping[str, int]:
    """Read-only k-mer counts on both strands of `template` (wrapping around if circular)."""
    t = template.upper()
    if circular and len(t) >= k:
        t = t + t[: k - 1]
    index: Counter = Counter()
    for strand in (t, revcomp(t)):
        for i in range(0, len(strand) - k + 1):
            index[strand[i : i + k]] += 1
    return MappingProxyType(dict(index))


def count_offtargets(
    primer: str,
    template: str,
    k: int = THREE_PRIME_WINDOW,
    circular: bool = False,
    index: Optional[Mapping[str, int]] = None,
) -> Tuple[int, int]:
    """
    Count template sites where the primer's 3' window could prime.

    `index`, when given, must come from `build_kmer_index(template, k, circular)`.

    Returns:
        (total_hits, offtarget_hits) where offtarget_hits excludes the intended site.
    """
    p = primer.upper()
    if len(p) < k or len(template) < k:
        return 0, 0
    if index is None:
        index = build_kmer_index(template, k, circular)
    hits = index.get(p[-k:], 0)
    return hits, max(0, hits - 1)
