# File: fusionplanner/app/core/primer/thermodynamics.py
# Version: v0.2.0
"""
Thermodynamics utilities for junction homology regions.

Implements:
- Reverse complement and GC percentage
- Melting temperature via primer3 (default), Biopython nearest-neighbor or Wallace
- Hairpin / homodimer / 3' end-stability ΔG via primer3's thermodynamic alignment

Notes:
- primer3 reports ΔG in cal/mol; the helpers here return kcal/mol
  (more negative == more stable == worse for a primer).
- primer3 refuses sequences of 60 nt or more for hairpin/dimer calls; the homology
  regions scored by the fusion engine are far shorter, longer inputs are clipped
  to their 3' end.
"""

from __future__ import annotations

import primer3
from Bio.SeqUtils import MeltingTemp as mt

# Reaction conditions for a typical Golden Gate primer PCR (mM / nM)
DEFAULT_MV_CONC = 50.0
DEFAULT_DV_CONC = 2.0
DEFAULT_DNTP_CONC = 0.8
DEFAULT_DNA_CONC = 250.0

_PRIMER3_MAX_LEN = 59


def revcomp(seq: str) -> str:
    table = str.maketrans("ACGTacgt", "TGCAtgca")
    return seq.translate(table)[::-1]


def gc_percent(seq: str) -> float:
    if not seq:
        return 0.0
    s = seq.upper()
    gc = sum(1 for c in s if c in ("G", "C"))
    return 100.0 * gc / len(s)


def compute_tm(
    seq: str,
    method: str = "PRIMER3",
    mv_conc: float = DEFAULT_MV_CONC,
    dv_conc: float = DEFAULT_DV_CONC,
    dntp_conc: float = DEFAULT_DNTP_CONC,
    dna_conc: float = DEFAULT_DNA_CONC,
) -> float:
    """
    Melting temperature (°C).

    method:
      - "PRIMER3" (default): `primer3.calc_tm`
      - "NN": Biopython nearest-neighbor (SantaLucia table)
      - "WALLACE": Biopython Wallace rule

    Concentrations: monovalent/divalent/dNTP in mM, oligo in nM.
    """
    seq = (seq or "").upper()
    if not seq:
        return 0.0
    method_u = (method or "").upper()

    if method_u in ("PRIMER3", "P3"):
        return float(
            primer3.calc_tm(
                seq,
                mv_conc=mv_conc,
                dv_conc=dv_conc,
                dntp_conc=dntp_conc,
                dna_conc=dna_conc,
            )
        )
    if method_u == "WALLACE":
        return float(mt.Tm_Wallace(seq))
    if method_u == "NN":
        return float(
            mt.Tm_NN(
                seq,
                Na=mv_conc,
                Mg=dv_conc,
                dNTPs=dntp_conc,
                dnac1=dna_conc,
                dnac2=dna_conc,
            )
        )
    raise ValueError(f"Unknown Tm method: {method!r}")


def _clip(seq: str) -> str:
    s = seq.upper()
    return s[-_PRIMER3_MAX_LEN:] if len(s) > _PRIMER3_MAX_LEN else s


def hairpin_dg(seq: str) -> float:
    """Most stable hairpin ΔG (kcal/mol); 0.0 when no structure is found."""
    if not seq:
        return 0.0
    res = primer3.calc_hairpin(
        _clip(seq),
        mv_conc=DEFAULT_MV_CONC,
        dv_conc=DEFAULT_DV_CONC,
        dntp_conc=DEFAULT_DNTP_CONC,
        dna_conc=DEFAULT_DNA_CONC,
    )
    if not res.structure_found:
        return 0.0
    return min(0.0, res.dg / 1000.0)


def homodimer_dg(seq: str) -> float:
    """Most stable self-dimer ΔG (kcal/mol); 0.0 when no structure is found."""
    if not seq:
        return 0.0
    res = primer3.calc_homodimer(
        _clip(seq),
        mv_conc=DEFAULT_MV_CONC,
        dv_conc=DEFAULT_DV_CONC,
        dntp_conc=DEFAULT_DNTP_CONC,
        dna_conc=DEFAULT_DNA_CONC,
    )
    if not res.structure_found:
        return 0.0
    return min(0.0, res.dg / 1000.0)


def end_stability_dg(seq: str, template_rc: str) -> float:
    """
    3' end stability ΔG (kcal/mol) of `seq` annealed to `template_rc`.

    Strongly negative values mean a "sticky" 3' end that primes promiscuously.
    """
    if not seq or not template_rc:
        return 0.0
    res = primer3.calc_end_stability(
        _clip(seq),
        _clip(template_rc),
        mv_conc=DEFAULT_MV_CONC,
        dv_conc=DEFAULT_DV_CONC,
        dntp_conc=DEFAULT_DNTP_CONC,
        dna_conc=DEFAULT_DNA_CONC,
    )
    return min(0.0, res.dg / 1000.0)
