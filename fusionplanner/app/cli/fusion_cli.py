# File: fusionplanner/app/cli/fusion_cli.py
# Version: v0.2.0
"""
CLI for fusion-site (junction) optimization.

- Reads a single-record FASTA.
- Parameters JSON (optional) uses the camelCase OptimizationParams schema;
  command-line flags override the matching fields.
- Writes fusion_sites.json (the full OptimizationResult) into --outdir.

Usage:
    python -m fusionplanner.app.cli.fusion_cli \
        --fasta data/input/insert.fasta \
        --outdir data/out/fusion \
        [--enzyme BsaI] [--fragments 4] [--circular] \
        [--algorithm auto|branch_bound|dp_validated|monte_carlo] \
        [--params-json fusionplanner/app/config/fusion_params.json] [--seed 7] [--domesticate]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from Bio import SeqIO

from fusionplanner.app.core.config import settings
from fusionplanner.app.core.fusion.errors import FusionError
from fusionplanner.app.core.fusion.optimizer import FusionSiteOptimizer
from fusionplanner.app.core.fusion.parameters import Algorithm, OptimizationParams
from fusionplanner.app.core.fusion.scanner import clean_sequence

logger = logging.getLogger(__name__)

# ---------- IO helpers ----------

def read_single_fasta(path: Path) -> Tuple[str, str]:
    """Return (record id, cleaned sequence). The file must hold exactly one record."""
    records = list(SeqIO.parse(str(path), "fasta"))
    if not records:
        raise ValueError(f"No FASTA record found in {path}.")
    if len(records) > 1:
        raise ValueError(f"{path} holds {len(records)} FASTA records. Provide a single-sequence FASTA.")
    rec = records[0]
    return rec.id or "sequence", clean_sequence(str(rec.seq))


def build_params(args: argparse.Namespace) -> OptimizationParams:
    data = {}
    if args.params_json is not None:
        data = json.loads(args.params_json.read_text(encoding="utf-8"))
    params = OptimizationParams.model_validate(data)

    update = {}
    if args.fragments is not None:
        update["effectiveFragments"] = args.fragments
    if args.algorithm is not None:
        update["algorithm"] = Algorithm(args.algorithm)
    if args.seed is not None:
        update["randomSeed"] = args.seed
    if args.circular:
        update["constraints"] = params.constraints.model_copy(update={"circular": True})
    if args.domesticate:
        update["autoDomestication"] = params.autoDomestication.model_copy(update={"enabled": True})
    # round-trip through validation so overrides are checked too
    return OptimizationParams.model_validate({**params.model_dump(), **update})


# ---------- Main ----------

def main(argv: Optional[List[str]] = None) -> None:
    p = argparse.ArgumentParser(description="Choose Golden Gate junctions for a sequence")
    p.add_argument("--fasta", required=True, type=Path)
    p.add_argument("--outdir", required=True, type=Path)
    p.add_argument("--enzyme", default="BsaI")
    p.add_argument("--fragments", type=int, help="Effective fragment count (overrides JSON)")
    p.add_argument("--circular", action="store_true", help="Treat the sequence as circular")
    p.add_argument("--algorithm", choices=[a.value for a in Algorithm])
    p.add_argument("--params-json", type=Path, help="Path to JSON with OptimizationParams (camelCase)")
    p.add_argument("--seed", type=int, help="Monte Carlo seed")
    p.add_argument("--domesticate", action="store_true", help="Split internal enzyme sites with mandatory junctions")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        name, seq = read_single_fasta(args.fasta)
        params = build_params(args)
        logger.debug("Parameters: %s", params.model_dump_json())
        args.outdir.mkdir(parents=True, exist_ok=True)

        result = FusionSiteOptimizer(args.enzyme).optimize(seq, params)

        payload = {"sequence_name": name, "length": len(seq), **result.model_dump(mode="json")}
        out_json = args.outdir / "fusion_sites.json"
        out_json.write_text(json.dumps(payload, indent=2), encoding="utf-8")

        status = "feasible" if result.feasible else "INFEASIBLE"
        print(
            f"[OK] Wrote {out_json} ({status}, {len(result.solution.junctions)} junctions, "
            f"fidelity {result.solution.setFidelity:.3f}, algorithm {result.algorithm})"
        )

    except (FusionError, ValueError, OSError) as ex:
        print(f"[ERROR] {ex}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
