# File: fusionplanner/app/config/config_fusion.py
# Version: v0.1.0
"""
Fusion-site optimization parameters loader/saver.

- Reads defaults from: fusionplanner/app/config/fusion_params_default.json
- Reads/writes current from: fusionplanner/app/config/fusion_params.json
- Validates payloads with OptimizationParams (Pydantic) from core/fusion/parameters.py

Usage:
    from fusionplanner.app.config.config_fusion import load_current_params, save_current_params

Notes
-----
- JSON uses the camelCase request schema, for example:

  {
    "algorithm": "auto",
    "weights": { "overhangQuality": 0.2, "forwardPrimer": 0.2, "reversePrimer": 0.2,
                 "riskFactors": 0.25, "biologicalContext": 0.15 },
    "constraints": { "minFragmentSize": 200, "maxFragmentSize": 5000,
                     "minDistanceFromEnds": 50, "minSetFidelity": 0.9, "circular": false },
    "effectiveFragments": 4
  }

Thread-safety:
- Uses atomic writes (tmp + replace) to avoid partial/dirty writes.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Tuple

from fusionplanner.app.core.fusion.parameters import OptimizationParams

_THIS_DIR = Path(__file__).resolve().parent
CONFIG_DIR = _THIS_DIR
DEFAULT_FILE = CONFIG_DIR / "fusion_params_default.json"
CURRENT_FILE = CONFIG_DIR / "fusion_params.json"


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _atomic_write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    os.replace(tmp, path)


def load_default_params() -> OptimizationParams:
    """Load default optimization parameters from fusion_params_default.json."""
    return OptimizationParams.model_validate(_read_json(DEFAULT_FILE) or {})


def load_current_params(fallback_to_default: bool = True) -> OptimizationParams:
    """Current (editable) parameters; defaults when the file is missing and fallback is on."""
    payload = _read_json(CURRENT_FILE)
    if not payload and fallback_to_default:
        return load_default_params()
    return OptimizationParams.model_validate(payload or {})


def save_current_params(params: OptimizationParams) -> None:
    _atomic_write_json(CURRENT_FILE, params.model_dump(mode="json"))


def ensure_current_exists() -> Tuple[bool, OptimizationParams]:
    """
    Ensure fusion_params.json exists; if not, initialize from defaults.
    Returns (created, params).
    """
    if CURRENT_FILE.exists():
        return False, load_current_params()
    defaults = load_default_params()
    save_current_params(defaults)
    return True, defaults
