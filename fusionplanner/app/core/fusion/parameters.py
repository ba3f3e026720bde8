# File: fusionplanner/app/core/fusion/parameters.py
# Version: v1.0.0
"""
Pydantic models for fusion-site optimization parameters.

- `ScoringWeights` renormalizes to sum 1 on construction and also accepts a
  5-element list ([1, 1, 1, 1, 1] -> 0.2 each) or a preset name.
- `Constraints`, `BioContext`, `AutoDomestication` mirror the JSON request body.
- `OptimizationParams` bundles everything one optimization request needs.

Usage:
    from fusionplanner.app.core.fusion.parameters import OptimizationParams
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, conint, confloat, model_validator

from .schemas import DomesticationSite

WEIGHT_KEYS: Tuple[str, ...] = (
    "overhangQuality",
    "forwardPrimer",
    "reversePrimer",
    "riskFactors",
    "biologicalContext",
)

WEIGHT_PRESETS: Dict[str, Tuple[float, float, float, float, float]] = {
    "balanced": (0.20, 0.20, 0.20, 0.25, 0.15),
    "fidelity_first": (0.35, 0.15, 0.15, 0.25, 0.10),
    "primer_quality": (0.15, 0.25, 0.25, 0.25, 0.10),
    "biological": (0.15, 0.15, 0.15, 0.25, 0.30),
}


class Algorithm(str, Enum):
    AUTO = "auto"
    BRANCH_BOUND = "branch_bound"
    DP_VALIDATED = "dp_validated"
    MONTE_CARLO = "monte_carlo"


class ScoringWeights(BaseModel):
    """Composite-score weights; always normalized to sum 1."""
    overhangQuality: confloat(ge=0) = 0.20
    forwardPrimer: confloat(ge=0) = 0.20
    reversePrimer: confloat(ge=0) = 0.20
    riskFactors: confloat(ge=0) = 0.25
    biologicalContext: confloat(ge=0) = 0.15

    @model_validator(mode="before")
    @classmethod
    def _coerce_input(cls, data):
        if isinstance(data, str):
            preset = WEIGHT_PRESETS.get(data)
            if preset is None:
                raise ValueError(f"Unknown weight preset '{data}'. Known: {', '.join(WEIGHT_PRESETS)}")
            return dict(zip(WEIGHT_KEYS, preset))
        if isinstance(data, (list, tuple)):
            if len(data) != len(WEIGHT_KEYS):
                raise ValueError(f"weights list must have {len(WEIGHT_KEYS)} entries")
            return dict(zip(WEIGHT_KEYS, data))
        return data

    @model_validator(mode="after")
    def _normalize(self):
        total = sum(getattr(self, k) for k in WEIGHT_KEYS)
        if total <= 0:
            raise ValueError("at least one scoring weight must be positive")
        if abs(total - 1.0) < 1e-12:
            # already normalized; keeps save/load round trips stable
            return self
        for k in WEIGHT_KEYS:
            object.__setattr__(self, k, getattr(self, k) / total)
        return self

    @classmethod
    def preset(cls, name: str) -> "ScoringWeights":
        return cls.model_validate(name)

    def as_tuple(self) -> Tuple[float, float, float, float, float]:
        return tuple(getattr(self, k) for k in WEIGHT_KEYS)  # type: ignore[return-value]


class Constraints(BaseModel):
    minFragmentSize: conint(ge=1) = Field(200, description="Smallest fragment allowed (bp)")
    maxFragmentSize: conint(ge=1) = Field(5000, description="Largest fragment allowed (bp)")
    minDistanceFromEnds: conint(ge=0) = Field(50, description="Junction clearance from termini (linear only)")
    minSetFidelity: confloat(gt=0, le=1) = Field(0.90, description="Required set fidelity")
    circular: bool = False

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.minFragmentSize >= self.maxFragmentSize:
            raise ValueError("minFragmentSize must be < maxFragmentSize")
        return self


class ProteinDomain(BaseModel):
    start: conint(ge=0)
    end: conint(ge=1)
    name: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.end <= self.start:
            raise ValueError("protein domain end must be > start")
        return self


class BioContext(BaseModel):
    isCodingSequence: bool = False
    codingFrame: conint(ge=0, le=2) = 0
    proteinDomains: List[ProteinDomain] = Field(default_factory=list)
    scarPreference: Literal["coding", "linker", "nonCoding"] = "nonCoding"

    def cache_key(self) -> str:
        """Stable string identity used by the sub-score cache."""
        return json.dumps(self.model_dump(), sort_keys=True, separators=(",", ":"))


class AutoDomestication(BaseModel):
    enabled: bool = False
    sites: List[DomesticationSite] = Field(default_factory=list)
    additionalFragments: conint(ge=0) = 0


class OptimizationParams(BaseModel):
    algorithm: Algorithm = Algorithm.AUTO
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    constraints: Constraints = Field(default_factory=Constraints)
    bioContext: BioContext = Field(default_factory=BioContext)
    manualCandidates: Optional[List[conint(ge=0)]] = Field(
        None, description="Restrict the candidate pool to these junction positions"
    )
    autoDomestication: AutoDomestication = Field(default_factory=AutoDomestication)
    effectiveFragments: conint(ge=1) = Field(4, description="Fragment count after domestication splits")

    # Search controls
    randomSeed: Optional[int] = Field(None, description="Monte Carlo seed (settings default when omitted)")
    maxNodes: Optional[conint(ge=1)] = Field(None, description="Branch & Bound node budget")
    maxIterations: Optional[conint(ge=1)] = Field(None, description="Monte Carlo perturbation budget")

    def junction_count(self) -> int:
        """J = effectiveFragments - 1 for linear sequences, effectiveFragments if circular."""
        return self.effectiveFragments - (0 if self.constraints.circular else 1)
