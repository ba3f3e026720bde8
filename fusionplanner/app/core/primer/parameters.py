# File: fusionplanner/app/core/primer/parameters.py
# Version: v1.1.0
"""
Pydantic model for homology-region (junction primer) evaluation parameters.

The fusion engine asks the primer evaluator to rate the ~25 nt region that the
assembly primers anneal to on each side of a junction. These parameters set the
thermodynamic windows used by that evaluation.

Usage:
    from fusionplanner.app.core.primer.parameters import PrimerEvaluationParameters
"""

from __future__ import annotations

from pydantic import BaseModel, Field, conint, confloat


class Weights(BaseModel):
    """Relative weights of the per-feature homology scores (normalized at use)."""
    wTm: float = 0.15
    wGC: float = 0.10
    wLength: float = 0.10
    wGCClamp: float = 0.10
    wHomopolymer: float = 0.05
    wHairpin: float = 0.15
    wHomodimer: float = 0.10
    wThreePrime: float = 0.15
    wG4: float = 0.10


class PrimerEvaluationParameters(BaseModel):
    # Homology region
    homologyLength: conint(ge=10, le=50) = Field(25, description="Annealing region length (nt)")
    minHomologyLength: conint(ge=5) = Field(15, description="Regions shorter than this get a neutral score")

    # Temperatures (range, °C)
    tmMin: confloat(ge=0) = Field(55.0, description="Lower bound of the ideal Tm window")
    tmMax: confloat(ge=0) = Field(65.0, description="Upper bound of the ideal Tm window")
    tmMethod: str = Field("PRIMER3", description="PRIMER3 | NN | WALLACE")

    # GC content (%)
    gcMin: confloat(ge=0, le=100) = Field(40.0, description="Minimum ideal GC percentage")
    gcMax: confloat(ge=0, le=100) = Field(60.0, description="Maximum ideal GC percentage")

    # Structure/sequence constraints
    homopolymerMax: conint(ge=1) = Field(4, description="Max run of identical bases before penalties")
    gcClampWindow: conint(ge=1) = Field(5, description="3' window inspected for the GC clamp")
    hairpinDgMin: float = Field(-3.0, description="Hairpin ΔG (kcal/mol) tolerated without penalty")
    homodimerDgMin: float = Field(-6.0, description="Homodimer ΔG (kcal/mol) tolerated without penalty")
    threePrimeDgMin: float = Field(-9.0, description="3' end ΔG (kcal/mol) below which the end is too sticky")

    # Off-target screen
    offtargetWindow: conint(ge=4, le=16) = Field(8, description="3' k-mer length for mispriming lookups")

    weights: Weights = Field(default_factory=Weights)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        if self.tmMax < self.tmMin:
            raise ValueError("tmMax must be >= tmMin")
        if self.gcMax < self.gcMin:
            raise ValueError("gcMax must be >= gcMin")
        if self.minHomologyLength > self.homologyLength:
            raise ValueError("minHomologyLength must be <= homologyLength")
