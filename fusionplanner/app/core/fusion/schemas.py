# File: fusionplanner/app/core/fusion/schemas.py
# Version: v0.2.0
"""
DTOs returned by the fusion-site engine (domestication summaries, solutions,
failure predictions and the overall optimization result).

Field names are camelCase to match the JSON contract of the HTTP API.
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, confloat

Severity = Literal["high", "medium", "low"]
Orientation = Literal["forward", "reverse"]
DomesticationStatus = Literal["compatible", "auto-fixable", "needs-attention"]
Recommendation = Literal["proceed", "proceed_with_caution", "redesign"]


# --- Domestication ---------------------------------------------------------------------------------

class RecommendedJunction(BaseModel):
    """Junction that splits an internal recognition site across two fragments."""
    position: int
    overhang: str
    quality: float
    valid: bool = True


class DomesticationSite(BaseModel):
    motif: str
    position: int = Field(..., description="0-based start of the motif on the top strand")
    orientation: Orientation
    recommendedJunction: Optional[RecommendedJunction] = None
    hasValidOption: bool = False
    optionsConsidered: int = 0


class AdjacentSitePair(BaseModel):
    first: int
    second: int
    distance: int


class AlternativeEnzyme(BaseModel):
    enzyme: str
    siteCount: int
    compatible: bool


class DomesticationSummary(BaseModel):
    enzyme: str
    status: DomesticationStatus
    sites: List[DomesticationSite] = Field(default_factory=list)
    additionalFragments: int = 0
    adjacentSitePairs: List[AdjacentSitePair] = Field(default_factory=list)
    alternativeEnzymes: List[AlternativeEnzyme] = Field(default_factory=list)


# --- Solutions ---------------------------------------------------------------------------------------

class JunctionDetail(BaseModel):
    position: int
    overhang: str
    composite: float
    overhangQuality: float
    forwardPrimer: float
    reversePrimer: float
    riskFactors: float
    biologicalContext: float
    efficiency: float
    mandatory: bool = False
    warnings: List[str] = Field(default_factory=list)


class Solution(BaseModel):
    junctions: List[int] = Field(default_factory=list)
    overhangs: List[str] = Field(default_factory=list)
    setFidelity: confloat(ge=0, le=1) = 1.0
    fragmentSizes: List[int] = Field(default_factory=list)
    totalScore: float = 0.0
    details: List[JunctionDetail] = Field(default_factory=list)


class Violation(BaseModel):
    constraint: str
    index: Optional[int] = None
    value: Optional[float] = None
    limit: Optional[float] = None


# --- Failure prediction ------------------------------------------------------------------------------

class Prediction(BaseModel):
    severity: Severity
    type: str
    probability: confloat(ge=0, le=1)
    message: str
    mitigation: Optional[str] = None
    positions: List[int] = Field(default_factory=list)


class FailureSummary(BaseModel):
    predictedSuccessRate: confloat(ge=0, le=1)
    high: int = 0
    medium: int = 0
    low: int = 0
    recommendation: Recommendation
    recommendationText: str


class FailurePrediction(BaseModel):
    predictions: List[Prediction] = Field(default_factory=list)
    summary: FailureSummary


# --- Result ------------------------------------------------------------------------------------------

class OptimizationResult(BaseModel):
    feasible: bool
    solution: Solution
    algorithm: str
    requestedAlgorithm: str
    nodesExplored: int = 0
    optimal: bool = False
    failurePrediction: Optional[FailurePrediction] = None
    violations: List[Violation] = Field(default_factory=list)
    mandatoryPositions: List[int] = Field(default_factory=list)
    seed: Optional[int] = None
    enzyme: str
    effectiveFragments: int
    junctionCount: int
    candidatesScanned: int = 0
