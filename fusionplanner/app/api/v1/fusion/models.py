# File: fusionplanner/app/api/v1/fusion/models.py
# Version: v0.1.0
"""
Request bodies for the fusion-site endpoints.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from fusionplanner.app.core.fusion.parameters import OptimizationParams


class OptimizeRequest(BaseModel):
    sequence: str = Field(..., description="Insert/backbone sequence (A/C/G/T, whitespace ignored)")
    enzyme: str = Field("BsaI", description="Type IIS enzyme name or alias")
    parameters: Optional[OptimizationParams] = Field(
        None, description="Optimization parameters; stored parameters are used when omitted"
    )


class DomesticationRequest(BaseModel):
    sequence: str
    enzyme: str = "BsaI"
