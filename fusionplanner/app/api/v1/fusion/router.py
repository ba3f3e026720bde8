# File: fusionplanner/app/api/v1/fusion/router.py
# Version: v0.1.0
"""
Fusion-site endpoints:
- POST /optimize        ← choose junctions for a sequence
- POST /domestication   ← internal recognition sites and suggested splits
- GET /parameters       ← returns current optimization parameters
- PUT /parameters       ← validates & persists new parameters

Error mapping: InputError -> 400, AlgorithmIncompatibleError -> 422.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from fusionplanner.app.config.config_fusion import ensure_current_exists, load_current_params, save_current_params
from fusionplanner.app.core.fusion.errors import AlgorithmIncompatibleError, InputError
from fusionplanner.app.core.fusion.optimizer import FusionSiteOptimizer
from fusionplanner.app.core.fusion.parameters import OptimizationParams
from fusionplanner.app.core.fusion.schemas import DomesticationSummary, OptimizationResult

from .models import DomesticationRequest, OptimizeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/fusion", tags=["fusion"])


def _input_error(exc: InputError) -> HTTPException:
    detail = {"message": str(exc), "field": exc.field}
    if exc.details:
        detail["details"] = exc.details
    return HTTPException(status_code=400, detail=detail)


@router.get("/parameters", response_model=OptimizationParams)
def get_parameters():
    """
    Return the current editable optimization parameters.
    If not initialized, create fusion_params.json from defaults and return it.
    """
    _, params = ensure_current_exists()
    return params


@router.put("/parameters", response_model=OptimizationParams)
def update_parameters(payload: OptimizationParams):
    save_current_params(payload)
    return payload


@router.post("/optimize", response_model=OptimizationResult)
def optimize(payload: OptimizeRequest):
    """
    Choose junctions for `sequence`. If `parameters` is omitted, the server uses
    the stored parameters (fusion_params.json, with default fallback).
    """
    params = payload.parameters or load_current_params()
    try:
        optimizer = FusionSiteOptimizer(payload.enzyme)
        return optimizer.optimize(payload.sequence, params)
    except InputError as exc:
        logger.info("Rejected optimize request: %s", exc)
        raise _input_error(exc)
    except AlgorithmIncompatibleError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "algorithm": exc.algorithm,
                "junctions": exc.junctions,
                "maxJunctions": exc.max_junctions,
            },
        )


@router.post("/domestication", response_model=DomesticationSummary)
def domestication(payload: DomesticationRequest):
    """Internal recognition sites of `enzyme` and the junctions that would split them."""
    try:
        return FusionSiteOptimizer(payload.enzyme).domestication_summary(payload.sequence)
    except InputError as exc:
        raise _input_error(exc)
