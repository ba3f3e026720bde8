# File: fusionplanner/app/core/fusion/errors.py
# Version: v0.1.0
"""
Exceptions raised by the fusion-site engine.

Infeasible instances are NOT errors: the selector returns a result with
`feasible=False` and the violations of its best attempt.
"""

from __future__ import annotations

__all__ = ["FusionError", "InputError", "AlgorithmIncompatibleError", "CancellationError"]

from typing import Dict, Optional


class FusionError(RuntimeError):
    """Base class for fusion-site engine errors."""


class InputError(FusionError, ValueError):
    """Malformed request: bad alphabet, short sequence, unknown enzyme, bad fragment count."""
    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, object]] = None):
        self.field = field
        self.details = dict(details or {})
        super().__init__(message)


class AlgorithmIncompatibleError(FusionError):
    """Explicit algorithm choice cannot handle the requested junction count."""
    def __init__(self, algorithm: str, junctions: int, max_junctions: int):
        self.algorithm = algorithm
        self.junctions = junctions
        self.max_junctions = max_junctions
        super().__init__(
            f"Algorithm '{algorithm}' supports at most {max_junctions} junctions, {junctions} requested"
        )


class CancellationError(FusionError):
    """Cooperative cancellation observed during search."""
    def __init__(self, stage: str = "search", nodes_explored: int = 0):
        self.stage = stage
        self.nodes_explored = nodes_explored
        super().__init__(f"Optimization cancelled during {stage} after {nodes_explored} nodes")
