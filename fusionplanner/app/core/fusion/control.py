# File: fusionplanner/app/core/fusion/control.py
# Version: v0.2.0
"""
Request-scoped search controls: cooperative cancellation and work budgets.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from .errors import CancellationError


class CancelToken:
    """Thread-safe cancellation flag checked by the search loops."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "search", nodes_explored: int = 0) -> None:
        if self._event.is_set():
            raise CancellationError(stage, nodes_explored)


def check_cancel(token: Optional[CancelToken], stage: str, nodes_explored: int = 0) -> None:
    if token is not None:
        token.raise_if_cancelled(stage, nodes_explored)


@dataclass
class SearchBudget:
    max_nodes: int = 200_000          # Branch & Bound node expansions
    max_iterations: int = 2_000       # Monte Carlo evaluated perturbations
    max_restarts: int = 200           # Monte Carlo initial-draw attempts
    max_repair_iterations: int = 25   # DP fidelity repair ceiling
    repair_radius: int = 30           # DP repair search window (bp) around a junction
    max_tied_paths: int = 256         # DP equal-score paths examined before repair
