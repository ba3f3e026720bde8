# File: fusionplanner/app/core/fusion/optimizer.py
# Version: v0.4.0
"""
Fusion-site optimization facade.

Pipeline for one request:
    validate input -> resolve algorithm -> mandatory junctions (domestication)
    -> candidate pool (scan or manualCandidates) -> scoring -> selector
    -> validation report -> failure prediction -> OptimizationResult

The algorithm is resolved before any scanning or scoring so an incompatible
explicit choice fails immediately. Infeasible instances come back as a result
with `feasible=False`, the best attempt and its violations.

Shared state between requests is limited to the module-level caches below;
everything else is owned by the request.

Usage:
    from fusionplanner.app.core.fusion.optimizer import optimize_fusion_sites
    result = optimize_fusion_sites(seq, enzyme="BsaI", params=OptimizationParams(effectiveFragments=4))
"""

from __future__ import annotations

__all__ = ["FusionSiteOptimizer", "optimize_fusion_sites", "get_domestication_summary", "shared_caches"]

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from fusionplanner.app.core.config import settings
from fusionplanner.app.core.primer.evaluator import PrimerEvaluator, default_evaluator
from .batch_scoring import BatchOptions
from .cache import BoundedCache, NullCache
from .control import CancelToken, SearchBudget, check_cancel
from .domestication import DomesticationDetector, resolve_sites
from .enzymes import Enzyme, get_enzyme
from .errors import InputError
from .failure import FailurePredictor
from .parameters import Algorithm, OptimizationParams
from .problem import SearchOutcome, SearchProblem
from .scanner import Candidate, SequenceScanner, validate_sequence
from .schemas import (
    DomesticationSite,
    DomesticationSummary,
    JunctionDetail,
    OptimizationResult,
    Solution,
    Violation,
)
from .scoring import ScoredCandidate, ScoringEngine
from .selector import OptimizationSelector, resolve_algorithm
from .validator import fragment_sizes

logger = logging.getLogger(__name__)

# === Shared caches ============================================================
_SCORE_CACHE = BoundedCache(settings.SCORE_CACHE_SIZE, name="junction-scores")
_DOMESTICATION_CACHE = BoundedCache(settings.DOMESTICATION_CACHE_SIZE, name="domestication")


def shared_caches() -> Dict[str, BoundedCache]:
    return {"scores": _SCORE_CACHE, "domestication": _DOMESTICATION_CACHE}


def _budget_from_settings() -> SearchBudget:
    return SearchBudget(
        max_nodes=settings.BB_MAX_NODES,
        max_iterations=settings.MC_ITERATIONS,
        max_restarts=settings.MC_RESTARTS,
        max_repair_iterations=settings.DP_MAX_REPAIR_ITERATIONS,
        repair_radius=settings.DP_REPAIR_RADIUS,
        max_tied_paths=settings.DP_MAX_TIED_PATHS,
    )


# === Facade ===================================================================

class FusionSiteOptimizer:
    """Choose Golden Gate junctions for one enzyme."""

    def __init__(
        self,
        enzyme: Enzyme | str = "BsaI",
        evaluator: Optional[PrimerEvaluator] = None,
        use_cache: Optional[bool] = None,
        score_cache: Optional[BoundedCache | NullCache] = None,
        domestication_cache: Optional[BoundedCache | NullCache] = None,
        budget: Optional[SearchBudget] = None,
        batch: Optional[BatchOptions] = None,
    ):
        self.enzyme = enzyme if isinstance(enzyme, Enzyme) else get_enzyme(enzyme)
        use_cache = settings.CACHE_ENABLED if use_cache is None else use_cache
        if score_cache is None:
            score_cache = _SCORE_CACHE if use_cache else NullCache()
        if domestication_cache is None:
            domestication_cache = _DOMESTICATION_CACHE if use_cache else NullCache()
        self.scanner = SequenceScanner(self.enzyme)
        self.detector = DomesticationDetector(self.enzyme, cache=domestication_cache)
        self.engine = ScoringEngine(
            self.enzyme,
            evaluator=evaluator or default_evaluator(),
            cache=score_cache,
            batch=batch or BatchOptions(workers=settings.SCORING_WORKERS, chunk_size=settings.SCORING_CHUNK_SIZE),
        )
        self.budget = budget or _budget_from_settings()

    # ---------- Domestication ----------

    def domestication_summary(self, sequence: str) -> DomesticationSummary:
        return self.detector.detect(sequence)

    def _mandatory(self, seq: str, params: OptimizationParams) -> Tuple[List[int], List[DomesticationSite]]:
        """(mandatory junction positions, internal sites left unresolved)."""
        auto = params.autoDomestication
        if auto.enabled and auto.sites:
            sites = list(auto.sites)
        else:
            sites = self.detector.detect(seq).sites
        if not auto.enabled:
            return [], sites

        L = self.enzyme.overhang_length
        mandatory, unresolved = resolve_sites(sites)
        for p in mandatory:
            if p < 0 or p + L > len(seq):
                raise InputError(
                    f"Domestication junction {p} out of range",
                    field="autoDomestication",
                    details={"position": p},
                )
        return mandatory, unresolved

    # ---------- Candidate pool ----------

    def _pool(self, seq: str, params: OptimizationParams, mandatory: Sequence[int]) -> List[Candidate]:
        circular = params.constraints.circular
        if params.manualCandidates is not None:
            candidates = [self.scanner.make_candidate(seq, p, circular) for p in sorted(set(params.manualCandidates))]
        else:
            candidates = self.scanner.scan(seq, circular=circular)
        present = {c.position for c in candidates}
        extra = [self.scanner.make_candidate(seq, p, circular) for p in mandatory if p not in present]
        if extra:
            logger.debug("Adding %d mandatory junctions missing from the pool", len(extra))
            candidates = sorted(candidates + extra, key=lambda c: c.position)
        return candidates

    # ---------- Result assembly ----------

    @staticmethod
    def _detail(sc: ScoredCandidate, mandatory: bool) -> JunctionDetail:
        s = sc.sub_scores
        return JunctionDetail(
            position=sc.position,
            overhang=sc.overhang,
            composite=round(sc.composite, 4),
            overhangQuality=round(s.overhang_quality, 4),
            forwardPrimer=round(s.forward_primer, 4),
            reversePrimer=round(s.reverse_primer, 4),
            riskFactors=round(s.risk_factors, 4),
            biologicalContext=round(s.biological_context, 4),
            efficiency=sc.candidate.efficiency,
            mandatory=mandatory,
            warnings=list(sc.warnings),
        )

    def _result(
        self,
        seq: str,
        params: OptimizationParams,
        requested: Algorithm,
        used: Algorithm,
        problem: SearchProblem,
        outcome: SearchOutcome,
        unresolved: Sequence[DomesticationSite],
        scanned: int,
    ) -> OptimizationResult:
        chosen = [problem.pool[i] for i in sorted(outcome.indices)]
        positions = [c.position for c in chosen]
        overhangs = [c.overhang for c in chosen]
        mandatory = set(problem.mandatory_positions)

        report = problem.validator.validate(positions, overhangs)
        violations = list(report.violations)
        reason = outcome.notes.get("reason")
        if not outcome.feasible and reason and not any(v.constraint == reason for v in violations):
            violations.insert(0, Violation(constraint=str(reason)))
        feasible = outcome.feasible and report.passed

        solution = Solution(
            junctions=positions,
            overhangs=overhangs,
            setFidelity=round(report.set_fidelity, 6),
            fragmentSizes=fragment_sizes(positions, len(seq), params.constraints.circular) if positions else [],
            totalScore=round(sum(c.composite for c in chosen), 4),
            details=[self._detail(c, c.position in mandatory) for c in chosen],
        )
        prediction = None
        if chosen:
            predictor = FailurePredictor(min_set_fidelity=params.constraints.minSetFidelity)
            prediction = predictor.predict(chosen, report.set_fidelity, unresolved)

        return OptimizationResult(
            feasible=feasible,
            solution=solution,
            algorithm=used.value,
            requestedAlgorithm=requested.value,
            nodesExplored=outcome.nodes_explored,
            optimal=outcome.optimal and feasible,
            failurePrediction=prediction,
            violations=violations,
            mandatoryPositions=sorted(mandatory),
            seed=outcome.seed if used == Algorithm.MONTE_CARLO else None,
            enzyme=self.enzyme.name,
            effectiveFragments=params.effectiveFragments,
            junctionCount=params.junction_count(),
            candidatesScanned=scanned,
        )

    # ---------- Entry point ----------

    def optimize(
        self,
        sequence: str,
        params: Optional[OptimizationParams] = None,
        cancel: Optional[CancelToken] = None,
    ) -> OptimizationResult:
        params = params or OptimizationParams()
        seq = validate_sequence(sequence, self.enzyme)
        J = params.junction_count()
        if J < 1:
            raise InputError(
                "A linear assembly needs at least 2 fragments",
                field="effectiveFragments",
                details={"effectiveFragments": params.effectiveFragments},
            )
        requested = Algorithm(params.algorithm)
        used = resolve_algorithm(requested, J)
        check_cancel(cancel, "setup")

        logger.info(
            "Optimize: enzyme=%s, len=%d, circular=%s, fragments=%d, J=%d, algorithm=%s->%s",
            self.enzyme.name, len(seq), str(params.constraints.circular), params.effectiveFragments, J,
            requested.value, used.value,
        )

        mandatory, unresolved = self._mandatory(seq, params)
        candidates = self._pool(seq, params, mandatory)
        check_cancel(cancel, "scan")

        scored = self.engine.score_candidates(
            seq, candidates, params.weights, params.bioContext, params.constraints.circular, cancel
        )

        budget = SearchBudget(
            max_nodes=params.maxNodes or self.budget.max_nodes,
            max_iterations=params.maxIterations or self.budget.max_iterations,
            max_restarts=self.budget.max_restarts,
            max_repair_iterations=self.budget.max_repair_iterations,
            repair_radius=self.budget.repair_radius,
            max_tied_paths=self.budget.max_tied_paths,
        )
        seed = params.randomSeed if params.randomSeed is not None else settings.MC_DEFAULT_SEED
        selector = OptimizationSelector(params.constraints, budget=budget, seed=seed)
        used, problem, outcome = selector.select(
            scored, len(seq), self.enzyme.overhang_length, J, mandatory, used, cancel
        )

        result = self._result(seq, params, requested, used, problem, outcome, unresolved, len(candidates))
        logger.info(
            "Optimize done: feasible=%s, optimal=%s, nodes=%d, junctions=%s, fidelity=%.4f",
            str(result.feasible), str(result.optimal), result.nodesExplored,
            result.solution.junctions, result.solution.setFidelity,
        )
        return result


# === Module-level helpers =====================================================

def optimize_fusion_sites(
    sequence: str,
    enzyme: str = "BsaI",
    params: Optional[OptimizationParams] = None,
    cancel: Optional[CancelToken] = None,
    evaluator: Optional[PrimerEvaluator] = None,
) -> OptimizationResult:
    return FusionSiteOptimizer(enzyme, evaluator=evaluator).optimize(sequence, params, cancel)


def get_domestication_summary(sequence: str, enzyme: str = "BsaI") -> DomesticationSummary:
    return FusionSiteOptimizer(enzyme).domestication_summary(sequence)
