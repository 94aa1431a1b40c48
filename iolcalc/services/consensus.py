"""
Multi-formula consensus.

Runs the requested formulas independently, isolates per-formula failures, and
reduces the successful results to agreement statistics. Aggregation is
order-independent, so formulas may be evaluated sequentially or on a thread
pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np

from ..config import Settings, settings as default_settings
from ..models.schema import (
    NO_VALID_CALCULATIONS,
    BiometryInput,
    CalculationBatch,
    ConsensusReport,
    FormulaError,
    FormulaOutcome,
    FormulaResult,
    QualityMetrics,
)
from .calculations import Algorithm, compute, quantize_power
from .recommendations import consensus_recommendation, eye_recommendations
from .validation import validate

logger = logging.getLogger(__name__)

VALIDATION_BLOCKED = "Calculation blocked: biometry failed validation"


def consensus_level(std_dev: float) -> str:
    if std_dev < 0.5:
        return "high"
    if std_dev < 1.0:
        return "moderate"
    return "low"


def agreement_level(std_dev: float) -> str:
    if std_dev < 0.5:
        return "excellent"
    if std_dev < 1.0:
        return "good"
    if std_dev < 1.5:
        return "moderate"
    return "poor"


def rank_by_reliability(results: Sequence[FormulaResult], top_n: int = 3) -> List[FormulaResult]:
    """Most reliable first; ties keep their request order."""
    return sorted(results, key=lambda r: -r.reliability_score)[:max(top_n, 0)]


def calculate_consensus(results: Sequence[FormulaResult], top_n: int = 3) -> ConsensusReport:
    if not results:
        return ConsensusReport(error=NO_VALID_CALCULATIONS, recommendation=NO_VALID_CALCULATIONS)

    powers = np.array([r.iol_power for r in results], dtype=float)
    mean_power = float(powers.mean())
    std_dev = float(powers.std())  # population (ddof=0)

    return ConsensusReport(
        mean_power=quantize_power(mean_power),
        standard_deviation=round(std_dev, 2),
        min_power=float(powers.min()),
        max_power=float(powers.max()),
        consensus_level=consensus_level(std_dev),
        recommendation=consensus_recommendation(round(std_dev, 2)),
        ranked_formulas=tuple(r.algorithm for r in rank_by_reliability(results, top_n)),
        formula_count=len(results),
    )


def calculate_quality_metrics(results: Sequence[FormulaResult], top_n: int = 3) -> QualityMetrics:
    if not results:
        return QualityMetrics(error=NO_VALID_CALCULATIONS)

    powers = np.array([r.iol_power for r in results], dtype=float)
    reliability = np.array([r.reliability_score for r in results], dtype=float)
    std_dev = float(powers.std())

    return QualityMetrics(
        mean_power=float(powers.mean()),
        power_std_dev=std_dev,
        mean_reliability=float(reliability.mean()),
        agreement_level=agreement_level(std_dev),
        recommended_algorithms={r.algorithm: r.name for r in rank_by_reliability(results, top_n)},
    )


def parse_algorithms(algorithm_ids: Iterable) -> List[Algorithm]:
    """Resolve identifiers up front so an unknown key fails before any formula runs."""
    parsed: List[Algorithm] = []
    for key in algorithm_ids:
        algorithm = Algorithm.parse(key)
        if algorithm not in parsed:
            parsed.append(algorithm)
    return parsed


def _run_one(algorithm: Algorithm, biometry: BiometryInput, request_id: str) -> FormulaOutcome:
    try:
        return compute(algorithm, biometry)
    except (ArithmeticError, ValueError) as exc:
        logger.warning("%s calculation failed: %s", algorithm.metadata.name, exc,
                       extra={"request_id": request_id})
        return FormulaError(algorithm=algorithm.value, name=algorithm.metadata.name, error=str(exc))


def run_all(biometry: BiometryInput, algorithm_ids: Optional[Iterable] = None, *,
            require_valid: bool = True, settings: Optional[Settings] = None,
            request_id: Optional[str] = None) -> CalculationBatch:
    """
    Validate the eye, run every requested formula, and build the consensus.

    When the biometry has validation errors and `require_valid` is set, no
    formula is run and the consensus reports the block instead of statistics.
    """
    cfg = settings or default_settings
    rid = request_id or "-"
    algorithms = parse_algorithms(algorithm_ids if algorithm_ids is not None else cfg.default_algorithms)

    report = validate(biometry)
    advisories = tuple(eye_recommendations(biometry.axial_length, biometry.astigmatism))

    if require_valid and not report.is_valid:
        logger.info("Refusing calculation: %d validation error(s)", len(report.errors),
                    extra={"request_id": rid})
        return CalculationBatch(
            validation=report,
            results={},
            consensus=ConsensusReport(error=VALIDATION_BLOCKED, recommendation=VALIDATION_BLOCKED),
            quality_metrics=QualityMetrics(error=NO_VALID_CALCULATIONS),
            recommendations=advisories,
        )

    if cfg.fan_out_workers > 1 and len(algorithms) > 1:
        with ThreadPoolExecutor(max_workers=cfg.fan_out_workers) as executor:
            outcomes = list(executor.map(lambda a: _run_one(a, biometry, rid), algorithms))
    else:
        outcomes = [_run_one(a, biometry, rid) for a in algorithms]

    results = {a.value: outcome for a, outcome in zip(algorithms, outcomes)}
    successes = [r for r in outcomes if isinstance(r, FormulaResult)]

    consensus = calculate_consensus(successes, cfg.ranked_formulas)
    metrics = calculate_quality_metrics(successes, cfg.ranked_formulas)

    logger.info(
        "Ran %d formula(s): %d ok, %d failed, consensus=%s",
        len(results), len(successes), len(results) - len(successes), consensus.consensus_level or "none",
        extra={"request_id": rid},
    )
    return CalculationBatch(
        validation=report,
        results=results,
        consensus=consensus,
        quality_metrics=metrics,
        recommendations=advisories,
    )


@dataclass(frozen=True)
class PredictionComparison:
    """How an externally predicted power relates to the formula consensus."""
    predicted_power: float
    difference: Optional[float]  # predicted - consensus mean
    within_range: bool
    agrees: bool
    note: str


AGREEMENT_TOLERANCE_D = 0.5


def compare_with_consensus(consensus: ConsensusReport, predicted_power: float) -> PredictionComparison:
    if consensus.is_empty:
        return PredictionComparison(
            predicted_power=predicted_power, difference=None, within_range=False, agrees=False,
            note="No formula consensus to compare against",
        )
    difference = round(predicted_power - consensus.mean_power, 2)
    within = consensus.min_power <= predicted_power <= consensus.max_power
    agrees = abs(difference) < AGREEMENT_TOLERANCE_D
    if agrees:
        note = "External prediction agrees with formula consensus"
    else:
        note = f"External prediction differs from consensus by {difference:+.2f}D - review before use"
    return PredictionComparison(
        predicted_power=predicted_power, difference=difference, within_range=within, agrees=agrees, note=note,
    )
