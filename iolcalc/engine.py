"""
Calculation engine facade.

IOLCalculator bundles validation, single-formula computation, the consensus
batch runner and the static registries behind one object. It holds only
configuration, so one instance can serve any number of concurrent callers.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import Settings, settings as default_settings
from .models.schema import BiometryInput, CalculationBatch, FormulaResult, ValidationReport
from .ports import PowerPredictor
from .services import registry
from .services.calculations import compute
from .services.consensus import PredictionComparison, compare_with_consensus, run_all
from .services.recommendations import assess_algorithm_choice, lens_recommendations, surgical_considerations
from .services.validation import validate

logger = logging.getLogger(__name__)


class IOLCalculator:
    """Multi-formula IOL power calculator."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    def validate(self, biometry: BiometryInput) -> ValidationReport:
        return validate(biometry)

    def compute(self, algorithm_id: str, biometry: BiometryInput) -> FormulaResult:
        return compute(algorithm_id, biometry)

    def run_all(self, biometry: BiometryInput, algorithm_ids: Optional[Iterable] = None, *,
                require_valid: bool = True, request_id: Optional[str] = None) -> CalculationBatch:
        return run_all(biometry, algorithm_ids, require_valid=require_valid,
                       settings=self.settings, request_id=request_id)

    def compare_prediction(self, batch: CalculationBatch, biometry: BiometryInput,
                           predictor: PowerPredictor) -> PredictionComparison:
        """Ask the caller's ML service for a power and compare it with the batch consensus."""
        prediction = predictor.predict_power(biometry)
        comparison = compare_with_consensus(batch.consensus, prediction.predicted_iol_power)
        if not comparison.agrees:
            logger.info("External prediction (%s) disagrees: %s", prediction.source, comparison.note)
        return comparison

    def advise(self, batch: CalculationBatch, biometry: BiometryInput) -> Dict[str, Any]:
        """
        Surgical and lens-selection advice for a finished batch.

        Lens families are keyed on the consensus power and the assessment on
        the most reliable formula; both are omitted when the consensus is empty.
        """
        advice: Dict[str, Any] = {
            "surgical_considerations": surgical_considerations(biometry),
            "eye_recommendations": list(batch.recommendations),
        }
        if batch.consensus.is_empty:
            return advice
        advice["lens_recommendations"] = lens_recommendations(batch.consensus.mean_power, biometry.astigmatism)
        top = batch.consensus.ranked_formulas[0]
        advice["algorithm_assessment"] = {
            "algorithm": top,
            **assess_algorithm_choice(biometry.axial_length, top),
        }
        return advice

    @staticmethod
    def list_algorithms() -> List[registry.FormulaMetadata]:
        return registry.list_algorithms()

    @staticmethod
    def list_lens_models() -> List[registry.LensMetadata]:
        return registry.list_lens_models()
