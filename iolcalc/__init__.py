"""Multi-formula IOL power calculation engine."""

from .engine import IOLCalculator
from .errors import InvalidAlgorithm, IOLCalcError, NumericDegeneracy, UnsupportedAlgorithm, UnsupportedDevice
from .models.schema import (
    BiometryInput,
    CalculationBatch,
    ConsensusReport,
    FormulaError,
    FormulaResult,
    QualityMetrics,
    ValidationReport,
)
from .services.calculations import Algorithm, compute
from .services.consensus import compare_with_consensus, run_all
from .services.recommendations import assess_algorithm_choice, lens_recommendations, surgical_considerations
from .services.registry import FormulaMetadata, LensMetadata, get_lens, list_algorithms, list_lens_models
from .services.validation import validate

__all__ = [
    "Algorithm",
    "BiometryInput",
    "CalculationBatch",
    "ConsensusReport",
    "FormulaError",
    "FormulaMetadata",
    "FormulaResult",
    "IOLCalcError",
    "IOLCalculator",
    "InvalidAlgorithm",
    "LensMetadata",
    "NumericDegeneracy",
    "QualityMetrics",
    "UnsupportedAlgorithm",
    "UnsupportedDevice",
    "ValidationReport",
    "assess_algorithm_choice",
    "compare_with_consensus",
    "compute",
    "get_lens",
    "lens_recommendations",
    "list_algorithms",
    "list_lens_models",
    "run_all",
    "surgical_considerations",
    "validate",
]
