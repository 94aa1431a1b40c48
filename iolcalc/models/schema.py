from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..services.registry import lens_constant_for

# Optional measurements that earn a data-quality bonus when the caller supplies them
OPTIONAL_QUALITY_FIELDS = ("lens_thickness", "white_to_white", "pupil_size")


class BiometryInput(BaseModel):
    """Biometry for one eye. Optional fields fall back to population defaults."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    axial_length: float = Field(..., description="mm")
    k1: float = Field(..., description="D")
    k2: float = Field(..., description="D")
    anterior_chamber_depth: float = Field(3.2, description="mm")
    lens_thickness: float = Field(4.0, description="mm")
    white_to_white: float = Field(12.0, description="mm")
    lens_constant: float = Field(118.0, description="A-constant")
    target_refraction: float = Field(0.0, description="D")
    pupil_size: Optional[float] = Field(None, description="mm")

    @field_validator("axial_length", "k1", "k2")
    @classmethod
    def must_be_positive(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return v

    @property
    def avg_k(self) -> float:
        return (self.k1 + self.k2) / 2

    @property
    def astigmatism(self) -> float:
        return abs(self.k1 - self.k2)

    def supplied(self, name: str) -> bool:
        """True if the caller passed `name` explicitly rather than relying on the default."""
        return name in self.model_fields_set and getattr(self, name) is not None

    def with_lens(self, lens_id: str) -> "BiometryInput":
        return self.model_copy(update={"lens_constant": lens_constant_for(lens_id)})


@dataclass(frozen=True)
class ValidationReport:
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    quality_score: float = 100.0

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FormulaResult:
    """Outcome of a single formula for one eye."""
    algorithm: str
    name: str
    iol_power: float  # diopters, multiple of 0.25
    effective_lens_position: float  # mm
    predicted_refraction: float  # diopters
    details: Dict[str, Any] = field(default_factory=dict)
    reliability_score: float = 0.85
    recommendation: str = ""
    accuracy_level: str = ""


@dataclass(frozen=True)
class FormulaError:
    """A formula that failed inside a batch; excluded from consensus."""
    algorithm: str
    name: str
    error: str


FormulaOutcome = Union[FormulaResult, FormulaError]

NO_VALID_CALCULATIONS = "No valid calculations"


@dataclass(frozen=True)
class ConsensusReport:
    mean_power: Optional[float] = None
    standard_deviation: Optional[float] = None
    min_power: Optional[float] = None
    max_power: Optional[float] = None
    consensus_level: Optional[str] = None  # "high" | "moderate" | "low"
    recommendation: str = ""
    ranked_formulas: Tuple[str, ...] = ()
    formula_count: int = 0
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.formula_count == 0

    @property
    def power_range(self) -> Optional[Tuple[float, float]]:
        if self.is_empty:
            return None
        return (self.min_power, self.max_power)


@dataclass(frozen=True)
class QualityMetrics:
    mean_power: Optional[float] = None
    power_std_dev: Optional[float] = None
    mean_reliability: Optional[float] = None
    agreement_level: Optional[str] = None  # excellent | good | moderate | poor
    recommended_algorithms: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass(frozen=True)
class CalculationBatch:
    validation: ValidationReport
    results: Dict[str, FormulaOutcome]
    consensus: ConsensusReport
    quality_metrics: QualityMetrics
    recommendations: Tuple[str, ...] = ()

    @property
    def successful(self) -> Dict[str, FormulaResult]:
        return {k: r for k, r in self.results.items() if isinstance(r, FormulaResult)}

    @property
    def failed(self) -> Dict[str, FormulaError]:
        return {k: r for k, r in self.results.items() if isinstance(r, FormulaError)}
