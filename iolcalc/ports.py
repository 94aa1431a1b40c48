"""
Capability interfaces for the engine's collaborators.

The engine never talks to devices, ML services, storage or auth providers.
Callers implement these protocols and pass plain data in and out.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Tuple, runtime_checkable

from .models.schema import BiometryInput, CalculationBatch, ValidationReport


@dataclass(frozen=True)
class ExternalPrediction:
    """Alternative power estimate supplied by an ML service."""
    predicted_iol_power: float
    confidence_score: float
    prediction_interval: Optional[Tuple[float, float]] = None
    source: str = "ml"


@dataclass(frozen=True)
class AuditTrail:
    created_by: str
    verified_by: Optional[str] = None
    verified_at: Optional[datetime] = None

    @property
    def is_verified(self) -> bool:
        return self.verified_by is not None


@runtime_checkable
class BiometrySource(Protocol):
    """Device-integration layer: yields biometry for a patient's eye."""

    def fetch_biometry(self, device_type: str, patient_id: str) -> BiometryInput: ...


@runtime_checkable
class PowerPredictor(Protocol):
    """ML layer: optional alternative power prediction."""

    def predict_power(self, biometry: BiometryInput) -> ExternalPrediction: ...


@runtime_checkable
class CalculationRepository(Protocol):
    """Persistence layer for reports, keyed by patient/examination."""

    def save(self, patient_id: str, examination_id: Optional[str], validation: ValidationReport,
             batch: CalculationBatch, audit: AuditTrail) -> str: ...

    def mark_verified(self, record_id: str, verified_by: str, verified_at: datetime) -> AuditTrail: ...


@runtime_checkable
class AuthorizationPolicy(Protocol):
    def can_create(self, user_id: str) -> bool: ...

    def can_verify(self, user_id: str, record_id: str) -> bool: ...

    def can_export(self, user_id: str, record_id: str) -> bool: ...
