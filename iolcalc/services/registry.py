"""
Formula and IOL Registry

Static metadata for the supported power formulas and lens models. Tables are
built once at import and exposed read-only; there is no mutation API.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class FormulaMetadata:
    """Describes one power formula."""
    id: str
    name: str
    description: str
    best_for: str
    accuracy_range: str  # axial-length band in which the formula performs best
    formula_type: str  # theoretical | regression | artificial_intelligence
    year_developed: int
    accuracy_level: str  # moderate | high | very_high


@dataclass(frozen=True)
class LensMetadata:
    """An IOL model with its constants and haptic geometry."""
    id: str
    name: str
    manufacturer: str
    a_constant: float
    surgeon_factor: Optional[float] = None  # Holladay SF
    haigis_a0: Optional[float] = None
    haigis_a1: Optional[float] = None
    haigis_a2: Optional[float] = None
    material: str = ""
    optic_diameter: Optional[float] = None  # mm
    overall_diameter: Optional[float] = None  # mm
    haptic_angle: Optional[float] = None  # degrees
    power_range: Optional[Tuple[float, float]] = None  # diopters
    category: str = "monofocal"
    notes: str = ""


_FORMULAS = (
    FormulaMetadata(
        id="srk_t", name="SRK/T", description="Sanders-Retzlaff-Kraff Theoretical",
        best_for="All axial lengths, most versatile", accuracy_range="22-26mm",
        formula_type="theoretical", year_developed=1990, accuracy_level="high",
    ),
    FormulaMetadata(
        id="hoffer_q", name="Hoffer Q", description="Hoffer Q Formula",
        best_for="Short eyes (AL < 22.0mm)", accuracy_range="20-23mm",
        formula_type="regression", year_developed=1993, accuracy_level="high",
    ),
    FormulaMetadata(
        id="holladay_1", name="Holladay 1", description="Holladay Formula",
        best_for="Average eyes (AL 22-24.5mm)", accuracy_range="22-25mm",
        formula_type="theoretical", year_developed=1988, accuracy_level="moderate",
    ),
    FormulaMetadata(
        id="holladay_2", name="Holladay 2", description="Holladay 2 Formula",
        best_for="All eyes with 7 variables", accuracy_range="20-32mm",
        formula_type="theoretical", year_developed=1996, accuracy_level="high",
    ),
    FormulaMetadata(
        id="haigis", name="Haigis", description="Haigis Formula",
        best_for="Long eyes (AL > 26.0mm)", accuracy_range="24-32mm",
        formula_type="theoretical", year_developed=2000, accuracy_level="high",
    ),
    FormulaMetadata(
        id="barrett_universal_ii", name="Barrett Universal II", description="Barrett Universal II Formula",
        best_for="All eyes, highest accuracy", accuracy_range="20-32mm",
        formula_type="artificial_intelligence", year_developed=2013, accuracy_level="very_high",
    ),
    FormulaMetadata(
        id="hill_rbf", name="Hill-RBF", description="Hill Radial Basis Function",
        best_for="Pattern recognition method", accuracy_range="20-32mm",
        formula_type="artificial_intelligence", year_developed=2016, accuracy_level="very_high",
    ),
    FormulaMetadata(
        id="kane", name="Kane", description="Kane Formula",
        best_for="Theoretical vergence formula", accuracy_range="20-32mm",
        formula_type="theoretical", year_developed=2017, accuracy_level="very_high",
    ),
)

_LENSES = (
    LensMetadata(
        id="SA60AT", name="AcrySof SA60AT", manufacturer="Alcon", a_constant=118.9,
        surgeon_factor=1.6, haigis_a0=0.62467, haigis_a1=0.68, haigis_a2=-0.065,
        material="Acrylic Hydrophobic", optic_diameter=6.0, haptic_angle=0,
        power_range=(6.0, 30.0), notes="Single-piece IOL",
    ),
    LensMetadata(
        id="SN60WF", name="AcrySof IQ SN60WF", manufacturer="Alcon", a_constant=118.7,
        surgeon_factor=1.6, haigis_a0=0.62467, haigis_a1=0.68, haigis_a2=-0.065,
        material="Acrylic Hydrophobic", optic_diameter=6.0, haptic_angle=0,
        power_range=(6.0, 30.0), notes="Aspheric IOL with UV and blue light filtering",
    ),
    LensMetadata(
        id="ZCB00", name="Tecnis ZCB00", manufacturer="Johnson & Johnson Vision", a_constant=119.3,
        surgeon_factor=1.75, haigis_a0=0.5663, haigis_a1=0.65, haigis_a2=-0.0627,
        material="Acrylic Hydrophobic", optic_diameter=6.0, haptic_angle=0,
        power_range=(5.0, 34.0), notes="Aspheric anterior surface",
    ),
    LensMetadata(
        id="CLAREON_AUTONOME", name="Clareon AutonoMe", manufacturer="Alcon", a_constant=119.1,
        surgeon_factor=1.75, haigis_a0=0.229, haigis_a1=0.011, haigis_a2=0.205,
        material="Clareon Hydrophobic Acrylic", optic_diameter=6.0, overall_diameter=13.0,
        power_range=(-5.0, 34.0), category="premium_monofocal",
        notes="Frosted square edge, blue light filter",
    ),
    LensMetadata(
        id="TECNIS_EYHANCE", name="Tecnis Eyhance", manufacturer="Johnson & Johnson Vision", a_constant=119.3,
        surgeon_factor=1.75, haigis_a0=0.245, haigis_a1=0.014, haigis_a2=0.190,
        material="UV-absorbing hydrophobic acrylic", optic_diameter=6.0, overall_diameter=13.0,
        power_range=(5.0, 34.0), category="premium_monofocal",
        notes="Enhanced intermediate vision",
    ),
    LensMetadata(
        id="PANOPTIX", name="AcrySof IQ PanOptix Trifocal", manufacturer="Alcon", a_constant=118.7,
        material="UV/Blue-filtering Hydrophobic Acrylic", category="premium_multifocal",
        notes="Trifocal, 4.5mm central diffractive zone",
    ),
    LensMetadata(
        id="TECNIS_SYNERGY", name="Tecnis Synergy", manufacturer="Johnson & Johnson Vision", a_constant=119.0,
        material="UV-absorbing hydrophobic acrylic", category="premium_multifocal",
        notes="Continuous range of vision, 33cm to infinity",
    ),
)

FORMULAS: Mapping[str, FormulaMetadata] = MappingProxyType({f.id: f for f in _FORMULAS})
LENSES: Mapping[str, LensMetadata] = MappingProxyType({lens.id: lens for lens in _LENSES})


def list_algorithms() -> List[FormulaMetadata]:
    """All supported formulas, in registry order."""
    return list(FORMULAS.values())


def get_algorithm_metadata(algorithm_id: str) -> Optional[FormulaMetadata]:
    return FORMULAS.get(algorithm_id)


def list_lens_models() -> List[LensMetadata]:
    return list(LENSES.values())


def get_lens(lens_id: str) -> Optional[LensMetadata]:
    """Lens lookup by id, case-insensitive. None if unknown."""
    lens = LENSES.get(lens_id)
    if lens is None:
        lens = next((l for l in LENSES.values() if l.id.lower() == lens_id.lower()), None)
    return lens


def lens_constant_for(lens_id: str) -> float:
    lens = get_lens(lens_id)
    if lens is None:
        raise KeyError(f"Unknown lens model: {lens_id}")
    return lens.a_constant
