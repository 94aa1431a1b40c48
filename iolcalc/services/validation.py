"""
Biometry validation.

Checks each measurement against physiological ranges and reports errors
(which block calculation), warnings and recommendations, plus a 0-100 data
quality score. Never raises: every finding is returned as data.
"""

import logging
import math
from typing import List, Optional

from ..models.schema import OPTIONAL_QUALITY_FIELDS, BiometryInput, ValidationReport

logger = logging.getLogger(__name__)

ERROR_PENALTY = 25
WARNING_PENALTY = 10
OPTIONAL_FIELD_BONUS = 5


def _is_finite(label: str, value: Optional[float], errors: List[str]) -> bool:
    if value is None or math.isfinite(value):
        return True
    errors.append(f"{label} must be a finite number")
    return False


def _check_axial_length(al: float, errors: List[str], warnings: List[str], recs: List[str]):
    if al < 18.0 or al > 38.0:
        errors.append("Axial length must be between 18.0 and 38.0mm (extreme values detected)")
    elif al < 20.0:
        errors.append("Axial length below 20.0mm - verify measurement accuracy")
    elif al > 35.0:
        errors.append("Axial length above 35.0mm - verify measurement accuracy")
    elif al < 21.0:
        warnings.append("Very short eye (microphthalmos) - Hoffer Q or Barrett Universal II recommended")
        recs.append("Consider ultrasound biometry for validation")
    elif al > 26.0:
        warnings.append("Long eye (high myopia) - Haigis, Barrett Universal II, or SRK/T recommended")
        recs.append("Consider macular examination for pathologic myopia")
    elif al < 22.0:
        recs.append("Short eye - Hoffer Q shows best accuracy")
    elif al > 24.5:
        recs.append("Long eye - SRK/T or Haigis recommended")


def _check_keratometry(label: str, k: float, errors: List[str], warnings: List[str], recs: List[str]):
    if k < 25.0 or k > 60.0:
        errors.append(f"{label} must be between 25.0 and 60.0D (extreme values)")
    elif k < 30.0 or k > 52.0:
        warnings.append(f"{label} value ({k}D) is outside normal range (30-52D)")
    elif k < 37.0:
        warnings.append(f"Flat cornea detected ({k}D) - verify keratometry readings")
        recs.append("Consider topography for irregular astigmatism")
    elif k > 47.0:
        warnings.append(f"Steep cornea detected ({k}D) - verify keratometry readings")
        recs.append("Rule out keratoconus or previous refractive surgery")


def _check_astigmatism(astig: float, warnings: List[str], recs: List[str]):
    if astig > 4.0:
        warnings.append(f"Very high corneal astigmatism ({astig:.2f}D) - verify measurements")
        recs.append("Consider corneal topography and toric IOL calculation")
    elif astig > 1.5:
        warnings.append(f"High corneal astigmatism ({astig:.2f}D) - consider toric IOL")
        recs.append("Evaluate corneal topography for regular vs irregular astigmatism")
    elif astig > 0.75:
        recs.append("Moderate astigmatism - discuss toric IOL option with patient")


def _check_chamber_depth(acd: float, errors: List[str], warnings: List[str], recs: List[str]):
    if acd < 1.5 or acd > 5.5:
        errors.append("ACD must be between 1.5 and 5.5mm")
    elif acd < 2.5:
        warnings.append(f"Shallow anterior chamber ({acd}mm) - risk of angle closure")
        recs.append("Consider gonioscopy and careful IOL selection")
    elif acd > 4.0:
        warnings.append(f"Deep anterior chamber ({acd}mm)")
        recs.append("May indicate lens-induced myopia or previous trauma")


def _check_lens_thickness(lt: float, errors: List[str], warnings: List[str]):
    if lt < 2.5 or lt > 7.0:
        errors.append("Lens thickness must be between 2.5 and 7.0mm")
    elif lt > 5.0:
        warnings.append(f"Thick lens detected ({lt}mm) - may indicate cataract maturity")


def _check_white_to_white(wtw: float, errors: List[str], warnings: List[str]):
    if wtw < 8.0 or wtw > 15.0:
        errors.append("White-to-white distance must be between 8.0 and 15.0mm")
    elif wtw < 10.0:
        warnings.append(f"Small cornea ({wtw}mm) - consider smaller IOL optic")
    elif wtw > 13.0:
        warnings.append(f"Large cornea ({wtw}mm) - ensure adequate IOL coverage")


def _check_pupil(pupil: float, recs: List[str]):
    if pupil > 6.0:
        recs.append("Large pupil - consider aspheric IOL to reduce spherical aberration")
    elif pupil < 2.0:
        recs.append("Small pupil - may affect multifocal IOL performance")


def quality_score(biometry: BiometryInput, n_errors: int, n_warnings: int) -> float:
    score = 100.0 - n_errors * ERROR_PENALTY - n_warnings * WARNING_PENALTY
    score += OPTIONAL_FIELD_BONUS * sum(1 for name in OPTIONAL_QUALITY_FIELDS if biometry.supplied(name))
    return max(0.0, min(100.0, score))


def validate(biometry: BiometryInput) -> ValidationReport:
    errors: List[str] = []
    warnings: List[str] = []
    recs: List[str] = []

    # range checks are comparisons, so non-finite values are reported before them
    if _is_finite("Axial length", biometry.axial_length, errors):
        _check_axial_length(biometry.axial_length, errors, warnings, recs)
    k1_ok = _is_finite("K1", biometry.k1, errors)
    if k1_ok:
        _check_keratometry("K1", biometry.k1, errors, warnings, recs)
    k2_ok = _is_finite("K2", biometry.k2, errors)
    if k2_ok:
        _check_keratometry("K2", biometry.k2, errors, warnings, recs)
    if k1_ok and k2_ok:
        _check_astigmatism(biometry.astigmatism, warnings, recs)
    if _is_finite("ACD", biometry.anterior_chamber_depth, errors):
        _check_chamber_depth(biometry.anterior_chamber_depth, errors, warnings, recs)
    if _is_finite("Lens thickness", biometry.lens_thickness, errors):
        _check_lens_thickness(biometry.lens_thickness, errors, warnings)
    if _is_finite("White-to-white distance", biometry.white_to_white, errors):
        _check_white_to_white(biometry.white_to_white, errors, warnings)
    if _is_finite("Pupil size", biometry.pupil_size, errors) and biometry.pupil_size is not None:
        _check_pupil(biometry.pupil_size, recs)

    report = ValidationReport(
        errors=tuple(errors),
        warnings=tuple(warnings),
        recommendations=tuple(recs),
        quality_score=quality_score(biometry, len(errors), len(warnings)),
    )
    if errors:
        logger.info("Biometry rejected with %d error(s): %s", len(errors), "; ".join(errors))
    return report
