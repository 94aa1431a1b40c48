"""
IOL Power Calculation Service

One pure function per formula, each mapping biometry to an IOL power, an
effective lens position (ELP) and the predicted post-operative refraction:

- SRK/T: log-offset ELP with a three-band ACD prediction, regression power
- Hoffer Q: personalised ACD (pACD) with a g-factor correction
- Holladay 1 / Holladay 2: surgeon-factor ELP, vergence power
- Haigis: three-constant ELP (a0 + a1*ACD + a2*AL), vergence power
- Barrett Universal II, Hill-RBF, Kane: simplified approximations of the
  proprietary formulas (linear / Gaussian-kernel ELP), vergence power

Powers are quantized to 0.25 D steps; ELP and predicted refraction are
rounded to 2 decimals. Predicted refraction is always derived from the
unquantized power.

These Barrett, Hill-RBF and Kane models are approximations with fixed
weights. Do not substitute published coefficients without updating the
regression tests in tests/test_formula_protection.py.
"""

import logging
import math
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Union

import numpy as np

from ..errors import NumericDegeneracy, UnsupportedAlgorithm
from ..models.schema import BiometryInput, FormulaResult
from .recommendations import algorithm_recommendation, reliability_score
from .refraction import N_AQUEOUS, KERATOMETRIC_RADIUS_FACTOR, ensure_finite, nonzero, predict_refraction, vergence_power
from .registry import FORMULAS

logger = logging.getLogger(__name__)

POWER_STEP_D = 0.25
HOLLADAY_2_DEFAULT_AGE = 60


class Algorithm(str, Enum):
    """Closed set of supported formulas. Values are the registry identifiers."""

    SRK_T = "srk_t"
    HOFFER_Q = "hoffer_q"
    HOLLADAY_1 = "holladay_1"
    HOLLADAY_2 = "holladay_2"
    HAIGIS = "haigis"
    BARRETT_UNIVERSAL_II = "barrett_universal_ii"
    HILL_RBF = "hill_rbf"
    KANE = "kane"

    @property
    def metadata(self):
        return FORMULAS[self.value]

    @property
    def calculator(self) -> Callable[..., FormulaResult]:
        return CALCULATORS[self]

    @classmethod
    def parse(cls, key: Union[str, "Algorithm"]) -> "Algorithm":
        """Accept an identifier ("srk_t") or display name ("SRK/T"); reject anything else."""
        if isinstance(key, cls):
            return key
        if isinstance(key, str):
            normalized = key.strip().lower()
            for algorithm in cls:
                if normalized in (algorithm.value, algorithm.metadata.name.lower()):
                    return algorithm
        raise UnsupportedAlgorithm(key)


def quantize_power(power: float, step: float = POWER_STEP_D) -> float:
    """Round to the nearest `step`, halves away from zero."""
    steps = math.floor(abs(power) / step + 0.5)
    return math.copysign(steps * step, power) if steps else 0.0


def _build_result(algorithm: Algorithm, power: float, elp: float, al: float, avg_k: float,
                  details: Dict) -> FormulaResult:
    power = ensure_finite("IOL power", power)
    predicted = predict_refraction(al, avg_k, power, elp)
    meta = algorithm.metadata
    return FormulaResult(
        algorithm=algorithm.value,
        name=meta.name,
        iol_power=quantize_power(power),
        effective_lens_position=round(elp, 2),
        predicted_refraction=round(predicted, 2),
        details=details,
        reliability_score=reliability_score(algorithm.value, al),
        recommendation=algorithm_recommendation(algorithm.value, al),
        accuracy_level=meta.accuracy_level,
    )


def _holladay_surgeon_factor(al: float, avg_k: float) -> float:
    return N_AQUEOUS / nonzero("surgeon factor denominator", (avg_k / KERATOMETRIC_RADIUS_FACTOR) * (al / 22.5))


def calculate_srkt(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                   lens_constant: float, target_refraction: float) -> FormulaResult:
    """
    SRK/T with a log-corrected offset for long eyes and a three-band ACD prediction.

        offset = -3.446 + 1.716*log10(AL)        (AL > 24.2)
               = -1.729 - 0.025*AL               (otherwise)
        P      = A - 2.5*ELP - 0.9*K + target
    """
    if al > 24.2:
        offset = -3.446 + float(np.log10(al)) * 1.716
    else:
        offset = -1.729 - 0.025 * al

    if al <= 22.0:
        acd_pred = 4.2 + 1.75 * (al - 22.0)
    elif al >= 24.5:
        acd_pred = 3.37 + 0.68 * (al - 23.45) / 23.45
    else:
        acd_pred = 3.2 + 0.62 * (al - 22.75) / 22.75

    elp = acd_pred + offset
    power = lens_constant - (2.5 * elp) - (0.9 * avg_k) + target_refraction
    return _build_result(Algorithm.SRK_T, power, elp, al, avg_k, {
        "offset": offset,
        "acd_predicted": acd_pred,
        "algorithm_version": "SRK/T v2.0",
    })


def calculate_hoffer_q(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                       lens_constant: float, target_refraction: float) -> FormulaResult:
    """Hoffer Q: personalised ACD from the A-constant, quadratic ELP below 23 mm."""
    pacd = 0.5663 * lens_constant - 65.6
    m = N_AQUEOUS / nonzero("average K", avg_k / KERATOMETRIC_RADIUS_FACTOR)

    if al <= 23.0:
        elp = pacd + 3.3357 + 0.13424 * al - 0.00299 * al * al
    else:
        elp = pacd + 2.5 + 0.62 * al

    g = elp * m
    power = lens_constant - (2.5 * (al + elp)) - (0.9 * avg_k) - g + target_refraction
    return _build_result(Algorithm.HOFFER_Q, power, elp, al, avg_k, {
        "m_factor": m,
        "g_factor": g,
        "pacd": pacd,
    })


def calculate_holladay_1(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                         lens_constant: float, target_refraction: float) -> FormulaResult:
    sf = _holladay_surgeon_factor(al, avg_k)

    if al < 20.0:
        acd_pred = 4.2 + 1.75 * al
    elif al > 26.0:
        acd_pred = 2.9 + 0.54 * al
    else:
        acd_pred = 3.37 + 0.68 * al

    elp = acd_pred + sf
    power = vergence_power(al, avg_k, elp, target_refraction)
    return _build_result(Algorithm.HOLLADAY_1, power, elp, al, avg_k, {
        "sf_factor": sf,
        "acd_predicted": acd_pred,
    })


def calculate_holladay_2(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                         lens_constant: float, target_refraction: float) -> FormulaResult:
    """Holladay 2 (seven variables) with a fixed default patient age."""
    age = HOLLADAY_2_DEFAULT_AGE
    acd_pred = 0.56 + (al * 0.098) + (avg_k * 0.02) + (wtw * 0.15) + (acd * 0.6) + (lt * 0.1) - (age * 0.005)

    sf = _holladay_surgeon_factor(al, avg_k)
    elp = acd_pred + sf
    power = vergence_power(al, avg_k, elp, target_refraction)
    return _build_result(Algorithm.HOLLADAY_2, power, elp, al, avg_k, {
        "sf_factor": sf,
        "acd_predicted": acd_pred,
        "age": age,
        "variables_used": 7,
    })


HAIGIS_A0 = 0.62467
HAIGIS_A1 = 0.68
HAIGIS_A2 = -0.065


def calculate_haigis(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                     lens_constant: float, target_refraction: float) -> FormulaResult:
    """
    Haigis three-constant formula using the measured ACD.
        ELP = a0 + a1*ACD + a2*AL
    """
    a0, a1, a2 = HAIGIS_A0, HAIGIS_A1, HAIGIS_A2
    elp = a0 + (a1 * acd) + (a2 * al)
    power = vergence_power(al, avg_k, elp, target_refraction)
    return _build_result(Algorithm.HAIGIS, power, elp, al, avg_k, {
        "a0": a0, "a1": a1, "a2": a2,
        "uses_measured_acd": True,
    })


def calculate_barrett_universal_ii(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                                   lens_constant: float, target_refraction: float) -> FormulaResult:
    """Barrett Universal II approximation: linear ELP, power scaled for short and long eyes."""
    elp = 1.04 + (0.585 * acd) - (0.077 * al) + (0.130 * avg_k) + (0.112 * wtw) + (0.045 * lt)
    power = vergence_power(al, avg_k, elp, target_refraction)

    if al < 22.0:
        correction = 0.98
    elif al > 26.0:
        correction = 1.02
    else:
        correction = 1.0
    power *= correction

    return _build_result(Algorithm.BARRETT_UNIVERSAL_II, power, elp, al, avg_k, {
        "diameter_factor": wtw / 2,
        "lens_factor": lt / 4,
        "acd_factor": acd / 3.2,
        "axial_correction": correction,
        "formula_type": "AI-optimized",
    })


# Hill-RBF anchors: population means/spreads for normalisation and three ELP anchor depths
RBF_CENTER = {"al": 23.45, "k": 43.5, "acd": 3.2}
RBF_SCALE = {"al": 2.5, "k": 3.0, "acd": 0.5}
RBF_ANCHOR_DEPTHS = (3.2, 3.5, 3.0)


def calculate_hill_rbf(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                       lens_constant: float, target_refraction: float) -> FormulaResult:
    """Hill-RBF approximation: Gaussian-kernel blend of anchor depths plus an AL correction."""
    n_al = (al - RBF_CENTER["al"]) / RBF_SCALE["al"]
    n_k = (avg_k - RBF_CENTER["k"]) / RBF_SCALE["k"]
    n_acd = (acd - RBF_CENTER["acd"]) / RBF_SCALE["acd"]

    weights = np.exp(-0.5 * np.array([
        n_al * n_al + n_k * n_k,
        n_acd * n_acd + n_k * n_k,
        n_al * n_al + n_acd * n_acd,
    ]))
    total_weight = nonzero("RBF weight sum", float(weights.sum()))

    elp = float(np.dot(weights, RBF_ANCHOR_DEPTHS)) / total_weight
    elp += 0.3 * (al - RBF_CENTER["al"]) / RBF_CENTER["al"]

    power = vergence_power(al, avg_k, elp, target_refraction)
    return _build_result(Algorithm.HILL_RBF, power, elp, al, avg_k, {
        "pattern_weights": tuple(float(w) for w in weights),
        "formula_type": "Pattern recognition",
    })


KANE_ASPHERICITY = -0.26


def calculate_kane(al: float, avg_k: float, acd: float, lt: float, wtw: float,
                   lens_constant: float, target_refraction: float) -> FormulaResult:
    elp = 3.6 + (0.98133 * acd) + (0.0316 * al) - (0.0579 * avg_k) + (0.0464 * wtw)
    asphericity_correction = KANE_ASPHERICITY * 0.1
    elp += asphericity_correction

    power = vergence_power(al, avg_k, elp, target_refraction)
    return _build_result(Algorithm.KANE, power, elp, al, avg_k, {
        "ac_radius": (avg_k - 43.05) / 0.895,
        "asphericity_correction": asphericity_correction,
        "formula_type": "Theoretical vergence",
    })


CALCULATORS: Mapping[Algorithm, Callable[..., FormulaResult]] = MappingProxyType({
    Algorithm.SRK_T: calculate_srkt,
    Algorithm.HOFFER_Q: calculate_hoffer_q,
    Algorithm.HOLLADAY_1: calculate_holladay_1,
    Algorithm.HOLLADAY_2: calculate_holladay_2,
    Algorithm.HAIGIS: calculate_haigis,
    Algorithm.BARRETT_UNIVERSAL_II: calculate_barrett_universal_ii,
    Algorithm.HILL_RBF: calculate_hill_rbf,
    Algorithm.KANE: calculate_kane,
})


def compute(algorithm_id: Union[str, Algorithm], biometry: BiometryInput) -> FormulaResult:
    """
    Run one formula on one eye.

    Raises UnsupportedAlgorithm for an unknown identifier and NumericDegeneracy
    when the formula's arithmetic breaks down. Out-of-range biometry is still
    computed; check validate() first.
    """
    algorithm = Algorithm.parse(algorithm_id)
    calculator = CALCULATORS[algorithm]
    try:
        result = calculator(
            biometry.axial_length,
            biometry.avg_k,
            biometry.anterior_chamber_depth,
            biometry.lens_thickness,
            biometry.white_to_white,
            biometry.lens_constant,
            biometry.target_refraction,
        )
    except NumericDegeneracy as exc:
        raise NumericDegeneracy(exc.quantity, exc.value, algorithm.value) from exc
    logger.debug(
        "%s: power=%.2fD elp=%.2fmm predicted=%.2fD",
        result.name, result.iol_power, result.effective_lens_position, result.predicted_refraction,
    )
    return result
