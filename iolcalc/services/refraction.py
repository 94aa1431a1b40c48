"""
Predicted-Refraction Model

Vergence back-calculation shared by every formula: given the chosen IOL power
and its effective lens position, estimate the residual post-operative
spherical equivalent.

    corneal power      Pc  = 1.336 / (337.5 / K / 1000)
    IOL at cornea      Pi' = P / (1 - (ELP/1000) * P)
    predicted refr.    R   = Pc + Pi' - 1336 / AL
"""

import math

from ..errors import NumericDegeneracy

N_AQUEOUS = 1.336  # refractive index of aqueous/vitreous
KERATOMETRIC_RADIUS_FACTOR = 337.5  # r(mm) = 337.5 / K

# |AL - ELP| below this is treated as a lens sitting on the retina
AXIAL_EPSILON_MM = 1e-6
_EPSILON = 1e-9


def nonzero(quantity: str, value: float, epsilon: float = _EPSILON) -> float:
    if not math.isfinite(value) or abs(value) < epsilon:
        raise NumericDegeneracy(quantity, value)
    return value


def ensure_finite(quantity: str, value: float) -> float:
    if not math.isfinite(value):
        raise NumericDegeneracy(quantity, value)
    return value


def corneal_power(avg_k: float) -> float:
    radius_m = nonzero("corneal radius", KERATOMETRIC_RADIUS_FACTOR / nonzero("average K", avg_k) / 1000.0)
    return N_AQUEOUS / radius_m


def iol_power_at_cornea(iol_power: float, elp: float) -> float:
    denom = nonzero("IOL vergence denominator", 1.0 - (elp / 1000.0) * iol_power)
    return iol_power / denom


def predict_refraction(al: float, avg_k: float, iol_power: float, elp: float) -> float:
    """Expected post-operative spherical equivalent (D) for an IOL of `iol_power` at `elp`."""
    emmetropic_power = 1336.0 / nonzero("axial length", al)
    total = corneal_power(avg_k) + iol_power_at_cornea(iol_power, elp)
    return ensure_finite("predicted refraction", total - emmetropic_power)


def vergence_power(al: float, avg_k: float, elp: float, target_refraction: float = 0.0) -> float:
    """
    Thin-lens vergence IOL power used by Holladay 1/2, Haigis, Barrett, Hill-RBF and Kane:

        P = 1336/(AL - ELP) - 1.336/(1.336/(K/337.5) - ELP/1000) + target
    """
    axial_term = 1336.0 / nonzero("AL - ELP", al - elp, AXIAL_EPSILON_MM)
    corneal_focal = N_AQUEOUS / nonzero("average K", avg_k / KERATOMETRIC_RADIUS_FACTOR)
    corneal_term = N_AQUEOUS / nonzero("corneal vergence denominator", corneal_focal - elp / 1000.0)
    return ensure_finite("IOL power", axial_term - corneal_term + target_refraction)
