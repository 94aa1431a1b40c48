"""
Reliability and recommendation rules.

Deterministic heuristics keyed on axial length and corneal astigmatism. They
annotate results with advisory text and reliability scores; they never change
a computed power.
"""

from typing import Dict, List

DEFAULT_RELIABILITY = 0.85

SHORT_EYE_MM = 22.0
LONG_EYE_MM = 26.0
TORIC_ASTIGMATISM_D = 1.5

# AL-independent scores for the pattern/AI based formulas
_FLAT_RELIABILITY: Dict[str, float] = {
    "barrett_universal_ii": 0.95,
    "kane": 0.93,
    "hill_rbf": 0.92,
}


def reliability_score(algorithm: str, al: float) -> float:
    if algorithm in _FLAT_RELIABILITY:
        return _FLAT_RELIABILITY[algorithm]
    if algorithm == "srk_t":
        return 0.90 if 21.0 < al < 27.0 else 0.85
    if algorithm == "hoffer_q":
        if al < SHORT_EYE_MM:
            return 0.95
        return 0.75 if al > 24.5 else 0.85
    if algorithm == "haigis":
        return 0.95 if al > LONG_EYE_MM else 0.85
    return DEFAULT_RELIABILITY


def algorithm_recommendation(algorithm: str, al: float) -> str:
    if al < SHORT_EYE_MM:
        if algorithm == "hoffer_q":
            return "Highly recommended for short eyes"
        return "Consider Hoffer Q for better accuracy"
    if al > LONG_EYE_MM:
        if algorithm == "haigis":
            return "Optimal choice for long eyes"
        return "Consider Haigis or Barrett Universal II"
    return "Good choice for average axial length"


def eye_recommendations(al: float, astigmatism: float) -> List[str]:
    """Formula and toric guidance for the eye as a whole."""
    recommendations = []
    if al < SHORT_EYE_MM:
        recommendations.append("Short eye detected - Hoffer Q or Barrett Universal II recommended")
    elif al > LONG_EYE_MM:
        recommendations.append("Long eye detected - Haigis, Barrett Universal II, or SRK/T recommended")
    if astigmatism > TORIC_ASTIGMATISM_D:
        recommendations.append("High corneal astigmatism - consider toric IOL calculation")
    return recommendations


def consensus_recommendation(std_dev: float) -> str:
    if std_dev < 0.5:
        return f"Excellent consensus (±{std_dev:.2f}D) - High confidence in IOL power selection"
    if std_dev < 1.0:
        return f"Good consensus (±{std_dev:.2f}D) - Consider surgeon preference and eye characteristics"
    return f"Poor consensus (±{std_dev:.2f}D) - Review biometry data and consider additional measurements"


def surgical_considerations(biometry) -> List[str]:
    considerations = []
    al = biometry.axial_length
    if al < SHORT_EYE_MM:
        considerations.append("Short eye - increased risk of choroidal effusion")
        considerations.append("Consider prophylactic sclerotomy")
    if al > LONG_EYE_MM:
        considerations.append("High myopia - increased risk of retinal complications")
        considerations.append("Careful fundus examination recommended")
    if biometry.anterior_chamber_depth < 2.5:
        considerations.append("Shallow anterior chamber - risk of angle closure")
        considerations.append("Consider smaller IOL or careful technique")
    return considerations


def lens_recommendations(iol_power: float, astigmatism: float) -> Dict[str, object]:
    """Lens families suited to the chosen power, plus toric options above 1.0 D of astigmatism."""
    if iol_power < 15:
        recommendations = {
            "power_category": "Low power IOL required",
            "suggested_lenses": ["Alcon SA60AT", "Tecnis ZCB00"],
        }
    elif iol_power > 25:
        recommendations = {
            "power_category": "High power IOL required",
            "suggested_lenses": ["Alcon MA60BM", "AMO AR40e"],
        }
    else:
        recommendations = {
            "power_category": "Standard power IOL",
            "suggested_lenses": ["Alcon SA60AT", "Tecnis ZCB00", "Bausch & Lomb LI61SE"],
        }
    if astigmatism > 1.0:
        recommendations["toric_consideration"] = "Consider toric IOL for astigmatism correction"
        recommendations["toric_lenses"] = ["Alcon SN6AT", "Tecnis ZCT"]
    return recommendations


def assess_algorithm_choice(al: float, algorithm: str) -> Dict[str, int]:
    """Score how appropriate a surgeon's chosen formula is for this axial length."""
    quality = {
        "overall_score": 85,
        "data_completeness": 90,
        "measurement_reliability": 85,
        "algorithm_appropriateness": 90,
    }
    if al < 20 or al > 30:
        quality["measurement_reliability"] -= 20
        quality["overall_score"] -= 15
    if (al < SHORT_EYE_MM and algorithm != "hoffer_q") or (
        al > LONG_EYE_MM and algorithm not in ("haigis", "barrett_universal_ii", "srk_t")
    ):
        quality["algorithm_appropriateness"] -= 15
        quality["overall_score"] -= 10
    return quality
