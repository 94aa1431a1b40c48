"""
Formula Protection Unit Tests

Regression tests pinning the behaviour of the eight power formulas. The
expected values below were derived by hand from the formula definitions in
iolcalc/services/calculations.py; if one of these fails, a coefficient or
branch has changed.
"""

import math

import pytest

from iolcalc import Algorithm, BiometryInput, UnsupportedAlgorithm, compute
from iolcalc.errors import InvalidAlgorithm, NumericDegeneracy
from iolcalc.services import calculations
from iolcalc.services.calculations import quantize_power
from iolcalc.services.refraction import predict_refraction, vergence_power


def average_eye(**overrides):
    values = dict(axial_length=23.5, k1=43.0, k2=44.0, anterior_chamber_depth=3.2, lens_constant=118.7)
    values.update(overrides)
    return BiometryInput(**values)


class TestFormulaProtection:
    """Pinned results for the near-average eye (AL 23.5mm, K 43.0/44.0D, A 118.7)."""

    def setup_method(self):
        self.eye = average_eye()

    def test_srkt_formula_protection(self):
        result = compute("srk_t", self.eye)

        assert result.iol_power == 77.25, f"SRK/T result {result.iol_power}D changed"
        assert result.effective_lens_position == 0.90
        assert result.details["offset"] == pytest.approx(-2.3165)
        assert result.details["acd_predicted"] == pytest.approx(3.220440, abs=1e-6)
        assert result.details["algorithm_version"] == "SRK/T v2.0"

    def test_srkt_long_eye_uses_log_offset(self):
        result = compute("srk_t", average_eye(axial_length=25.0, k1=43.5, k2=43.5))

        assert result.details["offset"] == pytest.approx(-3.446 + 1.716 * math.log10(25.0))
        assert result.effective_lens_position == 2.37
        assert result.iol_power == 73.75

    def test_srkt_short_eye_band(self):
        result = compute("srk_t", average_eye(axial_length=21.0, k1=43.5, k2=43.5))

        assert result.details["acd_predicted"] == pytest.approx(2.45)
        assert result.effective_lens_position == 0.20
        assert result.iol_power == 79.0

    def test_haigis_formula_protection(self):
        result = compute("haigis", self.eye)

        assert result.iol_power == 60.0, f"Haigis result {result.iol_power}D changed"
        assert result.effective_lens_position == 1.27

        formula_data = result.details
        assert formula_data["a0"] == 0.62467
        assert formula_data["a1"] == 0.68
        assert formula_data["a2"] == -0.065
        assert formula_data["uses_measured_acd"] is True

    def test_hoffer_q_formula_protection(self):
        result = compute("hoffer_q", self.eye)

        assert result.details["pacd"] == pytest.approx(0.5663 * 118.7 - 65.6)
        assert result.effective_lens_position == 18.69
        assert result.iol_power == -219.75

    def test_holladay_1_formula_protection(self):
        result = compute("holladay_1", self.eye)

        assert result.details["sf_factor"] == pytest.approx(9.92445, abs=1e-4)
        assert result.details["acd_predicted"] == pytest.approx(19.35)
        assert result.effective_lens_position == 29.27
        assert result.iol_power == -231.5

    def test_holladay_2_uses_default_age(self):
        result = compute("holladay_2", self.eye)

        assert result.details["age"] == 60
        assert result.details["variables_used"] == 7
        assert result.details["acd_predicted"] == pytest.approx(7.553)

    def test_barrett_axial_corrections(self):
        average = compute("barrett_universal_ii", self.eye)
        short = compute("barrett_universal_ii", average_eye(axial_length=21.5))
        long = compute("barrett_universal_ii", average_eye(axial_length=26.5))

        assert average.details["axial_correction"] == 1.0
        assert short.details["axial_correction"] == 0.98
        assert long.details["axial_correction"] == 1.02
        assert average.effective_lens_position == pytest.approx(8.28, abs=0.005)

    def test_hill_rbf_weights(self):
        result = compute("hill_rbf", self.eye)

        weights = result.details["pattern_weights"]
        assert len(weights) == 3
        assert weights[1] == pytest.approx(1.0)  # ACD and K sit on the anchor centre
        assert result.effective_lens_position == pytest.approx(3.23, abs=0.01)

    def test_kane_asphericity_correction(self):
        result = compute("kane", self.eye)

        assert result.details["asphericity_correction"] == pytest.approx(-0.026)
        assert result.effective_lens_position == pytest.approx(5.50, abs=0.01)


class TestFormulaProperties:

    def setup_method(self):
        self.eye = average_eye()

    @pytest.mark.parametrize("algorithm", [a.value for a in Algorithm])
    def test_power_is_quarter_diopter_multiple(self, algorithm):
        for al in (21.0, 23.5, 25.0, 28.0):
            result = compute(algorithm, average_eye(axial_length=al))
            assert (result.iol_power * 4) == int(result.iol_power * 4), \
                f"{algorithm} returned {result.iol_power}D at AL={al}"

    @pytest.mark.parametrize("algorithm", [a.value for a in Algorithm])
    def test_compute_is_idempotent(self, algorithm):
        assert compute(algorithm, self.eye) == compute(algorithm, self.eye)

    @pytest.mark.parametrize("algorithm", [a.value for a in Algorithm])
    def test_extreme_short_eye_still_computes(self, algorithm):
        result = compute(algorithm, average_eye(axial_length=19.0, lens_constant=118.0))
        assert math.isfinite(result.iol_power)
        assert math.isfinite(result.predicted_refraction)

    def test_target_refraction_shifts_srkt_linearly(self):
        plano = compute("srk_t", self.eye)
        myopic = compute("srk_t", average_eye(target_refraction=-1.0))
        assert myopic.iol_power == plano.iol_power - 1.0

    def test_srkt_and_hoffer_q_match_shared_refraction_model(self):
        srkt = compute("srk_t", self.eye)
        elp = srkt.details["acd_predicted"] + srkt.details["offset"]
        power = 118.7 - 2.5 * elp - 0.9 * 43.5
        assert srkt.predicted_refraction == round(predict_refraction(23.5, 43.5, power, elp), 2)

        hoffer = compute("hoffer_q", self.eye)
        elp = hoffer.details["pacd"] + 2.5 + 0.62 * 23.5
        power = 118.7 - 2.5 * (23.5 + elp) - 0.9 * 43.5 - hoffer.details["g_factor"]
        assert hoffer.predicted_refraction == round(predict_refraction(23.5, 43.5, power, elp), 2)

    def test_holladay_1_matches_shared_refraction_model(self):
        result = compute("holladay_1", self.eye)
        elp = result.details["acd_predicted"] + result.details["sf_factor"]
        power = vergence_power(23.5, 43.5, elp)
        assert result.predicted_refraction == round(predict_refraction(23.5, 43.5, power, elp), 2)

    def test_result_carries_reliability_and_recommendation(self):
        result = compute("hoffer_q", average_eye(axial_length=21.5))
        assert result.reliability_score == 0.95
        assert result.recommendation == "Highly recommended for short eyes"
        assert result.accuracy_level == "high"
        assert result.name == "Hoffer Q"


class TestAlgorithmDispatch:

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(UnsupportedAlgorithm) as exc_info:
            compute("srk_ii", average_eye())
        assert exc_info.value.algorithm == "srk_ii"

    def test_invalid_algorithm_alias(self):
        with pytest.raises(InvalidAlgorithm):
            compute("olsen", average_eye())

    def test_unsupported_algorithm_is_value_error(self):
        with pytest.raises(ValueError):
            Algorithm.parse(None)

    @pytest.mark.parametrize("key, expected", [
        ("srk_t", Algorithm.SRK_T),
        ("SRK/T", Algorithm.SRK_T),
        ("hill-rbf", Algorithm.HILL_RBF),
        (" Barrett Universal II ", Algorithm.BARRETT_UNIVERSAL_II),
        (Algorithm.KANE, Algorithm.KANE),
    ])
    def test_parse_accepts_ids_and_display_names(self, key, expected):
        assert Algorithm.parse(key) is expected

    def test_every_algorithm_has_a_calculator(self):
        assert set(calculations.CALCULATORS) == set(Algorithm)
        assert Algorithm.HAIGIS.calculator is calculations.calculate_haigis

    def test_degeneracy_names_the_formula(self):
        # Haigis ELP lands on the retina: 0.62467 + 0.68*ACD - 0.065*AL == AL
        eye = BiometryInput(axial_length=1.0, k1=43.5, k2=43.5, anterior_chamber_depth=0.6475441)
        with pytest.raises(NumericDegeneracy) as exc_info:
            compute("haigis", eye)
        assert exc_info.value.algorithm == "haigis"
        assert exc_info.value.quantity == "AL - ELP"


class TestQuantization:

    @pytest.mark.parametrize("raw, expected", [
        (20.1, 20.0),
        (20.125, 20.25),
        (20.374, 20.25),
        (-20.125, -20.25),
        (0.1, 0.0),
        (77.29015, 77.25),
    ])
    def test_quantize_power(self, raw, expected):
        assert quantize_power(raw) == expected
