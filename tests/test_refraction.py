import math

import pytest

from iolcalc.errors import NumericDegeneracy
from iolcalc.services.refraction import (
    corneal_power,
    ensure_finite,
    iol_power_at_cornea,
    nonzero,
    predict_refraction,
    vergence_power,
)


class TestPredictedRefraction:

    def test_aphakic_eye(self):
        # no IOL: corneal power less the emmetropic axial term
        assert predict_refraction(23.5, 43.5, 0.0, 5.0) == pytest.approx(115.34, abs=0.01)

    def test_components_add_up(self):
        expected = corneal_power(43.5) + iol_power_at_cornea(20.0, 5.0) - 1336.0 / 23.5
        assert predict_refraction(23.5, 43.5, 20.0, 5.0) == pytest.approx(expected)

    def test_iol_power_at_cornea(self):
        assert iol_power_at_cornea(20.0, 5.0) == pytest.approx(20.0 / 0.9)
        assert iol_power_at_cornea(0.0, 5.0) == 0.0

    def test_vergence_denominator_zero(self):
        with pytest.raises(NumericDegeneracy) as excinfo:
            predict_refraction(23.5, 43.5, 200.0, 5.0)
        assert excinfo.value.quantity == "IOL vergence denominator"

    def test_zero_axial_length(self):
        with pytest.raises(NumericDegeneracy) as excinfo:
            predict_refraction(0.0, 43.5, 20.0, 5.0)
        assert excinfo.value.quantity == "axial length"


class TestVergencePower:

    def test_matches_closed_form(self):
        expected = 1336.0 / 18.5 - 1.336 / (1.336 / (43.5 / 337.5) - 0.005)
        assert vergence_power(23.5, 43.5, 5.0) == pytest.approx(expected)

    def test_target_added_linearly(self):
        assert vergence_power(23.5, 43.5, 5.0, -0.5) == pytest.approx(vergence_power(23.5, 43.5, 5.0) - 0.5)

    def test_lens_on_retina(self):
        with pytest.raises(NumericDegeneracy) as excinfo:
            vergence_power(23.5, 43.5, 23.5)
        assert excinfo.value.quantity == "AL - ELP"
        assert isinstance(excinfo.value, ArithmeticError)

    def test_zero_k(self):
        with pytest.raises(NumericDegeneracy):
            vergence_power(23.5, 0.0, 5.0)


class TestGuards:

    def test_nonzero_passes_value_through(self):
        assert nonzero("x", -2.5) == -2.5

    @pytest.mark.parametrize("value", [0.0, 1e-12, math.nan, math.inf])
    def test_nonzero_rejects(self, value):
        with pytest.raises(NumericDegeneracy):
            nonzero("x", value)

    def test_custom_epsilon(self):
        assert nonzero("x", 1e-7) == 1e-7
        with pytest.raises(NumericDegeneracy):
            nonzero("x", 1e-7, 1e-6)

    def test_ensure_finite(self):
        assert ensure_finite("x", 0.0) == 0.0
        with pytest.raises(NumericDegeneracy) as excinfo:
            ensure_finite("predicted refraction", -math.inf)
        assert "predicted refraction" in str(excinfo.value)
