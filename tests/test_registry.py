import dataclasses

import pytest

from iolcalc import Algorithm, IOLCalculator, get_lens, list_algorithms, list_lens_models
from iolcalc.config import ALL_ALGORITHMS
from iolcalc.services.registry import FORMULAS, LENSES, get_algorithm_metadata, lens_constant_for


class TestFormulaRegistry:

    def test_eight_formulas_in_order(self):
        assert tuple(f.id for f in list_algorithms()) == ALL_ALGORITHMS
        assert tuple(a.value for a in Algorithm) == ALL_ALGORITHMS

    def test_metadata(self):
        srkt = get_algorithm_metadata("srk_t")
        assert srkt.name == "SRK/T"
        assert srkt.year_developed == 1990
        assert srkt.formula_type == "theoretical"
        assert get_algorithm_metadata("kane").accuracy_level == "very_high"
        assert get_algorithm_metadata("hoffer_q").best_for == "Short eyes (AL < 22.0mm)"
        assert get_algorithm_metadata("nope") is None

    def test_every_algorithm_has_metadata(self):
        for algorithm in Algorithm:
            assert algorithm.metadata is FORMULAS[algorithm.value]
            assert callable(algorithm.calculator)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            FORMULAS["new"] = FORMULAS["srk_t"]
        with pytest.raises(dataclasses.FrozenInstanceError):
            FORMULAS["srk_t"].name = "SRK"


class TestLensRegistry:

    def test_lens_catalogue(self):
        ids = [lens.id for lens in list_lens_models()]
        assert ids[:3] == ["SA60AT", "SN60WF", "ZCB00"]
        assert len(ids) == 7

    def test_lookup_is_case_insensitive(self):
        assert get_lens("sn60wf") is LENSES["SN60WF"]
        assert get_lens("SN60WF").a_constant == 118.7

    def test_unknown_lens(self):
        assert get_lens("XYZ") is None
        with pytest.raises(KeyError):
            lens_constant_for("XYZ")

    def test_lens_constants(self):
        assert lens_constant_for("SA60AT") == 118.9
        assert lens_constant_for("zcb00") == 119.3
        assert LENSES["SA60AT"].surgeon_factor == 1.6
        assert LENSES["PANOPTIX"].category == "premium_multifocal"

    def test_calculator_exposes_registries(self):
        assert IOLCalculator.list_algorithms() == list_algorithms()
        assert IOLCalculator.list_lens_models() == list_lens_models()
