"""Tests for the YAML-backed unit table."""

from __future__ import annotations

import pytest

from doselog.core.errors import ConfigurationError
from doselog.domains.doses.domain_logic.unit_table import (
    GREEK_MU,
    MICRO_SIGN,
    load_unit_table,
    normalize_unit_token,
)


class TestResolve:
    def test_weight_ladder_factors(self, unit_table):
        assert unit_table.resolve("Caffeine", "μg").factor == 1
        assert unit_table.resolve("Caffeine", "mg").factor == 1000
        assert unit_table.resolve("Caffeine", "g").factor == 1_000_000
        assert unit_table.resolve("Caffeine", "kg").factor == 1_000_000_000

    def test_micro_sign_resolves_to_microgram(self, unit_table):
        unit = unit_table.resolve("Melatonin", MICRO_SIGN + "g")
        assert unit.key == "microgram"
        assert unit.token == GREEK_MU + "g"

    def test_alcohol_units_are_standard_drinks(self, unit_table):
        unit = unit_table.resolve("Alcohol", "u")
        assert unit.key == "alcohol"
        assert unit.factor == 78945

    def test_substance_lookup_ignores_case(self, unit_table):
        assert unit_table.resolve("alcohol", "u").key == "alcohol"
        assert unit_table.resolve("ghb", "mL").key == "ghb"

    @pytest.mark.parametrize(
        "drug,factor",
        [
            ("Ethanol", 789450),
            ("EtOH", 789450),
            ("GHB", 1120000),
            ("GBL", 1129600),
            ("1,4-BDO", 1017300),
            ("BDO", 1017300),
        ],
    )
    def test_density_derived_millilitres(self, unit_table, drug, factor):
        assert unit_table.resolve(drug, "mL").factor == factor

    def test_generic_millilitre_has_no_factor(self, unit_table):
        unit = unit_table.resolve("Kombucha", "mL")
        assert unit.key == "milliliter"
        assert unit.factor is None

    def test_u_for_other_drugs_falls_back_to_default(self, unit_table):
        unit = unit_table.resolve("Insulin", "u")
        assert unit.is_default
        assert unit.factor == 1.0
        assert unit.token == "u"

    def test_unknown_token_keeps_its_label(self, unit_table):
        unit = unit_table.resolve("Kratom", "x")
        assert unit.is_default
        assert unit.label == "x"

    def test_empty_token_is_default(self, unit_table):
        assert unit_table.resolve("Caffeine", "").is_default


class TestPromote:
    def test_steps_up_the_ladder(self, unit_table):
        mg = unit_table.resolve("Caffeine", "mg")
        assert unit_table.promote(mg).key == "gram"

    def test_kilogram_is_the_top(self, unit_table):
        kg = unit_table.resolve("Caffeine", "kg")
        assert unit_table.promote(kg) is None

    def test_substance_units_never_promote(self, unit_table):
        assert unit_table.promote(unit_table.resolve("Alcohol", "u")) is None
        assert unit_table.promote(unit_table.resolve("GHB", "mL")) is None

    def test_default_never_promotes(self, unit_table):
        assert unit_table.promote(unit_table.default) is None


class TestLoading:
    def test_describe_lists_ladder_in_order(self, unit_table):
        described = unit_table.describe()
        assert [u["token"] for u in described["weight_ladder"]] == ["μg", "mg", "g", "kg"]
        assert {"drug": "alcohol", "token": "u", "factor": 78945.0} in described["substances"]
        assert described["volumetric"] == [{"token": "mL"}]

    def test_custom_table(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text(
            "weight_ladder:\n"
            "  - {key: milligram, token: mg, factor: 1000}\n"
            "  - {key: gram, token: g, factor: 1000000}\n"
            "substances:\n"
            "  - {key: drop, token: gtt, drugs: [Tincture], factor: 50}\n",
            encoding="utf-8",
        )
        table = load_unit_table(path)
        assert table.microgram.key == "milligram"
        assert table.resolve("Tincture", "gtt").factor == 50
        assert table.resolve("Water", "mL").is_default

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_unit_table(tmp_path / "nope.yaml")

    def test_missing_ladder_raises(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("substances: []\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Malformed"):
            load_unit_table(path)

    def test_empty_ladder_raises(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("weight_ladder: []\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="empty weight ladder"):
            load_unit_table(path)

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text("weight_ladder: [\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_unit_table(path)


def test_normalize_unit_token():
    assert normalize_unit_token(MICRO_SIGN + "g") == GREEK_MU + "g"
    assert normalize_unit_token("mg") == "mg"
