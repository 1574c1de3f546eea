"""Tests for the dosage parser."""

from __future__ import annotations

import pytest

from doselog.domains.doses.domain_logic.dosage_parser import (
    ParsedDosage,
    Unparseable,
    parse_dosage,
    resolve_dosage,
)


class TestParseDosage:
    @pytest.mark.parametrize(
        "text,amount,token",
        [
            ("10mg", 10.0, "mg"),
            ("0.5 mL", 0.5, "mL"),
            ("5 - μg", 5.0, "μg"),
            ("2_u", 2.0, "u"),
            ("1.5g", 1.5, "g"),
            ("1kg", 1.0, "kg"),
            ("3x", 3.0, "x"),
            ("10", 10.0, ""),
            ("10 tabs", 10.0, ""),
            ("~20mg", 20.0, "mg"),
        ],
    )
    def test_amount_and_unit(self, text, amount, token):
        assert parse_dosage(text) == ParsedDosage(amount=amount, unit_token=token)

    def test_micro_sign_is_normalised(self):
        assert parse_dosage("300µg") == ParsedDosage(300.0, "μg")

    def test_first_number_wins(self):
        assert parse_dosage("10mg + 5mg") == ParsedDosage(10.0, "mg")

    @pytest.mark.parametrize("text", ["", "a pinch", "?"])
    def test_no_number_is_unparseable(self, text):
        result = parse_dosage(text)
        assert isinstance(result, Unparseable)
        assert result.reason == "no numeric amount"

    def test_malformed_number_is_unparseable(self):
        result = parse_dosage("1.2.3mg")
        assert isinstance(result, Unparseable)
        assert "invalid number" in result.reason


class TestResolveDosage:
    def test_micrograms_for_weight(self, unit_table):
        resolved = resolve_dosage("10mg", "Caffeine", unit_table)
        assert resolved.micrograms == 10_000

    def test_micrograms_for_alcohol(self, unit_table):
        resolved = resolve_dosage("2u", "Alcohol", unit_table)
        assert resolved.unit.key == "alcohol"
        assert resolved.micrograms == 157_890

    def test_generic_volume_has_no_micrograms(self, unit_table):
        resolved = resolve_dosage("250mL", "Kombucha", unit_table)
        assert resolved.micrograms is None

    def test_unparseable_passes_through(self, unit_table):
        assert isinstance(resolve_dosage("", "Caffeine", unit_table), Unparseable)
