from __future__ import annotations

import pytest

from taxbridge.rates.parsing import join_notes, normalize_rate, parse_rate_string


def test_parse_free_and_percent():
    assert parse_rate_string("Free").is_free
    parsed = parse_rate_string("6.5%")
    assert parsed.ad_valorem_pct == pytest.approx(6.5)
    assert not parsed.is_compound


def test_parse_specific_and_compound():
    specific = parse_rate_string("3.4¢/kg")
    assert specific.ad_valorem_pct is None
    assert specific.specific_amount == pytest.approx(0.034)
    assert specific.specific_unit == "kg"

    compound = parse_rate_string("6.5% + $0.45/kg")
    assert compound.is_compound
    assert compound.ad_valorem_pct == pytest.approx(6.5)
    assert compound.specific_amount == pytest.approx(0.45)


def test_parse_unknown():
    assert parse_rate_string("").is_unknown
    assert parse_rate_string("see note 3").is_unknown


@pytest.mark.parametrize(
    "value, fraction",
    [
        (19, 0.19),
        (7.7, 0.077),
        ("20", 0.20),
        ("2.5%", 0.025),
        ("Free", 0.0),
        (None, 0.0),
        (250, 1.0),
    ],
)
def test_normalize_rate_clean_values(value, fraction):
    rate, note = normalize_rate(value)
    assert rate == pytest.approx(fraction)
    assert note is None


def test_normalize_rate_keeps_dropped_components_in_note():
    rate, note = normalize_rate("3.4¢/kg")
    assert rate == 0.0
    assert "3.4¢/kg" in note

    rate, note = normalize_rate("6.5% + 2.1¢/kg")
    assert rate == pytest.approx(0.065)
    assert "Compound" in note

    rate, note = normalize_rate("n/a")
    assert rate == 0.0
    assert "n/a" in note

    rate, note = normalize_rate(True)
    assert rate == 0.0
    assert note


def test_join_notes_skips_empty():
    assert join_notes(None, "", "a", "b") == "a; b"
    assert join_notes(None) is None
