from __future__ import annotations

import pytest

from fabric_engine.calculators.blind import blind_allowances, calculate_blind_usage


def test_blind_sqm_and_yards(blind_template):
    r = calculate_blind_usage(120, 150, blind_template)
    eff_w = r.details["effective_width_cm"]
    eff_h = r.details["effective_height_cm"]
    assert eff_w == 128
    assert eff_h == pytest.approx(166 * 1.05)
    assert r.sqm == pytest.approx(round(eff_w * eff_h / 10000, 2))
    assert r.sqm == 2.23
    assert r.yards == pytest.approx(r.sqm * 1.19599)
    assert r.fabric_orientation == "sqm"
    assert r.widths_required == 1
    assert r.seams_required == 0
    assert r.defaults_applied == []


@pytest.mark.parametrize("rail,drop", [(60, 300), (300, 60), (1000, 1000)])
def test_blind_shape_never_needs_widths(rail, drop):
    r = calculate_blind_usage(rail, drop, {})
    assert r.fabric_orientation == "sqm"
    assert r.widths_required == 1


def test_missing_blind_allowances_reported():
    values, defaults = blind_allowances({"waste_percent": 10})
    assert values["waste_percent"] == 10
    assert values["blind_side_hem_cm"] == 0
    assert "blind_header_hem_cm" in defaults
    assert "waste_percent" not in defaults
