from __future__ import annotations

from decimal import Decimal

import pytest

from fabric_engine.calculators.orientation import calculate_orientation
from fabric_engine.models import CalculationInput


def test_vertical_pair_needs_seamed_widths(pair_params):
    r = calculate_orientation("vertical", pair_params, 10, 20)
    assert r.panel_width_cm == 385
    assert r.panel_length_cm == 275
    assert r.details["widths_per_panel"] == 3
    assert r.widths_required == 6
    assert r.seams_required == 5
    assert r.total_length_cm == 6 * 275 + 5 * 3 * 2
    assert r.total_yards == 18.4
    assert r.total_meters == 16.8
    assert r.seam_labor_hours == 2.5
    assert r.base_labor_hours == 9.5
    assert r.fabric_cost == Decimal("184.00")
    assert r.labor_cost == Decimal("240.00")
    assert r.total_cost == Decimal("424.00")
    assert r.feasible is True
    assert any("exceeds fabric width" in w for w in r.warnings)


def test_horizontal_length_follows_curtain_width(pair_params):
    r = calculate_orientation("horizontal", pair_params, 10, 20)
    # 300 x 2.5 plus 5cm side hems on both sides of two panels
    assert r.details["curtain_width_cm"] == 770
    assert r.widths_required == 2
    assert r.horizontal_pieces_needed == 3
    assert r.leftover_from_last_piece == 136
    assert r.seams_required == 1 + 2
    assert r.panel_length_cm == 770
    # one run per panel; stacked strips only add seams
    assert r.total_length_cm == 2 * 770 + 3 * 3 * 2
    assert r.total_yards == 17.1
    assert r.fabric_cost == Decimal("171.00")
    assert r.labor_cost == Decimal("220.00")
    assert r.total_cost == Decimal("391.00")
    assert any("Leftover from last piece: 136cm" == w for w in r.warnings)


def test_horizontal_single_piece_when_drop_fits():
    p = CalculationInput(rail_width=300, drop=250, fabric_width=280, fullness=2)
    r = calculate_orientation("horizontal", p, 0, 0)
    assert r.horizontal_pieces_needed is None
    assert r.seams_required == 0
    assert r.total_length_cm == 600


def test_narrow_panels_share_a_width():
    p = CalculationInput(rail_width=60, drop=200, fabric_width=140, fullness=1, quantity=4)
    r = calculate_orientation("vertical", p, 0, 0)
    assert r.panel_width_cm == 15
    assert r.details["drops_per_width"] == 9
    assert r.widths_required == 1
    assert r.seams_required == 0


def test_pattern_repeat_rounds_cut_length():
    p = CalculationInput(rail_width=100, drop=250, fabric_width=140, fullness=1, header_hem=15, bottom_hem=10,
                         vertical_pattern_repeat_cm=64)
    r = calculate_orientation("vertical", p, 0, 0)
    assert r.panel_length_cm == 320


def test_overlap_added_after_fullness():
    p = CalculationInput(rail_width=100, drop=200, fabric_width=300, fullness=2, overlap=10)
    r = calculate_orientation("vertical", p, 0, 0)
    assert r.panel_width_cm == 210


def test_infeasible_when_seam_allowance_swallows_fabric():
    p = CalculationInput(rail_width=300, drop=200, fabric_width=10, fullness=2, seam_hem=5)
    r = calculate_orientation("vertical", p, 0, 0)
    assert r.feasible is False
    assert r.warnings


def test_unknown_orientation(pair_params):
    with pytest.raises(ValueError):
        calculate_orientation("diagonal", pair_params, 0, 0)


@pytest.mark.parametrize("orientation", ["vertical", "horizontal"])
@pytest.mark.parametrize(
    "rail,drop,fw,fullness,qty",
    [(300, 250, 137, 2.5, 2), (123.4, 211.7, 140, 2.2, 1), (50, 90, 300, 1.5, 3), (480, 310, 137, 3, 2)],
)
def test_never_under_orders(orientation, rail, drop, fw, fullness, qty):
    p = CalculationInput(rail_width=rail, drop=drop, fabric_width=fw, fullness=fullness, quantity=qty,
                         header_hem=12.5, bottom_hem=7.5, side_hem=4, seam_hem=2)
    r = calculate_orientation(orientation, p, 7.5, 30)
    assert r.total_yards * 91.44 >= r.total_length_cm - 1e-9
    assert r.total_meters * 100 >= r.total_length_cm - 1e-9
    assert round(r.total_yards * 10) == pytest.approx(r.total_yards * 10)


def test_vertical_widths_monotonic_in_rail_width():
    previous = 0
    for rail in range(50, 1000, 25):
        p = CalculationInput(rail_width=rail, drop=250, fabric_width=137, fullness=2.5, quantity=2, side_hem=5)
        r = calculate_orientation("vertical", p, 0, 0)
        assert r.seams_required == max(0, r.widths_required - 1)
        assert r.widths_required >= previous
        previous = r.widths_required


def test_square_inputs_cost_the_same_both_ways():
    p = CalculationInput(rail_width=130, drop=130, fabric_width=137, fullness=1)
    v = calculate_orientation("vertical", p, 12, 25)
    h = calculate_orientation("horizontal", p, 12, 25)
    assert v.total_cost == h.total_cost


def test_idempotent(pair_params):
    a = calculate_orientation("horizontal", pair_params, 10, 20)
    b = calculate_orientation("horizontal", pair_params, 10, 20)
    assert a.model_dump() == b.model_dump()


def test_horizontal_order_covers_every_panel():
    p = CalculationInput(rail_width=300, drop=200, fabric_width=280, fullness=2, quantity=2)
    r = calculate_orientation("horizontal", p, 0, 0)
    assert r.panel_length_cm == 600
    assert r.widths_required == 2
    assert r.seams_required == 1
    assert r.total_length_cm == 2 * 600
    assert r.details["length_note"] == "Run length: 600 cm x 2 width(s)"


def test_costs_are_money_decimals(pair_params):
    r = calculate_orientation("vertical", pair_params, "10.555", 20)
    assert isinstance(r.fabric_cost, Decimal)
    assert r.fabric_cost == Decimal("194.21")
    assert r.total_cost == r.fabric_cost + r.labor_cost
