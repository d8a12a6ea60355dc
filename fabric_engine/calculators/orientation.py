from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from ..config import RatesConfig
from ..models import CalculationInput, Orientation, OrientationResult
from ..utils import ceil_tenth, quantize_money, round_up_to_multiple, to_decimal


def _drop_with_allowances(p: CalculationInput) -> float:
    return p.drop + p.pooling + p.header_hem + p.bottom_hem


def _finished_width(p: CalculationInput) -> float:
    # overlap is a flat allowance on top of the gathered width
    return p.rail_width * p.fullness + p.overlap


def _vertical(p: CalculationInput) -> Dict[str, Any]:
    """Fabric runs top-to-bottom; each cut is one panel length."""
    fw = p.fabric_width
    warnings: List[str] = []
    feasible = True

    panel_length = round_up_to_multiple(_drop_with_allowances(p), p.vertical_pattern_repeat_cm)
    panel_width = (_finished_width(p) + p.return_left + p.return_right) / p.quantity + 2 * p.side_hem
    panel_width = round_up_to_multiple(panel_width, p.horizontal_pattern_repeat_cm)

    if panel_width > fw:
        widths_per_panel = math.ceil(round(panel_width / fw, 9))
        widths_required = widths_per_panel * p.quantity
        drops_per_width = 0
        if fw <= 2 * p.seam_hem:
            feasible = False
            warnings.append(
                f"Panel width {panel_width:g}cm exceeds fabric width {fw:g}cm and a "
                f"{p.seam_hem:g}cm seam allowance leaves no usable fabric to join"
            )
        else:
            warnings.append(
                f"Panel width {panel_width:g}cm exceeds fabric width {fw:g}cm: "
                f"{widths_per_panel} widths seamed per panel"
            )
    else:
        widths_per_panel = 1
        drops_per_width = math.floor(round(fw / panel_width, 9))
        widths_required = math.ceil(p.quantity / drops_per_width)

    seams = max(0, widths_required - 1)
    seam_allowance = seams * p.seam_hem * 2
    total_length = widths_required * panel_length + seam_allowance
    return {
        "feasible": feasible,
        "warnings": warnings,
        "panel_length_cm": panel_length,
        "panel_width_cm": panel_width,
        "widths_required": widths_required,
        "seams_required": seams,
        "seam_allowance_cm": seam_allowance,
        "total_length_cm": total_length,
        "horizontal_pieces_needed": None,
        "leftover_from_last_piece": None,
        "details": {
            "widths_per_panel": widths_per_panel,
            "drops_per_width": drops_per_width,
            "length_note": f"Cut length: {panel_length:g} cm per width",
            "width_note": f"Panel width: {panel_width:g} cm x {p.quantity} panel(s)",
        },
    }


def _horizontal(p: CalculationInput) -> Dict[str, Any]:
    """Fabric railroaded: the bolt length covers the curtain width, its width covers the drop.

    Each panel is one lengthwise run, so widths_required equals the panel
    count. A drop taller than the fabric width is covered by stacked strips,
    which add seams but not widths.
    """
    fw = p.fabric_width
    warnings: List[str] = []
    feasible = True

    total_side_hems = p.side_hem * 2 * p.quantity
    curtain_width = _finished_width(p) + p.return_left + p.return_right + total_side_hems
    # along the bolt the fabric's vertical repeat now runs across the window
    curtain_width = round_up_to_multiple(curtain_width, p.vertical_pattern_repeat_cm)
    drop_total = round_up_to_multiple(_drop_with_allowances(p), p.horizontal_pattern_repeat_cm)

    widths_required = p.quantity
    pieces: Optional[int] = None
    leftover: Optional[float] = None
    horizontal_seams = 0
    if drop_total > fw:
        pieces = math.ceil(round(drop_total / fw, 9))
        horizontal_seams = pieces - 1
        remainder = round(drop_total % fw, 6)
        leftover = round(fw - remainder, 6) if remainder > 0 else 0.0
        if fw <= 2 * p.seam_hem:
            feasible = False
            warnings.append(
                f"Drop {drop_total:g}cm exceeds fabric width {fw:g}cm and a "
                f"{p.seam_hem:g}cm seam allowance leaves no usable fabric to join"
            )
        else:
            warnings.append(
                f"Drop {drop_total:g}cm exceeds fabric width {fw:g}cm: "
                f"{pieces} horizontal pieces stacked, {horizontal_seams} horizontal seam(s)"
            )
            warnings.append(f"Leftover from last piece: {leftover:g}cm")

    seams = max(0, widths_required - 1) + horizontal_seams
    seam_allowance = seams * p.seam_hem * 2
    total_length = widths_required * curtain_width + seam_allowance
    return {
        "feasible": feasible,
        "warnings": warnings,
        "panel_length_cm": curtain_width,
        "panel_width_cm": drop_total,
        "widths_required": widths_required,
        "seams_required": seams,
        "seam_allowance_cm": seam_allowance,
        "total_length_cm": total_length,
        "horizontal_pieces_needed": pieces,
        "leftover_from_last_piece": leftover,
        "details": {
            "curtain_width_cm": curtain_width,
            "drop_with_allowances_cm": drop_total,
            "horizontal_seams": horizontal_seams,
            "length_note": f"Run length: {curtain_width:g} cm x {widths_required} width(s)",
            "width_note": f"Drop across fabric: {drop_total:g} cm of {fw:g} cm",
        },
    }


def calculate_orientation(
    orientation: Orientation,
    params: CalculationInput,
    fabric_cost_per_unit: float,
    labor_rate: float,
    rates: Optional[RatesConfig] = None,
) -> OrientationResult:
    """Fabric usage, seams, labour and cost for one fabric orientation.

    ``fabric_cost_per_unit`` is the price per yard of fabric ordered.
    Ordered length is rounded up to 0.1 yd / 0.1 m.
    """
    rates = rates or RatesConfig()
    if orientation == "vertical":
        geo = _vertical(params)
    elif orientation == "horizontal":
        geo = _horizontal(params)
    else:
        raise ValueError(f"Unknown orientation: {orientation!r}")

    total_cm = geo["total_length_cm"]
    total_yards = ceil_tenth(total_cm / rates.yard_cm)
    total_meters = ceil_tenth(total_cm / 100.0)

    seam_hours = geo["seams_required"] * rates.seam_hours_per_seam
    base_hours = rates.base_labor_hours + (
        params.rail_width * params.drop * params.fullness
    ) / rates.labor_area_divisor
    total_hours = base_hours + seam_hours

    fabric_cost = quantize_money(to_decimal(total_yards) * to_decimal(fabric_cost_per_unit or 0))
    labor_cost = quantize_money(to_decimal(total_hours) * to_decimal(labor_rate or 0))

    return OrientationResult(
        orientation=orientation,
        feasible=geo["feasible"],
        total_length_cm=total_cm,
        total_yards=total_yards,
        total_meters=total_meters,
        panel_length_cm=round(geo["panel_length_cm"], 4),
        panel_width_cm=round(geo["panel_width_cm"], 4),
        widths_required=geo["widths_required"],
        seams_required=geo["seams_required"],
        seam_allowance_cm=geo["seam_allowance_cm"],
        seam_labor_hours=seam_hours,
        base_labor_hours=round(base_hours, 4),
        total_labor_hours=round(total_hours, 4),
        horizontal_pieces_needed=geo["horizontal_pieces_needed"],
        leftover_from_last_piece=geo["leftover_from_last_piece"],
        fabric_cost=fabric_cost,
        labor_cost=labor_cost,
        total_cost=fabric_cost + labor_cost,
        warnings=geo["warnings"],
        details=geo["details"],
    )
