from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..config import RatesConfig
from ..logic.categories import is_blind_category
from ..models import CostComparison, FabricOrientation, Orientation, OrientationResult, UsageResult
from ..normalize.inputs import (
    Resolution,
    resolve_fabric_price_per_yard,
    resolve_inputs,
    resolve_labor_rate,
)
from ..utils import quantize_money, round2
from .blind import calculate_blind_usage
from .orientation import calculate_orientation


logger = logging.getLogger(__name__)

SELECT_HEADING_WARNING = "Select a heading (or enter a fullness) before fabric usage can be calculated"


def missing_dimensions_result(missing: Sequence[str], orientation: FabricOrientation = "vertical") -> UsageResult:
    return UsageResult(
        status="missing_dimensions",
        yards=0.0,
        meters=0.0,
        fabric_orientation=orientation,
        widths_required=0,
        warnings=[f"Missing {', '.join(missing)}"],
    )


def treatment_category(form: Mapping[str, Any], template: Optional[Mapping[str, Any]]) -> str:
    if template and template.get("treatment_category"):
        return str(template["treatment_category"])
    return str(form.get("treatment_category") or "")


def can_rotate_for_savings(res: Resolution, rates: RatesConfig) -> bool:
    """Plain narrow fabric whose width covers the drop but not the rail."""
    fw = res.values["fabric_width"]
    return (
        res.is_plain
        and fw <= rates.narrow_fabric_max_cm
        and res.values["drop"] < fw
        and res.values["rail_width"] > fw
    )


def choose_orientation(
    res: Resolution,
    vertical: OrientationResult,
    horizontal: OrientationResult,
    rates: RatesConfig,
) -> Tuple[Orientation, List[str]]:
    """Manual choice wins; otherwise the automatic rules apply.

    Plain narrow fabric that can be rotated runs horizontally, then narrow or
    patterned fabric runs vertically and wide fabric horizontally.

    An automatic choice moves to the other orientation when only that one is
    feasible; a manual choice is kept and flagged.
    """
    calcs = {"vertical": vertical, "horizontal": horizontal}
    notes: List[str] = []
    fw = res.values["fabric_width"]
    if res.roll_direction:
        chosen: Orientation = res.roll_direction  # type: ignore[assignment]
        other: Orientation = "horizontal" if chosen == "vertical" else "vertical"
        if not calcs[chosen].feasible and calcs[other].feasible:
            notes.append(f"{chosen.capitalize()} orientation is not feasible; {other} orientation is recommended")
    else:
        narrow = fw <= rates.narrow_fabric_max_cm
        if can_rotate_for_savings(res, rates):
            chosen = "horizontal"
        elif res.requires_pattern_matching or narrow:
            chosen = "vertical"
        else:
            chosen = "horizontal"
        other = "horizontal" if chosen == "vertical" else "vertical"
        if not calcs[chosen].feasible and calcs[other].feasible:
            notes.append(f"Switched to {other} orientation: {chosen} orientation is not feasible")
            chosen = other
    if not vertical.feasible and not horizontal.feasible:
        notes.append("Neither orientation is feasible for this fabric width")
    logger.debug("orientation chosen=%s manual=%s fabric_width=%s", chosen, bool(res.roll_direction), fw)
    return chosen, notes


def fabric_warnings(res: Resolution, orientation: Orientation, rates: RatesConfig) -> List[str]:
    out: List[str] = []
    fw = res.values["fabric_width"]
    drop = res.values["drop"]
    if res.requires_pattern_matching and orientation == "horizontal":
        out.append("Pattern matching may be difficult with horizontal orientation")
    if res.is_plain and fw <= rates.narrow_fabric_max_cm and drop < fw and orientation == "vertical":
        out.append("Consider horizontal orientation for fabric savings")
    return out


def build_cost_comparison(vertical: OrientationResult, horizontal: OrientationResult) -> Optional[CostComparison]:
    if not (vertical.feasible and horizontal.feasible):
        return None
    best: Orientation = "vertical" if vertical.total_cost < horizontal.total_cost else "horizontal"
    return CostComparison(
        vertical=vertical,
        horizontal=horizontal,
        recommendation=best,
        savings=quantize_money(abs(horizontal.total_cost - vertical.total_cost)),
    )


def calculate_fabric_usage(
    form_data: Mapping[str, Any],
    templates: Optional[Sequence[Mapping[str, Any]]] = None,
    selected_fabric_item: Optional[Mapping[str, Any]] = None,
    rates: Optional[RatesConfig] = None,
) -> UsageResult:
    """Fabric to order for one treatment, in the chosen orientation.

    Blind-like categories are priced by area. Curtains are evaluated in both
    orientations; the result carries the chosen one plus a cost comparison
    when both are feasible. Insufficient input never raises: the result's
    ``status`` and ``warnings`` describe what is missing.
    """
    rates = rates or RatesConfig()
    res = resolve_inputs(form_data, templates, selected_fabric_item, rates)
    category = treatment_category(form_data, res.template)

    if is_blind_category(category):
        missing = [m for m in res.missing if m != "fabric width"]
        if missing:
            return missing_dimensions_result(missing, "sqm")
        result = calculate_blind_usage(res.values["rail_width"], res.values["drop"], res.template, rates)
        result.warnings = [w for w in res.warnings if not w.startswith("Fabric width")] + result.warnings
        logger.debug("blind usage for category %r: %s sqm", category, result.sqm)
        return result

    if res.missing:
        return missing_dimensions_result(res.missing)
    if res.params is None:
        return UsageResult(
            status="missing_fullness",
            warnings=[SELECT_HEADING_WARNING] + res.warnings,
            defaults_applied=list(res.defaults_applied),
        )

    params = res.params
    cost_per_yard = resolve_fabric_price_per_yard(form_data, selected_fabric_item, rates)
    labor_rate, labor_default = resolve_labor_rate(form_data, templates, rates)
    defaults = list(res.defaults_applied)
    if labor_default:
        defaults.append("labor_rate")

    vertical = calculate_orientation("vertical", params, cost_per_yard, labor_rate, rates)
    horizontal = calculate_orientation("horizontal", params, cost_per_yard, labor_rate, rates)
    orientation, notes = choose_orientation(res, vertical, horizontal, rates)
    selected = vertical if orientation == "vertical" else horizontal

    details = dict(selected.details)
    details.update(
        fabric_cost_per_yard=round2(cost_per_yard),
        labor_rate=labor_rate,
        fullness=params.fullness,
        fullness_source=res.sources.get("fullness"),
        panel_length_cm=selected.panel_length_cm,
        panel_width_cm=selected.panel_width_cm,
    )

    return UsageResult(
        yards=selected.total_yards,
        meters=selected.total_meters,
        fabric_orientation=orientation,
        feasible=selected.feasible,
        total_length_cm=selected.total_length_cm,
        widths_required=selected.widths_required,
        seams_required=selected.seams_required,
        seam_labor_hours=selected.seam_labor_hours,
        horizontal_pieces_needed=selected.horizontal_pieces_needed,
        leftover_from_last_piece=selected.leftover_from_last_piece,
        fabric_cost=selected.fabric_cost,
        labor_cost=selected.labor_cost,
        total_cost=selected.total_cost,
        cost_comparison=build_cost_comparison(vertical, horizontal),
        warnings=res.warnings + selected.warnings + notes + fabric_warnings(res, orientation, rates),
        defaults_applied=defaults,
        details=details,
        params=params,
    )
