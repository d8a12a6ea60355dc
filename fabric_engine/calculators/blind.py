from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..config import RatesConfig
from ..models import UsageResult
from ..normalize.inputs import first_present
from ..utils import round2


logger = logging.getLogger(__name__)

BLIND_ALLOWANCES = {
    "blind_header_hem_cm": [("template", "blind_header_hem_cm"), ("template", "header_allowance")],
    "blind_bottom_hem_cm": [("template", "blind_bottom_hem_cm"), ("template", "bottom_hem")],
    "blind_side_hem_cm": [("template", "blind_side_hem_cm"), ("template", "side_hem")],
    "waste_percent": [("template", "waste_percent")],
}


def blind_allowances(template: Optional[Mapping[str, Any]]) -> tuple[Dict[str, float], List[str]]:
    """Hem and waste allowances for area-priced treatments; absent values are 0 and reported."""
    values: Dict[str, float] = {}
    defaults: List[str] = []
    for name, chain in BLIND_ALLOWANCES.items():
        val, _ = first_present({"template": template}, chain)
        if val is None or val < 0:
            logger.warning("%s not configured on template; using 0", name)
            defaults.append(name)
            val = 0.0
        values[name] = val
    return values, defaults


def calculate_blind_usage(
    rail_width: float,
    drop: float,
    template: Optional[Mapping[str, Any]] = None,
    rates: Optional[RatesConfig] = None,
) -> UsageResult:
    """Square-metre usage for blinds: no widths, seams or orientation.

    Waste is applied to the cut height so that sqm always equals
    effective width x effective height / 10000.
    """
    rates = rates or RatesConfig()
    allow, defaults = blind_allowances(template)
    side = allow["blind_side_hem_cm"]
    head = allow["blind_header_hem_cm"]
    bottom = allow["blind_bottom_hem_cm"]
    waste_pct = allow["waste_percent"]

    eff_width = rail_width + side * 2
    base_height = drop + head + bottom
    eff_height = base_height * (1 + waste_pct / 100.0)
    sqm = round2(eff_width * eff_height / 10000.0)

    return UsageResult(
        yards=sqm * rates.sqm_to_sqyd,
        meters=sqm,
        sqm=sqm,
        fabric_orientation="sqm",
        feasible=True,
        widths_required=1,
        seams_required=0,
        seam_labor_hours=0.0,
        defaults_applied=defaults,
        details={
            "effective_width_cm": eff_width,
            "effective_height_cm": eff_height,
            "waste_percent": waste_pct,
            "display": f"Material: {sqm} sqm ({eff_width:g} x {eff_height:g} cm incl hems, waste {waste_pct:g}%)",
            "width_calc_note": f"Width: {rail_width:g} + {side:g} + {side:g} = {eff_width:g} cm",
            "height_calc_note": f"Height: ({drop:g} + {head:g} + {bottom:g}) x {1 + waste_pct / 100.0:g} = {eff_height:g} cm",
        },
    )
