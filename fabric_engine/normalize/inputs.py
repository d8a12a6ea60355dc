from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config import RatesConfig
from ..models import CalculationInput
from ..utils import parse_number
from .fabric import classify_fabric_type


logger = logging.getLogger(__name__)

# A lookup chain is an ordered list of (source, key) pairs; the first source
# holding a parseable value for its key wins, including an explicit 0.
Chain = Sequence[Tuple[str, str]]

HEADER_HEM_CHAIN: Chain = [
    ("form", "header_hem"),
    ("template", "header_allowance"),
    ("template", "header_hem"),
    ("template", "header_hem_cm"),
]
BOTTOM_HEM_CHAIN: Chain = [
    ("form", "bottom_hem"),
    ("template", "bottom_hem"),
    ("template", "bottom_allowance"),
    ("template", "bottom_hem_cm"),
]
SIDE_HEM_CHAIN: Chain = [
    ("form", "side_hem"),
    ("template", "side_hem"),
    ("template", "side_hems"),
    ("template", "side_hem_cm"),
]
SEAM_HEM_CHAIN: Chain = [
    ("form", "seam_hem"),
    ("template", "seam_allowance"),
    ("template", "seam_hem"),
    ("template", "seam_hem_cm"),
]
POOLING_CHAIN: Chain = [
    ("form", "pooling"),
    ("template", "pooling"),
    ("template", "pooling_cm"),
]
FULLNESS_CHAIN: Chain = [
    ("form", "heading_fullness"),
    ("heading", "fullness_ratio"),
    ("heading", "fullness"),
]
FABRIC_WIDTH_CHAIN: Chain = [
    ("fabric", "fabric_width"),
    ("fabric", "fabric_width_cm"),
    ("form", "fabric_width"),
]
VERTICAL_REPEAT_CHAIN: Chain = [
    ("form", "vertical_pattern_repeat_cm"),
    ("form", "pattern_repeat_vertical"),
    ("fabric", "pattern_repeat_vertical"),
    ("fabric", "vertical_pattern_repeat_cm"),
]
HORIZONTAL_REPEAT_CHAIN: Chain = [
    ("form", "horizontal_pattern_repeat_cm"),
    ("form", "pattern_repeat_horizontal"),
    ("fabric", "pattern_repeat_horizontal"),
    ("fabric", "horizontal_pattern_repeat_cm"),
]
RETURN_LEFT_CHAIN: Chain = [("form", "return_left"), ("template", "return_left")]
RETURN_RIGHT_CHAIN: Chain = [("form", "return_right"), ("template", "return_right")]
OVERLAP_CHAIN: Chain = [("form", "overlap"), ("template", "overlap"), ("template", "overlap_cm")]

# Allowances a template is expected to configure; a zero fallback is reported.
TEMPLATE_CONFIGURED = {
    "header_hem": HEADER_HEM_CHAIN,
    "bottom_hem": BOTTOM_HEM_CHAIN,
    "side_hem": SIDE_HEM_CHAIN,
    "seam_hem": SEAM_HEM_CHAIN,
}
OPTIONAL_ALLOWANCES = {
    "pooling": POOLING_CHAIN,
    "return_left": RETURN_LEFT_CHAIN,
    "return_right": RETURN_RIGHT_CHAIN,
    "overlap": OVERLAP_CHAIN,
    "vertical_pattern_repeat_cm": VERTICAL_REPEAT_CHAIN,
    "horizontal_pattern_repeat_cm": HORIZONTAL_REPEAT_CHAIN,
}


@dataclass
class Resolution:
    params: Optional[CalculationInput] = None
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    defaults_applied: List[str] = field(default_factory=list)
    sources: Dict[str, str] = field(default_factory=dict)
    values: Dict[str, Any] = field(default_factory=dict)
    template: Optional[Dict[str, Any]] = None
    heading: Optional[Dict[str, Any]] = None
    fabric_type: str = ""
    is_plain: bool = False
    requires_pattern_matching: bool = False
    roll_direction: Optional[str] = None  # None = auto

    @property
    def fullness_resolved(self) -> bool:
        return self.values.get("fullness") is not None


def first_present(sources: Mapping[str, Optional[Mapping[str, Any]]], chain: Chain) -> Tuple[Optional[float], Optional[str]]:
    """Walk a lookup chain and return (value, "source.key") of the first present value."""
    for source, key in chain:
        rec = sources.get(source)
        if not rec:
            continue
        val = parse_number(rec.get(key))
        if val is not None:
            return val, f"{source}.{key}"
    return None, None


def find_template(templates: Optional[Sequence[Mapping[str, Any]]], form: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Template chosen by ``treatment_type_id``; falls back to a name match on ``treatment_type``."""
    templates = templates or []
    tid = form.get("treatment_type_id")
    if tid is not None:
        for t in templates:
            if t.get("id") == tid:
                return dict(t)
    name = form.get("treatment_type")
    if name:
        for t in templates:
            if t.get("name") == name:
                return dict(t)
    return None


def find_heading(
    form: Mapping[str, Any],
    fabric_item: Optional[Mapping[str, Any]],
    template: Optional[Mapping[str, Any]],
) -> Optional[Dict[str, Any]]:
    heading_id = form.get("selected_heading")
    if not heading_id:
        return None
    pools: List[Any] = []
    for rec in (fabric_item, template):
        if rec:
            pools.append(rec.get("heading_options") or rec.get("headingOptions") or [])
    for pool in pools:
        for h in pool:
            if isinstance(h, Mapping) and h.get("id") == heading_id:
                return dict(h)
    return None


def resolve_quantity(form: Mapping[str, Any]) -> int:
    if str(form.get("curtain_type") or "").lower() == "pair":
        return 2
    qty = parse_number(form.get("quantity"))
    if qty is None or qty < 1:
        return 1
    # a part panel is still a panel to make
    return math.ceil(qty)


def _resolve_roll_direction(form: Mapping[str, Any]) -> Optional[str]:
    """Manual orientation if the user chose or rotated; None means auto."""
    rotated = form.get("fabric_rotated")
    flag = str(rotated).strip().lower()
    if rotated is True or flag == "true":
        return "horizontal"
    if rotated is False or flag == "false":
        return "vertical"
    rd = str(form.get("roll_direction") or "").strip().lower()
    if rd in ("vertical", "horizontal"):
        return rd
    return None


def _check_unit_range(label: str, value: float, rates: RatesConfig) -> Optional[str]:
    if value < rates.plausible_min_cm or value > rates.plausible_max_cm:
        return (
            f"{label} of {value:g} is outside the expected centimetre range "
            f"({rates.plausible_min_cm:g}-{rates.plausible_max_cm:g}); check the measurement unit"
        )
    return None


def resolve_inputs(
    form: Mapping[str, Any],
    templates: Optional[Sequence[Mapping[str, Any]]] = None,
    selected_fabric_item: Optional[Mapping[str, Any]] = None,
    rates: Optional[RatesConfig] = None,
) -> Resolution:
    """Turn raw form state plus template/heading/fabric metadata into a CalculationInput.

    Priority for every field: explicit user value, then heading or fabric
    item metadata, then the template, then 0 for allowances. Fullness has
    no template or hardcoded fallback; without a heading or an explicit
    value the resolution reports it as unresolved. Side-effect free apart
    from logging.
    """
    rates = rates or RatesConfig()
    res = Resolution()
    res.template = find_template(templates, form)
    res.heading = find_heading(form, selected_fabric_item, res.template)
    sources = {
        "form": form,
        "heading": res.heading,
        "fabric": selected_fabric_item,
        "template": res.template,
    }

    fabric_type = str(form.get("fabric_type") or (selected_fabric_item or {}).get("fabric_type") or "")
    flags = classify_fabric_type(fabric_type)
    res.fabric_type = fabric_type
    res.is_plain = flags["is_plain"]
    res.requires_pattern_matching = flags["requires_pattern_matching"]
    res.roll_direction = _resolve_roll_direction(form)

    # Dimensions
    rail_width = parse_number(form.get("rail_width"))
    drop = parse_number(form.get("drop"))
    fabric_width = None
    for source, key in FABRIC_WIDTH_CHAIN:
        rec = sources.get(source) or {}
        val = parse_number(rec.get(key))
        # an inventory width of 0 means "not recorded", so keep looking
        if val is not None and val > 0:
            fabric_width = val
            res.sources["fabric_width"] = f"{source}.{key}"
            break

    for label, val in (("rail width", rail_width), ("drop", drop), ("fabric width", fabric_width)):
        if val is None or val <= 0:
            res.missing.append(label)
        else:
            msg = _check_unit_range(label.capitalize(), val, rates)
            if msg:
                res.warnings.append(msg)
    res.values.update(rail_width=rail_width, drop=drop, fabric_width=fabric_width)

    # Fullness
    fullness, src = first_present(sources, FULLNESS_CHAIN)
    if fullness is not None and fullness < 1:
        res.warnings.append(f"Fullness {fullness:g} is below 1.0 and was ignored")
        fullness, src = None, None
    res.values["fullness"] = fullness
    if src:
        res.sources["fullness"] = src
    else:
        logger.debug("fullness unresolved: no heading selected and no explicit heading_fullness")

    # Allowances
    for name, chain in TEMPLATE_CONFIGURED.items():
        val, src = first_present(sources, chain)
        if val is None:
            logger.warning("%s not configured on form or template; using 0 cm", name)
            res.defaults_applied.append(name)
            val, src = 0.0, "default"
        res.values[name] = val
        res.sources[name] = src
    for name, chain in OPTIONAL_ALLOWANCES.items():
        val, src = first_present(sources, chain)
        res.values[name] = 0.0 if val is None else val
        res.sources[name] = src or "default"
    for name in list(TEMPLATE_CONFIGURED) + list(OPTIONAL_ALLOWANCES):
        if res.values[name] < 0:
            res.warnings.append(f"Negative {name.replace('_', ' ')} ignored")
            res.values[name] = 0.0

    res.values["quantity"] = resolve_quantity(form)
    raw_qty = parse_number(form.get("quantity"))
    if raw_qty is not None and raw_qty >= 1 and not raw_qty.is_integer():
        res.warnings.append(f"Quantity {raw_qty:g} is not a whole number; using {res.values['quantity']} panel(s)")

    if not res.missing and fullness is not None:
        res.params = CalculationInput(
            rail_width=rail_width,
            drop=drop,
            fabric_width=fabric_width,
            fullness=fullness,
            quantity=res.values["quantity"],
            pooling=res.values["pooling"],
            header_hem=res.values["header_hem"],
            bottom_hem=res.values["bottom_hem"],
            side_hem=res.values["side_hem"],
            seam_hem=res.values["seam_hem"],
            vertical_pattern_repeat_cm=res.values["vertical_pattern_repeat_cm"],
            horizontal_pattern_repeat_cm=res.values["horizontal_pattern_repeat_cm"],
            return_left=res.values["return_left"],
            return_right=res.values["return_right"],
            overlap=res.values["overlap"],
        )
    logger.debug("resolved inputs: values=%s sources=%s missing=%s", res.values, res.sources, res.missing)
    return res


def resolve_fabric_price_per_yard(
    form: Mapping[str, Any],
    selected_fabric_item: Optional[Mapping[str, Any]] = None,
    rates: Optional[RatesConfig] = None,
) -> float:
    """Price per yard: the fabric item's per-metre price converted, else the form's per-yard price."""
    rates = rates or RatesConfig()
    if selected_fabric_item:
        for key in ("price_per_meter", "unit_price", "selling_price"):
            per_meter = parse_number(selected_fabric_item.get(key))
            if per_meter is not None and per_meter > 0:
                return per_meter * rates.yard_cm / 100.0
    per_yard = parse_number(form.get("fabric_cost_per_yard"))
    return per_yard if per_yard is not None and per_yard > 0 else 0.0


def resolve_labor_rate(
    form: Mapping[str, Any],
    templates: Optional[Sequence[Mapping[str, Any]]] = None,
    rates: Optional[RatesConfig] = None,
) -> Tuple[float, bool]:
    """Return (rate, used_default). Custom rate, then the treatment template's rate, then config."""
    rates = rates or RatesConfig()
    custom = parse_number(form.get("custom_labor_rate"))
    if custom is not None and custom > 0:
        return custom, False
    template = find_template(templates, form)
    if template:
        rate = parse_number(template.get("labor_rate"))
        if rate is not None and rate > 0:
            return rate, False
    logger.warning("no labour rate on form or template; using configured default %s", rates.default_labor_rate)
    return rates.default_labor_rate, True
