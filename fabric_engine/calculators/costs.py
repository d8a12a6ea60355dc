from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config import RatesConfig
from ..integrations.making_cost import MakingCostClient
from ..models import CostSummary, MakingCostRequest, OptionCost, UsageResult
from ..normalize.inputs import find_template, resolve_fabric_price_per_yard, resolve_quantity
from ..utils import fmt2, parse_number, quantize_money, to_decimal
from .options import OptionContext, iter_hierarchical, price_options, selected_ids
from .usage import calculate_fabric_usage


logger = logging.getLogger(__name__)


@dataclass
class CostJob:
    form: Dict[str, Any]
    options: List[Mapping[str, Any]] = field(default_factory=list)
    templates: List[Mapping[str, Any]] = field(default_factory=list)
    treatment_type: str = ""
    hierarchical_options: List[Mapping[str, Any]] = field(default_factory=list)
    selected_fabric_item: Optional[Mapping[str, Any]] = None
    template: Optional[Dict[str, Any]] = None


def summarize_costs(
    fabric_cost,
    options_cost,
    labor_cost,
    quantity: int = 1,
    option_details: Optional[List[OptionCost]] = None,
    making_cost=0,
    source: str = "local",
    fabric_usage: Optional[UsageResult] = None,
    warnings: Optional[List[str]] = None,
) -> CostSummary:
    """Total = fabric + options + labour, each taken at display precision."""
    fabric = to_decimal(fmt2(fabric_cost))
    opts = to_decimal(fmt2(options_cost))
    labor = to_decimal(fmt2(labor_cost))
    total = fabric + opts + labor
    qty = max(int(quantity or 1), 1)
    return CostSummary(
        source=source,
        fabric_cost=fmt2(fabric),
        options_cost=fmt2(opts),
        labor_cost=fmt2(labor),
        making_cost=fmt2(making_cost),
        total_cost=fmt2(total),
        unit_price=fmt2(total / Decimal(qty)),
        quantity=qty,
        option_details=option_details or [],
        fabric_usage=fabric_usage,
        warnings=warnings or [],
    )


def manufacturing_cost(template: Optional[Mapping[str, Any]], usage: UsageResult, quantity: int) -> float:
    """Machine charges configured on the template."""
    if not template or usage.status != "ok":
        return 0.0
    per_metre = parse_number(template.get("machine_price_per_metre")) or 0.0
    if usage.fabric_orientation == "sqm":
        # per_metre is a per-square-metre price on area-priced treatments
        return per_metre * (usage.sqm or 0.0)
    per_drop = parse_number(template.get("machine_price_per_drop")) or 0.0
    per_panel = parse_number(template.get("machine_price_per_panel")) or 0.0
    return per_metre * usage.meters + (per_drop + per_panel) * quantity


def blind_fabric_cost(
    usage: UsageResult,
    form: Mapping[str, Any],
    fabric_item: Optional[Mapping[str, Any]],
    rates: RatesConfig,
) -> float:
    sqm = usage.sqm or 0.0
    if fabric_item:
        for key in ("price_per_meter", "unit_price", "selling_price"):
            price = parse_number(fabric_item.get(key))
            if price is not None and price > 0:
                return sqm * price
    per_sqm = parse_number(form.get("fabric_cost_per_sqm"))
    if per_sqm is not None and per_sqm > 0:
        return sqm * per_sqm
    return usage.yards * resolve_fabric_price_per_yard(form, None, rates)


def option_context(form: Mapping[str, Any], usage: UsageResult, fabric_cost: float) -> OptionContext:
    p = usage.params
    return OptionContext(
        rail_width=p.rail_width if p else (parse_number(form.get("rail_width")) or 0.0),
        drop=p.drop if p else (parse_number(form.get("drop")) or 0.0),
        fullness=p.fullness if p else 1.0,
        fabric_width=p.fabric_width if p else (parse_number(form.get("fabric_width")) or 0.0),
        fabric_cost=fabric_cost,
        fabric_meters=usage.meters,
        fabric_yards=usage.yards,
        widths_required=usage.widths_required,
        quantity=p.quantity if p else resolve_quantity(form),
    )


class LocalGeometryStrategy:
    """Costs from the engine's own usage geometry."""

    source = "local"

    def __init__(self, rates: Optional[RatesConfig] = None):
        self.rates = rates or RatesConfig()

    def calculate(self, job: CostJob) -> CostSummary:
        usage = calculate_fabric_usage(job.form, job.templates, job.selected_fabric_item, self.rates)
        quantity = usage.params.quantity if usage.params else resolve_quantity(job.form)

        if usage.status != "ok":
            fabric_cost = Decimal(0)
        elif usage.fabric_orientation == "sqm":
            fabric_cost = quantize_money(blind_fabric_cost(usage, job.form, job.selected_fabric_item, self.rates))
        else:
            fabric_cost = usage.fabric_cost

        making = quantize_money(manufacturing_cost(job.template, usage, quantity))
        labor_cost = usage.labor_cost + making

        ctx = option_context(job.form, usage, float(fabric_cost))
        lines, option_warnings = price_options(
            job.form, job.options, ctx, job.hierarchical_options, job.template
        )
        options_cost = sum((to_decimal(fmt2(line.cost)) for line in lines), Decimal(0))
        logger.debug(
            "local costs: fabric=%s options=%s labor=%s making=%s", fabric_cost, options_cost, labor_cost, making
        )
        return summarize_costs(
            fabric_cost,
            options_cost,
            labor_cost,
            quantity=quantity,
            option_details=lines,
            making_cost=making,
            source=self.source,
            fabric_usage=usage,
            warnings=list(usage.warnings) + option_warnings,
        )


class MakingCostStrategy:
    """Delegates usage and costs to the external making-cost service."""

    source = "making_cost"

    def __init__(self, service, rates: Optional[RatesConfig] = None):
        self.service = service
        self.rates = rates or RatesConfig()

    def build_request(self, job: CostJob) -> MakingCostRequest:
        template = job.template or {}
        window_covering_id = job.form.get("window_covering_id") or template.get("window_covering_id") or template.get("id")
        measurement_keys = (
            "rail_width", "drop", "pooling", "fabric_width", "heading_fullness",
            "quantity", "curtain_type", "fabric_rotated", "roll_direction",
        )
        picked = selected_ids(job.form)
        selected: List[Dict[str, Any]] = [dict(o) for o in job.options]
        for node, _ in iter_hierarchical(job.hierarchical_options):
            if str(node.get("id")) in picked:
                selected.append(dict(node))
        return MakingCostRequest(
            windowCoveringId=str(window_covering_id or ""),
            makingCostId=str(template.get("making_cost_id")),
            measurements={k: job.form[k] for k in measurement_keys if k in job.form},
            selectedOptions=selected,
            fabricDetails=dict(job.selected_fabric_item or {}),
        )

    def calculate(self, job: CostJob) -> CostSummary:
        response = self.service.calculate(self.build_request(job))
        fu = response.fabricUsage
        c = response.costs
        orientation = fu.orientation if fu.orientation in ("vertical", "horizontal", "sqm") else "vertical"
        usage = UsageResult(
            yards=fu.yards,
            meters=fu.meters,
            fabric_orientation=orientation,
            widths_required=fu.widthsRequired,
            seams_required=fu.seamsRequired,
            seam_labor_hours=fu.seamLaborHours,
            fabric_cost=c.fabricCost,
            labor_cost=c.laborCost,
            total_cost=c.totalCost,
            warnings=list(response.warnings),
            details={"breakdown": response.breakdown},
        )
        summary = summarize_costs(
            c.fabricCost,
            c.additionalOptionsCost,
            c.laborCost + c.makingCost,
            quantity=resolve_quantity(job.form),
            making_cost=c.makingCost,
            source=self.source,
            fabric_usage=usage,
            warnings=list(response.warnings),
        )
        if summary.total_cost != fmt2(c.totalCost):
            logger.debug("service total %s differs from summed total %s", c.totalCost, summary.total_cost)
        return summary


def template_for(
    templates: Sequence[Mapping[str, Any]], form: Mapping[str, Any], treatment_type: str
) -> Optional[Dict[str, Any]]:
    template = find_template(templates, form)
    if template is None and treatment_type:
        for t in templates:
            if treatment_type in (t.get("name"), t.get("treatment_category")):
                return dict(t)
    return template


def calculate_costs(
    form_data: Mapping[str, Any],
    options: Optional[Sequence[Mapping[str, Any]]] = None,
    templates: Optional[Sequence[Mapping[str, Any]]] = None,
    treatment_type: str = "",
    hierarchical_options: Optional[Sequence[Mapping[str, Any]]] = None,
    selected_fabric_item: Optional[Mapping[str, Any]] = None,
    making_cost_service=None,
    rates: Optional[RatesConfig] = None,
) -> CostSummary:
    """Fabric, option and labour costs for one treatment.

    A template carrying ``making_cost_id`` is priced by the making-cost
    service (``making_cost_service`` or one built from config). Any failure
    there falls back to the local calculation with a warning on the summary.
    """
    rates = rates or RatesConfig()
    templates = list(templates or [])
    form = dict(form_data)
    if treatment_type:
        form.setdefault("treatment_type", treatment_type)
        form.setdefault("treatment_category", treatment_type)
    job = CostJob(
        form=form,
        options=list(options or []),
        templates=templates,
        treatment_type=treatment_type,
        hierarchical_options=list(hierarchical_options or []),
        selected_fabric_item=selected_fabric_item,
        template=template_for(templates, form, treatment_type),
    )
    if job.template and not find_template(templates, form):
        # usage resolution looks the template up by id
        form["treatment_type_id"] = job.template.get("id")

    local = LocalGeometryStrategy(rates)
    if not (job.template and job.template.get("making_cost_id")):
        return local.calculate(job)

    service = making_cost_service or MakingCostClient.from_config(rates)
    if service is None:
        logger.warning("template %s links a making cost but no service is configured", job.template.get("id"))
        summary = local.calculate(job)
        summary.warnings.append("Making cost is linked but no making-cost service is configured; used standard calculation")
        return summary

    try:
        return MakingCostStrategy(service, rates).calculate(job)
    except Exception as e:
        logger.warning("making-cost calculation failed, falling back to local geometry: %s", e, exc_info=True)
        summary = local.calculate(job)
        summary.warnings.append(f"Making cost calculation failed; used standard calculation ({e})")
        return summary
