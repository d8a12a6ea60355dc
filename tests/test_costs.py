from __future__ import annotations

import pytest

from fabric_engine.calculators.costs import calculate_costs, summarize_costs
from fabric_engine.errors import MakingCostError
from fabric_engine.models import (
    MakingCostCosts,
    MakingCostFabricUsage,
    MakingCostResponse,
)


class FakeMakingCostService:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def calculate(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.response


@pytest.fixture
def service_response() -> MakingCostResponse:
    return MakingCostResponse(
        fabricUsage=MakingCostFabricUsage(yards=12.5, meters=11.5, orientation="horizontal", seamsRequired=1,
                                          seamLaborHours=0.5, widthsRequired=2),
        costs=MakingCostCosts(fabricCost=100, laborCost=40, makingCost=10, additionalOptionsCost=25.5, totalCost=175.5),
        breakdown=[{"name": "Making", "cost": 10}],
        warnings=["priced by making cost"],
    )


def test_summary_totals():
    s = summarize_costs(100, 25.50, 50, quantity=2)
    assert s.fabric_cost == "100.00"
    assert s.options_cost == "25.50"
    assert s.labor_cost == "50.00"
    assert s.total_cost == "175.50"
    assert s.unit_price == "87.75"


def test_local_costs_with_options(curtain_form, curtain_template):
    options = [
        {"id": "o1", "name": "Tieback", "price": 15, "pricing_method": "fixed"},
        {"id": "o2", "name": "Track", "price": 10, "pricing_method": "per-metre"},
    ]
    s = calculate_costs(curtain_form, options, [curtain_template], "curtains")
    assert s.source == "local"
    assert s.fabric_cost == "184.00"
    assert s.options_cost == "45.00"
    assert s.labor_cost == "240.00"
    assert s.total_cost == "469.00"
    assert s.unit_price == "234.50"
    assert s.quantity == 2
    assert [o.cost for o in s.option_details] == [15, 30]
    assert s.fabric_usage.widths_required == 6


def test_curtain_machine_charges_added_to_labor(curtain_form, curtain_template):
    template = dict(curtain_template, machine_price_per_metre=2, machine_price_per_drop=5)
    s = calculate_costs(curtain_form, [], [template], "curtains")
    # 2 x 16.8m + 5 x 2 panels
    assert s.making_cost == "43.60"
    assert s.labor_cost == "283.60"


def test_blind_costs(blind_template):
    form = {"treatment_type_id": "b1", "rail_width": 120, "drop": 150}
    s = calculate_costs(form, [], [blind_template], "roller_blind", selected_fabric_item={"price_per_meter": 30})
    assert s.fabric_cost == "66.90"
    assert s.making_cost == "44.60"
    assert s.labor_cost == "44.60"
    assert s.total_cost == "111.50"
    assert s.fabric_usage.fabric_orientation == "sqm"


def test_missing_dimensions_still_summarised(curtain_template):
    s = calculate_costs({"treatment_type_id": "t1", "drop": 250}, [{"name": "Fee", "price": 20}], [curtain_template])
    assert s.fabric_cost == "0.00"
    assert s.total_cost == "20.00"
    assert "Missing rail width, fabric width" in s.warnings


def test_template_found_by_treatment_type(curtain_form, curtain_template):
    form = dict(curtain_form)
    form.pop("treatment_type_id")
    s = calculate_costs(form, [], [curtain_template], "curtains")
    assert s.fabric_usage.params.header_hem == 15
    assert s.labor_cost == "240.00"


def test_making_cost_service_used(curtain_form, curtain_template, service_response):
    template = dict(curtain_template, making_cost_id="mc1", window_covering_id="wc9")
    service = FakeMakingCostService(response=service_response)
    s = calculate_costs(curtain_form, [{"id": "o1", "name": "Tieback", "price": 15}], [template], "curtains",
                        making_cost_service=service)
    assert s.source == "making_cost"
    assert s.labor_cost == "50.00"
    assert s.making_cost == "10.00"
    assert s.total_cost == "175.50"
    assert s.fabric_usage.fabric_orientation == "horizontal"
    req = service.requests[0]
    assert (req.windowCoveringId, req.makingCostId) == ("wc9", "mc1")
    assert req.measurements["rail_width"] == 300
    assert req.selectedOptions[0]["id"] == "o1"


@pytest.mark.parametrize("error", [MakingCostError("service down"), RuntimeError("boom")])
def test_making_cost_failure_falls_back(curtain_form, curtain_template, error):
    template = dict(curtain_template, making_cost_id="mc1")
    s = calculate_costs(curtain_form, [], [template], "curtains", making_cost_service=FakeMakingCostService(error=error))
    assert s.source == "local"
    assert s.total_cost == "424.00"
    assert any(w.startswith("Making cost calculation failed") for w in s.warnings)


def test_making_cost_without_service(curtain_form, curtain_template):
    template = dict(curtain_template, making_cost_id="mc1")
    s = calculate_costs(curtain_form, [], [template], "curtains")
    assert s.source == "local"
    assert any("no making-cost service" in w for w in s.warnings)


def test_idempotent(curtain_form, curtain_template):
    a = calculate_costs(curtain_form, [{"name": "Fee", "price": 20}], [curtain_template], "curtains")
    b = calculate_costs(curtain_form, [{"name": "Fee", "price": 20}], [curtain_template], "curtains")
    assert a.model_dump() == b.model_dump()
