from __future__ import annotations

import pytest

from fabric_engine.config import RatesConfig
from fabric_engine.models import CalculationInput


@pytest.fixture
def rates() -> RatesConfig:
    return RatesConfig()


@pytest.fixture
def pair_params() -> CalculationInput:
    # 300cm rail, 250cm drop on 137cm fabric, pair of panels
    return CalculationInput(
        rail_width=300,
        drop=250,
        fabric_width=137,
        fullness=2.5,
        quantity=2,
        header_hem=15,
        bottom_hem=10,
        side_hem=5,
        seam_hem=3,
        pooling=0,
    )


@pytest.fixture
def curtain_template() -> dict:
    return {
        "id": "t1",
        "name": "Curtains",
        "treatment_category": "curtains",
        "header_allowance": 15,
        "bottom_hem": 10,
        "side_hem": 5,
        "seam_allowance": 3,
        "labor_rate": 20,
        "heading_options": [{"id": "h1", "name": "Pinch pleat", "fullness_ratio": 2.5}],
    }


@pytest.fixture
def curtain_form() -> dict:
    return {
        "treatment_type_id": "t1",
        "rail_width": 300,
        "drop": 250,
        "fabric_width": 137,
        "selected_heading": "h1",
        "curtain_type": "pair",
        "fabric_cost_per_yard": 10,
        "fabric_type": "floral",
    }


@pytest.fixture
def blind_template() -> dict:
    return {
        "id": "b1",
        "name": "Roller",
        "treatment_category": "roller_blind",
        "blind_header_hem_cm": 8,
        "blind_bottom_hem_cm": 8,
        "blind_side_hem_cm": 4,
        "waste_percent": 5,
        "machine_price_per_metre": 20,
    }
