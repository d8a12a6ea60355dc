from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fabric_engine.config import RatesConfig
from fabric_engine.web.app import app, get_rates


@pytest.fixture
def client():
    app.dependency_overrides[get_rates] = lambda: RatesConfig()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_usage_endpoint(client, curtain_form, curtain_template):
    resp = client.post("/api/usage", json={"form": curtain_form, "templates": [curtain_template]})
    assert resp.status_code == 200
    data = resp.json()
    assert data["seams_required"] == 5
    assert data["fabric_cost"] == "184.00"
    assert data["cost_comparison"]["recommendation"] == "horizontal"
    assert data["cost_comparison"]["savings"] == "33.00"


def test_usage_missing_input_is_not_an_error(client):
    resp = client.post("/api/usage", json={"form": {"rail_width": 0, "drop": 250, "fabric_width": 137}})
    assert resp.status_code == 200
    assert resp.json()["warnings"] == ["Missing rail width"]


def test_orientation_endpoint(client):
    params = {"rail_width": 300, "drop": 250, "fabric_width": 137, "fullness": 2.5, "quantity": 2,
              "header_hem": 15, "bottom_hem": 10, "side_hem": 5, "seam_hem": 3}
    resp = client.post("/api/orientation/vertical", json={"params": params, "fabric_cost_per_unit": 10, "labor_rate": 20})
    assert resp.status_code == 200
    assert resp.json()["widths_required"] == 6
    assert resp.json()["total_cost"] == "424.00"


def test_orientation_rejects_bad_input(client):
    params = {"rail_width": 300, "drop": 250, "fabric_width": 137, "fullness": 2.5}
    assert client.post("/api/orientation/diagonal", json={"params": params}).status_code == 422
    bad = dict(params, fabric_width=0)
    assert client.post("/api/orientation/vertical", json={"params": bad}).status_code == 422


def test_costs_endpoint(client, curtain_form, curtain_template):
    resp = client.post(
        "/api/costs",
        json={"form": curtain_form, "templates": [curtain_template], "treatment_type": "curtains",
              "options": [{"id": "o1", "name": "Tieback", "price": 15}]},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_cost"] == "439.00"
    assert data["option_details"][0]["cost"] == 15
