from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..calculators.costs import calculate_costs
from ..calculators.orientation import calculate_orientation
from ..calculators.usage import calculate_fabric_usage
from ..config import RatesConfig, load_rates
from ..errors import ConfigError
from ..models import CalculationInput, CostSummary, Orientation, OrientationResult, UsageResult


BASE_DIR = Path(__file__).resolve().parents[2]
CONFIGS_DIR = BASE_DIR / "configs"

logger = logging.getLogger(__name__)

app = FastAPI(title="Fabric Engine API")


class UsageRequest(BaseModel):
    form: Dict[str, Any]
    templates: List[Dict[str, Any]] = Field(default_factory=list)
    fabric_item: Optional[Dict[str, Any]] = None


class OrientationRequest(BaseModel):
    params: CalculationInput
    fabric_cost_per_unit: float = Field(default=0.0, ge=0)
    labor_rate: float = Field(default=0.0, ge=0)


class CostsRequest(BaseModel):
    form: Dict[str, Any]
    options: List[Dict[str, Any]] = Field(default_factory=list)
    templates: List[Dict[str, Any]] = Field(default_factory=list)
    treatment_type: str = ""
    hierarchical_options: List[Dict[str, Any]] = Field(default_factory=list)
    fabric_item: Optional[Dict[str, Any]] = None


def get_rates() -> RatesConfig:
    try:
        return load_rates(CONFIGS_DIR)
    except ConfigError as e:
        logger.error("could not load rates: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/usage", response_model=UsageResult)
def usage(body: UsageRequest, rates: RatesConfig = Depends(get_rates)) -> UsageResult:
    return calculate_fabric_usage(body.form, body.templates, body.fabric_item, rates)


@app.post("/api/orientation/{orientation}", response_model=OrientationResult)
def orientation(
    orientation: Orientation, body: OrientationRequest, rates: RatesConfig = Depends(get_rates)
) -> OrientationResult:
    return calculate_orientation(orientation, body.params, body.fabric_cost_per_unit, body.labor_rate, rates)


@app.post("/api/costs", response_model=CostSummary)
def costs(body: CostsRequest, rates: RatesConfig = Depends(get_rates)) -> CostSummary:
    return calculate_costs(
        body.form,
        body.options,
        body.templates,
        body.treatment_type,
        hierarchical_options=body.hierarchical_options,
        selected_fabric_item=body.fabric_item,
        rates=rates,
    )
