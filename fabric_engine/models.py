from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


Orientation = Literal["vertical", "horizontal"]
FabricOrientation = Literal["vertical", "horizontal", "sqm"]
UsageStatus = Literal["ok", "missing_dimensions", "missing_fullness"]
CostSource = Literal["local", "making_cost"]


class CalculationInput(BaseModel):
    """Fully resolved measurements for one treatment, all lengths in cm."""

    rail_width: float = Field(gt=0)
    drop: float = Field(gt=0)
    fabric_width: float = Field(gt=0)
    fullness: float = Field(ge=1)
    quantity: int = Field(default=1, ge=1)  # panel count
    pooling: float = Field(default=0.0, ge=0)
    header_hem: float = Field(default=0.0, ge=0)
    bottom_hem: float = Field(default=0.0, ge=0)
    side_hem: float = Field(default=0.0, ge=0)
    seam_hem: float = Field(default=0.0, ge=0)
    vertical_pattern_repeat_cm: float = Field(default=0.0, ge=0)
    horizontal_pattern_repeat_cm: float = Field(default=0.0, ge=0)
    return_left: float = Field(default=0.0, ge=0)
    return_right: float = Field(default=0.0, ge=0)
    overlap: float = Field(default=0.0, ge=0)


class OrientationResult(BaseModel):
    orientation: Orientation
    feasible: bool = True
    total_length_cm: float = 0.0
    total_yards: float = 0.0
    total_meters: float = 0.0
    panel_length_cm: float = 0.0
    panel_width_cm: float = 0.0
    widths_required: int = 0
    seams_required: int = 0
    seam_allowance_cm: float = 0.0
    seam_labor_hours: float = 0.0
    base_labor_hours: float = 0.0
    total_labor_hours: float = 0.0
    horizontal_pieces_needed: Optional[int] = None
    leftover_from_last_piece: Optional[float] = None
    fabric_cost: Decimal = Decimal(0)
    labor_cost: Decimal = Decimal(0)
    total_cost: Decimal = Decimal(0)
    warnings: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


class CostComparison(BaseModel):
    vertical: OrientationResult
    horizontal: OrientationResult
    recommendation: Orientation
    savings: Decimal


class UsageResult(BaseModel):
    status: UsageStatus = "ok"
    yards: float = 0.0
    meters: float = 0.0
    sqm: Optional[float] = None
    fabric_orientation: FabricOrientation = "vertical"
    feasible: bool = True
    total_length_cm: float = 0.0
    widths_required: int = 0
    seams_required: int = 0
    seam_labor_hours: float = 0.0
    horizontal_pieces_needed: Optional[int] = None
    leftover_from_last_piece: Optional[float] = None
    fabric_cost: Decimal = Decimal(0)
    labor_cost: Decimal = Decimal(0)
    total_cost: Decimal = Decimal(0)
    cost_comparison: Optional[CostComparison] = None
    warnings: List[str] = Field(default_factory=list)
    defaults_applied: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)
    params: Optional[CalculationInput] = None


class OptionCost(BaseModel):
    id: Optional[str] = None
    name: str
    price: float = 0.0
    method: str = "fixed"
    cost: float = 0.0
    calculation: str = ""


class CostSummary(BaseModel):
    source: CostSource = "local"
    fabric_cost: str = "0.00"
    options_cost: str = "0.00"
    labor_cost: str = "0.00"
    making_cost: str = "0.00"
    total_cost: str = "0.00"
    unit_price: str = "0.00"
    quantity: int = 1
    option_details: List[OptionCost] = Field(default_factory=list)
    fabric_usage: Optional[UsageResult] = None
    warnings: List[str] = Field(default_factory=list)


# External making-cost service contract


class MakingCostRequest(BaseModel):
    windowCoveringId: str
    makingCostId: str
    measurements: Dict[str, Any] = Field(default_factory=dict)
    selectedOptions: List[Dict[str, Any]] = Field(default_factory=list)
    fabricDetails: Dict[str, Any] = Field(default_factory=dict)


class MakingCostFabricUsage(BaseModel):
    yards: float = 0.0
    meters: float = 0.0
    orientation: str = "vertical"
    seamsRequired: int = 0
    seamLaborHours: float = 0.0
    widthsRequired: int = 0


class MakingCostCosts(BaseModel):
    fabricCost: float = 0.0
    laborCost: float = 0.0
    makingCost: float = 0.0
    additionalOptionsCost: float = 0.0
    totalCost: float = 0.0


class MakingCostResponse(BaseModel):
    fabricUsage: MakingCostFabricUsage
    costs: MakingCostCosts
    breakdown: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
