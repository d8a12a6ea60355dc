from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError


class MakingCostConfig(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 10.0


class RatesConfig(BaseModel):
    yard_cm: float = 91.44
    sqm_to_sqyd: float = 1.19599
    base_labor_hours: float = 2.0
    labor_area_divisor: float = 25000.0
    seam_hours_per_seam: float = 0.5
    default_labor_rate: float = 25.0
    narrow_fabric_max_cm: float = 200.0
    plausible_min_cm: float = 10.0
    plausible_max_cm: float = 1500.0
    making_cost: MakingCostConfig = Field(default_factory=MakingCostConfig)


def _load_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_rates(configs_dir: Path | None = None) -> RatesConfig:
    """Load ``rates.yaml`` from the configs folder; missing file means defaults."""
    configs_dir = configs_dir or Path("configs")
    path = configs_dir / "rates.yaml"
    if not path.exists():
        return RatesConfig()
    try:
        return RatesConfig(**_load_yaml(path))
    except (yaml.YAMLError, ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid rates config at {path}: {e}") from e
