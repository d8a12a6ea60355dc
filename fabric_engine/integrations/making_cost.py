from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from ..config import RatesConfig
from ..errors import MakingCostError
from ..models import MakingCostRequest, MakingCostResponse


logger = logging.getLogger(__name__)

CALCULATE_PATH = "/making-cost/calculate"


class MakingCostClient:
    """HTTP client for the external making-cost service.

    Every transport, status or payload problem surfaces as MakingCostError.
    """

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls, rates: RatesConfig) -> Optional["MakingCostClient"]:
        cfg = rates.making_cost
        if not cfg.base_url:
            return None
        return cls(cfg.base_url, api_key=cfg.api_key, timeout=cfg.timeout_seconds)

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def calculate(self, request: MakingCostRequest) -> MakingCostResponse:
        url = self.base_url + CALCULATE_PATH
        logger.debug("POST %s making_cost_id=%s", url, request.makingCostId)
        try:
            resp = requests.post(url, json=request.model_dump(), headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
            payload: Any = resp.json()
        except requests.RequestException as e:
            raise MakingCostError(f"Making-cost service request failed: {e}") from e
        except ValueError as e:
            raise MakingCostError(f"Making-cost service returned invalid JSON: {e}") from e
        if isinstance(payload, dict) and "data" in payload and "costs" not in payload:
            payload = payload["data"]
        try:
            return MakingCostResponse.model_validate(payload)
        except ValidationError as e:
            raise MakingCostError(f"Making-cost service returned an unexpected payload: {e}") from e
