"""FD calculation service client."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx
from pydantic import BaseModel, ConfigDict

from ..core.config import ServicesConfig
from .base import ServiceClient


class CalculationResult(BaseModel):
    """A stored deposit calculation (snake_case on the wire)."""

    model_config = ConfigDict(extra="ignore")

    calc_id: int
    result_id: int | None = None
    maturity_value: Decimal
    maturity_date: date
    apy: Decimal | None = None
    effective_rate: Decimal | None = None
    payout_freq: str | None = None
    payout_amount: Decimal | None = None
    category1_id: str | None = None
    category2_id: str | None = None
    product_code: str | None = None
    principal_amount: Decimal | None = None
    interest_rate: Decimal | None = None
    tenure_value: int | None = None
    tenure_unit: str | None = None


class CalculationClient:
    def __init__(self, client: ServiceClient, path: str = "/api/fd/calculations") -> None:
        self._http = client
        self._path = path.rstrip("/")

    @classmethod
    def from_config(
        cls, cfg: ServicesConfig, transport: httpx.BaseTransport | None = None,
    ) -> CalculationClient:
        return cls(
            ServiceClient(
                "calculation-service",
                cfg.calculation_base_url,
                timeout=cfg.timeout_seconds,
                max_retries=cfg.max_retries,
                backoff=cfg.backoff_seconds,
                transport=transport,
            ),
            cfg.calculation_path,
        )

    def close(self) -> None:
        self._http.close()

    def get_calculation(self, calc_id: int) -> CalculationResult | None:
        data = self._http.get_json(f"{self._path}/{calc_id}")
        return CalculationResult.model_validate(data) if data else None
