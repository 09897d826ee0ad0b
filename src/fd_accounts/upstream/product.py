"""Product catalog service client."""

from __future__ import annotations

import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import ServicesConfig
from .base import ServiceClient

logger = logging.getLogger(__name__)


class ProductDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_code: str = Field(alias="productCode")
    product_name: str | None = Field(default=None, alias="productName")
    product_type: str | None = Field(default=None, alias="productType")
    currency: str | None = None
    status: str | None = None
    interest_type: str | None = Field(default=None, alias="interestType")
    compounding_frequency: str | None = Field(default=None, alias="compoundingFrequency")


class Communication(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    comm_code: str | None = Field(default=None, alias="commCode")
    communication_type: str | None = Field(default=None, alias="communicationType")
    channel: str | None = None
    event: str | None = None
    template: str | None = None


class ProductClient:
    def __init__(self, client: ServiceClient, path: str = "/api/products") -> None:
        self._http = client
        self._path = path.rstrip("/")

    @classmethod
    def from_config(
        cls, cfg: ServicesConfig, transport: httpx.BaseTransport | None = None,
    ) -> ProductClient:
        return cls(
            ServiceClient(
                "product-service",
                cfg.product_base_url,
                timeout=cfg.timeout_seconds,
                max_retries=cfg.max_retries,
                backoff=cfg.backoff_seconds,
                transport=transport,
            ),
            cfg.product_path,
        )

    def close(self) -> None:
        self._http.close()

    def get_product(self, product_code: str) -> ProductDetails | None:
        data = self._http.get_json(f"{self._path}/{product_code}")
        return ProductDetails.model_validate(data) if data else None

    def communications(self, product_code: str) -> list[Communication]:
        data = self._http.get_json(f"{self._path}/{product_code}/communications")
        if not isinstance(data, dict):
            return []
        return [Communication.model_validate(c) for c in data.get("content") or []]

    def template_for(self, product_code: str, event: str) -> str | None:
        """First template registered for ``event``, or ``None``."""
        for comm in self.communications(product_code):
            if comm.event == event and comm.template:
                return comm.template
        logger.info("No %s template for product %s", event, product_code)
        return None
