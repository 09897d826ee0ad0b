"""Customer profile service client."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import ServicesConfig
from ..core.errors import UpstreamUnavailable
from .base import ServiceClient

logger = logging.getLogger(__name__)


class CustomerProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    customer_id: str | None = Field(default=None, alias="customerId")
    customer_number: str | None = Field(default=None, alias="customerNumber")
    email: str | None = None
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    address_line1: str | None = Field(default=None, alias="addressLine1")
    address_line2: str | None = Field(default=None, alias="addressLine2")
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = Field(default=None, alias="postalCode")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def address(self) -> dict[str, str]:
        fields = {
            "line1": self.address_line1,
            "line2": self.address_line2,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postalCode": self.postal_code,
        }
        return {k: v for k, v in fields.items() if v}


class CustomerClient:
    def __init__(self, client: ServiceClient) -> None:
        self._http = client

    @classmethod
    def from_config(
        cls, cfg: ServicesConfig, transport: httpx.BaseTransport | None = None,
    ) -> CustomerClient:
        return cls(ServiceClient(
            "customer-service",
            cfg.customer_base_url,
            timeout=cfg.timeout_seconds,
            max_retries=cfg.max_retries,
            backoff=cfg.backoff_seconds,
            transport=transport,
        ))

    def close(self) -> None:
        self._http.close()

    def profile_by_email(self, email: str, token: str | None = None) -> CustomerProfile | None:
        data = self._http.get_json(f"/api/profiles/email/{quote(email)}", token=token)
        return CustomerProfile.model_validate(data) if data else None

    def profile_by_customer_number(self, customer_number: str) -> CustomerProfile | None:
        data = self._http.get_json(f"/api/profiles/customer-number/{quote(customer_number)}")
        return CustomerProfile.model_validate(data) if data else None

    def email_for(self, customer_number: str) -> str | None:
        data = self._http.get_json(
            f"/api/profiles/public/customer/{quote(customer_number)}/email"
        )
        return data.get("email") if isinstance(data, dict) else None

    def phone_for(self, customer_number: str) -> str | None:
        data = self._http.get_json(
            f"/api/profiles/public/customer/{quote(customer_number)}/phone"
        )
        return data.get("phoneNumber") if isinstance(data, dict) else None

    def contact_for(self, customer_number: str) -> tuple[str | None, str | None]:
        """Best-effort ``(email, phone)``; lookup failures yield ``None``s."""
        if customer_number == "SYSTEM":
            return None, None
        try:
            return self.email_for(customer_number), self.phone_for(customer_number)
        except UpstreamUnavailable as exc:
            logger.error("Failed to fetch contact details for %s: %s", customer_number, exc)
            return None, None
