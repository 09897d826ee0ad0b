"""Account endpoints. Every route requires a bearer token."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..auth.tokens import Principal
from ..core.clock import parse_date
from ..core.enums import RoleType
from ..core.errors import ValidationError
from .deps import get_container, require_principal

router = APIRouter(
    prefix="/api/v1/accounts",
    tags=["accounts"],
    dependencies=[Depends(require_principal)],
)


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateAccountRequest(_Body):
    account_name: str = Field("", alias="accountName")
    calc_id: int = Field(0, alias="calcId")


class AddRoleRequest(_Body):
    customer_id: str = Field("", alias="customerId")
    role_type: str = Field("", alias="roleType")
    ownership_percentage: Decimal | None = Field(None, alias="ownershipPercentage")


class WithdrawalRequest(_Body):
    reason: str = ""


class StatementRequest(_Body):
    start_date: str = Field("", alias="startDate")
    end_date: str = Field("", alias="endDate")


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/create", status_code=201)
def create_account(
    body: CreateAccountRequest,
    principal: Principal = Depends(require_principal),
    container=Depends(get_container),
) -> dict[str, Any]:
    service = container.accounts
    customer_number = service.customer_number_for(principal.login_email, principal.token)
    account = service.create_account(body.account_name, body.calc_id, customer_number)
    return _dump(account)


@router.get("/search")
def search(idType: str, value: str, container=Depends(get_container)):
    accounts = container.accounts.search(idType, value)
    if not accounts:
        return JSONResponse(
            status_code=404,
            content={"error": "Not Found", "details": f"No accounts for {idType}={value}"},
        )
    return [_dump(a) for a in accounts]


@router.get("/{account_number}")
def get_account(account_number: str, container=Depends(get_container)) -> dict[str, Any]:
    return _dump(container.accounts.get_account(account_number))


@router.post("/{account_number}/roles")
def add_role(
    account_number: str, body: AddRoleRequest, container=Depends(get_container),
) -> dict[str, Any]:
    if not body.customer_id.strip():
        raise ValidationError("customerId is required")
    try:
        role = RoleType(body.role_type.strip().upper())
    except ValueError:
        raise ValidationError(f"Unsupported roleType: {body.role_type}") from None
    account = container.accounts.add_holder(
        account_number, body.customer_id.strip(), role, body.ownership_percentage,
    )
    return _dump(account)


@router.get("/{account_number}/transactions")
def transactions(account_number: str, container=Depends(get_container)) -> list[dict[str, Any]]:
    return [_dump(t) for t in container.accounts.transactions(account_number)]


@router.get("/{account_number}/balances")
def balances(account_number: str, container=Depends(get_container)) -> dict[str, Any]:
    current = container.accounts.balances(account_number)
    return {**_dump(current), "closing": str(current.closing)}


@router.get("/{account_number}/withdrawal-inquiry")
def withdrawal_inquiry(account_number: str, container=Depends(get_container)) -> dict[str, Any]:
    return _dump(container.accounts.withdrawal_inquiry(account_number))


@router.post("/{account_number}/withdrawal")
def withdraw(
    account_number: str, body: WithdrawalRequest, container=Depends(get_container),
) -> dict[str, Any]:
    return _dump(container.accounts.withdraw(account_number, body.reason))


@router.post("/{account_number}/statement")
def statement(
    account_number: str,
    body: StatementRequest,
    principal: Principal = Depends(require_principal),
    container=Depends(get_container),
) -> dict[str, Any]:
    start = parse_date(body.start_date)
    end = parse_date(body.end_date)
    container.statements.generate(
        account_number, start, end, email=principal.login_email, token=principal.token,
    )
    return {
        "message": f"Statement for {account_number} ({start} to {end}) has been queued.",
    }
