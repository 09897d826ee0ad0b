"""Portfolio reports. An empty report answers 204."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from ..core.clock import parse_date
from .deps import get_container, require_principal

router = APIRouter(
    prefix="/api/v1/reports/accounts",
    tags=["reports"],
    dependencies=[Depends(require_principal)],
)


def _listing(accounts):
    if not accounts:
        return Response(status_code=204)
    return [a.model_dump(mode="json") for a in accounts]


@router.get("/maturing")
def maturing(days: int = 30, container=Depends(get_container)):
    return _listing(container.reports.maturing_within(days))


@router.get("/created")
def created(startDate: str, endDate: str, container=Depends(get_container)):
    return _listing(
        container.reports.created_between(parse_date(startDate), parse_date(endDate)),
    )


@router.get("/closed")
def closed(
    startDate: str,
    endDate: str,
    status: str | None = None,
    container=Depends(get_container),
):
    return _listing(
        container.reports.closed_between(
            parse_date(startDate), parse_date(endDate), status,
        ),
    )
