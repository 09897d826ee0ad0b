"""Admin control surface for the logical clock and the dispatcher.

Mounted only while the logical clock is active. Every mutation is logged at
WARNING by the clock itself.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from .deps import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class SetInstantRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_logical_instant: str = Field("", alias="newLogicalInstant")


class SetDateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_logical_date: str = Field("", alias="newLogicalDate")


class AdvanceRequest(BaseModel):
    days: int = 0
    hours: int = 0
    minutes: int = 0


def _time_view(container, message: str | None = None) -> dict[str, Any]:
    clock = container.clock
    now = clock.now()
    view: dict[str, Any] = {
        "logicalInstant": now.isoformat(),
        "logicalDate": now.date().isoformat(),
        "logicalEpochMillis": clock.now_ms(),
        "timezone": str(clock.tz),
        "offsetSeconds": clock.offset.total_seconds(),
    }
    if message:
        view["message"] = message
    return view


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------

@router.get("/time/current")
def current_time(container=Depends(get_container)) -> dict[str, Any]:
    return _time_view(container)


@router.post("/time/set-instant")
def set_instant(body: SetInstantRequest, container=Depends(get_container)) -> dict[str, Any]:
    container.logical_clock.set_absolute(body.new_logical_instant)
    return _time_view(container, "Logical time set")


@router.post("/time/set-date")
def set_date(body: SetDateRequest, container=Depends(get_container)) -> dict[str, Any]:
    container.logical_clock.set_date(body.new_logical_date)
    return _time_view(container, "Logical date set")


@router.post("/time/advance")
def advance(body: AdvanceRequest, container=Depends(get_container)) -> dict[str, Any]:
    container.logical_clock.advance_by(
        days=body.days, hours=body.hours, minutes=body.minutes,
    )
    return _time_view(
        container, f"Advanced by {body.days}d {body.hours}h {body.minutes}m",
    )


@router.post("/time/reset")
def reset_time(container=Depends(get_container)) -> dict[str, Any]:
    container.logical_clock.reset()
    return _time_view(container, "Logical time reset to wall time")


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------

@router.get("/scheduler")
def scheduler_state(container=Depends(get_container)) -> dict[str, Any]:
    scheduler = container.scheduler
    return {
        "running": scheduler.is_running,
        "ticks": scheduler.tick_count,
        "lastFired": container.tracker.snapshot(),
        "dueToday": [
            t.job for t in scheduler.triggers
            if container.tracker.is_due(t.job, container.clock.today())
        ],
        "triggers": {t.job: t.description for t in scheduler.triggers},
    }


@router.post("/scheduler/reset")
def reset_scheduler(
    job: str | None = None, container=Depends(get_container),
) -> dict[str, Any]:
    """Forget last-fired dates so windows may fire again today."""
    container.tracker.reset(job)
    return {"message": f"Tracker reset for {job or 'all jobs'}",
            "lastFired": container.tracker.snapshot()}


@router.post("/scheduler/tick")
def tick(container=Depends(get_container)) -> dict[str, Any]:
    """Run one dispatcher tick now instead of waiting for the timer."""
    fired = container.scheduler.tick()
    return {"fired": fired, **_time_view(container)}
