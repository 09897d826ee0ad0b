"""Manual job trigger.

Runs a job body immediately, bypassing the once-per-day dispatch gate.
Interest postings stay protected by their idempotency keys.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from ..core.enums import TriggerSource
from .deps import get_container

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


@router.get("")
def list_jobs(container=Depends(get_container)) -> dict[str, Any]:
    return {"jobs": container.launcher.job_names}


@router.post("/run/{job_name}")
def run_job(job_name: str, container=Depends(get_container)) -> dict[str, Any]:
    result = container.launcher.run(job_name, source=TriggerSource.MANUAL)
    return result.to_dict()
