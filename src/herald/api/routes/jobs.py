"""Job inspection endpoints: execution trace history."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["jobs"])


@router.get("/{job_id}/execution-details")
async def get_execution_details(job_id: str, request: Request) -> dict[str, Any]:
    """Return the audit records explaining what happened to a job, oldest first."""
    details = request.app.state.detail_store.list_for_job(job_id)
    return {
        "job_id": job_id,
        "execution_details": [d.model_dump(mode="json") for d in details],
    }
