# =============================================================================
# app/routers/tasks.py - Background Task Endpoints
# =============================================================================
# Lets the admin UI follow queued email tasks (support replies, invoices)
# by the task id returned from the endpoint that queued them.
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel

from app.auth import AuthUser, require_admin

logger = logging.getLogger(__name__)

router = APIRouter()

TaskId = Annotated[str, Path(description="Celery task ID")]

STATE_MESSAGES = {
    "PENDING": "Waiting in queue...",
    "STARTED": "Sending...",
    "RETRY": "Delivery failed, retrying...",
    "SUCCESS": "Complete",
    "FAILURE": "Failed",
    "REVOKED": "Cancelled",
}


# =============================================================================
# Response Models
# =============================================================================

class TaskStatusResponse(BaseModel):
    task_id: str
    status: str
    message: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None


def _async_result(task_id: str):
    try:
        from workers.celery_app import celery_app

        return celery_app.AsyncResult(task_id)
    except Exception as e:
        logger.error(f"Task backend unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Task backend unavailable: {e}")


def _error_text(result) -> str:
    return str(result.result) if result.result else "Unknown error"


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{task_id}", response_model=TaskStatusResponse)
async def get_task_status(
    task_id: TaskId,
    admin: AuthUser = Depends(require_admin),
):
    """
    Status of a queued task.

    States: PENDING, STARTED, RETRY, SUCCESS, FAILURE, REVOKED. A task id
    the backend has never seen also reports PENDING.
    """
    result = _async_result(task_id)
    status = result.status

    response = TaskStatusResponse(
        task_id=task_id,
        status=status,
        message=STATE_MESSAGES.get(status, status.title()),
    )
    if status == "SUCCESS" and isinstance(result.result, dict):
        response.result = result.result
    elif status in ("FAILURE", "RETRY"):
        response.error = _error_text(result)
    return response


@router.delete("/{task_id}")
async def cancel_task(
    task_id: TaskId,
    admin: AuthUser = Depends(require_admin),
):
    """Revoke a task that has not finished yet."""
    result = _async_result(task_id)

    if result.status in ("SUCCESS", "FAILURE"):
        return {
            "task_id": task_id,
            "message": f"Task already {result.status.lower()}, cannot cancel",
            "cancelled": False,
        }

    result.revoke(terminate=True)
    logger.info(f"Task {task_id} revoked by {admin.id}")
    return {"task_id": task_id, "message": "Task cancelled", "cancelled": True}
