from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.core.deps import get_processing_gateway
from app.core.errors import GatewayError
from app.services.processing_gateway import ProcessingGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks")


@router.get("/{task_id}/status")
def task_status(
    task_id: str,
    gateway: ProcessingGateway = Depends(get_processing_gateway),
):
    # gateway JSON is returned as-is
    try:
        return gateway.task_status(task_id)
    except GatewayError as exc:
        logger.warning("[tasks] status lookup for %s failed: %s", task_id, exc)
        raise HTTPException(status_code=500, detail="Failed to get task status")
