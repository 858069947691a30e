from fastapi import APIRouter, Depends, Request

from app.core.config import Settings, get_settings

router = APIRouter()


@router.get("/health")
async def health(request: Request, settings: Settings = Depends(get_settings)):
    rid = getattr(request.state, "request_id", None)
    return {
        "status": "ok",
        "environment": settings.environment,
        "mirror_enabled": getattr(request.app.state, "metadata_mirror", None) is not None,
        "request_id": rid,
    }
