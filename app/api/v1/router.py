from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.projects import router as projects_router
from app.api.v1.proposals import router as proposals_router
from app.api.v1.tasks import router as tasks_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# PROJECTS / PROPOSALS
# ------------------------------------------------------------------
v1_router.include_router(projects_router, tags=["projects"])
v1_router.include_router(proposals_router, tags=["proposals"])

# ------------------------------------------------------------------
# PROCESSING
# ------------------------------------------------------------------
v1_router.include_router(tasks_router, tags=["tasks"])
