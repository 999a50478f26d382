"""
API v1 Router
"""

from fastapi import APIRouter
from . import dependencies, tasks

router = APIRouter()

# Include resource routers
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(
    dependencies.task_router, prefix="/tasks/{task_id}/dependencies", tags=["Dependencies"]
)
router.include_router(dependencies.router, prefix="/dependencies", tags=["Dependencies"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/tasks",
            "/tasks/{task_id}/dependencies",
            "/tasks/{task_id}/dependencies/with-details",
            "/tasks/{task_id}/dependencies/can-start",
            "/tasks/{task_id}/dependencies/blocking-reasons",
            "/dependencies/{dependency_id}",
        ],
    }
