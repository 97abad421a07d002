"""
API v1 Router Module - Generation Service

All v1 endpoints are prefixed with /api/v1/

- /api/v1/generate        - sync and async generation, presets, routing table
- /api/v1/tasks/*         - task-specific async endpoints (remove-bg, scene-gen, try-on)
- /api/v1/status          - job polling
- /api/v1/metrics         - Prometheus
"""

from fastapi import APIRouter

from src.api.v1.generate import router as generate_router
from src.api.v1.tasks import router as tasks_router
from src.api.v1.metrics import router as metrics_router
from src.api.v1.status import router as status_router

# Main v1 router
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(generate_router, prefix="/generate", tags=["generation"])
api_v1_router.include_router(tasks_router, prefix="/tasks", tags=["tasks"])
api_v1_router.include_router(status_router, prefix="/status", tags=["status"])
api_v1_router.include_router(metrics_router, tags=["metrics"])
