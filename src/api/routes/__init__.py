"""
API Router Module

POST /enhance - Image sharpening endpoint
GET /metrics  - Prometheus scrape target
"""

from fastapi import APIRouter

from src.api.routes.enhance import router as enhance_router
from src.api.routes.metrics import router as metrics_router

api_router = APIRouter()

api_router.include_router(enhance_router, tags=["enhance"])
api_router.include_router(metrics_router, tags=["metrics"])
