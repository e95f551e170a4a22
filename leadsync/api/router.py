"""
API router - the Meta webhook endpoints and health checks.
"""
from fastapi import APIRouter
from leadsync.api.webhooks import router as webhooks_router
from leadsync.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(webhooks_router)
api_router.include_router(health_router)
