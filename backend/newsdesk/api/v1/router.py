"""
API v1 router

Collects the endpoint routers and is mounted under /api/v1 in main.py.
"""
from fastapi import APIRouter

from newsdesk.api.v1.endpoints import news

api_router = APIRouter()

# ============================================================
# News API
# ============================================================
api_router.include_router(
    news.router,
    prefix="/news",
)
