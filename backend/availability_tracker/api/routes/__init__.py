"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .cron import router as cron_router
from .history import router as history_router
from .sheet import router as sheet_router

api_router = APIRouter(prefix="/api")
api_router.include_router(cron_router, prefix="/cron", tags=["capture"])
api_router.include_router(history_router, prefix="/history", tags=["history"])
api_router.include_router(sheet_router, tags=["sheet"])

__all__ = ["api_router"]
