"""Composition of API routers."""

from __future__ import annotations

from fastapi import APIRouter

from gitpanel.api.changelists import router as changelists_router
from gitpanel.api.diff import router as diff_router
from gitpanel.api.health import router as health_router

api_router = APIRouter(prefix="/api")
api_router.include_router(health_router)
api_router.include_router(diff_router)
api_router.include_router(changelists_router)
