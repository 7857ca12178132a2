"""FastAPI routers for centers domain."""

from __future__ import annotations

from fastapi import APIRouter

from centerhub.centers.api import (
	ai,
	anonymous_chat,
	centers,
	competition,
	finances,
	forums,
	notifications,
	posts,
	profiles,
	surveys,
	workshops,
)

router = APIRouter(prefix="/api/centers/v1")

router.include_router(centers.router)
router.include_router(profiles.router)
router.include_router(posts.router)
router.include_router(forums.router)
router.include_router(surveys.router)
router.include_router(finances.router)
router.include_router(competition.router)
router.include_router(workshops.router)
router.include_router(anonymous_chat.router)
router.include_router(notifications.router)
router.include_router(ai.router)

__all__ = ["router"]
