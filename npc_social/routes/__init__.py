"""FastAPI API endpoints under /api.

Endpoint groups: system (health, stats, reset), npcs (registration,
personality, mood, breaking points, dialogue, interrupts, cross-references)
and conversations (start, list, delivery, pending interrupts).

Every handler works on the single SocialEngine stored on app.state.engine.
"""

from fastapi import APIRouter

from .conversations import router as conversations_router
from .npcs import router as npcs_router
from .system import router as system_router

router = APIRouter()
router.include_router(system_router)
router.include_router(npcs_router)
router.include_router(conversations_router)
