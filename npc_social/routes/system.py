"""Health check, stats and reset endpoints."""

from fastapi import APIRouter, Depends

from npc_social.engine import SocialEngine

from .deps import get_engine

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/stats")
async def stats(engine: SocialEngine = Depends(get_engine)):
    """Counts of NPCs, traits, evolution events, conversations and queued interrupts."""
    return engine.get_stats()


@router.delete("/state")
async def reset_state(engine: SocialEngine = Depends(get_engine)):
    """Wipe all NPC personalities and conversations."""
    engine.reset()
    return {"ok": True}
