"""Request-scoped access to the app's SocialEngine."""

from fastapi import HTTPException, Request

from npc_social.engine import SocialEngine


def get_engine(request: Request) -> SocialEngine:
    return request.app.state.engine


def require_registered(engine: SocialEngine, npc_id: str) -> None:
    if npc_id not in engine.personalities or not engine.personalities.record(npc_id).registered:
        raise HTTPException(404, "NPC not found")
