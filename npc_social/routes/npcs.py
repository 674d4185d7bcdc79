"""NPC endpoints: registration, personality, mood, events and dialogue."""

from fastapi import APIRouter, Depends, HTTPException

from npc_social.engine import SocialEngine

from .deps import get_engine, require_registered
from .models import (
    AcceptRequest,
    ApplyModifiers,
    CrossReferenceBody,
    GameEvent,
    RegisterNPC,
    SetActive,
    SetArchetype,
    SetMood,
    SetStage,
    SpeechContext,
)

router = APIRouter()


@router.post("/npcs", status_code=201)
async def register_npc(body: RegisterNPC, engine: SocialEngine = Depends(get_engine)):
    """Register an NPC (or refresh the registration of an existing one)."""
    return engine.register_npc(
        body.id,
        name=body.name,
        personality=body.personality,
        faction=body.faction,
        stances=body.stances,
        allies=body.allies,
        rivals=body.rivals,
        opinionated=body.opinionated,
    )


@router.get("/npcs/{npc_id}")
async def get_npc(npc_id: str, engine: SocialEngine = Depends(get_engine)):
    """Full personality record. Unknown ids get a default record."""
    return engine.get_personality(npc_id)


@router.get("/npcs/{npc_id}/summary")
async def get_summary(npc_id: str, engine: SocialEngine = Depends(get_engine)):
    return engine.get_personality_summary(npc_id)


@router.put("/npcs/{npc_id}/archetype")
async def set_archetype(npc_id: str, body: SetArchetype, engine: SocialEngine = Depends(get_engine)):
    engine.set_base_archetype(npc_id, body.archetype)
    return engine.get_personality(npc_id)


@router.put("/npcs/{npc_id}/stage")
async def set_stage(npc_id: str, body: SetStage, engine: SocialEngine = Depends(get_engine)):
    engine.set_stage(npc_id, body.stage)
    return engine.get_personality(npc_id)


@router.put("/npcs/{npc_id}/active")
async def set_active(npc_id: str, body: SetActive, engine: SocialEngine = Depends(get_engine)):
    """Toggle whether a registered NPC may interrupt others."""
    require_registered(engine, npc_id)
    engine.set_active(npc_id, body.active)
    return engine.get_personality(npc_id)


@router.post("/npcs/{npc_id}/modifiers")
async def apply_modifiers(npc_id: str, body: ApplyModifiers, engine: SocialEngine = Depends(get_engine)):
    """Add deltas to the given axes (clamped to [-1, 1])."""
    return engine.apply_modifiers(npc_id, body.model_dump(exclude_none=True))


@router.get("/npcs/{npc_id}/mood")
async def get_mood(npc_id: str, engine: SocialEngine = Depends(get_engine)):
    return engine.get_mood(npc_id)


@router.put("/npcs/{npc_id}/mood")
async def set_mood(npc_id: str, body: SetMood, engine: SocialEngine = Depends(get_engine)):
    return engine.set_mood(npc_id, body.mood, body.intensity, body.duration_ms)


@router.post("/npcs/{npc_id}/events")
async def game_event(npc_id: str, body: GameEvent, engine: SocialEngine = Depends(get_engine)):
    """Report a gameplay event; may fire a breaking point."""
    return engine.check_breaking_point(npc_id, body.event_type, body.context)


@router.get("/npcs/{npc_id}/style")
async def get_style(npc_id: str, engine: SocialEngine = Depends(get_engine)):
    return engine.get_dialogue_style(npc_id)


@router.get("/npcs/{npc_id}/greeting")
async def get_greeting(npc_id: str, engine: SocialEngine = Depends(get_engine)):
    return {"npc_id": npc_id, "text": engine.get_greeting(npc_id)}


@router.get("/npcs/{npc_id}/response")
async def get_response(npc_id: str, affirmative: bool = True, engine: SocialEngine = Depends(get_engine)):
    return {"npc_id": npc_id, "text": engine.get_response(npc_id, affirmative)}


@router.post("/npcs/{npc_id}/accept")
async def would_accept(npc_id: str, body: AcceptRequest, engine: SocialEngine = Depends(get_engine)):
    """Roll whether the NPC accepts a request."""
    context = body.model_dump(exclude_none=True)
    return {
        "npc_id": npc_id,
        "chance": engine.styles.acceptance_chance(npc_id, context),
        "accepted": engine.would_accept(npc_id, context),
    }


@router.post("/npcs/{npc_id}/interrupt")
async def check_interrupt(npc_id: str, body: SpeechContext, engine: SocialEngine = Depends(get_engine)):
    """Check whether anyone interrupts this speaker; returns the interrupt line or null."""
    require_registered(engine, npc_id)
    descriptor = engine.check_for_interrupt(npc_id, body.model_dump(exclude={"queue"}))
    if descriptor is None:
        return None
    interrupt = engine.generate_interrupt(descriptor)
    if body.queue:
        engine.queue_interrupt(interrupt)
    return interrupt


@router.post("/npcs/{npc_id}/cross-reference")
async def cross_reference(npc_id: str, body: CrossReferenceBody, engine: SocialEngine = Depends(get_engine)):
    text = engine.generate_cross_reference(npc_id, body.referenced_id, body.type)
    if text is None:
        raise HTTPException(404, "Referenced NPC not found")
    return {"npc_id": npc_id, "text": text}
