"""Conversation endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from npc_social.engine import SocialEngine

from .deps import get_engine
from .models import StartConversation

router = APIRouter()


@router.get("/conversations")
async def list_conversations(engine: SocialEngine = Depends(get_engine)):
    """Active conversations and the bounded history of completed ones."""
    return {
        "active": engine.conversations.active,
        "history": engine.conversations.history,
    }


@router.get("/conversations/templates")
async def list_templates(engine: SocialEngine = Depends(get_engine)):
    return engine.conversations.templates


@router.post("/conversations", status_code=201)
async def start_conversation(body: StartConversation, engine: SocialEngine = Depends(get_engine)):
    conversation = engine.start_conversation(body.template, body.participants, body.context)
    if conversation is None:
        raise HTTPException(422, "Unknown template or not enough participants")
    return conversation


@router.post("/conversations/{conversation_id}/messages/{index}/delivered")
async def mark_delivered(conversation_id: str, index: int, engine: SocialEngine = Depends(get_engine)):
    """Mark one message as shown; the conversation completes once all are."""
    conversation = engine.mark_message_delivered(conversation_id, index)
    if conversation is None:
        raise HTTPException(404, "Active conversation or message not found")
    return conversation


@router.get("/interrupts/pending")
async def pending_interrupts(engine: SocialEngine = Depends(get_engine)):
    """Drain the queue of interrupts waiting to be shown."""
    return engine.get_pending_interrupts()
