"""Conversation log endpoints."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from receptionist.db.database import get_db
from receptionist.services.persistence.conversations import ConversationPersistenceService

router = APIRouter()
logger = logging.getLogger(__name__)


class ConversationResponse(BaseModel):
    """Conversation log response model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    call_sid: str
    channel: str
    caller: Optional[str] = None
    business_name: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    end_reason: Optional[str] = None
    final_language: Optional[str] = None
    turn_count: int = 0
    transcript: Optional[str] = None


@router.get("/api/conversations", response_model=List[ConversationResponse])
async def list_conversations(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Most recently finished calls first."""
    conversations = await ConversationPersistenceService(db).list_recent(limit)
    logger.debug(f"[CONVERSATIONS] Returning {len(conversations)} conversations")
    return conversations


@router.get("/api/conversations/{call_sid}", response_model=ConversationResponse)
async def get_conversation(call_sid: str, db: AsyncSession = Depends(get_db)):
    conversation = await ConversationPersistenceService(db).get_by_call_sid(call_sid)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation
