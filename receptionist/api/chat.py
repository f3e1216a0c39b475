"""Website chat endpoint."""
import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from receptionist.core.config import settings
from receptionist.core.dependencies import get_completion_client
from receptionist.core.exceptions import CompletionError, CompletionTimeout
from receptionist.services.agent.completion import CompletionClient
from receptionist.services.agent.prompt import get_chat_instructions
from receptionist.services.business.models import PersonaContext
from receptionist.services.call_session.models import Turn

router = APIRouter()
logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = ""
    business_info: dict = Field(default_factory=dict)
    conversation_history: List[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    reply: str
    conversation_history: List[ChatMessage]


@router.post("/api/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
    request: ChatRequest,
    completion_client: CompletionClient = Depends(get_completion_client),
):
    """
    Answer one chat message as the business.

    Stateless: the client sends the history back with every message.
    """
    if not request.message.strip() or not request.business_info:
        raise HTTPException(status_code=400, detail="Message and business info are required")

    try:
        persona = PersonaContext.model_validate(request.business_info)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid business info: {e.error_count()} error(s)")

    turns = [Turn(role=item.role, text=item.content) for item in request.conversation_history]
    turns.append(Turn(role="user", text=request.message))

    try:
        reply = await completion_client.complete(
            get_chat_instructions(persona),
            turns,
            timeout=settings.completion_timeout_seconds,
        )
    except CompletionTimeout:
        logger.warning(f"[CHAT] Completion timed out - Business: {persona.business_name}")
        raise HTTPException(status_code=504, detail="The assistant took too long to answer. Please try again.")
    except CompletionError as e:
        logger.error(f"[CHAT] Completion failed - Business: {persona.business_name}: {str(e)}")
        raise HTTPException(status_code=502, detail="Error processing your request. Please try again.")

    history = list(request.conversation_history)
    history.append(ChatMessage(role="user", content=request.message))
    history.append(ChatMessage(role="assistant", content=reply))
    logger.info(f"[CHAT] Reply sent - Business: {persona.business_name}, Turns: {len(history) // 2}")
    return ChatResponse(reply=reply, conversation_history=history)
