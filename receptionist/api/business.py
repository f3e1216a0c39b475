"""Business setup endpoints: persona registration and test number lookup."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from receptionist.core.config import settings
from receptionist.core.dependencies import get_business_sessions
from receptionist.services.business.handles import BusinessSessionStore
from receptionist.services.business.models import PersonaContext

router = APIRouter()
logger = logging.getLogger(__name__)


class SetupRequest(PersonaContext):
    """Persona fields plus the number calls for this business arrive on."""

    phone_number: Optional[str] = None


class SetupResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    session_id: str


class PhoneNumberResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phone_number: str
    session_id: str = Field(min_length=1)


@router.post("/api/setup", response_model=SetupResponse, response_model_by_alias=True)
async def setup_business(
    request: SetupRequest,
    business_sessions: BusinessSessionStore = Depends(get_business_sessions),
):
    """Register a business persona so the next test call is answered as it."""
    persona = PersonaContext(**request.model_dump(exclude={"phone_number"}))
    handle = business_sessions.create(persona, routing_key=request.phone_number)
    logger.info(
        f"[SETUP] Business: {persona.business_name} ({persona.business_type}), "
        f"Active sessions: {len(business_sessions)}"
    )
    return SetupResponse(session_id=handle.session_id)


@router.get("/api/phone-number", response_model=PhoneNumberResponse, response_model_by_alias=True)
async def get_phone_number(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    business_sessions: BusinessSessionStore = Depends(get_business_sessions),
):
    """Return the number to dial for a live setup session."""
    if not session_id or business_sessions.get(session_id) is None:
        raise HTTPException(status_code=400, detail="Invalid session")

    if not settings.twilio_phone_number:
        logger.error("[SETUP] Phone number requested but TWILIO_PHONE_NUMBER is not configured")
        raise HTTPException(
            status_code=500,
            detail="Twilio is not configured. Set TWILIO_PHONE_NUMBER to enable phone calls.",
        )

    return PhoneNumberResponse(phone_number=settings.twilio_phone_number, session_id=session_id)
