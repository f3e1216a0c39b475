"""Twilio voice webhook endpoints (request/response binding)."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import Response

from receptionist.api.webhooks import twiml
from receptionist.core.config import settings
from receptionist.core.dependencies import get_call_session_manager
from receptionist.core.exceptions import SessionNotFound
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.models import AdmissionStatus

router = APIRouter()
logger = logging.getLogger(__name__)

TERMINAL_CALL_STATUSES = {"completed", "failed", "busy", "no-answer", "canceled"}


def get_base_url(request: Request) -> str:
    """
    Get the base URL for constructing absolute URLs.

    Uses BASE_URL environment variable if set, otherwise constructs from
    request.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def get_gather_url(request: Request, call_sid: str) -> str:
    return f"{get_base_url(request)}/webhooks/voice/gather?CallSid={call_sid}"


def get_stream_url(request: Request, call_sid: str) -> str:
    """WebSocket URL for the streaming binding."""
    host = settings.ws_host or request.headers.get("x-forwarded-host") or request.url.netloc
    proto = "ws" if "localhost" in host or "127.0.0.1" in host else "wss"
    return f"{proto}://{host}/webhooks/voice/stream?CallSid={call_sid}"


def xml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


@router.post("/voice/incoming")
async def handle_incoming_call(
    request: Request,
    CallSid: str = Form(...),
    From: str = Form(""),
    To: Optional[str] = Form(None),
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """
    Handle an incoming call for the gather (request/response) binding.

    Duplicate start events get an empty response, rejected calls hear why
    and are hung up, admitted calls hear the greeting and are gathered.
    """
    logger.info(f"[INCOMING CALL] CallSid: {CallSid}, From: {From}, To: {To}")

    admission = session_manager.admit_call(CallSid, From, To)
    if admission.status is AdmissionStatus.DUPLICATE:
        return xml(twiml.render_empty())
    if admission.status is not AdmissionStatus.ADMITTED:
        return xml(twiml.render_hangup([admission.greeting]))

    session = admission.session
    recognition_locale = session_manager.catalog.voice_config(
        session.active_language
    ).recognition_locale
    content = twiml.render_gather(
        [admission.greeting], get_gather_url(request, CallSid), recognition_locale
    )
    logger.info(f"[INCOMING CALL] Greeting sent - CallSid: {CallSid}, Language: {session.active_language}")
    return xml(content)


@router.post("/voice/relay")
async def handle_incoming_relay_call(
    request: Request,
    CallSid: str = Form(...),
    From: str = Form(""),
    To: Optional[str] = Form(None),
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """Handle an incoming call for the streaming (ConversationRelay) binding."""
    logger.info(f"[INCOMING CALL] Relay - CallSid: {CallSid}, From: {From}, To: {To}")

    admission = session_manager.admit_call(CallSid, From, To)
    if admission.status is AdmissionStatus.DUPLICATE:
        return xml(twiml.render_empty())
    if admission.status is not AdmissionStatus.ADMITTED:
        return xml(twiml.render_hangup([admission.greeting]))

    ws_url = get_stream_url(request, CallSid)
    logger.info(f"[CALL SETUP] CallSid: {CallSid}, WebSocket URL: {ws_url}")
    return xml(
        twiml.render_conversation_relay(ws_url, admission.greeting, session_manager.catalog)
    )


@router.post("/voice/gather")
async def handle_gather(
    request: Request,
    CallSid: str = Query(...),
    SpeechResult: Optional[str] = Form(None),
    DetectedLanguage: Optional[str] = Form(None),
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """
    Handle gathered speech from Twilio.

    Called after Twilio collects the caller's speech, or with no speech
    when the gather timed out and the call was redirected back here.
    """
    logger.info(
        f"[GATHER] CallSid: {CallSid}, "
        f"SpeechResult length: {len(SpeechResult) if SpeechResult else 0}"
    )

    try:
        result = await session_manager.handle_utterance(CallSid, SpeechResult, DetectedLanguage)
    except SessionNotFound:
        logger.warning(f"[GATHER] No live session for CallSid: {CallSid}, hanging up")
        return xml(twiml.render_hangup())
    except Exception as e:
        logger.error(
            f"[GATHER] Error processing speech input - CallSid: {CallSid}, "
            f"Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        session = session_manager.registry.find(CallSid)
        if session is None:
            return xml(twiml.render_hangup())
        apology = session_manager.turn_processor.speak(session, "apology")
        recognition_locale = session_manager.catalog.voice_config(
            session.active_language
        ).recognition_locale
        return xml(
            twiml.render_gather([apology], get_gather_url(request, CallSid), recognition_locale)
        )

    if result.discarded:
        return xml(twiml.render_hangup())

    if result.end_call:
        return xml(twiml.render_hangup(result.utterances))

    session = session_manager.registry.find(CallSid)
    if session is None:
        return xml(twiml.render_hangup(result.utterances))

    return xml(
        twiml.render_turn(
            result,
            get_gather_url(request, CallSid),
            session_manager.catalog,
            session.active_language,
        )
    )


@router.post("/voice/status")
async def handle_call_status(
    CallSid: str = Form(...),
    CallStatus: str = Form(...),
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """
    Handle call status updates from Twilio.

    Terminal statuses end the session. Always answers OK so Twilio does
    not retry.
    """
    logger.info(f"[CALL STATUS] CallSid: {CallSid}, CallStatus: {CallStatus}")

    if CallStatus in TERMINAL_CALL_STATUSES:
        reason = "hangup" if CallStatus == "completed" else CallStatus
        await session_manager.end_call(CallSid, reason)
    return Response(content="OK", media_type="text/plain")
