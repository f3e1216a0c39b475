"""ConversationRelay WebSocket endpoint (persistent stream binding)."""
import json
import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from receptionist.core.dependencies import get_call_session_manager
from receptionist.core.exceptions import SessionNotFound
from receptionist.services.call_session.manager import CallSessionManager
from receptionist.services.call_session.models import TurnResult, Utterance

router = APIRouter()
logger = logging.getLogger(__name__)

# Inbound message types in Twilio's and in the transport-neutral naming
_TYPE_ALIASES = {
    "prompt": "utterance",
    "utterance": "utterance",
    "interrupt": "interrupt",
    "setup": "setup",
    "dtmf": "dtmf",
    "error": "error",
    "call-ended": "call-ended",
    "end": "call-ended",
}


class StreamEvent(BaseModel):
    """Normalized inbound stream message."""

    type: Literal["utterance", "interrupt", "setup", "dtmf", "error", "call-ended"]
    text: str = ""
    detected_language: Optional[str] = None


def parse_stream_message(raw: str) -> Optional[StreamEvent]:
    """Normalize one raw WebSocket message, or None if it is malformed."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    event_type = _TYPE_ALIASES.get(str(data.get("type", "")).lower())
    if event_type is None:
        return None

    text = data.get("voicePrompt", data.get("text", "")) or ""
    language = data.get("lang") or data.get("detectedLanguage") or None
    if not isinstance(text, str) or (language is not None and not isinstance(language, str)):
        return None
    return StreamEvent(type=event_type, text=text, detected_language=language)


def build_outgoing_messages(
    result: TurnResult, spoken_language: str, manager: CallSessionManager
) -> List[dict]:
    """Turn a result into the ordered outbound messages.

    A set-language message is pushed whenever the next leg is in a
    different language than the one the caller last heard.
    """
    legs: List[Utterance] = list(result.utterances)
    messages: List[dict] = []
    current = spoken_language
    for index, leg in enumerate(legs):
        if leg.kind == "pause":
            messages.append({"type": "pause", "seconds": leg.pause_seconds})
            continue
        if leg.language != current:
            voice = manager.catalog.voice_config(leg.language)
            messages.append(
                {
                    "type": "language",
                    "ttsLanguage": voice.language,
                    "transcriptionLanguage": voice.recognition_locale,
                }
            )
            current = leg.language
        following = legs[index + 1] if index + 1 < len(legs) else None
        last = following is None or following.kind == "pause" or following.language != leg.language
        messages.append({"type": "text", "token": leg.text, "last": last})
    return messages


async def send_turn(
    websocket: WebSocket,
    result: TurnResult,
    spoken_language: str,
    manager: CallSessionManager,
) -> None:
    """Send one turn's messages over the relay socket.

    The relay has no pause message and speaks queued tokens on its own
    schedule, so the hand-off pause only delays when the greeting is sent.
    It is not a guaranteed audible gap after the transfer phrase.
    """
    for message in build_outgoing_messages(result, spoken_language, manager):
        if message["type"] == "pause":
            # Pauses are timed locally, the relay protocol has no pause message
            await manager.clock.sleep(message["seconds"])
            continue
        await websocket.send_text(json.dumps(message))
        if message["type"] == "language":
            logger.info(f"[LANGUAGE SWITCH] Switching to {message['ttsLanguage']}")


@router.websocket("/voice/stream")
async def conversation_relay_stream(
    websocket: WebSocket,
    session_manager: CallSessionManager = Depends(get_call_session_manager),
):
    """Drive one call over a ConversationRelay WebSocket."""
    call_sid = websocket.query_params.get("CallSid")
    await websocket.accept()

    if not call_sid or session_manager.registry.find(call_sid) is None:
        logger.warning(f"[STREAM] No session found for CallSid: {call_sid}, closing")
        await websocket.close()
        return

    logger.info(f"[STREAM] Connected - CallSid: {call_sid}")
    peer_closed = False
    try:
        while True:
            raw = await websocket.receive_text()
            event = parse_stream_message(raw)
            if event is None:
                logger.warning(f"[STREAM] Ignoring malformed message - CallSid: {call_sid}: {raw[:200]!r}")
                continue

            if event.type == "utterance":
                session = session_manager.registry.find(call_sid)
                if session is None:
                    logger.info(f"[STREAM] Session gone - CallSid: {call_sid}")
                    break
                spoken_language = session.active_language
                try:
                    result = await session_manager.handle_utterance(
                        call_sid, event.text, event.detected_language
                    )
                except SessionNotFound:
                    logger.info(f"[STREAM] Session gone - CallSid: {call_sid}")
                    break
                if result.discarded:
                    break
                await send_turn(websocket, result, spoken_language, session_manager)
                if result.end_call:
                    await websocket.send_text(json.dumps({"type": "end"}))
                    break
            elif event.type == "interrupt":
                logger.info(f"[STREAM INTERRUPT] CallSid: {call_sid}")
            elif event.type == "call-ended":
                logger.info(f"[STREAM] Call ended by transport - CallSid: {call_sid}")
                break
            else:
                logger.debug(f"[STREAM] {event.type} message - CallSid: {call_sid}")
    except WebSocketDisconnect:
        peer_closed = True
        logger.info(f"[STREAM CLOSED] CallSid: {call_sid}")
    finally:
        session_manager.mark_disconnected(call_sid)
        await session_manager.end_call(call_sid, "disconnected")

    if not peer_closed:
        await websocket.close()
