"""TwiML rendering for the request/response binding."""
from typing import Iterable

from twilio.twiml.voice_response import VoiceResponse

from receptionist.services.call_session.models import TurnResult, Utterance
from receptionist.services.language.catalog import LanguageCatalog

RELAY_TRANSCRIPTION_PROVIDER = "Deepgram"
RELAY_SPEECH_MODEL = "nova-2-general"


def _add_legs(verb, utterances: Iterable[Utterance]) -> None:
    for utterance in utterances:
        if utterance.kind == "pause":
            verb.pause(length=utterance.pause_seconds)
        elif utterance.text:
            voice = f"Polly.{utterance.voice}" if utterance.voice else None
            verb.say(utterance.text, voice=voice, language=utterance.language)


def render_empty() -> str:
    """No-op response, used for duplicate start events."""
    return str(VoiceResponse())


def render_hangup(utterances: Iterable[Utterance] = ()) -> str:
    """Speak the given legs, then end the call."""
    response = VoiceResponse()
    _add_legs(response, utterances)
    response.hangup()
    return str(response)


def render_gather(
    utterances: Iterable[Utterance], gather_url: str, recognition_locale: str
) -> str:
    """Speak the given legs and wait for the caller's next utterance.

    The recognition locale is re-asserted on every response. If the caller
    stays silent the call is redirected back to the gather endpoint, which
    answers with a "please repeat" turn.
    """
    response = VoiceResponse()
    gather = response.gather(
        input="speech",
        action=gather_url,
        method="POST",
        speech_timeout="auto",
        speech_model="phone_call",
        language=recognition_locale,
    )
    _add_legs(gather, utterances)
    response.redirect(gather_url, method="POST")
    return str(response)


def render_turn(
    result: TurnResult, gather_url: str, catalog: LanguageCatalog, active_language: str
) -> str:
    """Serialize a turn result into TwiML."""
    if result.end_call:
        return render_hangup(result.utterances)
    recognition_locale = catalog.voice_config(active_language).recognition_locale
    return render_gather(result.utterances, gather_url, recognition_locale)


def render_conversation_relay(
    ws_url: str, greeting: Utterance, catalog: LanguageCatalog
) -> str:
    """Connect the call to the streaming binding with every catalogued language."""
    primary = catalog.voice_config(greeting.language)
    response = VoiceResponse()
    connect = response.connect()
    relay = connect.conversation_relay(
        url=ws_url,
        language="multi",
        tts_provider=primary.provider,
        transcription_provider=RELAY_TRANSCRIPTION_PROVIDER,
        speech_model=RELAY_SPEECH_MODEL,
        welcome_greeting=greeting.text,
        voice=primary.voice,
    )
    for entry in catalog.entries:
        relay.language(
            code=entry.code,
            voice=entry.voice,
            tts_provider=entry.provider,
            transcription_provider=RELAY_TRANSCRIPTION_PROVIDER,
            speech_model=RELAY_SPEECH_MODEL,
        )
    return str(response)
