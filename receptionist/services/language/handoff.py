"""Hand-off controller: makes a language switch sound like a transfer."""
import logging
from typing import List

from receptionist.services.call_session.models import CallSession, LanguageSwitch, Utterance
from receptionist.services.language.catalog import LanguageCatalog

logger = logging.getLogger(__name__)


class HandoffController:
    """Builds the four-leg transfer sequence for a confirmed switch.

    Legs, in order: transfer announcement in the old voice, a short pause,
    a greeting in the new voice, then the actual reply in the new voice.
    """

    def __init__(self, catalog: LanguageCatalog, pause_seconds: int = 1):
        self.catalog = catalog
        self.pause_seconds = pause_seconds

    def build(self, session: CallSession, switch: LanguageSwitch, reply_text: str) -> List[Utterance]:
        """Return the hand-off legs and move the session to the new language."""
        old_voice = self.catalog.voice_config(switch.from_language)
        new_voice = self.catalog.voice_config(switch.to_language)
        new_entry = self.catalog.resolve(switch.to_language)

        legs = [
            Utterance(
                text=self.catalog.phrase(
                    switch.from_language, "transfer", language=new_entry.native_name
                ),
                language=old_voice.language,
                voice=old_voice.voice,
            ),
            Utterance(
                kind="pause",
                language=old_voice.language,
                pause_seconds=self.pause_seconds,
            ),
            Utterance(
                text=self.catalog.phrase(
                    switch.to_language,
                    "handoff_greeting",
                    business_name=session.persona.business_name,
                ),
                language=new_voice.language,
                voice=new_voice.voice,
            ),
            Utterance(
                text=reply_text,
                language=new_voice.language,
                voice=new_voice.voice,
            ),
        ]

        session.active_language = new_voice.language
        logger.info(
            f"[HANDOFF] CallSid: {session.call_sid}, {switch.from_language} -> "
            f"{switch.to_language} (forced: {switch.forced})"
        )
        return legs
