"""Language switching policy with hysteresis."""
import logging
from typing import Optional, Tuple

from receptionist.services.call_session.models import CallSession, LanguageSwitch
from receptionist.services.language.catalog import LanguageCatalog

logger = logging.getLogger(__name__)


class LanguagePolicy:
    """Decides when a detected language change should become a hand-off.

    A new language must be detected on ``threshold`` consecutive turns
    before the call switches, so one stray foreign word or a
    misrecognition does not flip the voice mid-conversation. An explicit
    request from the caller bypasses this through ``force_switch``.
    """

    def __init__(self, catalog: LanguageCatalog, threshold: int = 2):
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.catalog = catalog
        self.threshold = threshold

    def evaluate(self, session: CallSession, detected: Optional[str]) -> Optional[LanguageSwitch]:
        """Feed one turn's detected language into the session's streak."""
        candidate = self.catalog.normalize(detected)

        if candidate is None or self.catalog.matches(session.active_language, detected):
            self._clear_pending(session)
            return None

        if candidate == session.pending_language:
            session.pending_language_streak += 1
        else:
            session.pending_language = candidate
            session.pending_language_streak = 1

        logger.info(
            f"[LANGUAGE] CallSid: {session.call_sid}, candidate {candidate} "
            f"streak {session.pending_language_streak}/{self.threshold}"
        )

        if session.pending_language_streak >= self.threshold:
            self._clear_pending(session)
            return LanguageSwitch(from_language=session.active_language, to_language=candidate)
        return None

    def force_switch(self, session: CallSession, requested: Optional[str]) -> Optional[LanguageSwitch]:
        """Switch immediately on an explicit caller request."""
        target = self.catalog.normalize(requested)
        if target is None:
            if requested:
                logger.warning(
                    f"[LANGUAGE] CallSid: {session.call_sid}, ignoring request for "
                    f"uncatalogued language '{requested}'"
                )
            return None
        if self.catalog.matches(session.active_language, requested):
            return None
        self._clear_pending(session)
        logger.info(
            f"[LANGUAGE] CallSid: {session.call_sid}, explicit request "
            f"{session.active_language} -> {target}"
        )
        return LanguageSwitch(from_language=session.active_language, to_language=target, forced=True)

    @staticmethod
    def snapshot(session: CallSession) -> Tuple[Optional[str], int]:
        return session.pending_language, session.pending_language_streak

    @staticmethod
    def restore(session: CallSession, state: Tuple[Optional[str], int]) -> None:
        """Put back the streak captured by ``snapshot``."""
        session.pending_language, session.pending_language_streak = state

    @staticmethod
    def _clear_pending(session: CallSession) -> None:
        session.pending_language = None
        session.pending_language_streak = 0
