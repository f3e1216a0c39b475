"""Conversation log persistence service."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from receptionist.db.models import Conversation
from receptionist.services.call_session.models import CallSession

logger = logging.getLogger(__name__)


def _utc(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).replace(tzinfo=None)


class ConversationPersistenceService:
    """Service for persisting finished conversations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_call(
        self, session: CallSession, end_reason: str, ended_at: float
    ) -> Conversation:
        """Write the log row for a finished call, or return the existing one."""
        existing = await self.get_by_call_sid(session.call_sid)
        if existing:
            return existing

        conversation = Conversation(
            call_sid=session.call_sid,
            channel="call",
            caller=session.caller,
            destination=session.destination,
            business_name=session.persona.business_name,
            started_at=_utc(session.started_at),
            ended_at=_utc(ended_at),
            duration_seconds=round(ended_at - session.started_at, 1),
            end_reason=end_reason,
            final_language=session.active_language,
            turn_count=sum(1 for turn in session.history if turn.role == "user"),
            transcript=session.get_transcript_text() or None,
        )
        self.db.add(conversation)
        await self.db.commit()
        await self.db.refresh(conversation)
        return conversation

    async def get_by_call_sid(self, call_sid: str) -> Optional[Conversation]:
        """Get a conversation by Twilio call SID."""
        result = await self.db.execute(
            select(Conversation).where(Conversation.call_sid == call_sid)
        )
        return result.scalar_one_or_none()

    async def list_recent(self, limit: int = 50) -> List[Conversation]:
        """Most recently finished conversations first."""
        result = await self.db.execute(
            select(Conversation).order_by(desc(Conversation.ended_at)).limit(limit)
        )
        return list(result.scalars().all())


class ConversationRecorder:
    """Writes conversation logs outside of a request scope.

    Used when calls end from the reaper or a websocket close, where no
    request-bound database session exists. Failures are logged and never
    reach the call.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def record(self, session: CallSession, end_reason: str, ended_at: float) -> None:
        try:
            async with self.session_factory() as db:
                await ConversationPersistenceService(db).record_call(session, end_reason, ended_at)
        except Exception as e:
            logger.error(
                f"[CALL LOG] Failed to record call {session.call_sid}: "
                f"{type(e).__name__}: {str(e)}",
                exc_info=True,
            )
