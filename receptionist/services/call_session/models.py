"""Call session models."""
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from receptionist.services.business.models import PersonaContext


class Turn(BaseModel):
    """One entry of the conversation history."""

    role: Literal["user", "assistant"]
    text: str


class Utterance(BaseModel):
    """One outgoing leg of a turn: spoken text or a short pause."""

    kind: Literal["speak", "pause"] = "speak"
    text: str = ""
    language: str
    voice: Optional[str] = None
    pause_seconds: int = 0


class LanguageSwitch(BaseModel):
    """Directive to move the call from one language to another."""

    from_language: str
    to_language: str
    forced: bool = False


class TurnResult(BaseModel):
    """Everything the transport needs to answer one caller turn."""

    utterances: List[Utterance] = []
    end_call: bool = False
    language_switch: Optional[LanguageSwitch] = None
    discarded: bool = False


class AdmissionStatus(str, Enum):
    """Outcome of a "call started" event."""

    ADMITTED = "admitted"
    DUPLICATE = "duplicate"
    TRIAL_USED = "trial_used"
    NO_PERSONA = "no_persona"

    def __str__(self) -> str:
        return self.value


class CallSession:
    """Mutable state of one in-progress call."""

    def __init__(
        self,
        call_sid: str,
        caller: str,
        persona: PersonaContext,
        started_at: float,
        active_language: str,
        destination: Optional[str] = None,
    ):
        self.call_sid = call_sid
        self.caller = caller
        self.destination = destination
        self.persona = persona
        self.history: List[Turn] = []
        self.started_at = started_at
        self.last_activity_at = started_at
        self.active_language = active_language
        self.pending_language: Optional[str] = None
        self.pending_language_streak = 0
        self.connection_closed = False

    def add_turn(self, role: str, text: str) -> None:
        """Append a turn to the history."""
        self.history.append(Turn(role=role, text=text))

    def get_transcript_text(self) -> str:
        """Get full transcript as text."""
        labels = {"user": "Caller", "assistant": "Agent"}
        return "\n".join(f"{labels[turn.role]}: {turn.text}" for turn in self.history)


class Admission(BaseModel):
    """Result of admitting a call."""

    status: AdmissionStatus
    session: Optional[CallSession] = None
    greeting: Optional[Utterance] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)
