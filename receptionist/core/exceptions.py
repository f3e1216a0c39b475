"""Domain exceptions for the live call engine."""


class ReceptionistError(Exception):
    """Base class for call engine errors."""


class DuplicateSession(ReceptionistError):
    """A session with this call id is already registered."""

    def __init__(self, call_sid: str):
        super().__init__(f"Call session already exists: {call_sid}")
        self.call_sid = call_sid


class SessionNotFound(ReceptionistError):
    """No live session exists for this call id."""

    def __init__(self, call_sid: str):
        super().__init__(f"Call session not found: {call_sid}")
        self.call_sid = call_sid


class CompletionTimeout(ReceptionistError):
    """The remote completion did not answer before its deadline."""


class CompletionError(ReceptionistError):
    """The remote completion failed for a reason other than the deadline."""
