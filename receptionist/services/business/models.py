"""Business persona models."""
import json
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PersonaContext(BaseModel):
    """Immutable snapshot of the business persona a call is answered as.

    Captured once when a call starts and never re-read mid-call, so an
    operator editing their setup during a live call does not affect it.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    business_name: str = Field(min_length=1)
    business_type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    opening_hours: str = Field(min_length=1)
    languages: List[str] = Field(min_length=1)
    special_rules: str = ""
    greeting_message: str = ""

    @field_validator("languages", mode="before")
    @classmethod
    def _split_languages(cls, value):
        # The setup wizard stores languages as a JSON array or comma separated string
        if isinstance(value, str) and value.strip().startswith("["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                value = value.strip().strip("[]")
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class BusinessSessionHandle(BaseModel):
    """Short-lived link between a finished setup and incoming test calls."""

    session_id: str
    persona: PersonaContext
    created_at: float
    routing_key: Optional[str] = None
