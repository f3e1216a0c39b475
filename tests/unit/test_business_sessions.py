"""Unit tests for business personas and session handles."""
import pytest
from pydantic import ValidationError

from receptionist.services.business.handles import BusinessSessionStore, most_recent_active
from receptionist.services.business.models import PersonaContext


@pytest.fixture
def store(fake_clock):
    return BusinessSessionStore(ttl_seconds=3600, active_window_seconds=1800, clock=fake_clock)


def other_persona(persona, name):
    return persona.model_copy(update={"business_name": name})


class TestPersonaContext:
    """Test persona validation."""

    def test_camel_case_payload(self, persona_payload):
        persona = PersonaContext.model_validate(persona_payload)

        assert persona.business_name == "Bakkerij Jansen"
        assert persona.languages == ["nl-NL", "en-US"]
        assert persona.greeting_message == ""

    def test_comma_separated_languages(self, persona_payload):
        persona_payload["languages"] = "Dutch, English"
        assert PersonaContext.model_validate(persona_payload).languages == ["Dutch", "English"]

    def test_json_array_languages(self, persona_payload):
        persona_payload["languages"] = '["Dutch", "English"]'
        assert PersonaContext.model_validate(persona_payload).languages == ["Dutch", "English"]

    @pytest.mark.parametrize("field", ["businessName", "businessType", "description", "openingHours"])
    def test_required_fields(self, persona_payload, field):
        persona_payload[field] = ""
        with pytest.raises(ValidationError):
            PersonaContext.model_validate(persona_payload)

    def test_languages_must_not_be_empty(self, persona_payload):
        persona_payload["languages"] = []
        with pytest.raises(ValidationError):
            PersonaContext.model_validate(persona_payload)

    def test_persona_is_immutable(self, persona):
        with pytest.raises(ValidationError):
            persona.business_name = "Something else"


class TestBusinessSessionStore:
    """Test handle lifetime and call routing."""

    def test_create_and_get(self, store, persona):
        handle = store.create(persona)

        assert store.get(handle.session_id) == handle
        assert len(store) == 1
        assert store.get("unknown") is None

    def test_handle_expires_after_ttl(self, store, persona, fake_clock):
        handle = store.create(persona)
        fake_clock.advance(3601)

        assert store.get(handle.session_id) is None

    def test_resolve_prefers_routing_key(self, store, persona, fake_clock):
        mapped = store.create(persona, routing_key="+31201234567")
        fake_clock.advance(10)
        store.create(other_persona(persona, "Pizzeria Roma"))

        assert store.resolve("+31201234567") == mapped

    def test_resolve_falls_back_to_most_recent(self, store, persona, fake_clock):
        store.create(persona)
        fake_clock.advance(10)
        newest = store.create(other_persona(persona, "Pizzeria Roma"))

        assert store.resolve("+31209999999") == newest
        assert store.resolve() == newest

    def test_resolve_outside_active_window(self, store, persona, fake_clock):
        store.create(persona)
        fake_clock.advance(1801)

        assert store.resolve() is None

    def test_sweep_removes_expired_handles(self, store, persona, fake_clock):
        store.create(persona, routing_key="+31201234567")
        fake_clock.advance(3000)
        fresh = store.create(other_persona(persona, "Pizzeria Roma"))
        fake_clock.advance(700)

        assert store.sweep() == 1
        assert len(store) == 1
        assert store.get(fresh.session_id) == fresh
        assert store.sweep() == 0

    def test_most_recent_active(self, store, persona, fake_clock):
        old = store.create(persona)
        fake_clock.advance(5)
        new = store.create(persona)

        assert most_recent_active([old, new], fake_clock.now(), 1800) == new
        assert most_recent_active([], fake_clock.now(), 1800) is None
