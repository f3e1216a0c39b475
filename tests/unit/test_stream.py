"""Unit tests for the ConversationRelay WebSocket binding."""
import json

import pytest
from starlette.websockets import WebSocketDisconnect

from receptionist.api.webhooks.stream import parse_stream_message

STREAM_URL = "/webhooks/voice/stream?CallSid=CA1"


def prompt(text, lang=None):
    message = {"type": "prompt", "voicePrompt": text, "last": True}
    if lang:
        message["lang"] = lang
    return json.dumps(message)


@pytest.fixture
def live_call(test_client, business_handle):
    test_client.post(
        "/webhooks/voice/relay",
        data={"CallSid": "CA1", "From": "+31600000001", "To": "+31201234567"},
    )


class TestParseStreamMessage:
    """Test inbound message normalization."""

    def test_twilio_prompt(self):
        event = parse_stream_message(prompt("Hallo", "nl-NL"))

        assert event.type == "utterance"
        assert event.text == "Hallo"
        assert event.detected_language == "nl-NL"

    def test_abstract_utterance(self):
        event = parse_stream_message(
            json.dumps({"type": "utterance", "text": "Hello", "detectedLanguage": "en-US"})
        )

        assert event.type == "utterance"
        assert event.text == "Hello"
        assert event.detected_language == "en-US"

    def test_other_types(self):
        assert parse_stream_message('{"type": "setup", "callSid": "CA1"}').type == "setup"
        assert parse_stream_message('{"type": "interrupt"}').type == "interrupt"
        assert parse_stream_message('{"type": "call-ended"}').type == "call-ended"
        assert parse_stream_message('{"type": "dtmf", "digit": "1"}').type == "dtmf"

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"type": "bogus"}', '{"type": "prompt", "voicePrompt": 5}'])
    def test_malformed(self, raw):
        assert parse_stream_message(raw) is None


class TestConversationRelayStream:
    """Test the WebSocket session."""

    def test_reply_is_streamed(self, test_client, live_call, completion_client):
        completion_client.replies = ["Wij gaan om acht uur open."]

        with test_client.websocket_connect(STREAM_URL) as ws:
            ws.send_text(json.dumps({"type": "setup", "callSid": "CA1"}))
            ws.send_text(prompt("Hoe laat gaan jullie open?", "nl-NL"))

            assert ws.receive_json() == {"type": "text", "token": "Wij gaan om acht uur open.", "last": True}

    def test_malformed_message_is_ignored(self, test_client, live_call, completion_client):
        completion_client.replies = ["Goedemiddag!"]

        with test_client.websocket_connect(STREAM_URL) as ws:
            ws.send_text("garbage")
            ws.send_text(prompt("Hallo"))

            assert ws.receive_json()["token"] == "Goedemiddag!"

    def test_handoff_sets_language_between_legs(
        self, test_client, live_call, completion_client, session_manager, fake_clock, test_settings
    ):
        completion_client.replies = ["Wij gaan om acht uur open.", "We close at six."]
        catalog = session_manager.catalog
        started = fake_clock.now()

        with test_client.websocket_connect(STREAM_URL) as ws:
            ws.send_text(prompt("When do you open?", "en-US"))
            assert ws.receive_json()["token"] == "Wij gaan om acht uur open."

            ws.send_text(prompt("When do you close?", "en-US"))
            transfer = ws.receive_json()
            language = ws.receive_json()
            greeting = ws.receive_json()
            reply = ws.receive_json()

        assert transfer == {
            "type": "text",
            "token": catalog.phrase("nl-NL", "transfer", language="English"),
            "last": True,
        }
        assert language == {"type": "language", "ttsLanguage": "en-US", "transcriptionLanguage": "en-US"}
        assert greeting == {
            "type": "text",
            "token": catalog.phrase("en-US", "handoff_greeting", business_name="Bakkerij Jansen"),
            "last": False,
        }
        assert reply == {"type": "text", "token": "We close at six.", "last": True}
        # The pause before the greeting is timed on the server clock
        assert fake_clock.now() >= started + test_settings.handoff_pause_seconds

    def test_expired_call_is_ended(self, test_client, live_call, fake_clock, session_manager):
        fake_clock.advance(200)

        with test_client.websocket_connect(STREAM_URL) as ws:
            ws.send_text(prompt("Hallo"))

            closing = ws.receive_json()
            end = ws.receive_json()

        assert closing["token"] == session_manager.catalog.phrase("nl-NL", "closing")
        assert end == {"type": "end"}
        assert not session_manager.registry.contains("CA1")

    def test_disconnect_ends_session(self, test_client, live_call, session_manager):
        with test_client.websocket_connect(STREAM_URL):
            pass

        assert not session_manager.registry.contains("CA1")

    def test_call_ended_message_ends_session(self, test_client, live_call, session_manager):
        with test_client.websocket_connect(STREAM_URL) as ws:
            ws.send_text(json.dumps({"type": "call-ended"}))
            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()

        assert not session_manager.registry.contains("CA1")

    def test_unknown_call_is_closed(self, test_client):
        with test_client.websocket_connect(STREAM_URL) as ws:
            with pytest.raises(WebSocketDisconnect):
                ws.receive_text()
