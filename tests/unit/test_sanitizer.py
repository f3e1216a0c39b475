"""Unit tests for speech text sanitization."""
import pytest

from receptionist.services.speech.sanitizer import sanitize_for_speech


class TestSanitizeForSpeech:
    """Test markdown, emoji and list removal."""

    def test_strips_bold_and_emoji(self):
        assert sanitize_for_speech("**Sure!** We open at 9 😊") == "Sure! We open at 9"

    def test_strips_heading_and_bullets(self):
        text = "# Hours\n- Monday: 9-5\n- Tuesday: 9-5"
        assert sanitize_for_speech(text) == "Hours Monday: 9-5 Tuesday: 9-5"

    def test_strips_numbered_list(self):
        assert sanitize_for_speech("1. Call us\n2. Visit the shop") == "Call us Visit the shop"

    def test_plain_prose_is_unchanged(self):
        text = "We open at 10.30 tomorrow, see you then."
        assert sanitize_for_speech(text) == text

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("We open at 8 ⏰", "We open at 8"),
            ("Ready in 5 minutes ⌛", "Ready in 5 minutes"),
            ("Call us ☎️ now ↗", "Call us now"),
            ("Turn left ➡ at the church", "Turn left at the church"),
        ],
    )
    def test_strips_clock_and_arrow_symbols(self, text, expected):
        assert sanitize_for_speech(text) == expected

    def test_strips_underscore_emphasis(self):
        assert sanitize_for_speech("This is _really_ tasty") == "This is really tasty"
        assert sanitize_for_speech("Ask for order_number 12") == "Ask for order_number 12"

    def test_empty_input(self):
        assert sanitize_for_speech("") == ""
        assert sanitize_for_speech("🎉🎂") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "**Sure!** We open at 9 😊",
            "- - nested marker",
            "* **bold bullet**",
            "## Menu\n1) Bread\n2) Cake 🍰",
            "`code` and ~~struck~~ text",
            "This is _really_ tasty ⏰",
            "Call us ☎️ now ↗",
        ],
    )
    def test_idempotent(self, text):
        once = sanitize_for_speech(text)
        assert sanitize_for_speech(once) == once
