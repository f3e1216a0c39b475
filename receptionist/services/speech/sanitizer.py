"""Text clean-up before speech synthesis."""
import re

_EMOJI = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport & map
    "\U0001F1E0-\U0001F1FF"  # flags
    "\U0001F900-\U0001F9FF"  # supplemental symbols
    "\U0001FA00-\U0001FAFF"  # extended pictographs
    "\u2190-\u21FF"  # arrows
    "\u2300-\u23FF"  # misc technical
    "\u2600-\u26FF"  # misc symbols
    "\u2700-\u27BF"  # dingbats
    "\u2B00-\u2BFF"  # arrows and stars
    "\uFE00-\uFE0F"  # variation selectors
    "\u200D"  # zero width joiner
    "\u20E3"  # keycap
    "]"
)
_EMPHASIS = re.compile(r"\*+|`+|~~|__|(?<!\w)_+(?=\w)|(?<=\w)_+(?!\w)")
_HEADING = re.compile(r"#{1,6}\s+")
_LIST_MARKER = re.compile(r"^\s*(?:(?:[-•*+]|\d{1,3}[.)])\s+)+", re.MULTILINE)
_WHITESPACE = re.compile(r"\s+")


def _sanitize_once(text: str) -> str:
    cleaned = _EMOJI.sub("", text)
    cleaned = _LIST_MARKER.sub("", cleaned)
    cleaned = _EMPHASIS.sub("", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def sanitize_for_speech(text: str) -> str:
    """Strip emoji, markdown and list markers so TTS reads plain prose.

    Passes repeat until the text stops changing, so sanitizing already
    sanitized text returns it unchanged.
    """
    if not text:
        return ""
    cleaned = _sanitize_once(text)
    while True:
        again = _sanitize_once(cleaned)
        if again == cleaned:
            return cleaned
        cleaned = again
