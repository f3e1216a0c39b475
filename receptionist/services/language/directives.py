"""Parsing of out-of-band directives embedded in model replies."""
import json
import logging
import re
from typing import Optional, Tuple

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# {"detected_language": "en"} anywhere in the reply, possibly malformed
_JSON_DIRECTIVE = re.compile(r"\{[^{}]*[\"']?detected_language[\"']?[^{}]*\}", re.IGNORECASE)
# [lang:en] or [LANGUAGE=en]
_TAG_DIRECTIVE = re.compile(r"\[\s*lang(?:uage)?\s*[:=]\s*([A-Za-z]{2,3}(?:[-_][A-Za-z]{2})?)\s*\]", re.IGNORECASE)


class LanguageDirective(BaseModel):
    """A model-side signal that the caller explicitly asked for a language."""

    language: str


def _read_json_directive(blob: str) -> Optional[str]:
    try:
        data = json.loads(blob)
    except json.JSONDecodeError:
        logger.debug(f"[DIRECTIVE] Malformed directive ignored: {blob!r}")
        return None
    value = data.get("detected_language") if isinstance(data, dict) else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_directive(raw: str) -> Tuple[Optional[LanguageDirective], str]:
    """Split a raw model reply into an optional directive and the spoken text.

    Never raises: a malformed or missing directive yields ``None`` and the
    directive text is still removed from what will be spoken.
    """
    if not raw:
        return None, ""

    language = None
    for match in _JSON_DIRECTIVE.finditer(raw):
        language = language or _read_json_directive(match.group(0))
    for match in _TAG_DIRECTIVE.finditer(raw):
        language = language or match.group(1)

    cleaned = _TAG_DIRECTIVE.sub("", _JSON_DIRECTIVE.sub("", raw)).strip()
    directive = LanguageDirective(language=language) if language else None
    return directive, cleaned
