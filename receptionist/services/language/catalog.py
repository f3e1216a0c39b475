"""Language catalogue: voices, recognition locales and localized phrases."""
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class VoiceConfig(BaseModel):
    """Speech synthesis and recognition settings for one language."""

    language: str
    voice: str
    provider: str
    recognition_locale: str


class LanguageEntry(BaseModel):
    """One supported language."""

    code: str
    short_code: str
    name: str
    native_name: str
    voice: str
    provider: str = "Amazon"
    recognition_locale: str
    phrases: Dict[str, str] = {}


class LanguageCatalog:
    """Lookup table of supported languages loaded from YAML."""

    def __init__(self, catalog_file: Optional[str] = None, default_language: Optional[str] = None):
        if catalog_file is None:
            catalog_file = Path(__file__).parent / "data" / "languages.yaml"
        self.catalog_file = Path(catalog_file)
        self._entries: List[LanguageEntry] = []
        self._index: Dict[str, LanguageEntry] = {}
        self._load()

        configured = self.find(default_language) if default_language else None
        if default_language and configured is None:
            logger.warning(
                f"[LANGUAGE] Default language '{default_language}' is not catalogued, "
                f"using {self._file_default.code}"
            )
        self.default: LanguageEntry = configured or self._file_default

    def _load(self) -> None:
        """Load entries from the catalogue file, or a built-in English set."""
        if not self.catalog_file.exists():
            logger.warning(f"[LANGUAGE] Catalogue {self.catalog_file} not found, using built-in English")
            data = {"default": "en-US", "languages": [_BUILTIN_ENGLISH]}
        else:
            with open(self.catalog_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        self._entries = [LanguageEntry(**item) for item in data.get("languages", [])]
        if not self._entries:
            self._entries = [LanguageEntry(**_BUILTIN_ENGLISH)]

        # First registration of a key wins, so "en" maps to the first English entry
        for entry in self._entries:
            for key in (entry.code, entry.short_code, entry.name):
                self._index.setdefault(key.lower(), entry)

        self._file_default = self.find(data.get("default", "")) or self._entries[0]

    @property
    def codes(self) -> List[str]:
        return [entry.code for entry in self._entries]

    @property
    def entries(self) -> List[LanguageEntry]:
        return list(self._entries)

    def find(self, value: Optional[str]) -> Optional[LanguageEntry]:
        """Look up a language by locale code, short code or English name.

        Returns None for anything not catalogued.
        """
        if not value:
            return None
        key = value.strip().lower().replace("_", "-")
        entry = self._index.get(key)
        if entry is None and "-" in key:
            entry = self._index.get(key.split("-", 1)[0])
        return entry

    def resolve(self, value: Optional[str]) -> LanguageEntry:
        """Like ``find`` but falls back to the default language."""
        return self.find(value) or self.default

    def normalize(self, value: Optional[str]) -> Optional[str]:
        """Canonical locale code for a catalogued language, else None."""
        entry = self.find(value)
        return entry.code if entry else None

    def matches(self, active: Optional[str], detected: Optional[str]) -> bool:
        """Whether a detected language is the call's active language.

        A bare code or name such as "en" or "English" carries no region, so
        it matches any active English variant instead of only the first
        catalogued one. "British English" still names a region.
        """
        entry = self.find(detected)
        if entry is None or not active:
            return False
        if entry.code == active:
            return True
        key = detected.strip().lower().replace("_", "-")
        if "-" in key or "-" in entry.short_code:
            return False
        return _base(entry.code) == _base(active)

    def primary_language(self, languages: List[str]) -> str:
        """The first configured business language, or the default."""
        if languages:
            return self.resolve(languages[0]).code
        return self.default.code

    def voice_config(self, code: Optional[str]) -> VoiceConfig:
        entry = self.resolve(code)
        return VoiceConfig(
            language=entry.code,
            voice=entry.voice,
            provider=entry.provider,
            recognition_locale=entry.recognition_locale,
        )

    def language_name(self, code: Optional[str]) -> str:
        return self.resolve(code).name

    def phrase(self, code: Optional[str], key: str, **values: str) -> str:
        """A localized phrase, falling back to the default language's phrase."""
        entry = self.resolve(code)
        template = entry.phrases.get(key) or self.default.phrases.get(key)
        if template is None:
            template = _BUILTIN_ENGLISH["phrases"][key]
        return template.format(**values) if values else template


def _base(code: str) -> str:
    return code.lower().split("-", 1)[0]


_BUILTIN_ENGLISH = {
    "code": "en-US",
    "short_code": "en",
    "name": "English",
    "native_name": "English",
    "voice": "Salli",
    "provider": "Amazon",
    "recognition_locale": "en-US",
    "phrases": {
        "greeting": "Hello! Thank you for calling {business_name}. How can I help you today?",
        "repeat": "Sorry, I didn't catch that. Could you please repeat?",
        "delay": "We're experiencing a brief delay. One moment please.",
        "apology": "Sorry, I'm having trouble processing that. Could you try asking again?",
        "transfer": "One moment please, I'm connecting you with a colleague who speaks {language}.",
        "handoff_greeting": "Hi, this is {business_name}. My colleague passed your call on to me.",
        "closing": "Thanks for trying our AI receptionist! Goodbye!",
        "trial_used": "Thank you for calling. You have already used your free trial. Goodbye!",
        "no_persona": "Please set up your trial on our website first, then call this number. Goodbye!",
    },
}
