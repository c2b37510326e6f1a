"""Language tagging for submitted text."""

from __future__ import annotations

import logging

from loopguard.config import EngineConfig
from loopguard.llm.client import Oracle, OracleError, call_oracle
from loopguard.llm.prompts import LANGUAGE_PROMPT, LANGUAGE_SYSTEM_PROMPT
from loopguard.moderation.models import Language

logger = logging.getLogger(__name__)

_TAGS = {lang.value: lang for lang in Language}


def parse_language(raw: str) -> Language:
    """Map oracle output to a :class:`Language`; anything unexpected is UNKNOWN."""
    tag = raw.strip().strip("\"'`.!").strip().lower()
    return _TAGS.get(tag, Language.UNKNOWN)


class LanguageDetector:
    def __init__(self, oracle: Oracle, config: EngineConfig | None = None) -> None:
        self.oracle = oracle
        self.config = config or EngineConfig()

    async def detect_language(self, text: str | bytes) -> Language:
        """Tag *text* as english, telugu, telugu-english or unknown.  Never raises."""
        if isinstance(text, bytes):
            text = text.decode("utf-8", errors="replace")
        try:
            response = await call_oracle(
                self.oracle,
                model=self.config.model,
                system_prompt=LANGUAGE_SYSTEM_PROMPT,
                user_prompt=LANGUAGE_PROMPT.format(text=text),
                temperature=self.config.language.temperature,
                max_tokens=self.config.language.max_tokens,
                timeout=self.config.oracle_timeout,
                purpose="language",
            )
        except OracleError as exc:
            logger.warning("Language detection failed: %s", exc)
            return Language.UNKNOWN
        except Exception:
            logger.exception("Language detection raised unexpectedly")
            return Language.UNKNOWN

        if not isinstance(response.text, str):
            logger.warning("Language detection returned non-text output")
            return Language.UNKNOWN
        language = parse_language(response.text)
        if language is Language.UNKNOWN:
            logger.debug("Unrecognised language tag %r", response.text[:40])
        return language
