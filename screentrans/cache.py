import logging
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str, str]

class TranslationCache:
    """Translations keyed by (source language, target language, trimmed text).

    Entries never expire; the owning pipeline clears the whole cache when a
    new session starts.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, str] = {}

    @staticmethod
    def _make_key(source_lang: str, target_lang: str, text: str) -> CacheKey:
        return (source_lang, target_lang, text.strip())

    def get(self, source_lang: str, target_lang: str, text: str) -> Optional[str]:
        return self._entries.get(self._make_key(source_lang, target_lang, text))

    def set(self, source_lang: str, target_lang: str, text: str, translated: str):
        key = self._make_key(source_lang, target_lang, text)
        self._entries[key] = translated
        logger.debug("Translation cache stored %s -> %s text=%r (size=%d)",
                     source_lang, target_lang, key[2][:30], len(self._entries))

    def contains(self, source_lang: str, target_lang: str, text: str) -> bool:
        return self._make_key(source_lang, target_lang, text) in self._entries

    def clear(self):
        if self._entries:
            logger.debug("Translation cache cleared (%d item(s))", len(self._entries))
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
