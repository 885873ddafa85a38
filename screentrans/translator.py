import logging
import time
from typing import List, Optional
from .cache import TranslationCache
from .coords import to_screen_bbox
from .models import CaptureRegion, OCRBlock, TranslationBlock
from .providers import TranslateProviderResolver

logger = logging.getLogger(__name__)

class BatchTranslator:
    """Translate a frame's OCR blocks, calling the provider only for uncached text."""

    def __init__(self, resolver: TranslateProviderResolver, cache: TranslationCache):
        self.resolver = resolver
        self.cache = cache

    @staticmethod
    def unique_texts(blocks: List[OCRBlock]) -> List[str]:
        """Distinct trimmed non-empty texts in order of first appearance"""
        texts = (block.text.strip() for block in blocks)
        return list(dict.fromkeys(text for text in texts if text))

    async def _fill_cache(self, texts: List[str], source_lang: str, target_lang: str):
        start_time = time.time()
        translations = await self.resolver.translate_batch(texts, source_lang, target_lang)
        provider_name = self.resolver.resolved.name
        if len(translations) != len(texts):
            logger.warning("Provider %s returned %d translation(s) for %d text(s)",
                           provider_name, len(translations), len(texts))
        for text, translated in zip(texts, translations):
            self.cache.set(source_lang, target_lang, text, translated)

        logger.info(f"Translated {len(texts)} unique text(s) with {provider_name} "
                    f"in {time.time() - start_time:.2f}s")

    async def translate_blocks(self, blocks: List[OCRBlock], source_lang: str, target_lang: str,
                               capture_region: Optional[CaptureRegion] = None) -> List[TranslationBlock]:
        if not blocks:
            return []

        texts = self.unique_texts(blocks)
        uncached = [text for text in texts if not self.cache.get(source_lang, target_lang, text)]
        logger.debug("Blocks: %d, unique texts: %d, cache misses: %d",
                     len(blocks), len(texts), len(uncached))

        if uncached:
            await self._fill_cache(uncached, source_lang, target_lang)

        results = []
        for block in blocks:
            original = block.text.strip()
            translated = self.cache.get(source_lang, target_lang, original) if original else None
            if not translated:
                # Show the source text rather than an empty box
                if original:
                    logger.debug(f"No translation for {original[:30]!r}; showing original")
                translated = original
            results.append(TranslationBlock(
                original=original,
                translated=translated,
                bbox=block.bbox,
                screen_bbox=to_screen_bbox(block.bbox, capture_region),
                confidence=block.confidence,
            ))
        return results
