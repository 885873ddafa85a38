import logging
from typing import List, Optional, Protocol, Sequence, Type
from .errors import NoOcrProviderAvailable, NoTranslateProviderAvailable, ScreenTranslateError
from .models import OCRBlock

logger = logging.getLogger(__name__)

class OCRProvider(Protocol):
    """Black-box OCR backend"""
    name: str

    async def is_available(self) -> bool: ...

    async def recognize(self, image_path: str, lang: str,
                        min_confidence: Optional[float] = None,
                        min_text_length: Optional[int] = None) -> List[OCRBlock]: ...

class TranslateProvider(Protocol):
    """Black-box translation backend. ``translate_batch`` is optional."""
    name: str

    async def is_available(self) -> bool: ...

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str: ...

def supports_batch(provider) -> bool:
    return callable(getattr(provider, "translate_batch", None))

class ProviderResolver:
    """Probe an ordered list of candidates once and keep the first available one."""

    kind = "provider"
    unavailable_error: Type[ScreenTranslateError] = ScreenTranslateError
    unavailable_message = "No provider available"

    def __init__(self, candidates: Sequence):
        self.candidates = list(candidates)
        self._resolved = None

    @property
    def resolved(self):
        return self._resolved

    async def resolve(self):
        if self._resolved is not None:
            return self._resolved

        for candidate in self.candidates:
            name = getattr(candidate, "name", type(candidate).__name__)
            if await candidate.is_available():
                logger.info("Using %s %s", self.kind, name)
                self._resolved = candidate
                return candidate
            logger.debug("%s %s not available", self.kind, name)

        raise self.unavailable_error(self.unavailable_message)

class OcrProviderResolver(ProviderResolver):
    kind = "OCR provider"
    unavailable_error = NoOcrProviderAvailable
    unavailable_message = (
        "Tesseract not found. Install: tesseract-ocr tesseract-ocr-eng tesseract-ocr-por "
        "(or pip install easyocr)"
    )

    async def recognize(self, image_path: str, lang: str,
                        min_confidence: Optional[float] = None,
                        min_text_length: Optional[int] = None) -> List[OCRBlock]:
        provider = await self.resolve()
        return await provider.recognize(image_path, lang, min_confidence, min_text_length)

class TranslateProviderResolver(ProviderResolver):
    kind = "translate provider"
    unavailable_error = NoTranslateProviderAvailable
    unavailable_message = (
        "No offline translator found. Install Argos Translate (pip install argostranslate) "
        "and its language packages, or install torch and transformers for the local model backend."
    )

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        provider = await self.resolve()
        return await provider.translate(text, source_lang, target_lang)

    async def translate_batch(self, texts: List[str], source_lang: str, target_lang: str) -> List[str]:
        provider = await self.resolve()
        if supports_batch(provider):
            return await provider.translate_batch(texts, source_lang, target_lang)
        results = []
        for text in texts:
            results.append(await provider.translate(text, source_lang, target_lang))
        return results
