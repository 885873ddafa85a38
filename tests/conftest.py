import asyncio
import pytest
from PyQt6.QtCore import QCoreApplication
from screentrans.models import BoundingBox, CaptureResult, OCRBlock


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeCapture:
    """Capture collaborator returning queued results, then a default success"""

    def __init__(self, results=None):
        self.requests = []
        self.results = list(results or [])
        self.gate = None

    async def capture(self, request):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.results:
            return self.results.pop(0)
        return CaptureResult(success=True, path="/tmp/shot.png", width=800, height=600,
                             region=request.region)


class FakeOCR:
    name = "fake-ocr"

    def __init__(self, blocks=None, available=True):
        self.blocks = list(blocks or [])
        self.available = available
        self.probes = 0
        self.calls = []

    async def is_available(self):
        self.probes += 1
        return self.available

    async def recognize(self, image_path, lang, min_confidence=None, min_text_length=None):
        self.calls.append((image_path, lang, min_confidence, min_text_length))
        return list(self.blocks)


class FakeSingleTranslator:
    """Translate provider without a batch operation"""

    name = "fake-single"

    def __init__(self, mapping=None, available=True):
        self.mapping = dict(mapping or {})
        self.available = available
        self.probes = 0
        self.calls = []

    async def is_available(self):
        self.probes += 1
        return self.available

    def lookup(self, text, target_lang):
        return self.mapping.get(text, f"{text} [{target_lang}]")

    async def translate(self, text, source_lang, target_lang):
        self.calls.append((text, source_lang, target_lang))
        await asyncio.sleep(0)
        return self.lookup(text, target_lang)


class FakeBatchTranslator(FakeSingleTranslator):
    name = "fake-batch"

    def __init__(self, mapping=None, available=True):
        super().__init__(mapping, available)
        self.batch_calls = []

    async def translate_batch(self, texts, source_lang, target_lang):
        self.batch_calls.append((list(texts), source_lang, target_lang))
        await asyncio.sleep(0)
        return [self.lookup(text, target_lang) for text in texts]


def make_block(text, x=0, y=0, w=40, h=10, confidence=90.0):
    return OCRBlock(text=text, bbox=BoundingBox(x=x, y=y, w=w, h=h), confidence=confidence)
