import asyncio
import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from .errors import OcrProviderError
from .models import BoundingBox, OCRBlock

logger = logging.getLogger(__name__)

try:
    import easyocr
except ImportError:
    easyocr = None

DEFAULT_MIN_CONFIDENCE = 35
DEFAULT_MIN_TEXT_LENGTH = 2
TESSERACT_DEFAULT_LANG = "eng+por"
TESSERACT_TIMEOUT = 30

def filter_blocks(blocks: List[OCRBlock], min_confidence: Optional[float] = None,
                  min_text_length: Optional[int] = None) -> List[OCRBlock]:
    """Drop blocks that are too short or below the confidence threshold"""
    if min_confidence is None:
        min_confidence = DEFAULT_MIN_CONFIDENCE
    if min_text_length is None:
        min_text_length = DEFAULT_MIN_TEXT_LENGTH

    kept = []
    for block in blocks:
        if len(block.text.strip()) < min_text_length:
            continue
        if block.confidence is not None and block.confidence < min_confidence:
            continue
        kept.append(block)
    return kept

@dataclass
class TsvRow:
    level: int
    page: int
    block: int
    par: int
    line: int
    word: int
    left: int
    top: int
    width: int
    height: int
    conf: float
    text: str

def _to_number(value: str, cast=int, default=0):
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default

def parse_tsv(tsv: str) -> List[TsvRow]:
    """Parse `tesseract ... tsv` output, skipping the header row"""
    lines = [line for line in tsv.split("\n") if line]
    rows = []
    for line in lines[1:]:
        parts = line.split("\t")
        if len(parts) < 12:
            continue
        rows.append(TsvRow(
            level=_to_number(parts[0]),
            page=_to_number(parts[1]),
            block=_to_number(parts[2]),
            par=_to_number(parts[3]),
            line=_to_number(parts[4]),
            word=_to_number(parts[5]),
            left=_to_number(parts[6]),
            top=_to_number(parts[7]),
            width=_to_number(parts[8]),
            height=_to_number(parts[9]),
            conf=_to_number(parts[10], float, -1.0),
            text=parts[11],
        ))
    return rows

def group_rows_by_line(rows: List[TsvRow]) -> List[OCRBlock]:
    """Merge word rows (level 5) sharing page/block/paragraph/line into one block"""
    lines: Dict[Tuple[int, int, int, int], List[TsvRow]] = {}
    for row in rows:
        if row.level != 5 or not row.text.strip():
            continue
        key = (row.page, row.block, row.par, row.line)
        lines.setdefault(key, []).append(row)

    blocks = []
    for words in lines.values():
        words = sorted(words, key=lambda w: w.left)
        text = " ".join(w.text for w in words).strip()
        if not text:
            continue
        left = min(w.left for w in words)
        top = min(w.top for w in words)
        right = max(w.left + w.width for w in words)
        bottom = max(w.top + w.height for w in words)
        confidence = sum(w.conf for w in words) / len(words)
        blocks.append(OCRBlock(
            text=text,
            bbox=BoundingBox(x=left, y=top, w=right - left, h=bottom - top),
            confidence=confidence,
        ))
    return blocks

class TesseractCliProvider:
    """OCR through the `tesseract` command line tool"""

    name = "tesseract-cli"

    def __init__(self, executable: str = "tesseract", psm: int = 6):
        self.executable = executable
        self.psm = psm

    async def is_available(self) -> bool:
        try:
            result = await asyncio.to_thread(
                subprocess.run, [self.executable, "--version"],
                capture_output=True, timeout=5
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"tesseract probe failed: {e}")
            return False
        return result.returncode == 0

    @staticmethod
    def normalize_lang(lang: str) -> str:
        normalized = (lang or "auto").strip().lower()
        if normalized == "auto":
            return TESSERACT_DEFAULT_LANG
        if normalized.startswith("pt"):
            return "por"
        if normalized.startswith("en"):
            return "eng"
        if normalized.startswith("es"):
            return "spa"
        return normalized

    async def recognize(self, image_path: str, lang: str,
                        min_confidence: Optional[float] = None,
                        min_text_length: Optional[int] = None) -> List[OCRBlock]:
        tess_lang = self.normalize_lang(lang)
        args = [self.executable, image_path, "stdout", "-l", tess_lang, "--psm", str(self.psm), "tsv"]
        start_time = time.time()
        result = await asyncio.to_thread(
            subprocess.run, args, capture_output=True, text=True, timeout=TESSERACT_TIMEOUT
        )
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "unknown error").strip()
            raise OcrProviderError(f"tesseract failed: {detail}")

        blocks = group_rows_by_line(parse_tsv(result.stdout))
        kept = filter_blocks(blocks, min_confidence, min_text_length)
        logger.info(f"Tesseract detected {len(blocks)} lines, {len(kept)} kept after filtering "
                    f"in {time.time() - start_time:.2f}s")
        return kept

class EasyOCRProvider:
    """In-process OCR with EasyOCR"""

    name = "easyocr"

    # Source language -> EasyOCR reader languages
    lang_map = {
        "ja": ["ja", "en"],
        "ko": ["ko", "en"],
        "zh": ["ch_sim", "en"],
        "es": ["es", "en"],
        "fr": ["fr", "en"],
        "pt": ["pt", "en"],
        "en": ["en"],
        "auto": ["en", "pt"],
    }

    def __init__(self, gpu: bool = False):
        self.gpu = gpu
        self.reader = None
        self._current_langs: List[str] = []

    async def is_available(self) -> bool:
        return easyocr is not None

    def reader_langs(self, lang: str) -> List[str]:
        normalized = (lang or "auto").strip().lower()
        for prefix, langs in self.lang_map.items():
            if normalized.startswith(prefix):
                return langs
        return ["en"]

    def _ensure_reader(self, langs: List[str]):
        if self.reader is not None and self._current_langs == langs:
            return self.reader
        logger.info(f"Initializing EasyOCR with {langs}...")
        start_time = time.time()
        try:
            self.reader = easyocr.Reader(langs, gpu=self.gpu)
        except Exception as e:
            self.reader = None
            self._current_langs = []
            raise OcrProviderError(f"EasyOCR init failed: {e}") from e
        self._current_langs = langs
        logger.info(f"EasyOCR initialized in {time.time() - start_time:.2f}s")
        return self.reader

    def _read(self, image_path: str, langs: List[str]) -> List[OCRBlock]:
        reader = self._ensure_reader(langs)
        blocks = []
        for (quad, text, prob) in reader.readtext(image_path):
            # quad is [[x0, y0], [x1, y1], [x2, y2], [x3, y3]]
            x = min(p[0] for p in quad)
            y = min(p[1] for p in quad)
            w = max(p[0] for p in quad) - x
            h = max(p[1] for p in quad) - y
            blocks.append(OCRBlock(
                text=text,
                bbox=BoundingBox(x=float(x), y=float(y), w=float(w), h=float(h)),
                confidence=float(prob) * 100.0,
            ))
        return blocks

    async def recognize(self, image_path: str, lang: str,
                        min_confidence: Optional[float] = None,
                        min_text_length: Optional[int] = None) -> List[OCRBlock]:
        start_time = time.time()
        blocks = await asyncio.to_thread(self._read, image_path, self.reader_langs(lang))
        kept = filter_blocks(blocks, min_confidence, min_text_length)
        logger.info(f"EasyOCR detected {len(blocks)} regions, {len(kept)} kept after filtering "
                    f"in {time.time() - start_time:.2f}s")
        return kept

def default_ocr_providers() -> list:
    return [TesseractCliProvider(), EasyOCRProvider()]
