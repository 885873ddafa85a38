from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

class Stage(Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    OCR = "ocr"
    TRANSLATING = "translating"
    RENDERING = "rendering"
    ERROR = "error"

class CaptureMode(Enum):
    FULL_SCREEN = "fullscreen"
    AREA = "area"

@dataclass
class BoundingBox:
    """Axis-aligned box, image-local or screen-absolute depending on context"""
    x: float
    y: float
    w: float
    h: float

@dataclass
class CaptureRegion:
    """Screen-absolute rectangle a partial capture was taken from"""
    x: int
    y: int
    width: int
    height: int

@dataclass(frozen=True)
class SessionOptions:
    """Options for one translation session; replaced only by starting again"""
    source_language: str = "auto"
    target_language: str = "en"
    live_mode: bool = False
    live_interval_ms: Optional[int] = 4000
    select_region: bool = False
    region: Optional[CaptureRegion] = None
    min_confidence: Optional[float] = None
    min_text_length: Optional[int] = None
    # Rendering hints for the overlay, passed through untouched
    debug_boxes: bool = False
    show_tooltips: bool = False

@dataclass
class Timing:
    started_at: float
    elapsed_ms: Optional[int] = None

@dataclass
class PipelineStatus:
    stage: Stage = Stage.IDLE
    message: str = ""
    timing: Optional[Timing] = None
    block_count: int = 0

@dataclass
class OCRBlock:
    """One detected text region, confidence in 0..100"""
    text: str
    bbox: BoundingBox
    confidence: Optional[float] = None

@dataclass
class TranslationBlock:
    original: str
    translated: str
    bbox: BoundingBox
    screen_bbox: BoundingBox
    confidence: Optional[float] = None

@dataclass
class TranslationResult:
    """Output of one completed pass"""
    screenshot_path: str
    width: int
    height: int
    capture_region: Optional[CaptureRegion] = None
    blocks: List[TranslationBlock] = field(default_factory=list)

@dataclass
class CaptureRequest:
    mode: CaptureMode = CaptureMode.FULL_SCREEN
    region: Optional[CaptureRegion] = None

@dataclass
class CaptureResult:
    success: bool
    path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    region: Optional[CaptureRegion] = None
    error: Optional[str] = None
