import asyncio
import logging
import time
from dataclasses import replace
from typing import Optional, Protocol
from PyQt6.QtCore import QObject, pyqtSignal
from .cache import TranslationCache
from .errors import CaptureFailed
from .models import (
    CaptureMode, CaptureRequest, CaptureResult, PipelineStatus, SessionOptions, Stage,
    Timing, TranslationResult
)
from .ocr_providers import default_ocr_providers
from .providers import OcrProviderResolver, TranslateProviderResolver
from .translate_providers import default_translate_providers
from .translator import BatchTranslator

logger = logging.getLogger(__name__)

DEFAULT_LIVE_INTERVAL_MS = 4000
MIN_LIVE_INTERVAL_MS = 1000

class CaptureBackend(Protocol):
    async def capture(self, request: CaptureRequest) -> CaptureResult: ...

def apply_option_defaults(options: SessionOptions) -> SessionOptions:
    """Fill in the live interval default and enforce its minimum"""
    interval = options.live_interval_ms or DEFAULT_LIVE_INTERVAL_MS
    return replace(options, live_interval_ms=max(int(interval), MIN_LIVE_INTERVAL_MS))

class ScreenTranslatePipeline(QObject):
    """Capture -> OCR -> translate -> publish, once or on a live interval.

    All work happens on the asyncio loop that calls ``start``. At most one pass
    runs at a time: ``refresh`` and live ticks share the ``processing`` flag and
    skip instead of queueing while a pass is in flight.
    """

    status_changed = pyqtSignal(object)  # PipelineStatus
    result_ready = pyqtSignal(object)  # TranslationResult
    error_occurred = pyqtSignal(object)  # {"message": str}
    options_changed = pyqtSignal(object)  # SessionOptions

    def __init__(self, screen_capture: CaptureBackend, ocr_providers=None,
                 translate_providers=None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.screen_capture = screen_capture
        if ocr_providers is None:
            ocr_providers = default_ocr_providers()
        if translate_providers is None:
            translate_providers = default_translate_providers()
        self.cache = TranslationCache()
        self.ocr_resolver = OcrProviderResolver(ocr_providers)
        self.translate_resolver = TranslateProviderResolver(translate_providers)
        self.translator = BatchTranslator(self.translate_resolver, self.cache)

        self.running = False
        self.processing = False
        self._status = PipelineStatus()
        self._options: Optional[SessionOptions] = None
        self._last_result: Optional[TranslationResult] = None
        self._live_timer: Optional[asyncio.TimerHandle] = None
        self._live_task: Optional[asyncio.Task] = None
        # Bumped by start(); a pass started under an older value is stale
        self._generation = 0

    async def start(self, options: SessionOptions):
        self._options = apply_option_defaults(options)
        self.running = True
        self._generation += 1
        generation = self._generation
        # A pass left over from the previous session no longer holds the gate
        self.processing = False
        self._cancel_live_timer()
        self.cache.clear()
        logger.info("Starting session %s -> %s (live=%s, region=%s)",
                    self._options.source_language, self._options.target_language,
                    self._options.live_mode, self._options.select_region)
        self.options_changed.emit(self._options)
        await self._run_once()
        if self._options.live_mode and generation == self._generation:
            self._schedule_next()

    def stop(self):
        self.running = False
        self.processing = False
        self._cancel_live_timer()
        self._set_status(Stage.IDLE, "Stopped")

    async def refresh(self):
        if not self.running or self.processing:
            logger.debug("Refresh ignored (running=%s, processing=%s)", self.running, self.processing)
            return
        await self._run_once()

    def get_status(self) -> PipelineStatus:
        return self._status

    def get_last_result(self) -> Optional[TranslationResult]:
        return self._last_result

    def get_options(self) -> Optional[SessionOptions]:
        return self._options

    @property
    def is_live_scheduled(self) -> bool:
        return self._live_timer is not None and not self._live_timer.cancelled()

    def _cancel_live_timer(self):
        if self._live_timer is not None:
            self._live_timer.cancel()
            self._live_timer = None

    def _schedule_next(self):
        if not self.running or self._options is None or not self._options.live_mode:
            return
        self._cancel_live_timer()
        loop = asyncio.get_running_loop()
        self._live_timer = loop.call_later(self._options.live_interval_ms / 1000.0, self._on_live_timer)

    def _on_live_timer(self):
        self._live_timer = None
        self._live_task = asyncio.ensure_future(self._live_tick())

    async def _live_tick(self):
        if not self.running or self.processing:
            # Busy: skip this tick, try again one interval later
            self._schedule_next()
            return
        generation = self._generation
        await self._run_once()
        if generation == self._generation:
            self._schedule_next()

    def _set_status(self, stage: Stage, message: str, timing: Optional[Timing] = None, block_count: int = 0):
        self._status = PipelineStatus(stage=stage, message=message, timing=timing, block_count=block_count)
        logger.debug("Stage -> %s: %s", stage.value, message)
        self.status_changed.emit(self._status)

    async def _capture(self, options: SessionOptions) -> CaptureResult:
        if options.select_region:
            request = CaptureRequest(mode=CaptureMode.AREA, region=options.region)
        else:
            request = CaptureRequest(mode=CaptureMode.FULL_SCREEN)

        result = await self.screen_capture.capture(request)
        if not result.success or not result.path:
            raise CaptureFailed(result.error or "Failed to capture screenshot")
        return result

    async def _run_once(self):
        options = self._options
        if options is None or self.processing:
            return
        self.processing = True
        generation = self._generation
        started_at = time.time()
        clock_start = time.monotonic()

        def elapsed_ms() -> int:
            return int((time.monotonic() - clock_start) * 1000)

        def superseded() -> bool:
            if generation != self._generation:
                logger.debug(f"Dropping pass from superseded session {generation}")
                return True
            return False

        try:
            self._set_status(Stage.CAPTURING, "Capturing screen...", Timing(started_at))
            capture = await self._capture(options)
            if superseded():
                return

            self._set_status(Stage.OCR, "Detecting text...", Timing(started_at))
            ocr_blocks = await self.ocr_resolver.recognize(
                capture.path, options.source_language, options.min_confidence, options.min_text_length
            )
            if superseded():
                return

            self._set_status(Stage.TRANSLATING, f"Translating {len(ocr_blocks)} regions...",
                             Timing(started_at), len(ocr_blocks))
            blocks = await self.translator.translate_blocks(
                ocr_blocks, options.source_language, options.target_language, capture.region
            )
            if superseded():
                return

            self._set_status(Stage.RENDERING, "Rendering overlay...", Timing(started_at), len(blocks))
            self._last_result = TranslationResult(
                screenshot_path=capture.path,
                width=capture.width or 0,
                height=capture.height or 0,
                capture_region=capture.region,
                blocks=blocks,
            )
            self.result_ready.emit(self._last_result)

            elapsed = elapsed_ms()
            logger.info(f"Pass finished with {len(blocks)} block(s) in {elapsed}ms")
            self._set_status(Stage.IDLE, "Translation applied", Timing(started_at, elapsed), len(blocks))
        except Exception as e:
            if superseded():
                return
            logger.exception("Translation pipeline failed")
            message = str(e) or "Translation failed"
            self._set_status(Stage.ERROR, message, Timing(started_at, elapsed_ms()))
            self.error_occurred.emit({"message": message})
        finally:
            if generation == self._generation:
                self.processing = False
