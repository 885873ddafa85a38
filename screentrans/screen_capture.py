import asyncio
import logging
import os
import subprocess
import tempfile
import time
from typing import Optional
from PyQt6.QtGui import QImage, QGuiApplication
from PyQt6.QtCore import QBuffer, QIODevice, QRect
from .models import CaptureMode, CaptureRegion, CaptureRequest, CaptureResult

logger = logging.getLogger(__name__)

class ScreenCapture:
    """Grab the screen using multiple backends for Wayland/X11 compatibility"""

    @staticmethod
    def get_virtual_desktop_geometry() -> QRect:
        """Get the geometry of the entire virtual desktop (all screens combined)"""
        total_geo = QRect()
        for screen in QGuiApplication.screens():
            total_geo = total_geo.united(screen.geometry())
        return total_geo

    @staticmethod
    def capture_with_tools() -> Optional[bytes]:
        """Capture entire screen with an external Wayland tool.

        Blocks on subprocesses, so callers on the event loop run it in a thread.
        Returns None when no tool applies or all of them fail.
        """
        is_wayland = os.environ.get("XDG_SESSION_TYPE") == "wayland"
        desktop = os.environ.get("XDG_CURRENT_DESKTOP", "").lower()

        if is_wayland:
            logger.debug(f"Wayland detected, desktop: {desktop}")
            if "kde" in desktop:
                data = ScreenCapture._capture_with_file_tool(["spectacle", "-b", "-n", "-f", "-o"])
                if data: return data

            if "gnome" in desktop:
                data = ScreenCapture._capture_with_file_tool(["gnome-screenshot", "-f"])
                if data: return data

            data = ScreenCapture._capture_grim()
            if data: return data
        return None

    @staticmethod
    def capture_with_qt() -> Optional[bytes]:
        # Works on X11, usually returns black on Wayland. Must run on the GUI thread.
        logger.debug("Falling back to PyQt backend...")
        return ScreenCapture._capture_pyqt()

    @staticmethod
    def _capture_pyqt() -> Optional[bytes]:
        screen = QGuiApplication.primaryScreen()
        if not screen:
            return None
        pixmap = screen.grabWindow(0)
        if pixmap.isNull():
            return None

        buffer = QBuffer()
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        pixmap.save(buffer, "PNG")
        data = bytes(buffer.buffer())

        if ScreenCapture._is_image_empty(data):
            logger.debug("PyQt capture returned empty/black image")
            return None
        return data

    @staticmethod
    def _capture_with_file_tool(command) -> Optional[bytes]:
        """Run a screenshot tool that writes to the path appended to `command`"""
        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as tmp:
            tmp_path = tmp.name
        try:
            result = subprocess.run(command + [tmp_path], capture_output=True, timeout=5)
            if result.returncode == 0 and os.path.getsize(tmp_path) > 0:
                with open(tmp_path, "rb") as f:
                    data = f.read()
                if not ScreenCapture._is_image_empty(data):
                    logger.debug(f"Captured screen via {command[0]}")
                    return data
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"{command[0]} capture error: {e}")
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
        return None

    @staticmethod
    def _capture_grim() -> Optional[bytes]:
        """Capture screen using grim (Generic Wayland)"""
        try:
            result = subprocess.run(["grim", "-"], capture_output=True, timeout=5)
            if result.returncode == 0:
                logger.debug("Captured screen via grim")
                return result.stdout
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"grim capture error: {e}")
        return None

    @staticmethod
    def _is_image_empty(data: bytes) -> bool:
        """Check if image is a single flat color (often happens on failed Wayland captures)"""
        if not data: return True
        img = QImage.fromData(data)
        if img.isNull(): return True

        w, h = img.width(), img.height()
        if w < 2 or h < 2: return True

        points = [
            img.pixelColor(0, 0),
            img.pixelColor(w-1, 0),
            img.pixelColor(0, h-1),
            img.pixelColor(w-1, h-1),
            img.pixelColor(w//2, h//2)
        ]
        first = points[0]
        return all(p == first for p in points)

class QtScreenCapture:
    """Capture collaborator for the pipeline: grabs the screen and writes a PNG file.

    Area requests crop the grab to ``request.region`` (screen coordinates). The
    previous capture file is removed when a new one is written.
    """

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = output_dir or tempfile.mkdtemp(prefix="screentrans-")
        self._last_path: Optional[str] = None

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        if request.mode == CaptureMode.AREA and request.region is None:
            return CaptureResult(success=False, error="No capture region selected")

        data = await asyncio.to_thread(ScreenCapture.capture_with_tools)
        if not data:
            data = ScreenCapture.capture_with_qt()
        if not data:
            return CaptureResult(success=False, error="Screen capture returned no image")

        image = QImage.fromData(data)
        if image.isNull():
            return CaptureResult(success=False, error="Captured image could not be decoded")

        region = None
        if request.mode == CaptureMode.AREA:
            region = request.region
            # The grab covers the virtual desktop, whose origin may not be 0,0
            origin = ScreenCapture.get_virtual_desktop_geometry().topLeft()
            rect = QRect(region.x - origin.x(), region.y - origin.y(), region.width, region.height)
            rect = rect.intersected(image.rect())
            if rect.isEmpty():
                return CaptureResult(
                    success=False,
                    error=f"Region {region.x},{region.y} {region.width}x{region.height} is outside screen bounds"
                )
            image = image.copy(rect)
            region = CaptureRegion(x=rect.x() + origin.x(), y=rect.y() + origin.y(),
                                   width=rect.width(), height=rect.height())

        path = os.path.join(self.output_dir, f"capture-{int(time.time() * 1000)}.png")
        if not image.save(path, "PNG"):
            return CaptureResult(success=False, error=f"Failed to write screenshot to {path}")

        if self._last_path and self._last_path != path and os.path.exists(self._last_path):
            os.unlink(self._last_path)
        self._last_path = path

        return CaptureResult(success=True, path=path, width=image.width(), height=image.height(), region=region)
