import json
import logging
from typing import Optional
from PyQt6.QtCore import QSettings
from .models import CaptureRegion, SessionOptions

logger = logging.getLogger(__name__)

ORGANIZATION = "ScreenTrans"
APPLICATION = "ScreenTranslate"
DEFAULT_MODEL_NAME = "facebook/nllb-200-distilled-600M"

def open_settings() -> QSettings:
    return QSettings(ORGANIZATION, APPLICATION)

def _bool(settings: QSettings, key: str, default: bool) -> bool:
    return str(settings.value(key, "true" if default else "false")).lower() == "true"

def _optional_number(settings: QSettings, key: str, cast):
    value = settings.value(key, "")
    if value in (None, ""):
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid setting {key}={value!r}")
        return None

def _load_region(settings: QSettings) -> Optional[CaptureRegion]:
    region_json = settings.value("region", "")
    if not region_json:
        return None
    try:
        data = json.loads(region_json)
        return CaptureRegion(x=int(data["x"]), y=int(data["y"]),
                             width=int(data["width"]), height=int(data["height"]))
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Error loading capture region: {e}")
        return None

def load_session_options(settings: QSettings) -> SessionOptions:
    """Build session options from stored settings"""
    return SessionOptions(
        source_language=str(settings.value("source_lang", "auto")),
        target_language=str(settings.value("target_lang", "en")),
        live_mode=_bool(settings, "live_mode", False),
        live_interval_ms=_optional_number(settings, "interval", int) or 4000,
        select_region=_bool(settings, "select_region", False),
        region=_load_region(settings),
        min_confidence=_optional_number(settings, "min_confidence", float),
        min_text_length=_optional_number(settings, "min_text_length", int),
        debug_boxes=_bool(settings, "debug_boxes", False),
        show_tooltips=_bool(settings, "show_tooltips", False),
    )

def save_session_options(settings: QSettings, options: SessionOptions):
    settings.setValue("source_lang", options.source_language)
    settings.setValue("target_lang", options.target_language)
    settings.setValue("live_mode", "true" if options.live_mode else "false")
    settings.setValue("interval", options.live_interval_ms or 4000)
    settings.setValue("select_region", "true" if options.select_region else "false")
    if options.region is not None:
        settings.setValue("region", json.dumps({
            "x": options.region.x, "y": options.region.y,
            "width": options.region.width, "height": options.region.height,
        }))
    else:
        settings.remove("region")
    settings.setValue("min_confidence", "" if options.min_confidence is None else options.min_confidence)
    settings.setValue("min_text_length", "" if options.min_text_length is None else options.min_text_length)
    settings.setValue("debug_boxes", "true" if options.debug_boxes else "false")
    settings.setValue("show_tooltips", "true" if options.show_tooltips else "false")
    settings.sync()

def load_model_name(settings: QSettings) -> str:
    return str(settings.value("model_name", DEFAULT_MODEL_NAME))
