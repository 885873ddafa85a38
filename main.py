#!/usr/bin/env python3
"""
ScreenTrans - screen OCR translation
Captures the screen, detects text and prints the translated blocks with their
screen positions, once or continuously in live mode.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from PyQt6.QtGui import QGuiApplication
from screentrans.export import EXPORT_FORMATS, export_result
from screentrans.logging_config import setup_logger
from screentrans.models import CaptureRegion
from screentrans.pipeline import ScreenTranslatePipeline
from screentrans.screen_capture import QtScreenCapture
from screentrans.settings import load_model_name, load_session_options, open_settings, save_session_options
from screentrans.ocr_providers import default_ocr_providers
from screentrans.translate_providers import default_translate_providers

logger = setup_logger()

def parse_region(value: str) -> CaptureRegion:
    try:
        x, y, width, height = (int(part) for part in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError("region must be x,y,width,height")
    return CaptureRegion(x=x, y=y, width=width, height=height)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate text on screen")
    parser.add_argument("--source", help="source language (default from settings, 'auto')")
    parser.add_argument("--target", help="target language (default from settings, 'en')")
    parser.add_argument("--live", action="store_true", help="repeat on an interval until interrupted")
    parser.add_argument("--interval", type=int, help="live interval in ms (minimum 1000)")
    parser.add_argument("--region", type=parse_region, help="capture only x,y,width,height")
    parser.add_argument("--export", choices=EXPORT_FORMATS, help="write each result to --export-dir")
    parser.add_argument("--export-dir", default=".", help="directory for exported results")
    parser.add_argument("--save", action="store_true", help="store the effective options as defaults")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser

def resolve_options(args, settings):
    options = load_session_options(settings)
    overrides = {}
    if args.source:
        overrides["source_language"] = args.source
    if args.target:
        overrides["target_language"] = args.target
    if args.live:
        overrides["live_mode"] = True
    if args.interval:
        overrides["live_interval_ms"] = args.interval
    if args.region:
        overrides["select_region"] = True
        overrides["region"] = args.region
    return replace(options, **overrides)

def on_result(result, args):
    for block in result.blocks:
        box = block.screen_bbox
        print(f"[{box.x},{box.y} {box.w}x{box.h}] {block.original} -> {block.translated}")
    if args.export:
        path = export_result(result, args.export, args.export_dir)
        logger.info(f"Exported result to {path}")

async def run(pipeline: ScreenTranslatePipeline, options) -> int:
    await pipeline.start(options)
    if options.live_mode:
        # Live passes run from the pipeline's timer until interrupted
        try:
            await asyncio.Event().wait()
        finally:
            pipeline.stop()
    else:
        pipeline.stop()
    return 1 if pipeline.get_last_result() is None else 0

def main():
    """Main application entry point"""
    args = build_parser().parse_args()
    if args.debug:
        setup_logger(level=logging.DEBUG)

    # Screen grabbing needs a GUI application object
    app = QGuiApplication(sys.argv)

    settings = open_settings()
    options = resolve_options(args, settings)
    if args.save:
        save_session_options(settings, options)

    pipeline = ScreenTranslatePipeline(
        QtScreenCapture(),
        ocr_providers=default_ocr_providers(),
        translate_providers=default_translate_providers(load_model_name(settings)),
    )
    pipeline.result_ready.connect(lambda result: on_result(result, args))
    pipeline.error_occurred.connect(lambda payload: logger.error(payload["message"]))

    try:
        code = asyncio.run(run(pipeline, options))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        code = 0
    sys.exit(code)

if __name__ == "__main__":
    main()
