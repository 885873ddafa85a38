import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Union
from .models import TranslationResult

EXPORT_FORMATS = ("txt", "json")

def result_to_dict(result: TranslationResult) -> dict:
    return asdict(result)

def format_result_text(result: TranslationResult) -> str:
    """One `original -> translated` line per block"""
    return "\n".join(f"{block.original} -> {block.translated}" for block in result.blocks)

def export_result(result: TranslationResult, fmt: str, directory: Union[str, Path]) -> Path:
    """Write the result to `directory` and return the new file's path"""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    if fmt == "json":
        content = json.dumps(result_to_dict(result), ensure_ascii=False, indent=2)
    else:
        content = format_result_text(result)

    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"screentrans-translation-{timestamp}.{fmt}"
    output_path.write_text(content, encoding="utf-8")
    return output_path
