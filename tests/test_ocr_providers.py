import asyncio
import subprocess
import pytest
from screentrans import ocr_providers
from screentrans.errors import OcrProviderError
from screentrans.models import BoundingBox
from screentrans.ocr_providers import (
    EasyOCRProvider, TesseractCliProvider, filter_blocks, group_rows_by_line, parse_tsv
)
from conftest import make_block

HEADER = "level\tpage_num\tblock_num\tpar_num\tline_num\tword_num\tleft\ttop\twidth\theight\tconf\ttext"

SAMPLE_TSV = "\n".join([
    HEADER,
    "1\t1\t0\t0\t0\t0\t0\t0\t800\t600\t-1\t",
    "4\t1\t1\t1\t1\t0\t10\t20\t120\t14\t-1\t",
    "5\t1\t1\t1\t1\t2\t60\t21\t70\t12\t80\tWorld",
    "5\t1\t1\t1\t1\t1\t10\t20\t45\t14\t90\tHello",
    "5\t1\t1\t1\t2\t1\t10\t40\t30\t10\t20\tab",
    "5\t1\t1\t1\t3\t1\t10\t60\t30\t10\t95\t ",
    "5\t1\t2\t1\t1\t1\t200\t300\t8\t10\t96\tx",
    "broken\tline",
    "",
])


def test_parse_tsv_skips_header_and_short_rows():
    rows = parse_tsv(SAMPLE_TSV)

    assert len(rows) == 7
    assert rows[0].level == 1
    assert rows[3].text == "Hello"
    assert rows[3].conf == 90.0


def test_group_rows_by_line_merges_words_left_to_right():
    blocks = group_rows_by_line(parse_tsv(SAMPLE_TSV))

    assert [b.text for b in blocks] == ["Hello World", "ab", "x"]
    first = blocks[0]
    assert first.bbox == BoundingBox(x=10, y=20, w=120, h=14)
    assert first.confidence == pytest.approx(85.0)


def test_filter_blocks_defaults():
    blocks = [
        make_block("Hello", confidence=90),
        make_block("x", confidence=99),
        make_block("low", confidence=10),
        make_block("nope", confidence=None),
    ]

    kept = filter_blocks(blocks)

    assert [b.text for b in kept] == ["Hello", "nope"]


def test_filter_blocks_custom_thresholds():
    blocks = [make_block("Hello", confidence=60), make_block("abc", confidence=90)]

    assert [b.text for b in filter_blocks(blocks, min_confidence=70, min_text_length=1)] == ["abc"]
    assert [b.text for b in filter_blocks(blocks, min_confidence=0, min_text_length=4)] == ["Hello"]


@pytest.mark.parametrize("lang,expected", [
    ("auto", "eng+por"),
    ("pt-BR", "por"),
    ("en", "eng"),
    ("es", "spa"),
    ("JPN", "jpn"),
])
def test_tesseract_language_normalization(lang, expected):
    assert TesseractCliProvider.normalize_lang(lang) == expected


def test_tesseract_recognize_runs_cli(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append(args)
        return subprocess.CompletedProcess(args, 0, stdout=SAMPLE_TSV, stderr="")

    monkeypatch.setattr(ocr_providers.subprocess, "run", fake_run)

    blocks = asyncio.run(TesseractCliProvider().recognize("/tmp/shot.png", "pt"))

    assert calls == [["tesseract", "/tmp/shot.png", "stdout", "-l", "por", "--psm", "6", "tsv"]]
    # "ab" is below the default confidence and "x" is too short
    assert [b.text for b in blocks] == ["Hello World"]


def test_tesseract_failure_raises(monkeypatch):
    def fake_run(args, **kwargs):
        return subprocess.CompletedProcess(args, 1, stdout="", stderr="Failed loading language 'xyz'")

    monkeypatch.setattr(ocr_providers.subprocess, "run", fake_run)

    with pytest.raises(OcrProviderError, match="Failed loading language"):
        asyncio.run(TesseractCliProvider().recognize("/tmp/shot.png", "xyz"))


def test_tesseract_unavailable_when_binary_missing(monkeypatch):
    def fake_run(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(ocr_providers.subprocess, "run", fake_run)

    assert asyncio.run(TesseractCliProvider().is_available()) is False


def test_tesseract_available_when_version_succeeds(monkeypatch):
    def fake_run(args, **kwargs):
        return subprocess.CompletedProcess(args, 0, stdout=b"tesseract 5.3.0", stderr=b"")

    monkeypatch.setattr(ocr_providers.subprocess, "run", fake_run)

    assert asyncio.run(TesseractCliProvider().is_available()) is True


class FakeReader:
    def __init__(self, results):
        self.results = results
        self.paths = []

    def readtext(self, image_path):
        self.paths.append(image_path)
        return self.results


def test_easyocr_converts_quads_and_scales_confidence():
    provider = EasyOCRProvider()
    reader = FakeReader([
        ([[10, 20], [50, 20], [50, 32], [10, 32]], "Hello", 0.9),
        ([[0, 0], [5, 0], [5, 5], [0, 5]], "x", 0.99),
        ([[0, 40], [40, 40], [40, 50], [0, 50]], "Blurry", 0.1),
    ])
    provider.reader = reader
    provider._current_langs = provider.reader_langs("en")

    blocks = asyncio.run(provider.recognize("/tmp/shot.png", "en"))

    assert reader.paths == ["/tmp/shot.png"]
    assert len(blocks) == 1
    assert blocks[0].text == "Hello"
    assert blocks[0].bbox == BoundingBox(x=10.0, y=20.0, w=40.0, h=12.0)
    assert blocks[0].confidence == pytest.approx(90.0)


def test_easyocr_reader_languages():
    provider = EasyOCRProvider()

    assert provider.reader_langs("ja") == ["ja", "en"]
    assert provider.reader_langs("pt-BR") == ["pt", "en"]
    assert provider.reader_langs("auto") == ["en", "pt"]
    assert provider.reader_langs("xx") == ["en"]


def test_easyocr_availability_follows_import(monkeypatch):
    monkeypatch.setattr(ocr_providers, "easyocr", None)

    assert asyncio.run(EasyOCRProvider().is_available()) is False
