"""Screen OCR-translate pipeline."""
