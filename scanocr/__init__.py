"""
scanocr
=======

Offline OCR for photographed and scanned pages.

Main components:
- Quality-adaptive image preprocessing (resize, contrast, Otsu, median)
- Script-aware recognition on Tesseract with confidence-gated retry
- Page-sequential PDF text extraction with script detection
- Traineddata asset management
"""

__version__ = "1.0.0"
__author__ = "scanocr contributors"
