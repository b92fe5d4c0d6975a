"""
Tesseract OCR engine behind the TextRecognizer capability
Lightweight OCR through pytesseract; the Tesseract executable must be installed
"""

import os
import platform
import shutil
from typing import Optional

import cv2
import numpy as np
import pytesseract
from PIL import Image

from ..core.capabilities import TextRecognizer
from ..utils.exceptions import OCRError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _threshold_otsu(gray: np.ndarray) -> np.ndarray:
    """Binarize a grayscale image with OTSU thresholding"""
    _, thresh = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return thresh


def _auto_detect_tesseract() -> Optional[str]:
    """Look for the Tesseract executable in PATH and in common install locations"""
    in_path = shutil.which('tesseract')
    if in_path:
        return in_path

    system = platform.system()
    if system == 'Windows':
        common_paths = [
            r"C:\Program Files\Tesseract-OCR\tesseract.exe",
            r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
            r"C:\Users\{}\AppData\Local\Programs\Tesseract-OCR\tesseract.exe".format(os.getenv('USERNAME', '')),
        ]
    elif system == 'Darwin':  # macOS
        common_paths = [
            '/usr/local/bin/tesseract',
            '/opt/homebrew/bin/tesseract',
        ]
    else:  # Linux
        common_paths = [
            '/usr/bin/tesseract',
            '/usr/local/bin/tesseract',
        ]

    for path in common_paths:
        if os.path.exists(path):
            return path
    return None


class TesseractTextRecognizer(TextRecognizer):
    """
    Tesseract-based text recognizer

    Images are handed over as RGB PIL images; with ``preprocess`` enabled they
    are binarized with OTSU thresholding first.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None,
                 preprocess: bool = False, tesseract_config: str = ''):
        """
        Args:
            tesseract_cmd: Path to tesseract executable (auto-detected if None)
            preprocess: Whether to apply OTSU thresholding before extraction
            tesseract_config: Extra command line options (e.g. '--psm 6')
        """
        self.tesseract_cmd = tesseract_cmd
        self.preprocess = preprocess
        self.tesseract_config = tesseract_config
        self.lang: Optional[str] = None
        self._image: Optional[Image.Image] = None

    @property
    def is_initialized(self) -> bool:
        return self.lang is not None

    def init(self, language: str) -> None:
        """
        Point pytesseract at the executable and verify it runs

        Raises:
            OCRError: Tesseract is missing or not working
        """
        cmd = self.tesseract_cmd or _auto_detect_tesseract()
        if cmd is None:
            raise OCRError("Tesseract-OCR executable not found. Please install Tesseract-OCR or set ocr.tesseract_cmd")
        pytesseract.pytesseract.tesseract_cmd = cmd

        try:
            version = pytesseract.get_tesseract_version()
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise OCRError(f"Tesseract not properly configured: {e}") from e

        self.lang = language
        logger.info(f"Tesseract OCR initialized: {version} at {cmd}, language={language}")

    def set_image(self, pixels: np.ndarray) -> None:
        if not self.is_initialized:
            raise OCRError("OCR engine not initialized")
        if pixels is None or pixels.size == 0:
            raise OCRError("Cannot run OCR on an empty image")

        if self.preprocess:
            gray = cv2.cvtColor(pixels, cv2.COLOR_BGR2GRAY) if pixels.ndim == 3 else pixels
            self._image = Image.fromarray(_threshold_otsu(gray))
        elif pixels.ndim == 3:
            self._image = Image.fromarray(cv2.cvtColor(pixels, cv2.COLOR_BGR2RGB))
        else:
            self._image = Image.fromarray(pixels)

    def extract_text(self) -> str:
        if not self.is_initialized:
            raise OCRError("OCR engine not initialized")
        if self._image is None:
            raise OCRError("No image set for OCR")

        try:
            return pytesseract.image_to_string(self._image, lang=self.lang, config=self.tesseract_config)
        except pytesseract.TesseractError as e:
            raise OCRError(f"Tesseract extraction failed: {e}") from e

    def release(self) -> None:
        self._image = None
        self.lang = None
        logger.debug("Tesseract OCR released")
