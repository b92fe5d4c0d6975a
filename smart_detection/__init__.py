"""
Smart Detection - Main Package
Finds condition images and texts in screen frames for click automation.
"""

__version__ = "1.0.0"
__author__ = "Smart Detection Team"
__description__ = "Template matching and OCR detection engine for screen automation"

from .core.detector import Detector, DetectionOutcome
from .core.geometry import Rect
from .core.capabilities import TemplateMatcher, TextRecognizer
from .utils.exceptions import DetectionError

__all__ = [
    'Detector',
    'DetectionOutcome',
    'Rect',
    'TemplateMatcher',
    'TextRecognizer',
    'DetectionError'
]
