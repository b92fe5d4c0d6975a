"""Pytest configuration and shared fixtures for the detection engine tests."""
import os
import sys
from pathlib import Path

# Keep test runs from writing log files
os.environ['SMART_DETECTION_LOG_TO_FILE'] = 'false'

import numpy as np
import pytest

# Add the project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from smart_detection.core.capabilities import TemplateMatcher, TextRecognizer
from smart_detection.core.detector import Detector
from smart_detection.utils.config import DetectionConfig
from smart_detection.utils.template_matcher import OpenCVTemplateMatcher


class SpyTemplateMatcher(TemplateMatcher):
    """Real OpenCV matcher that counts its calls."""

    def __init__(self):
        self.inner = OpenCVTemplateMatcher('cv2.TM_CCOEFF_NORMED')
        self.calls = 0

    def match_template(self, search, template):
        self.calls += 1
        return self.inner.match_template(search, template)


class FixedSurfaceMatcher(TemplateMatcher):
    """Returns a prepared score surface, ignoring pixel content."""

    def __init__(self, surface):
        self.surface = np.asarray(surface, dtype=np.float32)
        self.calls = 0

    def match_template(self, search, template):
        self.calls += 1
        return self.surface.copy()


class StubTextRecognizer(TextRecognizer):
    """OCR stand-in returning scripted texts, one per extraction."""

    def __init__(self, texts=None, default=''):
        self.texts = list(texts or [])
        self.default = default
        self.language = None
        self.images = []
        self.extractions = 0
        self.released = False

    @property
    def is_initialized(self):
        return self.language is not None

    def init(self, language):
        self.language = language

    def set_image(self, pixels):
        self.images.append(pixels.copy())

    def extract_text(self):
        self.extractions += 1
        return self.texts.pop(0) if self.texts else self.default

    def release(self):
        self.released = True
        self.language = None


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def noise_frame(rng):
    """Random 1000x2000 (width x height) BGR screen frame."""
    return rng.integers(0, 256, size=(2000, 1000, 3), dtype=np.uint8)


@pytest.fixture
def condition(rng):
    """Random 40x40 BGR condition image."""
    return rng.integers(0, 256, size=(40, 40, 3), dtype=np.uint8)


@pytest.fixture
def frame_with_condition(noise_frame, condition):
    """Noise frame with the condition pasted at full-size (100, 100)."""
    frame = noise_frame.copy()
    frame[100:140, 100:140] = condition
    return frame


@pytest.fixture
def spy_matcher():
    return SpyTemplateMatcher()


@pytest.fixture
def text_recognizer():
    return StubTextRecognizer()


@pytest.fixture
def detector(spy_matcher, text_recognizer):
    """Detector with spy matcher, stub OCR and default configuration, metrics not set."""
    return Detector(template_matcher=spy_matcher, text_recognizer=text_recognizer, config=DetectionConfig())


@pytest.fixture
def ready_detector(detector, frame_with_condition):
    """Detector on a 1000x2000 screen at ratio 0.5 holding frame_with_condition."""
    detector.initialize('eng')
    detector.set_screen_metrics('screen', 1000, 2000, 50)
    detector.set_screen_image(frame_with_condition)
    return detector
