"""
Candidate verification - color cross-check and OCR text containment
"""

from dataclasses import dataclass

import cv2
import numpy as np

from .capabilities import TextRecognizer
from ..utils.exceptions import ImageProcessingError
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Attempts allowed per text detection
DEFAULT_MAX_TEXT_CYCLES = 100


@dataclass(frozen=True)
class DetectionThresholds:
    """
    The two limits derived from a single 0-100 detection threshold

    Note the inversion: the correlation floor is ``(100 - threshold) / 100``,
    so threshold 100 accepts any positive correlation and threshold 0 accepts
    nothing. The same threshold is the color distance ceiling as-is.
    """
    threshold: int
    correlation_floor: float
    color_ceiling: float

    @classmethod
    def from_threshold(cls, threshold: int) -> 'DetectionThresholds':
        return cls(
            threshold=threshold,
            correlation_floor=(100 - threshold) / 100.0,
            color_ceiling=float(threshold),
        )

    def is_score_accepted(self, score: float) -> bool:
        return score > self.correlation_floor

    def is_color_accepted(self, color_distance: float) -> bool:
        return color_distance < self.color_ceiling


def color_diff(region_color: np.ndarray, template_color: np.ndarray) -> float:
    """
    Mean color distance between two images

    Args:
        region_color: Candidate region (BGR)
        template_color: Reference image (BGR)

    Returns:
        Sum of the absolute per-channel mean differences normalized to [0, 100]
    """
    if region_color is None or template_color is None or region_color.size == 0 or template_color.size == 0:
        raise ImageProcessingError("Cannot compare colors of an empty image")

    region_means = cv2.mean(region_color)
    template_means = cv2.mean(template_color)

    diff = sum(abs(region_means[i] - template_means[i]) for i in range(3))
    return (diff * 100) / (255 * 3)


class TextVerifier:
    """
    Tests whether a target string is part of the text read in an image region

    Attempts are counted across the whole search of one detection call and
    capped at ``max_cycles``; past the cap every check answers False.
    """

    def __init__(self, recognizer: TextRecognizer, max_cycles: int = DEFAULT_MAX_TEXT_CYCLES):
        self.recognizer = recognizer
        self.max_cycles = max_cycles
        self.attempts = 0

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_cycles

    def reset(self) -> None:
        self.attempts = 0

    def contains_text(self, region: np.ndarray, target_text: str) -> bool:
        """
        Run OCR on a region and look for target_text (case-sensitive substring)

        Args:
            region: Full-size BGR pixels of the candidate
            target_text: Text to look for

        Returns:
            True if the extracted text contains target_text
        """
        if self.exhausted:
            return False

        self.attempts += 1
        self.recognizer.set_image(region)
        text = self.recognizer.extract_text()

        found = target_text in text
        logger.debug(f"OCR attempt {self.attempts}/{self.max_cycles}: {text.strip()!r} "
                     f"{'contains' if found else 'does not contain'} {target_text!r}")
        return found
