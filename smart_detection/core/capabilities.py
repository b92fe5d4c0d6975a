"""
Capability interfaces consumed by the detector
The correlation engine and the OCR engine are injected through these, so either
can be swapped or stubbed without touching the orchestration
"""

from abc import ABC, abstractmethod

import numpy as np


class TemplateMatcher(ABC):
    """Correlation engine producing a normalized score surface"""

    @abstractmethod
    def match_template(self, search: np.ndarray, template: np.ndarray) -> np.ndarray:
        """
        Correlate a template over a search image

        Args:
            search: Grayscale image to search in
            template: Grayscale template, not larger than search on either axis

        Returns:
            float32 matrix of shape (searchH - templateH + 1, searchW - templateW + 1)
            holding normalized cross-correlation scores in [-1, 1]
        """
        ...


class TextRecognizer(ABC):
    """OCR engine extracting text from an image"""

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def init(self, language: str) -> None:
        """Load the engine for a language tag (e.g. 'eng', 'chi_sim')"""
        ...

    @abstractmethod
    def set_image(self, pixels: np.ndarray) -> None:
        """Set the BGR image the next extraction runs on"""
        ...

    @abstractmethod
    def extract_text(self) -> str:
        ...

    def release(self) -> None:
        """Free engine resources"""
        pass
