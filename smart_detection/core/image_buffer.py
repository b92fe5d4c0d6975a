"""
Image buffer - one source image held as full-size color, scaled gray and cropped views of both
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from .bitmap import Bitmap, to_bgr
from .geometry import Rect, RegionOfInterest, scale_value
from ..utils.exceptions import ImageProcessingError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ImageBuffer:
    """
    Holds a screen frame or a condition image in the forms matching needs

    Matching runs on ``cropped_scaled_gray``; color checks and OCR use the
    full-size color data.
    """

    def __init__(self):
        self.full_size_color: Optional[np.ndarray] = None
        self.scaled_gray: Optional[np.ndarray] = None
        self.cropped_full_size_color: Optional[np.ndarray] = None
        self.cropped_scaled_gray: Optional[np.ndarray] = None
        self.full_size_roi = Rect()
        self.scaled_roi = Rect()
        self.ratio = 1.0

    @property
    def is_loaded(self) -> bool:
        return self.full_size_color is not None

    @property
    def scaled_size(self) -> Tuple[int, int]:
        """(width, height) of the scaled gray image"""
        return self.scaled_roi.width, self.scaled_roi.height

    def process_bitmap(self, bitmap: Bitmap, ratio: float) -> 'ImageBuffer':
        """
        Ingest a bitmap and derive the scaled grayscale image

        Args:
            bitmap: Image to process (see core.bitmap.to_bgr)
            ratio: Scale ratio in (0, 1]

        Returns:
            self
        """
        color = to_bgr(bitmap)
        height, width = color.shape[:2]

        scaled_width = max(1, scale_value(width, ratio))
        scaled_height = max(1, scale_value(height, ratio))

        if (scaled_width, scaled_height) == (width, height):
            scaled_color = color
        else:
            scaled_color = cv2.resize(color, (scaled_width, scaled_height), interpolation=cv2.INTER_AREA)

        self.full_size_color = color
        self.scaled_gray = cv2.cvtColor(scaled_color, cv2.COLOR_BGR2GRAY)
        self.full_size_roi = Rect(0, 0, width, height)
        self.scaled_roi = Rect(0, 0, scaled_width, scaled_height)
        self.ratio = ratio

        # A new image invalidates any previous cropping
        self.cropped_full_size_color = None
        self.cropped_scaled_gray = None
        return self

    def _require_loaded(self) -> None:
        if not self.is_loaded:
            raise ImageProcessingError("No bitmap processed in this image buffer")

    def is_full_size_contains(self, rect: Rect) -> bool:
        self._require_loaded()
        return rect.is_inside(self.full_size_roi.width, self.full_size_roi.height)

    def is_scaled_contains(self, rect: Rect) -> bool:
        self._require_loaded()
        return rect.is_inside(self.scaled_roi.width, self.scaled_roi.height)

    def set_cropping(self, roi: RegionOfInterest) -> None:
        """Restrict the cropped views to a region of interest"""
        self._require_loaded()
        full, scaled = roi.full_size, roi.scaled
        self.cropped_full_size_color = self.full_size_color[full.y:full.bottom, full.x:full.right]
        self.cropped_scaled_gray = self.scaled_gray[scaled.y:scaled.bottom, scaled.x:scaled.right]

    def is_cropped_scaled_contains(self, size: Tuple[int, int]) -> bool:
        """
        Check that the cropped search area can hold an image of the given size

        Args:
            size: (width, height) in scaled space
        """
        if self.cropped_scaled_gray is None:
            return False
        width, height = size
        cropped_height, cropped_width = self.cropped_scaled_gray.shape[:2]
        return cropped_width >= width and cropped_height >= height

    def full_size_region(self, rect: Rect) -> np.ndarray:
        """Full-size color pixels of a rect, clipped to the image"""
        self._require_loaded()
        x, y = max(rect.x, 0), max(rect.y, 0)
        return self.full_size_color[y:max(rect.bottom, y), x:max(rect.right, x)]
