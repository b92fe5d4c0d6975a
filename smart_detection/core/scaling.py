"""
Scale ratio management - all matching runs in a downscaled space for speed
"""

import math
from typing import Dict, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


class ScaleRatioManager:
    """
    Derives and caches the downscale ratio for a screen size and a quality setting

    Quality is a percentage: the scaled image's longest side is
    ``longest_side * quality / 100``. The ratio never exceeds 1.0 (no upscaling)
    and invalid inputs degrade to 1.0.
    """

    def __init__(self):
        self._ratios: Dict[str, float] = {}
        self._active_tag: Optional[str] = None

    @staticmethod
    def _derive_ratio(full_width, full_height, quality) -> float:
        try:
            longest_side = float(max(full_width, full_height))
            quality = float(quality)
        except (TypeError, ValueError):
            return 1.0

        if longest_side <= 0 or not math.isfinite(quality) or quality <= 0:
            return 1.0

        scaled_longest_side = longest_side * quality / 100.0
        if scaled_longest_side >= longest_side:
            return 1.0
        # Keep at least one pixel on the longest side
        return max(scaled_longest_side, 1.0) / longest_side

    def compute_scale_ratio(self, full_width: int, full_height: int, quality: float, tag: str) -> float:
        """
        Compute the ratio for a tag, or reuse the cached one

        Args:
            full_width: Full-size screen width
            full_height: Full-size screen height
            quality: Detection quality (0-100)
            tag: Metrics tag the ratio is cached under

        Returns:
            Scale ratio in (0, 1]
        """
        self._active_tag = tag
        if tag in self._ratios:
            logger.debug(f"Reusing scale ratio {self._ratios[tag]:.4f} for tag '{tag}'")
            return self._ratios[tag]

        ratio = self._derive_ratio(full_width, full_height, quality)
        self._ratios[tag] = ratio
        logger.debug(f"Computed scale ratio {ratio:.4f} for tag '{tag}' ({full_width}x{full_height}, quality={quality})")
        return ratio

    def get_scale_ratio(self, tag: Optional[str] = None) -> float:
        """Ratio of the given tag, or of the last computed one (1.0 if none)"""
        tag = tag if tag is not None else self._active_tag
        return self._ratios.get(tag, 1.0)

    @property
    def active_tag(self) -> Optional[str]:
        return self._active_tag

    def reset(self, tag: Optional[str] = None) -> None:
        """Forget the ratio of one tag, or every cached ratio"""
        if tag is None:
            self._ratios.clear()
            self._active_tag = None
        else:
            self._ratios.pop(tag, None)
            if self._active_tag == tag:
                self._active_tag = None
