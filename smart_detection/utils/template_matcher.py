"""
Template Matcher - OpenCV correlation engine behind the TemplateMatcher capability
"""

import cv2
import numpy as np

from ..core.capabilities import TemplateMatcher
from ..utils.logger import get_logger
from ..utils.config import config_manager

logger = get_logger(__name__)

# Methods whose best match is the minimum
SQDIFF_METHODS = (cv2.TM_SQDIFF, cv2.TM_SQDIFF_NORMED)

NORMALIZED_METHODS = {
    'TM_SQDIFF_NORMED': cv2.TM_SQDIFF_NORMED,
    'TM_CCORR_NORMED': cv2.TM_CCORR_NORMED,
    'TM_CCOEFF_NORMED': cv2.TM_CCOEFF_NORMED,
}


def parse_matching_method(method_str: str) -> int:
    """
    Parse a method name such as 'cv2.TM_CCOEFF_NORMED'

    Only normalized methods are accepted since scores are compared against
    thresholds in [-1, 1]. Unknown names fall back to TM_CCOEFF_NORMED.
    """
    method_name = str(method_str).split('.')[-1]
    if method_name in NORMALIZED_METHODS:
        return NORMALIZED_METHODS[method_name]
    logger.warning(f"Unknown or unnormalized template matching method: {method_name}, using TM_CCOEFF_NORMED")
    return cv2.TM_CCOEFF_NORMED


class OpenCVTemplateMatcher(TemplateMatcher):
    """
    cv2.matchTemplate based correlation engine
    """

    def __init__(self, method: str = None):
        """
        Initialize template matcher

        Args:
            method: Matching method name (uses config default if None)
        """
        if method is None:
            method = config_manager.get_matching_config().template_matching_method
        self.matching_method = parse_matching_method(method)

    def match_template(self, search: np.ndarray, template: np.ndarray) -> np.ndarray:
        result = cv2.matchTemplate(search, template, self.matching_method)

        # For TM_SQDIFF_NORMED lower is better, flip so higher is always better
        if self.matching_method in SQDIFF_METHODS:
            result = 1.0 - result

        return result
