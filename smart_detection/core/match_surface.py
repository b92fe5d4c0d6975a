"""
Match surface - the correlation matrix of one detection call and the iterative
best-candidate extraction over it
"""

from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np

from .capabilities import TemplateMatcher
from .geometry import Rect, RegionOfInterest
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Written over visited neighbourhoods; below any normalized correlation score
SUPPRESSED_SCORE = -2.0


@dataclass
class MatchCandidate:
    """A location proposed by the search, in coordinates relative to the searched area"""
    x: int
    y: int
    score: float
    template_width: int
    template_height: int
    roi: RegionOfInterest = field(default_factory=RegionOfInterest)

    @property
    def scaled_rect(self) -> Rect:
        return self.roi.scaled

    @property
    def full_size_rect(self) -> Rect:
        return self.roi.full_size


class MatchSurface:
    """
    Score matrix produced by a template matcher

    Candidates are extracted best-first. Each extraction overwrites a
    template-sized neighbourhood centred on the returned position with
    SUPPRESSED_SCORE, so a position is never returned twice and the search
    ends once the matrix holds nothing else.
    """

    def __init__(self):
        self.results: Optional[np.ndarray] = None
        self.max_val: float = SUPPRESSED_SCORE
        self.max_loc: Tuple[int, int] = (0, 0)
        self.extracted = 0

    def init_results(self, search: np.ndarray, template: np.ndarray, matcher: TemplateMatcher) -> np.ndarray:
        """
        Correlate the template over the search image (once per detection call)

        Returns:
            The score matrix, shape (searchH - templateH + 1, searchW - templateW + 1)
        """
        scores = np.asarray(matcher.match_template(search, template), dtype=np.float32)

        expected_shape = (search.shape[0] - template.shape[0] + 1, search.shape[1] - template.shape[1] + 1)
        if scores.shape != expected_shape:
            raise ValueError(f"Matcher returned a {scores.shape} surface, expected {expected_shape}")

        # Flat image areas can yield non-finite scores
        scores = np.nan_to_num(scores, nan=-1.0, posinf=1.0, neginf=-1.0)
        self.results = np.clip(scores, -1.0, 1.0)
        self.max_val = SUPPRESSED_SCORE
        self.max_loc = (0, 0)
        self.extracted = 0
        return self.results

    @property
    def area(self) -> int:
        return 0 if self.results is None else int(self.results.size)

    @property
    def is_exhausted(self) -> bool:
        return self.results is None or float(self.results.max()) <= SUPPRESSED_SCORE

    def locate_next_min_max(self, template_size: Tuple[int, int], ratio: float) -> Optional[MatchCandidate]:
        """
        Extract the current best location and suppress its neighbourhood

        Args:
            template_size: (width, height) of the scaled template
            ratio: Scale ratio, used to derive the candidate's full-size rect

        Returns:
            The candidate, or None when the surface is exhausted
        """
        if self.results is None:
            return None

        _, max_val, _, max_loc = cv2.minMaxLoc(self.results)
        if max_val <= SUPPRESSED_SCORE:
            return None

        self.max_val = float(max_val)
        self.max_loc = max_loc
        self.extracted += 1

        width, height = template_size
        x, y = max_loc
        candidate = MatchCandidate(x=x, y=y, score=self.max_val, template_width=width, template_height=height)
        candidate.roi.set_scaled(Rect(x, y, width, height), ratio)

        # Suppress a template-sized rect centred on the position (numpy slicing clips the far edges)
        top, left = max(y - height // 2, 0), max(x - width // 2, 0)
        self.results[top:y - height // 2 + height, left:x - width // 2 + width] = SUPPRESSED_SCORE
        return candidate

    def candidates(self, template_size: Tuple[int, int], ratio: float) -> Iterator[MatchCandidate]:
        """
        Best-first, finite sequence of candidates over the current surface

        Every extraction suppresses at least its own cell, so the surface area
        bounds the number of iterations.
        """
        for _ in range(self.area):
            candidate = self.locate_next_min_max(template_size, ratio)
            if candidate is None:
                break
            yield candidate
        logger.debug(f"Match surface exhausted after {self.extracted} candidate(s)")
