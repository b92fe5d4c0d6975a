"""
Detector - finds a condition image or a text in the current screen frame
Sequences scaling, region of interest, correlation search and verification per call
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from .bitmap import Bitmap
from .capabilities import TemplateMatcher, TextRecognizer
from .geometry import Rect, RegionOfInterest
from .image_buffer import ImageBuffer
from .match_surface import MatchCandidate, MatchSurface
from .scaling import ScaleRatioManager
from .session import DetectionSession, DetectorState
from .verification import DetectionThresholds, TextVerifier, color_diff
from ..utils.config import DetectionConfig, config_manager
from ..utils.exceptions import DetectionCancelledError, OCRError, SessionStateError
from ..utils.logger import get_logger

logger = get_logger(__name__)

RectLike = Union[Rect, Tuple[int, int, int, int]]


@dataclass(frozen=True)
class DetectionOutcome:
    """Result of one detection call, coordinates in full-size screen space"""
    found: bool
    center_x: int
    center_y: int
    confidence: float

    @classmethod
    def not_found(cls) -> 'DetectionOutcome':
        return cls(found=False, center_x=0, center_y=0, confidence=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Detector:
    """
    Public entry surface of the detection engine

    Usage:
        detector = Detector().initialize()
        detector.set_screen_metrics('screen', 1080, 2400, quality=50)
        detector.set_screen_image(frame)
        outcome = detector.detect_condition(button, threshold=10)
    """

    def __init__(self,
                 template_matcher: Optional[TemplateMatcher] = None,
                 text_recognizer: Optional[TextRecognizer] = None,
                 config: Optional[DetectionConfig] = None):
        """
        Args:
            template_matcher: Correlation engine (OpenCV if None)
            text_recognizer: OCR engine (Tesseract if None, created by initialize)
            config: Configuration (global configuration if None)
        """
        self.config = config if config is not None else config_manager.get_config()

        if template_matcher is None:
            from ..utils.template_matcher import OpenCVTemplateMatcher
            template_matcher = OpenCVTemplateMatcher(self.config.matching.template_matching_method)
        self.template_matcher = template_matcher
        self.text_recognizer = text_recognizer
        self.text_verifier: Optional[TextVerifier] = None

        self.scale_ratio_manager = ScaleRatioManager()
        self.session: Optional[DetectionSession] = None
        self.state = DetectorState.IDLE

        # Per-call working state, overwritten by every detection
        self.condition_image = ImageBuffer()
        self.detection_roi = RegionOfInterest()
        self.matching_results = MatchSurface()
        self.last_outcome = DetectionOutcome.not_found()

    # ------------------------------------------------------------------ lifecycle

    def initialize(self, language: Optional[str] = None) -> 'Detector':
        """
        Initialize the OCR engine used by text detections

        Args:
            language: OCR language tag (config default if None)

        Returns:
            self
        """
        ocr_config = self.config.ocr
        if self.text_recognizer is None:
            from ..utils.tesseract_ocr import TesseractTextRecognizer
            self.text_recognizer = TesseractTextRecognizer(
                tesseract_cmd=ocr_config.tesseract_cmd,
                preprocess=ocr_config.preprocess,
                tesseract_config=ocr_config.tesseract_config,
            )

        self.text_recognizer.init(language or ocr_config.language)
        logger.debug("Initialized")
        return self

    def release(self) -> None:
        """Release the OCR engine and drop the session"""
        if self.text_recognizer is not None:
            self.text_recognizer.release()
        self.session = None
        self.state = DetectorState.IDLE
        logger.debug("Released")

    def set_screen_metrics(self, tag: str, frame_width: int, frame_height: int, quality: float) -> float:
        """
        Define the screen size and detection quality; must precede any other call

        Returns:
            The scale ratio used for matching
        """
        ratio = self.scale_ratio_manager.compute_scale_ratio(frame_width, frame_height, quality, tag)
        self.session = DetectionSession(
            tag=tag,
            frame_width=frame_width,
            frame_height=frame_height,
            quality=quality,
            scale_ratio=ratio,
        )
        self.state = DetectorState.METRICS_SET

        logger.info(f"Screen metrics defined: FullSize=[{frame_width}/{frame_height}], "
                    f"Quality={quality}, scaleRatio={ratio:.4f}")
        return ratio

    def reset_screen_metrics(self, tag: Optional[str] = None) -> None:
        """Forget cached scale ratios (one tag or all) and the current session"""
        self.scale_ratio_manager.reset(tag)
        if tag is None or (self.session is not None and self.session.tag == tag):
            self.session = None
            self.state = DetectorState.IDLE

    def set_screen_image(self, frame: Bitmap) -> None:
        """Process a new screen frame"""
        session = self._require_session()
        session.screen_image.process_bitmap(frame, session.scale_ratio)
        session.frames_processed += 1

        width, height = session.screen_image.full_size_roi.width, session.screen_image.full_size_roi.height
        if (width, height) != (session.frame_width, session.frame_height):
            logger.warning(f"Frame size {width}x{height} differs from screen metrics "
                           f"{session.frame_width}x{session.frame_height}")
        logger.debug(f"Frame #{session.frames_processed} of '{session.tag}' processed at quality {session.quality}, "
                     f"scaled size {session.screen_image.scaled_size}")
        self.state = DetectorState.SCREEN_CAPTURED

    # ------------------------------------------------------------------ detection

    def detect_condition(self, condition: Bitmap, threshold: Union[int, str],
                         rect: Optional[RectLike] = None, cancel_token=None) -> DetectionOutcome:
        """
        Look for a condition image in the current frame

        Args:
            condition: Condition image
            threshold: 0-100, higher is more tolerant (a str selects text mode)
            rect: Full-size (x, y, width, height) to search in, whole frame if None
            cancel_token: Object with is_set() (e.g. threading.Event) aborting the search

        Returns:
            DetectionOutcome
        """
        if isinstance(threshold, str):
            return self.detect_text(condition, threshold, rect, cancel_token)

        session = self._prepare_detection(rect)
        self.state = DetectorState.MATCHING_VISUAL
        thresholds = DetectionThresholds.from_threshold(threshold)

        if not self._prepare_search(session, condition):
            return self._resolve(DetectionOutcome.not_found())

        for candidate in self._in_bounds_candidates(session, cancel_token):
            # Candidates come best-first, nothing left can clear the floor
            if not thresholds.is_score_accepted(candidate.score):
                logger.debug(f"Best remaining score {candidate.score:.3f} is not above "
                             f"{thresholds.correlation_floor:.2f}, stopping")
                break

            # Grayscale correlation is blind to hue
            distance = color_diff(self._candidate_region(session, candidate), self.condition_image.full_size_color)
            if thresholds.is_color_accepted(distance):
                return self._resolve(self._found(candidate))
            logger.debug(f"Candidate at {candidate.full_size_rect.as_tuple()} rejected, color diff {distance:.1f}")

        if self.matching_results.is_exhausted:
            logger.debug(f"All {self.matching_results.extracted} candidate location(s) checked")
        return self._resolve(DetectionOutcome.not_found())

    def detect_text(self, condition: Bitmap, text: str,
                    rect: Optional[RectLike] = None, cancel_token=None) -> DetectionOutcome:
        """
        Look for a text in the frame, at locations where the condition image correlates

        Candidates are tried by descending correlation. The correlation score
        itself never accepts or rejects; only the OCR result does.

        Args:
            condition: Condition image giving the size and look of the searched area
            text: Text that must be contained in the OCR result (case-sensitive)
            rect: Full-size (x, y, width, height) to search in, whole frame if None
            cancel_token: Object with is_set() aborting the search

        Returns:
            DetectionOutcome
        """
        if self.text_recognizer is None or not self.text_recognizer.is_initialized:
            raise OCRError("OCR engine not initialized, call initialize() first")

        session = self._prepare_detection(rect)
        self.state = DetectorState.MATCHING_TEXT

        if not self._prepare_search(session, condition):
            return self._resolve(DetectionOutcome.not_found())

        if self.text_verifier is None or self.text_verifier.recognizer is not self.text_recognizer:
            self.text_verifier = TextVerifier(self.text_recognizer, self.config.ocr.max_cycles)
        verifier = self.text_verifier
        verifier.reset()

        for candidate in self._in_bounds_candidates(session, cancel_token):
            if verifier.contains_text(self._candidate_region(session, candidate), text):
                return self._resolve(self._found(candidate))

            if verifier.exhausted:
                logger.error(f"No text match after {verifier.attempts} OCR attempts, giving up")
                break

        if self.matching_results.is_exhausted:
            logger.info(f"Text {text!r} not found at any of {self.matching_results.extracted} candidate location(s)")
        return self._resolve(DetectionOutcome.not_found())

    # ------------------------------------------------------------------ internals

    def _require_session(self) -> DetectionSession:
        if self.session is None:
            raise SessionStateError("Screen metrics are not set, call set_screen_metrics() first")
        return self.session

    def _prepare_detection(self, rect: Optional[RectLike]) -> DetectionSession:
        session = self._require_session()
        if not session.has_frame:
            raise SessionStateError("No screen image, call set_screen_image() first")

        if rect is not None and not isinstance(rect, Rect):
            rect = Rect.from_tuple(rect)
        self.detection_roi.set_full_size(rect, session.scale_ratio, session.screen_image.full_size_roi)
        return session

    def _prepare_search(self, session: DetectionSession, condition: Bitmap) -> bool:
        """Validate the search area and compute the correlation surface; False if matching is impossible"""
        screen_image = session.screen_image

        if not screen_image.is_full_size_contains(self.detection_roi.full_size) \
                or not screen_image.is_scaled_contains(self.detection_roi.scaled):
            logger.error(f"Detection ROI is invalid, skipping condition: {self.detection_roi}")
            return False

        self.condition_image.process_bitmap(condition, session.scale_ratio)

        # The cropped search area must be able to hold the condition
        screen_image.set_cropping(self.detection_roi)
        if not screen_image.is_cropped_scaled_contains(self.condition_image.scaled_size):
            logger.error("Condition is bigger than the detection area, skipping it")
            return False

        self.matching_results.init_results(
            screen_image.cropped_scaled_gray,
            self.condition_image.scaled_gray,
            self.template_matcher,
        )
        return True

    def _in_bounds_candidates(self, session: DetectionSession, cancel_token) -> Iterator[MatchCandidate]:
        """Candidates whose footprint lies inside the scaled frame"""
        scaled_origin = self.detection_roi.scaled
        for candidate in self.matching_results.candidates(self.condition_image.scaled_size, session.scale_ratio):
            if cancel_token is not None and cancel_token.is_set():
                raise DetectionCancelledError("Detection cancelled")

            if not session.screen_image.is_scaled_contains(candidate.scaled_rect.offset(scaled_origin.x, scaled_origin.y)):
                logger.debug(f"Candidate at {candidate.scaled_rect.as_tuple()} out of bounds, skipping")
                continue
            yield candidate

    def _candidate_region(self, session: DetectionSession, candidate: MatchCandidate) -> np.ndarray:
        """Full-size color pixels under a candidate"""
        origin = self.detection_roi.full_size
        return session.screen_image.full_size_region(candidate.full_size_rect.offset(origin.x, origin.y))

    def _found(self, candidate: MatchCandidate) -> DetectionOutcome:
        return DetectionOutcome(
            found=True,
            center_x=self.detection_roi.full_size.x + candidate.roi.full_size_center_x(),
            center_y=self.detection_roi.full_size.y + candidate.roi.full_size_center_y(),
            confidence=candidate.score,
        )

    def _resolve(self, outcome: DetectionOutcome) -> DetectionOutcome:
        self.last_outcome = outcome
        self.state = DetectorState.RESOLVED
        if outcome.found:
            logger.debug(f"Condition found at ({outcome.center_x}, {outcome.center_y}), confidence {outcome.confidence:.3f}")
        else:
            logger.debug("Condition not found")
        return outcome
