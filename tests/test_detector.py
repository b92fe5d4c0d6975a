"""Tests for the detector: visual and text detection scenarios and session lifecycle."""
import threading

import cv2
import numpy as np
import pytest

from smart_detection.core.detector import DetectionOutcome, Detector
from smart_detection.core.geometry import Rect
from smart_detection.core.session import DetectorState
from smart_detection.utils.config import DetectionConfig
from smart_detection.utils.exceptions import DetectionCancelledError, OCRError, SessionStateError
from tests.conftest import FixedSurfaceMatcher, StubTextRecognizer


def _color_shifted_pair(rng):
    """A dark region and a bright condition sharing the same luminance pattern."""
    pattern = rng.integers(0, 21, size=(40, 40), dtype=np.uint8)
    region = np.repeat(pattern[:, :, None], 3, axis=2)
    condition = region + np.uint8(235)
    return region, condition


def _smooth_condition(rng, width, height):
    """A condition whose features span several pixels, so a 1px shift keeps it recognisable."""
    coarse = rng.integers(0, 256, size=(5, 5, 3), dtype=np.uint8)
    return cv2.resize(coarse, (width, height), interpolation=cv2.INTER_CUBIC)


class TestVisualDetection:

    def test_exact_match_is_found_at_its_center(self, ready_detector, condition):
        outcome = ready_detector.detect_condition(condition, 90)

        assert outcome.found
        assert (outcome.center_x, outcome.center_y) == (120, 120)
        assert outcome.confidence == pytest.approx(1.0, abs=1e-3)
        assert ready_detector.last_outcome == outcome
        assert ready_detector.state == DetectorState.RESOLVED

    def test_match_inside_explicit_rect_is_reported_in_screen_coordinates(self, detector, noise_frame, condition):
        frame = noise_frame.copy()
        frame[400:440, 300:340] = condition
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame)

        outcome = detector.detect_condition(condition, 90, rect=(200, 300, 300, 300))

        assert outcome.found
        assert (outcome.center_x, outcome.center_y) == (320, 420)

    @pytest.mark.parametrize('origin', [100, 101])
    @pytest.mark.parametrize('width, height', [(40, 40), (41, 41), (41, 40)])
    def test_rect_exactly_around_the_condition(self, detector, spy_matcher, noise_frame, rng, origin, width, height):
        condition = _smooth_condition(rng, width, height)
        frame = noise_frame.copy()
        frame[origin:origin + height, origin:origin + width] = condition
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame)

        outcome = detector.detect_condition(condition, 90, rect=(origin, origin, width, height))

        assert outcome.found
        assert spy_matcher.calls == 1
        assert abs(outcome.center_x - (origin + width // 2)) <= 1
        assert abs(outcome.center_y - (origin + height // 2)) <= 1

    def test_color_shifted_condition_is_rejected(self, detector, noise_frame, rng):
        region, shifted = _color_shifted_pair(rng)
        frame = noise_frame.copy()
        frame[100:140, 100:140] = region
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame)

        # Correlation alone accepts the location, the color check must not
        assert detector.detect_condition(region, 90, rect=(100, 100, 40, 40)).found
        outcome = detector.detect_condition(shifted, 90, rect=(100, 100, 40, 40))

        assert outcome == DetectionOutcome.not_found()

    def test_color_rejection_then_low_scores_end_the_search(self, noise_frame, rng):
        region, shifted = _color_shifted_pair(rng)
        frame = noise_frame.copy()
        frame[100:140, 100:140] = region
        surface = np.zeros((1000 - 20 + 1, 500 - 20 + 1), dtype=np.float32)
        surface[50, 50] = 0.95
        matcher = FixedSurfaceMatcher(surface)
        detector = Detector(template_matcher=matcher, config=DetectionConfig())
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame)

        outcome = detector.detect_condition(shifted, 90)

        assert not outcome.found
        assert matcher.calls == 1
        assert detector.matching_results.extracted == 2

    def test_rect_smaller_than_condition_skips_matching(self, ready_detector, spy_matcher, condition):
        outcome = ready_detector.detect_condition(condition[:20, :20], 90, rect=Rect(0, 0, 10, 10))

        assert outcome == DetectionOutcome.not_found()
        assert spy_matcher.calls == 0

    def test_rect_outside_frame_skips_matching(self, ready_detector, spy_matcher, condition):
        outcome = ready_detector.detect_condition(condition, 90, rect=(990, 0, 50, 50))

        assert not outcome.found
        assert spy_matcher.calls == 0

    def test_threshold_zero_accepts_nothing(self, ready_detector, condition):
        assert not ready_detector.detect_condition(condition, 0).found

    def test_threshold_hundred_accepts_the_exact_match(self, ready_detector, condition):
        assert ready_detector.detect_condition(condition, 100).found

    def test_condition_absent_from_frame(self, detector, noise_frame, condition):
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(noise_frame)

        assert not detector.detect_condition(condition, 10).found

    def test_cancel_token_aborts_the_search(self, ready_detector, condition):
        token = threading.Event()
        token.set()

        with pytest.raises(DetectionCancelledError):
            ready_detector.detect_condition(condition, 90, cancel_token=token)


class TestTextDetection:

    def test_text_is_found_on_first_candidate(self, ready_detector, text_recognizer, condition, frame_with_condition):
        text_recognizer.texts = ['LOGIN']

        outcome = ready_detector.detect_text(condition, 'LOG')

        assert outcome.found
        assert (outcome.center_x, outcome.center_y) == (120, 120)
        assert text_recognizer.extractions == 1
        assert np.array_equal(text_recognizer.images[0], frame_with_condition[100:140, 100:140])

    def test_string_criterion_selects_text_mode(self, ready_detector, text_recognizer, condition):
        text_recognizer.texts = ['LOGIN']

        assert ready_detector.detect_condition(condition, 'LOG').found
        assert text_recognizer.extractions == 1

    def test_text_search_stops_after_hundred_attempts(self, ready_detector, text_recognizer, condition):
        text_recognizer.default = 'nothing to see'

        outcome = ready_detector.detect_text(condition, 'LOG')

        assert outcome == DetectionOutcome.not_found()
        assert text_recognizer.extractions == 100
        assert not ready_detector.matching_results.is_exhausted

    def test_text_search_stops_when_candidates_run_out(self, ready_detector, text_recognizer, condition):
        text_recognizer.default = 'nothing to see'

        outcome = ready_detector.detect_text(condition, 'LOG', rect=(100, 100, 40, 40))

        assert not outcome.found
        assert text_recognizer.extractions == 1
        assert ready_detector.matching_results.is_exhausted

    def test_cycle_cap_follows_configuration(self, spy_matcher, frame_with_condition, condition):
        config = DetectionConfig()
        config.ocr.max_cycles = 5
        recognizer = StubTextRecognizer(default='')
        detector = Detector(template_matcher=spy_matcher, text_recognizer=recognizer, config=config).initialize()
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame_with_condition)

        assert not detector.detect_text(condition, 'LOG').found
        assert recognizer.extractions == 5
        assert recognizer.language == 'eng'

    def test_every_call_gets_the_full_attempt_budget(self, spy_matcher, frame_with_condition, condition):
        config = DetectionConfig()
        config.ocr.max_cycles = 5
        recognizer = StubTextRecognizer(default='')
        detector = Detector(template_matcher=spy_matcher, text_recognizer=recognizer, config=config).initialize()
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame_with_condition)

        detector.detect_text(condition, 'LOG')
        verifier = detector.text_verifier
        recognizer.texts = ['', '', 'LOGIN']
        outcome = detector.detect_text(condition, 'LOG')

        assert outcome.found
        assert detector.text_verifier is verifier
        assert verifier.attempts == 3
        assert recognizer.extractions == 8

    def test_text_detection_requires_initialized_ocr(self, detector, frame_with_condition, condition):
        detector.set_screen_metrics('screen', 1000, 2000, 50)
        detector.set_screen_image(frame_with_condition)

        with pytest.raises(OCRError):
            detector.detect_text(condition, 'LOG')


class TestSessionLifecycle:

    def test_states_follow_the_call_sequence(self, detector, frame_with_condition, condition):
        assert detector.state == DetectorState.IDLE

        assert detector.set_screen_metrics('screen', 1000, 2000, 50) == pytest.approx(0.5)
        assert detector.state == DetectorState.METRICS_SET

        detector.set_screen_image(frame_with_condition)
        assert detector.state == DetectorState.SCREEN_CAPTURED
        assert detector.session.frames_processed == 1

        detector.detect_condition(condition, 90)
        assert detector.state == DetectorState.RESOLVED

    def test_frame_requires_metrics(self, detector, frame_with_condition):
        with pytest.raises(SessionStateError):
            detector.set_screen_image(frame_with_condition)

    def test_detection_requires_metrics_and_frame(self, detector, condition):
        with pytest.raises(SessionStateError):
            detector.detect_condition(condition, 90)

        detector.set_screen_metrics('screen', 1000, 2000, 50)
        with pytest.raises(SessionStateError):
            detector.detect_condition(condition, 90)

    def test_release_tears_down_session_and_ocr(self, ready_detector, text_recognizer, condition):
        ready_detector.release()

        assert ready_detector.state == DetectorState.IDLE
        assert ready_detector.session is None
        assert text_recognizer.released
        with pytest.raises(SessionStateError):
            ready_detector.detect_condition(condition, 90)

    def test_reset_metrics_allows_a_new_ratio(self, detector):
        assert detector.set_screen_metrics('screen', 1000, 2000, 50) == pytest.approx(0.5)
        assert detector.set_screen_metrics('screen', 1000, 2000, 25) == pytest.approx(0.5)

        detector.reset_screen_metrics('screen')
        assert detector.session is None
        assert detector.set_screen_metrics('screen', 1000, 2000, 25) == pytest.approx(0.25)

    def test_not_found_outcome_is_canonical(self):
        assert DetectionOutcome.not_found().to_dict() == {
            'found': False, 'center_x': 0, 'center_y': 0, 'confidence': 0.0
        }
