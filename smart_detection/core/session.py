"""
Detection session - the state that lives across detection calls
"""

from dataclasses import dataclass, field
from enum import Enum

from .image_buffer import ImageBuffer


class DetectorState(Enum):
    IDLE = 'idle'
    METRICS_SET = 'metrics_set'
    SCREEN_CAPTURED = 'screen_captured'
    MATCHING_VISUAL = 'matching_visual'
    MATCHING_TEXT = 'matching_text'
    RESOLVED = 'resolved'


@dataclass
class DetectionSession:
    """
    Screen metrics and current frame of a detector

    Created by set_screen_metrics, mutated by set_screen_image, dropped by release.
    """
    tag: str
    frame_width: int
    frame_height: int
    quality: float
    scale_ratio: float
    screen_image: ImageBuffer = field(default_factory=ImageBuffer)
    frames_processed: int = 0

    @property
    def has_frame(self) -> bool:
        return self.screen_image.is_loaded
