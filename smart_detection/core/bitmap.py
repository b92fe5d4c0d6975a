"""
Bitmap ingestion - converts the supported image inputs to OpenCV BGR arrays
"""

from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

from ..utils.exceptions import ImageProcessingError

Bitmap = Union[np.ndarray, Image.Image, str, Path]


def _load_path(path: Path) -> np.ndarray:
    if not path.exists():
        raise ImageProcessingError(f"Image not found: {path}")
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ImageProcessingError(f"Failed to load image: {path}")
    return image


def to_bgr(bitmap: Bitmap) -> np.ndarray:
    """
    Convert a bitmap to a contiguous uint8 BGR array

    Args:
        bitmap: numpy array (gray, BGR or BGRA), PIL image, or image file path

    Returns:
        HxWx3 uint8 array in BGR order
    """
    if isinstance(bitmap, (str, Path)):
        return _load_path(Path(bitmap))

    if isinstance(bitmap, Image.Image):
        # PIL images are RGB ordered
        rgb = np.asarray(bitmap.convert('RGB'))
        return cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)

    if not isinstance(bitmap, np.ndarray):
        raise ImageProcessingError(f"Unsupported bitmap type: {type(bitmap).__name__}")

    if bitmap.size == 0:
        raise ImageProcessingError("Bitmap is empty")

    image = bitmap
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return np.ascontiguousarray(image)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    raise ImageProcessingError(f"Unsupported bitmap shape: {bitmap.shape}")


def bitmap_size(bitmap: Bitmap) -> Tuple[int, int]:
    """Read (width, height) of a bitmap without converting it"""
    if isinstance(bitmap, Image.Image):
        return bitmap.size
    if isinstance(bitmap, np.ndarray) and bitmap.ndim >= 2:
        return bitmap.shape[1], bitmap.shape[0]
    image = to_bgr(bitmap)
    return image.shape[1], image.shape[0]
