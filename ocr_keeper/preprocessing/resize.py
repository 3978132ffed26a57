"""Width bounding for oversized photos."""

import cv2
import numpy as np

from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)


def limit_width(image: np.ndarray, max_width: int = 1600) -> np.ndarray:
    """Downscale an image so its width does not exceed ``max_width``.

    Args:
        image: Input image as a numpy array.
        max_width: Largest width passed through unscaled.

    Returns:
        The input unchanged if narrow enough, otherwise an
        aspect-preserving downscale whose width equals ``max_width``.
    """
    h, w = image.shape[:2]
    if w <= max_width:
        return image

    new_h = max(1, round(h * max_width / w))
    result = cv2.resize(image, (max_width, new_h), interpolation=cv2.INTER_AREA)
    logger.debug("Downscaled %dx%d to %dx%d", w, h, max_width, new_h)
    return result
