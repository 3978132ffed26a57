"""Luminance, contrast boost and fixed-cutoff binarization.

Turns a photographed label into pure black text on pure white so the
OCR engine sees no gray.
"""

import numpy as np

from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)

_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def to_luminance(image: np.ndarray) -> np.ndarray:
    """Convert an RGB image to luminance.

    Args:
        image: RGB image of shape (H, W, 3), or an already grayscale (H, W) image.

    Returns:
        Float luminance array of shape (H, W) in the 0..255 range.
    """
    if image.ndim == 2:
        return image.astype(np.float64)
    return image[..., :3].astype(np.float64) @ _LUMA_WEIGHTS


def boost_contrast(
    luminance: np.ndarray, factor: float = 1.5, midpoint: int = 128
) -> np.ndarray:
    """Stretch luminance away from a midpoint by a fixed slope.

    Args:
        luminance: Float luminance array.
        factor: Slope applied around the midpoint.
        midpoint: Value left unchanged by the boost.

    Returns:
        Boosted float array; values are not clipped.
    """
    return (luminance - midpoint) * factor + midpoint


def binarize_fixed(boosted: np.ndarray, threshold: int = 145) -> np.ndarray:
    """Binarize boosted luminance into a black/white RGB image.

    Args:
        boosted: Contrast-boosted luminance.
        threshold: Values strictly above become white, the rest black.

    Returns:
        uint8 array of shape (H, W, 3) holding only 0 and 255, equal
        across channels.
    """
    mask = np.where(boosted > threshold, 255, 0).astype(np.uint8)
    logger.debug("Binarized at threshold %d (%.1f%% white)", threshold, mask.mean() / 2.55)
    return np.repeat(mask[:, :, np.newaxis], 3, axis=2)
