"""Fixed preprocessing transform applied before recognition.

Decodes raw photo bytes, bounds the width, converts to luminance,
boosts contrast, binarizes, and re-encodes as PNG for the OCR engine.
"""

import io

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ocr_keeper.exceptions import ImageDecodeError
from ocr_keeper.utils.config import PreprocessingConfig
from ocr_keeper.utils.logger import get_logger

from .binarize import binarize_fixed, boost_contrast, to_luminance
from .resize import limit_width

logger = get_logger(__name__)


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes into an RGB pixel grid.

    EXIF orientation is applied so phone photos come out upright.

    Args:
        data: Encoded image (PNG, JPEG, ...).

    Returns:
        uint8 RGB array of shape (H, W, 3).

    Raises:
        ImageDecodeError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageDecodeError(f"Cannot decode image: {exc}") from exc


def encode_png(image: np.ndarray) -> bytes:
    """Encode a pixel grid as lossless PNG bytes."""
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise ImageDecodeError("PNG encoding failed")
    return buf.tobytes()


class Preprocessor:
    """Black/white normalizer for photographed labels.

    Args:
        config: Preprocessing configuration. When ``enabled`` is false the
            raw bytes are handed to the engine untouched.
    """

    def __init__(self, config: PreprocessingConfig | None = None) -> None:
        self.config = config or PreprocessingConfig()

    def to_bitmap(self, image: np.ndarray) -> np.ndarray:
        """Run the pixel-level transform on an already decoded RGB image."""
        scaled = limit_width(image, self.config.max_width)
        luminance = to_luminance(scaled)
        boosted = boost_contrast(
            luminance, factor=self.config.contrast, midpoint=self.config.midpoint
        )
        return binarize_fixed(boosted, threshold=self.config.threshold)

    def preprocess(self, data: bytes) -> bytes:
        """Normalize raw image bytes into a canonical black/white PNG.

        Args:
            data: Encoded source image.

        Returns:
            PNG bytes ready for recognition.

        Raises:
            ImageDecodeError: If the source cannot be decoded.
        """
        if not self.config.enabled:
            return data

        image = decode_image(data)
        bitmap = self.to_bitmap(image)
        logger.debug(
            "Preprocessed %dx%d image to %dx%d bitmap",
            image.shape[1],
            image.shape[0],
            bitmap.shape[1],
            bitmap.shape[0],
        )
        return encode_png(bitmap)
