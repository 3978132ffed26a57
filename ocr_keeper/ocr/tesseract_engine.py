"""Tesseract OCR engine wrapper for single-line label recognition.

Recognizes a whole preprocessed image as one block of text in Latin plus
Japanese, keeping the spacing between words.
"""

import io
from collections.abc import Callable
from typing import Protocol

import pytesseract
from PIL import Image

from ocr_keeper.utils.config import OCRConfig
from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]


class OCREngine(Protocol):
    """Anything that turns image bytes into raw recognized text."""

    def recognize(
        self, image: bytes, on_progress: ProgressCallback | None = None
    ) -> str: ...


class TesseractEngine:
    """Wrapper around Tesseract for label text recognition.

    Tesseract gives no intermediate progress, so ``on_progress`` receives
    ``0.0`` before the call and ``1.0`` once text is back.

    Args:
        config: OCR configuration (languages, page segmentation, timeout).
    """

    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()
        if self.config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.config.tesseract_cmd

    @property
    def tesseract_config(self) -> str:
        """Command-line flags handed to Tesseract."""
        parts = [f"--psm {self.config.psm}"]
        if self.config.preserve_interword_spaces:
            parts.append("-c preserve_interword_spaces=1")
        return " ".join(parts)

    def recognize(
        self, image: bytes, on_progress: ProgressCallback | None = None
    ) -> str:
        """Recognize text in an encoded image.

        Args:
            image: Encoded image bytes, normally the preprocessed PNG.
            on_progress: Optional callback receiving fractions in 0..1.

        Returns:
            Raw recognized text.

        Raises:
            pytesseract.TesseractError: If Tesseract fails.
            RuntimeError: If the call exceeds the configured timeout.
        """
        if on_progress:
            on_progress(0.0)

        with Image.open(io.BytesIO(image)) as pil_image:
            text = pytesseract.image_to_string(
                pil_image,
                lang=self.config.languages,
                config=self.tesseract_config,
                timeout=self.config.timeout,
            )

        if on_progress:
            on_progress(1.0)

        logger.debug("Tesseract returned %d characters", len(text))
        return text
