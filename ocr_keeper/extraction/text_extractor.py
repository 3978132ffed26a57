"""Text extraction: OCR call, progress scaling and match selection."""

from ocr_keeper.ocr.tesseract_engine import OCREngine, ProgressCallback
from ocr_keeper.utils.config import ExtractionConfig, MatchMode
from ocr_keeper.utils.logger import get_logger

from .candidates import find_match

logger = get_logger(__name__)


def batch_percent(item_index: int, fraction: float, total_items: int) -> int:
    """Convert per-item recognition progress into batch progress.

    Args:
        item_index: Zero-based index of the item being recognized.
        fraction: Engine progress for that item, nominally 0..1.
        total_items: Number of items in the batch.

    Returns:
        Whole percent in 0..100.
    """
    if total_items <= 0:
        return 0
    percent = round((item_index + fraction) / total_items * 100)
    return min(100, max(0, percent))


class TextExtractor:
    """Turns a preprocessed bitmap into one candidate string.

    Args:
        engine: OCR engine used for recognition.
        config: Candidate derivation settings.
    """

    def __init__(self, engine: OCREngine, config: ExtractionConfig | None = None) -> None:
        self.engine = engine
        self.config = config or ExtractionConfig()

    def extract(
        self,
        bitmap: bytes,
        match_mode: MatchMode | str | None = None,
        match_term: str | None = None,
        item_index: int = 0,
        total_items: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Recognize a bitmap and reduce it to the matching candidate.

        Engine failures of any kind yield ``""`` and are logged, never raised.

        Args:
            bitmap: Encoded image handed to the engine.
            match_mode: Match mode; defaults to the configured one.
            match_term: Match term; defaults to the configured one.
            item_index: Position of this item in the batch, for progress.
            total_items: Batch size, for progress.
            on_progress: Receives batch-relative percent (0..100).

        Returns:
            The selected candidate, or ``""``.
        """
        mode = match_mode if match_mode is not None else self.config.match_mode
        term = (match_term if match_term is not None else self.config.match_term).strip()

        def _report(fraction: float) -> None:
            if on_progress:
                on_progress(batch_percent(item_index, fraction, total_items))

        try:
            raw_text = self.engine.recognize(bitmap, on_progress=_report)
        except Exception as exc:
            logger.warning("OCR failed for item %d: %s", item_index + 1, exc)
            return ""

        result = find_match(
            raw_text,
            mode,
            term,
            separators=self.config.separators,
            split_tokens=self.config.split_tokens,
        )
        logger.debug("Item %d extracted %r", item_index + 1, result)
        return result
