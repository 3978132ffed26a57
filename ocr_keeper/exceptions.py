"""Exception hierarchy for the OCR keeper."""


class OCRKeeperError(Exception):
    """Base exception for the OCR keeper."""


class ImageDecodeError(OCRKeeperError):
    """Raised when an image cannot be decoded into a pixel grid."""


class StorageError(OCRKeeperError):
    """Raised when the session cannot be written to durable storage."""


class BatchInProgressError(OCRKeeperError):
    """Raised when a batch is started while another one is running."""


class PageNotFoundError(OCRKeeperError):
    """Raised when a page id does not resolve to an existing page."""


class SlotNotFoundError(OCRKeeperError):
    """Raised when a slot index is outside the page."""


class SlotEmptyError(OCRKeeperError):
    """Raised when copying a slot that holds no text."""
