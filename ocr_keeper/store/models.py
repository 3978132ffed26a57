"""Pydantic models for the persisted page/slot grid and pending images."""

import mimetypes
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Slot(BaseModel):
    """One storage location for a single confirmed line of text."""

    text: str = ""
    confirmed: bool = False
    ocr_failed: bool = False
    copy_history: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.text == ""


class Page(BaseModel):
    """A fixed-size group of slots."""

    id: int
    slots: list[Slot]

    @classmethod
    def blank(cls, page_id: int, slots_per_page: int) -> "Page":
        """Create a page whose slots are all empty."""
        return cls(id=page_id, slots=[Slot() for _ in range(slots_per_page)])


class AppState(BaseModel):
    """All pages plus the page currently shown to the user."""

    pages: list[Page] = Field(default_factory=list)
    current_page: int = 1


class PendingImage(BaseModel):
    """An image waiting in the queue for OCR."""

    model_config = ConfigDict(ser_json_bytes="base64", val_json_bytes="base64")

    name: str
    mime_type: str = "application/octet-stream"
    data: bytes

    @classmethod
    def from_path(cls, path: Path) -> "PendingImage":
        """Read an image file into a queue entry."""
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            mime_type=mime_type or "application/octet-stream",
            data=path.read_bytes(),
        )


class StoredSession(AppState):
    """Document written under the storage key: state plus pending queue."""

    pending_files: list[PendingImage] = Field(default_factory=list)
