"""Shared test fixtures for the OCR keeper test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from ocr_keeper.store.models import PendingImage
from ocr_keeper.store.storage import JsonFileStorage
from ocr_keeper.utils.config import AppConfig, StoreConfig


class FakeEngine:
    """OCR engine returning scripted texts, raising for exception entries."""

    def __init__(self, outputs: list[str | Exception] | None = None) -> None:
        self.outputs = list(outputs or [])
        self.calls: list[bytes] = []

    def recognize(self, image: bytes, on_progress=None) -> str:
        self.calls.append(image)
        if on_progress:
            on_progress(0.0)
            on_progress(0.5)
        output = self.outputs.pop(0) if self.outputs else ""
        if isinstance(output, Exception):
            raise output
        if on_progress:
            on_progress(1.0)
        return output


def make_png(width: int = 40, height: int = 20, value: int = 200) -> bytes:
    """Encode a flat RGB image as PNG bytes."""
    image = np.full((height, width, 3), value, dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(image).save(buf, format="PNG")
    return buf.getvalue()


def make_pending(count: int, prefix: str = "photo") -> list[PendingImage]:
    return [
        PendingImage(name=f"{prefix}{i}.png", mime_type="image/png", data=make_png())
        for i in range(count)
    ]


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def store_config() -> StoreConfig:
    """Small grid: 3 pages of 4 slots."""
    return StoreConfig(max_pages=3, slots_per_page=4, failure_text="UNREADABLE")


@pytest.fixture
def storage(tmp_path: Path) -> JsonFileStorage:
    return JsonFileStorage(tmp_path / "state")


@pytest.fixture
def app_config(store_config: StoreConfig) -> AppConfig:
    return AppConfig(store=store_config)
