"""Configuration management for the OCR keeper.

Loads and validates YAML configuration with defaults matching the
photo keeper: 20 pages of 10 slots, Latin plus Japanese recognition,
and a fixed black/white preprocessing transform.
"""

import logging
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")

DEFAULT_SEPARATORS: list[str] = [
    "\t",
    " ",
    "\u3000",
    ",",
    "，",
    "、",
    "。",
    ".",
    "．",
    ":",
    "：",
    ";",
    "；",
    "/",
    "／",
    "|",
    "｜",
    "・",
]


class MatchMode(StrEnum):
    """Which end of a candidate the match term must sit on."""

    PREFIX = "prefix"
    SUFFIX = "suffix"


class PersistPolicy(StrEnum):
    """When a batch run writes the session to storage."""

    BATCH = "batch"
    ITEM = "item"


class PreprocessingConfig(BaseModel):
    """Configuration for the fixed black/white image transform."""

    enabled: bool = True
    max_width: int = Field(default=1600, gt=0)
    contrast: float = 1.5
    midpoint: int = 128
    threshold: int = 145


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    languages: str = "eng+jpn"
    psm: int = 6
    preserve_interword_spaces: bool = True
    timeout: float = 0


class ExtractionConfig(BaseModel):
    """Configuration for candidate derivation and matching."""

    split_tokens: bool = True
    separators: list[str] = Field(default_factory=lambda: list(DEFAULT_SEPARATORS))
    match_mode: MatchMode = MatchMode.SUFFIX
    match_term: str = ""

    @field_validator("match_mode", mode="before")
    @classmethod
    def _unknown_mode_is_suffix(cls, value: object) -> object:
        if value not in {m.value for m in MatchMode}:
            return MatchMode.SUFFIX
        return value


class StoreConfig(BaseModel):
    """Configuration for the page/slot grid and its storage."""

    max_pages: int = Field(default=20, gt=0)
    slots_per_page: int = Field(default=10, gt=0)
    storage_dir: str = ".ocr_keeper"
    storage_key: str = "photo-ocr-keeper-v2"
    failure_text: str = "読み取れませんでした"
    persist_policy: PersistPolicy = PersistPolicy.BATCH

    @property
    def max_files(self) -> int:
        """Pending queue capacity, one image per addressable slot."""
        return self.max_pages * self.slots_per_page


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
