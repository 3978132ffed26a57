"""Page/slot grid with capacity, placement and persistence rules.

The grid always holds at least one page and every page holds exactly
``slots_per_page`` slots. Empty slots are handed out in page order, then
slot order, and that order is the order in which batch results land.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import ValidationError

from ocr_keeper.exceptions import (
    PageNotFoundError,
    SlotEmptyError,
    SlotNotFoundError,
)
from ocr_keeper.utils.config import StoreConfig
from ocr_keeper.utils.logger import get_logger

from .models import AppState, Page, PendingImage, Slot, StoredSession
from .storage import JsonFileStorage

logger = get_logger(__name__)


@dataclass(frozen=True)
class SlotTarget:
    """Address of one slot in the grid."""

    page_id: int
    page_index: int
    slot_index: int


def default_state(config: StoreConfig) -> AppState:
    """Fresh state holding a single empty page."""
    return AppState(pages=[Page.blank(1, config.slots_per_page)], current_page=1)


def _fresh_document(
    config: StoreConfig, pending_files: Sequence[PendingImage] = ()
) -> StoredSession:
    state = default_state(config)
    return StoredSession(
        pages=state.pages,
        current_page=state.current_page,
        pending_files=list(pending_files),
    )


def load_document(storage: JsonFileStorage, config: StoreConfig) -> StoredSession:
    """Read the stored session, falling back to a fresh one.

    Missing data, invalid JSON, schema mismatches and pages with the wrong
    slot count all yield the seeded default. A dangling current page is
    pointed back at the first page.
    """
    raw = storage.read(config.storage_key)
    if raw is None:
        logger.info("No saved session under %s, starting fresh", config.storage_key)
        return _fresh_document(config)

    try:
        doc = StoredSession.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Saved session is corrupt, resetting: %s", exc.errors()[:1])
        return _fresh_document(config)

    if any(len(page.slots) != config.slots_per_page for page in doc.pages):
        logger.warning(
            "Saved pages do not hold %d slots each, resetting", config.slots_per_page
        )
        return _fresh_document(config, doc.pending_files)

    if not doc.pages:
        doc.pages.append(Page.blank(1, config.slots_per_page))
    if all(page.id != doc.current_page for page in doc.pages):
        doc.current_page = doc.pages[0].id
    return doc


class SlotStore:
    """Owner of the page/slot grid.

    Args:
        state: Grid to manage. Seeded with one page if it has none.
        config: Capacity and storage settings.
        storage: Durable storage used by :meth:`persist`.
    """

    def __init__(
        self,
        state: AppState | None = None,
        config: StoreConfig | None = None,
        storage: JsonFileStorage | None = None,
    ) -> None:
        self.config = config or StoreConfig()
        self.state = state or default_state(self.config)
        self.storage = storage
        if not self.state.pages:
            self.state.pages.append(Page.blank(1, self.config.slots_per_page))

    @classmethod
    def restore(
        cls, storage: JsonFileStorage, config: StoreConfig
    ) -> tuple["SlotStore", list[PendingImage]]:
        """Load the grid from storage, or seed a fresh one.

        Returns:
            The store and the pending images saved alongside its grid.
        """
        doc = load_document(storage, config)
        state = AppState(pages=doc.pages, current_page=doc.current_page)
        return cls(state, config, storage), doc.pending_files

    def persist(self, pending_files: Sequence[PendingImage] = ()) -> None:
        """Write the whole grid, and the given pending images, to storage.

        Raises:
            StorageError: If the write fails. In-memory state is kept as is.
        """
        if self.storage is None:
            raise ValueError("SlotStore has no storage to persist to")
        doc = StoredSession(
            pages=self.state.pages,
            current_page=self.state.current_page,
            pending_files=list(pending_files),
        )
        self.storage.write(self.config.storage_key, doc.model_dump_json())
        logger.debug(
            "Persisted %d pages and %d pending images",
            len(self.state.pages),
            len(pending_files),
        )

    @property
    def pages(self) -> list[Page]:
        return self.state.pages

    def total_slots(self) -> int:
        return len(self.pages) * self.config.slots_per_page

    def occupied_count(self) -> int:
        return sum(1 for page in self.pages for slot in page.slots if not slot.is_empty)

    def empty_slots(self) -> list[SlotTarget]:
        """All empty slots in commit order: page order, then slot order."""
        return [
            SlotTarget(page.id, page_index, slot_index)
            for page_index, page in enumerate(self.pages)
            for slot_index, slot in enumerate(page.slots)
            if slot.is_empty
        ]

    def _next_page_id(self) -> int:
        return max(page.id for page in self.pages) + 1

    def ensure_capacity(self, required_empty_slots: int) -> int:
        """Append empty pages until enough slots are free or the cap is hit.

        Args:
            required_empty_slots: Number of empty slots wanted.

        Returns:
            Number of pages appended.
        """
        empty = len(self.empty_slots())
        added = 0
        while empty < required_empty_slots and len(self.pages) < self.config.max_pages:
            self.pages.append(Page.blank(self._next_page_id(), self.config.slots_per_page))
            empty += self.config.slots_per_page
            added += 1

        if added:
            logger.info("Added %d page(s), now %d", added, len(self.pages))
        if empty < required_empty_slots:
            logger.info(
                "Page limit %d reached with %d of %d slots free",
                self.config.max_pages,
                empty,
                required_empty_slots,
            )
        return added

    def _slot_at(self, target: SlotTarget) -> Slot:
        if not 0 <= target.page_index < len(self.pages):
            raise SlotNotFoundError(f"No page at index {target.page_index}")
        page = self.pages[target.page_index]
        if page.id != target.page_id:
            raise SlotNotFoundError(
                f"Page at index {target.page_index} is {page.id}, not {target.page_id}"
            )
        if not 0 <= target.slot_index < len(page.slots):
            raise SlotNotFoundError(f"Page {page.id} has no slot {target.slot_index + 1}")
        return page.slots[target.slot_index]

    def commit(self, target: SlotTarget, text: str) -> Slot:
        """Write an OCR result into a slot, marking it confirmed."""
        self._slot_at(target)
        slot = Slot(text=text, confirmed=True, ocr_failed=text == "")
        self.pages[target.page_index].slots[target.slot_index] = slot
        return slot

    def commit_failure(self, target: SlotTarget) -> Slot:
        """Write the failure marker into a slot."""
        self._slot_at(target)
        slot = Slot(text=self.config.failure_text, confirmed=True, ocr_failed=True)
        self.pages[target.page_index].slots[target.slot_index] = slot
        return slot

    def current_page(self) -> Page:
        """The selected page, or the first page if the selection dangles."""
        for page in self.pages:
            if page.id == self.state.current_page:
                return page
        return self.pages[0]

    def select_page(self, page_id: int) -> Page:
        page = self.find_page(page_id)
        self.state.current_page = page.id
        return page

    def find_page(self, page_id: int) -> Page:
        for page in self.pages:
            if page.id == page_id:
                return page
        raise PageNotFoundError(f"No page with id {page_id}")

    def delete_current_page(self) -> bool:
        """Delete the current page.

        The last remaining page is reset in place instead of removed.

        Returns:
            ``True`` if a page was removed, ``False`` if the sole page was reset.
        """
        if len(self.pages) == 1:
            page_id = self.pages[0].id
            self.pages[0] = Page.blank(page_id, self.config.slots_per_page)
            self.state.current_page = page_id
            logger.info("Reset sole page %d", page_id)
            return False

        removed = self.current_page().id
        self.state.pages = [page for page in self.pages if page.id != removed]
        self.state.current_page = self.pages[0].id
        logger.info("Deleted page %d, now showing page %d", removed, self.state.current_page)
        return True

    def get_slot(self, page_id: int, index: int) -> Slot:
        """Look up a slot by page id and zero-based index."""
        page = self.find_page(page_id)
        if not 0 <= index < len(page.slots):
            raise SlotNotFoundError(f"Page {page_id} has no slot {index + 1}")
        return page.slots[index]

    def begin_edit(self, page_id: int, index: int) -> Slot:
        """Unlock a slot for editing."""
        slot = self.get_slot(page_id, index)
        slot.confirmed = False
        return slot

    def confirm_edit(self, page_id: int, index: int, text: str) -> Slot:
        """Replace a slot's text and lock it again."""
        slot = self.get_slot(page_id, index)
        slot.text = text
        slot.confirmed = True
        return slot

    def record_copy(self, page_id: int, index: int) -> str:
        """Record a copy of a slot's text and return the text.

        Raises:
            SlotEmptyError: If the slot holds no text.
        """
        slot = self.get_slot(page_id, index)
        if slot.is_empty:
            raise SlotEmptyError(f"Slot {index + 1} on page {page_id} is empty")
        slot.copy_history.append(slot.text)
        return slot.text
