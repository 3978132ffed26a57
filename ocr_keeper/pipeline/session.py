"""User-facing session over the slot grid and pending queue.

A :class:`Session` owns the application state, the pending queue and the
storage they are saved to. Every user command returns an
:class:`Outcome` with a status code and a display message; grid and queue
changes are saved before the command returns.
"""

from collections.abc import Callable, Generator, Iterable
from dataclasses import dataclass
from enum import StrEnum

from ocr_keeper.exceptions import (
    BatchInProgressError,
    PageNotFoundError,
    SlotEmptyError,
    SlotNotFoundError,
)
from ocr_keeper.extraction.text_extractor import TextExtractor
from ocr_keeper.ocr.tesseract_engine import OCREngine, TesseractEngine
from ocr_keeper.preprocessing.pipeline import Preprocessor
from ocr_keeper.store.models import PendingImage
from ocr_keeper.store.slot_store import SlotStore
from ocr_keeper.store.storage import JsonFileStorage
from ocr_keeper.utils.config import AppConfig, MatchMode
from ocr_keeper.utils.logger import get_logger

from .orchestrator import BatchOrchestrator, BatchProgress, BatchReport, BatchStatus
from .pending_queue import PendingQueue

logger = get_logger(__name__)


class OutcomeCode(StrEnum):
    """Status codes returned by session commands."""

    ADDED = "added"
    PARTIALLY_ADDED = "partially_added"
    QUEUE_FULL = "queue_full"
    NOTHING_TO_PROCESS = "nothing_to_process"
    NO_ROOM = "no_room"
    COMPLETED = "completed"
    PAGE_RESET = "page_reset"
    PAGE_DELETED = "page_deleted"
    PAGE_SELECTED = "page_selected"
    EDITING = "editing"
    CONFIRMED = "confirmed"
    COPIED = "copied"
    SLOT_EMPTY = "slot_empty"
    NOT_FOUND = "not_found"
    BUSY = "busy"
    MATCH_RULE_SET = "match_rule_set"
    QUEUE_STATUS = "queue_status"


@dataclass
class Outcome:
    """Result of a session command."""

    code: OutcomeCode
    message: str
    count: int = 0
    rejected: int = 0
    value: str | None = None


class Session:
    """The single active OCR keeper session.

    Args:
        config: Application configuration.
        storage: Durable storage; defaults to JSON files under
            ``config.store.storage_dir``.
        engine: OCR engine; defaults to Tesseract.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        storage: JsonFileStorage | None = None,
        engine: OCREngine | None = None,
    ) -> None:
        self.config = config or AppConfig()
        store_config = self.config.store
        self.storage = storage or JsonFileStorage(store_config.storage_dir)

        self.store, pending = SlotStore.restore(self.storage, store_config)
        self.queue = PendingQueue(store_config.max_files, pending)

        self.extractor = TextExtractor(
            engine or TesseractEngine(self.config.ocr), self.config.extraction
        )
        self.orchestrator = BatchOrchestrator(
            self.store,
            self.queue,
            Preprocessor(self.config.preprocessing),
            self.extractor,
            store_config.persist_policy,
        )
        self.match_mode: MatchMode = self.config.extraction.match_mode
        self.match_term: str = self.config.extraction.match_term

    def save(self) -> None:
        """Write grid and queue to storage.

        Raises:
            StorageError: If the write fails.
        """
        self.store.persist(self.queue.items())

    def _check_idle(self) -> None:
        if self.orchestrator.running:
            raise BatchInProgressError("A batch is running")

    def enqueue(self, images: Iterable[PendingImage]) -> Outcome:
        """Add images to the pending queue, up to its capacity."""
        try:
            self._check_idle()
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))

        capacity = self.queue.capacity
        result = self.queue.enqueue(images)
        if not result.accepted and result.rejected:
            return Outcome(
                OutcomeCode.QUEUE_FULL,
                f"{result.rejected} photo(s) not added: up to {capacity} photos can be queued",
                rejected=result.rejected,
            )

        self.save()
        if result.rejected:
            return Outcome(
                OutcomeCode.PARTIALLY_ADDED,
                f"{result.rejected} photo(s) not added: the limit is {capacity}",
                count=result.accepted,
                rejected=result.rejected,
            )
        return Outcome(OutcomeCode.ADDED, f"Added {result.accepted} photo(s)", count=result.accepted)

    def set_match_rule(self, mode: MatchMode | str, term: str) -> Outcome:
        """Choose which candidate future batches keep."""
        known = {m.value for m in MatchMode}
        self.match_mode = MatchMode(mode) if mode in known else MatchMode.SUFFIX
        self.match_term = term.strip()
        return Outcome(
            OutcomeCode.MATCH_RULE_SET,
            f"Keeping candidates by {self.match_mode} {self.match_term!r}",
        )

    def run_batch(self) -> Generator[BatchProgress, None, BatchReport]:
        """Progress stream of a batch run with the session's match rule."""
        return self.orchestrator.run(self.match_mode, self.match_term)

    def process(self, listener: Callable[[BatchProgress], None] | None = None) -> Outcome:
        """Process the pending queue into empty slots."""
        report = self.orchestrator.process(self.match_mode, self.match_term, listener)
        return self._report_outcome(report)

    @staticmethod
    def _report_outcome(report: BatchReport) -> Outcome:
        if report.status == BatchStatus.NOTHING_TO_PROCESS:
            return Outcome(OutcomeCode.NOTHING_TO_PROCESS, "Select photos first")
        if report.status == BatchStatus.NO_ROOM:
            return Outcome(OutcomeCode.NO_ROOM, "No empty slots left", count=report.remaining)
        return Outcome(
            OutcomeCode.COMPLETED,
            f"Saved {report.completed} result(s)",
            count=report.completed,
        )

    def delete_current_page(self) -> Outcome:
        """Delete the current page, or clear it if it is the only one."""
        try:
            self._check_idle()
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))

        removed = self.store.delete_current_page()
        self.save()
        if removed:
            return Outcome(OutcomeCode.PAGE_DELETED, "Deleted the current page")
        return Outcome(OutcomeCode.PAGE_RESET, "Cleared the last remaining page")

    def select_page(self, page_id: int) -> Outcome:
        try:
            self._check_idle()
            self.store.select_page(page_id)
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))
        except PageNotFoundError as exc:
            return Outcome(OutcomeCode.NOT_FOUND, str(exc))
        self.save()
        return Outcome(OutcomeCode.PAGE_SELECTED, f"Showing page {page_id}")

    def begin_edit(self, page_id: int, index: int) -> Outcome:
        """Unlock a slot so its text can be changed."""
        try:
            self._check_idle()
            self.store.begin_edit(page_id, index)
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))
        except (PageNotFoundError, SlotNotFoundError) as exc:
            return Outcome(OutcomeCode.NOT_FOUND, str(exc))
        self.save()
        return Outcome(OutcomeCode.EDITING, f"Editing slot {index + 1}")

    def confirm_edit(self, page_id: int, index: int, text: str) -> Outcome:
        """Store edited text in a slot and lock it."""
        try:
            self._check_idle()
            self.store.confirm_edit(page_id, index, text)
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))
        except (PageNotFoundError, SlotNotFoundError) as exc:
            return Outcome(OutcomeCode.NOT_FOUND, str(exc))
        self.save()
        return Outcome(OutcomeCode.CONFIRMED, f"Confirmed slot {index + 1}")

    def copy_slot(self, page_id: int, index: int) -> Outcome:
        """Record a copy of a slot's text; the text is in ``Outcome.value``."""
        try:
            self._check_idle()
            text = self.store.record_copy(page_id, index)
        except BatchInProgressError as exc:
            return Outcome(OutcomeCode.BUSY, str(exc))
        except (PageNotFoundError, SlotNotFoundError) as exc:
            return Outcome(OutcomeCode.NOT_FOUND, str(exc))
        except SlotEmptyError:
            return Outcome(OutcomeCode.SLOT_EMPTY, f"Slot {index + 1} is empty")
        self.save()
        return Outcome(OutcomeCode.COPIED, f"Copied slot {index + 1}", value=text)

    def queue_status(self) -> Outcome:
        pending = len(self.queue)
        label = f"Waiting: {pending}" if pending else "Waiting"
        return Outcome(
            OutcomeCode.QUEUE_STATUS,
            f"{label} ({pending}/{self.queue.capacity})",
            count=pending,
        )
