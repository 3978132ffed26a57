"""Batch orchestration: pending queue to preprocessor, extractor and slots.

Items run strictly one after another. :meth:`BatchOrchestrator.run` is a
generator; each yielded :class:`BatchProgress` is a point where the
caller gets control back, and its return value is the
:class:`BatchReport`.
"""

from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass
from enum import StrEnum

from ocr_keeper.exceptions import BatchInProgressError
from ocr_keeper.extraction.text_extractor import TextExtractor, batch_percent
from ocr_keeper.preprocessing.pipeline import Preprocessor
from ocr_keeper.store.models import PendingImage
from ocr_keeper.store.slot_store import SlotStore, SlotTarget
from ocr_keeper.utils.config import MatchMode, PersistPolicy
from ocr_keeper.utils.logger import get_logger

from .pending_queue import PendingQueue

logger = get_logger(__name__)


class BatchState(StrEnum):
    IDLE = "idle"
    SIZING = "sizing"
    RUNNING = "running"
    DONE = "done"


class BatchStatus(StrEnum):
    """How a batch run ended."""

    COMPLETED = "completed"
    NOTHING_TO_PROCESS = "nothing_to_process"
    NO_ROOM = "no_room"


@dataclass(frozen=True)
class BatchProgress:
    """One progress update for display."""

    label: str
    completed: int
    total: int
    percent: int


@dataclass
class BatchReport:
    """Summary of a finished batch run."""

    status: BatchStatus
    completed: int = 0
    failed: int = 0
    pages_added: int = 0
    remaining: int = 0


class BatchOrchestrator:
    """Runs queued images through OCR into empty slots.

    Args:
        store: Slot grid receiving the results.
        queue: Pending images, drained in FIFO order.
        preprocessor: Image normalizer run before recognition.
        extractor: OCR plus candidate matching.
        persist_policy: ``batch`` writes once at the end of a run, ``item``
            also writes after every committed slot.
    """

    def __init__(
        self,
        store: SlotStore,
        queue: PendingQueue,
        preprocessor: Preprocessor,
        extractor: TextExtractor,
        persist_policy: PersistPolicy = PersistPolicy.BATCH,
    ) -> None:
        self.store = store
        self.queue = queue
        self.preprocessor = preprocessor
        self.extractor = extractor
        self.persist_policy = persist_policy
        self.state = BatchState.IDLE

    @property
    def running(self) -> bool:
        return self.state != BatchState.IDLE

    def _persist(self, in_flight: Sequence[PendingImage] = ()) -> None:
        """Save the grid with every image not yet committed to a slot."""
        self.store.persist([*in_flight, *self.queue.items()])

    def _read_item(
        self,
        item: PendingImage,
        index: int,
        total: int,
        match_mode: MatchMode | str | None,
        match_term: str | None,
        on_progress: Callable[[int], None],
    ) -> str:
        """Preprocess and extract one image; any failure yields ``""``."""
        try:
            bitmap = self.preprocessor.preprocess(item.data)
            return self.extractor.extract(
                bitmap,
                match_mode,
                match_term,
                item_index=index,
                total_items=total,
                on_progress=on_progress,
            )
        except Exception as exc:
            logger.warning("Failed to read %s: %s", item.name, exc)
            return ""

    def run(
        self,
        match_mode: MatchMode | str | None = None,
        match_term: str | None = None,
    ) -> Generator[BatchProgress, None, BatchReport]:
        """Process the pending queue into empty slots.

        Args:
            match_mode: Match mode for this run; defaults to the extractor's.
            match_term: Match term for this run; defaults to the extractor's.

        Yields:
            Progress before each item, during recognition, after each item,
            and once at completion.

        Returns:
            Report of the run.

        Raises:
            BatchInProgressError: If another run has not finished.
            StorageError: If a write fails. Committed slots stay.

        Images drained but not committed when the run stops early, by an
        error or by the caller closing the stream, go back to the head of
        the queue.
        """
        if self.running:
            raise BatchInProgressError("A batch is already running")

        if not len(self.queue):
            logger.info("Nothing queued to process")
            return BatchReport(BatchStatus.NOTHING_TO_PROCESS)

        self.state = BatchState.SIZING
        jobs: list[PendingImage] = []
        committed = 0
        try:
            empty = self.store.empty_slots()
            pages_added = self.store.ensure_capacity(len(empty) + len(self.queue))
            targets: list[SlotTarget] = self.store.empty_slots()
            if not targets:
                logger.info("No empty slots left for %d queued image(s)", len(self.queue))
                return BatchReport(BatchStatus.NO_ROOM, remaining=len(self.queue))

            jobs = self.queue.drain(min(len(targets), len(self.queue)))
            total = len(jobs)
            logger.info("Processing %d image(s), %d left queued", total, len(self.queue))

            self.state = BatchState.RUNNING
            failed = 0
            for i, (item, target) in enumerate(zip(jobs, targets)):
                label = f"Reading: {item.name}"
                yield BatchProgress(label, i, total, batch_percent(i, 0.0, total))

                updates: list[BatchProgress] = []
                extracted = self._read_item(
                    item,
                    i,
                    total,
                    match_mode,
                    match_term,
                    lambda percent: updates.append(BatchProgress(label, i, total, percent)),
                )
                yield from updates

                if extracted:
                    self.store.commit(target, extracted)
                else:
                    self.store.commit_failure(target)
                    failed += 1
                committed += 1

                if self.persist_policy == PersistPolicy.ITEM:
                    self._persist(jobs[i + 1 :])

                yield BatchProgress(label, i + 1, total, batch_percent(i, 1.0, total))

            self.state = BatchState.DONE
            self._persist()
            logger.info("Saved %d result(s), %d unreadable", total, failed)
            yield BatchProgress("Done", total, total, 100)

            return BatchReport(
                BatchStatus.COMPLETED,
                completed=total,
                failed=failed,
                pages_added=pages_added,
                remaining=len(self.queue),
            )
        finally:
            if committed < len(jobs):
                logger.warning("Batch stopped early, requeued %d image(s)", len(jobs) - committed)
                self.queue.requeue(jobs[committed:])
            self.state = BatchState.IDLE

    def process(
        self,
        match_mode: MatchMode | str | None = None,
        match_term: str | None = None,
        listener: Callable[[BatchProgress], None] | None = None,
    ) -> BatchReport:
        """Run a whole batch, handing each progress update to ``listener``."""
        stream = self.run(match_mode, match_term)
        while True:
            try:
                update = next(stream)
            except StopIteration as stop:
                return stop.value
            if listener:
                listener(update)
