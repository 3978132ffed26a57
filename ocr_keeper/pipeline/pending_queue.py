"""Bounded FIFO of images waiting for OCR."""

from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from ocr_keeper.store.models import PendingImage
from ocr_keeper.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EnqueueResult:
    """How many offered images were queued and how many were turned away."""

    accepted: int
    rejected: int


class PendingQueue:
    """Capacity-bounded queue drained only by the batch orchestrator.

    Args:
        capacity: Maximum number of queued images.
        items: Initial contents, e.g. restored from storage. Anything past
            ``capacity`` is dropped.
    """

    def __init__(self, capacity: int, items: Iterable[PendingImage] = ()) -> None:
        self.capacity = capacity
        self._items: deque[PendingImage] = deque()
        result = self.enqueue(items)
        if result.rejected:
            logger.warning("Dropped %d restored images over capacity", result.rejected)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PendingImage]:
        return iter(self._items)

    def size(self) -> int:
        return len(self._items)

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - len(self._items))

    def items(self) -> list[PendingImage]:
        """Snapshot of the queued images in order."""
        return list(self._items)

    def enqueue(self, images: Iterable[PendingImage]) -> EnqueueResult:
        """Queue as many images as fit; reject the rest.

        Args:
            images: Images in the order the user picked them.

        Returns:
            Counts of accepted and rejected images.
        """
        offered = list(images)
        accepted = offered[: self.remaining]
        self._items.extend(accepted)

        result = EnqueueResult(accepted=len(accepted), rejected=len(offered) - len(accepted))
        if offered:
            logger.info(
                "Queued %d image(s), rejected %d, %d/%d pending",
                result.accepted,
                result.rejected,
                len(self._items),
                self.capacity,
            )
        return result

    def drain(self, n: int) -> list[PendingImage]:
        """Remove and return the first ``n`` images in order."""
        count = min(max(n, 0), len(self._items))
        return [self._items.popleft() for _ in range(count)]

    def requeue(self, images: Iterable[PendingImage]) -> None:
        """Put drained images back at the head, keeping their order."""
        self._items.extendleft(reversed(list(images)))
