from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Optional, Tuple

from .errors import EmptyQueueError
from .models import PositionStatistics

logger = logging.getLogger(__name__)


class PileupResultQueue:
    """FIFO of computed statistics with a one-shot suppress-before watermark.

    While the watermark is armed, records that sort before it in
    (reference_id, position) order are dropped on :meth:`push`. The first
    record that is kept disarms the watermark.
    """

    def __init__(self) -> None:
        self._items: Deque[PositionStatistics] = deque()
        self._watermark: Optional[Tuple[int, int]] = None

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def armed(self) -> bool:
        return self._watermark is not None

    @property
    def watermark(self) -> Optional[Tuple[int, int]]:
        return self._watermark

    def arm(self, reference_id: int, pos0: int) -> None:
        self._watermark = (int(reference_id), int(pos0))

    def disarm(self) -> None:
        self._watermark = None

    def suppresses(self, reference_id: int, pos0: int) -> bool:
        """True if a record at this coordinate would be dropped by :meth:`push`.

        Lets callers skip computing records that can never be enqueued. The
        watermark is left armed either way.
        """
        return self._watermark is not None and (reference_id, pos0) < self._watermark

    def push(self, stat: PositionStatistics) -> bool:
        """Enqueue ``stat`` unless the watermark suppresses it. Returns True if kept."""
        if self._watermark is not None:
            if self.suppresses(stat.reference_id, stat.pos0):
                return False
            self._watermark = None
        self._items.append(stat)
        return True

    def clear(self) -> None:
        self._items.clear()

    def peek(self) -> Optional[PositionStatistics]:
        return self._items[0] if self._items else None

    def pop(self) -> PositionStatistics:
        if not self._items:
            raise EmptyQueueError("pop from an empty pileup result queue")
        return self._items.popleft()

    def discard_before(self, reference_id: int, pos0: int) -> int:
        """Drop front records on ``reference_id`` that lie before ``pos0``."""
        dropped = 0
        while self._items and self._items[0].reference_id == reference_id and self._items[0].pos0 < pos0:
            self._items.popleft()
            dropped += 1
        if dropped:
            logger.debug("Discarded %d buffered positions before %d:%d", dropped, reference_id, pos0)
        return dropped

    def front_is_at_or_past(self, reference_id: int, pos0: int) -> bool:
        """True if the front record is at/after the target, or on another reference.

        Sources deliver references in increasing order, so a front record on a
        different reference is already past the target.
        """
        if not self._items:
            return False
        front = self._items[0]
        return front.reference_id != reference_id or front.pos0 >= pos0
