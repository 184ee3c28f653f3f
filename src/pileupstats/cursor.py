"""Seekable cursor over per-position pileup statistics.

Reads are pulled from an alignment source only when the caller needs more
results. Each finalized position coming out of the :class:`PileupEngine` is
turned into a :class:`PositionStatistics` and buffered in a
:class:`PileupResultQueue` until the caller takes it.

Example
-------
>>> with PileupCursor() as cursor:                     # doctest: +SKIP
...     cursor.open("sample.bam")
...     cursor.seek("chr1", 10_000)
...     stat = cursor.next()
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .engine import PileupEngine, ReadFilter
from .errors import InvalidReferenceError, UnknownReferenceError
from .models import PileupPosition, PositionStatistics
from .result_queue import PileupResultQueue
from .source import BamAlignmentSource
from .stats import compute_position_statistics
from .validation import suggest_reference

logger = logging.getLogger(__name__)


class CursorState(enum.Enum):
    IDLE = "idle"
    SEEKING = "seeking"
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"


class PileupCursor:
    """FIFO, seekable stream of :class:`PositionStatistics`.

    Parameters
    ----------
    read_filter:
        Read inclusion rules passed to the windowing engine.

    Notes
    -----
    Not thread-safe. A cursor owns its engine, its queue and the source it is
    bound to; ``open`` and ``seek`` discard every buffered result.
    """

    def __init__(self, *, read_filter: Optional[ReadFilter] = None) -> None:
        self._queue = PileupResultQueue()
        self._engine = PileupEngine(read_filter)
        self._engine.add_visitor(self._on_position)
        self._source = None
        self._owns_source = False
        self._drained = False
        self.state = CursorState.IDLE

    # -----------------
    # source binding
    # -----------------

    def open(self, source: Union[str, Path, object]) -> None:
        """Bind to an alignment file path or an already opened source."""
        if isinstance(source, (str, Path)):
            new_source = BamAlignmentSource(source)
            owns = True
        else:
            new_source = source
            owns = False

        self._close_source()
        self._source = new_source
        self._owns_source = owns
        self._engine.reset()
        self._queue.clear()
        self._queue.disarm()
        self._drained = False
        self.state = CursorState.IDLE

    def close(self) -> None:
        self._close_source()
        self._source = None
        self._engine.reset()
        self._queue.clear()
        self._queue.disarm()
        self.state = CursorState.IDLE

    def _close_source(self) -> None:
        if self._source is not None and self._owns_source:
            self._source.close()

    def __enter__(self) -> "PileupCursor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def reference_names(self) -> List[str]:
        return list(self._require_source().reference_names)

    @property
    def engine_counts(self) -> dict:
        return dict(self._engine.counts)

    def _require_source(self):
        if self._source is None:
            raise RuntimeError("No alignment source is open; call open() first.")
        return self._source

    # -----------------
    # pulling
    # -----------------

    def _on_position(self, pileup: PileupPosition) -> None:
        # positions before the seek target are never computed
        if self._queue.suppresses(pileup.reference_id, pileup.position):
            return
        self._queue.push(compute_position_statistics(pileup))

    def _advance(self) -> bool:
        """Feed one more read to the engine. Returns False once nothing is left."""
        if self._drained:
            if self._engine.has_pending:
                self._engine.flush()
                return True
            return False

        read = self._source.next_alignment()
        if read is None:
            self._drained = True
            # end of stream: no later read will arrive to finalize the tail
            self._engine.flush()
        else:
            self._engine.add_alignment(read)
        return True

    def seek(self, name: str, position: int) -> None:
        """Reposition to ``name``:``position`` (1-based).

        Afterwards :meth:`next` returns the first covered position at or after
        the target on that reference, a position on a later reference, or None.
        """
        source = self._require_source()
        if position < 1:
            raise ValueError(f"position must be >= 1 (1-based), got {position}")
        try:
            reference_id = source.reference_id(name)
        except UnknownReferenceError as e:
            msg = f"invalid ref name {name}"
            hint = suggest_reference(name, source.reference_names)
            if hint is not None:
                msg += f" (did you mean {hint}?)"
            raise InvalidReferenceError(msg, name=name) from e

        pos0 = position - 1
        logger.debug("Seek to %s:%d (reference id %d)", name, position, reference_id)

        self._engine.reset()
        self._queue.clear()
        self._queue.arm(reference_id, pos0)
        source.seek_to_coordinate(reference_id, pos0)
        self._drained = False
        self.state = CursorState.SEEKING

        while True:
            self._queue.discard_before(reference_id, pos0)
            if self._queue.front_is_at_or_past(reference_id, pos0):
                self.state = CursorState.STREAMING
                return
            if not self._advance():
                self.state = CursorState.EXHAUSTED
                logger.debug("Seek to %s:%d found no covered position", name, position)
                return

    def next(self) -> Optional[PositionStatistics]:
        """Return the next record, or None when the source is exhausted."""
        self._require_source()
        while not self._queue:
            if not self._advance():
                self.state = CursorState.EXHAUSTED
                return None
        self.state = CursorState.STREAMING
        return self._queue.pop()

    def __iter__(self) -> Iterator[PositionStatistics]:
        while True:
            stat = self.next()
            if stat is None:
                return
            yield stat
