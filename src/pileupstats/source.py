"""Alignment sources feeding the pileup cursor.

A source hands out coordinate-sorted reads one at a time and can be
repositioned to a (reference_id, position) coordinate. Two are provided: an
indexed BAM/CRAM file read through pysam, and an in-memory list of reads.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import pysam

from .errors import FileOpenError, IndexMissingError, UnknownReferenceError

logger = logging.getLogger(__name__)


class BamAlignmentSource:
    """Indexed alignment file opened with :class:`pysam.AlignmentFile`.

    Until :meth:`seek_to_coordinate` is called, reads are streamed in file order.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        if not Path(self.path).exists():
            raise FileOpenError(f"unable to open alignment file {self.path}: no such file")

        try:
            self._bam = pysam.AlignmentFile(self.path, "rb")
        except (OSError, ValueError) as e:
            raise FileOpenError(f"unable to open alignment file {self.path}: {e}") from e

        if not self._bam.has_index():
            self._bam.close()
            raise IndexMissingError(
                f"unable to open index for alignment file {self.path}. Run: samtools index {self.path}"
            )

        self._names: List[str] = list(self._bam.references)
        self._iter: Iterator[pysam.AlignedSegment] = self._bam.fetch(until_eof=True)
        logger.debug("Opened %s (%d references)", self.path, len(self._names))

    @property
    def reference_names(self) -> List[str]:
        return list(self._names)

    def reference_id(self, name: str) -> int:
        tid = self._bam.get_tid(name)
        if tid < 0:
            raise UnknownReferenceError(f"invalid reference name {name}", name=name)
        return int(tid)

    def _iter_from(self, reference_id: int, pos0: int) -> Iterator[pysam.AlignedSegment]:
        # reads overlapping pos0 on the target reference, then every later reference
        yield from self._bam.fetch(contig=self._names[reference_id], start=max(0, pos0))
        for name in self._names[reference_id + 1 :]:
            yield from self._bam.fetch(contig=name)

    def seek_to_coordinate(self, reference_id: int, pos0: int) -> None:
        if not 0 <= reference_id < len(self._names):
            raise UnknownReferenceError(f"invalid reference id {reference_id}", name=str(reference_id))
        logger.debug("Seeking %s to %s:%d", self.path, self._names[reference_id], pos0)
        self._iter = self._iter_from(reference_id, pos0)

    def next_alignment(self) -> Optional[pysam.AlignedSegment]:
        """Next read, or None at end of stream."""
        return next(self._iter, None)

    def close(self) -> None:
        self._bam.close()

    def __enter__(self) -> "BamAlignmentSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MemoryAlignmentSource:
    """Source over a coordinate-sorted sequence of already decoded reads."""

    def __init__(self, reads: Sequence[pysam.AlignedSegment], reference_names: Sequence[str]) -> None:
        self._reads = list(reads)
        self._names = list(reference_names)
        self._idx = 0

    @property
    def reference_names(self) -> List[str]:
        return list(self._names)

    def reference_id(self, name: str) -> int:
        try:
            return self._names.index(name)
        except ValueError:
            raise UnknownReferenceError(f"invalid reference name {name}", name=name) from None

    def seek_to_coordinate(self, reference_id: int, pos0: int) -> None:
        if not 0 <= reference_id < len(self._names):
            raise UnknownReferenceError(f"invalid reference id {reference_id}", name=str(reference_id))
        for i, read in enumerate(self._reads):
            if read.reference_id > reference_id:
                break
            if read.reference_id == reference_id and read.reference_end is not None and read.reference_end > pos0:
                break
        else:
            i = len(self._reads)
        self._idx = i

    def next_alignment(self) -> Optional[pysam.AlignedSegment]:
        if self._idx >= len(self._reads):
            return None
        read = self._reads[self._idx]
        self._idx += 1
        return read

    def close(self) -> None:
        pass
