"""Sliding-window pileup construction.

The engine consumes coordinate-sorted alignments one at a time and groups their
bases by reference position. A position is handed to the registered visitors
only once no later read can add evidence to it: when a read starting further
right arrives, when the reference changes, or on :meth:`PileupEngine.flush`.
"""

from __future__ import annotations

from bisect import bisect_left
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional

import pysam

from .errors import UnsortedInputError
from .models import DELETION_BASE, Observation, PileupPosition

Visitor = Callable[[PileupPosition], None]


@dataclass(frozen=True)
class ReadFilter:
    """Which mapped reads contribute to the pileup.

    The defaults keep every mapped read with a CIGAR and a sequence.
    """

    min_mapq: int = 0
    skip_duplicates: bool = False
    include_secondary: bool = True
    include_supplementary: bool = True
    skip_qcfail: bool = False


def extract_observations(read: pysam.AlignedSegment) -> Dict[int, Observation]:
    """Walk the CIGAR once and return {pos0: Observation} for one read.

    Aligned bases (M, =, X) give base observations and deletions (D) give
    deletion observations. Reference skips (N) are not observations.
    """
    if read.is_unmapped or read.cigartuples is None:
        return {}

    seq = read.query_sequence
    if seq is None:
        return {}
    quals = read.query_qualities  # can be None

    read_length = len(seq)
    mapq = int(read.mapping_quality)
    is_reverse = bool(read.is_reverse)

    out: Dict[int, Observation] = {}
    ref_pos = read.reference_start
    query_pos = 0

    for op, length in read.cigartuples:
        if op in (0, 7, 8):  # M, =, X: consumes query and ref
            for i in range(length):
                qpos = query_pos + i
                if qpos >= read_length:
                    break
                out[ref_pos + i] = Observation(
                    base=seq[qpos],
                    quality=int(quals[qpos]) if quals is not None else 0,
                    mapping_quality=mapq,
                    offset=qpos,
                    read_length=read_length,
                    is_reverse=is_reverse,
                )
            ref_pos += length
            query_pos += length
        elif op == 2:  # D: consumes ref only
            for i in range(length):
                out[ref_pos + i] = Observation(
                    base=DELETION_BASE,
                    quality=0,
                    mapping_quality=mapq,
                    offset=query_pos,
                    read_length=read_length,
                    is_reverse=is_reverse,
                    is_deletion=True,
                )
            ref_pos += length
        elif op == 3:  # N: consumes ref only
            ref_pos += length
        elif op in (1, 4):  # I, S: consumes query only
            query_pos += length
        else:
            # H, P, B: consume neither
            continue

    return out


@dataclass
class _ActiveRead:
    start: int
    end: int
    observations: Dict[int, Observation]
    # sorted keys of observations; reference skips leave gaps
    positions: List[int]

    def next_observed(self, pos0: int) -> int:
        return self.positions[bisect_left(self.positions, pos0)]


class PileupEngine:
    """Push-style pileup builder.

    Parameters
    ----------
    read_filter:
        Read inclusion rules. Unmapped reads are always skipped.
    """

    def __init__(self, read_filter: Optional[ReadFilter] = None) -> None:
        self.read_filter = read_filter or ReadFilter()
        self._visitors: List[Visitor] = []
        self._active: List[_ActiveRead] = []
        self._ready: Deque[PileupPosition] = deque()
        self._reference_id = -1
        self._next_pos = 0
        self.counts: Dict[str, int] = {
            "reads_total": 0,
            "reads_used": 0,
            "reads_unmapped": 0,
            "reads_skipped_mapq": 0,
            "reads_skipped_duplicates": 0,
            "reads_skipped_secondary": 0,
            "reads_skipped_supplementary": 0,
            "reads_skipped_qcfail": 0,
            "reads_skipped_empty": 0,
            "positions_emitted": 0,
        }

    def add_visitor(self, visitor: Visitor) -> None:
        self._visitors.append(visitor)

    @property
    def has_pending(self) -> bool:
        """True if reads or finalized positions are still buffered."""
        return bool(self._active or self._ready)

    def _accepts(self, read: pysam.AlignedSegment) -> bool:
        f = self.read_filter
        if read.is_unmapped or read.reference_id < 0 or read.cigartuples is None:
            self.counts["reads_unmapped"] += 1
            return False
        if read.is_secondary and not f.include_secondary:
            self.counts["reads_skipped_secondary"] += 1
            return False
        if read.is_supplementary and not f.include_supplementary:
            self.counts["reads_skipped_supplementary"] += 1
            return False
        if f.skip_duplicates and read.is_duplicate:
            self.counts["reads_skipped_duplicates"] += 1
            return False
        if f.skip_qcfail and read.is_qcfail:
            self.counts["reads_skipped_qcfail"] += 1
            return False
        if read.mapping_quality < f.min_mapq:
            self.counts["reads_skipped_mapq"] += 1
            return False
        return True

    def add_alignment(self, read: pysam.AlignedSegment) -> None:
        """Add one read; visitors are called for every position it finalizes."""
        self.counts["reads_total"] += 1
        if not self._accepts(read):
            return

        observations = extract_observations(read)
        if not observations:
            self.counts["reads_skipped_empty"] += 1
            return

        tid = int(read.reference_id)
        start = int(read.reference_start)

        if tid != self._reference_id:
            if tid < self._reference_id:
                raise UnsortedInputError(
                    f"read {read.query_name} on reference {tid} follows reference {self._reference_id}"
                )
            self._finalize(None)
            self._reference_id = tid
            self._next_pos = 0
        elif start < self._next_pos:
            raise UnsortedInputError(
                f"read {read.query_name} starts at {start} but positions up to "
                f"{self._next_pos - 1} were already emitted"
            )

        self._active.append(
            _ActiveRead(
                start=start,
                end=max(observations) + 1,
                observations=observations,
                positions=sorted(observations),
            )
        )
        self.counts["reads_used"] += 1

        self._finalize(start)
        self._deliver()

    def flush(self) -> None:
        """Emit every position that the reads seen so far can still produce."""
        self._finalize(None)
        self._deliver()

    def reset(self) -> None:
        """Drop buffered reads and finalized positions without emitting them."""
        self._active = []
        self._ready.clear()
        self._reference_id = -1
        self._next_pos = 0

    def _finalize(self, limit: Optional[int]) -> None:
        """Move positions before ``limit`` (all of them when None) to the ready queue."""
        while self._active:
            # every active read still has an observation at or after _next_pos
            p = min(r.next_observed(self._next_pos) for r in self._active)
            if limit is not None and p >= limit:
                break
            obs = tuple(r.observations[p] for r in self._active if p in r.observations)
            self._ready.append(PileupPosition(reference_id=self._reference_id, position=p, observations=obs))
            self._next_pos = p + 1
            self._active = [r for r in self._active if r.end > self._next_pos]

    def _deliver(self) -> None:
        # A visitor failure loses only the position being delivered; the rest
        # stay queued for the next add_alignment/flush.
        while self._ready:
            pileup = self._ready.popleft()
            self.counts["positions_emitted"] += 1
            for visitor in self._visitors:
                visitor(pileup)
