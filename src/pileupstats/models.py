from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

BASES = ("A", "C", "G", "T")
BASE_INDEX = {b: i for i, b in enumerate(BASES)}
AMBIGUOUS_BASE = "N"
DELETION_BASE = "*"


@dataclass(frozen=True)
class Observation:
    """One read's evidence at one reference position.

    Attributes
    ----------
    base:
        Base call as stored in the read (any case). ``*`` for deletions.
    quality:
        Phred base quality (0 when the read carries no qualities).
    mapping_quality:
        MAPQ of the read.
    offset:
        Index of the base within the read sequence, soft clips included.
        For deletions, the index of the next query base.
    read_length:
        Length of the read sequence, soft clips included.
    is_reverse:
        True when the read maps to the reverse strand.
    is_deletion:
        True when the read has a deletion at this position.
    """

    base: str
    quality: int
    mapping_quality: int
    offset: int
    read_length: int
    is_reverse: bool = False
    is_deletion: bool = False


@dataclass(frozen=True)
class PileupPosition:
    """All observations at one finalized reference position.

    ``position`` is 0-based, as produced by the windowing engine.
    """

    reference_id: int
    position: int
    observations: Tuple[Observation, ...]

    @property
    def depth(self) -> int:
        # deletions and N calls count towards depth
        return len(self.observations)


@dataclass(frozen=True)
class ChannelStats:
    """Aggregated metrics for one of the A/C/G/T/Total channels."""

    count: int = 0
    quality_sum: int = 0
    map_quality_sum: int = 0
    # read-end distance plus a reverse-strand indicator folded into one sum
    position_signal: int = 0
    reserved_1: int = 0
    reserved_2: int = 0

    def as_tuple(self) -> Tuple[int, int, int, int, int, int]:
        return (
            self.count,
            self.quality_sum,
            self.map_quality_sum,
            self.position_signal,
            self.reserved_1,
            self.reserved_2,
        )


@dataclass(frozen=True)
class PositionStatistics:
    """Per-position nucleotide summary.

    ``position`` is 1-based; use :attr:`pos0` for the internal coordinate.
    """

    reference_id: int
    position: int
    a: ChannelStats
    c: ChannelStats
    g: ChannelStats
    t: ChannelStats
    total: ChannelStats
    major_base_index: int
    minor_base_index: int
    ambiguous_count: int
    entropy: float
    reserved_1: int = 0
    reserved_2: int = 0

    @property
    def pos0(self) -> int:
        return self.position - 1

    @property
    def coordinate(self) -> Tuple[int, int]:
        """(reference_id, 0-based position), the cursor's sort key."""
        return (self.reference_id, self.pos0)

    @property
    def channels(self) -> Tuple[ChannelStats, ChannelStats, ChannelStats, ChannelStats, ChannelStats]:
        return (self.a, self.c, self.g, self.t, self.total)

    @property
    def major_base(self) -> str:
        return BASES[self.major_base_index]

    @property
    def minor_base(self) -> str:
        return BASES[self.minor_base_index]

    def as_tuple(self) -> tuple:
        """Flat fixed-width layout expected by tuple-based consumers."""
        return (
            self.reference_id,
            self.position,
            self.a.as_tuple(),
            self.c.as_tuple(),
            self.g.as_tuple(),
            self.t.as_tuple(),
            self.total.as_tuple(),
            self.major_base_index,
            self.minor_base_index,
            self.ambiguous_count,
            self.reserved_1,
            self.entropy,
            self.reserved_2,
        )
