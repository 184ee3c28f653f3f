from __future__ import annotations

import math
from typing import List

from .errors import MalformedBaseError
from .models import AMBIGUOUS_BASE, BASE_INDEX, ChannelStats, PileupPosition, PositionStatistics

_TOTAL = 4
_N_METRICS = 4  # count, quality, mapq, position signal


def position_signal(offset: int, read_length: int, is_reverse: bool) -> int:
    """Distance of a base from the read's 5' end plus a reverse-strand indicator.

    Both terms are summed into one accumulator, so after aggregation the distance
    and the strand share cannot be told apart. Kept as is for compatibility with
    existing consumers of the statistics; possibly a defect.
    """
    if is_reverse:
        return (read_length - offset - 1) + 1
    return offset


def _major_index(counts: List[int]) -> int:
    major = 0
    for idx in range(4):
        if counts[idx] > counts[major]:
            major = idx
    return major


def _minor_index(counts: List[int], major: int) -> int:
    # NOTE: the original C++ binding assigned the major index inside this loop,
    # so its minor base never moved from the default and its major base could be
    # overwritten. Here the minor candidate is updated instead.
    minor = (major + 1) % 4
    for idx in range(4):
        if counts[idx] > counts[minor] and idx != major:
            minor = idx
    return minor


def _entropy(counts: List[int], depth: int) -> float:
    """Shannon entropy (natural log) of the base counts.

    The denominator is the full pileup depth, deletions and N calls included, so
    the four probabilities may sum to less than one.
    """
    if depth <= 0:
        return 0.0
    h = 0.0
    for c in counts:
        p = c / depth
        if p != 0:
            h -= p * math.log(p)
    return h


def compute_position_statistics(pileup: PileupPosition) -> PositionStatistics:
    """Aggregate one finalized pileup position into a :class:`PositionStatistics`.

    Raises
    ------
    MalformedBaseError
        If any non-deleted observation carries a base other than A/C/G/T/N. No
        record is produced for the position in that case.
    """
    metrics = [[0] * _N_METRICS for _ in range(5)]
    ambiguous = 0

    for obs in pileup.observations:
        if obs.is_deletion:
            continue

        base = obs.base.upper()
        if base == AMBIGUOUS_BASE:
            ambiguous += 1
            continue

        idx = BASE_INDEX.get(base)
        if idx is None:
            raise MalformedBaseError(
                f"unrecognized base {obs.base!r} at reference {pileup.reference_id} "
                f"position {pileup.position + 1}",
                base=obs.base,
                reference_id=pileup.reference_id,
                position=pileup.position + 1,
            )

        signal = position_signal(obs.offset, obs.read_length, obs.is_reverse)
        for row in (metrics[idx], metrics[_TOTAL]):
            row[0] += 1
            row[1] += int(obs.quality)
            row[2] += int(obs.mapping_quality)
            row[3] += signal

    counts = [metrics[i][0] for i in range(4)]
    major = _major_index(counts)
    minor = _minor_index(counts, major)
    entropy = _entropy(counts, pileup.depth)

    channels = [ChannelStats(*row) for row in metrics]

    return PositionStatistics(
        reference_id=pileup.reference_id,
        position=pileup.position + 1,
        a=channels[0],
        c=channels[1],
        g=channels[2],
        t=channels[3],
        total=channels[_TOTAL],
        major_base_index=major,
        minor_base_index=minor,
        ambiguous_count=ambiguous,
        entropy=entropy,
    )
