"""pileupstats: per-position nucleotide statistics over indexed alignment files.

Most users will either use the CLI:

    pileupstats scan --bam sample.bam --outdir results/

or the cursor directly:

    from pileupstats import PileupCursor

    with PileupCursor() as cursor:
        cursor.open("sample.bam")
        cursor.seek("chr1", 10_000)
        stat = cursor.next()
"""

from __future__ import annotations

__all__ = [
    "__version__",
    "CursorState",
    "PileupCursor",
    "PositionStatistics",
    "compute_position_statistics",
]

__version__ = "0.1.0"

from .cursor import CursorState, PileupCursor
from .models import PositionStatistics
from .stats import compute_position_statistics
