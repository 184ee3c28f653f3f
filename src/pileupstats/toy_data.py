from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pysam

from .utils import ensure_outdir, write_json

TOY_CONTIGS: List[Tuple[str, str]] = [
    ("chr1", ("ACGT" * 50)[:200]),
    ("chr2", ("GATTACA" * 30)[:200]),
]


def make_read(
    name: str,
    reference_id: int,
    start0: int,
    seq: str,
    *,
    reverse: bool = False,
    mapq: int = 60,
    cigar: Optional[List[Tuple[int, int]]] = None,
    qual_char: str = "I",
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = 16 if reverse else 0
    a.reference_id = reference_id
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = cigar if cigar is not None else [(0, len(seq))]
    a.query_qualities = pysam.qualitystring_to_array(qual_char * len(seq))
    return a


def toy_reads() -> List[pysam.AlignedSegment]:
    """Coordinate-sorted reads over the toy contigs.

    chr1: ten 50bp reads starting at 30..39 (odd ones reverse). Read r1_0 has an
    N at reference position 50 and read r1_3 has a 2bp deletion at 43-44.
    chr2: five 30bp forward reads starting at 10, 12, .., 18; the last has MAPQ 10.
    All positions are 0-based.
    """
    ref1 = TOY_CONTIGS[0][1]
    ref2 = TOY_CONTIGS[1][1]
    reads: List[pysam.AlignedSegment] = []

    for i in range(10):
        start0 = 30 + i
        if i == 3:
            seq = ref1[start0 : start0 + 10] + ref1[start0 + 12 : start0 + 50]
            cigar = [(0, 10), (2, 2), (0, 38)]
        else:
            seq = ref1[start0 : start0 + 50]
            cigar = None
        if i == 0:
            seq = seq[:20] + "N" + seq[21:]
        reads.append(make_read(f"r1_{i}", 0, start0, seq, reverse=i % 2 == 1, cigar=cigar))

    for j in range(5):
        start0 = 10 + 2 * j
        mapq = 10 if j == 4 else 60
        reads.append(make_read(f"r2_{j}", 1, start0, ref2[start0 : start0 + 30], mapq=mapq))

    return reads


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny sorted and indexed BAM suitable for quick demos/tests.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    bam_path = outdir_p / "toy.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": len(seq)} for name, seq in TOY_CONTIGS],
    }

    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in toy_reads():
            bam.write(r)

    pysam.index(str(bam_path))

    summary = {
        "bam": str(bam_path),
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
