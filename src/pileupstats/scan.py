from __future__ import annotations

import logging
import math
import time
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
from tqdm import tqdm

from .cursor import PileupCursor
from .engine import ReadFilter
from .models import BASES, PositionStatistics
from .utils import ensure_outdir, open_textmaybe_gzip, write_json
from .validation import parse_region

logger = logging.getLogger(__name__)

_CHANNEL_NAMES = ("A", "C", "G", "T", "total")
_METRIC_NAMES = ("count", "qsum", "mqsum", "possig")

MAX_DEPTH_BIN = 500
ENTROPY_BINS = 50


def tsv_header() -> List[str]:
    cols = ["chrom", "pos"]
    for ch in _CHANNEL_NAMES:
        cols.extend(f"{ch}_{m}" for m in _METRIC_NAMES)
    cols.extend(["major", "minor", "ambiguous", "entropy"])
    return cols


def format_row(stat: PositionStatistics, chrom: str) -> str:
    fields: List[str] = [chrom, str(stat.position)]
    for ch in stat.channels:
        fields.extend(str(v) for v in ch.as_tuple()[: len(_METRIC_NAMES)])
    fields.extend(
        [
            stat.major_base,
            stat.minor_base,
            str(stat.ambiguous_count),
            f"{stat.entropy:.6f}",
        ]
    )
    return "\t".join(fields)


def iter_region(cursor: PileupCursor, region: Optional[str]) -> Iterable[PositionStatistics]:
    """Yield records for a region string, or for the whole file when None."""
    if region is None:
        yield from cursor
        return

    name, start, end = parse_region(region)
    cursor.seek(name, start)
    reference_id = cursor.reference_names.index(name)
    for stat in cursor:
        if stat.reference_id != reference_id:
            return
        if end is not None and stat.position > end:
            return
        yield stat


def scan_pileup(
    *,
    bam_path: str,
    outdir: str | Path,
    region: Optional[str] = None,
    read_filter: Optional[ReadFilter] = None,
    min_depth: int = 0,
    pileup_tsv_gz: Optional[str] = None,
    progress: bool = True,
) -> Dict[str, object]:
    """Walk the pileup of a BAM (or one region), write per-position rows and return a summary dict.

    Positions whose Total count is below ``min_depth`` are counted but not written.
    """
    t0 = time.time()
    outdir_path = ensure_outdir(outdir)

    if min_depth < 0:
        raise ValueError("min_depth must be >= 0")

    if pileup_tsv_gz is None:
        pileup_tsv_gz = str(outdir_path / "pileup.tsv.gz")

    # Streaming histograms
    depth_counts = np.zeros(MAX_DEPTH_BIN + 2, dtype=np.int64)
    entropy_bins = np.linspace(0.0, math.log(4.0), ENTROPY_BINS + 1)
    entropy_counts = np.zeros(ENTROPY_BINS, dtype=np.int64)

    major_counts = {b: 0 for b in BASES}
    counts = {
        "positions_total": 0,
        "positions_written": 0,
        "positions_below_min_depth": 0,
        "positions_with_ambiguous": 0,
    }
    depth_sum = 0
    entropy_sum = 0.0

    cursor = PileupCursor(read_filter=read_filter)
    cursor.open(bam_path)
    names = cursor.reference_names

    tsv_fh = open_textmaybe_gzip(pileup_tsv_gz, "wt")
    try:
        tsv_fh.write("\t".join(tsv_header()) + "\n")

        it: Iterable[PositionStatistics] = iter_region(cursor, region)
        if progress:
            it = tqdm(it, unit="pos", desc="Scanning pileup")

        for stat in it:
            counts["positions_total"] += 1
            depth = stat.total.count

            depth_counts[min(depth, MAX_DEPTH_BIN + 1)] += 1
            entropy_counts += np.histogram([min(stat.entropy, entropy_bins[-1])], bins=entropy_bins)[0]
            if stat.ambiguous_count > 0:
                counts["positions_with_ambiguous"] += 1

            if depth < min_depth:
                counts["positions_below_min_depth"] += 1
                continue

            depth_sum += depth
            entropy_sum += stat.entropy
            major_counts[stat.major_base] += 1

            tsv_fh.write(format_row(stat, names[stat.reference_id]) + "\n")
            counts["positions_written"] += 1
    finally:
        tsv_fh.close()
        engine_counts = cursor.engine_counts
        cursor.close()

    dt = time.time() - t0
    written = counts["positions_written"]
    logger.info("Scanned %d positions (%d written) in %.1fs", counts["positions_total"], written, dt)

    summary = {
        "bam_path": bam_path,
        "region": region,
        "min_depth": int(min_depth),
        "read_filter": asdict(read_filter or ReadFilter()),
        "pileup_tsv_gz": str(pileup_tsv_gz),
        "counts": counts,
        "read_counts": engine_counts,
        "major_base_counts": major_counts,
        "mean_depth": float(depth_sum / written) if written else 0.0,
        "mean_entropy": float(entropy_sum / written) if written else 0.0,
        "depth_hist": {
            "max_bin": MAX_DEPTH_BIN,
            "counts": depth_counts.tolist(),
        },
        "entropy_hist": {
            "bin_edges": entropy_bins.tolist(),
            "counts": entropy_counts.tolist(),
        },
        "runtime_seconds": float(dt),
    }

    write_json(outdir_path / "summary.json", summary)
    return summary
