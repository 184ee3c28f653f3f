from pathlib import Path

import pytest

from pileupstats.engine import ReadFilter
from pileupstats.scan import format_row, scan_pileup, tsv_header
from pileupstats.toy_data import make_toy_data
from pileupstats.validation import parse_region, suggest_reference


def test_scan_summary(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    summary = scan_pileup(bam_path=toy["bam"], outdir=tmp_path / "out", progress=False)
    counts = summary["counts"]
    assert counts["positions_total"] == 97
    assert counts["positions_written"] == 97
    assert counts["positions_with_ambiguous"] == 1
    assert sum(summary["major_base_counts"].values()) == 97
    assert sum(summary["entropy_hist"]["counts"]) == 97
    assert sum(summary["depth_hist"]["counts"]) == 97
    assert summary["read_counts"]["reads_used"] == 15
    assert (tmp_path / "out" / "summary.json").exists()


def test_scan_min_depth_and_filter(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    summary = scan_pileup(
        bam_path=toy["bam"],
        outdir=tmp_path / "out",
        min_depth=5,
        progress=False,
    )
    assert summary["counts"]["positions_below_min_depth"] == 24
    assert summary["counts"]["positions_written"] == 73

    filtered = scan_pileup(
        bam_path=toy["bam"],
        outdir=tmp_path / "filtered",
        read_filter=ReadFilter(min_mapq=20),
        progress=False,
    )
    assert filtered["counts"]["positions_total"] == 59 + 36
    assert filtered["read_filter"]["min_mapq"] == 20


def test_scan_rejects_negative_min_depth(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    with pytest.raises(ValueError):
        scan_pileup(bam_path=toy["bam"], outdir=tmp_path / "out", min_depth=-1, progress=False)


def test_tsv_header_matches_rows(tmp_path: Path) -> None:
    from pileupstats.cursor import PileupCursor

    toy = make_toy_data(outdir=tmp_path / "toy")
    with PileupCursor() as cursor:
        cursor.open(toy["bam"])
        stat = cursor.next()
    assert len(format_row(stat, "chr1").split("\t")) == len(tsv_header())


def test_parse_region() -> None:
    assert parse_region("chr1") == ("chr1", 1, None)
    assert parse_region("chr1:1,000") == ("chr1", 1000, None)
    assert parse_region("chr1:10-20") == ("chr1", 10, 20)
    with pytest.raises(ValueError):
        parse_region("chr1:20-10")
    with pytest.raises(ValueError):
        parse_region("chr1:0")
    with pytest.raises(ValueError):
        parse_region("chr1:abc")


def test_suggest_reference() -> None:
    assert suggest_reference("1", ["chr1", "chr2"]) == "chr1"
    assert suggest_reference("chrM", ["1", "2", "MT"]) == "MT"
    assert suggest_reference("chr9", ["chr1", "chr2"]) is None
