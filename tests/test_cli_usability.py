import gzip
import json
import subprocess
import sys
from pathlib import Path

from pileupstats.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "pileupstats"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def _tsv_rows(path: Path) -> list[list[str]]:
    with gzip.open(path, "rt") as fh:
        return [line.rstrip("\n").split("\t") for line in fh]


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "pileupstats scan" in cp.stdout
    assert "pileupstats peek" in cp.stdout


def test_refs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["refs", "--bam", toy["bam"]])
    assert cp.returncode == 0
    assert cp.stdout.split() == ["chr1", "chr2"]


def test_peek(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["peek", "--bam", toy["bam"], "--region", "chr1:51", "-n", "2"])
    assert cp.returncode == 0
    lines = cp.stdout.strip().splitlines()
    assert lines[0].startswith("chrom\tpos")
    assert len(lines) == 3
    row = lines[1].split("\t")
    assert row[:2] == ["chr1", "51"]
    header = lines[0].split("\t")
    assert row[header.index("ambiguous")] == "1"
    assert row[header.index("major")] == "G"


def test_peek_unknown_reference(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["peek", "--bam", toy["bam"], "--region", "chrZ:5"])
    assert cp.returncode == 2
    assert "invalid ref name chrZ" in cp.stderr


def test_make_toy_data_and_scan(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(["scan", "--bam", str(toy_dir / "toy.bam"), "--outdir", str(outdir), "--no-progress"])
    assert cp.returncode == 0
    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "entropy_hist.png").exists()

    rows = _tsv_rows(outdir / "pileup.tsv.gz")
    summary = json.loads((outdir / "summary.json").read_text())
    assert len(rows) - 1 == summary["counts"]["positions_written"] == 97


def test_scan_region(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "out"
    cp = _run_cli(
        [
            "scan",
            "--bam",
            toy["bam"],
            "--outdir",
            str(outdir),
            "--region",
            "chr1:50-60",
            "--no-report",
            "--no-progress",
        ]
    )
    assert cp.returncode == 0
    rows = _tsv_rows(outdir / "pileup.tsv.gz")[1:]
    assert [int(r[1]) for r in rows] == list(range(50, 61))
    assert not (outdir / "report.html").exists()


def test_scan_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "scan"
    cp = _run_cli(["scan", "--bam", toy["bam"], "--outdir", str(outdir), "--dry-run"])
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert not (outdir / "summary.json").exists()
