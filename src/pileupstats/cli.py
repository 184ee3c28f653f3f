from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .cursor import CursorState, PileupCursor
from .engine import ReadFilter
from .errors import PileupError
from .plotting import plot_depth_hist, plot_entropy_hist, plot_major_base_counts
from .report import render_report
from .scan import format_row, scan_pileup, tsv_header
from .toy_data import make_toy_data
from .utils import ensure_outdir
from .validation import check_bam_index, parse_region


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, PileupError):
        msg = str(err)
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_read_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--min-mapq", type=int, default=0, help="Skip reads with MAPQ below this value.")
    p.add_argument("--skip-duplicates", action="store_true", help="Skip reads flagged as duplicates.")
    p.add_argument("--skip-secondary", action="store_true", help="Skip secondary alignments.")
    p.add_argument("--skip-supplementary", action="store_true", help="Skip supplementary alignments.")
    p.add_argument("--skip-qcfail", action="store_true", help="Skip reads failing vendor QC.")


def _read_filter_from_args(args: argparse.Namespace) -> ReadFilter:
    return ReadFilter(
        min_mapq=int(args.min_mapq),
        skip_duplicates=bool(args.skip_duplicates),
        include_secondary=not bool(args.skip_secondary),
        include_supplementary=not bool(args.skip_supplementary),
        skip_qcfail=bool(args.skip_qcfail),
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pileupstats",
        description=(
            "pileupstats: per-position nucleotide statistics (counts, qualities, major/minor base, "
            "entropy) from indexed BAM files, with random access by reference and position."
        ),
    )
    p.add_argument("--version", action="version", version=f"pileupstats {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser("quickstart", help="Print ready-to-run recipes for common tasks.")

    # -----------------
    # refs
    # -----------------
    r = sub.add_parser("refs", help="List the reference names of a BAM in header order.")
    r.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    r.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # peek
    # -----------------
    k = sub.add_parser(
        "peek",
        help="Jump to a position and print the next pileup records as TSV.",
    )
    k.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    k.add_argument("--region", required=True, help="Target as chrom:pos (1-based) or chrom.")
    k.add_argument("-n", "--count", type=int, default=10, help="Number of records to print.")
    k.add_argument("--no-header", action="store_true", help="Do not print the TSV header.")
    _add_read_filter_args(k)
    k.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # scan
    # -----------------
    s = sub.add_parser(
        "scan",
        help="Compute pileup statistics for a whole BAM or one region (TSV + summary + report).",
    )
    s.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    s.add_argument("--outdir", required=True, help="Output directory.")
    s.add_argument("--region", default=None, help="Restrict to chrom[:start[-end]] (1-based).")
    s.add_argument(
        "--min-depth",
        type=int,
        default=0,
        help="Do not write positions whose A+C+G+T count is below this value.",
    )
    _add_read_filter_args(s)
    s.add_argument(
        "--pileup-tsv",
        default=None,
        help="Optional path for the pileup TSV.GZ (default: outdir/pileup.tsv.gz).",
    )
    s.add_argument("--no-report", action="store_true", help="Skip plots and the HTML report.")
    s.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    s.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    s.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")
    s.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny indexed BAM for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "pileupstats quickstart (copy/paste):",
        "",
        "1) Whole-file scan:",
        "   pileupstats scan --bam sample.bam --outdir results/",
        "   Outputs: results/pileup.tsv.gz, results/summary.json, results/report.html",
        "",
        "2) One region, skipping duplicates and low MAPQ reads:",
        "   pileupstats scan --bam sample.bam --outdir results/ \\",
        "     --region chr1:10000-20000 --skip-duplicates --min-mapq 20",
        "",
        "3) Jump to a position and look at the next records:",
        "   pileupstats peek --bam sample.bam --region chr1:10000 -n 5",
        "",
        "Tip: pileupstats make-toy-data --outdir toy/ creates a small BAM to try these on.",
    ]
    print("\n".join(lines))
    return 0


def cmd_refs(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose)
    try:
        with PileupCursor() as cursor:
            cursor.open(args.bam)
            for name in cursor.reference_names:
                print(name)
        return 0
    except Exception as e:
        return _handle_error(e)


def cmd_peek(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose)
    try:
        name, start, _ = parse_region(args.region)
        with PileupCursor(read_filter=_read_filter_from_args(args)) as cursor:
            cursor.open(args.bam)
            names = cursor.reference_names
            cursor.seek(name, start)

            if not args.no_header:
                print("\t".join(tsv_header()))
            if cursor.state == CursorState.EXHAUSTED:
                logging.getLogger("pileupstats").warning("No covered positions at or after %s", args.region)
                return 0

            for _ in range(max(0, int(args.count))):
                stat = cursor.next()
                if stat is None:
                    break
                print(format_row(stat, names[stat.reference_id]))
        return 0
    except Exception as e:
        return _handle_error(e)


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "scan.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("pileupstats")
    logger.info("pileupstats %s", __version__)

    try:
        check_bam_index(args.bam)
        if args.region is not None:
            parse_region(args.region)

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print("Planned outputs:")
            print(f"  pileup.tsv.gz -> {args.pileup_tsv or outdir / 'pileup.tsv.gz'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            print(str(outdir / "summary.json"))
            return 0

        run = scan_pileup(
            bam_path=args.bam,
            outdir=outdir,
            region=args.region,
            read_filter=_read_filter_from_args(args),
            min_depth=int(args.min_depth),
            pileup_tsv_gz=args.pileup_tsv,
            progress=not bool(args.no_progress),
        )

        if args.no_report:
            print(str(outdir / "summary.json"))
            return 0

        plots_dir = Path(outdir) / "plots"
        plots_dir.mkdir(parents=True, exist_ok=True)

        depth_png = plots_dir / "depth_hist.png"
        entropy_png = plots_dir / "entropy_hist.png"
        major_png = plots_dir / "major_base.png"

        plot_depth_hist(depth_counts=run["depth_hist"]["counts"], out_png=depth_png)
        plot_entropy_hist(
            bin_edges=run["entropy_hist"]["bin_edges"],
            counts=run["entropy_hist"]["counts"],
            out_png=entropy_png,
        )
        plot_major_base_counts(major_base_counts=run["major_base_counts"], out_png=major_png)

        plots_rel = {
            "depth_hist": str(Path("plots") / depth_png.name),
            "entropy_hist": str(Path("plots") / entropy_png.name),
            "major_base": str(Path("plots") / major_png.name),
        }

        report_path = render_report(outdir=outdir, version=__version__, run=run, plots=plots_rel)

        logger.info("Report written: %s", report_path)
        print(str(report_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "refs":
        return cmd_refs(args)
    if args.cmd == "peek":
        return cmd_peek(args)
    if args.cmd == "scan":
        return cmd_scan(args)
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
