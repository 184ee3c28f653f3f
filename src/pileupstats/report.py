from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>pileupstats report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>pileupstats report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Inputs</h3>
    <table>
      <tr><th>BAM</th><td><code>{{ bam_path }}</code></td></tr>
      <tr><th>Region</th><td><code>{{ region or "whole file" }}</code></td></tr>
      <tr><th>Min depth</th><td>{{ min_depth }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Read filter</h3>
    <table>
      {% for key, value in read_filter.items() %}
      <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
      {% endfor %}
    </table>
  </div>
</div>

<h2>Positions</h2>
<table>
  <tr><th>Covered positions</th><td>{{ counts.positions_total }}</td></tr>
  <tr><th>Written</th><td>{{ counts.positions_written }}</td></tr>
  <tr><th>Below min depth</th><td>{{ counts.positions_below_min_depth }}</td></tr>
  <tr><th>With N calls</th><td>{{ counts.positions_with_ambiguous }}</td></tr>
  <tr><th>Mean depth (written)</th><td>{{ "%.2f"|format(mean_depth) }}</td></tr>
  <tr><th>Mean entropy (written)</th><td>{{ "%.4f"|format(mean_entropy) }}</td></tr>
</table>

<h2>Reads</h2>
<table>
  <tr><th>Total reads seen</th><td>{{ read_counts.reads_total }}</td></tr>
  <tr><th>Used</th><td>{{ read_counts.reads_used }}</td></tr>
  <tr><th>Unmapped skipped</th><td>{{ read_counts.reads_unmapped }}</td></tr>
  <tr><th>Low MAPQ skipped</th><td>{{ read_counts.reads_skipped_mapq }}</td></tr>
  <tr><th>Duplicates skipped</th><td>{{ read_counts.reads_skipped_duplicates }}</td></tr>
  <tr><th>Secondary skipped</th><td>{{ read_counts.reads_skipped_secondary }}</td></tr>
  <tr><th>Supplementary skipped</th><td>{{ read_counts.reads_skipped_supplementary }}</td></tr>
  <tr><th>QC-fail skipped</th><td>{{ read_counts.reads_skipped_qcfail }}</td></tr>
</table>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Depth</h3>
    <img src="{{ plots.depth_hist }}" alt="depth histogram">
  </div>
  <div class="card">
    <h3>Entropy</h3>
    <img src="{{ plots.entropy_hist }}" alt="entropy histogram">
  </div>
</div>
<div class="grid" style="margin-top:16px;">
  <div class="card">
    <h3>Major base</h3>
    <img src="{{ plots.major_base }}" alt="major base counts">
  </div>
</div>

<h2>Outputs</h2>
<ul>
  <li><code>{{ pileup_tsv_gz }}</code> (per-position statistics)</li>
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Entropy divides base counts by the full depth, deletions and N calls included.</li>
  <li><code>possig</code> sums each base's distance from the read start plus 1 per reverse-strand read.</li>
</ul>

<hr>
<p class="small">pileupstats {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    plots: Dict[str, str],
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        bam_path=run.get("bam_path"),
        region=run.get("region"),
        min_depth=run.get("min_depth"),
        read_filter=run.get("read_filter", {}),
        counts=run.get("counts", {}),
        read_counts=run.get("read_counts", {}),
        mean_depth=float(run.get("mean_depth", 0.0)),
        mean_entropy=float(run.get("mean_entropy", 0.0)),
        pileup_tsv_gz=run.get("pileup_tsv_gz"),
        plots=plots,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.debug("Wrote %s", out_path)
    return out_path
