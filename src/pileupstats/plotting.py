from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt


def plot_depth_hist(
    *,
    depth_counts: List[int],
    out_png: str | Path,
    title: str = "Depth per covered position",
) -> None:
    """Bar chart of the depth histogram; the last bin collects the tail."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    # Trim empty high bins but keep the tail bin if used
    last = max((i for i, c in enumerate(depth_counts) if c > 0), default=0)
    xs = list(range(last + 1))
    ys = [int(depth_counts[i]) for i in xs]

    plt.figure()
    plt.bar(xs, ys, width=1.0, align="center")
    plt.xlabel("A+C+G+T count")
    plt.ylabel("Positions")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_entropy_hist(
    *,
    bin_edges: List[float],
    counts: List[int],
    out_png: str | Path,
    title: str = "Base entropy per position",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    if len(bin_edges) != len(counts) + 1:
        raise ValueError("entropy histogram must contain bin_edges of length len(counts)+1")

    widths = [bin_edges[i + 1] - bin_edges[i] for i in range(len(counts))]
    centers = [bin_edges[i] + widths[i] / 2.0 for i in range(len(counts))]

    plt.figure()
    plt.bar(centers, counts, width=widths, align="center")
    plt.xlabel("Entropy (nats)")
    plt.ylabel("Positions")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_major_base_counts(
    *,
    major_base_counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Major base",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = ["A", "C", "G", "T"]
    values = [int(major_base_counts.get(b, 0)) for b in labels]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Positions")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
