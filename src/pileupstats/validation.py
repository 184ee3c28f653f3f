from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

from .errors import IndexMissingError

_UCSC_PREFIX = "chr"
_REGION_RE = re.compile(r"^(?P<name>[^:]+)(?::(?P<start>[\d,]+)(?:-(?P<end>[\d,]+))?)?$")


def check_bam_index(bam_path: str | Path) -> None:
    """Ensure a BAM has an index; raise IndexMissingError with fix instructions."""
    bam = Path(bam_path)
    candidates = [
        bam.with_suffix(bam.suffix + ".bai"),
        bam.with_suffix(".bai"),
        bam.with_suffix(bam.suffix + ".csi"),
    ]
    if any(c.exists() for c in candidates):
        return
    raise IndexMissingError("BAM is not indexed. Run: samtools index " + str(bam))


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig


def suggest_reference(name: str, references: Sequence[str]) -> Optional[str]:
    """Return the name as spelled in ``references`` under the other contig style, if present."""
    style = detect_contig_style(references)
    if style == "unknown":
        return None
    candidate = remap_contig(name, style)
    if candidate != name and candidate in references:
        return candidate
    return None


def parse_region(region: str) -> Tuple[str, int, Optional[int]]:
    """Parse ``chrom``, ``chrom:start`` or ``chrom:start-end`` (1-based, inclusive).

    Returns (name, start, end); start defaults to 1 and end to None.
    """
    m = _REGION_RE.match(region.strip())
    if m is None:
        raise ValueError(f"Cannot parse region: {region!r} (expected chrom[:start[-end]])")

    name = m.group("name")
    start = int(m.group("start").replace(",", "")) if m.group("start") else 1
    end = int(m.group("end").replace(",", "")) if m.group("end") else None

    if start < 1:
        raise ValueError(f"Region start must be >= 1: {region!r}")
    if end is not None and end < start:
        raise ValueError(f"Region end must be >= start: {region!r}")
    return name, start, end
