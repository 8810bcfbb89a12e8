# blastmsa/formats/blast_report.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from blastmsa.sequences.base import Source, iter_lines
from blastmsa.sources.base import Match

from .blast_text import grab_next

__all__ = ["ReportQuery", "decode", "split_hsps"]

# Reads an NCBI BLAST pairwise ("-outfmt 0") text report, legacy or current:
#
#   Query= read1 some description
#   ...
#   > ref|XP_001| hypothetical protein      (legacy: ">gi|..." and "Length = 300")
#   Length=300
#
#    Score = 50.1 bits (118),  Expect = 1e-05
#    Identities = 25/40 (63%), Positives = 30/40 (75%), Gaps = 0/40 (0%)
#    Frame = +1
#
#   Query  1    MKV...  120
#   Sbjct  10   MKV...  49
#
# Every HSP becomes one match whose text starts with the hit's description
# line, so that all HSPs of one hit share the same reference key.

_TRAILER_PREFIXES = (
    "Lambda",
    "Database:",
    "Effective search space",
    "Matrix:",
    "Gap Penalties",
    "Number of ",
    "Posted date",
    "Neighboring words",
)
_IDENTITY_RE = re.compile(r"Identities\s*=\s*\d+/\d+\s*\((\d+(?:\.\d+)?)%\)")


@dataclass
class ReportQuery:
    """One `Query=` section: the read header and one Match per HSP."""
    header: str
    matches: List[Match] = field(default_factory=list)

    @property
    def name(self) -> str:
        parts = self.header.split(None, 1)
        return parts[0] if parts else ""


def _float(token: Optional[str]) -> float:
    if not token:
        return 0.0
    token = token.rstrip(",")
    if token.startswith("e"):
        # legacy reports print 1e-105 as e-105
        token = "1" + token
    try:
        return float(token)
    except ValueError:
        return 0.0


def split_hsps(header: str, body: List[str]) -> Iterator[Match]:
    """Split the lines of one hit into one Match per HSP."""
    preamble: List[str] = []
    current: Optional[List[str]] = None
    hsps: List[List[str]] = []
    for line in body:
        if line.strip().startswith("Score"):
            current = [line]
            hsps.append(current)
        elif current is None:
            preamble.append(line)
        else:
            current.append(line)

    head = ">" + header + "\n" + "".join(ln for ln in preamble if ln.strip())
    for hsp in hsps:
        hsp_text = "".join(hsp)
        identity = _IDENTITY_RE.search(hsp_text)
        yield Match(
            text=head + "\n" + hsp_text,
            score=_float(grab_next(hsp_text, "Score =", "Score=")),
            expected=_float(grab_next(hsp_text, "Expect =", "Expect=")),
            percent_identity=float(identity.group(1)) if identity else 0.0,
        )


def decode(source: Source) -> Iterator[ReportQuery]:
    """Stream the queries of a BLAST pairwise text report."""
    query: Optional[ReportQuery] = None
    hit_header: Optional[str] = None
    hit_body: List[str] = []
    in_header = False

    def _flush_hit() -> None:
        nonlocal hit_header, hit_body
        if query is not None and hit_header is not None:
            query.matches.extend(split_hsps(hit_header, hit_body))
        hit_header, hit_body = None, []

    for line in iter_lines(source):
        if not line.endswith("\n"):
            line += "\n"
        stripped = line.strip()

        if line.startswith("Query="):
            _flush_hit()
            if query is not None:
                yield query
            query = ReportQuery(header=line[len("Query="):].strip())
            in_header = False
        elif line.startswith(">"):
            _flush_hit()
            hit_header = line[1:].strip()
            in_header = True
        elif hit_header is None:
            continue
        elif stripped.startswith(_TRAILER_PREFIXES):
            _flush_hit()
            in_header = False
        elif in_header and not stripped.startswith("Length"):
            # wrapped description line
            if stripped:
                hit_header += " " + stripped
        else:
            in_header = False
            hit_body.append(line)

    _flush_hit()
    if query is not None:
        yield query
