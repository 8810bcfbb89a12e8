#!/usr/bin/env python3
"""
Build per-reference multiple alignments from a BLAST pairwise text report.

Example:
  ./blast2msa.py \
      --report reads-vs-nr.blastx.txt \
      --reads reads.fa \
      --min-reads 5 \
      --show-insertions \
      --output alignments/
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from typing import Dict, List, Optional, Set

from blastmsa import AlignerOptions, Alignment, Blast2Alignment, BlastMsaError
from blastmsa.formats import aligned_fasta
from blastmsa.sources.report import ReportReadSource


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Collect BLAST matches per reference and emit one aligned FASTA per reference."
    )
    p.add_argument("--report", required=True, help="BLAST pairwise text report (-outfmt 0).")
    p.add_argument("--reads", required=True, help="FASTA file with the full read sequences.")
    p.add_argument("--reference", action="append", default=None,
                   help="Reference key (hit description line) to build; repeatable. Default: all.")
    p.add_argument("--min-reads", type=int, default=None,
                   help="Drop references with fewer reads (default 10; <=1 keeps all).")
    p.add_argument("--identity-filter", action="store_true", help="Keep only matches with >= 97%% identity.")
    p.add_argument("--show-insertions", action="store_true", help="Merge read insertions into alignment columns.")
    p.add_argument("--option", action="append", default=[], metavar="KEY=VALUE",
                   help="Override any AlignerOptions field, e.g. --option default_length=5000.")
    p.add_argument("--list", action="store_true", help="Only list references and their read counts.")
    p.add_argument(
        "--output",
        help="Output directory (one .fa per reference) or, for a single reference, a file. Default: stdout.",
        default=None,
    )
    p.add_argument("--width", type=int, default=0, help="Wrap FASTA lines at this width (0 = no wrapping).")
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress details.")
    return p.parse_args(argv)


def parse_options(args: argparse.Namespace) -> AlignerOptions:
    overrides: Dict[str, str] = {}
    for item in args.option:
        if "=" not in item:
            raise SystemExit(f"[error] Option '{item}' is not key=value")
        k, v = item.split("=", 1)
        if not k.strip():
            raise SystemExit(f"[error] Empty key in option '{item}'")
        overrides[k.strip()] = v.strip()
    if args.min_reads is not None:
        overrides["min_reads"] = str(args.min_reads)
    if args.identity_filter:
        overrides["use_identity_filter"] = "true"
    if args.show_insertions:
        overrides["show_insertions"] = "true"
    try:
        return AlignerOptions.from_mapping(overrides)
    except ValueError as ex:
        raise SystemExit(f"[error] {ex}")


def safe_filename(key: str, taken: Optional[Set[str]] = None) -> str:
    """File name for a reference key; names already in `taken` get a numeric suffix."""
    first = key.lstrip(">").split(None, 1)
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", first[0] if first else "reference").strip("_") or "reference"
    name = stem + ".fa"
    if taken is None:
        return name
    n = 1
    while name in taken:
        n += 1
        name = f"{stem}_{n}.fa"
    taken.add(name)
    return name


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    for p in (args.report, args.reads):
        if not os.path.exists(p):
            print(f"[error] file not found: {p}", file=sys.stderr)
            return 2

    options = parse_options(args)
    b2a = Blast2Alignment(options, name=os.path.basename(args.report))
    try:
        b2a.load_data(ReportReadSource(args.report, args.reads))
    except BlastMsaError as ex:
        print(f"[error] {ex}", file=sys.stderr)
        return 1

    if args.list:
        for key in b2a.references:
            print(f"{b2a.reference_count(key)}\t{key}")
        return 0

    keys = args.reference or b2a.references
    missing = [k for k in keys if k not in b2a.references]
    if missing:
        for k in missing:
            print(f"[error] no alignment for reference '{k}'", file=sys.stderr)
        return 2

    to_dir = args.output is not None and (len(keys) > 1 or os.path.isdir(args.output))
    if to_dir:
        os.makedirs(args.output, exist_ok=True)
    taken: Set[str] = set()

    for key in keys:
        aln = Alignment()
        stats = b2a.make_alignment(key, aln)
        if args.output is None:
            aligned_fasta.encode(aln, sink=sys.stdout, width=args.width)
        else:
            path = os.path.join(args.output, safe_filename(key, taken)) if to_dir else args.output
            aligned_fasta.encode(aln, sink=path, width=args.width)
            print(f"[info] {stats.rows_out}/{stats.rows_in} reads ({stats.errors} errors) → {path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
