# blastmsa/sources/report.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List

from blastmsa.formats import blast_report
from blastmsa.formats.blast_report import ReportQuery
from blastmsa.sequences.base import Source
from blastmsa.sequences.fasta import FastaSequenceSource

from .base import Read

__all__ = ["ReportReadSource"]

logger = logging.getLogger(__name__)


@dataclass
class ReportReadSource:
    """
    Reads and matches from a BLAST pairwise text report, with the read
    sequences taken from a FASTA file (reports only show the aligned parts).

    Reads missing from the FASTA get sequence None, which the aggregator
    treats as a fatal data error.
    """
    report: Source
    reads: Source
    queries: List[ReportQuery] = field(init=False, repr=False)
    sequences: FastaSequenceSource = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.queries = list(blast_report.decode(self.report))
        self.sequences = FastaSequenceSource(self.reads)
        logger.debug("Report: %d queries, FASTA: %d reads", len(self.queries), len(list(self.sequences.ids())))

    def has_alignments(self) -> bool:
        return True

    def __iter__(self) -> Iterator[Read]:
        for q in self.queries:
            name = q.name
            if self.sequences.has(name):
                header, sequence = self.sequences.header(name), self.sequences.sequence(name)
            else:
                header, sequence = q.header, None
            yield Read(header=header, sequence=sequence, matches=list(q.matches))

    @property
    def maximum_progress(self) -> int:
        return len(self.queries)
