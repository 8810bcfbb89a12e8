# blastmsa/aligner/aggregator.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from blastmsa.errors import CanceledError, DataSourceError
from blastmsa.formats.blast_text import (
    guess_flavor,
    remove_reference_header,
    truncate_before_second_occurrence,
)
from blastmsa.models.flavor import Flavor
from blastmsa.models.read_match import ReadMatchTriple
from blastmsa.options import AlignerOptions
from blastmsa.progress import ProgressListener
from blastmsa.sequences.base import strip_whitespace
from blastmsa.sources.base import ActiveMatchSelector, MatchBlock, ReadBlock, ReadSource, all_matches

__all__ = ["AggregationStats", "ReferenceAggregator", "normalize_header", "reference_key", "prepare_match_text"]

logger = logging.getLogger(__name__)

# only the first local alignment of a match text is used
SCORE_MARKER = "Score ="


@dataclass(slots=True)
class AggregationStats:
    reads_total: int = 0
    reads_used: int = 0
    active_matches: int = 0
    errors: int = 0
    references_dropped: int = 0
    canceled: bool = False


def normalize_header(header: str) -> Tuple[str, str]:
    """Return (display header, read name) for a raw read header."""
    header = header.replace("\r", "").replace("\n", "")
    if header.startswith(">"):
        header = header[1:].strip()
    parts = header.split(None, 1)
    return header, (parts[0] if parts else "")


def reference_key(match_text: str) -> str:
    """The reference description line a match text starts with."""
    return match_text.lstrip("\r\n").split("\n", 1)[0].strip()


def prepare_match_text(match_text: str) -> str:
    """First local alignment of a match text, without the reference description."""
    return remove_reference_header(truncate_before_second_occurrence(match_text, SCORE_MARKER))


class ReferenceAggregator:
    """
    Buckets (read header, read sequence, match text) triples by reference.

    Each reference holds at most one triple per read name; the first match
    seen for a (reference, read) pair wins. The BLAST flavor is detected from
    the first usable match text and then fixed for the rest of the run.
    """

    def __init__(self, options: Optional[AlignerOptions] = None) -> None:
        self.options = options or AlignerOptions()
        self.reference2triples: Dict[str, List[ReadMatchTriple]] = {}
        self.flavor: Flavor = Flavor.UNKNOWN
        self.stats = AggregationStats()
        self._warned_unknown_flavor = False
        self._warned_missing_text = False

    # ---------- Accessors ----------

    @property
    def references(self) -> List[str]:
        return list(self.reference2triples.keys())

    def reference_count(self, key: str) -> int:
        return len(self.reference2triples[key])

    def triples(self, key: str) -> List[ReadMatchTriple]:
        return self.reference2triples[key]

    @property
    def total_reads(self) -> int:
        return self.stats.reads_total

    # ---------- Loading ----------

    def load_data(
        self,
        source: ReadSource,
        selector: ActiveMatchSelector = all_matches,
        progress: Optional[ProgressListener] = None,
    ) -> AggregationStats:
        """
        Scan all reads of `source` and fill the reference buckets.

        Raises DataSourceError if the source carries no alignments, a read has
        no sequence, no read has an active match, or the BLAST flavor could not
        be determined. Cancellation keeps the buckets collected so far.
        """
        progress = progress or ProgressListener()
        self.reference2triples.clear()
        self.flavor = Flavor.UNKNOWN
        self.stats = stats = AggregationStats()
        self._warned_unknown_flavor = False
        self._warned_missing_text = False

        progress.set_tasks("Alignment", "Collecting data")
        logger.info("Collecting data...")
        if not source.has_alignments():
            raise DataSourceError("Alignment requires a data source that stores match texts")

        reference2seen: Dict[str, Set[str]] = {}
        progress.set_maximum(source.maximum_progress)
        progress.set_progress(0)
        try:
            for read in source:
                stats.reads_total += 1
                active = sorted(i for i in selector(read) if 0 <= i < len(read.matches))
                if active:
                    stats.active_matches += len(active)
                    if self._add_read(read, active, reference2seen):
                        stats.reads_used += 1

                if stats.reads_total % 100 == 0:
                    progress.set_subtask(f"Collecting data ({stats.reads_total} reads processed)")
                    progress.set_progress(stats.reads_total)
                else:
                    progress.check_for_cancel()
        except CanceledError:
            logger.warning("Canceled, data set may be incomplete")
            stats.canceled = True
        finally:
            reference2seen.clear()

        if not stats.canceled and stats.active_matches == 0:
            raise DataSourceError("No active matches found")

        self._apply_min_reads()

        logger.info("Reads total: %d", stats.reads_total)
        logger.info("Reads used:  %d", stats.reads_used)
        logger.info("References:  %d", len(self.reference2triples))
        if stats.errors:
            logger.info("Errors:      %d", stats.errors)

        if not stats.canceled and self.flavor is Flavor.UNKNOWN:
            raise DataSourceError("Couldn't determine BLAST flavor. Aligner requires BLASTX, BLASTP or BLASTN matches")
        return stats

    def _add_read(
        self,
        read: ReadBlock,
        active: Iterable[int],
        reference2seen: Dict[str, Set[str]],
    ) -> bool:
        header, read_name = normalize_header(read.header)
        if read.sequence is None:
            raise DataSourceError(f"Read '{read_name}': sequence missing, can't build alignments")
        sequence = strip_whitespace(read.sequence)

        used = False
        keys_for_this_read: Set[str] = set()
        for i in active:
            match = read.matches[i]
            if match.text is None:
                if not self._warned_missing_text:
                    logger.error("Read '%s': match text missing", read_name)
                    self._warned_missing_text = True
                continue
            if (self.options.use_identity_filter
                    and 0 < match.percent_identity < self.options.min_identity):
                continue

            match_text = prepare_match_text(match.text)
            key = reference_key(match.text)

            if self.flavor is Flavor.UNKNOWN:
                self.flavor = guess_flavor(match_text)
                if self.flavor is Flavor.UNKNOWN:
                    self.stats.errors += 1
                    if not self._warned_unknown_flavor:
                        logger.error("Unknown BLAST format encountered")
                        self._warned_unknown_flavor = True
                    continue

            seen = reference2seen.setdefault(key, set())
            if read_name in seen or key in keys_for_this_read:
                continue
            seen.add(read_name)
            keys_for_this_read.add(key)
            self.reference2triples.setdefault(key, []).append(ReadMatchTriple(header, sequence, match_text))
            used = True
        return used

    def _apply_min_reads(self) -> None:
        min_reads = self.options.min_reads
        if min_reads <= 1:
            return
        to_delete = [key for key, rows in self.reference2triples.items() if len(rows) < min_reads]
        for key in to_delete:
            del self.reference2triples[key]
        self.stats.references_dropped = len(to_delete)
        logger.info("Removed %d alignments with less than %d reads", len(to_delete), min_reads)

    def load_pairs(self, key: str, pairs: Iterable[Tuple[ReadBlock, MatchBlock]]) -> None:
        """
        Replace all buckets with a single reference built from known
        (read, match) pairs. No selection, filtering or deduplication is applied.
        """
        self.reference2triples.clear()
        self.stats = AggregationStats()
        rows: List[ReadMatchTriple] = []
        for read, match in pairs:
            if read.sequence is None:
                raise DataSourceError(f"Read '{read.header}': sequence missing, can't build alignments")
            if match.text is None:
                raise DataSourceError(f"Read '{read.header}': match text missing")
            match_text = prepare_match_text(match.text)
            if self.flavor is Flavor.UNKNOWN:
                self.flavor = guess_flavor(match_text)
            rows.append(ReadMatchTriple(read.header, strip_whitespace(read.sequence), match_text))
        self.reference2triples[key] = rows
        self.stats.reads_total = self.stats.reads_used = len(rows)
