# blastmsa/aligner/blast2alignment.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from blastmsa.errors import AlignmentError, DataSourceError, ParseError
from blastmsa.formats.blast_text import guess_flavor
from blastmsa.models.alignment import Alignment
from blastmsa.models.flavor import Flavor
from blastmsa.models.read_match import InsertionMap, ReadMatchTriple
from blastmsa.options import AlignerOptions
from blastmsa.progress import ProgressListener
from blastmsa.sources.base import ActiveMatchSelector, MatchBlock, ReadBlock, ReadSource, all_matches

from .aggregator import AggregationStats, ReferenceAggregator
from .builders import BuiltRow, GappedAlignmentBuilder, ReferenceConsensus, builder_for, equalize_lane_lengths
from .insertions import collect_insertions, merge_insertions

__all__ = ["Blast2Alignment", "BuildStats", "RowOk", "RowFailed", "RowResult"]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RowOk:
    row: int          # row index in the alignment
    built: BuiltRow


@dataclass(slots=True)
class RowFailed:
    index: int        # position in the reference's bucket
    read_name: str
    error: Exception


RowResult = Union[RowOk, RowFailed]


@dataclass(slots=True)
class BuildStats:
    rows_in: int = 0
    rows_out: int = 0
    errors: int = 0
    insertion_columns: int = 0

    def add(self, result: RowResult) -> None:
        self.rows_in += 1
        if isinstance(result, RowOk):
            self.rows_out += 1
        else:
            self.errors += 1


class Blast2Alignment:
    """
    Builds multiple alignments from BLAST matches of many reads.

    Usage:
        b2a = Blast2Alignment(AlignerOptions(min_reads=5), name="Bacteria")
        b2a.load_data(source)
        for key in b2a.references:
            aln = Alignment()
            b2a.make_alignment(key, aln, show_insertions=True)
    """

    def __init__(self, options: Optional[AlignerOptions] = None, name: Optional[str] = None) -> None:
        self.options = options or AlignerOptions()
        self.name = name
        self.aggregator = ReferenceAggregator(self.options)

    # ---------- Loading ----------

    def load_data(
        self,
        source: ReadSource,
        selector: ActiveMatchSelector = all_matches,
        progress: Optional[ProgressListener] = None,
        name: Optional[str] = None,
    ) -> AggregationStats:
        if name is not None:
            self.name = name
        return self.aggregator.load_data(source, selector, progress)

    def load_pairs(self, key: str, pairs: Iterable[Tuple[ReadBlock, MatchBlock]], name: Optional[str] = None) -> None:
        if name is not None:
            self.name = name
        self.aggregator.load_pairs(key, pairs)

    @property
    def flavor(self) -> Flavor:
        return self.aggregator.flavor

    @property
    def references(self) -> List[str]:
        return self.aggregator.references

    def reference_count(self, key: str) -> int:
        return self.aggregator.reference_count(key)

    @property
    def total_reads(self) -> int:
        return self.aggregator.total_reads

    # ---------- Building ----------

    def _flavor_for(self, triples: Sequence[ReadMatchTriple]) -> Flavor:
        """The flavor locked while loading; otherwise the first one guessed from `triples`."""
        flavor = self.aggregator.flavor
        for triple in triples:
            if flavor is not Flavor.UNKNOWN:
                break
            flavor = guess_flavor(triple.match_text)
        if flavor is Flavor.UNKNOWN:
            raise DataSourceError("Couldn't determine BLAST flavor. Aligner requires BLASTX, BLASTP or BLASTN matches")
        return flavor

    def _build_rows(
        self,
        triples: Sequence[ReadMatchTriple],
        builder: GappedAlignmentBuilder,
        consensus: ReferenceConsensus,
        original: Optional[ReferenceConsensus],
        alignment: Alignment,
        progress: ProgressListener,
    ) -> Iterator[RowResult]:
        for i, triple in enumerate(triples):
            try:
                built = builder.build(triple, consensus, original)
            except (ParseError, AlignmentError) as ex:
                logger.warning("Read '%s': %s", triple.read_name, ex)
                yield RowFailed(i, triple.read_name, ex)
            else:
                yield RowOk(built.emit(alignment), built)
            progress.increment_progress()

    def make_alignment(
        self,
        key: str,
        alignment: Alignment,
        show_insertions: Optional[bool] = None,
        progress: Optional[ProgressListener] = None,
    ) -> BuildStats:
        """
        Build the alignment of all reads recorded for reference `key` into
        `alignment` (which is cleared first).

        Rows whose match text can't be parsed or doesn't fit the read are
        skipped and counted in the returned BuildStats.
        """
        progress = progress or ProgressListener()
        if show_insertions is None:
            show_insertions = self.options.show_insertions
        triples = self.aggregator.triples(key)
        flavor = self._flavor_for(triples)

        alignment.clear()
        alignment.set_name(self.name)
        alignment.set_reference_type(flavor.reference_type)
        alignment.set_sequence_type(flavor.sequence_type)

        progress.set_tasks("Alignment", f"Building alignment for {key}")
        progress.set_maximum(len(triples))
        progress.set_progress(0)

        builder = builder_for(flavor, show_insertions=show_insertions, default_length=self.options.default_length)
        consensus = ReferenceConsensus()
        original = ReferenceConsensus(placeholder="?") if flavor is Flavor.BLASTX else None

        stats = BuildStats()
        built_rows: List[BuiltRow] = []
        for result in self._build_rows(triples, builder, consensus, original, alignment, progress):
            stats.add(result)
            if isinstance(result, RowOk):
                built_rows.append(result.built)

        if any(not built.exact_length for built in built_rows):
            equalize_lane_lengths(alignment)

        if not consensus.is_empty():
            unit = flavor.codon_unit
            true_length = consensus.true_length(unit)
            if true_length < len(consensus):
                alignment.trim_to_true_length(true_length)
            alignment.set_reference(key, consensus.trimmed_text(unit))
            if original is not None:
                alignment.set_original_reference(original.text())

        if show_insertions:
            pos2insertions: InsertionMap = collect_insertions(ins for built in built_rows for ins in built.insertions)
            if pos2insertions:
                stats.insertion_columns = merge_insertions(pos2insertions, alignment, progress)

        if stats.rows_in != stats.rows_out:
            logger.info("Reads in:  %d", stats.rows_in)
            logger.info("Reads out: %d", stats.rows_out)
        if stats.errors:
            logger.info("Errors: %d", stats.errors)
        return stats
