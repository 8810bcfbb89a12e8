# blastmsa/aligner/builders.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Type

from blastmsa.errors import AlignmentError, ParseError
from blastmsa.formats import blast_text
from blastmsa.formats.blast_text import BlastTextRecord
from blastmsa.models.alignment import AlignmentSink
from blastmsa.models.flavor import Flavor
from blastmsa.models.read_match import Insertion, ReadMatchTriple
from blastmsa.sequences.base import reverse_complement

__all__ = [
    "PLACEHOLDER",
    "ReferenceConsensus",
    "BuiltRow",
    "GappedAlignmentBuilder",
    "BlastXBuilder",
    "BlastPBuilder",
    "BlastNBuilder",
    "builder_for",
    "equalize_lane_lengths",
]

PLACEHOLDER = "\0"
BLANK = " "


class ReferenceConsensus:
    """
    Reference sequence reconstructed from the subject rows of all matches.

    Slots start out as `placeholder` and are overwritten by every row that
    covers them; the last row written wins. The buffer only ever grows.
    """

    def __init__(self, size: int = 0, placeholder: str = PLACEHOLDER) -> None:
        self.placeholder = placeholder
        self.slots: List[str] = [placeholder] * size

    def __len__(self) -> int:
        return len(self.slots)

    def __getitem__(self, i: int) -> str:
        return self.slots[i]

    def __setitem__(self, i: int, ch: str) -> None:
        if not 0 <= i < len(self.slots):
            raise AlignmentError(f"reference position {i} outside of reference (length {len(self.slots)})")
        self.slots[i] = ch

    def grow(self, size: int) -> None:
        if size > len(self.slots):
            self.slots.extend([self.placeholder] * (size - len(self.slots)))

    def is_empty(self) -> bool:
        return all(ch == self.placeholder for ch in self.slots)

    def text(self) -> str:
        return "".join(self.slots)

    def true_length(self, codon_unit: int = 1) -> int:
        """
        Length without trailing placeholders. With codon_unit 3, a final codon
        is kept as long as one of its slots carries a residue.
        """
        n = len(self.slots)
        while n > 0 and self.slots[n - 1] == self.placeholder:
            if codon_unit == 3 and n > 2 and any(ch != self.placeholder for ch in self.slots[n - 3:n]):
                break
            n -= 1
        return n

    def trimmed_text(self, codon_unit: int = 1) -> str:
        """Text up to true_length(); remaining placeholders become blanks."""
        n = self.true_length(codon_unit)
        return "".join(BLANK if ch == self.placeholder else ch for ch in self.slots[:n])


@dataclass(slots=True)
class BuiltRow:
    """One read laid out against the reference, ready to be added to an alignment."""
    name: str
    text: str
    original_name: str
    unaligned_prefix: str
    leading_gaps: int
    block: str
    trailing_gaps: int
    unaligned_suffix: str
    insertions: List[Insertion] = field(default_factory=list)
    exact_length: bool = True

    @property
    def length(self) -> int:
        return self.leading_gaps + len(self.block) + self.trailing_gaps

    def emit(self, alignment: AlignmentSink) -> int:
        """Add the row to `alignment` and tag its insertions with the row index, which is returned."""
        alignment.add_sequence(self.name, self.text, self.original_name, self.unaligned_prefix,
                               self.leading_gaps, self.block, self.trailing_gaps, self.unaligned_suffix)
        row = alignment.number_of_sequences - 1
        for ins in self.insertions:
            ins.row = row
        return row


@dataclass(slots=True)
class _Oriented:
    # match coordinates after strand/frame normalisation
    name: str
    read: str
    query_start: int
    query_end: int
    subject_start: int
    subject_end: int
    query_seq: str
    subject_seq: str


class GappedAlignmentBuilder:
    """
    Turns one read/match triple into an aligned row.

    The column walk is shared by all flavors; subclasses decide how strands
    or frames are normalised and how many alignment slots a column takes.
    """

    flavor: Flavor = Flavor.UNKNOWN

    def __init__(self, show_insertions: bool = False, default_length: int = 10000) -> None:
        self.show_insertions = show_insertions
        self.default_length = default_length

    @property
    def codon_unit(self) -> int:
        return self.flavor.codon_unit

    # ---------- Hooks ----------

    def orient(self, rec: BlastTextRecord, name: str, read: str) -> _Oriented:
        return _Oriented(name, read, rec.query_start, rec.query_end,
                         rec.subject_start, rec.subject_end, rec.query_seq, rec.subject_seq)

    def residues(self, o: _Oriented, pos: int, query_char: str) -> str:
        """Read residues for one aligned column starting at read position `pos` (0-based)."""
        if pos < 0:
            raise AlignmentError(f"Read '{o.name}': position too small: {pos}")
        if pos + self.codon_unit > len(o.read):
            raise AlignmentError(f"Read '{o.name}': position overruns end of read: {pos} >= {len(o.read)}")
        return query_char

    # ---------- Build ----------

    def parse(self, triple: ReadMatchTriple) -> BlastTextRecord:
        return blast_text.decode(triple.match_text, self.flavor, default_length=self.default_length)

    def build(
        self,
        triple: ReadMatchTriple,
        consensus: ReferenceConsensus,
        original: Optional[ReferenceConsensus] = None,
    ) -> BuiltRow:
        """
        Lay out one read against the reference and project its subject row
        into `consensus` (and, for translated matches, `original`).

        Raises ParseError for unusable match texts and AlignmentError when
        the coordinates do not fit the read or the reference.
        """
        rec = self.parse(triple)
        read = triple.read_sequence
        if len(read) < max(rec.query_start, rec.query_end):
            raise AlignmentError(
                f"Read '{triple.read_name}': read length too short: {len(read)} < {max(rec.query_start, rec.query_end)}"
            )

        o = self.orient(rec, triple.read_header, read)
        if o.subject_start < 1 or o.subject_end < o.subject_start:
            raise AlignmentError(f"Read '{triple.read_name}': bad subject range {o.subject_start}-{o.subject_end}")
        if rec.exact_length and o.subject_end > rec.length:
            raise AlignmentError(
                f"Read '{triple.read_name}': subject end {o.subject_end} beyond reference length {rec.length}"
            )
        # last reference position written when the subject row is projected
        last_projected = o.subject_start + sum(1 for ch in o.subject_seq if ch != "-") - 1
        if rec.exact_length and last_projected > rec.length:
            raise AlignmentError(
                f"Read '{triple.read_name}': subject row runs to {last_projected}, "
                f"beyond reference length {rec.length}"
            )

        unit = self.codon_unit
        block, insertions = self.walk(o)

        reference_length = max(rec.length, o.subject_end, last_projected)
        consensus.grow(unit * reference_length)
        if original is not None:
            original.grow(reference_length)
        self.project(o, consensus, original)

        return BuiltRow(
            name=o.name,
            text=triple.match_text,
            original_name=triple.read_header,
            unaligned_prefix=o.read[: max(0, o.query_start - 1)],
            leading_gaps=unit * (o.subject_start - 1),
            block=block,
            trailing_gaps=unit * max(0, rec.length - o.subject_end),
            unaligned_suffix=o.read[o.query_end:],
            insertions=insertions,
            exact_length=rec.exact_length,
        )

    def walk(self, o: _Oriented) -> tuple[str, List[Insertion]]:
        unit = self.codon_unit
        pos = o.query_start - 1                  # position in read
        align_pos = unit * (o.subject_start - 1)  # column in alignment
        insertion: Optional[Insertion] = None
        insertions: List[Insertion] = []
        out: List[str] = []

        for q, s in zip(o.query_seq, o.subject_seq):
            if q == "-" and s == "-":
                continue
            if q == "-":
                insertion = None
                out.append("-" * unit)
                align_pos += unit
            elif s == "-":
                # read residues with no counterpart in the reference
                if self.show_insertions:
                    residues = self.residues(o, pos, q)
                    if insertion is None:
                        insertion = Insertion(align_pos - 1, residues)
                        insertions.append(insertion)
                    else:
                        insertion.extend(residues)
                pos += unit
            else:
                insertion = None
                out.append(self.residues(o, pos, q))
                pos += unit
                align_pos += unit
        return "".join(out), insertions

    def project(self, o: _Oriented, consensus: ReferenceConsensus, original: Optional[ReferenceConsensus]) -> None:
        unit = self.codon_unit
        p = o.subject_start
        for ch in o.subject_seq:
            if ch != "-":
                consensus[unit * (p - 1)] = ch
                if original is not None:
                    original[p - 1] = ch
                p += 1


class BlastXBuilder(GappedAlignmentBuilder):
    """Translated reads (nucleotide) against a protein reference; each residue spans a codon."""

    flavor = Flavor.BLASTX

    def orient(self, rec: BlastTextRecord, name: str, read: str) -> _Oriented:
        o = super().orient(rec, name, read)
        if (rec.frame or 0) < 0:
            o.name += " (rev)"
            o.query_start = len(read) - o.query_start + 1
            o.query_end = len(read) - o.query_end + 1
            o.read = reverse_complement(read)
        return o

    def residues(self, o: _Oriented, pos: int, query_char: str) -> str:
        super().residues(o, pos, query_char)
        return o.read[pos:pos + 3]


class BlastPBuilder(GappedAlignmentBuilder):
    """Protein reads against a protein reference."""

    flavor = Flavor.BLASTP


class BlastNBuilder(GappedAlignmentBuilder):
    """Nucleotide reads against a nucleotide reference, either strand."""

    flavor = Flavor.BLASTN

    def orient(self, rec: BlastTextRecord, name: str, read: str) -> _Oriented:
        o = super().orient(rec, name, read)
        if rec.strand is None:
            return o
        query_minus = rec.strand[0].lower() == "minus"
        subject_minus = rec.strand[1].lower() == "minus"
        if query_minus and subject_minus:
            raise ParseError("Can't parse matches with Strand = Minus / Minus")
        if query_minus:
            # read is taken as given, only the coordinates are ordered
            o.query_start, o.query_end = sorted((o.query_start, o.query_end))
            o.name += " (-/+)"
        if subject_minus:
            o.subject_start, o.subject_end = sorted((o.subject_start, o.subject_end))
            o.query_seq = reverse_complement(o.query_seq)
            o.subject_seq = reverse_complement(o.subject_seq)
            o.name += " (+/-)"
        return o


_BUILDERS: dict[Flavor, Type[GappedAlignmentBuilder]] = {
    Flavor.BLASTX: BlastXBuilder,
    Flavor.BLASTP: BlastPBuilder,
    Flavor.BLASTN: BlastNBuilder,
}


def builder_for(flavor: Flavor, *, show_insertions: bool = False, default_length: int = 10000) -> GappedAlignmentBuilder:
    try:
        cls = _BUILDERS[flavor]
    except KeyError:
        raise ValueError(f"No alignment builder for flavor {flavor.value!r}") from None
    return cls(show_insertions=show_insertions, default_length=default_length)


def equalize_lane_lengths(alignment: AlignmentSink) -> int:
    """
    Pad shorter lanes with trailing gaps up to the longest lane. Needed when
    the reference length was only reported as a lower bound. Returns the
    common length.
    """
    lanes = [alignment.get_lane(row) for row in range(alignment.number_of_sequences)]
    longest = max((lane.length for lane in lanes), default=0)
    for lane in lanes:
        if lane.length < longest:
            lane.trailing_gaps += longest - lane.length
    return longest
