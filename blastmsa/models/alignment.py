# blastmsa/models/alignment.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Protocol, Set

from .flavor import MoleculeType

GAP = "-"


def gaps(n: int) -> str:
    return GAP * max(0, n)


@dataclass(slots=True)
class Lane:
    """
    One row of a multiple alignment.

    Conventions:
      - Columns are 0-based. The row covers `leading_gaps + len(block) + trailing_gaps`
        columns; only `block` carries residues (and '-' gaps).
      - `unaligned_prefix` / `unaligned_suffix` are the parts of the read that
        lie outside the local alignment. They are kept for display but do not
        occupy alignment columns.
      - `name` is the display name (may carry a strand tag such as " (rev)"),
        `text` the match text the row was derived from.
    """

    name: str
    block: str = ""
    leading_gaps: int = 0
    trailing_gaps: int = 0
    unaligned_prefix: str = ""
    unaligned_suffix: str = ""
    text: Optional[str] = None
    original_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.leading_gaps < 0 or self.trailing_gaps < 0:
            raise ValueError(f"Lane '{self.name}': gap counts must be >= 0 "
                             f"(leading={self.leading_gaps}, trailing={self.trailing_gaps})")

    # ---------- Geometry ----------

    @property
    def length(self) -> int:
        return self.leading_gaps + len(self.block) + self.trailing_gaps

    @property
    def first_column(self) -> int:
        return self.leading_gaps

    @property
    def last_column(self) -> int:
        return self.leading_gaps + len(self.block) - 1

    def gapped_sequence(self, gap: str = GAP) -> str:
        return gap * self.leading_gaps + self.block + gap * self.trailing_gaps

    # ---------- Editing ----------

    def insert_after(self, col: int, width: int, insert: str = "") -> None:
        """
        Open `width` new columns after column `col`.

        Before the block the new columns become leading gaps, after it
        trailing gaps; inside the block `insert` is spliced in and padded
        with gaps to `width`.
        """
        if width <= 0:
            return
        if len(insert) > width:
            raise ValueError(f"insert of length {len(insert)} does not fit width {width}")
        if col < self.leading_gaps:
            self.leading_gaps += width
        elif col < self.leading_gaps + len(self.block):
            after = col - self.leading_gaps + 1
            self.block = self.block[:after] + insert + gaps(width - len(insert)) + self.block[after:]
        else:
            self.trailing_gaps += width

    def trim_to_length(self, n: int) -> None:
        """Drop columns beyond `n`, trailing gaps first, then block, then leading gaps."""
        excess = self.length - n
        if excess <= 0:
            return
        cut = min(excess, self.trailing_gaps)
        self.trailing_gaps -= cut
        excess -= cut
        if excess > 0:
            cut = min(excess, len(self.block))
            self.block = self.block[: len(self.block) - cut]
            excess -= cut
        if excess > 0:
            self.leading_gaps -= excess


class AlignmentSink(Protocol):
    """What the alignment builders need from an alignment container."""

    def clear(self) -> None: ...
    def set_name(self, name: Optional[str]) -> None: ...
    def set_reference_type(self, kind: MoleculeType) -> None: ...
    def set_sequence_type(self, kind: MoleculeType) -> None: ...
    def add_sequence(self, name: str, text: Optional[str], original_name: Optional[str],
                     unaligned_prefix: str, leading_gaps: int, block: str,
                     trailing_gaps: int, unaligned_suffix: str) -> None: ...
    def set_reference(self, name: str, text: str) -> None: ...
    def set_original_reference(self, text: str) -> None: ...
    def trim_to_true_length(self, n: int) -> None: ...
    def get_lane(self, row: int) -> Lane: ...
    @property
    def number_of_sequences(self) -> int: ...


@dataclass
class Alignment:
    """
    In-memory multiple alignment: one reference lane plus one lane per read.

    `insertions_into_reference` holds the columns that were opened for read
    insertions (so a renderer can tell them apart from reference columns).
    """

    name: Optional[str] = None
    reference_type: Optional[MoleculeType] = None
    sequence_type: Optional[MoleculeType] = None
    reference_name: Optional[str] = None
    reference: Lane = field(default_factory=lambda: Lane(name=""))
    original_reference: Optional[str] = None
    lanes: List[Lane] = field(default_factory=list)
    insertions_into_reference: Set[int] = field(default_factory=set)

    def clear(self) -> None:
        self.name = None
        self.reference_type = None
        self.sequence_type = None
        self.reference_name = None
        self.reference = Lane(name="")
        self.original_reference = None
        self.lanes.clear()
        self.insertions_into_reference.clear()

    # ---------- Sink API ----------

    def set_name(self, name: Optional[str]) -> None:
        self.name = name

    def set_reference_type(self, kind: MoleculeType) -> None:
        self.reference_type = kind

    def set_sequence_type(self, kind: MoleculeType) -> None:
        self.sequence_type = kind

    def add_sequence(self, name: str, text: Optional[str], original_name: Optional[str],
                     unaligned_prefix: str, leading_gaps: int, block: str,
                     trailing_gaps: int, unaligned_suffix: str) -> None:
        self.lanes.append(Lane(
            name=name, text=text, original_name=original_name,
            unaligned_prefix=unaligned_prefix, leading_gaps=leading_gaps,
            block=block, trailing_gaps=trailing_gaps, unaligned_suffix=unaligned_suffix,
        ))

    def set_reference(self, name: str, text: str) -> None:
        self.reference_name = name
        self.reference = Lane(name=name, block=text)

    def set_original_reference(self, text: str) -> None:
        self.original_reference = text

    def trim_to_true_length(self, n: int) -> None:
        for lane in self.lanes:
            lane.trim_to_length(n)
        self.reference.trim_to_length(n)

    def get_lane(self, row: int) -> Lane:
        return self.lanes[row]

    @property
    def number_of_sequences(self) -> int:
        return len(self.lanes)

    # ---------- Helpers ----------

    def __iter__(self) -> Iterator[Lane]:
        return iter(self.lanes)

    def __len__(self) -> int:
        return len(self.lanes)

    @property
    def length(self) -> int:
        """Number of columns (the widest of reference and lanes)."""
        return max([self.reference.length] + [lane.length for lane in self.lanes])

    def is_column_aligned(self) -> bool:
        lengths = {lane.length for lane in self.lanes}
        if self.reference.length > 0:
            lengths.add(self.reference.length)
        return len(lengths) <= 1
