# blastmsa/models/read_match.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

__all__ = ["ReadMatchTriple", "Insertion", "InsertionMap"]


@dataclass(frozen=True, slots=True)
class ReadMatchTriple:
    """
    One read paired with the (truncated, headerless) text of one of its matches.

    read_header is the full display header (no leading '>' and no line breaks);
    read_sequence has all whitespace removed.
    """
    read_header: str
    read_sequence: str
    match_text: str

    @property
    def read_name(self) -> str:
        parts = self.read_header.split(None, 1)
        return parts[0] if parts else ""


@dataclass(slots=True)
class Insertion:
    """Read residues absent from the reference, placed after alignment column `column`."""
    column: int
    text: str
    row: int = -1

    def extend(self, more: str) -> None:
        self.text += more


# column -> [(row, inserted text), ...]; keys are merged in ascending order
InsertionMap = Dict[int, List[Tuple[int, str]]]
