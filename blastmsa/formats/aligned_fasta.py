# blastmsa/formats/aligned_fasta.py
from __future__ import annotations

from io import StringIO
from typing import Iterator, Optional, TextIO, Union

from blastmsa.models.alignment import Alignment
from blastmsa.models.flavor import MoleculeType

__all__ = ["encode"]

Sink = Optional[Union[str, TextIO]]


def _records(alignment: Alignment, include_reference: bool) -> Iterator[tuple[str, str]]:
    if include_reference and alignment.reference.length > 0:
        # unknown reference positions are blanks; show them as N/X like other tools do
        filler = "X" if alignment.reference_type is MoleculeType.PROTEIN else "N"
        yield alignment.reference_name or "reference", alignment.reference.gapped_sequence().replace(" ", filler)
    for lane in alignment.lanes:
        yield lane.name, lane.gapped_sequence()


def _write(alignment: Alignment, fp: TextIO, include_reference: bool, width: int) -> None:
    for name, seq in _records(alignment, include_reference):
        fp.write(f">{name.lstrip('>')}\n")
        if width > 0:
            for i in range(0, len(seq), width):
                fp.write(seq[i:i + width] + "\n")
        else:
            fp.write(seq + "\n")


def encode(alignment: Alignment, *, sink: Sink = None, include_reference: bool = True, width: int = 0) -> str:
    """
    Encode an alignment as gap-padded (aligned) FASTA, reference first.
    Returns the emitted text; also writes to sink if provided.
    """
    if sink is None:
        buf = StringIO()
        _write(alignment, buf, include_reference, width)
        return buf.getvalue()

    if isinstance(sink, str):
        with open(sink, "wt") as f:
            _write(alignment, f, include_reference, width)
        with open(sink, "rt") as f:
            return f.read()

    if hasattr(sink, "write"):
        _write(alignment, sink, include_reference, width)
        return ""

    raise TypeError("sink must be a path string, a file-like with .write, or None")
