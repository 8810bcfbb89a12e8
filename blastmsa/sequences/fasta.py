# blastmsa/sequences/fasta.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .base import Source, iter_lines

__all__ = ["iter_fasta", "FastaSequenceSource"]


def iter_fasta(source: Source) -> Iterator[Tuple[str, str]]:
    """Yield (header, sequence) pairs; the header loses its '>' and surrounding whitespace."""
    header: Optional[str] = None
    chunks: list[str] = []
    for line in iter_lines(source):
        if line.startswith(">"):
            if header is not None:
                yield header, "".join(chunks)
            header = line[1:].strip()
            chunks = []
        elif header is not None:
            chunks.append(line.strip())
    if header is not None:
        yield header, "".join(chunks)


@dataclass
class FastaSequenceSource:
    """
    FASTA file loaded into memory, keyed by the first token of each header.
    Raises KeyError for unknown ids.
    """
    source: Source
    _seqs: Dict[str, str] = field(default_factory=dict, init=False, repr=False)
    _headers: Dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        for header, seq in iter_fasta(self.source):
            parts = header.split(None, 1)
            name = parts[0] if parts else ""
            self._seqs[name] = seq
            self._headers[name] = header

    def has(self, seq_id: str) -> bool:
        return seq_id in self._seqs

    def ids(self) -> Iterable[str]:
        return self._seqs.keys()

    def header(self, seq_id: str) -> str:
        return self._headers[seq_id]

    def sequence(self, seq_id: str) -> str:
        return self._seqs[seq_id]
