# blastmsa/sources/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Set

__all__ = [
    "MatchBlock",
    "ReadBlock",
    "ReadSource",
    "ActiveMatchSelector",
    "Match",
    "Read",
    "ListReadSource",
    "all_matches",
]


class MatchBlock(Protocol):
    text: Optional[str]
    score: float
    expected: float
    percent_identity: float


class ReadBlock(Protocol):
    header: str
    sequence: Optional[str]

    @property
    def matches(self) -> Sequence[MatchBlock]: ...


class ReadSource(Protocol):
    """Upstream provider of reads and their matches."""

    def has_alignments(self) -> bool: ...
    def __iter__(self) -> Iterator[ReadBlock]: ...

    @property
    def maximum_progress(self) -> int: ...


# Given a read, return the indices of its matches that may be used.
ActiveMatchSelector = Callable[[ReadBlock], Iterable[int]]


def all_matches(read: ReadBlock) -> Set[int]:
    """Selector that treats every match of a read as active."""
    return set(range(len(read.matches)))


@dataclass(slots=True)
class Match:
    text: Optional[str]
    score: float = 0.0
    expected: float = 0.0
    percent_identity: float = 0.0


@dataclass(slots=True)
class Read:
    header: str
    sequence: Optional[str]
    matches: List[Match] = field(default_factory=list)


@dataclass
class ListReadSource:
    """
    Tiny in-memory source for tests and for callers that already hold the reads.
    `alignments=False` models an archive that was stored without match texts.
    """
    reads: List[Read]
    alignments: bool = True

    def has_alignments(self) -> bool:
        return self.alignments

    def __iter__(self) -> Iterator[Read]:
        return iter(self.reads)

    @property
    def maximum_progress(self) -> int:
        return len(self.reads)
