# blastmsa/formats/blast_text.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from blastmsa.errors import ParseError
from blastmsa.models.flavor import Flavor

__all__ = [
    "BlastTextRecord",
    "decode",
    "truncate_before_second_occurrence",
    "grab_next",
    "grab_next3",
    "grab_last_in_line_passed_score",
    "grab_query_string",
    "grab_subject_string",
    "remove_reference_header",
    "guess_flavor",
    "parse_int",
    "parse_frame",
    "parse_strand",
]

# A match text is one local alignment as printed by BLAST, e.g.
#
#   Length = 10
#
#    Score = 42.0 bits (100), Expect = 1e-05
#    Identities = 4/5 (80%)
#    Frame = +1                          (BlastX)
#    Strand = Plus / Minus               (BlastN)
#
#   Query: 1 ABCDE 5
#            AB DE
#   Sbjct: 3 AB-DE 7
#
# Long alignments are wrapped into several Query/Sbjct sub-blocks.

_INT_RE = re.compile(r"^[+-]?\d+")


# -------------------------
# Token primitives
# -------------------------

def parse_int(token: Optional[str]) -> int:
    """Leading integer of `token`; 0 if there is none."""
    if token is None:
        return 0
    m = _INT_RE.match(token.strip())
    return int(m.group(0)) if m else 0


def truncate_before_second_occurrence(text: str, marker: str) -> str:
    """Everything before the second occurrence of `marker` (the whole text if it occurs at most once)."""
    pos = text.find(marker)
    if pos == -1:
        return text
    pos = text.find(marker, pos + 1)
    return text if pos == -1 else text[:pos]


def _find_key(text: str, key: str, alias: Optional[str]) -> Tuple[int, int]:
    pos, length = text.find(key), len(key)
    if pos == -1 and alias is not None:
        pos, length = text.find(alias), len(alias)
    return pos, length


def grab_next(text: str, key: str, alias: Optional[str] = None) -> Optional[str]:
    """First whitespace-delimited token after `key` (or `alias` if `key` is absent)."""
    pos, length = _find_key(text, key, alias)
    if pos == -1:
        return None
    tokens = text[pos + length:].split(None, 1)
    return tokens[0] if tokens else None


def grab_next3(text: str, key: str, alias: Optional[str] = None) -> Optional[Tuple[str, str, str]]:
    """Next three tokens after `key` (or `alias`); None if fewer than three remain."""
    pos, length = _find_key(text, key, alias)
    if pos == -1:
        return None
    tokens = text[pos + length:].split(None, 3)
    if len(tokens) < 3:
        return None
    return tokens[0], tokens[1], tokens[2]


def grab_last_in_line_passed_score(text: str, key: str) -> str:
    """
    Last token of the last line starting with `key`. That line must come after
    the first "Score" marker; this is how the end coordinate of a wrapped
    Query/Sbjct row is found.
    """
    score_pos = text.find("Score")
    if score_pos == -1:
        raise ParseError("Token not found: 'Score'")

    last_line: Optional[str] = None
    last_pos = -1
    offset = 0
    for line in text.splitlines(keepends=True):
        if line.lstrip().startswith(key):
            last_line, last_pos = line, offset
        offset += len(line)

    if last_line is None:
        raise ParseError(f"Token not found: '{key}'")
    if last_pos < score_pos:
        raise ParseError(f"Token not found after 'Score': '{key}'")
    return last_line.split()[-1]


# -------------------------
# Aligned rows
# -------------------------

def _lines_of_first_block(text: str) -> Iterator[str]:
    passed_score = False
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("Score"):
            if passed_score:
                return
            passed_score = True
        yield line


def _grab_row_string(text: str, key: str) -> str:
    buf = []
    for line in _lines_of_first_block(text):
        if line.startswith(key):
            words = line.split()
            if len(words) < 3:
                raise ParseError(f"Malformed {key} line: {line!r}")
            buf.append(words[2])
    return "".join(buf).replace("\n", "").replace("\r", "")


def grab_query_string(text: str) -> str:
    """Aligned query row, concatenated over all wrapped sub-blocks of the first alignment."""
    return _grab_row_string(text, "Query")


def grab_subject_string(text: str) -> str:
    """Aligned subject row, concatenated over all wrapped sub-blocks of the first alignment."""
    return _grab_row_string(text, "Sbjct")


# -------------------------
# Whole-text helpers
# -------------------------

def remove_reference_header(text: str) -> str:
    """Drop the reference description, keeping the Length statement if there is one."""
    index = text.find("Length")
    if index == -1:
        index = text.find("Score")
    return text[index:] if index > 0 else text


def guess_flavor(text: Optional[str]) -> Flavor:
    if not text or "Query" not in text:
        return Flavor.UNKNOWN
    if "Frame=" in text or "Frame =" in text:
        return Flavor.BLASTX
    if "Strand=" in text or "Strand =" in text:
        return Flavor.BLASTN
    return Flavor.BLASTP


def parse_frame(text: str) -> int:
    return parse_int(grab_next(text, "Frame =", "Frame="))


def parse_strand(text: str) -> Optional[Tuple[str, str]]:
    """(query strand, subject strand) from 'Strand = Plus / Minus' or 'Strand=Plus/Minus'."""
    token = grab_next(text, "Strand =", "Strand=")
    if token is not None and "/" in token:
        query, _, subject = token.partition("/")
        return query, subject
    three = grab_next3(text, "Strand =", "Strand=")
    if three is None:
        return None
    return three[0], three[2]


# -------------------------
# Record
# -------------------------

@dataclass(slots=True)
class BlastTextRecord:
    """
    Fields scanned from one match text, verbatim (no strand or frame
    normalisation). Coordinates are 1-based, fully-closed, in report order.
    """
    flavor: Flavor
    length: int
    exact_length: bool

    query_start: int
    query_end: int
    subject_start: int
    subject_end: int

    query_seq: str
    subject_seq: str

    frame: Optional[int] = None
    strand: Optional[Tuple[str, str]] = None


def _required_int(text: str, key: str, alias: str) -> int:
    token = grab_next(text, key, alias)
    if token is None:
        raise ParseError(f"Token not found: '{alias}'")
    return parse_int(token)


def decode(text: str, flavor: Optional[Flavor] = None, *, default_length: int = 10000) -> BlastTextRecord:
    """
    Scan one (already truncated) match text into a BlastTextRecord.

    `flavor` defaults to guess_flavor(text). Only BlastN accepts a
    'Length >=' lower bound; a missing length falls back to `default_length`.
    """
    if flavor is None:
        flavor = guess_flavor(text)
    if flavor is Flavor.UNKNOWN:
        raise ParseError("Unknown BLAST format")

    exact_length = True
    length = parse_int(grab_next(text, "Length =", "Length="))
    if length <= 0 and flavor is Flavor.BLASTN:
        bound = parse_int(grab_next(text, "Length >=", "Length>="))
        if bound > 0:
            length = bound
            exact_length = False
    if length <= 0:
        length = default_length

    query_start = _required_int(text, "Query:", "Query")
    query_end = parse_int(grab_last_in_line_passed_score(text, "Query"))
    subject_start = _required_int(text, "Sbjct:", "Sbjct")
    subject_end = parse_int(grab_last_in_line_passed_score(text, "Sbjct"))

    query_seq = grab_query_string(text)
    subject_seq = grab_subject_string(text)
    if not query_seq or len(query_seq) != len(subject_seq):
        raise ParseError(
            f"Aligned rows differ in length or are empty: query={len(query_seq)} subject={len(subject_seq)}"
        )

    return BlastTextRecord(
        flavor=flavor,
        length=length,
        exact_length=exact_length,
        query_start=query_start,
        query_end=query_end,
        subject_start=subject_start,
        subject_end=subject_end,
        query_seq=query_seq,
        subject_seq=subject_seq,
        frame=parse_frame(text) if flavor is Flavor.BLASTX else None,
        strand=parse_strand(text) if flavor is Flavor.BLASTN else None,
    )
