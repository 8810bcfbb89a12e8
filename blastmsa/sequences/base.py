# blastmsa/sequences/base.py
from __future__ import annotations

import io
import os
from typing import Iterator, Sequence, TextIO, Union

__all__ = [
    "Source",
    "iter_lines",
    "reverse_complement",
    "strip_whitespace",
]

Source = Union[str, TextIO, Sequence[str]]

_rc_table = str.maketrans("ACGTURYSWKMBDHVNacgturyswkmbdhvn",
                          "TGCAAYRSWMKVHDBNtgcaayrswmkvhdbn")

_ws_table = str.maketrans("", "", " \t\r\n")


def reverse_complement(s: str) -> str:
    # gaps and unknown symbols pass through unchanged
    return s.translate(_rc_table)[::-1]


def strip_whitespace(s: str) -> str:
    return s.translate(_ws_table)


def iter_lines(source: Source) -> Iterator[str]:
    """
    Yield lines from:
      - a path (str, existing file path),
      - a text block (str with newlines),
      - a file-like (TextIO),
      - or a sequence of lines.
    """
    if isinstance(source, str):
        if "\n" not in source and os.path.isfile(source):
            with open(source, "r", encoding="utf-8", errors="ignore") as fh:
                yield from fh
        else:
            yield from io.StringIO(source)
    elif hasattr(source, "read"):
        for line in source:  # type: ignore[union-attr]
            yield line
    else:
        yield from source
