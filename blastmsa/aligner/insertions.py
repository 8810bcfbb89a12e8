# blastmsa/aligner/insertions.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from blastmsa.models.alignment import Alignment
from blastmsa.models.read_match import Insertion, InsertionMap
from blastmsa.progress import ProgressListener

__all__ = ["collect_insertions", "merge_insertions"]

logger = logging.getLogger(__name__)


def collect_insertions(insertions: Iterable[Insertion]) -> InsertionMap:
    """
    Group emitted insertions by alignment column.

    The result maps column -> [(row, text), ...] with columns in ascending
    order. Insertions must belong to an emitted row (row >= 0).
    """
    pos2insertions: InsertionMap = {}
    for ins in insertions:
        if ins.row < 0:
            raise ValueError(f"insertion at column {ins.column} is not attached to a row")
        pos2insertions.setdefault(ins.column, []).append((ins.row, ins.text))
    return dict(sorted(pos2insertions.items()))


def merge_insertions(
    pos2insertions: InsertionMap,
    alignment: Alignment,
    progress: Optional[ProgressListener] = None,
) -> int:
    """
    Turn read insertions into shared alignment columns.

    Columns are processed in ascending order. At each column the widest
    insertion decides how many columns are opened; the reference and every
    lane are widened by that amount. Inserted residues are shown in lower
    case (all other lane residues are upper-cased first), shorter inserts and
    rows without an insert are padded with gaps. The opened columns are
    recorded in `alignment.insertions_into_reference`.

    Returns the total number of columns added.
    """
    progress = progress or ProgressListener()
    if not pos2insertions:
        return 0

    for lane in alignment.lanes:
        lane.block = lane.block.upper()

    reference = alignment.reference
    offset = 0
    for col in sorted(pos2insertions):
        row2insert: Dict[int, str] = {}
        for row, text in pos2insertions[col]:
            row2insert[row] = row2insert.get(row, "") + text.lower()
        width = max((len(text) for text in row2insert.values()), default=0)
        col += offset
        if width > 0:
            if reference.length > 0:
                reference.insert_after(col, width)
            alignment.insertions_into_reference.update(range(col + 1, col + width + 1))
            for row, lane in enumerate(alignment.lanes):
                lane.insert_after(col, width, row2insert.get(row, ""))
            offset += width
        progress.check_for_cancel()

    logger.debug("Merged insertions at %d columns, %d columns added", len(pos2insertions), offset)
    return offset
