"""pinchain.checkpoints.conflicts

Compare two checkpoint tables before trusting one of them.

Verification only. Neither table is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from pinchain.checkpoints.table import CheckpointTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Conflict:
    height: int
    kind: Literal["hash", "difficulty"]
    ours: str
    theirs: str


def check_for_conflicts(table: CheckpointTable, other: CheckpointTable) -> bool:
    """True iff every height both tables pin carries the same hash."""

    ours = table.get_points()
    for height, theirs in other.get_points().items():
        mine = ours.get(height)
        if mine is not None and mine != theirs:
            logger.error(
                "checkpoint conflict at height %d: have %s, other has %s",
                height,
                mine.hex(),
                theirs.hex(),
            )
            return False
    return True


def find_conflicts(table: CheckpointTable, other: CheckpointTable) -> list[Conflict]:
    """Every mismatch between two tables, ascending by height.

    Difficulties are compared only where both sides carry one.
    """

    out: list[Conflict] = []
    ours = table.get_points()
    ours_diff = table.get_difficulty_points()
    other_diff = other.get_difficulty_points()

    for entry in other.entries():
        mine = ours.get(entry.height)
        if mine is not None and mine != entry.hash:
            out.append(Conflict(entry.height, "hash", mine.hex(), entry.hash.hex()))

    for height in sorted(other_diff):
        mine_diff = ours_diff.get(height)
        if mine_diff is not None and mine_diff != other_diff[height]:
            out.append(Conflict(height, "difficulty", hex(mine_diff), hex(other_diff[height])))

    out.sort(key=lambda c: (c.height, c.kind))
    return out
