"""pinchain.checkpoints.table

The checkpoint table.

Two height-keyed maps: hashes and cumulative difficulties. Entries are only
ever added. A second, different value at a pinned height is refused, never
written over.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from pinchain.core.exceptions import MalformedRecordError, TableFrozenError
from pinchain.core.types import (
    BlockHash,
    CheckpointEntry,
    DifficultyEntry,
    parse_difficulty,
    parse_hash,
    parse_height,
)

logger = logging.getLogger(__name__)


class CheckpointTable:
    def __init__(self) -> None:
        self._points: dict[int, BlockHash] = {}
        self._difficulty_points: dict[int, int] = {}
        # ascending; mirrors self._points keys
        self._heights: list[int] = []
        self._points_view = MappingProxyType(self._points)
        self._difficulty_view = MappingProxyType(self._difficulty_points)
        self._frozen = False

    def __len__(self) -> int:
        return len(self._points)

    def __contains__(self, height: object) -> bool:
        return height in self._points

    def __repr__(self) -> str:
        return f"CheckpointTable(points={len(self._points)}, max_height={self.get_max_height()}, frozen={self._frozen})"

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Close the write phase. Readers may share the table from here on."""
        self._frozen = True

    def add_checkpoint(
        self,
        height: int,
        block_hash: BlockHash | str,
        difficulty: int | str | None = None,
    ) -> bool:
        """Pin ``height`` to ``block_hash`` and, if given, ``difficulty``.

        Returns False for a malformed value or for a conflict with an existing
        pin. The call is all-or-nothing: nothing is written unless both the
        hash and the difficulty are accepted.
        """

        if self._frozen:
            raise TableFrozenError("checkpoint table is frozen")

        try:
            height = parse_height(height)
            h = parse_hash(block_hash)
            diff = parse_difficulty(difficulty)
        except MalformedRecordError as e:
            logger.error("rejected checkpoint at height %s: %s", height, e)
            return False

        existing = self._points.get(height)
        if existing is not None and existing != h:
            logger.error(
                "checkpoint conflict at height %d: have %s, refused %s",
                height,
                existing.hex(),
                h.hex(),
            )
            return False

        if diff is not None:
            existing_diff = self._difficulty_points.get(height)
            if existing_diff is not None and existing_diff != diff:
                logger.error(
                    "difficulty conflict at height %d: have %#x, refused %#x",
                    height,
                    existing_diff,
                    diff,
                )
                return False

        if existing is None:
            self._points[height] = h
            bisect.insort(self._heights, height)
        if diff is not None:
            self._difficulty_points[height] = diff
        return True

    def get_max_height(self) -> int:
        if not self._heights:
            return 0
        return self._heights[-1]

    def get_points(self) -> Mapping[int, BlockHash]:
        """Read-only live view of height -> hash."""
        return self._points_view

    def get_difficulty_points(self) -> Mapping[int, int]:
        """Read-only live view of height -> cumulative difficulty."""
        return self._difficulty_view

    def heights(self) -> list[int]:
        return list(self._heights)

    def floor_height(self, height: int) -> int | None:
        """Greatest pinned height <= ``height``, or None."""
        i = bisect.bisect_right(self._heights, height)
        if i == 0:
            return None
        return self._heights[i - 1]

    def entries(self) -> Iterator[CheckpointEntry]:
        for height in self._heights:
            yield CheckpointEntry(height=height, hash=self._points[height])

    def difficulty_entries(self) -> Iterator[DifficultyEntry]:
        for height in sorted(self._difficulty_points):
            yield DifficultyEntry(height=height, cumulative_difficulty=self._difficulty_points[height])
