"""pinchain.checkpoints.validator

Read-only verdicts over a checkpoint table.

Nothing here mutates the table. Safe to call from many validation workers
once the table is frozen.
"""

from __future__ import annotations

import logging

from pinchain.checkpoints.table import CheckpointTable
from pinchain.core.exceptions import MalformedRecordError
from pinchain.core.types import BlockCheck, BlockHash, parse_hash

logger = logging.getLogger(__name__)


def is_in_checkpoint_zone(table: CheckpointTable, height: int) -> bool:
    return len(table) > 0 and height <= table.get_max_height()


def check_block(table: CheckpointTable, height: int, block_hash: BlockHash | str) -> BlockCheck:
    """Raw 32 bytes or 64 hex chars. An unreadable hash fails a pinned height."""

    expected = table.get_points().get(height)
    if expected is None:
        return BlockCheck(accepted=True, is_checkpoint=False)

    try:
        got = parse_hash(block_hash)
    except MalformedRecordError as e:
        logger.warning("checkpoint failed at height %d: unreadable block hash: %s", height, e)
        return BlockCheck(accepted=False, is_checkpoint=True)

    if expected == got:
        logger.debug("checkpoint passed at height %d %s", height, expected.hex())
        return BlockCheck(accepted=True, is_checkpoint=True)

    logger.warning(
        "checkpoint failed at height %d: expected %s, got %s",
        height,
        expected.hex(),
        got.hex(),
    )
    return BlockCheck(accepted=False, is_checkpoint=True)


def block_passes(table: CheckpointTable, height: int, block_hash: BlockHash | str) -> bool:
    return check_block(table, height, block_hash).accepted


def is_alternative_block_allowed(
    table: CheckpointTable,
    current_chain_height: int,
    candidate_block_height: int,
) -> bool:
    """May a fork block at ``candidate_block_height`` exist at all?

    Forks are only allowed above the nearest checkpoint at or below the
    current tip. Height 0 never forks.
    """

    if candidate_block_height == 0:
        return False

    nearest = table.floor_height(current_chain_height)
    if nearest is None:
        return True
    return nearest < candidate_block_height
