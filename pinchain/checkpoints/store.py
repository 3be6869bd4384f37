"""pinchain.checkpoints.store

The object a node holds.

Build a table (defaults, file, optional feed), freeze it, publish it. Reads
go straight to the published table without locking. A reload builds a whole
new table under one lock and swaps the reference; readers never see a
half-built table.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

from pinchain.checkpoints.conflicts import check_for_conflicts, find_conflicts
from pinchain.checkpoints.loader import CheckpointLoader, SourceReport
from pinchain.checkpoints.sources import HttpFeed, RemoteFeed
from pinchain.checkpoints.table import CheckpointTable
from pinchain.checkpoints.validator import (
    block_passes,
    check_block,
    is_alternative_block_allowed,
    is_in_checkpoint_zone,
)
from pinchain.core.config import Config
from pinchain.core.exceptions import CheckpointLoadError, ConflictingEntryError
from pinchain.core.types import BlockCheck, BlockHash

logger = logging.getLogger(__name__)


def build_table(
    config: Config,
    *,
    feed: RemoteFeed | None = None,
    enable_remote: bool | None = None,
) -> tuple[CheckpointTable, list[SourceReport]]:
    """Defaults, then file, then (optionally) feed. Frozen on success."""

    if enable_remote is None:
        enable_remote = config.feed.enabled
    owned_feed: HttpFeed | None = None
    if enable_remote and feed is None:
        feed = owned_feed = HttpFeed(config.feed)

    table = CheckpointTable()
    loader = CheckpointLoader(table, feed=feed, feed_required=config.feed.required)
    loader.init_defaults(config.network)
    try:
        ok = loader.load_new_checkpoints(config.checkpoints_path, config.network, enable_remote=enable_remote)
    finally:
        if owned_feed is not None:
            owned_feed.close()
    if not ok:
        raise CheckpointLoadError(f"failed to load checkpoints for {config.network}")

    table.freeze()
    logger.info("checkpoint table ready: %d points, max height %d", len(table), table.get_max_height())
    return table, loader.reports


class CheckpointStore:
    def __init__(self, table: CheckpointTable, *, config: Config | None = None, feed: RemoteFeed | None = None) -> None:
        if not table.frozen:
            table.freeze()
        self._table = table
        self._config = config
        self._feed = feed
        self._reload_lock = threading.Lock()
        self.reports: list[SourceReport] = []

    @classmethod
    def bootstrap(
        cls,
        config: Config,
        *,
        feed: RemoteFeed | None = None,
        enable_remote: bool | None = None,
    ) -> CheckpointStore:
        table, reports = build_table(config, feed=feed, enable_remote=enable_remote)
        store = cls(table, config=config, feed=feed)
        store.reports = reports
        return store

    @property
    def table(self) -> CheckpointTable:
        return self._table

    def reload(self, *, enable_remote: bool | None = None) -> CheckpointTable:
        """Rebuild from sources and swap in the new table.

        The new table must agree with the current one at every shared height.
        On any failure the current table stays published.
        """

        if self._config is None:
            raise CheckpointLoadError("store was built without a config; nothing to reload from")

        with self._reload_lock:
            table, reports = build_table(self._config, feed=self._feed, enable_remote=enable_remote)
            if not check_for_conflicts(self._table, table):
                bad = find_conflicts(self._table, table)
                height = bad[0].height if bad else None
                raise ConflictingEntryError(f"reloaded checkpoints conflict at height {height}", height=height)
            self._table = table
            self.reports = reports
        logger.info("checkpoint table reloaded, max height %d", table.get_max_height())
        return table

    # -- query surface -------------------------------------------------------

    def check_block(self, height: int, block_hash: BlockHash | str) -> BlockCheck:
        return check_block(self._table, height, block_hash)

    def block_passes(self, height: int, block_hash: BlockHash | str) -> bool:
        return block_passes(self._table, height, block_hash)

    def is_in_checkpoint_zone(self, height: int) -> bool:
        return is_in_checkpoint_zone(self._table, height)

    def is_alternative_block_allowed(self, current_chain_height: int, candidate_block_height: int) -> bool:
        return is_alternative_block_allowed(self._table, current_chain_height, candidate_block_height)

    def get_max_height(self) -> int:
        return self._table.get_max_height()

    def get_points(self) -> Mapping[int, BlockHash]:
        return self._table.get_points()

    def get_difficulty_points(self) -> Mapping[int, int]:
        return self._table.get_difficulty_points()

    def check_for_conflicts(self, other: CheckpointTable) -> bool:
        return check_for_conflicts(self._table, other)
