"""pinchain.checkpoints.loader

Merge policy.

Precedence is fixed: hardcoded defaults, then the local hashfile, then the
remote feed. A later source only adds heights strictly above what the
earlier ones already pin. Partial additions are never rolled back.

Trusted data (the hashfile) is strict: one conflicting record fails the
load. The feed is untrusted noise: conflicts and bad records are dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pinchain.checkpoints.defaults import init_defaults
from pinchain.checkpoints.sources import (
    DisabledFeed,
    RawEntry,
    RemoteFeed,
    parse_feed_records,
    read_hashfile,
)
from pinchain.checkpoints.table import CheckpointTable
from pinchain.core.exceptions import FeedDisabledError, MalformedRecordError, UnparseableSourceError
from pinchain.core.types import Network, parse_hash, parse_height

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceReport:
    source: str
    added: int = 0
    below_floor: int = 0
    malformed: int = 0
    conflicts: int = 0
    ok: bool = True


def apply_entries(
    table: CheckpointTable,
    entries: Iterable[RawEntry],
    min_height_exclusive: int,
    *,
    strict: bool = True,
    source: str = "source",
) -> SourceReport:
    report = SourceReport(source=source)
    for height, block_hash in entries:
        if height <= min_height_exclusive:
            logger.debug("%s: ignoring checkpoint height %d (floor %d)", source, height, min_height_exclusive)
            report.below_floor += 1
            continue

        try:
            parse_height(height)
            parse_hash(block_hash)
        except MalformedRecordError as e:
            logger.warning("%s: skipping malformed checkpoint at height %d: %s", source, height, e)
            report.malformed += 1
            continue

        if table.add_checkpoint(height, block_hash):
            report.added += 1
            continue

        report.conflicts += 1
        if strict:
            logger.error("%s: conflicting checkpoint at height %d, aborting source", source, height)
            report.ok = False
            return report
        logger.warning("%s: dropping conflicting checkpoint at height %d", source, height)

    logger.info(
        "%s: added=%d below_floor=%d malformed=%d conflicts=%d",
        source,
        report.added,
        report.below_floor,
        report.malformed,
        report.conflicts,
    )
    return report


def load_from_source(
    table: CheckpointTable,
    entries: Iterable[RawEntry],
    min_height_exclusive: int,
    *,
    strict: bool = True,
) -> bool:
    return apply_entries(table, entries, min_height_exclusive, strict=strict).ok


class CheckpointLoader:
    """Fills one table from the file and the optional feed."""

    def __init__(
        self,
        table: CheckpointTable,
        *,
        feed: RemoteFeed | None = None,
        feed_required: bool = False,
    ) -> None:
        self.table = table
        self.feed: RemoteFeed = feed or DisabledFeed()
        self.feed_required = feed_required
        self.reports: list[SourceReport] = []

    def init_defaults(self, network: Network) -> None:
        init_defaults(self.table, network)

    def load_checkpoints_from_file(self, path: Path | None, floor: int | None = None) -> bool:
        """Missing file is not an error. Unreadable file is."""

        if path is None:
            return True
        try:
            hashfile = read_hashfile(path)
        except UnparseableSourceError as e:
            logger.error("error loading checkpoints from %s: %s", path, e)
            self.reports.append(SourceReport(source=str(path), ok=False))
            return False
        if hashfile is None:
            logger.info("checkpoints file not found: %s", path)
            return True

        if floor is None:
            floor = self.table.get_max_height()
        logger.info("adding checkpoints from %s above height %d", path, floor)
        report = apply_entries(self.table, hashfile.raw_entries(), floor, strict=True, source=str(path))
        self.reports.append(report)
        return report.ok

    def load_checkpoints_from_feed(self, network: Network) -> bool:
        try:
            records = self.feed.fetch_records(network)
        except FeedDisabledError:
            logger.info("remote checkpoint feed disabled")
            return False
        except UnparseableSourceError as e:
            logger.warning("remote checkpoint feed failed: %s", e)
            return False

        floor = self.table.get_max_height()
        report = apply_entries(
            self.table,
            parse_feed_records(records),
            floor,
            strict=False,
            source=f"feed:{network}",
        )
        self.reports.append(report)
        return report.ok

    def load_new_checkpoints(self, file_path: Path | None, network: Network, enable_remote: bool = False) -> bool:
        prev_max = self.table.get_max_height()
        logger.debug("hardcoded max checkpoint height is %d", prev_max)

        result = self.load_checkpoints_from_file(file_path, floor=prev_max)
        if enable_remote:
            feed_ok = self.load_checkpoints_from_feed(network)
            if self.feed_required:
                result = result and feed_ok
            elif not feed_ok:
                logger.warning("continuing without remote checkpoints")
        return result
