"""pinchain.checkpoints.sources

Where checkpoints come from besides the build.

- a local JSON hashfile (operator overlay)
- a remote feed of ``height:hash`` text records (off by default)

Pydantic owns the hashfile boundary. Feed records are parsed one at a time;
a bad record is dropped, never fatal.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

import httpx
from pydantic import BaseModel, Field, ValidationError

from pinchain.core.client import ClientConfig, FeedClient
from pinchain.core.config import FeedConfig
from pinchain.core.exceptions import FeedDisabledError, MalformedRecordError, UnparseableSourceError
from pinchain.core.types import BlockHash, Network, parse_hash, parse_height

logger = logging.getLogger(__name__)

RawEntry = tuple[int, BlockHash | str]


class HashLine(BaseModel):
    height: int = Field(ge=0)
    hash: str


class HashFile(BaseModel):
    hashlines: list[HashLine] = Field(default_factory=list)

    def raw_entries(self) -> list[RawEntry]:
        return [(line.height, line.hash) for line in self.hashlines]


def read_hashfile(path: Path) -> HashFile | None:
    """Parse a hashfile. None when the file does not exist."""

    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise UnparseableSourceError(f"cannot read checkpoints file {path}: {e}") from e
    try:
        return HashFile.model_validate_json(text)
    except ValidationError as e:
        raise UnparseableSourceError(f"invalid checkpoints file {path}: {e.error_count()} error(s)") from e


def dump_hashfile(entries: Iterable[tuple[int, BlockHash]]) -> str:
    lines = [{"height": height, "hash": bytes(h).hex()} for height, h in entries]
    return json.dumps({"hashlines": lines}, indent=2)


def parse_feed_record(record: str) -> tuple[int, BlockHash] | None:
    """``"<height>:<64 hex>"`` -> (height, hash). None if malformed."""

    height_text, sep, hash_text = record.partition(":")
    if not sep:
        return None
    try:
        return parse_height(height_text), parse_hash(hash_text.strip())
    except MalformedRecordError:
        return None


def parse_feed_records(records: Iterable[str]) -> list[tuple[int, BlockHash]]:
    out: list[tuple[int, BlockHash]] = []
    dropped = 0
    for record in records:
        parsed = parse_feed_record(str(record))
        if parsed is None:
            dropped += 1
            continue
        out.append(parsed)
    if dropped:
        logger.debug("dropped %d malformed feed record(s)", dropped)
    return out


class RemoteFeed(Protocol):
    def fetch_records(self, network: Network) -> list[str]:
        """Raw ``height:hash`` strings for ``network``.

        Raises UnparseableSourceError when the feed cannot be reached.
        """
        ...


class DisabledFeed:
    def fetch_records(self, network: Network) -> list[str]:
        raise FeedDisabledError("remote checkpoint feed is disabled")


class StaticFeed:
    """Fixed records per network. Air-gapped operators and tests."""

    def __init__(self, records: dict[Network, Sequence[str]] | None = None) -> None:
        self._records = {Network(k): list(v) for k, v in (records or {}).items()}

    def fetch_records(self, network: Network) -> list[str]:
        return list(self._records.get(Network(network), []))


class HttpFeed:
    """Feed served as a JSON array of ``height:hash`` strings.

    Records from every configured URL are pooled. One dead URL is tolerated;
    all of them dead is a source failure.
    """

    def __init__(self, config: FeedConfig, *, client: FeedClient | None = None) -> None:
        self.config = config
        self._client = client or FeedClient(
            ClientConfig(
                max_retries=config.max_retries,
                timeout_s=config.timeout_s,
                allow_private=config.allow_private,
            )
        )

    def close(self) -> None:
        self._client.close()

    def fetch_records(self, network: Network) -> list[str]:
        urls = self.config.urls_for(network)
        if not urls:
            logger.info("no feed urls configured for %s", network)
            return []

        records: list[str] = []
        failures = 0
        for url in urls:
            try:
                data = self._client.get_json(
                    url,
                    expected=list,
                    max_bytes=self.config.max_bytes,
                    max_items=self.config.max_records,
                )
            except httpx.HTTPError as e:
                failures += 1
                logger.warning("checkpoint feed %s unavailable: %s", url, e)
                continue
            records.extend(str(r) for r in data if isinstance(r, str))

        if failures == len(urls):
            raise UnparseableSourceError(f"all {failures} checkpoint feed url(s) failed for {network}")
        return records
