"""pinchain.core.types

Lightweight dataclasses and parsers for checkpoint values.

Pydantic models own IO boundaries; dataclasses keep the validation path lean.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pinchain.core.exceptions import DifficultyParseError, MalformedRecordError

HASH_SIZE = 32
MAX_HEIGHT = 2**64 - 1

BlockHash = bytes

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class Network(StrEnum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    STAGENET = "stagenet"


@dataclass(frozen=True, slots=True)
class CheckpointEntry:
    height: int
    hash: BlockHash

    @property
    def hash_hex(self) -> str:
        return self.hash.hex()


@dataclass(frozen=True, slots=True)
class DifficultyEntry:
    height: int
    cumulative_difficulty: int


@dataclass(frozen=True, slots=True)
class BlockCheck:
    """Verdict for one block against the table.

    Unpacks as ``accepted, is_checkpoint``.
    """

    accepted: bool
    is_checkpoint: bool

    def __iter__(self):
        yield self.accepted
        yield self.is_checkpoint

    def __bool__(self) -> bool:
        return self.accepted


def _is_hex(text: str) -> bool:
    return bool(text) and all(c in _HEX_DIGITS for c in text)


def parse_height(value: object) -> int:
    if isinstance(value, bool):
        raise MalformedRecordError(f"height must be an integer, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise MalformedRecordError(f"height is not a decimal integer: {value!r}")
        value = int(text)
    if not isinstance(value, int):
        raise MalformedRecordError(f"height must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_HEIGHT:
        raise MalformedRecordError(f"height out of range: {value}")
    return value


def parse_hash(value: object) -> BlockHash:
    """Accept 32 raw bytes or exactly 64 hex characters."""

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if len(raw) != HASH_SIZE:
            raise MalformedRecordError(f"hash must be {HASH_SIZE} bytes, got {len(raw)}")
        return raw
    if not isinstance(value, str):
        raise MalformedRecordError(f"hash must be hex text or bytes, got {type(value).__name__}")
    if len(value) != HASH_SIZE * 2:
        raise MalformedRecordError(f"hash must be {HASH_SIZE * 2} hex chars, got {len(value)}")
    if not _is_hex(value):
        raise MalformedRecordError(f"hash is not hex: {value!r}")
    return bytes.fromhex(value)


def parse_difficulty(value: object) -> int | None:
    """Parse a cumulative difficulty.

    ``None`` and ``""`` mean no assertion. Text is hex with a ``0x`` prefix or
    decimal without one; a leading zero is still decimal.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        raise DifficultyParseError(f"difficulty must be an integer, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise DifficultyParseError(f"difficulty must be non-negative, got {value}")
        return value
    if not isinstance(value, str):
        raise DifficultyParseError(f"difficulty must be text or int, got {type(value).__name__}")

    text = value.strip()
    if not text:
        return None
    if text[:2].lower() == "0x":
        digits = text[2:]
        if _is_hex(digits):
            return int(digits, 16)
    elif text.isascii() and text.isdigit():
        return int(text, 10)
    raise DifficultyParseError(f"unparseable difficulty: {value!r}")
