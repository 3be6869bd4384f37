"""pinchain.core

Core primitives.

If a module needs to exist, it should probably depend only on this package.
"""

from .config import Config
from .exceptions import PinchainError
from .types import BlockCheck, CheckpointEntry, DifficultyEntry, Network

__all__ = [
    "BlockCheck",
    "CheckpointEntry",
    "Config",
    "DifficultyEntry",
    "Network",
    "PinchainError",
]
