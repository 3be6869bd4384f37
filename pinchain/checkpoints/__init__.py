"""pinchain.checkpoints

Table, verdicts, merge policy, and the store a node holds.
"""

from .conflicts import Conflict, check_for_conflicts, find_conflicts
from .defaults import DEFAULT_CHECKPOINTS, init_defaults
from .loader import CheckpointLoader, SourceReport, load_from_source
from .sources import DisabledFeed, HttpFeed, RemoteFeed, StaticFeed
from .store import CheckpointStore, build_table
from .table import CheckpointTable
from .validator import block_passes, check_block, is_alternative_block_allowed, is_in_checkpoint_zone

__all__ = [
    "DEFAULT_CHECKPOINTS",
    "CheckpointLoader",
    "CheckpointStore",
    "CheckpointTable",
    "Conflict",
    "DisabledFeed",
    "HttpFeed",
    "RemoteFeed",
    "SourceReport",
    "StaticFeed",
    "block_passes",
    "build_table",
    "check_block",
    "check_for_conflicts",
    "find_conflicts",
    "init_defaults",
    "is_alternative_block_allowed",
    "is_in_checkpoint_zone",
    "load_from_source",
]
