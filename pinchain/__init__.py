"""pinchain: checkpoint pinning for a blockchain node.

A checkpoint binds a block height to the one hash the node will accept there.
Below the highest checkpoint, history is settled by authority, not by work.
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "1.0.0"
