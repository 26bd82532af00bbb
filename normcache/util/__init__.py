"""
NormCache Utils
===============

Small data structures used by the cache internals.

Classes:
- CoWWatchSet: Copy-on-Write watch registry with stable iteration snapshots
"""

from .cow_watch_set import CoWWatchSet, SharedWatchArray

__all__ = [
    "CoWWatchSet",
    "SharedWatchArray",
]
