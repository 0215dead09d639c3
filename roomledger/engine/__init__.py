"""
roomledger/engine - concurrency primitives shared by the services

- identifiers: shared monotonic identifier allocator
- locks: per-room lock registry with bounded wait

Usage:
    >>> from roomledger.engine import IdentifierAllocator, RoomLockRegistry
"""
from roomledger.engine.identifiers import IdentifierAllocator
from roomledger.engine.locks import RoomLockRegistry

__all__ = ["IdentifierAllocator", "RoomLockRegistry"]
