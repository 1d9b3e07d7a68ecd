"""
Perpetual storage adapter.

Local-filesystem storage behind a path-addressed capability contract, with an
optional bridge to the Autonomi network for archiving whole directories.

Usage:
    from perpetual_storage import PerpetualAdapter
    adapter = PerpetualAdapter("storage/perpetual")
    adapter.write("notes/a.txt", b"hello")
"""

from perpetual_storage.adapters.autonomi import AutonomiBridge
from perpetual_storage.adapters.local import LocalStorageAdapter
from perpetual_storage.adapters.storage import PerpetualAdapter
from perpetual_storage.schemas import (
    ArchiveOperationResult,
    DirectoryAttributes,
    DirectoryEntry,
    FileAttributes,
    OperationType,
    Visibility,
)

__all__ = [
    "ArchiveOperationResult",
    "AutonomiBridge",
    "DirectoryAttributes",
    "DirectoryEntry",
    "FileAttributes",
    "LocalStorageAdapter",
    "OperationType",
    "PerpetualAdapter",
    "Visibility",
]
