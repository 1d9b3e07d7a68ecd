"""
Perpetual storage adapter: local file operations plus optional Autonomi archiving.
"""

import logging
import os
from datetime import date as Date
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Union

from perpetual_storage.adapters.autonomi import DEFAULT_API_URL, DEFAULT_STATS_DAYS, DEFAULT_TIMEOUT, AutonomiBridge
from perpetual_storage.adapters.local import Contents, LocalStorageAdapter, StreamContents
from perpetual_storage.exceptions import ArchiveNotEnabledError, NotFoundError
from perpetual_storage.schemas import ArchiveOperationResult, DirectoryEntry, FileAttributes, OperationType, Visibility

logger = logging.getLogger(__name__)


class PerpetualAdapter:
    """
    Single entry point for path-addressed storage.

    File and directory operations go to a LocalStorageAdapter. Directory
    archiving goes to an AutonomiBridge, which only exists when the adapter
    is built with ``use_autonomi_for_directories=True``; otherwise archive
    calls raise ArchiveNotEnabledError without touching the network.
    """

    def __init__(
        self,
        base_path: Union[str, os.PathLike],
        use_autonomi_for_directories: bool = False,
        autonomi_api_url: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        bridge: Optional[AutonomiBridge] = None,
    ):
        """
        Args:
            base_path: Storage root, created if absent
            use_autonomi_for_directories: Enable the archive operations
            autonomi_api_url: Base URL of the Autonomi API (default http://localhost:8000)
            timeout: Per-request timeout for the Autonomi API
            bridge: Pre-built bridge to use instead of creating one
        """
        self.local = LocalStorageAdapter(base_path)
        self.autonomi_bridge: Optional[AutonomiBridge] = None

        if use_autonomi_for_directories:
            self.autonomi_bridge = bridge or AutonomiBridge(autonomi_api_url or DEFAULT_API_URL, timeout=timeout)

        logger.info(
            f"PerpetualAdapter initialized at {self.local.root} "
            f"(autonomi {'enabled' if self.archive_enabled else 'disabled'})"
        )

    @classmethod
    def from_settings(cls, settings=None) -> "PerpetualAdapter":
        """Build an adapter from Settings (defaults to get_settings())."""
        if settings is None:
            from perpetual_storage.settings import get_settings
            settings = get_settings()
        return cls(
            settings.storage_dir,
            settings.use_autonomi_for_directories,
            settings.autonomi_api_url,
            timeout=settings.autonomi_timeout,
        )

    @property
    def root(self):
        return self.local.root

    @property
    def archive_enabled(self) -> bool:
        return self.autonomi_bridge is not None

    # File operations, delegated to the local adapter

    def file_exists(self, path: str) -> bool:
        return self.local.file_exists(path)

    def directory_exists(self, path: str) -> bool:
        return self.local.directory_exists(path)

    def has(self, path: str) -> bool:
        return self.local.has(path)

    def write(self, path: str, contents: Contents, options: Optional[Dict[str, Any]] = None) -> None:
        self.local.write(path, contents, options)

    def write_stream(self, path: str, contents: StreamContents, options: Optional[Dict[str, Any]] = None) -> None:
        self.local.write_stream(path, contents, options)

    def read(self, path: str) -> bytes:
        return self.local.read(path)

    def read_stream(self, path: str) -> BinaryIO:
        return self.local.read_stream(path)

    def delete(self, path: str) -> None:
        self.local.delete(path)

    def delete_directory(self, path: str) -> None:
        self.local.delete_directory(path)

    def create_directory(self, path: str, options: Optional[Dict[str, Any]] = None) -> None:
        self.local.create_directory(path, options)

    def set_visibility(self, path: str, visibility: Union[Visibility, str]) -> None:
        self.local.set_visibility(path, visibility)

    def visibility(self, path: str) -> Visibility:
        return self.local.visibility(path)

    def mime_type(self, path: str) -> str:
        return self.local.mime_type(path)

    def last_modified(self, path: str) -> int:
        return self.local.last_modified(path)

    def file_size(self, path: str) -> int:
        return self.local.file_size(path)

    def metadata(self, path: str) -> FileAttributes:
        return self.local.metadata(path)

    def list_contents(self, path: str = "", deep: bool = False) -> Iterator[DirectoryEntry]:
        return self.local.list_contents(path, deep)

    def move(self, source: str, destination: str, options: Optional[Dict[str, Any]] = None) -> None:
        self.local.move(source, destination, options)

    def copy(self, source: str, destination: str, options: Optional[Dict[str, Any]] = None) -> None:
        self.local.copy(source, destination, options)

    # Autonomi archive operations

    def _require_bridge(self) -> AutonomiBridge:
        if self.autonomi_bridge is None:
            raise ArchiveNotEnabledError()
        return self.autonomi_bridge

    def upload_directory_to_autonomi(self, path: str, is_public: bool = False) -> ArchiveOperationResult:
        """
        Upload a directory below the root to the Autonomi network.

        Args:
            path: Directory path relative to the root
            is_public: Make the archive publicly retrievable

        Returns:
            Result with status, cost and the data map or public address.
            Keep the identifier: it is the only way to download the archive again.

        Raises:
            ArchiveNotEnabledError: If Autonomi integration is not enabled
            NotFoundError: If the directory does not exist
        """
        bridge = self._require_bridge()
        location = self.local.full_path(path)
        if not location.is_dir():
            raise NotFoundError.directory(path)

        logger.info(f"Uploading {path or '/'} to Autonomi ({'public' if is_public else 'private'})")
        return bridge.upload_directory(str(location), is_public)

    def download_directory_from_autonomi(
        self,
        path: str,
        data_map: Optional[str] = None,
        public_address: Optional[str] = None,
    ) -> ArchiveOperationResult:
        """Download an archive into `path` (relative to the root) using one of its keys."""
        bridge = self._require_bridge()
        location = self.local.full_path(path)

        logger.info(f"Downloading Autonomi archive into {path or '/'}")
        return bridge.download_directory(str(location), data_map, public_address)

    def get_directory_transactions(
        self,
        date: Optional[Union[str, Date]] = None,
        operation_type: Optional[Union[OperationType, str]] = None,
    ) -> Union[List[Dict[str, Any]], Dict[str, Any]]:
        """Transaction history of directory operations, optionally filtered."""
        return self._require_bridge().get_directory_transactions(date, operation_type)

    def get_directory_stats(self, days: int = DEFAULT_STATS_DAYS) -> Dict[str, Any]:
        """Statistics of directory operations over the last `days` days."""
        return self._require_bridge().get_directory_stats(days)
