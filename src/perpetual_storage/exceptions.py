"""Exceptions raised by the storage adapters.

Local filesystem failures derive from ``StorageError``; failures of the
Autonomi archive bridge derive from ``ArchiveError``. Host errors are always
chained as ``__cause__``.
"""
from typing import Optional


class PerpetualStorageError(Exception):
    """Base exception for the package."""

    def __init__(self, message: str, location: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.location = location


# =========================================================================
# LOCAL FILESYSTEM
# =========================================================================

class StorageError(PerpetualStorageError):
    """Base for failures of local path-addressed operations."""


class InvalidPathError(StorageError, ValueError):
    """Raised when a path would resolve outside the storage root."""

    @classmethod
    def outside_root(cls, location: str) -> "InvalidPathError":
        return cls(f"Path is outside the storage root: {location}", location)

    @classmethod
    def unresolvable(cls, location: str, reason: str) -> "InvalidPathError":
        return cls(f"Unable to resolve path {location}: {reason}", location)


class NotFoundError(StorageError):
    """Raised when an operation requires a file or directory that is absent."""

    @classmethod
    def file(cls, location: str) -> "NotFoundError":
        return cls(f"File does not exist at {location}", location)

    @classmethod
    def directory(cls, location: str) -> "NotFoundError":
        return cls(f"Directory does not exist at {location}", location)


class CheckExistenceError(StorageError):
    @classmethod
    def for_location(cls, location: str, reason: str) -> "CheckExistenceError":
        return cls(f"Unable to check existence for {location}: {reason}", location)


class WriteError(StorageError):
    @classmethod
    def at_location(cls, location: str, reason: str) -> "WriteError":
        return cls(f"Unable to write file at {location}: {reason}", location)


class ReadError(StorageError):
    @classmethod
    def from_location(cls, location: str, reason: str) -> "ReadError":
        return cls(f"Unable to read file from {location}: {reason}", location)


class ReadNotFoundError(ReadError, NotFoundError):
    """A read failed because the file is absent."""

    @classmethod
    def from_location(cls, location: str, reason: str = "file does not exist") -> "ReadNotFoundError":
        return cls(f"Unable to read file from {location}: {reason}", location)


class DeleteError(StorageError):
    @classmethod
    def at_location(cls, location: str, reason: str) -> "DeleteError":
        return cls(f"Unable to delete file at {location}: {reason}", location)


class DeleteDirectoryError(StorageError):
    """Recursive deletion stopped partway; earlier removals are not rolled back."""

    @classmethod
    def at_location(cls, location: str, reason: str) -> "DeleteDirectoryError":
        return cls(f"Unable to delete directory at {location}: {reason}", location)


class CreateDirectoryError(StorageError):
    @classmethod
    def at_location(cls, location: str, reason: str) -> "CreateDirectoryError":
        return cls(f"Unable to create directory at {location}: {reason}", location)


class SetVisibilityError(StorageError):
    @classmethod
    def at_location(cls, location: str, reason: str) -> "SetVisibilityError":
        return cls(f"Unable to set visibility for file at {location}: {reason}", location)


class MetadataError(StorageError):
    """Raised when a metadata query fails on a file that exists."""

    def __init__(self, message: str, location: Optional[str] = None, metadata_type: str = ""):
        super().__init__(message, location)
        self.metadata_type = metadata_type

    @classmethod
    def create(cls, location: str, metadata_type: str, reason: str) -> "MetadataError":
        return cls(
            f"Unable to retrieve the {metadata_type} for file at {location}: {reason}",
            location,
            metadata_type,
        )


class ListContentsError(StorageError):
    @classmethod
    def at_location(cls, location: str, reason: str) -> "ListContentsError":
        return cls(f"Unable to list contents at {location}: {reason}", location)


class MoveError(StorageError):
    def __init__(self, message: str, source: str, destination: str):
        super().__init__(message, source)
        self.source = source
        self.destination = destination

    @classmethod
    def from_location_to(cls, source: str, destination: str, reason: str) -> "MoveError":
        return cls(f"Unable to move file from {source} to {destination}: {reason}", source, destination)


class CopyError(StorageError):
    def __init__(self, message: str, source: str, destination: str):
        super().__init__(message, source)
        self.source = source
        self.destination = destination

    @classmethod
    def from_location_to(cls, source: str, destination: str, reason: str) -> "CopyError":
        return cls(f"Unable to copy file from {source} to {destination}: {reason}", source, destination)


# =========================================================================
# AUTONOMI ARCHIVE
# =========================================================================

class ArchiveError(PerpetualStorageError):
    """Base for failures of archive operations."""


class ArchiveNotEnabledError(ArchiveError):
    """Archive operation called on an adapter built without Autonomi integration."""

    def __init__(self, message: str = "Autonomi integration for directories is not enabled"):
        super().__init__(message)


class InvalidArgumentError(ArchiveError, ValueError):
    """An archive call was rejected locally, before any request was sent."""

    NOT_A_DIRECTORY = "not_a_directory"
    MISSING_KEY = "missing_key"

    def __init__(self, message: str, reason: str, location: Optional[str] = None):
        super().__init__(message, location)
        self.reason = reason

    @classmethod
    def not_a_directory(cls, location: str) -> "InvalidArgumentError":
        return cls(f"Directory not found: {location}", cls.NOT_A_DIRECTORY, location)

    @classmethod
    def missing_key(cls) -> "InvalidArgumentError":
        return cls("Either data_map or public_address must be provided", cls.MISSING_KEY)


class RemoteError(ArchiveError):
    """The Autonomi API could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(ArchiveError):
    """The Autonomi API answered with a body that is not the expected JSON."""
