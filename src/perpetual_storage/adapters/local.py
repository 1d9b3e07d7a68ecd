"""
Local Storage Adapter - path-addressed file operations under a root directory.

Every path is a `/`-separated string relative to the root. Paths that would
climb above the root, lexically or through a symlink, are rejected with
InvalidPathError before the operation runs. Host errors are wrapped in the
operation's exception and chained.
"""

import errno
import logging
import mimetypes
import os
import shutil
import stat
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, Iterator, Optional, Union

import puremagic

from perpetual_storage.exceptions import (
    CheckExistenceError,
    CopyError,
    CreateDirectoryError,
    DeleteDirectoryError,
    DeleteError,
    InvalidPathError,
    ListContentsError,
    MetadataError,
    MoveError,
    NotFoundError,
    ReadError,
    ReadNotFoundError,
    SetVisibilityError,
    WriteError,
)
from perpetual_storage.schemas import DirectoryAttributes, DirectoryEntry, FileAttributes, Visibility

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1048576
MIME_SNIFF_SIZE = 8192

DEFAULT_DIRECTORY_MODE = 0o755
FILE_PERMISSIONS = {Visibility.PUBLIC: 0o644, Visibility.PRIVATE: 0o600}
DIRECTORY_PERMISSIONS = {Visibility.PUBLIC: 0o755, Visibility.PRIVATE: 0o700}

# group-read | other-read
PUBLIC_READ_BITS = 0o044

Contents = Union[bytes, bytearray, str]
StreamContents = Union[Contents, BinaryIO, Iterable[bytes]]


class LocalStorageAdapter:
    """
    Filesystem adapter confined to a single root directory.

    The root is created on construction and is never removed, not even by
    ``delete_directory("")``. Nothing is cached: metadata always reflects
    what is on disk when it is asked for.

    Options accepted by write operations:
        visibility: "public" or "private", applied to the written file
        directory_visibility: "public" or "private", for create_directory
    """

    def __init__(self, root: Union[str, os.PathLike]):
        self.root = Path(root).expanduser().absolute()
        try:
            self._ensure_directory(self.root)
        except OSError as e:
            logger.error(f"Failed to create storage root {self.root}: {e}")
            raise CreateDirectoryError.at_location(str(self.root), str(e)) from e
        self._resolved_root = self.root.resolve()
        logger.debug(f"Local storage ready at {self.root}")

    # =========================================================================
    # PATHS
    # =========================================================================

    @staticmethod
    def normalize_path(path: str) -> str:
        """Collapse separators, `.` and `..` segments; refuse to leave the root."""
        parts = []
        for segment in str(path).split("/"):
            if segment in ("", "."):
                continue
            if segment == "..":
                if not parts:
                    raise InvalidPathError.outside_root(path)
                parts.pop()
            else:
                parts.append(segment)
        return "/".join(parts)

    def full_path(self, path: str) -> Path:
        """
        Absolute host location for a storage path.

        Symlinks are resolved for the confinement check only: a link inside
        the root that points outside it is rejected like a `..` escape.
        """
        location = self.root / self.normalize_path(path)
        try:
            resolved = location.resolve()
        except (OSError, RuntimeError) as e:
            raise InvalidPathError.unresolvable(path, str(e)) from e
        if resolved != self._resolved_root and self._resolved_root not in resolved.parents:
            raise InvalidPathError.outside_root(path)
        return location

    def _relative(self, location: Path) -> str:
        return location.relative_to(self.root).as_posix()

    @staticmethod
    def _ensure_directory(location: Path, mode: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create `location` and every missing ancestor with `mode`."""
        missing = []
        current = location
        while not current.is_dir():
            missing.append(current)
            if current.parent == current:
                break
            current = current.parent

        for directory in reversed(missing):
            try:
                directory.mkdir(mode)
            except FileExistsError:
                if not directory.is_dir():
                    raise

    # =========================================================================
    # EXISTENCE
    # =========================================================================

    def file_exists(self, path: str) -> bool:
        location = self.full_path(path)
        try:
            return location.is_file()
        except OSError as e:
            raise CheckExistenceError.for_location(path, str(e)) from e

    def directory_exists(self, path: str) -> bool:
        location = self.full_path(path)
        try:
            return location.is_dir()
        except OSError as e:
            raise CheckExistenceError.for_location(path, str(e)) from e

    def has(self, path: str) -> bool:
        """True if either a file or a directory is present at `path`."""
        return self.file_exists(path) or self.directory_exists(path)

    # =========================================================================
    # WRITE
    # =========================================================================

    def write(self, path: str, contents: Contents, options: Optional[Dict[str, Any]] = None) -> None:
        """Write `contents` to `path`, replacing any existing file."""
        location = self.full_path(path)
        file_mode = _file_mode(options)
        if isinstance(contents, str):
            contents = contents.encode("utf-8")

        try:
            self._ensure_directory(location.parent)
            location.write_bytes(contents)
            if file_mode is not None:
                location.chmod(file_mode)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise WriteError.at_location(path, str(e)) from e

        logger.debug(f"Wrote {path} ({len(contents)} bytes)")

    def write_stream(self, path: str, contents: StreamContents, options: Optional[Dict[str, Any]] = None) -> None:
        """
        Stream `contents` to `path` chunk by chunk.

        Args:
            path: Destination path
            contents: Readable binary file object, iterable of bytes, or bytes
            options: Write options

        The destination handle is always closed; so is `contents` when it has
        a ``close()`` method, whether or not the copy succeeded.
        """
        location = self.full_path(path)
        file_mode = _file_mode(options)
        written = 0

        try:
            try:
                self._ensure_directory(location.parent)
                with open(location, "wb") as destination:
                    for chunk in _iter_chunks(contents, DEFAULT_CHUNK_SIZE):
                        destination.write(chunk)
                        written += len(chunk)
            except BaseException:
                # the copy error is the one reported
                try:
                    _close_source(contents)
                except Exception as close_error:
                    logger.warning(f"Failed to close stream source for {path}: {close_error}")
                raise
            _close_source(contents)
            if file_mode is not None:
                location.chmod(file_mode)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to stream to {path} after {written} bytes: {e}")
            raise WriteError.at_location(path, str(e)) from e

        logger.debug(f"Streamed {path} ({written} bytes)")

    # =========================================================================
    # READ
    # =========================================================================

    def read(self, path: str) -> bytes:
        location = self.full_path(path)
        try:
            if not location.is_file():
                raise ReadNotFoundError.from_location(path)
            return location.read_bytes()
        except FileNotFoundError as e:
            raise ReadNotFoundError.from_location(path) from e
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise ReadError.from_location(path, str(e)) from e

    def read_stream(self, path: str) -> BinaryIO:
        """Open `path` for reading. The caller owns (and must close) the handle."""
        location = self.full_path(path)
        try:
            if not location.is_file():
                raise ReadNotFoundError.from_location(path)
            return open(location, "rb")
        except FileNotFoundError as e:
            raise ReadNotFoundError.from_location(path) from e
        except OSError as e:
            logger.error(f"Failed to open {path} for reading: {e}")
            raise ReadError.from_location(path, str(e)) from e

    # =========================================================================
    # DELETE
    # =========================================================================

    def delete(self, path: str) -> None:
        """Delete a file. Deleting a missing file is a no-op."""
        location = self.full_path(path)
        try:
            if not location.is_file():
                return
            location.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise DeleteError.at_location(path, str(e)) from e

        logger.debug(f"Deleted {path}")

    def delete_directory(self, path: str) -> None:
        """
        Delete a directory and everything below it, children first.

        A missing directory is a no-op. There is no rollback: if a removal
        fails, whatever was already removed stays removed and the error names
        the entry that failed. The storage root itself is emptied, not removed.
        """
        location = self.full_path(path)
        try:
            if location.is_symlink():
                location.unlink()
                return
            if not location.is_dir():
                return

            for current, dirnames, filenames in os.walk(location, topdown=False, onerror=_raise_walk_error):
                for name in filenames:
                    os.unlink(os.path.join(current, name))
                for name in dirnames:
                    child = os.path.join(current, name)
                    if os.path.islink(child):
                        os.unlink(child)
                    else:
                        os.rmdir(child)

            if location != self.root:
                location.rmdir()
        except OSError as e:
            reason = f"{e.strerror or e}: {e.filename}" if e.filename else str(e)
            logger.error(f"Failed to delete directory {path}: {reason}")
            raise DeleteDirectoryError.at_location(path, reason) from e

        logger.debug(f"Deleted directory {path or '/'}")

    # =========================================================================
    # DIRECTORIES
    # =========================================================================

    def create_directory(self, path: str, options: Optional[Dict[str, Any]] = None) -> None:
        """Create a directory and its missing ancestors. Existing directories are left alone."""
        location = self.full_path(path)
        mode = DEFAULT_DIRECTORY_MODE
        if options and options.get("directory_visibility"):
            mode = DIRECTORY_PERMISSIONS[Visibility(options["directory_visibility"])]

        try:
            if location.is_dir():
                return
            self._ensure_directory(location.parent)
            location.mkdir(mode)
        except FileExistsError as e:
            if not location.is_dir():
                raise CreateDirectoryError.at_location(path, str(e)) from e
        except OSError as e:
            logger.error(f"Failed to create directory {path}: {e}")
            raise CreateDirectoryError.at_location(path, str(e)) from e

        logger.debug(f"Created directory {path}")

    # =========================================================================
    # VISIBILITY
    # =========================================================================

    def set_visibility(self, path: str, visibility: Union[Visibility, str]) -> None:
        visibility = Visibility(visibility)
        location = self.full_path(path)
        try:
            if not location.is_file():
                raise NotFoundError.file(path)
            location.chmod(FILE_PERMISSIONS[visibility])
        except OSError as e:
            logger.error(f"Failed to set visibility of {path} to {visibility.value}: {e}")
            raise SetVisibilityError.at_location(path, str(e)) from e

    def visibility(self, path: str) -> Visibility:
        location = self._require_file(path, "visibility")
        try:
            return _visibility_from_mode(location.stat().st_mode)
        except OSError as e:
            raise MetadataError.create(path, "visibility", str(e)) from e

    # =========================================================================
    # METADATA
    # =========================================================================

    def mime_type(self, path: str) -> str:
        location = self._require_file(path, "mime_type")
        try:
            return _detect_mime_type(location)
        except (OSError, ValueError) as e:
            raise MetadataError.create(path, "mime_type", str(e)) from e

    def last_modified(self, path: str) -> int:
        location = self._require_file(path, "last_modified")
        try:
            return int(location.stat().st_mtime)
        except OSError as e:
            raise MetadataError.create(path, "last_modified", str(e)) from e

    def file_size(self, path: str) -> int:
        location = self._require_file(path, "file_size")
        try:
            return location.stat().st_size
        except OSError as e:
            raise MetadataError.create(path, "file_size", str(e)) from e

    def metadata(self, path: str) -> FileAttributes:
        """All metadata of a file in one call."""
        location = self._require_file(path, "metadata")
        try:
            info = location.stat()
            return FileAttributes(
                path=self.normalize_path(path),
                file_size=info.st_size,
                visibility=_visibility_from_mode(info.st_mode),
                last_modified=int(info.st_mtime),
                mime_type=_detect_mime_type(location),
            )
        except (OSError, ValueError) as e:
            raise MetadataError.create(path, "metadata", str(e)) from e

    def _require_file(self, path: str, metadata_type: str) -> Path:
        location = self.full_path(path)
        try:
            is_file = location.is_file()
        except OSError as e:
            raise MetadataError.create(path, metadata_type, str(e)) from e
        if not is_file:
            raise NotFoundError.file(path)
        return location

    # =========================================================================
    # LISTING
    # =========================================================================

    def list_contents(self, path: str = "", deep: bool = False) -> Iterator[DirectoryEntry]:
        """
        Lazily list the entries below `path`.

        Args:
            path: Directory to list; a missing directory yields nothing
            deep: Descend into subdirectories (depth-first, parents first)

        Returns:
            Iterator of FileAttributes and DirectoryAttributes, paths relative to the root
        """
        location = self.full_path(path)
        return self._iter_contents(path, location, deep)

    def _iter_contents(self, path: str, location: Path, deep: bool) -> Iterator[DirectoryEntry]:
        try:
            if not location.is_dir():
                return
            yield from self._scan(location, deep)
        except OSError as e:
            logger.error(f"Failed to list {path}: {e}")
            raise ListContentsError.at_location(path, str(e)) from e

    def _scan(self, directory: Path, deep: bool) -> Iterator[DirectoryEntry]:
        for entry in sorted(directory.iterdir()):
            if entry.is_dir():
                yield DirectoryAttributes(
                    path=self._relative(entry),
                    last_modified=int(entry.stat().st_mtime),
                )
                # symlinked directories are reported but not followed
                if deep and not entry.is_symlink():
                    yield from self._scan(entry, deep)
            else:
                info = entry.stat() if entry.exists() else entry.lstat()
                yield FileAttributes(
                    path=self._relative(entry),
                    file_size=info.st_size,
                    last_modified=int(info.st_mtime),
                )

    # =========================================================================
    # MOVE / COPY
    # =========================================================================

    def move(self, source: str, destination: str, options: Optional[Dict[str, Any]] = None) -> None:
        source_location = self.full_path(source)
        destination_location = self.full_path(destination)

        try:
            if not source_location.is_file():
                raise NotFoundError.file(source)
            self._ensure_directory(destination_location.parent)
            try:
                os.replace(source_location, destination_location)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                logger.info(f"Cross-device move of {source}, copying then deleting")
                shutil.copy2(source_location, destination_location)
                source_location.unlink()
        except OSError as e:
            logger.error(f"Failed to move {source} to {destination}: {e}")
            raise MoveError.from_location_to(source, destination, str(e)) from e

        logger.debug(f"Moved {source} to {destination}")

    def copy(self, source: str, destination: str, options: Optional[Dict[str, Any]] = None) -> None:
        source_location = self.full_path(source)
        destination_location = self.full_path(destination)
        file_mode = _file_mode(options)

        try:
            if not source_location.is_file():
                raise NotFoundError.file(source)
            self._ensure_directory(destination_location.parent)
            shutil.copyfile(source_location, destination_location)
            if file_mode is not None:
                destination_location.chmod(file_mode)
        except OSError as e:
            logger.error(f"Failed to copy {source} to {destination}: {e}")
            raise CopyError.from_location_to(source, destination, str(e)) from e

        logger.debug(f"Copied {source} to {destination}")


def _iter_chunks(contents: StreamContents, chunk_size: int) -> Iterator[bytes]:
    """Yield byte chunks from bytes, a readable object or an iterable of chunks."""
    if isinstance(contents, (bytes, bytearray)):
        yield bytes(contents)
    elif isinstance(contents, str):
        yield contents.encode("utf-8")
    elif hasattr(contents, "read"):
        chunk = contents.read(chunk_size)
        while chunk:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk
            chunk = contents.read(chunk_size)
    else:
        for chunk in contents:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


def _close_source(contents: StreamContents) -> None:
    close = getattr(contents, "close", None)
    if callable(close):
        close()


def _file_mode(options: Optional[Dict[str, Any]]) -> Optional[int]:
    if options and options.get("visibility"):
        return FILE_PERMISSIONS[Visibility(options["visibility"])]
    return None


def _raise_walk_error(error: OSError) -> None:
    raise error


def _visibility_from_mode(mode: int) -> Visibility:
    if stat.S_IMODE(mode) & PUBLIC_READ_BITS:
        return Visibility.PUBLIC
    return Visibility.PRIVATE


def _detect_mime_type(location: Path) -> str:
    """Sniff the first bytes; fall back to the file name, then to a text/binary check."""
    with open(location, "rb") as handle:
        head = handle.read(MIME_SNIFF_SIZE)

    if not head:
        return "application/x-empty"

    try:
        sniffed = puremagic.from_string(head, mime=True)
    except puremagic.PureError:
        sniffed = ""
    if sniffed:
        return sniffed

    guessed, _ = mimetypes.guess_type(location.name)
    if guessed:
        return guessed

    if b"\x00" in head:
        return "application/octet-stream"
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # a multi-byte character may be cut off at the sniff boundary
        if len(head) < MIME_SNIFF_SIZE or e.start < len(head) - 3:
            return "application/octet-stream"
    return "text/plain"
