###############################
# --- Storage data models --- #
###############################

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Visibility(str, Enum):
    """Coarse access classification mapped to host permission bits."""
    PUBLIC = "public"
    PRIVATE = "private"


class OperationType(str, Enum):
    """Archive transaction kinds understood by the Autonomi API."""
    UPLOAD = "upload"
    DOWNLOAD = "download"


class FileAttributes(BaseModel):
    """Metadata of a file, read from disk at query time."""
    path: str = Field(
        description="Path of the file relative to the storage root.",
        json_schema_extra={"example": "reports/2024/summary.txt"},
    )
    file_size: Optional[int] = Field(None, description="Size of the file in bytes.")
    visibility: Optional[Visibility] = None
    last_modified: Optional[int] = Field(None, description="Last modification time as a unix timestamp.")
    mime_type: Optional[str] = None
    type: Literal["file"] = "file"

    def is_file(self) -> bool:
        return True

    def is_dir(self) -> bool:
        return False


class DirectoryAttributes(BaseModel):
    """A directory found while listing."""
    path: str = Field(description="Path of the directory relative to the storage root.")
    visibility: Optional[Visibility] = None
    last_modified: Optional[int] = None
    type: Literal["dir"] = "dir"

    def is_file(self) -> bool:
        return False

    def is_dir(self) -> bool:
        return True


DirectoryEntry = Annotated[Union[FileAttributes, DirectoryAttributes], Field(discriminator="type")]


class ArchiveOperationResult(BaseModel):
    """Result of a directory upload or download on the Autonomi network.

    The adapter does not keep ``data_map`` or ``public_address``; callers must
    store them to retrieve the archive later. Fields the API adds beyond these
    are kept in ``model_extra``. Values are passed through as the API sent them.
    """
    status: Optional[Any] = None
    cost: Optional[Any] = None
    data_map: Optional[Any] = Field(None, description="Token identifying a private archive.")
    public_address: Optional[Any] = Field(None, description="Token identifying a public archive.")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "status": "success",
                "cost": "0.000012",
                "public_address": "a1b2c3d4e5f6",
            }
        },
    )
