"""
Data models for the Canine SDK.

Wire-facing models keep the field names the chain and the providers use,
exposed through aliases so the Python side stays snake_case.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from canine_sdk.errors import CanineDecodeError


class Provider(BaseModel):
    """A storage provider as listed on chain."""

    model_config = ConfigDict(extra="allow")

    ip: str
    address: str = ""


class ProviderVersion(BaseModel):
    """Response of a provider's /version endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chain-id")
    version: str


class ProviderChecks(BaseModel):
    """Provider lists at each stage of discovery."""

    raw: List[Provider]
    filtered: List[Provider]
    verified: List[Provider]


class UploadResult(BaseModel):
    """Ids returned by a provider for an uploaded blob."""

    fid: List[str]
    cid: str

    @classmethod
    def empty(cls) -> "UploadResult":
        return cls(fid=[""], cid="")

    @property
    def is_empty(self) -> bool:
        return self.cid == "" and all(f == "" for f in self.fid)


class AesBundle(BaseModel):
    """Symmetric key and nonce protecting one tree node or file."""

    key: bytes
    iv: bytes


class FileRecord(BaseModel):
    """A tree leaf as stored on chain."""

    model_config = ConfigDict(populate_by_name=True)

    address: str = ""
    owner: str = ""
    contents: str = ""
    viewing_access: str = "{}"
    edit_access: str = "{}"
    tracking_number: str = ""

    def viewers(self) -> Dict[str, str]:
        return _parse_access_map(self.viewing_access, "viewing")

    def editors(self) -> Dict[str, str]:
        return _parse_access_map(self.edit_access, "editing")


def _parse_access_map(raw: str, kind: str) -> Dict[str, str]:
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CanineDecodeError(f"Malformed {kind} access map: {e}")
    if not isinstance(parsed, dict):
        raise CanineDecodeError(f"Malformed {kind} access map: not an object")
    return parsed


class FileMeta(BaseModel):
    """Per-file entry in a folder's child index."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    last_modified: int = Field(0, alias="lastModified")
    size: int = 0
    type: str = ""


class FolderFrame(BaseModel):
    """Contents of a directory node."""

    model_config = ConfigDict(populate_by_name=True)

    who_am_i: str = Field(alias="whoAmI")
    where_am_i: str = Field("", alias="whereAmI")
    who_owns_me: str = Field("", alias="whoOwnsMe")
    dir_children: List[str] = Field(default_factory=list, alias="dirChildren")
    file_children: Dict[str, FileMeta] = Field(
        default_factory=dict, alias="fileChildren"
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class UploadQueueItem(BaseModel):
    """One file waiting in a staged upload."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    handler: Any
    exists: bool = False
    # Plaintext replacing handler.data, encrypted with the handler key on upload
    uploadable: Optional[bytes] = None
    data: Optional[FileRecord] = None


class StaggeredTracker(BaseModel):
    """Counters shared by every transfer of a staged upload session."""

    complete: int = 0
    failed: int = 0
    timer: int = 0


class DownloadDetails(BaseModel):
    raw_path: str
    owner: str
    is_folder: bool = False


class DownloadProgress(BaseModel):
    """Download completion percentage, updated while bytes stream in."""

    track: int = 0


class ChainMessage(BaseModel):
    """An unsigned chain message, ready to be handed to a broadcaster."""

    type_url: str
    value: Dict[str, Any]
