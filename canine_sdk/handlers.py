"""
Handlers for folders and files moving through the SDK.

Handlers only know about their own path and contents. Anything that needs
the chain or the wallet is passed in as a FileTreeCodec, so handlers never
reference the orchestrators that use them.
"""

import json
import logging
from typing import Dict, List, Optional, Protocol, Tuple

from pydantic import ValidationError

from canine_sdk.crypt import decrypt_file, encrypt_file, gen_aes
from canine_sdk.errors import CanineDecodeError
from canine_sdk.file_tree import FileTreeCodec
from canine_sdk.hashing import merkle_path
from canine_sdk.models import AesBundle, ChainMessage, FileMeta, FileRecord, FolderFrame, UploadResult

logger = logging.getLogger(__name__)


def strip_name(name: str) -> str:
    """Folder names may not contain path separators."""
    return name.replace("/", "").strip()


def split_path(raw_path: str) -> Tuple[str, str]:
    """Split a path into (parent, name)."""
    parent, _, name = raw_path.rpartition("/")
    return parent, name


class HasMerklePath(Protocol):
    @property
    def path(self) -> str:
        ...

    @property
    def merkle_path(self) -> str:
        ...


class HasChildIndex(Protocol):
    @property
    def path(self) -> str:
        ...

    @property
    def child_dirs(self) -> List[str]:
        ...

    @property
    def child_files(self) -> Dict[str, FileMeta]:
        ...

    def child_path(self, child: str) -> str:
        ...


class FolderHandler:
    """A directory node and its child index."""

    def __init__(self, frame: FolderFrame):
        self.frame = frame

    @classmethod
    def track_folder(cls, data: Dict) -> "FolderHandler":
        """
        Wrap decoded node contents.

        Raises:
            CanineDecodeError: If the contents are not a folder frame
        """
        try:
            return cls(FolderFrame.model_validate(data))
        except ValidationError as e:
            raise CanineDecodeError(f"Node contents are not a folder: {e}")

    @classmethod
    def track_new_folder(cls, name: str, parent: str, owner: str) -> "FolderHandler":
        return cls(FolderFrame(who_am_i=name, where_am_i=parent, who_owns_me=owner))

    @classmethod
    def track_legacy_folder(
        cls, raw: bytes, aes: AesBundle, raw_path: str, owner: str
    ) -> "FolderHandler":
        """
        Read a folder stored in the legacy format, as an encrypted file.

        A payload that decrypts but does not parse degrades to an empty folder
        at raw_path.

        Raises:
            CanineDecodeError: If the payload does not decrypt
        """
        plain = decrypt_file(raw, aes)
        try:
            return cls(FolderFrame.model_validate(json.loads(plain)))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Legacy folder {raw_path} is malformed, treating it as empty: {e}")
            parent, name = split_path(raw_path)
            return cls.track_new_folder(name, parent, owner)

    @property
    def name(self) -> str:
        return self.frame.who_am_i

    @property
    def parent_path(self) -> str:
        return self.frame.where_am_i

    @property
    def owner(self) -> str:
        return self.frame.who_owns_me

    @property
    def path(self) -> str:
        if not self.parent_path:
            return self.name
        return f"{self.parent_path}/{self.name}"

    @property
    def merkle_path(self) -> str:
        return merkle_path(self.path)

    @property
    def child_dirs(self) -> List[str]:
        return list(self.frame.dir_children)

    @property
    def child_files(self) -> Dict[str, FileMeta]:
        return dict(self.frame.file_children)

    def child_path(self, child: str) -> str:
        return f"{self.path}/{child}"

    async def get_for_filetree(self, codec: FileTreeCodec) -> ChainMessage:
        """Post message storing this folder in the current tree encoding."""
        return await codec.encode_node(
            self.owner or codec.wallet.address,
            self.parent_path,
            self.name,
            self.frame.to_wire(),
        )

    async def add_child_dirs(
        self, names: List[str], codec: FileTreeCodec
    ) -> Tuple[List[str], List[ChainMessage]]:
        """
        Create child folders.

        Returns:
            Tuple of (names that already existed, messages creating the new
            folders followed by the updated parent)
        """
        wanted = []
        for name in (strip_name(n) for n in names):
            if name and name not in wanted:
                wanted.append(name)
        existing = [name for name in wanted if name in self.frame.dir_children]
        fresh = [name for name in wanted if name not in self.frame.dir_children]

        encoded = []
        for name in fresh:
            child = FolderHandler.track_new_folder(name, self.path, self.owner)
            encoded.append(await child.get_for_filetree(codec))
        if fresh:
            self.frame.dir_children.extend(fresh)
            encoded.append(await self.get_for_filetree(codec))
        return existing, encoded

    async def add_child_file_references(
        self, new_files: Dict[str, FileMeta], codec: FileTreeCodec
    ) -> ChainMessage:
        self.frame.file_children.update(new_files)
        return await self.get_for_filetree(codec)

    async def remove_child_dir_and_file_references(
        self, dirs: List[str], files: List[str], codec: FileTreeCodec
    ) -> ChainMessage:
        self.frame.dir_children = [d for d in self.frame.dir_children if d not in dirs]
        for name in files:
            self.frame.file_children.pop(name, None)
        return await self.get_for_filetree(codec)


class FileUploadHandler:
    """A file waiting to be uploaded into a folder."""

    def __init__(
        self,
        data: bytes,
        name: str,
        parent_path: str,
        meta: Optional[FileMeta] = None,
    ):
        self.data = data
        self.name = name
        self.parent_path = parent_path
        self.meta = meta or FileMeta(name=name, size=len(data))
        self._aes: Optional[AesBundle] = None
        self._ids: Optional[UploadResult] = None

    @property
    def path(self) -> str:
        return f"{self.parent_path}/{self.name}"

    @property
    def merkle_path(self) -> str:
        """Tree address of the parent folder."""
        return merkle_path(self.parent_path)

    @property
    def full_merkle(self) -> str:
        return merkle_path(self.path)

    def set_data(self, data: bytes) -> None:
        """Replace the plaintext to upload, keeping the key."""
        self.data = data
        self.meta.size = len(data)

    def get_enc(self) -> AesBundle:
        if self._aes is None:
            self._aes = gen_aes()
        return self._aes

    def get_for_upload(self, aes: Optional[AesBundle] = None) -> bytes:
        """
        Encrypt the file for upload.

        Args:
            aes: Key to encrypt with. Updates pass the key of the existing
                record so its permission blocks stay valid.
        """
        if aes is not None:
            self._aes = aes
        return encrypt_file(self.data, self.get_enc())

    def set_ids(self, ids: UploadResult) -> None:
        self._ids = ids

    @property
    def ids(self) -> UploadResult:
        return self._ids or UploadResult.empty()


class FileDownloadHandler:
    """A downloaded and decrypted file."""

    def __init__(self, data: bytes, record: FileRecord):
        self.data = data
        self.record = record

    @classmethod
    def track_file(cls, raw: bytes, record: FileRecord, aes: AesBundle) -> "FileDownloadHandler":
        return cls(decrypt_file(raw, aes), record)
