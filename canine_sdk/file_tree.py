"""
Encrypted, compressed tree node records and their permission blocks.
"""

import json
import logging
import uuid
from typing import Any, Dict, Optional

from canine_sdk.chain import ChainClient
from canine_sdk.crypt import compress_encrypt_string, decrypt_decompress_string, gen_aes
from canine_sdk.errors import CanineDecodeError, CanineError
from canine_sdk.hashing import hash_and_hex, merkle_path, owner_key, permission_key
from canine_sdk.messages import msg_delete_file, msg_make_root, msg_post_file
from canine_sdk.models import AesBundle, ChainMessage, FileRecord
from canine_sdk.wallet import WalletHandler

logger = logging.getLogger(__name__)

VIEWER = "v"
EDITOR = "e"


class FileTreeCodec:
    """
    Builds and reads tree node records for the wallet's account.
    """

    def __init__(self, wallet: WalletHandler, chain: ChainClient):
        self.wallet = wallet
        self.chain = chain

    def make_perms_block(
        self, role: str, tracking_number: str, user: str, pub_key: str, aes: AesBundle
    ) -> Dict[str, str]:
        """
        One-entry permission block granting user the given role.

        Args:
            role: VIEWER or EDITOR
            tracking_number: Tracking number of the node
            user: Address of the user being granted access
            pub_key: That user's public key
            aes: Key and iv of the node

        Returns:
            Dict[str, str]: {permission key: wrapped key}
        """
        return {
            permission_key(role, tracking_number, user): self.wallet.wrap_key(pub_key, aes)
        }

    def self_perms(self, tracking_number: str, aes: AesBundle) -> Dict[str, str]:
        """Viewer and editor blocks for the wallet itself, as JSON strings."""
        me = self.wallet.address
        pub_key = self.wallet.get_pub_key()
        return {
            "viewers": json.dumps(self.make_perms_block(VIEWER, tracking_number, me, pub_key, aes)),
            "editors": json.dumps(self.make_perms_block(EDITOR, tracking_number, me, pub_key, aes)),
        }

    async def encode_node(
        self,
        to_address: str,
        raw_path: str,
        raw_target: str,
        contents: Dict[str, Any],
    ) -> ChainMessage:
        """
        Build the post message storing contents at raw_path/raw_target.

        Contents are serialized, compressed and sealed with a fresh key. The
        key is wrapped for the creator as viewer and editor, and additionally
        for to_address as viewer when that is someone else.

        Args:
            to_address: Account the node is written for
            raw_path: Parent path of the node
            raw_target: Name of the node under raw_path
            contents: JSON-serializable node contents

        Returns:
            ChainMessage: Unsigned post-file message
        """
        aes = gen_aes()
        creator = self.wallet.address
        tracking_number = str(uuid.uuid4())
        pub_key = self.wallet.get_pub_key()

        viewers = self.make_perms_block(VIEWER, tracking_number, creator, pub_key, aes)
        editors = self.make_perms_block(EDITOR, tracking_number, creator, pub_key, aes)
        if to_address != creator:
            dest_pub_key = await self.wallet.find_pub_key(to_address)
            viewers.update(
                self.make_perms_block(VIEWER, tracking_number, to_address, dest_pub_key, aes)
            )

        return msg_post_file(
            creator=creator,
            account=hash_and_hex(creator),
            hash_parent=merkle_path(raw_path),
            hash_child=hash_and_hex(raw_target),
            contents=compress_encrypt_string(json.dumps(contents), aes),
            viewers=json.dumps(viewers),
            editors=json.dumps(editors),
            tracking_number=tracking_number,
        )

    async def get_file_tree_data(self, raw_path: str, owner: str) -> FileRecord:
        """
        Fetch the tree leaf at raw_path owned by owner.

        Raises:
            CanineNotFoundError: If the chain has no such leaf
        """
        address = merkle_path(raw_path)
        return await self.chain.query_files(address, owner_key(address, owner))

    def unwrap_access(self, record: FileRecord, role: str = VIEWER) -> AesBundle:
        """
        Recover the node key from the caller's entry in an access map.

        Raises:
            CanineDecodeError: If the map is malformed or the caller has no entry
        """
        access = record.viewers() if role == VIEWER else record.editors()
        entry = access.get(permission_key(role, record.tracking_number, self.wallet.address))
        if entry is None:
            raise CanineDecodeError(
                f"No {'viewer' if role == VIEWER else 'editor'} access for {self.wallet.address}"
            )
        return self.wallet.unwrap_key(entry)

    async def decode_node(self, owner: str, raw_path: str) -> Dict[str, Any]:
        """
        Read and decrypt the node at raw_path.

        Raises:
            CanineNotFoundError: If the chain has no such node
            CanineDecodeError: If the node cannot be decrypted or parsed by the caller
        """
        record = await self.get_file_tree_data(raw_path, owner)
        aes = self.unwrap_access(record, VIEWER)
        text = decrypt_decompress_string(record.contents, aes)
        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise CanineDecodeError(f"Node contents at {raw_path} are not JSON: {e}")
        if not isinstance(parsed, dict):
            raise CanineDecodeError(f"Node contents at {raw_path} are not an object")
        return parsed

    def remove_node(self, raw_path: str) -> ChainMessage:
        creator = self.wallet.address
        return msg_delete_file(
            creator=creator,
            hash_path=merkle_path(raw_path),
            account=hash_and_hex(creator),
        )

    async def is_file_tree(self, raw_path: str, owner: Optional[str] = None) -> bool:
        """Whether the node at raw_path is readable in the current tree encoding."""
        try:
            await self.decode_node(owner or self.wallet.address, raw_path)
            return True
        except CanineError as e:
            logger.warning(f"{raw_path} is not a file tree node: {e}")
            return False

    def make_root(self) -> ChainMessage:
        """Root initialisation message for the wallet's account."""
        tracking_number = str(uuid.uuid4())
        perms = self.self_perms(tracking_number, gen_aes())
        return msg_make_root(
            creator=self.wallet.address,
            editors=perms["editors"],
            viewers=perms["viewers"],
            tracking_number=tracking_number,
        )
