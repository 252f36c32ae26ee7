"""
Recursive deletion of folders and files, including their storage contracts.
"""

import asyncio
import json
import logging
from typing import List

from canine_sdk.chain import ChainClient
from canine_sdk.errors import CanineDecodeError
from canine_sdk.file_tree import FileTreeCodec
from canine_sdk.handlers import HasChildIndex
from canine_sdk.hashing import hash_and_hex, merkle_path
from canine_sdk.messages import msg_cancel_contract, msg_delete_file
from canine_sdk.models import ChainMessage
from canine_sdk.wallet import WalletHandler

logger = logging.getLogger(__name__)


class DeletionCascade:
    """
    Turns a set of names under a folder into the messages deleting them.
    """

    def __init__(
        self,
        wallet: WalletHandler,
        chain: ChainClient,
        codec: FileTreeCodec,
        downloads,
        memo: str = "",
    ):
        """
        Args:
            wallet: Wallet of the deleting account
            chain: Chain client used for leaf and contract lookups
            codec: Tree codec for the deleting account
            downloads: DownloadPipeline used to read subfolders before recursing
            memo: Memo attached to broadcasts
        """
        self.wallet = wallet
        self.chain = chain
        self.codec = codec
        self.downloads = downloads
        self.memo = memo

    async def match_owner_to_cid(self, cid: str, owner: str) -> bool:
        """Whether owner signed the active contract for cid, or else its stray."""
        if await self.chain.query_contract_signee(cid) == owner:
            return True
        return await self.chain.query_stray_signee(cid) == owner

    async def make_delete(self, creator: str, targets: List[str]) -> List[ChainMessage]:
        """
        Messages deleting leaves stored as files, with their contracts.

        For each path: every storage contract linked to the leaf's content ids
        and owned by creator is cancelled, then the leaf itself is deleted.

        Args:
            creator: Deleting account
            targets: Full paths of the leaves

        Returns:
            List[ChainMessage]: Cancel messages then the delete, per target
        """

        async def delete_one(raw_path: str) -> List[ChainMessage]:
            record = await self.codec.get_file_tree_data(raw_path, creator)
            try:
                fids = json.loads(record.contents).get("fids", [])
            except (ValueError, AttributeError) as e:
                raise CanineDecodeError(f"Cannot read content ids of {raw_path}: {e}")
            if isinstance(fids, str):
                fids = [fids]

            linked_cids: List[str] = []
            for fid in (f for f in fids if f):
                for cid in await self.chain.query_fid_cids(fid):
                    if cid not in linked_cids:
                        linked_cids.append(cid)

            owned = await asyncio.gather(
                *(self.match_owner_to_cid(cid, creator) for cid in linked_cids)
            )
            to_remove = [cid for cid, mine in zip(linked_cids, owned) if mine]
            skipped = len(linked_cids) - len(to_remove)
            if skipped:
                logger.info(f"Leaving {skipped} contract(s) of {raw_path} owned by others")

            messages = [msg_cancel_contract(creator, cid) for cid in to_remove]
            messages.append(
                msg_delete_file(
                    creator=creator,
                    hash_path=merkle_path(raw_path),
                    account=hash_and_hex(creator),
                )
            )
            return messages

        batches = await asyncio.gather(*(delete_one(path) for path in targets))
        return [msg for batch in batches for msg in batch]

    async def resolve(self, targets: List[str], parent: HasChildIndex) -> List[ChainMessage]:
        """
        Messages deleting targets under parent and everything below them.

        Files come first, then folders (tree delete for tree-encoded ones,
        file-style delete for legacy ones), then the contents of each folder,
        one folder at a time. Siblings on one level are resolved concurrently.
        The parent's own child index is not touched.

        Args:
            targets: Child names of parent to delete
            parent: Folder holding the targets

        Returns:
            List[ChainMessage]: Unbroadcast messages
        """
        existing_dirs = parent.child_dirs
        existing_files = parent.child_files
        dirs = [t for t in targets if t in existing_dirs]
        files = [t for t in targets if t in existing_files]
        creator = self.wallet.address

        encoded: List[ChainMessage] = []

        file_batches = await asyncio.gather(
            *(self.make_delete(creator, [parent.child_path(name)]) for name in files)
        )
        for batch in file_batches:
            encoded.extend(batch)

        async def delete_dir(name: str) -> List[ChainMessage]:
            path = parent.child_path(name)
            if await self.codec.is_file_tree(path):
                return [self.codec.remove_node(path)]
            return await self.make_delete(creator, [path])

        for batch in await asyncio.gather(*(delete_dir(name) for name in dirs)):
            encoded.extend(batch)

        for name in dirs:
            folder = await self.downloads.download_folder(parent.child_path(name))
            more_targets = list(dict.fromkeys(folder.child_dirs + list(folder.child_files)))
            encoded.extend(await self.resolve(more_targets, folder))

        return encoded

    async def delete_targets(self, targets: List[str], parent) -> None:
        """
        Delete targets under parent and broadcast, updating parent's child index.

        Raises:
            CanineBroadcastError: If the broadcast fails
        """
        ready_to_broadcast = await self.resolve(targets, parent)
        dirs = [t for t in targets if t in parent.child_dirs]
        files = [t for t in targets if t in parent.child_files]
        ready_to_broadcast.append(
            await parent.remove_child_dir_and_file_references(dirs, files, self.codec)
        )
        await self.chain.broadcast(ready_to_broadcast, memo=self.memo)
