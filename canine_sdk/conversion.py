"""
Migration of legacy folders to the tree encoding.
"""

import logging
from typing import List

from canine_sdk.chain import ChainClient
from canine_sdk.deletion import DeletionCascade
from canine_sdk.download import DownloadPipeline
from canine_sdk.file_tree import FileTreeCodec
from canine_sdk.models import ChainMessage

logger = logging.getLogger(__name__)


class FolderConversionWalk:
    """Rewrites a folder subtree in the tree encoding."""

    def __init__(
        self,
        chain: ChainClient,
        codec: FileTreeCodec,
        downloads: DownloadPipeline,
        deletion: DeletionCascade,
        memo: str = "",
    ):
        self.chain = chain
        self.codec = codec
        self.downloads = downloads
        self.deletion = deletion
        self.memo = memo

    async def convert(self, raw_path: str) -> List[ChainMessage]:
        """
        Messages converting the folder at raw_path and all folders below it.

        Legacy copies are deleted; every folder is (re)written in the tree
        encoding. Tree-encoded folders are never deleted.
        """
        base = await self.downloads.download_folder(raw_path)
        encoded: List[ChainMessage] = []
        if not await self.codec.is_file_tree(raw_path):
            logger.info(f"Converting legacy folder {raw_path}")
            encoded.extend(
                await self.deletion.make_delete(self.codec.wallet.address, [base.path])
            )
        encoded.append(await base.get_for_filetree(self.codec))

        for name in base.child_dirs:
            encoded.extend(await self.convert(base.child_path(name)))
        return encoded

    async def convert_and_broadcast(self, raw_path: str) -> None:
        ready_to_broadcast = await self.convert(raw_path)
        await self.chain.broadcast(ready_to_broadcast, memo=self.memo)
