"""
Staggered upload: provider byte transfers feeding batched on-chain commits.

Transfers run as concurrent tasks. While they run, a drain loop polls for
items whose bytes have landed and commits each ready subset as one
transaction, until every item has been committed or has failed.
"""

import asyncio
import json
import logging
import uuid
from typing import Dict, List, Optional, Tuple

from canine_sdk.chain import ChainClient
from canine_sdk.deletion import DeletionCascade
from canine_sdk.errors import CanineProvidersExhaustedError, CanineUploadIncompleteError
from canine_sdk.file_tree import EDITOR, FileTreeCodec
from canine_sdk.handlers import FolderHandler
from canine_sdk.hashing import hash_and_hex
from canine_sdk.messages import msg_post_file, msg_sign_contract
from canine_sdk.models import (
    ChainMessage,
    FileRecord,
    StaggeredTracker,
    UploadQueueItem,
    UploadResult,
)
from canine_sdk.providers import ProviderRegistry
from canine_sdk.provider_client import AsyncProviderClient
from canine_sdk.wallet import WalletHandler

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_POLL_MAX_TICKS = 120


class UploadOrchestrator:
    """
    Uploads files to providers and commits them to the tree.
    """

    def __init__(
        self,
        wallet: WalletHandler,
        chain: ChainClient,
        codec: FileTreeCodec,
        registry: ProviderRegistry,
        provider_client: AsyncProviderClient,
        deletion: DeletionCascade,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_max_ticks: int = DEFAULT_POLL_MAX_TICKS,
        pay_once: bool = False,
    ):
        self.wallet = wallet
        self.chain = chain
        self.codec = codec
        self.registry = registry
        self.provider_client = provider_client
        self.deletion = deletion
        self.poll_interval = poll_interval
        self.poll_max_ticks = poll_max_ticks
        self.pay_once = pay_once

    async def tumble_upload(self, sender: str, data: bytes, filename: str = "file") -> UploadResult:
        """
        Upload to the current provider, moving on to another one on failure.

        Failing providers are evicted from the pool. When the pool runs dry
        the empty result (fid=[""], cid="") is returned instead of raising;
        callers must check UploadResult.is_empty.
        """
        while self.registry.available:
            provider = self.registry.current or self.registry.select()
            ip = provider.ip
            logger.debug(f"Current provider: {ip}")
            try:
                return await self.provider_client.upload(ip, sender, data, filename)
            except Exception as e:
                logger.warning(f"Upload to {ip} failed: {e}")
                self.registry.evict(ip)
        logger.warning("Provider options exhausted")
        return UploadResult.empty()

    async def prep_existing_upload(self, item: UploadQueueItem) -> Tuple[FileRecord, bytes]:
        """
        Load the record being replaced and encrypt the new bytes with its key.

        Raises:
            CanineNotFoundError: If the file to update does not exist
            CanineDecodeError: If the caller is not an editor of it
        """
        handler = item.handler
        record = await self.codec.get_file_tree_data(handler.path, self.wallet.address)
        aes = self.codec.unwrap_access(record, EDITOR)
        return record, handler.get_for_upload(aes)

    async def raw_after_upload(self, items: List[UploadQueueItem]) -> List[ChainMessage]:
        """
        Commit messages for uploaded items.

        Each item yields a post-file message and a sign-contract message.
        Updates keep the tracking number and access maps of the record they
        replace, and are preceded by the deletion of that record. The last
        item's pair is moved to the front of the batch.
        """
        creator = self.wallet.address
        needing_reset: List[ChainMessage] = []

        async def build(item: UploadQueueItem) -> List[ChainMessage]:
            handler = item.handler
            ids = handler.ids
            if item.data is not None:
                viewers = item.data.viewing_access
                editors = item.data.edit_access
                tracking_number = item.data.tracking_number
                needing_reset.extend(await self.deletion.make_delete(creator, [handler.path]))
            else:
                tracking_number = str(uuid.uuid4())
                perms = self.codec.self_perms(tracking_number, handler.get_enc())
                viewers = perms["viewers"]
                editors = perms["editors"]

            msg_post = msg_post_file(
                creator=creator,
                account=hash_and_hex(creator),
                hash_parent=handler.merkle_path,
                hash_child=hash_and_hex(handler.name),
                contents=json.dumps({"fids": ids.fid}),
                viewers=viewers,
                editors=editors,
                tracking_number=tracking_number,
            )
            msg_sign = msg_sign_contract(creator, ids.cid, pay_once=self.pay_once)
            return [msg_post, msg_sign]

        ready = list(await asyncio.gather(*(build(item) for item in items)))
        if ready:
            ready.insert(0, ready.pop())
        return needing_reset + [msg for pair in ready for msg in pair]

    async def status_check(self, target: int, tracker: StaggeredTracker) -> None:
        """Wait until every transfer has settled, or poll_max_ticks polls have passed."""
        tracker.timer = self.poll_max_ticks
        while tracker.timer > 0:
            if tracker.complete + tracker.failed >= target:
                return
            await asyncio.sleep(self.poll_interval)
            tracker.timer -= 1

    async def stage_uploads(
        self,
        source_hash_map: Dict[str, UploadQueueItem],
        parent: FolderHandler,
        tracker: Optional[StaggeredTracker] = None,
    ) -> None:
        """
        Upload a group of files into parent and commit them in batches.

        Each commit batch holds the items that became ready since the last
        one, plus one update of parent's child index, broadcast as a single
        transaction. A batch waits for at most poll_max_ticks * poll_interval
        seconds before committing whatever is ready.

        Args:
            source_hash_map: Items keyed by caller-chosen keys
            parent: Folder receiving the files
            tracker: Shared counters, readable by the caller for progress

        Raises:
            CanineBroadcastError: If a batch fails to broadcast. Outstanding
                transfers are cancelled.
            CanineUploadIncompleteError: If some items could not be uploaded.
                Every other item has been committed when this is raised.
        """
        tracker = tracker if tracker is not None else StaggeredTracker()
        source_keys = list(source_hash_map)
        sender = self.wallet.address
        queue_hash_map: Dict[str, bool] = {key: False for key in source_keys}
        failures: Dict[str, BaseException] = {}

        async def transfer(item: UploadQueueItem) -> None:
            try:
                if item.uploadable is not None:
                    item.handler.set_data(item.uploadable)
                if item.exists:
                    item.data, payload = await self.prep_existing_upload(item)
                else:
                    payload = item.handler.get_for_upload()
                ids = await self.tumble_upload(sender, payload, item.handler.name)
                if ids.is_empty:
                    raise CanineProvidersExhaustedError(
                        f"No provider accepted {item.handler.name}"
                    )
            except Exception as e:
                logger.error(f"Upload of {item.key} failed: {e}")
                failures[item.key] = e
                queue_hash_map.pop(item.key, None)
                tracker.failed += 1
                return
            item.handler.set_ids(ids)
            queue_hash_map[item.key] = True
            tracker.complete += 1

        tasks = [asyncio.create_task(transfer(item)) for item in source_hash_map.values()]
        try:
            while queue_hash_map:
                await self.status_check(len(source_keys), tracker)
                processing_names = [name for name, ready in queue_hash_map.items() if ready]
                if not processing_names:
                    continue
                process_values = [source_hash_map[name] for name in processing_names]
                file_names = {
                    item.handler.name: item.handler.meta for item in process_values
                }
                ready_to_broadcast = await self.raw_after_upload(process_values)
                ready_to_broadcast.append(
                    await parent.add_child_file_references(file_names, self.codec)
                )
                memo = f"Processing batch of {len(process_values)} uploads"
                logger.info(memo)
                await self.chain.broadcast(ready_to_broadcast, memo=memo)
                for name in processing_names:
                    del queue_hash_map[name]
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        if failures:
            raise CanineUploadIncompleteError(
                f"{len(failures)} of {len(source_keys)} uploads failed: {sorted(failures)}",
                failures,
            )
