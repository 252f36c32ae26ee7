"""
Download pipeline: tree leaf -> content id -> provider bytes -> plaintext.
"""

import json
import logging
from typing import List, Optional, Union

from canine_sdk.chain import ChainClient
from canine_sdk.errors import (
    CanineError,
    CanineNoProvidersError,
    CanineProvidersExhaustedError,
)
from canine_sdk.file_tree import VIEWER, FileTreeCodec
from canine_sdk.handlers import FileDownloadHandler, FolderHandler, split_path
from canine_sdk.models import DownloadDetails, DownloadProgress, FileRecord
from canine_sdk.provider_client import AsyncProviderClient, provider_url
from canine_sdk.wallet import WalletHandler

logger = logging.getLogger(__name__)


def parse_fids(record: FileRecord, raw_path: str) -> List[str]:
    """
    Content ids referenced by a leaf.

    Legacy leaves sometimes carry contents that are not JSON; those are
    logged and read as referencing nothing.
    """
    try:
        parsed = json.loads(record.contents)
        fids = parsed.get("fids", [])
    except (ValueError, AttributeError) as e:
        logger.warning(f"Unreadable contents for {raw_path}, assuming no content ids: {e}")
        return []
    if isinstance(fids, str):
        return [fids]
    return [str(f) for f in fids or []]


class DownloadPipeline:
    """
    Fetches files and folders for the wallet's account.
    """

    def __init__(
        self,
        wallet: WalletHandler,
        chain: ChainClient,
        codec: FileTreeCodec,
        provider_client: AsyncProviderClient,
    ):
        self.wallet = wallet
        self.chain = chain
        self.codec = codec
        self.provider_client = provider_client

    async def download_folder(self, raw_path: str) -> FolderHandler:
        """
        Load a folder, whichever encoding it is stored in.

        The tree encoding is tried first, then the legacy single-file
        encoding. When every provider fails for the legacy copy the folder is
        treated as not yet created and an empty one rooted at raw_path is
        returned.

        Args:
            raw_path: Path of the folder, e.g. ``s/Home``

        Returns:
            FolderHandler: The folder
        """
        owner = self.wallet.address
        try:
            data = await self.codec.decode_node(owner, raw_path)
            return FolderHandler.track_folder(data)
        except CanineError as e:
            logger.warning(f"Tree read of {raw_path} failed, trying legacy format: {e}")

        details = DownloadDetails(raw_path=raw_path, owner=owner, is_folder=True)
        try:
            return await self.download_file(details, DownloadProgress())
        except CanineProvidersExhaustedError as e:
            logger.warning(f"Rebuilding {raw_path}: {e}")
            parent, name = split_path(raw_path)
            return FolderHandler.track_new_folder(name, parent, owner)

    async def download_file(
        self, details: DownloadDetails, progress: Optional[DownloadProgress] = None
    ) -> Union[FileDownloadHandler, FolderHandler]:
        """
        Download and decrypt the leaf at details.raw_path.

        Providers hosting the content are tried in turn; progress.track is
        updated while bytes stream in.

        Args:
            details: Path, owner, and whether the leaf is a legacy folder
            progress: Receives the completion percentage

        Returns:
            FolderHandler if details.is_folder, else FileDownloadHandler

        Raises:
            CanineNotFoundError: If there is no leaf at the path
            CanineDecodeError: If the caller cannot unwrap the leaf's key
            CanineNoProvidersError: If no provider hosts the content
            CanineProvidersExhaustedError: If every hosting provider failed
        """
        progress = progress if progress is not None else DownloadProgress()
        record = await self.codec.get_file_tree_data(details.raw_path, details.owner)

        fids = parse_fids(record, details.raw_path)
        fid = fids[0] if fids else ""
        file_providers = await self.chain.find_file_providers(fid) if fid else []
        if not file_providers:
            raise CanineNoProvidersError(f"No available providers for {details.raw_path}")

        aes = self.codec.unwrap_access(record, VIEWER)

        for attempt, ip in enumerate(file_providers, start=1):
            try:
                raw = await self.provider_client.download(ip, fid, progress)
                if details.is_folder:
                    return FolderHandler.track_legacy_folder(
                        raw, aes, details.raw_path, details.owner
                    )
                return FileDownloadHandler.track_file(raw, record, aes)
            except CanineError as e:
                remaining = len(file_providers) - attempt
                logger.warning(
                    f"File fetch failed. Attempt #{attempt}. {remaining} attempts remaining: {e}"
                )
                logger.warning(f"Bad file provider url: {provider_url(ip, f'download/{fid}')}")

        raise CanineProvidersExhaustedError(
            f"All file fetch attempts failed for {details.raw_path}"
        )
