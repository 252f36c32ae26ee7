"""
Main client for the Canine SDK.
"""

import logging
import random
from typing import Dict, List, Optional, Union

from canine_sdk.chain import Broadcaster, ChainClient
from canine_sdk.config import get_config_value, get_mnemonic, get_version_filter
from canine_sdk.conversion import FolderConversionWalk
from canine_sdk.deletion import DeletionCascade
from canine_sdk.download import DownloadPipeline
from canine_sdk.file_tree import FileTreeCodec
from canine_sdk.handlers import FileDownloadHandler, FolderHandler
from canine_sdk.models import (
    ChainMessage,
    DownloadDetails,
    DownloadProgress,
    Provider,
    ProviderChecks,
    StaggeredTracker,
    UploadQueueItem,
)
from canine_sdk.provider_client import AsyncProviderClient
from canine_sdk.providers import DEFAULT_MAX_PROVIDERS, ProviderRegistry, VersionFilter
from canine_sdk.upload import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_MAX_TICKS, UploadOrchestrator
from canine_sdk.wallet import LocalWallet, WalletHandler

logger = logging.getLogger(__name__)

DEFAULT_STARTING_DIRS = ["Config", "Home", "WWW"]


class CanineClient:
    """
    Main client for storing files on the Canine chain.

    Owns the provider pool and wires the upload, download, deletion and
    conversion pipelines around one wallet.
    """

    def __init__(
        self,
        wallet: WalletHandler,
        chain: ChainClient,
        provider_client: AsyncProviderClient,
        registry: ProviderRegistry,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_max_ticks: int = DEFAULT_POLL_MAX_TICKS,
        pay_once: bool = False,
        memo: str = "",
    ):
        self.wallet = wallet
        self.chain = chain
        self.provider_client = provider_client
        self.registry = registry
        self.memo = memo

        self.codec = FileTreeCodec(wallet, chain)
        self.downloads = DownloadPipeline(wallet, chain, self.codec, provider_client)
        self.deletion = DeletionCascade(wallet, chain, self.codec, self.downloads, memo=memo)
        self.conversion = FolderConversionWalk(
            chain, self.codec, self.downloads, self.deletion, memo=memo
        )
        self.uploads = UploadOrchestrator(
            wallet,
            chain,
            self.codec,
            registry,
            provider_client,
            self.deletion,
            poll_interval=poll_interval,
            poll_max_ticks=poll_max_ticks,
            pay_once=pay_once,
        )

    @classmethod
    async def track_io(
        cls,
        wallet: WalletHandler,
        chain: ChainClient,
        provider_client: Optional[AsyncProviderClient] = None,
        chain_id: Optional[str] = None,
        version_filter: VersionFilter = None,
        max_providers: int = DEFAULT_MAX_PROVIDERS,
        rng: Optional[random.Random] = None,
        **kwargs,
    ) -> "CanineClient":
        """
        Discover providers and build a ready-to-use client.

        Args:
            wallet: Wallet of the account
            chain: Chain REST client
            provider_client: Provider HTTP client (a default one is created if None)
            chain_id: Chain id providers must report, or None to accept any
            version_filter: Provider version(s) to accept, or None to accept any
            max_providers: Cap on the candidate pool
            rng: Random source for provider selection
            **kwargs: Passed through to the constructor (poll_interval, ...)

        Returns:
            CanineClient: Client with a verified provider pool
        """
        provider_client = provider_client or AsyncProviderClient()
        registry = await ProviderRegistry.track(
            chain,
            provider_client,
            chain_id=chain_id,
            version_filter=version_filter,
            max_providers=max_providers,
            rng=rng,
        )
        return cls(wallet, chain, provider_client, registry, **kwargs)

    @classmethod
    async def from_config(
        cls,
        password: Optional[str] = None,
        broadcaster: Optional[Broadcaster] = None,
        rest_url: Optional[str] = None,
    ) -> "CanineClient":
        """
        Build a client from the stored configuration.

        Args:
            password: Password for an encrypted mnemonic (prompted for if None)
            broadcaster: Signer used for broadcasts. Without one the client
                can only read.
            rest_url: Chain REST endpoint (from config if None)

        Raises:
            ValueError: If no mnemonic is configured
        """
        mnemonic = get_mnemonic(password)
        if not mnemonic:
            raise ValueError(
                "No mnemonic configured. Set one with 'canine mnemonic set' "
                "or the CANINE_MNEMONIC environment variable."
            )

        chain = ChainClient(
            rest_url or get_config_value("chain", "rest_url"), broadcaster=broadcaster
        )
        provider_client = AsyncProviderClient(
            probe_timeout=float(get_config_value("providers", "probe_timeout", 1.5)),
            transfer_timeout=float(get_config_value("providers", "transfer_timeout", 300.0)),
        )
        wallet = LocalWallet.from_mnemonic(mnemonic, chain)
        return await cls.track_io(
            wallet,
            chain,
            provider_client,
            chain_id=get_config_value("chain", "chain_id"),
            version_filter=get_version_filter() or None,
            max_providers=int(get_config_value("providers", "max_providers", DEFAULT_MAX_PROVIDERS)),
            poll_interval=float(get_config_value("upload", "poll_interval", DEFAULT_POLL_INTERVAL)),
            poll_max_ticks=int(get_config_value("upload", "poll_max_ticks", DEFAULT_POLL_MAX_TICKS)),
            memo=get_config_value("chain", "memo", ""),
        )

    async def close(self):
        await self.chain.close()
        await self.provider_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # Provider pool

    async def check_providers(self, version_filter: VersionFilter = None) -> ProviderChecks:
        return await self.registry.check_providers(version_filter)

    def get_current_provider(self) -> Optional[Provider]:
        return self.registry.current

    def get_available_providers(self) -> List[Provider]:
        return self.registry.available

    def force_provider(self, provider: Provider) -> None:
        self.registry.force_provider(provider)

    async def refresh(self) -> None:
        await self.registry.refresh()

    # Folders

    async def raw_create_folders(
        self, parent: FolderHandler, names: List[str]
    ) -> List[ChainMessage]:
        """Messages creating child folders of parent, followed by the parent update."""
        existing, encoded = await parent.add_child_dirs(names, self.codec)
        if existing:
            logger.info(f"The following duplicate folder names were ignored: {existing}")
        return encoded

    async def create_folders(self, parent: FolderHandler, names: List[str]) -> None:
        ready_to_broadcast = await self.raw_create_folders(parent, names)
        await self.chain.broadcast(ready_to_broadcast, memo=self.memo)

    async def raw_generate_initial_dirs(
        self,
        init_msg: Optional[ChainMessage] = None,
        starting_dirs: Optional[List[str]] = None,
    ) -> List[ChainMessage]:
        """
        Messages setting up an account's tree.

        Args:
            init_msg: Optional message placed first, e.g. a key registration
            starting_dirs: Top-level folders to create under ``s``
                (default: Config, Home, WWW)

        Returns:
            List[ChainMessage]: [init_msg,] root, then one message per folder
        """
        to_generate = starting_dirs or DEFAULT_STARTING_DIRS
        creator = self.wallet.address
        dir_msgs = [
            await FolderHandler.track_new_folder(name, "s", creator).get_for_filetree(self.codec)
            for name in to_generate
        ]
        ready_to_broadcast = [init_msg] if init_msg is not None else []
        ready_to_broadcast.append(self.codec.make_root())
        ready_to_broadcast.extend(dir_msgs)
        return ready_to_broadcast

    async def generate_initial_dirs(
        self,
        init_msg: Optional[ChainMessage] = None,
        starting_dirs: Optional[List[str]] = None,
    ) -> None:
        ready_to_broadcast = await self.raw_generate_initial_dirs(init_msg, starting_dirs)
        await self.chain.broadcast(ready_to_broadcast, memo=self.memo)

    async def check_folder_is_file_tree(self, raw_path: str) -> bool:
        return await self.codec.is_file_tree(raw_path)

    async def verify_folders_exist(self, to_check: List[str]) -> int:
        """
        Create whichever of the given top-level folders are missing.

        Returns:
            int: Number of folders created
        """
        to_create = []
        for name in to_check:
            if await self.check_folder_is_file_tree(f"s/{name}"):
                logger.info(f"{name} exists")
            else:
                logger.warning(f"{name} does not exist")
                to_create.append(name)
        if to_create:
            logger.info(f"Creating: {to_create}")
            await self.generate_initial_dirs(None, to_create)
        return len(to_create)

    # Transfers

    async def stage_uploads(
        self,
        source_hash_map: Dict[str, UploadQueueItem],
        parent: FolderHandler,
        tracker: Optional[StaggeredTracker] = None,
    ) -> None:
        await self.uploads.stage_uploads(source_hash_map, parent, tracker)

    async def download_folder(self, raw_path: str) -> FolderHandler:
        return await self.downloads.download_folder(raw_path)

    async def download_file(
        self, details: DownloadDetails, progress: Optional[DownloadProgress] = None
    ) -> Union[FileDownloadHandler, FolderHandler]:
        return await self.downloads.download_file(details, progress)

    # Deletion and conversion

    async def raw_delete_targets(
        self, targets: List[str], parent: FolderHandler
    ) -> List[ChainMessage]:
        return await self.deletion.resolve(targets, parent)

    async def delete_targets(self, targets: List[str], parent: FolderHandler) -> None:
        await self.deletion.delete_targets(targets, parent)

    async def raw_convert_folder_type(self, raw_path: str) -> List[ChainMessage]:
        return await self.conversion.convert(raw_path)

    async def convert_folder_type(self, raw_path: str) -> None:
        await self.conversion.convert_and_broadcast(raw_path)
