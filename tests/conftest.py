"""
Pytest configuration and fixtures for Canine SDK tests.

The chain and the storage providers are replaced by in-memory fakes. The
fake chain applies broadcast messages to its own state, so tests can read
back what an operation committed through the real client code paths.
"""

import asyncio
import random
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from nacl.public import PrivateKey

from canine_sdk.client import CanineClient
from canine_sdk.errors import (
    CanineBroadcastError,
    CanineNotFoundError,
    CanineProviderUnavailableError,
)
from canine_sdk.hashing import hash_and_hex, merkle_path, owner_key
from canine_sdk.messages import (
    MSG_CANCEL_CONTRACT,
    MSG_DELETE_FILE,
    MSG_MAKE_ROOT,
    MSG_POST_FILE,
    MSG_SIGN_CONTRACT,
)
from canine_sdk.models import (
    ChainMessage,
    DownloadProgress,
    FileRecord,
    Provider,
    ProviderVersion,
    UploadResult,
)
from canine_sdk.providers import ProviderRegistry
from canine_sdk.wallet import LocalWallet

PROVIDER_A = "https://prov-a.net"
PROVIDER_B = "https://prov-b.net"


class FakeChain:
    """In-memory stand-in for ChainClient."""

    def __init__(self):
        self.providers: List[Provider] = []
        self.files: Dict[Tuple[str, str], FileRecord] = {}
        self.file_providers: Dict[str, List[str]] = {}
        self.fid_cids: Dict[str, List[str]] = {}
        self.contracts: Dict[str, str] = {}
        self.strays: Dict[str, str] = {}
        self.pub_keys: Dict[str, str] = {}
        self.roots: List[str] = []
        self.broadcasts: List[Tuple[List[ChainMessage], str]] = []
        self.fail_broadcast = False

    async def close(self):
        pass

    async def fetch_providers(self) -> List[Provider]:
        return list(self.providers)

    async def find_file_providers(self, fid: str) -> List[str]:
        return list(self.file_providers.get(fid, []))

    async def query_files(self, address: str, owner_address: str) -> FileRecord:
        record = self.files.get((address, owner_address))
        if record is None:
            raise CanineNotFoundError(f"No tree leaf at {address}")
        return record

    async def query_fid_cids(self, fid: str) -> List[str]:
        return list(self.fid_cids.get(fid, []))

    async def query_contract_signee(self, cid: str) -> Optional[str]:
        return self.contracts.get(cid)

    async def query_stray_signee(self, cid: str) -> Optional[str]:
        return self.strays.get(cid)

    async def query_pub_key(self, address: str) -> str:
        if address not in self.pub_keys:
            raise CanineNotFoundError(f"No public key published for {address}")
        return self.pub_keys[address]

    async def broadcast(self, messages: List[ChainMessage], memo: str = ""):
        if self.fail_broadcast:
            raise CanineBroadcastError("Broadcast failed: node unreachable")
        self.broadcasts.append((list(messages), memo))
        for msg in messages:
            self._apply(msg)
        return {"code": 0}

    def _apply(self, msg: ChainMessage) -> None:
        v = msg.value
        if msg.type_url == MSG_POST_FILE:
            address = hash_and_hex(v["hashParent"] + v["hashChild"])
            owner = owner_key(address, v["creator"])
            self.files[(address, owner)] = FileRecord(
                address=address,
                owner=owner,
                contents=v["contents"],
                viewing_access=v["viewers"],
                edit_access=v["editors"],
                tracking_number=v["trackingNumber"],
            )
        elif msg.type_url == MSG_DELETE_FILE:
            self.files.pop((v["hashPath"], owner_key(v["hashPath"], v["creator"])), None)
        elif msg.type_url == MSG_SIGN_CONTRACT:
            self.contracts[v["cid"]] = v["creator"]
        elif msg.type_url == MSG_CANCEL_CONTRACT:
            self.contracts.pop(v["cid"], None)
        elif msg.type_url == MSG_MAKE_ROOT:
            self.roots.append(v["creator"])

    def record_at(self, raw_path: str, owner: str) -> Optional[FileRecord]:
        address = merkle_path(raw_path)
        return self.files.get((address, owner_key(address, owner)))

    def put_record(self, raw_path: str, owner: str, **fields) -> FileRecord:
        address = merkle_path(raw_path)
        key = owner_key(address, owner)
        record = FileRecord(address=address, owner=key, **fields)
        self.files[(address, key)] = record
        return record

    def messages_of(self, type_url: str) -> List[ChainMessage]:
        return [m for batch, _ in self.broadcasts for m in batch if m.type_url == type_url]


class FakeProviderClient:
    """In-memory stand-in for AsyncProviderClient."""

    def __init__(self, chain: FakeChain):
        self.chain = chain
        self.blobs: Dict[str, bytes] = {}
        self.versions: Dict[str, ProviderVersion] = {}
        self.down: set = set()
        self.delays: Dict[str, float] = {}
        self.uploads: List[Tuple[str, str]] = []
        self._counter = 0

    async def close(self):
        pass

    async def version(self, ip: str) -> ProviderVersion:
        if ip in self.down or ip not in self.versions:
            raise CanineProviderUnavailableError(f"Version probe of {ip} failed")
        return self.versions[ip]

    async def upload(self, ip: str, sender: str, data: bytes, filename: str = "file") -> UploadResult:
        if ip in self.down:
            raise CanineProviderUnavailableError(f"Upload to {ip} failed")
        await asyncio.sleep(self.delays.get(filename, 0))
        self._counter += 1
        fid = f"fid-{self._counter}"
        cid = f"cid-{self._counter}"
        self.blobs[fid] = data
        self.chain.file_providers.setdefault(fid, []).append(ip)
        self.chain.fid_cids[fid] = [cid]
        self.uploads.append((ip, filename))
        return UploadResult(fid=[fid], cid=cid)

    async def download(
        self, ip: str, fid: str, progress: Optional[DownloadProgress] = None
    ) -> bytes:
        if ip in self.down or fid not in self.blobs:
            raise CanineProviderUnavailableError(f"Download from {ip} failed")
        if progress is not None:
            progress.track = 100
        return self.blobs[fid]


@pytest.fixture
def chain() -> FakeChain:
    fake = FakeChain()
    fake.providers = [Provider(ip=PROVIDER_A), Provider(ip=PROVIDER_B)]
    return fake


@pytest.fixture
def provider_client(chain: FakeChain) -> FakeProviderClient:
    return FakeProviderClient(chain)


@pytest.fixture
def wallet(chain: FakeChain) -> LocalWallet:
    alice = LocalWallet("jkl1alice", PrivateKey.generate(), chain)
    chain.pub_keys[alice.address] = alice.get_pub_key()
    return alice


@pytest.fixture
def other_wallet(chain: FakeChain) -> LocalWallet:
    bob = LocalWallet("jkl1bob", PrivateKey.generate(), chain)
    chain.pub_keys[bob.address] = bob.get_pub_key()
    return bob


@pytest_asyncio.fixture
async def registry(chain: FakeChain, provider_client: FakeProviderClient) -> ProviderRegistry:
    return await ProviderRegistry.track(chain, provider_client, rng=random.Random(7))


@pytest_asyncio.fixture
async def client(chain, provider_client, wallet, registry) -> CanineClient:
    """CanineClient over the fakes, with a short upload poll."""
    canine = CanineClient(
        wallet, chain, provider_client, registry, poll_interval=0.01, poll_max_ticks=5
    )
    yield canine
    await canine.close()


@pytest_asyncio.fixture
async def home(client: CanineClient):
    """An initialised account, returning its s/Home folder."""
    await client.generate_initial_dirs()
    return await client.download_folder("s/Home")
