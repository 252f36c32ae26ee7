"""
Chain client for the Canine SDK.

Queries go to the chain's REST endpoint. Broadcasting is delegated to an
injected signer, since building and signing transactions belongs to the
wallet side.
"""

import asyncio
import functools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from canine_sdk.errors import (
    CanineBroadcastError,
    CanineChainConnectionError,
    CanineNotFoundError,
)
from canine_sdk.models import ChainMessage, FileRecord, Provider

logger = logging.getLogger(__name__)

STORAGE_ROUTE = "/jackal/canine-chain/storage"
FILETREE_ROUTE = "/jackal/canine-chain/filetree"

Broadcaster = Callable[[List[ChainMessage], str], Awaitable[Any]]


def retry_on_error(retries: int = 3, backoff: float = 2.0):
    """
    Decorator to retry chain queries on 5xx and transport errors.

    A 404 is turned into CanineNotFoundError straight away.

    Args:
        retries: Number of retry attempts (default: 3)
        backoff: Seconds to wait between retries (default: 2.0)
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(retries + 1):
                try:
                    return await func(*args, **kwargs)
                except httpx.HTTPStatusError as e:
                    if e.response.status_code == 404:
                        raise CanineNotFoundError(f"Not found: {e.request.url}")
                    if e.response.status_code < 500:
                        raise CanineChainConnectionError(f"Chain query rejected: {e}")
                    last_exception = e
                except httpx.TransportError as e:
                    last_exception = e

                if attempt == retries:
                    break

                logger.warning(
                    f"Chain query failed (attempt {attempt + 1}/{retries + 1}): {last_exception}"
                )
                await asyncio.sleep(backoff)

            raise CanineChainConnectionError(
                f"Chain query failed after {retries + 1} attempts: {last_exception}"
            )

        return wrapper

    return decorator


class ChainClient:
    """
    REST client for the storage and filetree modules of the chain.
    """

    def __init__(
        self,
        rest_url: str,
        broadcaster: Optional[Broadcaster] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the chain client.

        Args:
            rest_url: Base URL of the chain REST endpoint
            broadcaster: Async callable that signs and broadcasts a list of
                messages with a memo. Without one the client is read-only.
            timeout: Request timeout in seconds
        """
        self.rest_url = rest_url.rstrip("/")
        self._broadcaster = broadcaster
        self._client = httpx.AsyncClient(
            base_url=self.rest_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
            follow_redirects=True,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    @retry_on_error()
    async def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    async def fetch_providers(self) -> List[Provider]:
        """
        Fetch every provider registered on chain, following pagination.

        Returns:
            List[Provider]: All providers, unfiltered
        """
        providers: List[Provider] = []
        next_key = None
        while True:
            params = {"pagination.key": next_key} if next_key else None
            page = await self._get(f"{STORAGE_ROUTE}/providers", params=params)
            providers.extend(Provider.model_validate(p) for p in page.get("providers", []))
            next_key = (page.get("pagination") or {}).get("next_key")
            if not next_key:
                break
        return providers

    async def find_file_providers(self, fid: str) -> List[str]:
        """
        Look up the provider ips currently hosting a content id.

        A malformed answer is logged and treated as no providers.
        """
        try:
            result = await self._get(f"{STORAGE_ROUTE}/find_file/{fid}")
        except CanineNotFoundError:
            return []
        raw_ips = result.get("provider_ips")
        if not raw_ips:
            logger.error(f"Incomplete find_file response for {fid}")
            return []
        try:
            ips = json.loads(raw_ips)
        except ValueError as e:
            logger.error(f"Could not parse provider ips for {fid}: {e}")
            return []
        if not isinstance(ips, list):
            logger.error(f"Provider ips for {fid} are not a list")
            return []
        return [str(ip) for ip in ips]

    async def query_files(self, address: str, owner_address: str) -> FileRecord:
        """
        Fetch a tree leaf.

        Raises:
            CanineNotFoundError: If there is no leaf at that address for that owner
        """
        result = await self._get(f"{FILETREE_ROUTE}/files/{address}/{owner_address}")
        files = result.get("files")
        if not files:
            raise CanineNotFoundError(f"No tree leaf at {address}")
        return FileRecord.model_validate(files)

    async def query_fid_cids(self, fid: str) -> List[str]:
        """Storage contract ids linked to a content id."""
        try:
            result = await self._get(f"{STORAGE_ROUTE}/fid_cid/{fid}")
        except CanineNotFoundError:
            return []
        raw_cids = (result.get("fid_cid") or {}).get("cids") or "[]"
        try:
            return list(json.loads(raw_cids))
        except ValueError as e:
            logger.warning(f"Could not parse contract ids for {fid}: {e}")
            return []

    async def query_contract_signee(self, cid: str) -> Optional[str]:
        try:
            result = await self._get(f"{STORAGE_ROUTE}/contracts/{cid}")
        except CanineNotFoundError:
            return None
        return (result.get("contracts") or {}).get("signee")

    async def query_stray_signee(self, cid: str) -> Optional[str]:
        try:
            result = await self._get(f"{STORAGE_ROUTE}/strays/{cid}")
        except CanineNotFoundError:
            return None
        return (result.get("strays") or {}).get("signee")

    async def query_pub_key(self, address: str) -> str:
        """
        Public key an address registered for key wrapping.

        Raises:
            CanineNotFoundError: If the address never published a key
        """
        result = await self._get(f"{FILETREE_ROUTE}/pubkey/{address}")
        key = (result.get("pub_key") or {}).get("key")
        if not key:
            raise CanineNotFoundError(f"No public key published for {address}")
        return key

    async def broadcast(self, messages: List[ChainMessage], memo: str = "") -> Any:
        """
        Sign and broadcast a batch of messages as one transaction.

        Raises:
            CanineBroadcastError: If no broadcaster is configured or the broadcast fails
        """
        if self._broadcaster is None:
            raise CanineBroadcastError(
                "No broadcaster configured. This client is read-only."
            )
        logger.debug(f"Broadcasting {len(messages)} messages (memo: {memo!r})")
        try:
            return await self._broadcaster(messages, memo)
        except Exception as e:
            raise CanineBroadcastError(f"Broadcast failed: {e}") from e
