"""
Storage provider discovery, health verification and selection.
"""

import asyncio
import logging
import random
import re
from typing import List, Optional, Sequence, Union

from canine_sdk.chain import ChainClient
from canine_sdk.errors import CanineProviderUnavailableError
from canine_sdk.models import Provider, ProviderChecks
from canine_sdk.provider_client import AsyncProviderClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROVIDERS = 1000

DISALLOW_LIST = [
    re.compile(r"example"),
    re.compile(r"sample"),
    re.compile(r"0\.0\.0\.0"),
    re.compile(r"127\.\d{1,3}\.\d{1,3}\.\d{1,3}"),
    re.compile(r"192\.168\.\d{1,3}\.\d{1,3}"),
    re.compile(r"placeholder"),
]

VersionFilter = Union[str, Sequence[str], None]


def filter_providers(
    raw_providers: List[Provider], max_providers: Optional[int] = None
) -> List[Provider]:
    """
    Drop providers that cannot be reached from the public internet.

    localhost entries are always kept. Anything else needs an https scheme
    and must not look like a sample, loopback or private address.

    Args:
        raw_providers: Providers as listed on chain
        max_providers: Cap on the number of providers returned (default: 1000)

    Returns:
        List[Provider]: Providers worth probing
    """
    filtered = []
    for provider in raw_providers:
        ip = provider.ip.lower()
        if "localhost" in ip:
            filtered.append(provider)
        elif ip.startswith("https") and not any(rx.search(ip) for rx in DISALLOW_LIST):
            filtered.append(provider)
    return filtered[: max_providers or DEFAULT_MAX_PROVIDERS]


def _normalize_versions(version_filter: VersionFilter) -> List[str]:
    if not version_filter:
        return []
    if isinstance(version_filter, str):
        return [version_filter]
    return list(version_filter)


def build_version_regex(versions: List[str]) -> "re.Pattern[str]":
    """Regex accepting any version sharing a major.minor prefix with one of versions."""
    prefixes = [re.escape(".".join(v.split(".")[:2])) for v in versions]
    return re.compile(rf"(^|[^0-9])({'|'.join(prefixes)})\..+$")


async def verify_providers(
    providers: List[Provider],
    provider_client: AsyncProviderClient,
    chain_id: Optional[str] = None,
    version_filter: VersionFilter = None,
) -> List[Provider]:
    """
    Probe every provider concurrently and keep the healthy, matching ones.

    A provider is kept iff its /version probe answers in time, its chain id
    matches chain_id (when given) and its version shares a major.minor
    prefix with one of version_filter (when given). Probe failures only
    exclude that provider.
    """
    versions = _normalize_versions(version_filter)
    version_regex = None
    if versions:
        logger.info(f"Checking for provider version(s): {versions}")
        version_regex = build_version_regex(versions)

    async def probe(provider: Provider) -> bool:
        try:
            reported = await provider_client.version(provider.ip)
        except CanineProviderUnavailableError as e:
            logger.warning(f"Provider verification failed: {e}")
            return False
        chain_check = chain_id is None or reported.chain_id == chain_id
        version_check = version_regex is None or bool(version_regex.search(reported.version))
        return chain_check and version_check

    staged = await asyncio.gather(*(probe(p) for p in providers))
    verified = [p for p, ok in zip(providers, staged) if ok]
    logger.info(f"Verified providers: {[p.ip for p in verified]}")
    return verified


class ProviderRegistry:
    """
    Pool of verified providers with a current selection.

    Every change replaces the available list outright.
    """

    def __init__(
        self,
        chain: ChainClient,
        provider_client: AsyncProviderClient,
        chain_id: Optional[str] = None,
        version_filter: VersionFilter = None,
        max_providers: int = DEFAULT_MAX_PROVIDERS,
        rng: Optional[random.Random] = None,
    ):
        self.chain = chain
        self.provider_client = provider_client
        self.chain_id = chain_id
        self.version_filter = _normalize_versions(version_filter)
        self.max_providers = max_providers
        self._rng = rng or random.Random()
        self._available: List[Provider] = []
        self._current: Optional[Provider] = None

    @classmethod
    async def track(
        cls,
        chain: ChainClient,
        provider_client: AsyncProviderClient,
        chain_id: Optional[str] = None,
        version_filter: VersionFilter = None,
        max_providers: int = DEFAULT_MAX_PROVIDERS,
        rng: Optional[random.Random] = None,
    ) -> "ProviderRegistry":
        """Create a registry and run the first discovery."""
        registry = cls(chain, provider_client, chain_id, version_filter, max_providers, rng)
        await registry.refresh()
        return registry

    @property
    def current(self) -> Optional[Provider]:
        return self._current

    @property
    def available(self) -> List[Provider]:
        return list(self._available)

    async def fetch_filtered(self) -> List[Provider]:
        raw = await self.chain.fetch_providers()
        logger.info(f"Raw providers: {len(raw)}")
        return filter_providers(raw, self.max_providers)

    async def list_verified(
        self, chain_id: Optional[str] = None, version_filter: VersionFilter = None
    ) -> List[Provider]:
        """
        Discover providers, probing them only when a filter is requested.

        Args:
            chain_id: Required chain id, or None to accept any
            version_filter: Version or versions to accept, or None to accept any

        Returns:
            List[Provider]: Filtered, and when requested verified, providers
        """
        filtered = await self.fetch_filtered()
        if chain_id is None and not version_filter:
            return filtered
        return await verify_providers(
            filtered, self.provider_client, chain_id, version_filter
        )

    async def check_providers(self, version_filter: VersionFilter = None) -> ProviderChecks:
        """Provider lists at each discovery stage, for diagnostics."""
        raw = await self.chain.fetch_providers()
        filtered = filter_providers(raw, self.max_providers)
        verified = (
            await verify_providers(filtered, self.provider_client, self.chain_id, version_filter)
            if version_filter
            else filtered
        )
        return ProviderChecks(raw=raw, filtered=filtered, verified=verified)

    def select(self) -> Optional[Provider]:
        """Pick a provider uniformly at random from the available pool."""
        self._current = self._rng.choice(self._available) if self._available else None
        return self._current

    def evict(self, ip: str) -> Optional[Provider]:
        """Remove a provider from the pool and pick a new current one."""
        logger.warning(f"Removing provider {ip} from the pool")
        self._available = [p for p in self._available if p.ip != ip]
        return self.select()

    def force_provider(self, provider: Provider) -> None:
        self._current = provider

    async def refresh(self) -> None:
        """Re-run discovery and verification, replacing the pool."""
        self._available = await self.list_verified(self.chain_id, self.version_filter)
        self.select()
