import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from canine_sdk.errors import CanineProviderUnavailableError
from canine_sdk.models import DownloadProgress, ProviderVersion, UploadResult

logger = logging.getLogger(__name__)


def provider_url(ip: str, route: str) -> str:
    return f"{ip.rstrip('/')}/{route.lstrip('/')}"


class AsyncProviderClient:
    """
    Asynchronous storage provider client using httpx.
    """

    def __init__(
        self,
        probe_timeout: float = 1.5,
        transfer_timeout: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.probe_timeout = probe_timeout
        self.client = httpx.AsyncClient(
            timeout=transfer_timeout, follow_redirects=True, transport=transport
        )

    async def close(self):
        """Close the httpx client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def version(self, ip: str) -> ProviderVersion:
        """
        Probe a provider's /version endpoint.

        Args:
            ip: Provider base URL

        Returns:
            ProviderVersion: Chain id and software version the provider reports

        Raises:
            CanineProviderUnavailableError: On timeout, bad status or unparseable body
        """
        try:
            response = await self.client.get(
                provider_url(ip, "version"), timeout=self.probe_timeout
            )
            response.raise_for_status()
            return ProviderVersion.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            raise CanineProviderUnavailableError(f"Version probe of {ip} failed: {e}")

    async def upload(
        self, ip: str, sender: str, data: bytes, filename: str = "file"
    ) -> UploadResult:
        """
        Upload bytes to a provider.

        Args:
            ip: Provider base URL
            sender: Address of the uploading account
            data: Bytes to store
            filename: Name to give the multipart file

        Returns:
            UploadResult: Content id and storage contract id

        Raises:
            CanineProviderUnavailableError: If the provider does not answer 200 with ids
        """
        files = {"file": (filename, data, "application/octet-stream")}
        try:
            response = await self.client.post(
                provider_url(ip, "upload"), files=files, data={"sender": sender}
            )
        except httpx.HTTPError as e:
            raise CanineProviderUnavailableError(f"Upload to {ip} failed: {e}")

        if response.status_code != 200:
            raise CanineProviderUnavailableError(
                f"Upload to {ip} failed. Status Message: {response.reason_phrase}"
            )
        try:
            body = response.json()
            return UploadResult(fid=[body["fid"]], cid=body["cid"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            raise CanineProviderUnavailableError(f"Unexpected upload response from {ip}: {e}")

    async def download(
        self, ip: str, fid: str, progress: Optional[DownloadProgress] = None
    ) -> bytes:
        """
        Stream a blob from a provider.

        progress.track is kept at the received percentage of the advertised
        Content-Length, and is at least 1 once any bytes have arrived.

        Raises:
            CanineProviderUnavailableError: On transport errors, bad status or an empty body
        """
        url = provider_url(ip, f"download/{fid}")
        chunks = []
        received = 0
        try:
            async with self.client.stream("GET", url) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0)
                async for chunk in response.aiter_bytes():
                    if not chunk:
                        continue
                    chunks.append(chunk)
                    received += len(chunk)
                    if progress is not None:
                        percent = int(received / total * 100) if total else 0
                        progress.track = min(percent, 100) or 1
        except (httpx.HTTPError, ValueError) as e:
            raise CanineProviderUnavailableError(f"Download from {url} failed: {e}")

        if received == 0:
            raise CanineProviderUnavailableError(f"Empty response body from {url}")
        return b"".join(chunks)
