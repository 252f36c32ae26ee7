"""
Tests for the download pipeline.
"""

import json

import pytest

from canine_sdk.crypt import encrypt_file, gen_aes
from canine_sdk.download import DownloadPipeline, parse_fids
from canine_sdk.errors import (
    CanineDecodeError,
    CanineNoProvidersError,
    CanineNotFoundError,
    CanineProvidersExhaustedError,
)
from canine_sdk.file_tree import FileTreeCodec
from canine_sdk.handlers import FileUploadHandler, FolderHandler
from canine_sdk.models import DownloadDetails, DownloadProgress, FileRecord, UploadQueueItem

PROVIDER_A = "https://prov-a.net"


def store_legacy_folder(chain, provider_client, codec, raw_path, frame, fid):
    """Store a folder the old way: an encrypted JSON blob referenced by a leaf."""
    aes = gen_aes()
    tracking_number = f"tn-{fid}"
    perms = codec.self_perms(tracking_number, aes)
    chain.put_record(
        raw_path,
        codec.wallet.address,
        contents=json.dumps({"fids": [fid]}),
        viewing_access=perms["viewers"],
        edit_access=perms["editors"],
        tracking_number=tracking_number,
    )
    provider_client.blobs[fid] = encrypt_file(json.dumps(frame).encode("utf-8"), aes)
    chain.file_providers[fid] = [PROVIDER_A]


async def upload(client, parent, name, data):
    handler = FileUploadHandler(data, name, parent.path)
    await client.stage_uploads({name: UploadQueueItem(key=name, handler=handler)}, parent)
    return handler


def test_parse_fids():
    assert parse_fids(FileRecord(contents='{"fids": ["a", "b"]}'), "p") == ["a", "b"]
    assert parse_fids(FileRecord(contents='{"fids": "a"}'), "p") == ["a"]
    assert parse_fids(FileRecord(contents="{}"), "p") == []
    assert parse_fids(FileRecord(contents="not json"), "p") == []


@pytest.mark.asyncio
class TestDownloadFile:
    """Tests for DownloadPipeline.download_file."""

    async def test_download_reports_progress(self, client, wallet, home):
        await upload(client, home, "a.txt", b"payload")
        progress = DownloadProgress()

        result = await client.download_file(
            DownloadDetails(raw_path="s/Home/a.txt", owner=wallet.address), progress
        )

        assert result.data == b"payload"
        assert progress.track == 100

    async def test_fails_over_to_the_next_provider(self, client, chain, provider_client, wallet, home):
        handler = await upload(client, home, "a.txt", b"payload")
        fid = handler.ids.fid[0]
        chain.file_providers[fid].insert(0, "https://dead.net")
        provider_client.down.add("https://dead.net")

        result = await client.download_file(
            DownloadDetails(raw_path="s/Home/a.txt", owner=wallet.address)
        )

        assert result.data == b"payload"

    async def test_no_hosting_providers(self, client, chain, wallet, home):
        handler = await upload(client, home, "a.txt", b"payload")
        chain.file_providers[handler.ids.fid[0]] = []

        with pytest.raises(CanineNoProvidersError):
            await client.download_file(DownloadDetails(raw_path="s/Home/a.txt", owner=wallet.address))

    async def test_every_provider_fails(self, client, chain, provider_client, wallet, home):
        handler = await upload(client, home, "a.txt", b"payload")
        provider_client.down.update(chain.file_providers[handler.ids.fid[0]])

        with pytest.raises(CanineProvidersExhaustedError, match="All file fetch attempts failed"):
            await client.download_file(DownloadDetails(raw_path="s/Home/a.txt", owner=wallet.address))

    async def test_unreadable_contents_means_no_providers(self, client, chain, wallet):
        chain.put_record("s/Home/odd.txt", wallet.address, contents="garbage", tracking_number="t")

        with pytest.raises(CanineNoProvidersError):
            await client.download_file(DownloadDetails(raw_path="s/Home/odd.txt", owner=wallet.address))

    async def test_missing_file(self, client, wallet, home):
        with pytest.raises(CanineNotFoundError):
            await client.download_file(DownloadDetails(raw_path="s/Home/none.txt", owner=wallet.address))

    async def test_reader_without_access(self, client, chain, provider_client, wallet, other_wallet, home):
        await upload(client, home, "a.txt", b"payload")
        pipeline = DownloadPipeline(
            other_wallet, chain, FileTreeCodec(other_wallet, chain), provider_client
        )

        with pytest.raises(CanineDecodeError):
            await pipeline.download_file(DownloadDetails(raw_path="s/Home/a.txt", owner=wallet.address))


@pytest.mark.asyncio
class TestDownloadFolder:
    """Tests for DownloadPipeline.download_folder."""

    async def test_tree_folder(self, client, home):
        folder = await client.download_folder("s/Home")

        assert isinstance(folder, FolderHandler)
        assert folder.path == "s/Home"

    async def test_legacy_folder(self, client, chain, provider_client, wallet):
        frame = {"whoAmI": "Old", "whereAmI": "s/Home", "whoOwnsMe": wallet.address, "dirChildren": ["x"]}
        store_legacy_folder(chain, provider_client, client.codec, "s/Home/Old", frame, "legacy-1")

        folder = await client.download_folder("s/Home/Old")

        assert folder.child_dirs == ["x"]
        assert not await client.check_folder_is_file_tree("s/Home/Old")

    async def test_unreachable_legacy_folder_is_rebuilt_empty(self, client, chain, provider_client, wallet):
        frame = {"whoAmI": "Old", "whereAmI": "s/Home", "dirChildren": ["x"]}
        store_legacy_folder(chain, provider_client, client.codec, "s/Home/Old", frame, "legacy-1")
        provider_client.down.add(PROVIDER_A)

        folder = await client.download_folder("s/Home/Old")

        assert folder.path == "s/Home/Old"
        assert folder.child_dirs == []
        assert folder.owner == wallet.address

    async def test_missing_folder(self, client):
        with pytest.raises(CanineNotFoundError):
            await client.download_folder("s/Nowhere")
