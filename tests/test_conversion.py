"""
Tests for migrating legacy folders to the tree encoding.
"""

import json

import pytest

from canine_sdk.crypt import encrypt_file, gen_aes
from canine_sdk.handlers import FolderHandler
from canine_sdk.messages import MSG_CANCEL_CONTRACT, MSG_DELETE_FILE, MSG_POST_FILE

PROVIDER_A = "https://prov-a.net"


def store_legacy_folder(chain, provider_client, codec, raw_path, frame, fid):
    aes = gen_aes()
    perms = codec.self_perms(f"tn-{fid}", aes)
    chain.put_record(
        raw_path,
        codec.wallet.address,
        contents=json.dumps({"fids": [fid]}),
        viewing_access=perms["viewers"],
        edit_access=perms["editors"],
        tracking_number=f"tn-{fid}",
    )
    provider_client.blobs[fid] = encrypt_file(json.dumps(frame).encode("utf-8"), aes)
    chain.file_providers[fid] = [PROVIDER_A]


@pytest.fixture
def legacy_old(chain, provider_client, client, wallet):
    """s/Home/Old stored the legacy way, with a tree-encoded child folder."""
    frame = {
        "whoAmI": "Old",
        "whereAmI": "s/Home",
        "whoOwnsMe": wallet.address,
        "dirChildren": ["sub"],
        "fileChildren": {"f.txt": {"name": "f.txt", "lastModified": 7, "size": 12, "type": ""}},
    }
    store_legacy_folder(chain, provider_client, client.codec, "s/Home/Old", frame, "legacy-1")
    chain.fid_cids["legacy-1"] = ["legacy-cid"]
    chain.contracts["legacy-cid"] = wallet.address
    return frame


@pytest.mark.asyncio
class TestConversion:
    """Tests for FolderConversionWalk."""

    async def test_raw_convert_legacy_folder(self, client, chain, wallet, legacy_old):
        sub = FolderHandler.track_new_folder("sub", "s/Home/Old", wallet.address)
        await chain.broadcast([await sub.get_for_filetree(client.codec)])

        msgs = await client.raw_convert_folder_type("s/Home/Old")

        assert [m.type_url for m in msgs] == [
            MSG_CANCEL_CONTRACT,
            MSG_DELETE_FILE,
            MSG_POST_FILE,
            MSG_POST_FILE,
        ]
        assert msgs[0].value["cid"] == "legacy-cid"

    async def test_convert_folder_type(self, client, chain, wallet, legacy_old):
        sub = FolderHandler.track_new_folder("sub", "s/Home/Old", wallet.address)
        await chain.broadcast([await sub.get_for_filetree(client.codec)])

        await client.convert_folder_type("s/Home/Old")

        assert await client.check_folder_is_file_tree("s/Home/Old")
        converted = await client.download_folder("s/Home/Old")
        assert converted.child_dirs == ["sub"]
        assert converted.child_files["f.txt"].last_modified == 7
        assert "legacy-cid" not in chain.contracts
        assert await client.check_folder_is_file_tree("s/Home/Old/sub")

    async def test_tree_folders_are_never_deleted(self, client, home):
        await client.create_folders(home, ["docs"])

        msgs = await client.raw_convert_folder_type("s/Home")

        assert [m.type_url for m in msgs] == [MSG_POST_FILE, MSG_POST_FILE]
