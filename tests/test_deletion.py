"""
Tests for recursive deletion.
"""

import json

import pytest

from canine_sdk.crypt import encrypt_file, gen_aes
from canine_sdk.handlers import FileUploadHandler
from canine_sdk.hashing import merkle_path
from canine_sdk.messages import MSG_CANCEL_CONTRACT, MSG_DELETE_FILE
from canine_sdk.models import UploadQueueItem


async def upload(client, parent, name, data=b"data"):
    handler = FileUploadHandler(data, name, parent.path)
    await client.stage_uploads({name: UploadQueueItem(key=name, handler=handler)}, parent)
    return handler


async def build_tree(client, home):
    """
    s/Home
      top.txt
      docs/
        x.txt
        deep/
          y.txt
      keep/
    """
    await client.create_folders(home, ["docs", "keep"])
    top = await upload(client, home, "top.txt")
    docs = await client.download_folder("s/Home/docs")
    await client.create_folders(docs, ["deep"])
    x = await upload(client, docs, "x.txt")
    deep = await client.download_folder("s/Home/docs/deep")
    y = await upload(client, deep, "y.txt")
    return top, x, y


@pytest.mark.asyncio
class TestDeletion:
    """Tests for DeletionCascade."""

    async def test_delete_targets_removes_the_subtree(self, client, chain, wallet, home):
        top, x, y = await build_tree(client, home)
        home = await client.download_folder("s/Home")

        await client.delete_targets(["docs", "top.txt"], home)

        for path in [
            "s/Home/top.txt",
            "s/Home/docs",
            "s/Home/docs/x.txt",
            "s/Home/docs/deep",
            "s/Home/docs/deep/y.txt",
        ]:
            assert chain.record_at(path, wallet.address) is None, path
        assert chain.record_at("s/Home/keep", wallet.address) is not None
        for handler in (top, x, y):
            assert handler.ids.cid not in chain.contracts

        refreshed = await client.download_folder("s/Home")
        assert refreshed.child_dirs == ["keep"]
        assert refreshed.child_files == {}
        assert chain.broadcasts[-1][1] == ""

    async def test_files_are_deleted_before_folders(self, client, chain, wallet, home):
        await build_tree(client, home)
        home = await client.download_folder("s/Home")

        msgs = await client.raw_delete_targets(["docs", "top.txt"], home)

        deletes = [m for m in msgs if m.type_url == MSG_DELETE_FILE]
        assert len(deletes) == 5
        first = msgs[0]
        assert first.type_url == MSG_CANCEL_CONTRACT
        assert msgs[1].type_url == MSG_DELETE_FILE

    async def test_raw_delete_does_not_touch_the_parent(self, client, chain, wallet, home):
        await build_tree(client, home)
        home = await client.download_folder("s/Home")
        broadcasts_before = len(chain.broadcasts)

        await client.raw_delete_targets(["top.txt"], home)

        assert len(chain.broadcasts) == broadcasts_before
        assert "top.txt" in home.child_files

    async def test_contracts_owned_by_others_are_kept(self, client, chain, wallet, home):
        handler = await upload(client, home, "shared.txt")
        cid = handler.ids.cid
        chain.contracts[cid] = "jkl1bob"

        msgs = await client.deletion.make_delete(wallet.address, ["s/Home/shared.txt"])

        assert [m.type_url for m in msgs] == [MSG_DELETE_FILE]

    async def test_stray_contracts_count_as_owned(self, client, chain, wallet, home):
        handler = await upload(client, home, "stray.txt")
        cid = handler.ids.cid
        del chain.contracts[cid]
        chain.strays[cid] = wallet.address

        msgs = await client.deletion.make_delete(wallet.address, ["s/Home/stray.txt"])

        assert [m.type_url for m in msgs] == [MSG_CANCEL_CONTRACT, MSG_DELETE_FILE]
        assert msgs[0].value["cid"] == cid

    async def test_unknown_targets_are_ignored(self, client, chain, wallet, home):
        msgs = await client.raw_delete_targets(["nothing-here"], home)
        assert msgs == []

    async def test_file_and_empty_tree_folder(self, client, chain, wallet, home):
        a = await upload(client, home, "a.txt")
        await client.create_folders(home, ["sub"])
        home = await client.download_folder("s/Home")

        msgs = await client.raw_delete_targets(["a.txt", "sub"], home)

        assert [m.type_url for m in msgs] == [
            MSG_CANCEL_CONTRACT,
            MSG_DELETE_FILE,
            MSG_DELETE_FILE,
        ]
        assert msgs[0].value["cid"] == a.ids.cid
        assert msgs[1].value["hashPath"] == merkle_path("s/Home/a.txt")
        assert msgs[2].value["hashPath"] == merkle_path("s/Home/sub")

    async def test_legacy_folder_is_deleted_like_a_file(
        self, client, chain, provider_client, wallet, home
    ):
        aes = gen_aes()
        perms = client.codec.self_perms("tn-old", aes)
        chain.put_record(
            "s/Home/Old",
            wallet.address,
            contents=json.dumps({"fids": ["legacy-1"]}),
            viewing_access=perms["viewers"],
            edit_access=perms["editors"],
            tracking_number="tn-old",
        )
        frame = {"whoAmI": "Old", "whereAmI": "s/Home", "whoOwnsMe": wallet.address}
        provider_client.blobs["legacy-1"] = encrypt_file(json.dumps(frame).encode("utf-8"), aes)
        chain.file_providers["legacy-1"] = ["https://prov-a.net"]
        chain.fid_cids["legacy-1"] = ["legacy-cid"]
        chain.contracts["legacy-cid"] = wallet.address
        home.frame.dir_children.append("Old")

        msgs = await client.raw_delete_targets(["Old"], home)

        assert [m.type_url for m in msgs] == [MSG_CANCEL_CONTRACT, MSG_DELETE_FILE]
        assert msgs[0].value["cid"] == "legacy-cid"
        assert msgs[1].value["hashPath"] == merkle_path("s/Home/Old")
