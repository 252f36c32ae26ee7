"""
Tests for the CanineClient facade.
"""

import random
from unittest.mock import patch

import pytest

from canine_sdk.client import CanineClient
from canine_sdk.hashing import hash_and_hex
from canine_sdk.messages import MSG_MAKE_ROOT, MSG_POST_FILE
from canine_sdk.models import Provider
from canine_sdk.providers import ProviderRegistry


@pytest.mark.asyncio
class TestFolders:
    """Tests for account setup and folder creation."""

    async def test_raw_generate_initial_dirs(self, client, wallet):
        msgs = await client.raw_generate_initial_dirs()

        assert [m.type_url for m in msgs] == [MSG_MAKE_ROOT] + [MSG_POST_FILE] * 3
        assert [m.value["hashChild"] for m in msgs[1:]] == [
            hash_and_hex(name) for name in ["Config", "Home", "WWW"]
        ]

    async def test_raw_generate_initial_dirs_with_init_msg(self, client):
        init = client.codec.remove_node("s/placeholder")

        msgs = await client.raw_generate_initial_dirs(init, ["Only"])

        assert msgs[0] is init
        assert [m.type_url for m in msgs[1:]] == [MSG_MAKE_ROOT, MSG_POST_FILE]

    async def test_broadcasts_carry_the_configured_memo(
        self, chain, provider_client, wallet, registry
    ):
        tagged = CanineClient(wallet, chain, provider_client, registry, memo="canine-sdk")

        await tagged.generate_initial_dirs()
        home = await tagged.download_folder("s/Home")
        await tagged.create_folders(home, ["docs"])
        home = await tagged.download_folder("s/Home")
        await tagged.delete_targets(["docs"], home)
        await tagged.convert_folder_type("s/Home")

        assert [memo for _, memo in chain.broadcasts] == ["canine-sdk"] * 4

    async def test_generate_initial_dirs(self, client, chain, wallet):
        await client.generate_initial_dirs()

        assert chain.roots == [wallet.address]
        for name in ["Config", "Home", "WWW"]:
            assert await client.check_folder_is_file_tree(f"s/{name}")
        home = await client.download_folder("s/Home")
        assert home.owner == wallet.address
        assert home.parent_path == "s"

    async def test_verify_folders_exist(self, client, home):
        created = await client.verify_folders_exist(["Home", "Music"])

        assert created == 1
        assert await client.check_folder_is_file_tree("s/Music")

    async def test_verify_folders_exist_nothing_missing(self, client, chain, home):
        broadcasts_before = len(chain.broadcasts)

        assert await client.verify_folders_exist(["Config", "Home"]) == 0
        assert len(chain.broadcasts) == broadcasts_before

    async def test_create_folders_ignores_duplicates(self, client, home):
        await client.create_folders(home, ["docs"])

        msgs = await client.raw_create_folders(home, ["docs", "pics"])

        assert len(msgs) == 2
        assert home.child_dirs == ["docs", "pics"]


@pytest.mark.asyncio
class TestProviderAccess:
    """Tests for provider pool access through the client."""

    async def test_track_io(self, chain, provider_client, wallet):
        client = await CanineClient.track_io(
            wallet, chain, provider_client, rng=random.Random(3), poll_interval=0.05
        )

        assert len(client.get_available_providers()) == 2
        assert client.get_current_provider() in client.get_available_providers()
        assert client.uploads.poll_interval == 0.05

    async def test_force_provider(self, client):
        client.force_provider(Provider(ip="https://prov-b.net"))
        assert client.get_current_provider().ip == "https://prov-b.net"

    async def test_refresh(self, client, registry):
        registry.evict("https://prov-a.net")
        await client.refresh()
        assert len(client.get_available_providers()) == 2

    async def test_from_config_requires_a_mnemonic(self):
        with patch("canine_sdk.client.get_mnemonic", return_value=None):
            with pytest.raises(ValueError, match="No mnemonic configured"):
                await CanineClient.from_config(password="")

    async def test_from_config_uses_stored_settings(self, wallet):
        settings = {
            ("chain", "rest_url"): "https://rest.test.net",
            ("chain", "chain_id"): "jackal-1",
            ("providers", "probe_timeout"): 1.5,
            ("providers", "transfer_timeout"): 60.0,
            ("providers", "max_providers"): 10,
            ("upload", "poll_interval"): 0.2,
            ("upload", "poll_max_ticks"): 7,
            ("chain", "memo"): "from-config",
        }

        async def fake_track(chain, provider_client, **kwargs):
            registry = ProviderRegistry(chain, provider_client, **kwargs)
            return registry

        with patch("canine_sdk.client.get_mnemonic", return_value="words"), patch(
            "canine_sdk.client.get_config_value",
            side_effect=lambda section, key, default=None: settings.get((section, key), default),
        ), patch("canine_sdk.client.get_version_filter", return_value=["1.0"]), patch(
            "canine_sdk.client.LocalWallet.from_mnemonic", return_value=wallet
        ), patch.object(ProviderRegistry, "track", side_effect=fake_track):
            client = await CanineClient.from_config()

        assert client.chain.rest_url == "https://rest.test.net"
        assert client.registry.chain_id == "jackal-1"
        assert client.registry.version_filter == ["1.0"]
        assert client.registry.max_providers == 10
        assert client.uploads.poll_interval == 0.2
        assert client.uploads.poll_max_ticks == 7
        assert client.memo == "from-config"
        assert client.deletion.memo == "from-config"
        assert client.conversion.memo == "from-config"
        await client.close()
