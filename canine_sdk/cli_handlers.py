"""
Command handlers for the Canine CLI.

Each handler returns a process exit code.
"""

import asyncio
import getpass
import os
from typing import List, Optional

from canine_sdk.chain import ChainClient
from canine_sdk.client import CanineClient
from canine_sdk.cli_rich import (
    console,
    create_progress,
    error,
    info,
    log,
    print_panel,
    print_table,
    success,
    warning,
)
from canine_sdk.config import (
    get_all_config,
    get_config_value,
    load_config,
    reset_config,
    set_config_value,
    set_mnemonic,
)
from canine_sdk.handlers import FileDownloadHandler
from canine_sdk.models import DownloadDetails, DownloadProgress
from canine_sdk.provider_client import AsyncProviderClient
from canine_sdk.providers import ProviderRegistry
from canine_sdk.utils import format_size, total_size


#
# Provider Handlers
#


async def handle_providers(
    rest_url: str, versions: Optional[List[str]] = None, chain_id: Optional[str] = None
) -> int:
    """Handle the providers command"""
    chain = ChainClient(rest_url)
    provider_client = AsyncProviderClient(
        probe_timeout=float(get_config_value("providers", "probe_timeout", 1.5))
    )
    try:
        registry = ProviderRegistry(
            chain,
            provider_client,
            chain_id=chain_id,
            max_providers=int(get_config_value("providers", "max_providers", 1000)),
        )
        with console.status("[cyan]Discovering providers...[/cyan]"):
            checks = await registry.check_providers(versions or None)
            if chain_id and not versions:
                checks.verified = await registry.list_verified(chain_id)

        print_table(
            "Verified providers",
            [{"IP": p.ip, "Address": p.address} for p in checks.verified],
            ["IP", "Address"],
        )
        log(
            f"Raw: [bold]{len(checks.raw)}[/bold]  "
            f"Filtered: [bold]{len(checks.filtered)}[/bold]  "
            f"Verified: [bold]{len(checks.verified)}[/bold]"
        )
        return 0
    finally:
        await chain.close()
        await provider_client.close()


#
# File Handlers
#


async def handle_ls(client: CanineClient, path: str) -> int:
    """Handle the ls command"""
    folder = await client.download_folder(path.strip("/"))

    rows = [{"Name": f"{name}/", "Type": "folder", "Size": ""} for name in folder.child_dirs]
    for name, meta in folder.child_files.items():
        rows.append({"Name": name, "Type": meta.type or "file", "Size": format_size(meta.size)})

    if not rows:
        info(f"[bold]{folder.path}[/bold] is empty")
        return 0

    print_table(folder.path, rows, ["Name", "Type", "Size"])
    log(
        f"{len(folder.child_dirs)} folder(s), {len(folder.child_files)} file(s), "
        f"{format_size(total_size(folder.child_files))}"
    )
    return 0


async def handle_download(client: CanineClient, path: str, output_path: str) -> int:
    """Handle the download command"""
    details = DownloadDetails(raw_path=path.strip("/"), owner=client.wallet.address)
    progress = DownloadProgress()

    with create_progress() as bar:
        task_id = bar.add_task(f"Downloading {os.path.basename(path)}", total=100)
        download = asyncio.ensure_future(client.download_file(details, progress))
        while not download.done():
            bar.update(task_id, completed=progress.track)
            await asyncio.sleep(0.1)
        result = download.result()
        bar.update(task_id, completed=100)

    if not isinstance(result, FileDownloadHandler):
        error(f"{path} is a folder, use [bold]canine ls[/bold] instead")
        return 1

    with open(output_path, "wb") as f:
        f.write(result.data)
    success(f"Saved {format_size(len(result.data))} to [bold]{output_path}[/bold]")
    return 0


#
# Config Handlers
#


def handle_config_get(section: str, key: str) -> int:
    """Handle the config get command"""
    try:
        value = get_config_value(section, key)
        log(
            f"[bold cyan]{section}[/bold cyan].[bold green]{key}[/bold green] = [bold]{value}[/bold]"
        )
        return 0
    except Exception as e:
        error(f"Error getting configuration value: {e}")
        return 1


def handle_config_set(section: str, key: str, value: str) -> int:
    """Handle the config set command"""
    try:
        if value.lower() == "true":
            value = True
        elif value.lower() == "false":
            value = False
        elif value.isdigit():
            value = int(value)

        if section == "providers" and key == "version_filter" and isinstance(value, str):
            value = [v.strip() for v in value.split(",") if v.strip()]

        set_config_value(section, key, value)
        success(
            f"Set [bold cyan]{section}[/bold cyan].[bold green]{key}[/bold green] = [bold]{value}[/bold]"
        )
        return 0
    except Exception as e:
        error(f"Error setting configuration value: {e}")
        return 1


def handle_config_list() -> int:
    """Handle the config list command"""
    try:
        config = get_all_config()

        config_lines = ["Current configuration:"]
        for section, values in config.items():
            config_lines.append(f"\n[bold cyan]{section}[/bold cyan]")
            for key, value in values.items():
                if section == "wallet" and key == "mnemonic" and value:
                    value = "********"
                config_lines.append(
                    f"  [bold green]{key}[/bold green] = [bold]{value}[/bold]"
                )

        print_panel("\n".join(config_lines), title="Configuration")
        return 0
    except Exception as e:
        error(f"Error listing configuration: {e}")
        return 1


def handle_config_reset() -> int:
    """Handle the config reset command"""
    try:
        reset_config()
        success("Configuration reset to default values")
        return 0
    except Exception as e:
        error(f"Error resetting configuration: {e}")
        return 1


#
# Mnemonic Handlers
#


def handle_mnemonic_set(mnemonic: str, encode: bool = False) -> int:
    """Handle the mnemonic set command"""
    if not mnemonic or len(mnemonic.split()) not in [12, 24]:
        error("Mnemonic must be 12 or 24 words")
        return 1

    password = None
    if encode:
        log("\nYou've chosen to encrypt this mnemonic.", style="yellow")
        password = getpass.getpass("Enter a password for encryption: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            error("Passwords do not match")
            return 1

    if not set_mnemonic(mnemonic, encode=encode, password=password):
        error("Could not save the mnemonic")
        return 1

    address = load_config()["wallet"].get("address")
    success("Mnemonic saved" + (" (encrypted)" if encode else ""))
    if address:
        log(f"Account address: [bold]{address}[/bold]")
    else:
        warning("Could not derive an account address from this mnemonic")
    return 0


def handle_mnemonic_status() -> int:
    """Handle the mnemonic status command"""
    wallet = load_config()["wallet"]
    if not wallet.get("mnemonic"):
        info("No mnemonic configured")
        return 0

    state = "encrypted" if wallet.get("mnemonic_encoded") else "stored in plain text"
    log(f"Mnemonic is [bold]{state}[/bold]")
    if wallet.get("address"):
        log(f"Account address: [bold]{wallet['address']}[/bold]")
    return 0
