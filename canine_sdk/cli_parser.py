"""
Command Line Interface argument parser for Canine SDK.

This module defines the commands of the canine CLI and their arguments.
"""

import argparse

from canine_sdk.config import get_config_value


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="canine",
        description="Canine SDK Command Line Interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  # List providers that report a 1.x version on jackal-1
  canine providers --version 1.0 --chain-id jackal-1

  # List the contents of a folder
  canine ls s/Home

  # Download a file
  canine download s/Home/notes.txt notes.txt

  # Store the wallet mnemonic, encrypted with a password
  canine mnemonic set "word1 word2 ..." --encode

  # Point the SDK at another chain endpoint
  canine config set chain rest_url https://api.testnet.jackalprotocol.com
""",
    )

    parser.add_argument(
        "--rest-url",
        default=get_config_value("chain", "rest_url"),
        help="Chain REST endpoint (default: from config)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=get_config_value("cli", "verbose", False),
        help="Enable verbose debug output",
    )
    parser.add_argument(
        "--password",
        help="Password to decrypt the mnemonic if needed (will prompt if required and not provided)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    add_provider_commands(subparsers)
    add_file_commands(subparsers)
    add_config_commands(subparsers)
    add_mnemonic_commands(subparsers)

    return parser


def add_provider_commands(subparsers):
    providers_parser = subparsers.add_parser(
        "providers", help="Show storage providers at each discovery stage"
    )
    providers_parser.add_argument(
        "--version",
        action="append",
        dest="versions",
        help="Accepted provider version, matched on major.minor (repeatable)",
    )
    providers_parser.add_argument(
        "--chain-id",
        help="Chain id providers must report",
    )


def add_file_commands(subparsers):
    """Add file commands to the parser."""
    ls_parser = subparsers.add_parser("ls", help="List the contents of a folder")
    ls_parser.add_argument("path", help="Folder path, e.g. s/Home")

    download_parser = subparsers.add_parser("download", help="Download a file")
    download_parser.add_argument("path", help="File path, e.g. s/Home/notes.txt")
    download_parser.add_argument("output_path", help="Where to write the file")


def add_config_commands(subparsers):
    """Add configuration commands to the parser."""
    config_parser = subparsers.add_parser(
        "config", help="Manage Canine SDK configuration"
    )
    config_subparsers = config_parser.add_subparsers(
        dest="config_action", help="Configuration action"
    )

    get_parser = config_subparsers.add_parser("get", help="Get a configuration value")
    get_parser.add_argument(
        "section", help="Configuration section (chain, providers, upload, wallet, cli)"
    )
    get_parser.add_argument("key", help="Configuration key")

    set_parser = config_subparsers.add_parser("set", help="Set a configuration value")
    set_parser.add_argument(
        "section", help="Configuration section (chain, providers, upload, wallet, cli)"
    )
    set_parser.add_argument("key", help="Configuration key")
    set_parser.add_argument("value", help="Configuration value")

    config_subparsers.add_parser("list", help="List all configuration values")
    config_subparsers.add_parser("reset", help="Reset configuration to default values")


def add_mnemonic_commands(subparsers):
    mnemonic_parser = subparsers.add_parser("mnemonic", help="Manage the wallet mnemonic")
    mnemonic_subparsers = mnemonic_parser.add_subparsers(
        dest="mnemonic_action", help="Mnemonic action"
    )

    set_parser = mnemonic_subparsers.add_parser("set", help="Set the wallet mnemonic")
    set_parser.add_argument("mnemonic", help="Mnemonic phrase (12 or 24 words)")
    set_parser.add_argument(
        "--encode",
        action="store_true",
        help="Encrypt the mnemonic with a password",
    )

    mnemonic_subparsers.add_parser(
        "status", help="Check the status of the configured mnemonic"
    )


def get_subparser(command: str) -> argparse.ArgumentParser:
    """Get a subparser for a specific command.

    Args:
        command: The command name to get the subparser for

    Returns:
        The subparser for the specified command
    """
    parser = create_parser()
    return parser._subparsers._group_actions[0].choices[command]


def parse_arguments(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = create_parser()
    return parser.parse_args(argv)
