#!/usr/bin/env python3
"""
Command Line Interface tools for Canine SDK.

Read-only access to a Canine account: provider discovery, folder listings,
file downloads, and management of the local configuration.
"""

import asyncio
import logging
import sys

from dotenv import load_dotenv

from canine_sdk import cli_handlers
from canine_sdk.cli_parser import create_parser, get_subparser, parse_arguments
from canine_sdk.cli_rich import console, error
from canine_sdk.client import CanineClient
from canine_sdk.config import initialize_from_env

load_dotenv()
initialize_from_env()


async def _run_with_client(args, handler, *handler_args) -> int:
    client = await CanineClient.from_config(password=args.password, rest_url=args.rest_url)
    try:
        return await handler(client, *handler_args)
    finally:
        await client.close()


def main(argv=None):
    """Main CLI entry point for canine command."""
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        create_parser().print_help()
        return 1

    try:
        if args.command == "providers":
            return asyncio.run(
                cli_handlers.handle_providers(args.rest_url, args.versions, args.chain_id)
            )

        elif args.command == "ls":
            return asyncio.run(_run_with_client(args, cli_handlers.handle_ls, args.path))

        elif args.command == "download":
            return asyncio.run(
                _run_with_client(
                    args, cli_handlers.handle_download, args.path, args.output_path
                )
            )

        elif args.command == "config":
            if args.config_action == "get":
                return cli_handlers.handle_config_get(args.section, args.key)
            elif args.config_action == "set":
                return cli_handlers.handle_config_set(args.section, args.key, args.value)
            elif args.config_action == "list":
                return cli_handlers.handle_config_list()
            elif args.config_action == "reset":
                return cli_handlers.handle_config_reset()
            get_subparser("config").print_help()
            return 1

        elif args.command == "mnemonic":
            if args.mnemonic_action == "set":
                return cli_handlers.handle_mnemonic_set(args.mnemonic, encode=args.encode)
            elif args.mnemonic_action == "status":
                return cli_handlers.handle_mnemonic_status()
            get_subparser("mnemonic").print_help()
            return 1

        else:
            error(f"Unknown command: [bold]{args.command}[/bold]")
            return 1

    except KeyboardInterrupt:
        error("\nOperation cancelled by user")
        return 1
    except Exception as e:
        error(f"{str(e)}")
        if args.verbose:
            import traceback

            console.print("\n[bold red]Traceback:[/bold red]")
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
