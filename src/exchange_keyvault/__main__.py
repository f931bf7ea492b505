"""exchange-keyvault -- command-line entry point.

Usage::

    python -m exchange_keyvault [--config PATH] add --label TEXT [--no-keys]
    python -m exchange_keyvault [--config PATH] check [--account-id ID]
    python -m exchange_keyvault [--config PATH] list

Startup sequence:
    1. Parse CLI arguments
    2. Load configuration from YAML (or defaults) and environment
    3. Configure logging
    4. Open the SQLite database and run migrations
    5. Detect secure storage once and build the key vault
    6. Run the requested command and print its outcome
    7. Close the database

API keys are only ever read from an interactive prompt, never from the
command line, and are only printed in masked form.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from pathlib import Path
from typing import Any

from exchange_keyvault.config import Settings, load_settings
from exchange_keyvault.errors import ValidationError

logger = logging.getLogger("exchange_keyvault")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2


# ---------------------------------------------------------------------------
# Integration seams -- thin wrappers around real subsystem constructors.
# These are module-level names so tests can patch them individually.
# ---------------------------------------------------------------------------


def load_config(config_path: str | None) -> Settings:
    """Load settings from a YAML file or return defaults."""
    path = Path(config_path) if config_path else None
    return load_settings(config_path=path)


async def open_db(db_path: Path) -> Any:
    """Open the SQLite database."""
    import aiosqlite

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return await aiosqlite.connect(str(db_path))


async def run_migrations(db: Any) -> None:
    """Apply pending database migrations."""
    from exchange_keyvault.db.migrations import apply_migrations

    await apply_migrations(db)


def create_vault(settings: Settings) -> Any:
    """Build the process-wide key vault for this platform."""
    from exchange_keyvault.vault.factory import build_vault

    return build_vault(settings)


def create_service(db: Any, vault: Any) -> Any:
    """Create the account service over the metadata store and vault."""
    from exchange_keyvault.service import AccountService
    from exchange_keyvault.store.metadata import MetadataStore

    return AccountService(MetadataStore(db), vault)


def prompt_secret(prompt: str) -> str:
    """Read a secret without echo. Empty input means no key."""
    return getpass.getpass(prompt).strip()


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Parameters
    ----------
    argv:
        Argument list.  Defaults to ``sys.argv[1:]`` when ``None``.
    """
    parser = argparse.ArgumentParser(
        prog="exchange_keyvault",
        description="Exchange account records with secure API key storage",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Register a new exchange account")
    add.add_argument("--label", required=True, help="Display name for the account")
    add.add_argument(
        "--no-keys",
        action="store_true",
        default=False,
        help="Do not prompt for API keys",
    )

    check = commands.add_parser("check", help="Show the stored keys of an account, masked")
    check.add_argument(
        "--account-id",
        default=None,
        help="Account to check (default: the most recently added one)",
    )

    commands.add_parser("list", help="List registered accounts")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_add(service: Any, args: argparse.Namespace) -> int:
    access_key = secret_key = ""
    if not args.no_keys:
        access_key = prompt_secret("Access key (leave empty to skip): ")
        if access_key:
            secret_key = prompt_secret("Secret key: ")

    result = await service.add(args.label, access_key, secret_key)
    print(result.account_message)
    print(result.vault_message)
    return EXIT_OK if result.ok else EXIT_FAILED


async def _cmd_check(service: Any, args: argparse.Namespace) -> int:
    result = await service.check(args.account_id)
    print(result.message)
    return EXIT_OK if result.ok else EXIT_FAILED


async def _cmd_list(service: Any, args: argparse.Namespace) -> int:
    accounts = await service.list_accounts()
    for account in accounts:
        print(f"{account.id}  {account.label}  ({account.exchange})")
    return EXIT_OK


_COMMANDS = {
    "add": _cmd_add,
    "check": _cmd_check,
    "list": _cmd_list,
}


# ---------------------------------------------------------------------------
# Main run coroutine
# ---------------------------------------------------------------------------


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Wire the subsystems together, run one command and return its exit code."""
    db = await open_db(settings.app.db_path)
    try:
        await run_migrations(db)
        vault = create_vault(settings)
        service = create_service(db, vault)
        try:
            return await _COMMANDS[args.command](service, args)
        except ValidationError as exc:
            print(f"Invalid input: {exc}", file=sys.stderr)
            return EXIT_INVALID
    finally:
        await db.close()


# ---------------------------------------------------------------------------
# Script entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse CLI args and run the requested command."""
    args = parse_args(argv)
    settings = load_config(args.config)

    logging.basicConfig(
        level=settings.logging.level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        code = asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        code = EXIT_FAILED
    sys.exit(code)


if __name__ == "__main__":
    main()
