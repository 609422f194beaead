"""
Vaultkeeper CLI — batch operations against a running vault backend.

Usage:
    vaultkeeper status                                  # Backend URL, vault presence
    vaultkeeper import data.txt --profile p.yaml        # Preview an import
    vaultkeeper import data.txt --profile p.yaml --commit
    vaultkeeper bulk request.yaml [--commit]            # Templated account creation
    vaultkeeper search "gmial" --services --type email  # Fuzzy search
    vaultkeeper version                                 # Show version

The master password is read from VAULTKEEPER_PASSWORD, or prompted for.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from vaultkeeper.catalog.search import SortKey, SortOrder, search_accounts, search_services
from vaultkeeper.catalog.store import AppStatus, CatalogStore
from vaultkeeper.config import get_config
from vaultkeeper.errors import ValidationError, VaultkeeperError
from vaultkeeper.gateway.base import BackendGateway
from vaultkeeper.gateway.http import HttpGateway

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vaultkeeper",
        description="Vaultkeeper — typed credential catalog: import, bulk creation and search.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--backend", type=str, help="Backend URL (default: from config)")

    subparsers = parser.add_subparsers(dest="command")

    # status
    subparsers.add_parser("status", help="Show backend and vault status")

    # import
    import_parser = subparsers.add_parser("import", help="Import services from delimited text")
    import_parser.add_argument("file", type=Path, help="Delimited text file")
    import_parser.add_argument("--profile", type=Path, required=True, help="Import profile (YAML)")
    import_parser.add_argument("--commit", action="store_true", help="Write accepted rows")

    # bulk
    bulk_parser = subparsers.add_parser("bulk", help="Create accounts from a template")
    bulk_parser.add_argument("request", type=Path, help="Bulk request (YAML)")
    bulk_parser.add_argument("--commit", action="store_true", help="Create the accounts")

    # search
    search_parser = subparsers.add_parser("search", help="Fuzzy search accounts or services")
    search_parser.add_argument("query", nargs="?", default="", help="Search text")
    search_parser.add_argument("--services", action="store_true", help="Search services")
    search_parser.add_argument("--tag", type=str, help="Only items carrying this tag")
    search_parser.add_argument("--type", dest="type_id", type=str, help="Service type id")
    search_parser.add_argument("--sort", choices=["asc", "desc"], help="Natural sort order")
    search_parser.add_argument(
        "--by-type", action="store_true", help="Sort services by type name instead of label"
    )

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from vaultkeeper import __version__

        print(f"vaultkeeper {__version__}")
        return 0

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handlers = {
        "status": _cmd_status,
        "import": _cmd_import,
        "bulk": _cmd_bulk,
        "search": _cmd_search,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return asyncio.run(handler(args))
    except VaultkeeperError as e:
        print(f"Error: {e}")
        return 1


# ─── Helpers ─────────────────────────────────────────────────────────────


def _make_gateway(args: argparse.Namespace) -> BackendGateway:
    return HttpGateway(args.backend)


def _password() -> str:
    return os.environ.get("VAULTKEEPER_PASSWORD") or getpass.getpass("Master password: ")


@asynccontextmanager
async def _unlocked_store(args: argparse.Namespace) -> AsyncIterator[CatalogStore]:
    """Unlock the backend vault for one command and lock it again afterwards."""
    gateway = _make_gateway(args)
    store = CatalogStore(gateway)
    try:
        await store.unlock(_password())
        yield store
    finally:
        try:
            if store.status == AppStatus.UNLOCKED:
                await store.lock()
        finally:
            await gateway.close()


# ─── Commands ────────────────────────────────────────────────────────────


async def _cmd_status(args: argparse.Namespace) -> int:
    from vaultkeeper import __version__

    gateway = _make_gateway(args)
    print(f"Vaultkeeper v{__version__}")
    print()
    print(f"  Backend:  {args.backend or get_config().backend.url}")
    try:
        store = CatalogStore(gateway)
        status = await store.check_initial_status()
    finally:
        await gateway.close()
    if store.error:
        print(f"            UNREACHABLE — {store.error}")
        return 1
    print(f"            Vault {'present (locked)' if status == 'locked' else 'not created'}")
    return 0


async def _cmd_import(args: argparse.Namespace) -> int:
    from vaultkeeper.importer.profiles import load_import_profile
    from vaultkeeper.importer.reconciler import ImportSession

    profile = load_import_profile(args.profile)
    try:
        text = args.file.read_text()
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}")
        return 1

    session = ImportSession()
    table = session.load(text, profile.separator)
    if not table.rows:
        print("Nothing to import.")
        return 0
    session.configure(profile.settings)

    async with _unlocked_store(args) as store:
        plan = session.preview(store.vault)  # type: ignore[arg-type]
        for skip in plan.skipped:
            detail = f" ({skip.detail})" if skip.detail else ""
            print(f"  row {skip.row_index + 1}: skipped, {skip.reason}{detail}")
        if not args.commit:
            print(f"Preview: {plan.accepted_count} to import, {plan.skipped_count} skipped")
            return 0
        outcome = await session.commit(store)

    print(f"Imported {outcome.accepted} service(s), skipped {outcome.skipped}")
    return 0


async def _cmd_bulk(args: argparse.Namespace) -> int:
    from vaultkeeper.bulk.generator import (
        expand_bulk_request,
        label_collisions,
        validate_bulk_request,
    )
    from vaultkeeper.importer.profiles import load_bulk_request

    request = load_bulk_request(args.request)
    validate_bulk_request(request)

    if not args.commit:
        plan = expand_bulk_request(request)
        label_collisions(plan)
        for account in plan.accounts:
            print(f"  {account.label}  ({len(account.linked_services)} linked)")
        print(f"Preview: {len(plan.accounts)} account(s), {len(plan.services)} service(s)")
        return 0

    async with _unlocked_store(args) as store:
        before = len(store.vault.accounts)  # type: ignore[union-attr]
        await store.bulk_create_accounts(request)
        after = len(store.vault.accounts)  # type: ignore[union-attr]

    print(f"Created {after - before} account(s)")
    return 0


async def _cmd_search(args: argparse.Namespace) -> int:
    sort = SortOrder(args.sort) if args.sort else SortOrder.NONE

    async with _unlocked_store(args) as store:
        vault = store.vault
    if vault is None:
        raise ValidationError("vault is not unlocked")

    if args.services:
        results = search_services(
            vault.services,
            args.query,
            type_id=args.type_id,
            tag=args.tag,
            sort=sort,
            sort_by=SortKey.TYPE if args.by_type else SortKey.NAME,
            service_types=vault.service_types,
        )
        names = {st.id: st.name for st in vault.service_types}
        for s in results:
            print(f"  {s.label}  [{names.get(s.service_type_id, '?')}]")
    else:
        accounts = search_accounts(vault.accounts, args.query, tag=args.tag, sort=sort)
        for a in accounts:
            print(f"  {a.label}  ({len(a.linked_services)} linked)")
        results = accounts

    print(f"{len(results)} result(s)")
    return 0
