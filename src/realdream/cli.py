from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .catalog import load_catalog
from .config import load_seed_config
from .entitlements import EntitlementStore, OperationResult, StorageFailed, open_store
from .errors import RealDreamError
from .logging_config import configure_logging
from .paths import resolve_data_dir
from .persistence import FileStorage

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="realdream",
        description="Real Dream - inspect and change theme entitlements and coins",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding persisted values (default: platform user data dir).",
    )
    parser.add_argument("--seed-config", type=Path, default=None, help="YAML file overriding seed values.")
    parser.add_argument("--catalog", type=Path, default=None, help="YAML theme catalog to use.")
    parser.add_argument("--dark", action="store_true", help="Seed the active theme for a dark device scheme.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v, -vv)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="Print the current entitlement snapshot as JSON.")
    sub.add_parser("catalog", help="List themes with price and ownership.")
    p = sub.add_parser("select", help="Make an owned theme active.")
    p.add_argument("item_id")
    p = sub.add_parser("buy", help="Unlock a premium theme with coins.")
    p.add_argument("item_id")
    p = sub.add_parser("adjust", help="Add (or with a negative value, deduct) coins.")
    p.add_argument("delta", type=int)
    p = sub.add_parser("set-balance", help="Overwrite the coin balance.")
    p.add_argument("value", type=int)
    return parser.parse_args(argv)


def _print_catalog(store: EntitlementStore) -> None:
    state = store.snapshot()
    for item in store.catalog:
        if item.id == state.active_item_id:
            status = "active"
        elif state.owns(item.id):
            status = "owned"
        else:
            status = f"{item.price} coins"
        print(f"{item.id:<12} {item.name:<12} {item.tier.value:<8} {status}")


def _finish(result: OperationResult) -> int:
    if not result.ok:
        print(f"rejected ({result.reason.value}): {result.message}", file=sys.stderr)
        return EXIT_REJECTED
    print(json.dumps(result.snapshot.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(verbosity=args.verbose)

    try:
        catalog = load_catalog(args.catalog)
        seed = load_seed_config(args.seed_config)
        storage = FileStorage(resolve_data_dir(args.data_dir))
        store = open_store(storage, catalog=catalog, seed=seed, prefers_dark=args.dark)
    except (RealDreamError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    write_failures = []

    def on_storage_failed(event: StorageFailed) -> None:
        if event.operation == "write":
            write_failures.append(event)

    store.events.subscribe(StorageFailed, on_storage_failed)

    with store:
        if args.command == "show":
            print(json.dumps(store.snapshot().to_dict(), indent=2))
            code = EXIT_OK
        elif args.command == "catalog":
            _print_catalog(store)
            code = EXIT_OK
        elif args.command == "select":
            code = _finish(store.select_item(args.item_id))
        elif args.command == "buy":
            code = _finish(store.purchase_item(args.item_id))
        elif args.command == "adjust":
            code = _finish(store.adjust_balance(args.delta))
        else:
            code = _finish(store.set_balance(args.value))

    for failure in write_failures:
        print(f"warning: {failure.key} was not saved: {failure.error}", file=sys.stderr)
    return code
