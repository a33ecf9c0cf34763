# -*- coding: utf-8 -*-
"""
CLI tool for the allergen record store.

Usage:
    python -m allergen_tracker.cli probe
    python -m allergen_tracker.cli list [--query TEXT]
    python -m allergen_tracker.cli show <record_id>
    python -m allergen_tracker.cli create --owner 0xabc --food eggs --symptoms hives
    python -m allergen_tracker.cli analyze <record_id> --owner 0xabc
    python -m allergen_tracker.cli reindex <record_id>
    python -m allergen_tracker.cli stats [--distinct]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import Settings, settings
from .records.aggregator import filter_records, summarize
from .records.errors import BackendUnavailable, RecordStoreError
from .records.models import Record
from .records.operations import describe_failure
from .records.services import RecordServices, build_services
from .session import Principal


def _services_for(args: argparse.Namespace) -> RecordServices:
    cfg = Settings()
    if args.backend:
        cfg.backend = args.backend
    if args.kv_path:
        cfg.kv_path = Path(args.kv_path).expanduser()
    if args.ledger_url:
        cfg.ledger_url = args.ledger_url
    if getattr(args, "delay", None) is not None:
        cfg.analysis_delay = args.delay
    return build_services(cfg)


def _print_record(record: Record) -> None:
    allergens = ", ".join(record.potential_allergens) or "-"
    print(f"{record.id}  {record.status.value:<8}  owner={record.owner}  t={record.timestamp}")
    print(f"    food:      {record.encrypted_food[:24]}...")
    print(f"    symptoms:  {record.encrypted_symptoms[:24]}...")
    print(f"    allergens: {allergens}")
    if record.meal_time:
        print(f"    meal time: {record.meal_time}")


async def cmd_probe(services: RecordServices, args: argparse.Namespace) -> int:
    """Check that the storage backend answers."""
    ok = await services.store.is_available()
    print("available" if ok else "unavailable")
    return 0 if ok else 2


async def cmd_list(services: RecordServices, args: argparse.Namespace) -> int:
    """List records, newest first."""
    listing = await services.repository.list()
    records = filter_records(listing, args.query or "")
    if not records:
        print("No records found.")
    for record in records:
        _print_record(record)
    for warning in listing.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if listing.skipped:
        print(f"{len(listing.skipped)} record(s) skipped", file=sys.stderr)
    return 0


async def cmd_show(services: RecordServices, args: argparse.Namespace) -> int:
    """Print one record as JSON."""
    record = await services.repository.get(args.record_id)
    print(json.dumps(record.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 0


async def cmd_create(services: RecordServices, args: argparse.Namespace) -> int:
    """Submit a new pending record."""
    try:
        record = await services.lifecycle.submit(
            Principal(address=args.owner),
            food=args.food,
            symptoms=args.symptoms,
            meal_time=args.meal_time,
            sealed=args.sealed,
        )
    except RecordStoreError as exc:
        if isinstance(exc, BackendUnavailable):
            raise
        print(describe_failure("create", exc), file=sys.stderr)
        return 1
    print(record.id)
    return 0


async def cmd_analyze(services: RecordServices, args: argparse.Namespace) -> int:
    """Run analysis on a pending record and wait for the result."""
    try:
        record = await services.lifecycle.analyze(args.record_id, Principal(address=args.owner))
    except RecordStoreError as exc:
        if isinstance(exc, BackendUnavailable):
            raise
        print(describe_failure("analyze", exc), file=sys.stderr)
        return 1
    _print_record(record)
    return 0


async def cmd_reindex(services: RecordServices, args: argparse.Namespace) -> int:
    """Re-add an orphaned record to the index."""
    added = await services.repository.reappend(args.record_id)
    print("re-indexed" if added else "already indexed")
    return 0


async def cmd_stats(services: RecordServices, args: argparse.Namespace) -> int:
    """Show status counts and allergen frequency."""
    listing = await services.repository.list()
    summary = summarize(listing, distinct=args.distinct)
    print(f"Total:    {summary.total}")
    print(f"Pending:  {summary.counts.pending}")
    print(f"Analyzed: {summary.counts.analyzed}")
    print(f"Flagged:  {summary.counts.flagged}")
    if not summary.allergen_frequency:
        print("No allergen data yet")
    for name, count in summary.allergen_frequency.items():
        share = summary.allergen_share.get(name, 0.0)
        print(f"  {name:<16} {count:>4}  ({share:.0%})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Allergen record store CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--backend", choices=["memory", "sqlite", "http"], help="Storage backend")
    parser.add_argument("--kv-path", help="SQLite ledger file (default: data/ledger.db)")
    parser.add_argument("--ledger-url", help="HTTP ledger gateway base URL")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("probe", help="Check backend availability")

    list_parser = subparsers.add_parser("list", help="List records")
    list_parser.add_argument("--query", help="Filter by id, owner, status or allergen")

    show_parser = subparsers.add_parser("show", help="Show one record")
    show_parser.add_argument("record_id")

    create_parser = subparsers.add_parser("create", help="Create a record")
    create_parser.add_argument("--owner", required=True, help="Owner address")
    create_parser.add_argument("--food", required=True)
    create_parser.add_argument("--symptoms", required=True)
    create_parser.add_argument("--meal-time", help="Free-form meal time hint")
    create_parser.add_argument(
        "--sealed",
        action="store_true",
        help="Food/symptoms are already sealed; store them as given",
    )

    analyze_parser = subparsers.add_parser("analyze", help="Analyze a pending record")
    analyze_parser.add_argument("record_id")
    analyze_parser.add_argument("--owner", required=True, help="Signing address")
    analyze_parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Simulated analysis delay in seconds (default: ALLERGEN_ANALYSIS_DELAY)",
    )

    reindex_parser = subparsers.add_parser("reindex", help="Re-add an orphaned record to the index")
    reindex_parser.add_argument("record_id")

    stats_parser = subparsers.add_parser("stats", help="Show statistics")
    stats_parser.add_argument(
        "--distinct",
        action="store_true",
        help="Count each allergen once per record",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    commands = {
        "probe": cmd_probe,
        "list": cmd_list,
        "show": cmd_show,
        "create": cmd_create,
        "analyze": cmd_analyze,
        "reindex": cmd_reindex,
        "stats": cmd_stats,
    }

    try:
        services = _services_for(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(commands[args.command](services, args))
    except BackendUnavailable as exc:
        print(f"Error: backend unavailable ({exc})", file=sys.stderr)
        return 2
    except RecordStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
