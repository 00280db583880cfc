"""Attendance CLI — inspect contract metadata and exercise the contract layer.

Usage:
    attendance metadata [path]        Dump ink! contract metadata
    attendance smoke                  Create an event, mint an NFT, list both
    attendance events                 List events
    attendance nfts                   List attendance NFTs
    attendance config                 Show current configuration
    attendance --version              Print version

Examples:
    attendance metadata ../contracts/target/ink/attendance_nft.json --json
    ATTENDANCE_CONTRACT_ADDRESS=5Grw... attendance smoke
    attendance --no-banner events --json
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from typing import Any

from attendance.chain.client import BlockchainClient
from attendance.chain.ledger import SimulatedLedger
from attendance.chain.metadata import ContractMetadata, load_contract_metadata
from attendance.core.config import Settings, get_settings
from attendance.core.errors import ContractError
from attendance.core.logging import setup_logging
from attendance.core.types import PLACEHOLDER_ORGANIZER

VERSION = "0.1.0"


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


def _ok(text: str) -> None:
    print(f"  {_c('✓', _GREEN)} {text}")


def _fail(text: str) -> None:
    print(f"  {_c('✗', _RED)} {text}")


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = f"""
{_BOLD}{_CYAN}  attendance{_RESET}
  {_DIM}Attendance NFT contract layer — v{VERSION}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="attendance",
        description="Attendance NFT backend — contract metadata and ledger tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")

    sub = parser.add_subparsers(dest="command")

    # ── metadata ─────────────────────────────────────────────────────────────
    meta_p = sub.add_parser("metadata", help="Dump ink! contract metadata")
    meta_p.add_argument(
        "path",
        nargs="?",
        help="Metadata JSON file (default: ATTENDANCE_CONTRACT_METADATA_FILE)",
    )
    meta_p.add_argument("--json", action="store_true", help="Print the parsed metadata as JSON")

    # ── smoke ────────────────────────────────────────────────────────────────
    smoke_p = sub.add_parser("smoke", help="Create an event, mint an NFT, and list both")
    smoke_p.add_argument("--name", default="CLI Smoke Test", help="Event name")
    smoke_p.add_argument("--date", default=time.strftime("%Y-%m-%d"), help="Event date")
    smoke_p.add_argument("--location", default="Online", help="Event location")
    smoke_p.add_argument("--recipient", default=PLACEHOLDER_ORGANIZER, help="NFT recipient address")

    # ── events / nfts ────────────────────────────────────────────────────────
    events_p = sub.add_parser("events", help="List events")
    events_p.add_argument("--json", action="store_true", help="Print as JSON")
    nfts_p = sub.add_parser("nfts", help="List attendance NFTs")
    nfts_p.add_argument("--json", action="store_true", help="Print as JSON")

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Metadata command ─────────────────────────────────────────────────────────


def _print_metadata(metadata: ContractMetadata) -> None:
    info = metadata.contract
    print(f"\n{_BOLD}Contract:{_RESET} {info.name or '(unnamed)'} {_DIM}v{info.version or '?'}{_RESET}")
    if info.authors:
        print(f"  Authors: {', '.join(info.authors)}")
    if info.description:
        print(f"  {_DIM}{info.description}{_RESET}")
    if metadata.source.language:
        print(f"  Source: {metadata.source.language}, {metadata.source.compiler}")

    print(f"\n{_BOLD}Constructors{_RESET} ({len(metadata.spec.constructors)})")
    for ctor in metadata.spec.constructors:
        args = ", ".join(f"{a.label}: {a.type.display}" for a in ctor.args)
        print(f"  {_c(ctor.label, _CYAN)}({args})  {_DIM}{ctor.selector}{_RESET}")

    print(f"\n{_BOLD}Messages{_RESET} ({len(metadata.spec.messages)})")
    for msg in metadata.spec.messages:
        args = ", ".join(f"{a.label}: {a.type.display}" for a in msg.args)
        ret = f" -> {msg.return_type.display}" if msg.return_type and msg.return_type.display else ""
        tag = _c("mut", _YELLOW) if msg.mutates else _c("ro ", _GREEN)
        print(f"  {tag} {_c(msg.label, _CYAN)}({args}){ret}  {_DIM}{msg.selector}{_RESET}")

    print(f"\n{_BOLD}Events{_RESET} ({len(metadata.spec.events)})")
    for event in metadata.spec.events:
        args = ", ".join(
            f"{a.label}: {a.type.display}{' (indexed)' if a.indexed else ''}" for a in event.args
        )
        print(f"  {_c(event.label, _CYAN)}({args})")
    print()


def _run_metadata(args: argparse.Namespace, settings: Settings) -> int:
    path = args.path or settings.contract_metadata_file
    try:
        metadata = load_contract_metadata(path)
    except ContractError as exc:
        print(_c(f"Error: {exc.message}", _RED), file=sys.stderr)
        return 1

    if args.json:
        print(metadata.model_dump_json(indent=2))
    else:
        _print_metadata(metadata)
    return 0


# ── Smoke command ────────────────────────────────────────────────────────────


def _run_smoke(args: argparse.Namespace, settings: Settings) -> int:
    """Run the create → read → mint → list sequence against the configured backend."""
    client = BlockchainClient.connect(settings, ledger=SimulatedLedger())
    failures = 0
    try:
        backend = "simulated ledger" if client.use_simulation else "contract"
        if not args.quiet:
            print(f"\n  Chain: {_c(client.chain_name, _CYAN)}  |  Backend: {_c(backend, _CYAN)}\n")

        event_id = client.create_event(args.name, args.date, args.location)
        _ok(f"create_event → id {event_id}")

        event = client.get_event(event_id)
        if event is None:
            _fail(f"get_event({event_id}) returned nothing")
            failures += 1
        elif (event.name, event.date, event.location) != (args.name, args.date, args.location):
            _fail(f"get_event({event_id}) returned a different event: {event.name!r}")
            failures += 1
        else:
            _ok(f"get_event({event_id}) → {event.name}, {event.date}, {event.location}")

        metadata = {
            "name": f"Attendance: {args.name}",
            "description": f"Proof of attendance for {args.name}",
            "event_date": args.date,
            "location": args.location,
        }
        if client.mint_nft(event_id, args.recipient, metadata):
            _ok(f"mint_nft({event_id}) → minted to {args.recipient}")
        else:
            _fail(f"mint_nft({event_id}) was rejected")
            failures += 1

        _ok(f"list_events → {len(client.list_events())} event(s)")
        _ok(f"list_nfts → {len(client.list_nfts())} NFT(s)")
    except ContractError as exc:
        _fail(f"{exc.code.value}: {exc.message}")
        failures += 1
    finally:
        client.close()

    if failures:
        print(_c(f"\n  Smoke test failed ({failures} check(s))", _RED))
        return 1
    if not args.quiet:
        print(_c("\n  Smoke test passed", _GREEN))
    return 0


# ── List commands ────────────────────────────────────────────────────────────


def _print_records(records: list[Any], as_json: bool, header: str) -> None:
    if as_json:
        print(json.dumps([r.model_dump() for r in records], indent=2))
        return
    print(f"\n{_BOLD}{header}{_RESET} ({len(records)})")
    for record in records:
        print(f"  {_DIM}{record.id:>4}.{_RESET} {record.model_dump_json()}")
    print()


def _run_list(args: argparse.Namespace, settings: Settings) -> int:
    client = BlockchainClient.connect(settings, ledger=SimulatedLedger())
    try:
        if args.command == "events":
            _print_records(client.list_events(), args.json, "Events")
        else:
            _print_records(client.list_nfts(), args.json, "NFTs")
    except ContractError as exc:
        print(_c(f"Error: {exc.message}", _RED), file=sys.stderr)
        return 1
    finally:
        client.close()
    return 0


# ── Config command ───────────────────────────────────────────────────────────


def _run_config(settings: Settings) -> int:
    """Print current settings (redacted)."""
    print(f"\n{_BOLD}Attendance Configuration{_RESET}\n")
    for field_name in sorted(type(settings).model_fields.keys()):
        val = getattr(settings, field_name, "")
        # Redact secrets
        if any(kw in field_name for kw in ("seed", "secret", "key", "token")):
            val = "****" if val else "(not set)"
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return 0


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"attendance {VERSION}")
        return 0

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return 0

    settings = get_settings()
    setup_logging(settings.app_env, "WARNING" if args.quiet else settings.log_level)

    if args.command == "config":
        return _run_config(settings)

    if args.command == "metadata":
        return _run_metadata(args, settings)

    if args.command == "smoke":
        return _run_smoke(args, settings)

    if args.command in ("events", "nfts"):
        return _run_list(args, settings)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
