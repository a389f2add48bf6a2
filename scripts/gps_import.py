#!/usr/bin/env python3
"""Operator tool for GPS mileage imports.

Usage
-----
Set environment variables and run::

    export FLEET_BASE_URL="https://project.example.co"
    export FLEET_API_KEY="..."
    python scripts/gps_import.py preview march.csv --month 2024-03

Commands::

    preview FILE         Parse and match a GPS export without writing anything
    commit FILE          Preview, confirm, then commit the entries
    vehicle ID FILE      Record one vehicle's kilometers for a month
    delete               Delete uploads (--id ... or --all) and reverse odometers
    report               Print the filtered upload history
    backup               Write a JSON backup of vehicles and GPS uploads
    restore FILE         Restore a JSON backup
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetgps import FleetClient, FleetConfig, FleetError, PreviewSession  # noqa: E402
from fleetgps.models import DeletionScope, GpsReport, format_km  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _confirm(prompt: str, *, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in {"y", "yes"}


def _print_preview(session: PreviewSession) -> None:
    print(f"File     : {session.file_name}")
    print(f"Period   : {session.upload_period:%B %Y}")
    if session.manual_entry_required:
        print("Excel file: kilometers must be entered manually (use the 'vehicle' command with --km).")
        return
    for index, entry in enumerate(session.entries):
        match = entry.matched_vehicle.label if entry.matched_vehicle is not None else "(unmatched)"
        flags = []
        if entry.corrected:
            flags.append(f"corrected from {entry.raw_value!r}")
        if not entry.has_data:
            flags.append("no data")
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        print(f"  {index:>3}  {entry.vehicle_name:<30} {format_km(entry.kilometers):>12} km  -> {match}{suffix}")
    for warning in session.warnings:
        print(f"  ! row {warning.row_number}: {warning.vehicle_name or '?'}: {warning.issue} ({warning.raw_value!r})")
    print(
        f"Total    : {format_km(session.total_km)} km, "
        f"{session.matched_count} matched, {session.unmatched_count} unmatched"
    )


def _print_report(report: GpsReport) -> None:
    for record in report.records:
        name = record.gps_vehicle_name or "-"
        status = "" if record.is_matched else "  (unmatched)"
        print(f"  {record.upload_period:%Y-%m}  {name:<30} {format_km(record.kilometers):>12} km  {record.id}{status}")
    print(
        f"{len(report.records)} uploads, {format_km(report.total_km)} km "
        f"({report.matched_count} matched, {report.unmatched_count} unmatched)"
    )


def _apply_reassignments(session: PreviewSession, pairs: list[str]) -> None:
    """Apply ``INDEX=VEHICLE_ID`` (or ``INDEX=none``) overrides."""
    by_id = {vehicle.id: vehicle for vehicle in session.vehicles}
    for pair in pairs:
        index_text, _, vehicle_id = pair.partition("=")
        vehicle = None if vehicle_id.lower() == "none" else by_id.get(vehicle_id)
        if vehicle is None and vehicle_id.lower() != "none":
            raise SystemExit(f"Unknown vehicle id {vehicle_id!r}")
        session.reassign(int(index_text), vehicle)


# ── commands ─────────────────────────────────────────────────


async def _scan(client: FleetClient, args: argparse.Namespace) -> PreviewSession:
    path = Path(args.file)
    return await client.scan_file(path.read_bytes(), file_name=path.name, selected_month=args.month)


async def cmd_preview(client: FleetClient, args: argparse.Namespace) -> int:
    session = await _scan(client, args)
    _print_preview(session)
    session.cancel()
    return 0


async def cmd_commit(client: FleetClient, args: argparse.Namespace) -> int:
    session = await _scan(client, args)
    _apply_reassignments(session, args.assign or [])
    _print_preview(session)
    if not _confirm("Commit these entries?", assume_yes=args.yes):
        session.cancel()
        print("Cancelled; nothing was written.")
        return 1
    result = await client.commit_preview(session)
    print(result.summary())
    return 0


async def cmd_vehicle(client: FleetClient, args: argparse.Namespace) -> int:
    path = Path(args.file)
    result = await client.upload_vehicle_kilometers(
        args.vehicle_id,
        file_name=path.name,
        data=path.read_bytes(),
        upload_period=args.month,
        kilometers=args.km,
        notes=args.notes,
    )
    print(result.summary())
    return 0


async def cmd_delete(client: FleetClient, args: argparse.Namespace) -> int:
    if args.all:
        plan = await client.plan_deletion(DeletionScope.ALL, vehicle_id=args.vehicle)
    elif len(args.id) == 1:
        plan = await client.plan_deletion(DeletionScope.SINGLE, record_ids=args.id)
    elif args.id:
        plan = await client.plan_deletion(DeletionScope.SELECTED, record_ids=args.id)
    else:
        print("Nothing to delete: pass --id or --all", file=sys.stderr)
        return 2
    if not plan.records:
        print("No GPS entries to delete.")
        return 0
    if not _confirm(plan.message, assume_yes=args.yes):
        print("Cancelled; nothing was deleted.")
        return 1
    deleted = await client.execute_deletion(plan.confirm())
    print(f"Deleted {len(deleted)} GPS entries.")
    return 0


async def cmd_report(client: FleetClient, args: argparse.Namespace) -> int:
    report = await client.report(
        vehicle_filter=args.vehicle,
        period_from=args.period_from,
        period_to=args.period_to,
        sort_by=args.sort,
    )
    if args.json_mode:
        print(report.model_dump_json(indent=2))
    else:
        _print_report(report)
    return 0


async def cmd_backup(client: FleetClient, args: argparse.Namespace) -> int:
    document = await client.export_backup()
    payload = document.to_json()
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Backup written to {args.output}", file=sys.stderr)
    else:
        print(payload)
    return 0


async def cmd_restore(client: FleetClient, args: argparse.Namespace) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    prompt = "This replaces all GPS uploads and overwrites vehicles with the backup contents. Continue?"
    if not _confirm(prompt, assume_yes=args.yes):
        print("Cancelled; nothing was restored.")
        return 1
    restored = await client.restore_backup(text)
    print(json.dumps(restored))
    return 0


_COMMANDS: dict[str, Any] = {
    "preview": cmd_preview,
    "commit": cmd_commit,
    "vehicle": cmd_vehicle,
    "delete": cmd_delete,
    "report": cmd_report,
    "backup": cmd_backup,
    "restore": cmd_restore,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import, reconcile and report GPS mileage.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Parse and match a file without writing")
    preview.add_argument("file")
    preview.add_argument("--month", help="Upload month YYYY-MM when the file has no From: line")

    commit = sub.add_parser("commit", help="Preview, confirm and commit a file")
    commit.add_argument("file")
    commit.add_argument("--month", help="Upload month YYYY-MM when the file has no From: line")
    commit.add_argument(
        "--assign",
        action="append",
        metavar="INDEX=VEHICLE_ID",
        help="Override the match of preview entry INDEX (VEHICLE_ID 'none' unmatches it)",
    )
    commit.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    vehicle = sub.add_parser("vehicle", help="Record one vehicle's kilometers")
    vehicle.add_argument("vehicle_id")
    vehicle.add_argument("file")
    vehicle.add_argument("--month", required=True, help="Upload month YYYY-MM")
    vehicle.add_argument("--km", type=float, help="Kilometers (required for Excel files)")
    vehicle.add_argument("--notes")

    delete = sub.add_parser("delete", help="Delete uploads and reverse odometers")
    delete.add_argument("--id", action="append", default=[], help="Upload id (repeatable)")
    delete.add_argument("--all", action="store_true", help="Delete every upload")
    delete.add_argument("--vehicle", help="With --all: only this vehicle's uploads")
    delete.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    report = sub.add_parser("report", help="Print the upload history")
    report.add_argument("--vehicle", default="all", help="'all', 'unmatched' or a vehicle id")
    report.add_argument("--from", dest="period_from", help="First month YYYY-MM")
    report.add_argument("--to", dest="period_to", help="Last month YYYY-MM (inclusive)")
    report.add_argument("--sort", choices=["date", "vehicle", "km"], default="date")
    report.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")

    backup = sub.add_parser("backup", help="Write a JSON backup")
    backup.add_argument("--output", "-o", help="Write to FILE instead of stdout")

    restore = sub.add_parser("restore", help="Restore a JSON backup")
    restore.add_argument("file")
    restore.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    return parser


async def main() -> int:
    args = _build_parser().parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {"api_trace_enabled": True} if args.verbose else {}
    try:
        config = FleetConfig.from_env(**overrides)
        async with FleetClient(config) as client:
            return await _COMMANDS[args.command](client, args)
    except FleetError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
