"""
elmobd command line
===================

Usage:
    python -m elmobd info                     # adapter, protocol, ECUs, VIN
    python -m elmobd read RPM SPEED 0105      # one-shot PID read
    python -m elmobd monitor RPM SPEED        # continuous (Ctrl+C to stop)
    python -m elmobd codes --pending          # trouble codes per ECU
    python -m elmobd clear --yes              # clear codes + MIL
    python -m elmobd raw 010C0D               # raw adapter lines
    python -m elmobd devices                  # discoverable adapters

Connection type comes from --connection or OBD_CONNECTION_TYPE.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import ConnectionType
from .dtc import DTCStatus
from .elm.errors import OBDError
from .elm.protocol import OBDProtocol
from .obd2 import OBDService
from .pids.batch import PIDResults
from .pids.catalog import OBDCommand, get_commands
from .pids.units import Measurement, MeasurementSystem
from .rawlog import RawLogger

logger = logging.getLogger("elmobd")


def print_header(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def format_value(value) -> str:
    if isinstance(value, Measurement):
        return f"{value.value:.2f} {value.unit.value}".rstrip()
    return str(value)


def resolve_commands(names: List[str]) -> List[OBDCommand]:
    catalog = get_commands()
    out = []
    for name in names:
        cmd = catalog.get(name)
        if cmd is None:
            raise SystemExit(f"Unknown PID or command: {name}")
        out.append(cmd)
    return out


def print_results(results: PIDResults) -> None:
    for cmd, value in results.items():
        print(f"  {cmd.name:<28} {format_value(value)}")
    for cmd, err in results.errors.items():
        print(f"  {cmd.name:<28} -- {err.reason.value}")


# =============================================================================
# Command Handlers
# =============================================================================

async def run_info(service: OBDService, args) -> int:
    info = service.info
    print_header("VEHICLE CONNECTION")
    print(f"  Adapter:  {info.elm_version or 'unknown'}")
    print(f"  Protocol: {info.protocol_description}")
    print(f"  ECUs:     {', '.join(info.ecus) or '-'}")
    print(f"  VIN:      {info.vin or 'not reported'}")
    voltage = await service.get_adapter_voltage()
    if voltage is not None:
        print(f"  Battery:  {voltage:.1f} V")
    status = await service.get_status()
    print(f"  MIL:      {'ON' if status.mil else 'off'} ({status.dtc_count} stored)")
    if status.incomplete_monitors:
        print(f"  Not ready: {', '.join(status.incomplete_monitors)}")
    print(f"\n  Supported PIDs ({len(info.supported_pids)}):")
    for cmd in info.supported_pids:
        print(f"    {cmd.command}  {cmd.description}")
    return 0


async def run_read(service: OBDService, args) -> int:
    cmds = resolve_commands(args.pids) if args.pids else service.info.supported_pids
    print_header("LIVE SENSOR DATA")
    print_results(await service.request_pids(cmds))
    return 0


async def run_monitor(service: OBDService, args) -> int:
    await service.add_pid(*resolve_commands(args.pids or ["RPM", "SPEED", "COOLANT_TEMP"]))
    updates = service.start_continuous_updates(interval_s=args.interval)
    try:
        async for results in updates:
            print_header(f"update #{updates.iterations}")
            print_results(results)
            if args.count and updates.iterations >= args.count:
                break
    finally:
        await updates.aclose()
    return 0


async def run_codes(service: OBDService, args) -> int:
    status = DTCStatus.CONFIRMED
    if args.pending:
        status |= DTCStatus.PENDING
    if args.permanent:
        status |= DTCStatus.PERMANENT
    found = await service.scan_trouble_codes(status)
    print_header("DIAGNOSTIC TROUBLE CODES")
    if not any(found.values()):
        print("  No trouble codes stored")
        return 0
    for ecu, codes in found.items():
        print(f"\n  ECU {ecu}:")
        for code in codes:
            print(f"    {code.code}  ({code.status.name.lower()})")
    return 0


async def run_clear(service: OBDService, args) -> int:
    if not args.yes:
        print("Refusing to clear codes without --yes (this also resets readiness monitors).")
        return 2
    ecus = await service.clear_trouble_codes()
    print(f"  Codes cleared ({', '.join(ecus)})")
    return 0


async def run_raw(service: OBDService, args) -> int:
    for command in args.commands:
        print(f"> {command}")
        for line in await service.send_raw(command):
            print(f"  {line}")
    return 0


async def run_devices(service: OBDService, args) -> int:
    found = 0
    async for device in service.scan_devices():
        found += 1
        print(f"  {device}")
    if not found:
        print("  No adapters found")
    return 0


HANDLERS = {
    "info": run_info,
    "read": run_read,
    "monitor": run_monitor,
    "codes": run_codes,
    "clear": run_clear,
    "raw": run_raw,
    "devices": run_devices,
}

# these talk to the adapter only; no vehicle negotiation needed
ADAPTER_ONLY = {"raw", "devices"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="elmobd", description="ELM327 OBD-II client")
    parser.add_argument(
        "--connection",
        choices=[c.value for c in ConnectionType],
        default=None,
        help="Transport (default: OBD_CONNECTION_TYPE or bluetooth)",
    )
    parser.add_argument("--target", default=None, help="Port, host[:port] or BLE address")
    parser.add_argument(
        "--protocol",
        default=None,
        help="Preferred ATSP protocol id (1-9, A); legacy buses are only used when named here",
    )
    parser.add_argument("--imperial", action="store_true", help="Report imperial units")
    parser.add_argument("--timeout", type=float, default=None, help="Per-command timeout (s)")
    parser.add_argument("--raw-log", nargs="?", const="", default=None, help="Append adapter traffic to a file")
    parser.add_argument("-v", "--verbose", action="count", default=0)

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("info", help="Adapter, protocol, ECUs and VIN")

    p = sub.add_parser("read", help="Read PIDs once")
    p.add_argument("pids", nargs="*", help="Names (RPM) or commands (010C)")

    p = sub.add_parser("monitor", help="Poll PIDs until Ctrl+C")
    p.add_argument("pids", nargs="*")
    p.add_argument("--interval", type=float, default=None)
    p.add_argument("--count", type=int, default=0, help="Stop after N updates")

    p = sub.add_parser("codes", help="Read trouble codes")
    p.add_argument("--pending", action="store_true")
    p.add_argument("--permanent", action="store_true")

    p = sub.add_parser("clear", help="Clear trouble codes")
    p.add_argument("--yes", action="store_true")

    p = sub.add_parser("raw", help="Send raw commands")
    p.add_argument("commands", nargs="+")

    sub.add_parser("devices", help="List discoverable adapters")
    return parser


def _preferred_protocol(value: Optional[str]) -> Optional[OBDProtocol]:
    if not value:
        return None
    proto = OBDProtocol.from_elm_id(value)
    if proto is None:
        raise SystemExit(f"Unknown protocol id: {value}")
    return proto


async def run(args) -> int:
    # fail on typos before touching the adapter
    resolve_commands(getattr(args, "pids", None) or [])
    preferred = _preferred_protocol(args.protocol)

    raw_logger = None
    if args.raw_log is not None:
        raw_logger = RawLogger(args.raw_log or None)
        raw_logger.note(f"session start: {args.command}")

    service = OBDService(
        args.connection,
        raw_logger=raw_logger,
        system=MeasurementSystem.IMPERIAL if args.imperial else MeasurementSystem.METRIC,
        timeout=args.timeout,
    )
    handler = HANDLERS[args.command]
    try:
        if args.command == "devices":
            return await handler(service, args)
        if args.command in ADAPTER_ONLY:
            await service.elm.connect_to_adapter(args.target)
            await service.elm.adapter_initialization()
        else:
            await service.connect(preferred, target=args.target)
        return await handler(service, args)
    finally:
        await service.disconnect()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 130
    except OBDError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
