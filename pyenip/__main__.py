"""
Command line interface, ``python -m pyenip --help`` for usage.
"""

import argparse
import json
import logging
import signal
import sys
import threading
from typing import Any, Dict, Optional

from . import __version__
from .cip import PathFormats, get_data_type
from .const import DEFAULT_DISCOVERY_TIMEOUT, DEFAULT_PORT, DEFAULT_PROBE_TIMEOUT, DEFAULT_TIMEOUT, DEFAULT_UDP_PORT
from .discovery import BROADCAST_ADDRESS, discover_plcs
from .driver import EthernetIPDriver
from .exceptions import DataError, PyenipError
from .logger import LOG_VERBOSE, configure_default_logger
from .probe import check_connections
from .simulator import PLCSimulator

_log = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _load_config(filename: Optional[str]) -> Dict[str, Any]:
    if not filename:
        return {}
    try:
        with open(filename, encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, ValueError) as err:
        raise PyenipError(f"Failed to load config {filename!r}: {err}") from err
    if not isinstance(config, dict):
        raise PyenipError(f"Config {filename!r} must contain a JSON object")
    return {key: config[key] for key in ("host", "port", "timeout") if key in config}


def _parse_scalar(text: str, data_type):
    if data_type is None:
        try:
            return json.loads(text)
        except ValueError:
            return text

    name = data_type.__name__
    if name in ("STRING", "SHORT_STRING"):
        return text
    if name in ("REAL", "LREAL"):
        return float(text)
    if name == "BOOL":
        if text.lower() in _TRUE:
            return True
        if text.lower() in _FALSE:
            return False
        raise DataError(f"Invalid BOOL value: {text!r}")
    return int(text, 0)


def parse_value(text: str, type_name: Optional[str] = None):
    """
    Converts a command line value, ``[..]`` is parsed as a JSON list.
    Without ``type_name`` the value is read as JSON, falling back to a string.
    """
    data_type = get_data_type(type_name) if type_name else None
    if text.startswith("["):
        try:
            items = json.loads(text)
        except ValueError as err:
            raise DataError(f"Invalid list value: {text!r}") from err
        if data_type is None:
            return items
        return [_parse_scalar(str(item), data_type) for item in items]
    try:
        return _parse_scalar(text, data_type)
    except ValueError as err:
        raise DataError(f"Invalid {type_name} value: {text!r}") from err


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_simulate(args, config):
    simulator = PLCSimulator(
        host=args.host,
        port=args.port,
        udp_port=args.udp_port,
        product_name=args.product_name,
    )
    simulator.on("tag_changed", lambda name, value, type_name: print(f"{name} = {value!r} ({type_name})"))
    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    with simulator:
        print(f"Simulating {args.product_name!r} on TCP {simulator.port}, UDP {simulator.udp_port}")
        print(f"Tags: {', '.join(simulator.list_tags())}")
        stop.wait()
    return 0


def cmd_discover(args, config):
    devices = discover_plcs(args.timeout, args.broadcast, args.port)
    if not devices:
        print("No devices found")
    for device in devices:
        rev = device["revision"]
        print(
            f"{device['ip_address']}:{device['port']}  {device['product_name']}  "
            f"vendor={device['vendor_id']} type={device['device_type']} "
            f"rev={rev['major']}.{rev['minor']} serial={device['serial_number']}"
        )
    return 0


def _driver(args, config) -> EthernetIPDriver:
    return EthernetIPDriver(
        args.host or config.get("host"),
        port=config.get("port", DEFAULT_PORT) if args.port is None else args.port,
        timeout=config.get("timeout", DEFAULT_TIMEOUT),
        path_format=getattr(args, "path_format", PathFormats.default),
        use_message_router=getattr(args, "router", False),
    )


def cmd_read(args, config):
    with _driver(args, config) as plc:
        value = plc.read_tag(args.tag, args.count)
    print(f"{args.tag} = {value!r}")
    return 0


def cmd_write(args, config):
    value = parse_value(args.value, args.type)
    with _driver(args, config) as plc:
        tag = plc.write_tag(args.tag, value, args.type)
    print(f"{tag.tag} = {tag.value!r} ({tag.type})")
    return 0


def cmd_probe(args, config):
    port = config.get("port", DEFAULT_PORT) if args.port is None else args.port
    results = check_connections(args.hosts, port, args.timeout)
    for result in results:
        line = f"{result['ip_address']}:{result['port']}  {result['status']}  {result['response_time'] * 1000:.1f}ms"
        if result["error"]:
            line += f"  ({result['error']})"
        print(line)
    return 0 if all(r["status"] == "ready" for r in results) else 1


def cmd_info(args, config):
    with _driver(args, config) as plc:
        properties = plc.get_properties()
    _print_json(properties)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pyenip", description="EtherNet/IP client, discovery and PLC simulator")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="JSON file with default host, port and timeout")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for debug, -vv to dump packets")
    commands = parser.add_subparsers(dest="command", required=True)

    simulate = commands.add_parser("simulate", help="run a PLC simulator")
    simulate.add_argument("--host", default="0.0.0.0")
    simulate.add_argument("--port", type=int, default=DEFAULT_PORT)
    simulate.add_argument("--udp-port", type=int, default=DEFAULT_UDP_PORT)
    simulate.add_argument("--product-name", default="EtherNet/IP Simulator")
    simulate.set_defaults(func=cmd_simulate)

    discover = commands.add_parser("discover", help="broadcast ListIdentity and list the replies")
    discover.add_argument("--timeout", type=float, default=DEFAULT_DISCOVERY_TIMEOUT)
    discover.add_argument("--broadcast", default=BROADCAST_ADDRESS)
    discover.add_argument("--port", type=int, default=DEFAULT_UDP_PORT)
    discover.set_defaults(func=cmd_discover)

    read = commands.add_parser("read", help="read a tag")
    read.add_argument("host", nargs="?")
    read.add_argument("tag")
    read.add_argument("--port", type=int)
    read.add_argument("--count", type=int, default=1)
    read.add_argument("--path-format", choices=[value for _, value in PathFormats], default=PathFormats.default)
    read.add_argument("--router", action="store_true", help="prefix the path with the Message Router")
    read.set_defaults(func=cmd_read)

    write = commands.add_parser("write", help="write a tag")
    write.add_argument("host", nargs="?")
    write.add_argument("tag")
    write.add_argument("value")
    write.add_argument("--port", type=int)
    write.add_argument("--type", help="CIP data type name, inferred from the value if omitted")
    write.set_defaults(func=cmd_write)

    probe = commands.add_parser("probe", help="check TCP and session registration")
    probe.add_argument("hosts", nargs="+")
    probe.add_argument("--port", type=int)
    probe.add_argument("--timeout", type=float, default=DEFAULT_PROBE_TIMEOUT)
    probe.set_defaults(func=cmd_probe)

    info = commands.add_parser("info", help="show connection status and device identity")
    info.add_argument("host", nargs="?")
    info.add_argument("--port", type=int)
    info.set_defaults(func=cmd_info)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        configure_default_logger(LOG_VERBOSE if args.verbose > 1 else logging.DEBUG, stream=sys.stderr)

    try:
        config = _load_config(args.config)
        if hasattr(args, "host") and args.func is not cmd_simulate and not (args.host or config.get("host")):
            raise PyenipError("No host given, pass HOST or set 'host' in --config")
        return args.func(args, config)
    except PyenipError as err:
        print(f"Error: {err}", file=sys.stderr)
        for suggestion in getattr(err, "suggestions", []):
            print(f"  - {suggestion}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
