"""Command line parsing for the tunnel client."""

import argparse
import sys
from collections.abc import Sequence
from typing import NoReturn

from .common.exceptions import UsageError
from .common.utils import validate_port
from .models import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_LEVEL,
    DEFAULT_QUICK_START_HOST,
    DEFAULT_QUICK_START_PORT,
    Command,
    Invocation,
    TunnelProtocol,
)

USAGE = "tunnel [OPTIONS] <command> [command args] [...]"

EPILOG = """\
Commands:
  tunnel id                      Show client identifier
  tunnel list                    List tunnel names from config file
  tunnel start [tunnel] [...]    Start tunnels by name from config file
  tunnel start-all               Start all tunnels defined in config file
  tunnel qstart                  Quick start a single tunnel from flags

Examples:
  tunnel start www ssh
  tunnel -config config.yaml -log-level 2 start ssh
  tunnel start-all
  tunnel qstart -host example.arumiot.com -p 3000
"""


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser raising UsageError instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_parser() -> ArgumentParser:
    """Create the tunnel command line parser.

    Flags accept both the single dash spelling (-config) and the double
    dash one (--config).
    """
    parser = ArgumentParser(
        prog="tunnel",
        usage=USAGE,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-config",
        "--config",
        dest="config_path",
        default=DEFAULT_CONFIG_PATH,
        help="Path to tunnel configuration file",
    )
    parser.add_argument(
        "-host", "--host", default=DEFAULT_QUICK_START_HOST, help="Hook Url"
    )
    parser.add_argument(
        "-p",
        dest="port",
        type=int,
        default=DEFAULT_QUICK_START_PORT,
        help="Local Port to expose",
    )
    parser.add_argument(
        "-protocol",
        "--protocol",
        default=TunnelProtocol.HTTP.value,
        choices=[p.value for p in TunnelProtocol],
        help="Protocol",
    )
    parser.add_argument(
        "-log-level",
        "--log-level",
        dest="log_level",
        type=int,
        default=DEFAULT_LOG_LEVEL,
        choices=range(0, 4),
        metavar="{0-3}",
        help="Level of messages to log, 0-3",
    )
    parser.add_argument(
        "-version",
        "--version",
        dest="show_version",
        action="store_true",
        help="Prints tunnel version",
    )
    parser.add_argument("words", nargs="*", metavar="command", help=argparse.SUPPRESS)
    return parser


def check_arity(command: Command, args: Sequence[str]) -> None:
    """Validate the number of command arguments.

    Raises:
        UsageError: If start has no tunnel names or any other command has arguments
    """
    if command == Command.START:
        if not args:
            raise UsageError("you must specify at least one tunnel to start")
    elif args:
        raise UsageError(f"{command.value} takes no arguments")


def parse_args(argv: Sequence[str] | None = None) -> Invocation:
    """Parse the command line into an Invocation.

    With no command at all the usage text is printed and the process exits
    with status 2.

    Args:
        argv: Arguments without the program name, defaults to sys.argv[1:]

    Returns:
        Parsed invocation

    Raises:
        UsageError: If the command is unknown, has the wrong arguments or a
            flag value is malformed
        SystemExit: If no command is given
    """
    parser = build_parser()
    ns = parser.parse_intermixed_args(argv)

    try:
        validate_port(ns.port, "Local port")
    except ValueError as e:
        raise UsageError(str(e)) from e

    name = ns.words[0] if ns.words else ""
    args = tuple(ns.words[1:])
    flags = {
        "host": ns.host,
        "port": ns.port,
        "protocol": TunnelProtocol(ns.protocol),
        "config_path": ns.config_path,
        "log_level": ns.log_level,
    }

    if ns.show_version:
        known = {c.value for c in Command}
        command = Command(name) if name in known else None
        return Invocation(command=command, args=args, show_version=True, **flags)

    if not name:
        parser.print_help(sys.stderr)
        raise SystemExit(2)

    try:
        command = Command(name)
    except ValueError:
        raise UsageError(f'unknown command "{name}"') from None

    check_arity(command, args)

    return Invocation(command=command, args=args, **flags)
