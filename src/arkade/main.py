import argparse
import datetime
import logging
import os
import signal
import socket
import subprocess
import sys
from functools import partial
from types import FrameType
from typing import Final

import psutil

from arkade.coloring import Color, disable_colors
from arkade.configure import DEFAULT_CONFIG_DIR
from arkade.confreader import ConfReader
from arkade.flag import FlagParser, Group, OptionFlag, PositionalFlag
from arkade.logrwp import ACTIVITY_LOG, LogRWP
from arkade.printing import Assets, eprint, wprint
from arkade.watcher import (
    ParsePortError,
    PortInfo,
    PortWatcher,
    WatcherError,
    format_ports,
    parse_ports,
)

__all__ = ["ARKADE_FLAGS", "main", "if_is_active", "list_interfaces"]


_NAME: Final = "arkade"
_VERSION: Final = "1.0.0"
_RELEASE_DATE: Final = "2026-10-19"


def _error(message: str) -> None:
    precedence = (f"{Color.red(Color.bold('error'))}: "
                  f"{Color.red(Color.bold(_NAME))}")
    eprint(message, precedence=precedence)


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


ARKADE_FLAGS: Final = {
    "ports": PositionalFlag(
        help="comma separated ports to watch (e.g., 25565/tcp,34197/udp)",
        nargs="?",
        default=None,
    ),
    "interface": OptionFlag(
        short="-i",
        long="--interface",
        help="network interface to capture on (e.g., eth0)",
        type=str,
        required=False,
        default=None,
        metavar="<name>",
    ),
    "window": OptionFlag(
        short="-w",
        long="--window",
        help="aggregation window in seconds, a port is reported at most once "
             "per window (default: 5)",
        type=_positive_float,
        required=False,
        default=None,
        metavar="<seconds>",
    ),
    "exec": OptionFlag(
        short="-e",
        long="--exec",
        help="shell command to run on activity, ARKADE_PORT, ARKADE_PROTOCOL "
             "and ARKADE_INTERFACE are set in its environment",
        type=str,
        required=False,
        default=None,
        metavar="<command>",
    ),
    "config": OptionFlag(
        short="-C",
        long="--config",
        help=f"config file to use (default: {DEFAULT_CONFIG_DIR}/config.json)",
        type=str,
        required=False,
        default=f"{DEFAULT_CONFIG_DIR}/config.json",
        metavar="<path>",
    ),
    "list_interfaces": OptionFlag(
        short="-L",
        long="--list-interfaces",
        help="show available network interfaces and exit",
        action="store_true",
        default=False,
    ),
    "show_config": OptionFlag(
        long="--show-config",
        help="show the contents of the config file and exit",
        action="store_true",
        default=False,
    ),
    "show_log": OptionFlag(
        long="--show-log",
        help="show the activity log and exit",
        action="store_true",
        default=False,
    ),
    "verbose": OptionFlag(
        short="-v",
        long="--verbose",
        help="increase verbosity, may be repeated",
        action="count",
        default=0,
    ),
    "no_color": OptionFlag(
        long="--no-color",
        help="disable colors if supported",
        action="store_true",
        default=False,
    ),
    "version": OptionFlag(
        long="--version",
        help="show version and exit",
        action="version",
        version=f"{_NAME} {_VERSION} ({_RELEASE_DATE})",
    ),
}


_EXAMPLES_OF_USAGE: Final = {
    "examples": Group(
        arguments={},
        description="\n".join([
            f"{Color.blue('arkade')} 25565/tcp,34197/udp {Color.yellow('-i')} eth0",

            f"{Color.blue('arkade')} 27015/udp {Color.yellow('-i')} eth0 "
            f"{Color.yellow('-w')} 10 {Color.yellow('-e')} "
            f"'podman start game-$ARKADE_PORT'",

            f"{Color.blue('arkade')} {Color.yellow('--list-interfaces')}",
        ]),
    ),
}


def if_is_active(ifname: str, /) -> bool:
    """
    Check if an interface is active.

    Parameters
    ----------
    ifname : str
        Name of the interface to check.

    Returns
    -------
    bool
        True if interface is active.
    """
    return bool(psutil.net_if_stats()[ifname].isup)


def list_interfaces() -> None:
    stats = psutil.net_if_stats()
    addrs = psutil.net_if_addrs()

    for num, name in enumerate(sorted(stats), start=1):
        state = Color.green("up") if stats[name].isup else Color.red("down")
        print(f"{Color.yellow(str(num))}. {Color.blue(name)} "
              f"{Assets.RIGHTWARDS_ARROW} {state}, mtu {stats[name].mtu}")

        for addr in addrs.get(name, []):
            if addr.family == socket.AF_INET:
                family = "inet"
            elif addr.family == socket.AF_INET6:
                family = "inet6"
            elif addr.family == psutil.AF_LINK:
                family = "link"
            else:
                continue
            print(f"   {Assets.BULLET} {family} {Color.color(addr.address, 'light_yellow')}")


def _setup_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _on_activity(
        info: PortInfo,
        *,
        interface: str,
        command: str | None,
        log: LogRWP | None,
) -> None:
    date = datetime.datetime.today().strftime("%Y-%m-%d %I:%M:%S %p")
    message = f"activity on {info} ({interface})"

    print(f"[{Color.yellow(date)}]: activity on {Color.green(Color.bold(str(info)))} "
          f"({Color.blue(interface)})", flush=True)

    if log is not None:
        try:
            log.write(ACTIVITY_LOG, message)
        except OSError as e:
            wprint(f"failed to write the activity log: {e}")

    if command is None:
        return

    env = {
        **os.environ,
        "ARKADE_PORT": str(info.port),
        "ARKADE_PROTOCOL": str(info.protocol),
        "ARKADE_INTERFACE": interface,
    }

    # Not waited for, the watcher keeps running while the command does
    try:
        subprocess.Popen(command, shell=True, env=env, start_new_session=True)
    except OSError as e:
        wprint(f"failed to run '{command}': {e}")


def main(args: list[str]) -> None:
    parser = FlagParser(prog=_NAME, description="start things when their ports see traffic")
    arkade_flags: dict[str, Group | PositionalFlag | OptionFlag] = ARKADE_FLAGS | _EXAMPLES_OF_USAGE
    parser.add_arguments(arkade_flags)
    flags = parser.parse_args(args)

    if flags.no_color:
        disable_colors()

    conf = ConfReader(flags.config)
    conf_data = conf.read()

    if not conf_data["colors"]:
        disable_colors()

    _setup_logging(flags.verbose)

    if flags.show_config:
        conf.print()
        return

    if flags.show_log:
        LogRWP(conf_data["log_path"], "read").print(ACTIVITY_LOG)
        return

    if flags.list_interfaces:
        list_interfaces()
        return

    # Command line takes precedence over the config file
    ports_text = flags.ports if flags.ports is not None else conf_data["ports"] or ""
    if not isinstance(ports_text, str):
        _error(f"ports must be a string such as '25565/tcp,34197/udp', got: {ports_text}")

    try:
        ports = parse_ports(ports_text)
    except ParsePortError as e:
        _error(str(e))

    if not ports:
        _error("no ports to watch. Supply them as the positional 'ports' or "
               "set 'ports' in the config file")

    interface = flags.interface if flags.interface is not None else conf_data["interface"]
    if not interface:
        _error("interface is required but was not supplied. Use '-i' or set "
               "'interface' in the config file")

    window = flags.window if flags.window is not None else conf_data["window"]
    if isinstance(window, bool) or not isinstance(window, (int, float)) or window <= 0:
        _error(f"window must be a positive number of seconds, got: {window}")

    command = flags.exec if flags.exec is not None else conf_data["exec"]

    try:
        watcher = PortWatcher(interface, window)
    except WatcherError as e:
        _error(str(e))

    try:
        if not if_is_active(interface):
            wprint(f"interface '{interface}' is down")
    except KeyError:
        pass

    watcher.watch_all(ports)

    log = None
    if conf_data["log"]:
        log = LogRWP(conf_data["log_path"], "write", max_size=conf_data["log_max_size"])

    def stop(signum: int, frame: FrameType | None) -> None:
        watcher.stop()

    signal.signal(signal.SIGINT, stop)
    signal.signal(signal.SIGTERM, stop)

    print(f"watching {Color.green(format_ports(watcher.watched))} on "
          f"{Color.blue(interface)}, window {window}s", flush=True)

    callback = partial(_on_activity, interface=interface, command=command, log=log)

    try:
        watcher.run(callback)
    except WatcherError as e:
        _error(str(e))

