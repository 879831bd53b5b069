#!/usr/bin/env python3
"""
revoco - Command Line Interface

Change the wheel behaviour of Logitech's MX-Revolution mouse.
"""

import argparse
import logging
import os
import subprocess
import sys

from .__version__ import __version__
from .commands import parse_commands
from .conf import get_backend, get_device_template, save_backend, save_device_template
from .device_detector import (
    UDEV_RULES_PATH,
    build_search_path,
    find_device,
    format_probe,
    scan_devices,
    udev_rules,
)
from .errors import CommandSyntaxError, DeviceNotFound, DevicePermissionDenied
from .hid_device import TRANSPORTS, get_transport_factory
from .session import run_commands

log = logging.getLogger(__name__)

COMMANDS_HELP = """
Commands:
    free                      free spinning mode
    click                     click-to-click mode
    free-on-move              free spinning once the wheel is moved
    click-on-move             click-to-click once the wheel is moved
    manual[=button[,button]]  manual mode change via button
    auto[=speed[,speed]]      automatic mode change (up, down)
    soft-free[=n[,n]]         soft free-spin tuning (0-255)
    soft-click[=n[,n]]        soft click-to-click tuning (0-255)
    battery                   query battery status
    mode                      query scroll wheel mode
    reconnect                 initiate reconnection

Prefixing a mode with 'temp-' (i.e. temp-free) switches the mode
temporarily, otherwise it becomes the default mode after power up.

Button numbers:
    0 previously set button   7 wheel left tilt
    3 middle (wheel button)   8 wheel right tilt
    4 rear thumb button       9 thumb wheel forward
    5 front thumb button     11 thumb wheel backward
    6 find button            13 thumb wheel pressed

Debug commands:
    raw=id[,byte...]          send a raw report
    query[=id[,len]]          read one report
    sleep[=seconds]           pause between commands
"""


def _error(message: str) -> int:
    print(f"revoco: {message}", file=sys.stderr)
    return 1


def setup_logging(verbose: int = 0):
    """Configure the root logger from the -v count."""
    if verbose >= 2:
        logging.basicConfig(level=logging.DEBUG, format='[%(levelname)s] %(name)s: %(message)s')
    elif verbose == 1:
        logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING, format='revoco: %(message)s')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="revoco",
        description="Change the wheel behaviour of Logitech's MX-Revolution mouse.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=COMMANDS_HELP,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv)"
    )
    parser.add_argument(
        "-d", "--device",
        metavar="TEMPLATE",
        help="Device file or template tried first (e.g. /dev/hidraw%%d)"
    )
    parser.add_argument(
        "-b", "--backend",
        choices=sorted(TRANSPORTS),
        help="Device I/O backend (default: hidraw)"
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Remember --device/--backend as defaults"
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List candidate HID device files and exit"
    )
    parser.add_argument(
        "--setup-udev",
        action="store_true",
        help="Install udev rules for non-root access"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="With --setup-udev: print rules without installing"
    )
    parser.add_argument("commands", nargs="*", metavar="COMMAND", help=argparse.SUPPRESS)
    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(argv)
    except SystemExit as e:
        return 0 if e.code in (0, None) else 1

    setup_logging(args.verbose)

    if args.setup_udev:
        return setup_udev(dry_run=args.dry_run)

    if args.save:
        if args.device:
            save_device_template(args.device)
        if args.backend:
            save_backend(args.backend)

    device = args.device or get_device_template()
    backend = args.backend or get_backend()

    if args.list:
        return list_devices(device, backend)

    if not args.commands:
        if args.save:
            return 0
        parser.print_help()
        return 0

    return configure(args.commands, device_template=device, backend=backend)


def configure(tokens, device_template=None, backend="hidraw"):
    """Parse *tokens*, open the device and run the commands.

    Returns the process exit code: 1 for fatal errors (bad command, no
    device, no permission), 0 otherwise, even when single queries failed.
    """
    try:
        commands = parse_commands(tokens)
    except CommandSyntaxError as e:
        return _error(str(e))

    try:
        handle = find_device(device_template, backend)
    except DevicePermissionDenied as e:
        return _error(
            f"No permission to access {e.path}\n"
            "Try 'sudo revoco ...' or install udev rules with 'sudo revoco --setup-udev'"
        )
    except DeviceNotFound as e:
        return _error(str(e))
    except (ValueError, ImportError) as e:
        return _error(str(e))

    with handle:
        log.info("Using %s (%s)", handle.path, handle.variant.name)
        run_commands(handle, commands)
    return 0


def list_devices(device_template=None, backend="hidraw"):
    """Print every HID device file that could be probed."""
    try:
        factory = get_transport_factory(backend)
        results = scan_devices(build_search_path(device_template), factory)
    except (ValueError, ImportError) as e:
        return _error(str(e))

    if not results:
        print("No HID device files found.")
        return 1
    for result in results:
        print(format_probe(result))
    if not any(r.entry for r in results):
        print("\nNo supported device among them.")
        return 1
    return 0


def setup_udev(dry_run=False):
    """Generate and install udev rules from KNOWN_DEVICES."""
    rules_content = udev_rules()

    if dry_run:
        print(rules_content)
        print(f"# Would write to {UDEV_RULES_PATH}")
        return 0

    if os.geteuid() != 0:
        print("Error: root required. Run with:")
        print("  sudo revoco --setup-udev")
        print("\nOr preview first:")
        print("  revoco --setup-udev --dry-run")
        return 1

    try:
        with open(UDEV_RULES_PATH, "w") as f:
            f.write(rules_content)
    except OSError as e:
        return _error(f"cannot write {UDEV_RULES_PATH}: {e}")
    print(f"Wrote {UDEV_RULES_PATH}")

    subprocess.run(["udevadm", "control", "--reload-rules"], check=False)
    subprocess.run(["udevadm", "trigger"], check=False)
    print("\nDone. Replug the receiver for changes to take effect.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
