"""
run-android CLI - builds the app and starts it on a connected Android
emulator or device.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from runandroid.orchestrator.base import Orchestrator, RunOptions
from runandroid.packager.server import default_port
from runandroid.utils.logger import get_logger, set_level

logger = get_logger('runandroid')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='run-android',
        description='Builds your app and starts it on a connected Android emulator or device',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  run-android
  run-android --variant demoRelease
  run-android --root ./MyApp --open Terminal
        """
    )

    parser.add_argument(
        '--root', '-r',
        default='',
        help='Override the root directory for the android build (which contains the android directory)'
    )
    parser.add_argument(
        '--variant',
        help='Build variant to install, e.g. debug or demoRelease'
    )
    parser.add_argument(
        '--flavor',
        help='--flavor has been deprecated. Use --variant instead'
    )
    parser.add_argument(
        '--install-debug',
        dest='install_debug',
        help='Extra argument passed to gradlew after the install task'
    )
    parser.add_argument(
        '--open',
        dest='open_with',
        help='Application used to open the packager window'
    )
    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Packager port (default: $RCT_METRO_PORT or 8081)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )
    return parser


def options_from_args(args: argparse.Namespace) -> RunOptions:
    """Merge parsed arguments with environment defaults."""
    return RunOptions(
        root=Path(args.root) if args.root else Path('.'),
        variant=args.variant or None,
        flavor=args.flavor or None,
        install_debug=args.install_debug or None,
        open_with=args.open_with or None,
        port=args.port if args.port is not None else default_port(),
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        set_level(logging.DEBUG)

    options = options_from_args(args)
    logger.debug(f"Root Dir: {options.root.resolve()}")
    return Orchestrator(options).run()


if __name__ == '__main__':
    sys.exit(main())
