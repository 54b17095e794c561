"""
lxm CLI - lazyext extension manager.

Pacman-style interface over a lazyext config file.

Usage:
    lxm -S [name...]             Install declared extensions (all if none named)
    lxm -Q                       List declared extensions
    lxm -Qi <name>               Show extension info
    lxm -Qo                      Show startup activation order
    lxm --init                   Write a default settings file
"""

import argparse
import sys
from pathlib import Path

from lazyext.config import DEFAULT_CONFIG_FILE


class LxmError(Exception):
    """Base exception for lxm errors."""

    pass


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="lxm",
        description="lazyext extension manager",
        add_help=False,
    )

    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install extensions")
    ops.add_argument("-Q", "--query", action="store_true", help="Query declarations")
    ops.add_argument("--init", action="store_true", help="Write default settings")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    parser.add_argument("-i", "--info", action="store_true", help="Show info (-Qi)")
    parser.add_argument(
        "-o", "--order", action="store_true", help="Startup order (-Qo)"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    parser.add_argument("targets", nargs="*", help="Extension names")

    return parser


def print_help():
    """Print help message."""
    print(__doc__.strip())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for lxm CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.help or not (args.sync or args.query or args.init):
            print_help()
            return 0

        if args.init:
            from lazyext.config import write_default_settings

            write_default_settings(args.config)
            print(f"Wrote {args.config}")
            return 0

        if args.sync:
            from lxm.commands.install import install_command

            return install_command(args)

        from lxm.commands.query import query_command

        return query_command(args)

    except LxmError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
