##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Top-level argument parser for `mongo-magic`.

Global options (log level, colors, version) live here; each command in
`ALL_COMMANDS` attaches its own subparser.
"""

import sys
from argparse import ArgumentParser, RawDescriptionHelpFormatter

from mongomagic import VERSION
from mongomagic.ascii_art import banner_small
from mongomagic.cli.commands import ALL_COMMANDS
from mongomagic.log_formatter import LOG_LEVELS


DEFAULT_LOG_LEVEL = "INFO"


class HelpParser(ArgumentParser):
    """An `ArgumentParser` that shows the full help next to any usage error."""

    def error(self, message: str):
        sys.stderr.write(f"error: {message}\n")
        self.print_help()
        sys.exit(2)


def build_main_parser() -> ArgumentParser:
    """
    Build the `mongo-magic` parser with every command attached.

    Returns:
        The parser. Parsed arguments carry a `func` set by the chosen command.
    """
    parser = HelpParser(
        prog="mongo-magic",
        description=banner_small,
        formatter_class=RawDescriptionHelpFormatter,
        epilog="See mongo-magic <command> --help for more info",
    )
    parser.add_argument("-v", "--version", action="version", version=VERSION)
    parser.add_argument(
        "-lvl",
        "--level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=DEFAULT_LOG_LEVEL,
        metavar="LEVEL",
        help=f"Log level, one of {', '.join(LOG_LEVELS)} [Default: %(default)s]",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Print log messages without colors.",
    )

    subparsers = parser.add_subparsers(dest="subparsers", required=True, metavar="<command>")
    for command in ALL_COMMANDS:
        command.add_parser(subparsers)

    return parser
