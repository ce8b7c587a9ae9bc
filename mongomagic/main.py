##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""Entry point of the `mongo-magic` console script."""

import logging
import sys
import traceback
from typing import List

from mongomagic.cli.argparse_main import build_main_parser
from mongomagic.log_formatter import setup_logging


LOG = logging.getLogger("mongomagic")


def main(argv: List[str] = None):
    """
    Parse the command line, set up logging and run the chosen command.

    Any error escaping a command is logged and the process exits with status 1.
    The traceback is only shown at DEBUG level.

    Args:
        argv: Arguments without the program name. Defaults to `sys.argv[1:]`.

    Returns:
        1 when called with no arguments, after printing the help.
    """
    argv = sys.argv[1:] if argv is None else argv
    parser = build_main_parser()
    if not argv:
        parser.print_help(sys.stdout)
        return 1
    args = parser.parse_args(argv)

    setup_logging(logger=LOG, log_level=args.level, colors=not args.no_color)

    try:
        args.func(args)
    except Exception as excpt:  # pylint: disable=broad-except
        LOG.debug(traceback.format_exc())
        LOG.error(str(excpt))
        sys.exit(1)

    sys.exit()


if __name__ == "__main__":
    main()
