##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""Logging setup for the mongo-magic command line."""

import logging
import sys

import coloredlogs


FORMATS = {
    "DEFAULT": "[%(asctime)s: %(levelname)s] %(message)s",
    "DEBUG": "[%(asctime)s: %(levelname)s] [%(module)s: %(lineno)d] %(message)s",
}
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(logger: logging.Logger, log_level: str = "INFO", colors: bool = True):
    """
    Attach a stdout handler to `logger`.

    With `colors` the handler is installed by coloredlogs, otherwise a plain
    `StreamHandler` is used. Handlers from an earlier call are replaced so that
    calling this twice does not print every message twice.

    Args:
        logger: The package logger.
        log_level: One of `LOG_LEVELS`.
        colors: If True use colored logs.
    """
    fmt = FORMATS["DEBUG"] if log_level == "DEBUG" else FORMATS["DEFAULT"]
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    logger.setLevel(log_level)
    logger.propagate = False

    if colors:
        coloredlogs.install(level=log_level, logger=logger, fmt=fmt, stream=sys.stdout)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
