##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Defines the abstract base class for mongo-magic CLI commands.

Every command registers its own parser and handles the parsed arguments itself.
"""

from abc import ABC, abstractmethod
from argparse import ArgumentParser, Namespace


class CommandEntryPoint(ABC):
    """
    Abstract base class for a mongo-magic CLI command entry point.

    Methods:
        add_parser: Adds the parser for a specific command to the main `ArgumentParser`.
        process_command: Executes the logic for this CLI command.
    """

    @abstractmethod
    def add_parser(self, subparsers: ArgumentParser):
        """Add the parser for this command to the main `ArgumentParser`."""
        raise NotImplementedError("Subclasses of `CommandEntryPoint` must implement an `add_parser` method.")

    @abstractmethod
    def process_command(self, args: Namespace):
        """Execute the logic for this CLI command."""
        raise NotImplementedError("Subclasses of `CommandEntryPoint` must implement a `process_command` method.")

    @staticmethod
    def add_location_arguments(parser: ArgumentParser):
        """
        Add the `--home` and `--config` options shared by every command.

        Args:
            parser: The command parser receiving the options.
        """
        parser.add_argument(
            "--home",
            action="store",
            type=str,
            default=None,
            help="Home directory to install into. Defaults to the configured home directory.",
        )
        parser.add_argument(
            "--config",
            action="store",
            type=str,
            default=None,
            help="Configuration file to apply over the packaged defaults.",
        )
