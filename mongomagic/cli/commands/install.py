##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
CLI module for the interactive `install` command.
"""

from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace

from mongomagic.cli.commands.command_entry_point import CommandEntryPoint
from mongomagic.server.server_commands import install_server


class InstallCommand(CommandEntryPoint):
    """
    Handles the `install` command, which provisions MongoDB under PM2.

    Methods:
        add_parser: Adds the `install` command parser to the CLI argument parser.
        process_command: Runs the provisioning workflow.
    """

    def add_parser(self, subparsers: ArgumentParser):
        """
        Add the `install` command parser to the CLI argument parser.

        Parameters:
            subparsers: The subparsers object to which the `install` command parser will be added.
        """
        install: ArgumentParser = subparsers.add_parser(
            "install",
            help="Download MongoDB, write its configuration and start it under PM2.",
            description="Interactively provision a single MongoDB instance.",
            formatter_class=ArgumentDefaultsHelpFormatter,
        )
        install.set_defaults(func=self.process_command)
        self.add_location_arguments(install)

    def process_command(self, args: Namespace):
        """
        Run the provisioning workflow.

        Args:
            args: Parsed CLI arguments with `home` and `config`.
        """
        install_server(home_dir=args.home, config_path=args.config)
