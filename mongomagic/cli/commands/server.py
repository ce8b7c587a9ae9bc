##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
The `server` command: status and lifecycle of the PM2-supervised MongoDB instance.
"""

from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace

from mongomagic.cli.commands.command_entry_point import CommandEntryPoint
from mongomagic.server.server_commands import restart_server, start_server, status_server, stop_server


SUBCOMMANDS = {
    "status": "View status of the MongoDB instance.",
    "start": "Start the MongoDB instance through PM2.",
    "stop": "Stop the running MongoDB instance.",
    "restart": "Restart the MongoDB instance.",
}


class ServerCommand(CommandEntryPoint):
    """Handles `mongo-magic server <status|start|stop|restart>`."""

    def add_parser(self, subparsers: ArgumentParser):
        """
        Add the `server` command and one subparser per lifecycle action.

        Parameters:
            subparsers: The subparsers object to which the `server` command parser will be added.
        """
        server: ArgumentParser = subparsers.add_parser(
            "server",
            help="Manage the MongoDB instance supervised by PM2.",
            formatter_class=ArgumentDefaultsHelpFormatter,
        )
        server.set_defaults(func=self.process_command)

        common = ArgumentParser(add_help=False)
        common.add_argument(
            "-n",
            "--name",
            type=str,
            default=None,
            help="PM2 app name. Only needed when more than one descriptor exists.",
        )
        self.add_location_arguments(common)

        server_commands = server.add_subparsers(dest="commands", required=True, metavar="<action>")
        for name, summary in SUBCOMMANDS.items():
            server_commands.add_parser(
                name,
                help=summary,
                description=summary,
                parents=[common],
                formatter_class=ArgumentDefaultsHelpFormatter,
            )

    def process_command(self, args: Namespace):
        """
        Run the server function matching `args.commands`.

        Args:
            args: Parsed arguments with `commands`, `name`, `home` and `config`.
        """
        handlers = {
            "status": status_server,
            "start": start_server,
            "stop": stop_server,
            "restart": restart_server,
        }
        handlers[args.commands](home_dir=args.home, config_path=args.config, app_name=args.name)
