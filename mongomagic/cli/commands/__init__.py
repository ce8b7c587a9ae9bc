##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
mongo-magic CLI Commands Package.

Modules:
    command_entry_point: Defines the abstract base class `CommandEntryPoint` for all CLI commands.
    install: Implements the interactive `install` command.
    server: Implements the `server` command to supervise the installed engine.
"""

from mongomagic.cli.commands.install import InstallCommand
from mongomagic.cli.commands.server import ServerCommand


# Keep these in alphabetical order
ALL_COMMANDS = [
    InstallCommand(),
    ServerCommand(),
]
