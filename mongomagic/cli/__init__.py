##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
The mongo-magic command-line interface.

Modules:
    argparse_main: Builds the top-level `mongo-magic` parser.
    commands: The `install` and `server` commands.
"""
