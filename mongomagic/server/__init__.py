##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
The `server` package provisions and manages the single-node MongoDB instance.

Modules:
    server_commands.py: The install workflow and the start/stop/status/restart commands.
    server_config.py: Configuration loading, menus, preflight, backup and loopback helpers.
    server_util.py: Configuration objects, engine config, PM2 descriptor and user creation.
    fetch.py: Download, verification, extraction and staging of release archives.
    managed_process.py: The PM2-supervised engine as an explicit state machine.
    prompts.py: Interactive questions asked during an install.
"""
