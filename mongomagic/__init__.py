##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
mongo-magic: single-node MongoDB provisioning for shared hosting accounts.

One engine is installed under the operator's home directory, supervised by PM2
and reached over the host's loopback address on port 5679.
"""

__version__ = "1.0.0"
VERSION = __version__
