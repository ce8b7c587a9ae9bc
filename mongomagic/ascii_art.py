##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Holds ascii art strings.
"""

mongo_name_small = r"""
  _ __ ___   ___  _ __   __ _  ___
 | '_ ` _ \ / _ \| '_ \ / _` |/ _ \
 | | | | | | (_) | | | | (_| | (_) |
 |_| |_| |_|\___/|_| |_|\__, |\___/
   _ __ ___   __ _  __ _ __/ |_  ___
  | '_ ` _ \ / _` |/ _` |/ _` | |/ __|
  | | | | | | (_| | (_| | (_| | | (__
  |_| |_| |_|\__,_|\__, |\__,_|_|\___|
                    |___/
 MongoDB on shared hosting, supervised by PM2
"""

mongo_leaf_small = r"""
     .
    /|
   / |
  |  |
  |  |
  |  |
   \ |
    \|
     |
     '

"""


def _make_banner():

    name_lines = mongo_name_small.split("\n")
    leaf_lines = mongo_leaf_small.split("\n")
    width = max(len(line) for line in leaf_lines)

    banner = ""
    for leaf_line, name_line in zip(leaf_lines, name_lines):
        banner = banner + leaf_line.ljust(width) + name_line + "\n"

    return banner


banner_small = _make_banner()
