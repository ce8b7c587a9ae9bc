##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Small helpers shared by the mongo-magic modules: process lookup, path handling
and file updates that never leave a half-written file behind.
"""
import getpass
import logging
import os
import tempfile
from typing import Dict, List

import psutil
import yaml


LOG = logging.getLogger(__name__)

ALL_USERS = "all_users"


def get_pid(name: str, user: str = None) -> List[int]:
    """
    Return the PIDs of processes whose name is exactly `name`.

    Matching is exact, the way `pgrep -x` matches, so `mongod` does not match
    `mongodump` or `mongosh`.

    Args:
        name: The process name.
        user: Only consider this user's processes. `ALL_USERS` looks at every
            process on the host. Defaults to the current user.

    Returns:
        The matching PIDs, or None if there are none.
    """
    if user is None:
        user = getpass.getuser()

    pids = [
        proc.info["pid"]
        for proc in psutil.process_iter(attrs=["pid", "name", "username"])
        if proc.info["name"] == name and user in (ALL_USERS, proc.info["username"])
    ]
    return pids or None


def is_running(name: str, all_users: bool = True) -> bool:
    """
    Check whether a process called `name` exists.

    Args:
        name: The exact process name.
        all_users: Look at every user's processes instead of only the current user's.
    """
    return get_pid(name, user=ALL_USERS if all_users else None) is not None


def load_yaml(filepath: str) -> Dict:
    """Read a YAML file with the safe loader."""
    with open(filepath, "r") as _file:
        return yaml.safe_load(_file)


def expand_path(path: str) -> str:
    """Expand `~` and environment variables in `path` and make it absolute."""
    return os.path.abspath(os.path.expandvars(os.path.expanduser(path)))


def atomic_write(filepath: str, content: str):
    """
    Write `content` to `filepath` so readers only ever see the old or the new file.

    The content goes to a temporary file in the same directory which is then
    renamed over the destination.

    Args:
        filepath: The destination file.
        content: The text to write.
    """
    dirname = os.path.dirname(os.path.abspath(filepath))
    fd, tmp_path = tempfile.mkstemp(prefix=f".{os.path.basename(filepath)}.", dir=dirname)
    try:
        with os.fdopen(fd, "w") as tmp_file:
            tmp_file.write(content)
        os.replace(tmp_path, filepath)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def atomic_symlink(target: str, link_path: str):
    """
    Point `link_path` at `target`, replacing any existing link in a single rename.

    Args:
        target: The path the link should resolve to.
        link_path: The location of the symlink.
    """
    tmp_link = f"{link_path}.tmp-{os.getpid()}"
    if os.path.lexists(tmp_link):
        os.remove(tmp_link)
    os.symlink(target, tmp_link)
    os.replace(tmp_link, link_path)


def ensure_line_in_file(filepath: str, line: str) -> bool:
    """
    Append `line` to `filepath` unless the file already contains it.

    Args:
        filepath: The file to update. It is created if missing.
        line: The line to make sure is present (without trailing newline).

    Returns:
        True if the line was appended, False if it was already present.
    """
    existing = ""
    if os.path.exists(filepath):
        with open(filepath, "r") as _file:
            existing = _file.read()
        if line in existing.splitlines():
            return False

    with open(filepath, "a") as _file:
        if existing and not existing.endswith("\n"):
            _file.write("\n")
        _file.write(f"{line}\n")
    return True


def deep_update(base: Dict, override: Dict, path: List[str] = None) -> Dict:
    """
    Merge `override` into `base` in place, descending into nested mappings.

    Values from `override` win. A mapping is only merged key by key when both
    sides hold a mapping; otherwise the overriding value replaces it.

    Args:
        base: The dictionary to update.
        override: The values to apply.
        path: Keys leading to `base`, used in debug messages.

    Returns:
        `base`, for chaining.

    Raises:
        TypeError: If either argument is not a dict.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise TypeError(f"Cannot merge {type(override).__name__} into {type(base).__name__}")

    path = path or []
    for key, value in override.items():
        key_path = path + [str(key)]
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            deep_update(base[key], value, path=key_path)
            continue
        if key in base and base[key] != value:
            LOG.debug(f"Overriding {'.'.join(key_path)}: {base[key]!r} -> {value!r}")
        base[key] = value
    return base
