##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Tests for the `utils.py` module.
"""

import logging
import os

import pytest
from pytest_mock import MockerFixture

from mongomagic.utils import (
    atomic_symlink,
    atomic_write,
    deep_update,
    ensure_line_in_file,
    expand_path,
    get_pid,
    is_running,
)


def _mock_processes(mocker: MockerFixture, processes):
    """Patch `psutil.process_iter` to yield fake processes with the given info dicts."""
    fakes = [mocker.MagicMock(info=info) for info in processes]
    return mocker.patch("mongomagic.utils.psutil.process_iter", return_value=fakes)


def test_get_pid_matches_exact_name_only(mocker: MockerFixture):
    """
    Test that `get_pid` only returns processes whose name is exactly the one requested.

    :param mocker: A built-in fixture from the pytest-mock library to create a Mock object
    """
    _mock_processes(
        mocker,
        [
            {"pid": 10, "name": "mongod", "username": "alice"},
            {"pid": 11, "name": "mongodump", "username": "alice"},
            {"pid": 12, "name": "mongosh", "username": "bob"},
            {"pid": 13, "name": "mongod", "username": "bob"},
        ],
    )
    assert get_pid("mongod", user="all_users") == [10, 13]
    assert get_pid("mongod", user="alice") == [10]


def test_get_pid_no_match(mocker: MockerFixture):
    """
    Test that `get_pid` returns None when nothing matches.

    :param mocker: A built-in fixture from the pytest-mock library to create a Mock object
    """
    _mock_processes(mocker, [{"pid": 11, "name": "mongodump", "username": "alice"}])
    assert get_pid("mongod", user="all_users") is None


@pytest.mark.parametrize("name, expected", [("mongod", True), ("redis-server", False)])
def test_is_running(mocker: MockerFixture, name: str, expected: bool):
    """
    Test that `is_running` looks at every user's processes.

    :param mocker: A built-in fixture from the pytest-mock library to create a Mock object
    :param name: The process name to look for
    :param expected: Whether the process should be found
    """
    _mock_processes(mocker, [{"pid": 42, "name": "mongod", "username": "someone-else"}])
    assert is_running(name) is expected


def test_expand_path(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """
    Test that `expand_path` expands `~` and environment variables.
    """
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("MM_SUBDIR", "mongodb")
    assert expand_path("~/$MM_SUBDIR") == os.path.join(str(tmp_path), "mongodb")


def test_atomic_write_replaces_content(tmp_path):
    """
    Test that `atomic_write` replaces the file content and leaves no temporary files behind.
    """
    target = tmp_path / "mongo.cfg"
    target.write_text("old\n")

    atomic_write(str(target), "new\n")

    assert target.read_text() == "new\n"
    assert os.listdir(str(tmp_path)) == ["mongo.cfg"]


def test_atomic_write_cleans_up_on_failure(mocker: MockerFixture, tmp_path):
    """
    Test that `atomic_write` keeps the original file and removes its temporary
    file when the rename fails.

    :param mocker: A built-in fixture from the pytest-mock library to create a Mock object
    """
    target = tmp_path / "mongo.cfg"
    target.write_text("old\n")
    mocker.patch("mongomagic.utils.os.replace", side_effect=OSError("disk full"))

    with pytest.raises(OSError):
        atomic_write(str(target), "new\n")

    assert target.read_text() == "old\n"
    assert os.listdir(str(tmp_path)) == ["mongo.cfg"]


def test_atomic_symlink_repoints_existing_link(tmp_path):
    """
    Test that `atomic_symlink` replaces a link pointing at an old release.
    """
    old_release = tmp_path / "mongodb-6.0.0"
    new_release = tmp_path / "mongodb-7.0.0"
    old_release.mkdir()
    new_release.mkdir()
    link = str(tmp_path / "mongodb-binary")

    atomic_symlink(str(old_release), link)
    atomic_symlink(str(new_release), link)

    assert os.readlink(link) == str(new_release)
    assert sorted(os.listdir(str(tmp_path))) == ["mongodb-6.0.0", "mongodb-7.0.0", "mongodb-binary"]


def test_ensure_line_in_file_creates_file(tmp_path):
    """
    Test that `ensure_line_in_file` creates a missing file with the line.
    """
    profile = tmp_path / ".bash_profile"
    assert ensure_line_in_file(str(profile), "export PATH=$PATH:/opt/bin")
    assert profile.read_text() == "export PATH=$PATH:/opt/bin\n"


def test_ensure_line_in_file_is_idempotent(tmp_path):
    """
    Test that running `ensure_line_in_file` twice leaves exactly one copy of the line.
    """
    profile = tmp_path / ".bash_profile"
    profile.write_text("alias ll='ls -l'")
    line = "export PATH=$PATH:/opt/bin"

    assert ensure_line_in_file(str(profile), line)
    assert not ensure_line_in_file(str(profile), line)

    assert profile.read_text() == f"alias ll='ls -l'\n{line}\n"


def test_ensure_line_in_file_needs_whole_line_match(tmp_path):
    """
    Test that a line which only appears as part of a longer line is still appended.
    """
    profile = tmp_path / ".bash_profile"
    profile.write_text("# export PATH=$PATH:/opt/bin\n")
    assert ensure_line_in_file(str(profile), "export PATH=$PATH:/opt/bin")
    assert profile.read_text().splitlines()[-1] == "export PATH=$PATH:/opt/bin"


def test_get_pid_defaults_to_current_user(mocker: MockerFixture):
    """
    Test that `get_pid` only looks at the current user's processes by default.

    :param mocker: A built-in fixture from the pytest-mock library to create a Mock object
    """
    mocker.patch("mongomagic.utils.getpass.getuser", return_value="bob")
    _mock_processes(
        mocker,
        [
            {"pid": 10, "name": "mongod", "username": "alice"},
            {"pid": 13, "name": "mongod", "username": "bob"},
        ],
    )
    assert get_pid("mongod") == [13]


def test_deep_update_overrides_nested_values():
    """
    Test that nested mappings are merged key by key and overriding values win.
    """
    base = {"install": {"home_dir": "~", "ready_timeout": 30}, "fetch": {"timeout": 60}}
    override = {"install": {"ready_timeout": 5}, "process": {"status_command": "pm2 jlist"}}

    assert deep_update(base, override) is base
    assert base == {
        "install": {"home_dir": "~", "ready_timeout": 5},
        "fetch": {"timeout": 60},
        "process": {"status_command": "pm2 jlist"},
    }


def test_deep_update_replaces_non_mappings(caplog: "Fixture"):  # noqa: F821
    """
    Test that a value replaces a mapping when only one side is a mapping, and that
    overrides are logged at debug level.

    :param caplog: A built-in fixture from the pytest library to capture logs
    """
    caplog.set_level(logging.DEBUG, logger="mongomagic.utils")
    base = {"fetch": {"shell_sha256": None, "timeout": 60}}
    deep_update(base, {"fetch": {"shell_sha256": {"x86_64": "abc"}, "timeout": 60}})

    assert base == {"fetch": {"shell_sha256": {"x86_64": "abc"}, "timeout": 60}}
    assert "Overriding fetch.shell_sha256" in caplog.text
    assert "fetch.timeout" not in caplog.text


@pytest.mark.parametrize("base, override", [({"a": 1}, ["no lists"]), ("nope", {"a": 1})])
def test_deep_update_rejects_non_dicts(base, override):
    """
    Test that `deep_update` refuses anything but two dicts.

    :param base: The value to merge into
    :param override: The value to merge
    """
    with pytest.raises(TypeError, match="Cannot merge"):
        deep_update(base, override)
