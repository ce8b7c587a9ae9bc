##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Tests for the `main.py` module.
"""

import pytest
from _pytest.capture import CaptureFixture
from pytest_mock import MockerFixture

from mongomagic.exceptions import ConflictError
from mongomagic.main import main


@pytest.fixture
def quiet_logging(mocker: MockerFixture):
    """
    Keep `main` from attaching handlers to the package logger.

    Args:
        mocker: PyTest mocker fixture.
    """
    return mocker.patch("mongomagic.main.setup_logging")


def test_main_without_arguments(mocker: MockerFixture, capsys: CaptureFixture):
    """
    Test that running with no arguments prints the help.

    Args:
        mocker: PyTest mocker fixture.
        capsys: PyTest capsys fixture.
    """
    mocker.patch("sys.argv", ["mongo-magic"])
    assert main() == 1
    assert "usage: mongo-magic" in capsys.readouterr().out


def test_main_success(mocker: MockerFixture, quiet_logging):
    """
    Test that a successful command exits with status 0.

    Args:
        mocker: PyTest mocker fixture.
        quiet_logging: Patched `setup_logging`.
    """
    mocker.patch("sys.argv", ["mongo-magic", "-lvl", "debug", "server", "status"])
    status_mock = mocker.patch("mongomagic.cli.commands.server.status_server")

    with pytest.raises(SystemExit) as excinfo:
        main()

    assert excinfo.value.code is None
    status_mock.assert_called_once()
    assert quiet_logging.call_args[1]["log_level"] == "DEBUG"


def test_main_error_exits_with_one(mocker: MockerFixture, caplog: "Fixture", quiet_logging):  # noqa: F821
    """
    Test that an error raised by a command is logged and turns into exit status 1.

    Args:
        mocker: PyTest mocker fixture.
        caplog: PyTest caplog fixture.
        quiet_logging: Patched `setup_logging`.
    """
    mocker.patch("sys.argv", ["mongo-magic", "install"])
    mocker.patch(
        "mongomagic.cli.commands.install.install_server",
        side_effect=ConflictError("MongoDB is currently running. Exiting to avoid conflicts."),
    )

    with pytest.raises(SystemExit) as excinfo:
        main()

    assert excinfo.value.code == 1
    assert "MongoDB is currently running. Exiting to avoid conflicts." in caplog.text


def test_main_no_color(mocker: MockerFixture, quiet_logging):
    """
    Test that `--no-color` turns colored logging off and explicit arguments win over `sys.argv`.

    Args:
        mocker: PyTest mocker fixture.
        quiet_logging: Patched `setup_logging`.
    """
    mocker.patch("sys.argv", ["mongo-magic"])
    mocker.patch("mongomagic.cli.commands.server.status_server")

    with pytest.raises(SystemExit):
        main(["--no-color", "server", "status"])

    assert quiet_logging.call_args[1]["colors"] is False
    assert quiet_logging.call_args[1]["log_level"] == "INFO"


def test_main_server_without_action(mocker: MockerFixture, quiet_logging):
    """
    Test that `mongo-magic server` with no action exits with a non-zero status and runs nothing.

    Args:
        mocker: PyTest mocker fixture.
        quiet_logging: Patched `setup_logging`.
    """
    status_mock = mocker.patch("mongomagic.cli.commands.server.status_server")

    with pytest.raises(SystemExit) as excinfo:
        main(["server"])

    assert excinfo.value.code == 2
    status_mock.assert_not_called()
