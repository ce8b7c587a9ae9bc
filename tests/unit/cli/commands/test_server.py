##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Tests for the `server.py` file of the `cli/` folder.
"""

from argparse import Namespace

import pytest
from _pytest.capture import CaptureFixture
from pytest_mock import MockerFixture

from mongomagic.cli.commands.server import ServerCommand
from tests.fixture_types import FixtureCallable


@pytest.mark.parametrize("subcommand", ["status", "start", "stop", "restart"])
def test_add_parser_sets_up_server_command(create_parser: FixtureCallable, subcommand: str):
    """
    Test that every `server` subcommand parses and accepts the shared options.

    Args:
        create_parser: A fixture to help create a parser.
        subcommand: The subcommand to parse.
    """
    command = ServerCommand()
    parser = create_parser(command)
    args = parser.parse_args(["server", subcommand, "--name", "mydb", "--home", "/tmp/sandbox"])
    assert args.func.__name__ == command.process_command.__name__
    assert args.commands == subcommand
    assert args.name == "mydb"
    assert args.home == "/tmp/sandbox"
    assert args.config is None


@pytest.mark.parametrize(
    "subcommand, function",
    [
        ("status", "status_server"),
        ("start", "start_server"),
        ("stop", "stop_server"),
        ("restart", "restart_server"),
    ],
)
def test_process_command_dispatch(mocker: MockerFixture, subcommand: str, function: str):
    """
    Ensure each subcommand calls its server function with the parsed locations.

    Args:
        mocker: PyTest mocker fixture.
        subcommand: The subcommand given on the command line.
        function: The name of the function it should call.
    """
    mock = mocker.patch(f"mongomagic.cli.commands.server.{function}")
    ServerCommand().process_command(Namespace(commands=subcommand, name="mydb", home=None, config="my.yaml"))
    mock.assert_called_once_with(home_dir=None, config_path="my.yaml", app_name="mydb")


def test_server_without_action_is_usage_error(create_parser: FixtureCallable, capsys: CaptureFixture):
    """
    Ensure `server` on its own is rejected by the parser with a non-zero exit code.

    Args:
        create_parser: A fixture to help create a parser.
        capsys: PyTest capsys fixture.
    """
    parser = create_parser(ServerCommand())
    with pytest.raises(SystemExit) as excinfo:
        parser.parse_args(["server"])
    assert excinfo.value.code == 2
    assert "<action>" in capsys.readouterr().err
