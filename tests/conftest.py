##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Fixtures shared by the whole mongo-magic test suite.

Module specific fixtures live in `tests/fixtures/` and are loaded as plugins below.
"""

import logging
import os
from glob import glob

import pytest
from _pytest.tmpdir import TempPathFactory

from tests.fixture_types import FixtureCallable, FixtureStr


# pylint: disable=redefined-outer-name

TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
pytest_plugins = [
    "tests.fixtures." + os.path.splitext(os.path.basename(fixture_file))[0]
    for fixture_file in sorted(glob(os.path.join(TESTS_DIR, "fixtures", "*.py")))
    if os.path.basename(fixture_file) != "__init__.py"
]


@pytest.fixture(autouse=True)
def propagating_package_logger():
    """
    Make sure records from the `mongomagic` logger reach `caplog`.

    `setup_logging` turns propagation off; this puts it back after every test.
    """
    logger = logging.getLogger("mongomagic")
    yield logger
    logger.propagate = True
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


@pytest.fixture(scope="session")
def temp_output_dir(tmp_path_factory: TempPathFactory) -> FixtureStr:
    """
    One scratch directory shared by every test in the run.

    :param tmp_path_factory: A built in factory with pytest to help create temp paths for testing
    :returns: The path to the scratch directory
    """
    return str(tmp_path_factory.mktemp("mongomagic_output"))


@pytest.fixture(scope="session")
def create_testing_dir() -> FixtureCallable:
    """
    Return a helper that creates (or reuses) `base_dir/sub_dir` and returns its path.
    """

    def _create_testing_dir(base_dir: str, sub_dir: str) -> str:
        testing_dir = os.path.join(base_dir, sub_dir)
        os.makedirs(testing_dir, exist_ok=True)
        return testing_dir

    return _create_testing_dir
