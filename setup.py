##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

import os
import re

from setuptools import find_packages, setup


HERE = os.path.dirname(os.path.abspath(__file__))
extras = ["dev"]


def _read(*parts):
    with open(os.path.join(HERE, *parts)) as _file:
        return _file.read()


def get_version():
    """Read `__version__` without importing the package and its dependencies."""
    match = re.search(r'^__version__ = "([^"]+)"', _read("mongomagic", "__init__.py"), re.MULTILINE)
    return match.group(1)


def reqs(filename):
    """
    Parse a file under `requirements/`, skipping comments and blank lines.

    Returns:
        List[str]: the requirement specifiers in the file.
    """
    lines = (line.split("#", 1)[0].strip() for line in _read("requirements", filename).splitlines())
    return [line for line in lines if line]


setup(
    name="mongo-magic",
    author="mongo-magic developers",
    version=get_version(),
    description="Interactive provisioning of a PM2-supervised MongoDB on shared hosting.",
    long_description=_read("README.md"),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "Operating System :: POSIX :: Linux",
    ],
    keywords="mongodb pm2 provisioning shared hosting",
    license="MIT",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests.*", "tests"]),
    package_data={"mongomagic.server": ["*.yaml"]},
    install_requires=reqs("release.txt"),
    extras_require={extra: reqs(f"{extra}.txt") for extra in extras},
    entry_points={
        "console_scripts": [
            "mongo-magic=mongomagic.main:main",
        ]
    },
    include_package_data=True,
    zip_safe=False,
)
