##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
Fetching, verifying and installing the MongoDB release archives.

Archives are downloaded and extracted inside a staging directory that lives in the
install directory. Extracted releases are only moved into place once every archive
has been fetched, so a failed download never leaves a half-installed system.
"""

import hashlib
import logging
import os
import shutil
import tarfile
import tempfile
from dataclasses import dataclass
from typing import Dict, List, Tuple
from urllib.parse import urlparse

import requests

from mongomagic.exceptions import ChecksumError, DownloadError
from mongomagic.server.server_util import FetchConfig


LOG = logging.getLogger("mongomagic")

CHUNK_SIZE = 1024 * 1024


@dataclass
class Artifact:
    """
    One archive to install.

    Attributes:
        name: Short name used in logs and as the key of the installed path.
        url: Where the archive is downloaded from.
        sha256: A pinned SHA-256 digest, if known.
        checksum_url: A URL publishing the SHA-256 digest, if any.
    """

    name: str
    url: str
    sha256: str = None
    checksum_url: str = None

    @property
    def filename(self) -> str:
        """The archive's file name."""
        return os.path.basename(urlparse(self.url).path)


def build_artifacts(fetch: FetchConfig, engine_artifact: str) -> List[Artifact]:
    """
    List the archives an install needs, in download order.

    Args:
        fetch: The download configuration.
        engine_artifact: The engine archive name chosen from the version menu.

    Returns:
        The engine, shell client and tools artifacts.
    """
    return [
        Artifact(
            "engine",
            fetch.get_engine_url(engine_artifact),
            checksum_url=fetch.get_engine_checksum_url(engine_artifact),
        ),
        Artifact("shell", fetch.get_shell_url(), sha256=fetch.shell_sha256),
        Artifact("tools", fetch.get_tools_url(), sha256=fetch.tools_sha256),
    ]


def download(artifact: Artifact, dest_dir: str, timeout: int) -> Tuple[str, str]:
    """
    Stream `artifact` into `dest_dir`.

    Args:
        artifact: The archive to download.
        dest_dir: The directory that receives the file.
        timeout: Connect/read timeout in seconds.

    Returns:
        A tuple of the downloaded file path and its SHA-256 hex digest.

    Raises:
        DownloadError: On any network or HTTP error.
    """
    path = os.path.join(dest_dir, artifact.filename)
    digest = hashlib.sha256()
    LOG.info(f"Downloading {artifact.url}")
    try:
        with requests.get(artifact.url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(path, "wb") as archive:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    archive.write(chunk)
                    digest.update(chunk)
    except requests.RequestException as exc:
        raise DownloadError(f"Download failed for {artifact.url}: {exc}") from exc
    return path, digest.hexdigest()


def expected_checksum(artifact: Artifact, timeout: int) -> str:
    """
    Find the SHA-256 digest `artifact` should have.

    A pinned digest wins over a published one.

    Returns:
        The lowercase hex digest, or None when neither is available.

    Raises:
        DownloadError: If the published checksum cannot be fetched.
    """
    if artifact.sha256:
        return artifact.sha256.strip().lower()
    if not artifact.checksum_url:
        return None

    try:
        response = requests.get(artifact.checksum_url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise DownloadError(f"Unable to fetch checksum from {artifact.checksum_url}: {exc}") from exc
    # Format: "<digest>  <filename>"
    fields = response.text.split()
    if not fields:
        raise DownloadError(f"Empty checksum file at {artifact.checksum_url}")
    return fields[0].lower()


def verify_checksum(artifact: Artifact, actual: str, expected: str):
    """
    Compare a downloaded archive's digest with the expected one.

    Raises:
        ChecksumError: If the digests differ.
    """
    if expected is None:
        LOG.warning(f"No checksum known for {artifact.filename}. Skipping integrity check.")
        return
    if actual != expected:
        raise ChecksumError(artifact.filename, expected, actual)
    LOG.debug(f"Checksum verified for {artifact.filename}")


def _checked_members(tar: tarfile.TarFile) -> List[tarfile.TarInfo]:
    members = tar.getmembers()
    for member in members:
        parts = member.name.split("/")
        if os.path.isabs(member.name) or ".." in parts:
            raise DownloadError(f"Refusing to extract unsafe path '{member.name}'")
    return members


def extract(archive: str, dest_dir: str) -> str:
    """
    Extract a release archive whose entries share one top-level directory.

    Args:
        archive: The `.tgz` file.
        dest_dir: Where to extract it.

    Returns:
        The name of the top-level directory the archive unpacked to.

    Raises:
        DownloadError: If the archive is unreadable, unsafe, or not a single-directory release.
    """
    try:
        with tarfile.open(archive, "r:gz") as tar:
            members = _checked_members(tar)
            roots = {member.name.split("/")[0] for member in members if member.name not in ("", ".")}
            if len(roots) != 1:
                raise DownloadError(f"{os.path.basename(archive)} does not unpack to a single directory.")
            if hasattr(tarfile, "data_filter"):
                tar.extractall(dest_dir, members=members, filter="data")
            else:
                tar.extractall(dest_dir, members=members)
    except (tarfile.TarError, OSError) as exc:
        raise DownloadError(f"Unable to extract {os.path.basename(archive)}: {exc}") from exc
    return roots.pop()


class StagingArea:
    """
    A temporary directory inside the install directory for fetching releases.

    Used as a context manager. The directory is always removed on exit, so any
    release that was not promoted disappears with it.

    Attributes:
        parent_dir (str): The install directory releases are promoted into.
        path (str): The staging directory, set on enter.
        staged (Dict[str, str]): Artifact name mapped to its extracted directory name.
    """

    def __init__(self, parent_dir: str):
        self.parent_dir = parent_dir
        self.path: str = None
        self.staged: Dict[str, str] = {}

    def __enter__(self) -> "StagingArea":
        self.path = tempfile.mkdtemp(prefix=".staging-", dir=self.parent_dir)
        os.makedirs(os.path.join(self.path, "downloads"))
        os.makedirs(os.path.join(self.path, "extracted"))
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is not None:
            LOG.error("Install aborted. Removing partially fetched files.")
        shutil.rmtree(self.path, ignore_errors=True)
        return False

    def stage(self, artifact: Artifact, timeout: int, verify: bool = True) -> str:
        """
        Download, verify and extract `artifact` into the staging directory.

        Returns:
            The name of the extracted top-level directory.
        """
        archive, digest = download(artifact, os.path.join(self.path, "downloads"), timeout)
        if verify:
            verify_checksum(artifact, digest, expected_checksum(artifact, timeout))
        root = extract(archive, os.path.join(self.path, "extracted"))
        os.remove(archive)
        self.staged[artifact.name] = root
        LOG.info(f"Extracted {artifact.filename} to {root}")
        return root

    def promote(self) -> Dict[str, str]:
        """
        Move every staged release into the install directory.

        An existing directory with the same name is replaced.

        Returns:
            Artifact name mapped to its installed directory.
        """
        installed = {}
        for name, root in self.staged.items():
            source = os.path.join(self.path, "extracted", root)
            target = os.path.join(self.parent_dir, root)
            if os.path.lexists(target):
                retired = os.path.join(self.path, f"retired-{root}")
                os.replace(target, retired)
            os.replace(source, target)
            installed[name] = target
        return installed


def fetch_and_install(fetch: FetchConfig, mongodb_dir: str, engine_artifact: str) -> Dict[str, str]:
    """
    Fetch the engine, shell client and tools and move them into `mongodb_dir`.

    Args:
        fetch: The download configuration.
        mongodb_dir: The install directory.
        engine_artifact: The engine archive chosen from the version menu.

    Returns:
        A dict with the installed directories under "engine", "shell" and "tools".
    """
    with StagingArea(mongodb_dir) as staging:
        for artifact in build_artifacts(fetch, engine_artifact):
            staging.stage(artifact, fetch.timeout, verify=fetch.verify_checksums)
        return staging.promote()
