##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""This module represents everything that goes into server configuration"""

import enum
import glob
import logging
import os
import shutil
import subprocess
import tarfile
from dataclasses import dataclass
from datetime import datetime
from importlib import resources
from typing import Dict

import yaml

from mongomagic.exceptions import BackupError, ConflictError, InstallConfigError, LoopbackError, ProcessManagerError
from mongomagic.server.managed_process import ManagedProcess, ProcessState
from mongomagic.server.prompts import prompt_menu, prompt_yes_no
from mongomagic.server.server_util import (
    DEFAULT_CONFIG,
    DESCRIPTOR_SUFFIX,
    USER_CONFIG,
    InstallConfig,
    MongoConfig,
    PathConfig,
    Pm2Descriptor,
    valid_ipv4,
    valid_port,
)
from mongomagic.utils import deep_update, expand_path, is_running, load_yaml


LOG = logging.getLogger("mongomagic")

ENGINE_PROCESS_NAME = "mongod"
ENGINE_ARTIFACT = "mongodb-linux-x86_64-rhel80-{version}.tgz"
BACKUP_NAME = "mongodb_backup_{timestamp}.tar.gz"
BACKUP_TIMESTAMP = "%Y%m%d_%H%M%S"
CONFIG_SECTIONS = ("install", "fetch", "process")


@dataclass(frozen=True)
class EngineRelease:
    """
    A MongoDB release offered in the version menu.

    Attributes:
        label: What the operator sees, e.g. "6.0".
        version: The full release number, e.g. "6.0.0".
    """

    label: str
    version: str

    @property
    def artifact(self) -> str:
        """The archive name published for this release."""
        return ENGINE_ARTIFACT.format(version=self.version)


VERSION_CHOICES: Dict[str, EngineRelease] = {
    "1": EngineRelease("6.0", "6.0.0"),
    "2": EngineRelease("7.0", "7.0.0"),
}

MEMORY_CHOICES: Dict[str, str] = {
    "1": "256M",
    "2": "512M",
    "3": "1G",
    "4": "2G",
    "5": "3G",
}


class ServerStatus(enum.Enum):
    """
    Represents different states that the provisioned server can be in.

    Attributes:
        RUNNING (int): The supervised engine is up. Numeric value: 0.
        NOT_INITIALIZED (int): No descriptor or engine config exists yet. Numeric value: 1.
        MISSING_BINARY (int): The engine binary behind the release symlink is gone. Numeric value: 2.
        NOT_RUNNING (int): Installed but stopped. Numeric value: 3.
        ERROR (int): The process manager could not be queried. Numeric value: 4.
        TRANSITIONING (int): The engine is starting or stopping. Numeric value: 5.
    """

    RUNNING = 0
    NOT_INITIALIZED = 1
    MISSING_BINARY = 2
    NOT_RUNNING = 3
    ERROR = 4
    TRANSITIONING = 5


def load_install_config(config_path: str = None, home_dir: str = None) -> InstallConfig:
    """
    Build the `InstallConfig` for a run.

    The packaged defaults are loaded first. On top of them goes either the file at
    `config_path` or, when that is not given, `~/.mongo-magic/config.yaml` if it exists.
    `home_dir` overrides the configured home directory.

    Args:
        config_path: An explicit configuration file to apply over the defaults.
        home_dir: A home directory to use instead of the configured one.

    Returns:
        The resolved configuration.

    Raises:
        InstallConfigError: If an explicit file is missing or a file is not a mapping
            of the expected sections.
    """
    with resources.files("mongomagic.server").joinpath(DEFAULT_CONFIG).open("r") as default_file:
        data = yaml.safe_load(default_file)

    if config_path is not None:
        override_path = expand_path(config_path)
        if not os.path.isfile(override_path):
            raise InstallConfigError(f"Unable to find configuration file at {override_path}")
    else:
        override_path = expand_path(USER_CONFIG)

    if os.path.isfile(override_path):
        LOG.debug(f"Reading configuration from {override_path}")
        try:
            override = load_yaml(override_path) or {}
        except yaml.YAMLError as exc:
            raise InstallConfigError(f"Unable to parse configuration file {override_path}: {exc}") from exc
        if not isinstance(override, dict):
            raise InstallConfigError(f"Configuration file {override_path} must contain a mapping.")
        unknown = [key for key in override if key not in CONFIG_SECTIONS]
        if unknown:
            raise InstallConfigError(f"Unknown configuration sections in {override_path}: {', '.join(unknown)}")
        not_mappings = [key for key, value in override.items() if value is not None and not isinstance(value, dict)]
        if not_mappings:
            raise InstallConfigError(f"Sections {', '.join(not_mappings)} in {override_path} must be mappings.")
        deep_update(data, {key: value for key, value in override.items() if value is not None})

    if home_dir is not None:
        data["install"]["home_dir"] = home_dir

    return InstallConfig(data)


def check_no_running_server():
    """
    Abort when a MongoDB engine is already running on this host.

    Raises:
        ConflictError: If a process named `mongod` exists.
    """
    if is_running(ENGINE_PROCESS_NAME, all_users=True):
        raise ConflictError("MongoDB is currently running. Exiting to avoid conflicts.")


def get_loopback_ip(command: str) -> str:
    """
    Ask the hosting platform's helper for this account's loopback address.

    Args:
        command: The helper command, e.g. "vs-loopback-ip -4".

    Returns:
        The IPv4 loopback address.

    Raises:
        LoopbackError: If the helper fails or prints something that is not an IPv4 address.
    """
    try:
        process = subprocess.run(command.split(), capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError) as exc:
        raise LoopbackError(f"Unable to get loopback address with '{command}': {exc}") from exc

    ip_address = process.stdout.strip()
    if not valid_ipv4(ip_address):
        raise LoopbackError(f"'{command}' returned '{ip_address}', which is not an IPv4 address.")
    LOG.debug(f"Loopback address is {ip_address}")
    return ip_address


def backup_data_dir(data_dir: str, backup_dir: str) -> str:
    """
    Archive `data_dir` into a timestamped `.tar.gz` inside `backup_dir`.

    Args:
        data_dir: The data directory to archive.
        backup_dir: The directory that receives the archive.

    Returns:
        The path of the archive.

    Raises:
        BackupError: If the archive could not be written. A partial archive is removed.
    """
    timestamp = datetime.now().strftime(BACKUP_TIMESTAMP)
    archive = os.path.join(backup_dir, BACKUP_NAME.format(timestamp=timestamp))
    try:
        with tarfile.open(archive, "w:gz") as tar:
            tar.add(data_dir, arcname=os.path.basename(os.path.normpath(data_dir)))
    except (OSError, tarfile.TarError) as exc:
        if os.path.exists(archive):
            os.remove(archive)
        raise BackupError(f"Unable to back up {data_dir} to {archive}: {exc}") from exc
    return archive


def clear_directory(path: str):
    """
    Delete everything inside `path`, keeping the directory itself.

    Args:
        path: The directory to empty.
    """
    for entry in os.scandir(path):
        if entry.is_dir(follow_symlinks=False):
            shutil.rmtree(entry.path)
        else:
            os.remove(entry.path)


def backup_and_reset(paths: PathConfig) -> str:
    """
    Offer to back up an existing data directory, then empty it.

    The directory is emptied whether or not the operator wants a backup. When a
    backup is requested and fails, nothing is deleted.

    Args:
        paths: The install locations.

    Returns:
        The backup archive path, or None when no backup was made.
    """
    data_dir = paths.get_data_dir()
    if not os.path.isdir(data_dir):
        return None

    LOG.warning("Existing MongoDB database found.")
    archive = None
    if prompt_yes_no("Do you want to back it up before overwriting?"):
        LOG.info("Backing up existing MongoDB database...")
        archive = backup_data_dir(data_dir, paths.backup_dir)
        LOG.info(f"Backup completed: {archive}")

    LOG.info("Overwriting existing MongoDB database...")
    clear_directory(data_dir)
    return archive


def select_version() -> EngineRelease:
    """Ask which MongoDB release to install."""
    options = {key: (release.label, release) for key, release in VERSION_CHOICES.items()}
    return prompt_menu("Select MongoDB version to install:", options)


def select_memory() -> str:
    """Ask for the memory limit PM2 enforces on the engine."""
    options = {key: (memory, memory) for key, memory in MEMORY_CHOICES.items()}
    return prompt_menu("Select memory limit for MongoDB:", options)


def create_install_dirs(paths: PathConfig):
    """Create the log, run and data directories of the install."""
    for directory in (paths.get_log_dir(), paths.get_run_dir(), paths.get_data_dir()):
        os.makedirs(directory, exist_ok=True)


def find_descriptor(paths: PathConfig, app_name: str = None) -> str:
    """
    Locate the PM2 descriptor of the install.

    Args:
        paths: The install locations.
        app_name: The PM2 application name. When omitted, the single descriptor in
            the install directory is used.

    Returns:
        The descriptor path, or None if it cannot be determined.
    """
    if app_name is not None:
        descriptor = paths.get_descriptor_path(app_name)
        return descriptor if os.path.exists(descriptor) else None

    descriptors = sorted(glob.glob(os.path.join(paths.get_mongodb_dir(), f"*{DESCRIPTOR_SUFFIX}")))
    if len(descriptors) > 1:
        LOG.error(f"Found {len(descriptors)} PM2 descriptors. Choose one with '--name'.")
        return None
    return descriptors[0] if descriptors else None


def pull_managed_process(config: InstallConfig, descriptor_path: str) -> ManagedProcess:
    """
    Build the `ManagedProcess` for an installed descriptor.

    Args:
        config: The install configuration.
        descriptor_path: The PM2 descriptor of the install.

    Returns:
        A `ManagedProcess` whose state has not been refreshed yet.

    Raises:
        InstallConfigError: If `mongo.cfg` has no usable address or port.
    """
    descriptor = Pm2Descriptor.read(descriptor_path)
    config_path = config.paths.get_config_path()
    mongo_config = MongoConfig.read(config_path)
    host = mongo_config.get_ip_address()
    port = mongo_config.get_port()
    if not isinstance(host, str) or not valid_ipv4(host):
        raise InstallConfigError(f"{config_path} has no valid IPv4 bindIp: {host!r}")
    if not isinstance(port, int) or isinstance(port, bool) or not valid_port(port):
        raise InstallConfigError(f"{config_path} has no valid port: {port!r}")

    return ManagedProcess(
        name=descriptor.name,
        descriptor_path=descriptor_path,
        pm_config=config.process,
        host=host,
        port=port,
        ready_timeout=config.paths.ready_timeout,
    )


def get_server_status(config: InstallConfig, app_name: str = None) -> ServerStatus:
    """
    Determines the current status of the provisioned server.

    Args:
        config: The install configuration.
        app_name: The PM2 application name, if more than one descriptor exists.

    Returns:
        An enum value representing the server's current state.
    """
    descriptor_path = find_descriptor(config.paths, app_name)
    if descriptor_path is None or not os.path.exists(config.paths.get_config_path()):
        return ServerStatus.NOT_INITIALIZED

    if not os.path.exists(config.paths.get_mongod_path()):
        return ServerStatus.MISSING_BINARY

    try:
        state = pull_managed_process(config, descriptor_path).refresh()
    except ProcessManagerError as exc:
        LOG.error(str(exc))
        return ServerStatus.ERROR

    if state == ProcessState.RUNNING:
        return ServerStatus.RUNNING
    if state == ProcessState.STOPPED:
        return ServerStatus.NOT_RUNNING
    return ServerStatus.TRANSITIONING
