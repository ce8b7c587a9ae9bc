##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""Utils relating to the provisioned MongoDB server"""

import json
import logging
import os
from typing import Dict, List

import pymongo
import yaml
from pymongo.errors import PyMongoError

from mongomagic.utils import atomic_write, expand_path, load_yaml


LOG = logging.getLogger("mongomagic")

# Constants for the provisioned server. The port never changes between runs.
MONGO_PORT = 5679
MONGO_CONFIG_FILE = "mongo.cfg"
BINARY_LINK = "mongodb-binary"
DESCRIPTOR_SUFFIX = ".pm2.json"
DEFAULT_CONFIG = "mongo_magic.yaml"
USER_CONFIG = os.path.join("~", ".mongo-magic", "config.yaml")

# Releases that no longer accept `storage.journal.enabled`
JOURNAL_OPTION_REMOVED = (6, 1)


def valid_ipv4(ip: str) -> bool:  # pylint: disable=C0103
    """
    Validates whether a given string is a valid IPv4 address.

    An IPv4 address consists of four octets separated by dots, where each octet
    is a number between 0 and 255 (inclusive).

    Args:
        ip: The string to validate as an IPv4 address.

    Returns:
        True if the input string is a valid IPv4 address, False otherwise.
    """
    if not ip:
        return False

    arr = ip.split(".")
    if len(arr) != 4:
        return False

    for i in arr:
        if not i.isdigit() or int(i) > 255:
            return False

    return True


def valid_port(port: int) -> bool:
    """
    Validates whether a given integer is a valid network port number.

    Args:
        port: The port number to validate.

    Returns:
        True if the port is valid, False otherwise.
    """
    if 0 < port < 65536:
        return True
    return False


class PathConfig:
    """
    Filesystem locations used by an install run.

    Every path template may reference `{home}`, which is replaced by the resolved
    home directory before `~` and environment variables are expanded.

    Attributes:
        home_dir (str): The operator's home directory.
        mongodb_dir (str): Root of the install (`<home>/mongodb` by default).
        profile (str): Shell profile receiving the PATH exports.
        backup_dir (str): Where backup archives of the data directory go.
        loopback_command (str): Command that prints the loopback IPv4 address.
        limited_user_db (str): Database the optional read/write user is scoped to.
        ready_timeout (int): Seconds to wait for the engine to answer after a start.
    """

    HOME_DIR: str = "~"
    MONGODB_DIR: str = "{home}/mongodb"
    PROFILE: str = "{home}/.bash_profile"
    BACKUP_DIR: str = "{home}"
    LOOPBACK_COMMAND: str = "vs-loopback-ip -4"
    LIMITED_USER_DB: str = "my-database"
    READY_TIMEOUT: int = 30

    def __init__(self, data: Dict):
        """
        Initializes a `PathConfig` from the `install` section of the configuration.

        Args:
            data: A dictionary that may contain `home_dir`, `mongodb_dir`, `profile`,
                `backup_dir`, `loopback_command`, `limited_user_db` and `ready_timeout`.
        """
        self.home_dir: str = expand_path(data.get("home_dir") or self.HOME_DIR)
        self.mongodb_dir: str = self._resolve(data.get("mongodb_dir", self.MONGODB_DIR))
        self.profile: str = self._resolve(data.get("profile", self.PROFILE))
        self.backup_dir: str = self._resolve(data.get("backup_dir", self.BACKUP_DIR))
        self.loopback_command: str = data.get("loopback_command", self.LOOPBACK_COMMAND)
        self.limited_user_db: str = data.get("limited_user_db", self.LIMITED_USER_DB)
        self.ready_timeout: int = int(data.get("ready_timeout", self.READY_TIMEOUT))

    def _resolve(self, template: str) -> str:
        return expand_path(template.format(home=self.home_dir))

    def __eq__(self, other: "PathConfig") -> bool:
        variables = (
            "home_dir",
            "mongodb_dir",
            "profile",
            "backup_dir",
            "loopback_command",
            "limited_user_db",
            "ready_timeout",
        )
        return all(getattr(self, attr) == getattr(other, attr) for attr in variables)

    def __repr__(self) -> str:
        return f"PathConfig({self.__dict__!r})"

    def get_mongodb_dir(self) -> str:
        """Return the root directory of the install."""
        return self.mongodb_dir

    def get_data_dir(self) -> str:
        """Return the engine's data directory."""
        return os.path.join(self.mongodb_dir, "db")

    def get_log_dir(self) -> str:
        """Return the engine's log directory."""
        return os.path.join(self.mongodb_dir, "log")

    def get_run_dir(self) -> str:
        """Return the directory holding the engine's pid file."""
        return os.path.join(self.mongodb_dir, "run")

    def get_config_path(self) -> str:
        """Return the path of the generated engine configuration file."""
        return os.path.join(self.mongodb_dir, MONGO_CONFIG_FILE)

    def get_binary_link(self) -> str:
        """Return the path of the symlink pointing at the installed engine release."""
        return os.path.join(self.mongodb_dir, BINARY_LINK)

    def get_mongod_path(self) -> str:
        """Return the engine binary, reached through the release symlink."""
        return os.path.join(self.get_binary_link(), "bin", "mongod")

    def get_descriptor_path(self, app_name: str) -> str:
        """
        Return the path of the PM2 descriptor for `app_name`.

        Args:
            app_name: The PM2 application name chosen by the operator.
        """
        return os.path.join(self.mongodb_dir, f"{app_name}{DESCRIPTOR_SUFFIX}")


class FetchConfig:
    """
    Download locations and pinned versions for the three installed artifacts.

    URL templates take `{artifact}` (engine) or `{version}` (shell client, tools).
    """

    ENGINE_URL: str = "https://fastdl.mongodb.org/linux/{artifact}"
    ENGINE_CHECKSUM_URL: str = "https://fastdl.mongodb.org/linux/{artifact}.sha256"
    SHELL_VERSION: str = "1.5.2"
    SHELL_URL: str = "https://downloads.mongodb.com/compass/mongosh-{version}-linux-x64.tgz"
    TOOLS_VERSION: str = "100.5.4"
    TOOLS_URL: str = "https://fastdl.mongodb.org/tools/db/mongodb-database-tools-rhel80-x86_64-{version}.tgz"
    TIMEOUT: int = 60

    def __init__(self, data: Dict):
        self.engine_url: str = data.get("engine_url", self.ENGINE_URL)
        self.engine_checksum_url: str = data.get("engine_checksum_url", self.ENGINE_CHECKSUM_URL)
        self.shell_version: str = str(data.get("shell_version", self.SHELL_VERSION))
        self.shell_url: str = data.get("shell_url", self.SHELL_URL)
        self.shell_sha256: str = data.get("shell_sha256")
        self.tools_version: str = str(data.get("tools_version", self.TOOLS_VERSION))
        self.tools_url: str = data.get("tools_url", self.TOOLS_URL)
        self.tools_sha256: str = data.get("tools_sha256")
        self.timeout: int = int(data.get("timeout", self.TIMEOUT))
        self.verify_checksums: bool = bool(data.get("verify_checksums", True))

    def __repr__(self) -> str:
        return f"FetchConfig({self.__dict__!r})"

    def get_engine_url(self, artifact: str) -> str:
        """Return the download URL of the engine archive `artifact`."""
        return self.engine_url.format(artifact=artifact)

    def get_engine_checksum_url(self, artifact: str) -> str:
        """Return the URL of the published SHA-256 file for `artifact`, if any."""
        if not self.engine_checksum_url:
            return None
        return self.engine_checksum_url.format(artifact=artifact)

    def get_shell_url(self) -> str:
        """Return the download URL of the shell client archive."""
        return self.shell_url.format(version=self.shell_version)

    def get_tools_url(self) -> str:
        """Return the download URL of the database tools archive."""
        return self.tools_url.format(version=self.tools_version)


class ProcessManagerConfig:
    """
    Commands used to drive the process manager.

    `start_command` takes `{descriptor}`, `stop_command` takes `{name}`.
    `status_command` must print the process list as JSON (`pm2 jlist`).
    """

    START_COMMAND: str = "pm2 start {descriptor}"
    STOP_COMMAND: str = "pm2 stop {name}"
    STATUS_COMMAND: str = "pm2 jlist"

    def __init__(self, data: Dict):
        self.start_command: str = data.get("start_command", self.START_COMMAND)
        self.stop_command: str = data.get("stop_command", self.STOP_COMMAND)
        self.status_command: str = data.get("status_command", self.STATUS_COMMAND)

    def __repr__(self) -> str:
        return f"ProcessManagerConfig({self.__dict__!r})"

    def get_start_command(self, descriptor: str) -> List[str]:
        """Return the argv that starts the application described by `descriptor`."""
        return self.start_command.format(descriptor=descriptor).split()

    def get_stop_command(self, name: str) -> List[str]:
        """Return the argv that stops the application `name`."""
        return self.stop_command.format(name=name).split()

    def get_status_command(self) -> List[str]:
        """Return the argv that lists managed applications as JSON."""
        return self.status_command.split()


class InstallConfig:  # pylint: disable=R0903
    """
    The configuration threaded through every provisioning step.

    Attributes:
        paths (PathConfig): Filesystem locations and install-wide settings.
        fetch (FetchConfig): Artifact URLs, versions and integrity settings.
        process (ProcessManagerConfig): Process manager commands.
    """

    def __init__(self, data: Dict):
        """
        Args:
            data: A dictionary with optional `install`, `fetch` and `process` sections.
        """
        self.paths: PathConfig = PathConfig(data.get("install") or {})
        self.fetch: FetchConfig = FetchConfig(data.get("fetch") or {})
        self.process: ProcessManagerConfig = ProcessManagerConfig(data.get("process") or {})

    def __repr__(self) -> str:
        return f"InstallConfig(paths={self.paths!r}, fetch={self.fetch!r}, process={self.process!r})"


class MongoConfig:
    """
    `MongoConfig` renders the engine configuration file (`mongo.cfg`).

    The file is produced from a fixed template in full every time; there is no
    merge with a previous version.

    Attributes:
        data (Dict): The nested configuration that will be written as YAML.
    """

    def __init__(self, data: Dict):
        self.data: Dict = data

    @classmethod
    def from_template(cls, paths: PathConfig, bind_ip: str, version: str) -> "MongoConfig":
        """
        Build the engine configuration for an install.

        Args:
            paths: The install locations.
            bind_ip: The loopback address the engine binds to.
            version: The engine release being installed, e.g. "6.0.0".

        Returns:
            A `MongoConfig` holding the rendered template.
        """
        storage = {
            "dbPath": os.path.join(paths.get_data_dir(), ""),
            "directoryPerDB": True,
            "engine": "wiredTiger",
            "wiredTiger": {
                "engineConfig": {"journalCompressor": "snappy", "cacheSizeGB": 1},
                "collectionConfig": {"blockCompressor": "snappy"},
            },
        }
        if journal_option_supported(version):
            storage["journal"] = {"enabled": True}

        data = {
            "processManagement": {
                "fork": False,
                "pidFilePath": os.path.join(paths.get_run_dir(), f"mongodb-{MONGO_PORT}.pid"),
            },
            "net": {
                "bindIp": bind_ip,
                "port": MONGO_PORT,
                "unixDomainSocket": {"enabled": False},
            },
            "systemLog": {
                "verbosity": 0,
                "quiet": True,
                "destination": "file",
                "path": os.path.join(paths.get_log_dir(), "mongodb.log"),
                "logRotate": "reopen",
                "logAppend": True,
            },
            "storage": storage,
        }
        return cls(data)

    @classmethod
    def read(cls, filename: str) -> "MongoConfig":
        """Load an existing engine configuration file."""
        return cls(load_yaml(filename) or {})

    def get_ip_address(self) -> str:
        """Return the address the engine binds to."""
        return self.data.get("net", {}).get("bindIp")

    def get_port(self) -> int:
        """Return the port the engine listens on."""
        return self.data.get("net", {}).get("port")

    def dumps(self) -> str:
        """Return the configuration as YAML text."""
        return yaml.safe_dump(self.data, default_flow_style=False, sort_keys=False)

    def write(self, filename: str):
        """Atomically write the configuration to `filename`."""
        atomic_write(filename, self.dumps())


def journal_option_supported(version: str) -> bool:
    """
    Check whether the engine release still accepts `storage.journal.enabled`.

    Args:
        version: A release string such as "6.0.0".

    Returns:
        True for releases older than 6.1.
    """
    parts = tuple(int(p) for p in version.split(".")[:2])
    return parts < JOURNAL_OPTION_REMOVED


class Pm2Descriptor:
    """
    The PM2 ecosystem file that supervises the engine.

    Attributes:
        name (str): The PM2 application name.
        script (str): The engine binary.
        args (str): Arguments passed to the engine.
        cwd (str): Working directory of the engine.
        max_memory_restart (str): Memory threshold at which PM2 restarts the engine.
    """

    def __init__(self, name: str, script: str, args: str, cwd: str, max_memory_restart: str):
        self.name = name
        self.script = script
        self.args = args
        self.cwd = cwd
        self.max_memory_restart = max_memory_restart

    @classmethod
    def for_install(cls, paths: PathConfig, app_name: str, memory: str) -> "Pm2Descriptor":
        """
        Build the descriptor for an install.

        Args:
            paths: The install locations.
            app_name: The PM2 application name.
            memory: One of the memory menu values, e.g. "1G".
        """
        return cls(
            name=app_name,
            script=paths.get_mongod_path(),
            args=f"--config {paths.get_config_path()} --auth",
            cwd=paths.get_mongodb_dir(),
            max_memory_restart=memory,
        )

    @classmethod
    def read(cls, filename: str) -> "Pm2Descriptor":
        """Load the first application of an existing descriptor file."""
        with open(filename, "r") as f:  # pylint: disable=C0103
            app = json.load(f)["apps"][0]
        return cls(app["name"], app["script"], app["args"], app["cwd"], app["max_memory_restart"])

    def get_data(self) -> Dict:
        """Return the descriptor in PM2's ecosystem format."""
        return {
            "apps": [
                {
                    "name": self.name,
                    "script": self.script,
                    "args": self.args,
                    "cwd": self.cwd,
                    "max_memory_restart": self.max_memory_restart,
                }
            ]
        }

    def write(self, filename: str):
        """Atomically write the descriptor to `filename`."""
        atomic_write(filename, json.dumps(self.get_data(), indent=2) + "\n")


class MongoUsers:
    """
    `MongoUsers` collects database users to create and applies them to a running engine.

    Credentials live only in memory. They are dropped once `apply_to_mongo` has run,
    whether or not the engine accepted them.

    Attributes:
        users (Dict[str, User]): Pending users keyed by username.
    """

    class User:
        """
        A single pending database user.

        Attributes:
            password (str): The plaintext password handed to `createUser`.
            roles (List[Dict]): Role documents, e.g. `[{"role": "root", "db": "admin"}]`.
        """

        def __init__(self, password: str, role: str, database: str):
            self.password: str = password
            self.roles: List[Dict[str, str]] = [{"role": role, "db": database}]

        def __repr__(self) -> str:
            return f"User(roles={self.roles!r})"

    def __init__(self):
        self.users: Dict[str, MongoUsers.User] = {}

    def add_user(self, user: str, password: str, role: str = "root", database: str = "admin") -> bool:
        """
        Queue a user for creation.

        Args:
            user: The username.
            password: The plaintext password.
            role: The role to grant.
            database: The database the role applies to.

        Returns:
            True if the user was queued, False if that username is already queued.
        """
        if user in self.users:
            return False
        self.users[user] = self.User(password, role, database)
        return True

    def apply_to_mongo(  # pylint: disable=R0913
        self,
        host: str,
        port: int,
        auth_user: str = None,
        auth_password: str = None,
        timeout_ms: int = 10000,
    ) -> List[str]:
        """
        Create every queued user on the engine at `host:port`.

        Without `auth_user` the connection is unauthenticated, which the engine only
        permits for creating the first user over the loopback interface. Errors
        reported by the engine are logged and do not stop the remaining users.

        Args:
            host: The address of the engine.
            port: The port of the engine.
            auth_user: An existing administrative user to authenticate as.
            auth_password: The password of `auth_user`.
            timeout_ms: Server selection timeout in milliseconds.

        Returns:
            The usernames the engine accepted.
        """
        client_kwargs = {"directConnection": True, "serverSelectionTimeoutMS": timeout_ms}
        if auth_user is not None:
            client_kwargs.update(username=auth_user, password=auth_password, authSource="admin")

        created = []
        client = pymongo.MongoClient(host=host, port=port, **client_kwargs)
        try:
            for user, data in self.users.items():
                try:
                    client.admin.command("createUser", user, pwd=data.password, roles=data.roles)
                except PyMongoError as exc:
                    LOG.error(f"Unable to create user '{user}': {exc}")
                    continue
                created.append(user)
                LOG.info(f"User '{user}' created with roles {data.roles}.")
        finally:
            client.close()
            self.users.clear()
        return created
