##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""Main functions for provisioning and running the MongoDB server."""

import logging
import os
from typing import Dict

from mongomagic.server.fetch import fetch_and_install
from mongomagic.server.managed_process import ManagedProcess
from mongomagic.server.prompts import prompt_app_name, prompt_credentials, prompt_yes_no
from mongomagic.server.server_config import (
    EngineRelease,
    ServerStatus,
    backup_and_reset,
    check_no_running_server,
    create_install_dirs,
    find_descriptor,
    get_loopback_ip,
    get_server_status,
    load_install_config,
    pull_managed_process,
    select_memory,
    select_version,
)
from mongomagic.server.server_util import MONGO_PORT, InstallConfig, MongoConfig, MongoUsers, PathConfig, Pm2Descriptor
from mongomagic.utils import atomic_symlink, ensure_line_in_file


LOG = logging.getLogger("mongomagic")

PATH_EXPORT = "export PATH=$PATH:{bin_dir}"
PANEL_LOCATION = "Virtuaalserverid -> Veebiserver -> PM2 protsessid (Node.js)"


def update_profile(paths: PathConfig, installed: Dict[str, str]):
    """
    Make sure the shell client and tools are on the operator's PATH.

    Each export line is written at most once, so reruns do not pile up duplicates.

    Args:
        paths: The install locations.
        installed: The installed directories returned by the fetch pipeline.
    """
    for name in ("shell", "tools"):
        line = PATH_EXPORT.format(bin_dir=os.path.join(installed[name], "bin"))
        if ensure_line_in_file(paths.profile, line):
            LOG.info(f"Added {name} binaries to PATH in {paths.profile}")
        else:
            LOG.debug(f"{paths.profile} already exports {name} binaries")


def write_install_files(  # pylint: disable=R0913
    paths: PathConfig,
    release: EngineRelease,
    memory: str,
    app_name: str,
    bind_ip: str,
    installed: Dict[str, str],
) -> str:
    """
    Point the release symlink at the new engine and write `mongo.cfg` and the PM2 descriptor.

    Args:
        paths: The install locations.
        release: The installed engine release.
        memory: The PM2 memory restart threshold.
        app_name: The PM2 application name.
        bind_ip: The loopback address.
        installed: The installed directories returned by the fetch pipeline.

    Returns:
        The path of the PM2 descriptor.
    """
    atomic_symlink(installed["engine"], paths.get_binary_link())

    MongoConfig.from_template(paths, bind_ip, release.version).write(paths.get_config_path())
    LOG.info("Mongo CFG created.")

    descriptor_path = paths.get_descriptor_path(app_name)
    Pm2Descriptor.for_install(paths, app_name, memory).write(descriptor_path)
    LOG.info("MongoDB PM2 JSON created.")
    return descriptor_path


def provision_users(paths: PathConfig, host: str, port: int):
    """
    Create the root user and, if wanted, a read/write user on the running engine.

    The root user is created through the engine's localhost exception. The limited
    user is then created while authenticated as root. Credentials are never stored.

    Args:
        paths: The install locations.
        host: The address of the running engine.
        port: The port of the running engine.
    """
    users = MongoUsers()

    LOG.info("Creating new root user.")
    username, password = prompt_credentials("Enter new username", "Enter new password")
    users.add_user(username, password, role="root", database="admin")
    users.apply_to_mongo(host, port)

    LOG.warning("It is recommended to create a new user with read/write permissions.")
    if prompt_yes_no("Do you want to create a new user with limited permissions?"):
        new_username, new_password = prompt_credentials(
            "Enter new username for limited access", "Enter password for new user"
        )
        users.add_user(new_username, new_password, role="readWrite", database=paths.limited_user_db)
        if users.apply_to_mongo(host, port, auth_user=username, auth_password=password):
            LOG.info("New user created with read/write permissions.")


def install_server(home_dir: str = None, config_path: str = None) -> bool:
    """
    Run the full interactive provisioning workflow.

    Steps: preflight, backup and reset, menus, fetch and install, config and
    descriptor generation, PM2 start, user provisioning. Any fatal problem raises
    a `MongoMagicError` subclass and stops the run.

    Args:
        home_dir: A home directory to install into instead of the configured one.
        config_path: An explicit configuration file.

    Returns:
        True once the server is running with its users provisioned.
    """
    config = load_install_config(config_path=config_path, home_dir=home_dir)
    paths = config.paths

    check_no_running_server()
    bind_ip = get_loopback_ip(paths.loopback_command)

    backup_and_reset(paths)

    release = select_version()
    memory = select_memory()
    app_name = prompt_app_name()

    create_install_dirs(paths)
    installed = fetch_and_install(config.fetch, paths.get_mongodb_dir(), release.artifact)
    descriptor_path = write_install_files(paths, release, memory, app_name, bind_ip, installed)
    update_profile(paths, installed)

    LOG.info("Starting MongoDB...")
    process = ManagedProcess(
        name=app_name,
        descriptor_path=descriptor_path,
        pm_config=config.process,
        host=bind_ip,
        port=MONGO_PORT,
        ready_timeout=paths.ready_timeout,
    )
    process.start()
    LOG.info("MongoDB started successfully.")

    provision_users(paths, bind_ip, MONGO_PORT)

    LOG.info("Setup MongoDB as new PM2 app at Zone.")
    LOG.info(PANEL_LOCATION)
    LOG.info(f"Path for app: {descriptor_path}")
    return True


def _pull_process(config: InstallConfig, app_name: str) -> ManagedProcess:
    descriptor_path = find_descriptor(config.paths, app_name)
    return pull_managed_process(config, descriptor_path)


def status_server(home_dir: str = None, config_path: str = None, app_name: str = None):
    """
    Retrieves and displays the current status of the provisioned server.
    """
    config = load_install_config(config_path=config_path, home_dir=home_dir)
    current_status = get_server_status(config, app_name)
    if current_status == ServerStatus.NOT_INITIALIZED:
        LOG.info("MongoDB has not been provisioned.")
        LOG.info("Please provision it by running 'mongo-magic install'")
    elif current_status == ServerStatus.MISSING_BINARY:
        LOG.info(f"Unable to find the MongoDB binary at {config.paths.get_mongod_path()}.")
        LOG.info("Run 'mongo-magic install' again to reinstall it.")
    elif current_status == ServerStatus.NOT_RUNNING:
        LOG.info("MongoDB is not running.")
    elif current_status == ServerStatus.TRANSITIONING:
        LOG.info("MongoDB is starting or stopping.")
    elif current_status == ServerStatus.RUNNING:
        LOG.info("MongoDB is running.")
    return current_status


def start_server(home_dir: str = None, config_path: str = None, app_name: str = None) -> bool:
    """
    Starts the provisioned server through PM2.

    Returns:
        True if the server was started, False if it was not in a state to start.
    """
    config = load_install_config(config_path=config_path, home_dir=home_dir)
    current_status = get_server_status(config, app_name)
    if current_status != ServerStatus.NOT_RUNNING:
        if current_status == ServerStatus.RUNNING:
            LOG.info("MongoDB is already running. Stop it with 'mongo-magic server stop' first.")
        else:
            LOG.info("MongoDB cannot be started. Check 'mongo-magic server status'.")
        return False

    _pull_process(config, app_name).start()
    return True


def stop_server(home_dir: str = None, config_path: str = None, app_name: str = None) -> bool:
    """
    Stops the running server through PM2.

    Returns:
        True if the server was stopped, False if it was not running.
    """
    config = load_install_config(config_path=config_path, home_dir=home_dir)
    if get_server_status(config, app_name) != ServerStatus.RUNNING:
        LOG.info("There is no instance of MongoDB running.")
        LOG.info("Start it first with 'mongo-magic server start'")
        return False

    _pull_process(config, app_name).stop()
    return True


def restart_server(home_dir: str = None, config_path: str = None, app_name: str = None) -> bool:
    """
    Restarts the running server.

    Returns:
        True if the server was restarted, False if it was not running.
    """
    config = load_install_config(config_path=config_path, home_dir=home_dir)
    if get_server_status(config, app_name) != ServerStatus.RUNNING:
        LOG.info("MongoDB is not currently running.")
        LOG.info("Please start it first with 'mongo-magic server start'")
        return False

    _pull_process(config, app_name).restart()
    return True
