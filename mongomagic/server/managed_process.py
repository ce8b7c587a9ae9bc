##############################################################################
# Copyright (c) Lawrence Livermore National Security, LLC and other Merlin
# Project developers. See top-level LICENSE and COPYRIGHT files for dates and
# other details. No copyright assignment is required to contribute to Merlin.
##############################################################################

"""
The supervised MongoDB engine as a state machine.

The same `ManagedProcess` is used for the one-time user provisioning and for
steady-state supervision, so users are always created on the instance PM2 manages.
"""

import enum
import json
import logging
import subprocess
import time
from typing import Dict, List

import pymongo
from pymongo.errors import ConnectionFailure

from mongomagic.exceptions import ProcessManagerError, ProcessStateError
from mongomagic.server.server_util import ProcessManagerConfig


LOG = logging.getLogger("mongomagic")

POLL_INTERVAL = 1


class ProcessState(enum.Enum):
    """
    Lifecycle states of the managed engine.

    Attributes:
        STOPPED: Not running (or unknown to the process manager).
        STARTING: A start was requested and the engine is not answering yet.
        RUNNING: The engine is up and answering.
        STOPPING: A stop was requested.
    """

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


# PM2 reports these in `pm2_env.status`
PM2_STATES: Dict[str, ProcessState] = {
    "online": ProcessState.RUNNING,
    "launching": ProcessState.STARTING,
    "waiting restart": ProcessState.STARTING,
    "stopping": ProcessState.STOPPING,
    "stopped": ProcessState.STOPPED,
    "errored": ProcessState.STOPPED,
    "one-launch-status": ProcessState.STOPPED,
}


def parse_app_list(output: str) -> List[Dict]:
    """
    Pull the application list out of `pm2 jlist` output.

    PM2 may print notices around the JSON, some of them starting with `[PM2]`.
    Every line that opens with `[` is tried, last one first, and the first that
    decodes to a JSON list wins.

    Args:
        output: The stdout of the status command.

    Returns:
        The application dicts. Empty output means no applications.

    Raises:
        ProcessManagerError: If no line holds a JSON list.
    """
    if not output.strip():
        return []

    decoder = json.JSONDecoder()
    starts = [0] if output.startswith("[") else []
    starts += [index + 1 for index in range(len(output)) if output.startswith("\n[", index)]
    error = "no JSON list found"
    for start in reversed(starts):
        try:
            apps, _ = decoder.raw_decode(output, start)
        except json.JSONDecodeError as exc:
            error = str(exc)
            continue
        if isinstance(apps, list):
            return apps
    raise ProcessManagerError(f"Unable to parse process manager output: {error}")


class ManagedProcess:
    """
    A MongoDB engine supervised by PM2.

    Transitions:
        STOPPED -> STARTING -> RUNNING via `start`;
        RUNNING or STARTING -> STOPPING -> STOPPED via `stop`.

    Attributes:
        name (str): The PM2 application name.
        descriptor_path (str): The PM2 descriptor used to start the engine.
        pm_config (ProcessManagerConfig): The process manager commands.
        host (str): The address the engine binds to.
        port (int): The port the engine listens on.
        ready_timeout (int): Seconds to wait for the engine to answer after a start.
        state (ProcessState): The last known state.
    """

    def __init__(  # pylint: disable=R0913
        self,
        name: str,
        descriptor_path: str,
        pm_config: ProcessManagerConfig,
        host: str,
        port: int,
        ready_timeout: int = 30,
    ):
        self.name = name
        self.descriptor_path = descriptor_path
        self.pm_config = pm_config
        self.host = host
        self.port = port
        self.ready_timeout = ready_timeout
        self.state = ProcessState.STOPPED

    def __repr__(self) -> str:
        return f"ManagedProcess(name={self.name!r}, state={self.state.value!r}, host={self.host!r}, port={self.port!r})"

    def _run(self, command: List[str]) -> str:
        """
        Run a process manager command and return its stdout.

        Raises:
            ProcessManagerError: If the command cannot be run or exits non-zero.
        """
        LOG.debug(f"Running {' '.join(command)}")
        try:
            process = subprocess.run(command, capture_output=True, text=True)
        except OSError as exc:
            raise ProcessManagerError(f"Unable to run '{command[0]}': {exc}") from exc
        if process.returncode != 0:
            raise ProcessManagerError(
                f"'{' '.join(command)}' failed with exit code {process.returncode}: {process.stderr.strip()}"
            )
        return process.stdout

    def refresh(self) -> ProcessState:
        """
        Ask the process manager for the current state of the application.

        Returns:
            The refreshed state. An application PM2 does not know about is STOPPED.
        """
        apps = parse_app_list(self._run(self.pm_config.get_status_command()))

        self.state = ProcessState.STOPPED
        for app in apps:
            if app.get("name") == self.name:
                status = app.get("pm2_env", {}).get("status", "stopped")
                self.state = PM2_STATES.get(status, ProcessState.STOPPED)
                break
        return self.state

    def is_reachable(self) -> bool:
        """Return True if the engine answers a `ping`."""
        client = pymongo.MongoClient(
            host=self.host,
            port=self.port,
            directConnection=True,
            serverSelectionTimeoutMS=POLL_INTERVAL * 1000,
        )
        try:
            client.admin.command("ping")
            return True
        except ConnectionFailure:
            return False
        finally:
            client.close()

    def wait_until_ready(self):
        """
        Block until the engine answers or `ready_timeout` seconds have passed.

        Raises:
            ProcessManagerError: If the engine never answered.
        """
        deadline = time.monotonic() + self.ready_timeout
        while True:
            if self.is_reachable():
                return
            if time.monotonic() >= deadline:
                raise ProcessManagerError(
                    f"MongoDB did not answer on {self.host}:{self.port} within {self.ready_timeout} seconds."
                )
            time.sleep(POLL_INTERVAL)

    def start(self):
        """
        Start the engine through the process manager and wait until it answers.

        Raises:
            ProcessStateError: If the engine is not STOPPED.
            ProcessManagerError: If PM2 fails or the engine never answers.
        """
        self.refresh()
        if self.state != ProcessState.STOPPED:
            raise ProcessStateError(self.state, "start")

        self.state = ProcessState.STARTING
        try:
            self._run(self.pm_config.get_start_command(self.descriptor_path))
        except ProcessManagerError:
            self.state = ProcessState.STOPPED
            raise

        self.wait_until_ready()
        self.state = ProcessState.RUNNING
        LOG.info(f"MongoDB '{self.name}' is running on {self.host}:{self.port}.")

    def stop(self):
        """
        Stop the engine through the process manager.

        Raises:
            ProcessStateError: If the engine is neither RUNNING nor STARTING.
            ProcessManagerError: If PM2 fails.
        """
        self.refresh()
        if self.state not in (ProcessState.RUNNING, ProcessState.STARTING):
            raise ProcessStateError(self.state, "stop")

        previous = self.state
        self.state = ProcessState.STOPPING
        try:
            self._run(self.pm_config.get_stop_command(self.name))
        except ProcessManagerError:
            self.state = previous
            raise
        self.state = ProcessState.STOPPED
        LOG.info(f"MongoDB '{self.name}' stopped.")

    def restart(self):
        """Stop and start the engine again."""
        self.stop()
        time.sleep(POLL_INTERVAL)
        self.start()
