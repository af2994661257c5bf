"""
Supervision of the local backend process.

The supervisor is the only component allowed to start or stop the backend.
It is owned by the application object and handed to whoever needs to
signal shutdown.
"""

import os
import sys
import logging
import platform
import socket
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from . import config
from .errors import ProcessLaunchFailure

logger = logging.getLogger(__name__)


@dataclass
class BackendProcessHandle:
    """Handle to the spawned backend process."""
    process: Any
    host: str
    port: int

    @property
    def pid(self) -> Optional[int]:
        return getattr(self.process, "pid", None)

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_alive(self) -> bool:
        return self.process.poll() is None


def resolve_interpreter(install_dir: str) -> str:
    """
    Resolve the Python interpreter that runs the backend.

    Prefers the virtual environment shipped inside install_dir and falls
    back to the interpreter running the shell.
    """
    venv_path = os.path.join(install_dir, config.VENV_DIR_NAME)
    if platform.system() == "Windows":
        candidate = os.path.join(venv_path, "Scripts", "python.exe")
    else:
        candidate = os.path.join(venv_path, "bin", "python")

    if os.path.exists(candidate):
        return candidate
    logger.debug(f"No bundled interpreter at {candidate}, using {sys.executable}")
    return sys.executable


def is_port_open(host: str, port: int) -> bool:
    """Check if something is listening on host:port."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.settimeout(1)
            s.connect((host, port))
            return True
    except (socket.timeout, ConnectionRefusedError, OSError):
        return False


class BackendSupervisor:
    """Starts, owns and terminates the backend service process."""

    def __init__(self,
                 install_dir: str = config.INSTALL_DIR,
                 interpreter: Optional[str] = None,
                 entry_point: str = config.BACKEND_ENTRY_POINT,
                 host: str = config.BACKEND_HOST,
                 port: int = config.BACKEND_PORT,
                 spawn: Callable[..., Any] = subprocess.Popen,
                 shutdown_grace: float = config.BACKEND_SHUTDOWN_GRACE_SECONDS,
                 probe: Callable[[str, int], bool] = is_port_open,
                 startup_timeout: float = config.BACKEND_STARTUP_TIMEOUT_SECONDS,
                 poll_interval: float = config.BACKEND_READY_POLL_SECONDS):
        """
        Args:
            install_dir: Application installation directory
            interpreter: Explicit interpreter path; resolved from install_dir when None
            entry_point: Backend script, relative to install_dir unless absolute
            host: Address the backend binds to
            port: Port the backend listens on
            spawn: Process factory with the subprocess.Popen signature
            shutdown_grace: Seconds to wait after terminate() before kill()
            probe: Readiness check called with (host, port)
            startup_timeout: Seconds a new process has to become ready
            poll_interval: Seconds between readiness checks
        """
        self.install_dir = install_dir
        self.interpreter = interpreter or resolve_interpreter(install_dir)
        self.entry_point = entry_point if os.path.isabs(entry_point) else os.path.join(install_dir, entry_point)
        self.host = host
        self.port = port
        self._spawn = spawn
        self._shutdown_grace = shutdown_grace
        self._probe = probe
        self._startup_timeout = startup_timeout
        self._poll_interval = poll_interval
        self._lock = threading.Lock()
        self._handle: Optional[BackendProcessHandle] = None

    @property
    def handle(self) -> Optional[BackendProcessHandle]:
        return self._handle

    def is_running(self) -> bool:
        handle = self._handle
        return handle is not None and handle.is_alive

    def command(self) -> List[str]:
        """Command line used to launch the backend."""
        return [
            self.interpreter, "-u", self.entry_point,
            "--host", self.host, "--port", str(self.port),
        ]

    def start(self) -> BackendProcessHandle:
        """
        Launch the backend unless it is already running, then wait until it
        accepts connections on host:port.

        Returns:
            The live, listening process handle

        Raises:
            ProcessLaunchFailure: If the interpreter or entry point is missing,
                the process could not be spawned, exited during startup or
                did not start listening before the startup deadline
        """
        with self._lock:
            if self._handle is not None:
                if self._handle.is_alive:
                    logger.debug(f"Backend already running (pid {self._handle.pid}), not starting another.")
                    return self._handle
                code = self._handle.process.wait()
                logger.warning(f"Backend (pid {self._handle.pid}) exited with code {code}, restarting it.")
                self._handle = None

            if not os.path.exists(self.interpreter):
                raise ProcessLaunchFailure(f"Backend interpreter not found: {self.interpreter}")
            if not os.path.exists(self.entry_point):
                raise ProcessLaunchFailure(f"Backend entry point not found: {self.entry_point}")

            cmd = self.command()
            try:
                process = self._spawn(cmd, cwd=self.install_dir)
            except OSError as e:
                raise ProcessLaunchFailure(f"Failed to launch backend: {e}") from e

            handle = BackendProcessHandle(process=process, host=self.host, port=self.port)
            logger.info(f"Started backend (pid {handle.pid}), waiting for {handle.endpoint}")
            try:
                self._wait_until_ready(handle)
            except ProcessLaunchFailure:
                self._terminate(handle)
                raise

            self._handle = handle
            logger.info(f"Backend ready on {handle.endpoint}")
            return handle

    def _wait_until_ready(self, handle: BackendProcessHandle) -> None:
        deadline = time.monotonic() + self._startup_timeout
        while True:
            code = handle.process.poll()
            if code is not None:
                raise ProcessLaunchFailure(
                    f"Backend exited with code {code} before listening on {handle.endpoint}"
                )
            if self._probe(handle.host, handle.port):
                return
            if time.monotonic() >= deadline:
                raise ProcessLaunchFailure(
                    f"Backend did not start listening on {handle.endpoint} within {self._startup_timeout}s"
                )
            time.sleep(self._poll_interval)

    def _terminate(self, handle: BackendProcessHandle) -> None:
        if not handle.is_alive:
            handle.process.wait()
            return

        logger.info(f"Stopping backend (pid {handle.pid})")
        handle.process.terminate()
        try:
            handle.process.wait(timeout=self._shutdown_grace)
        except subprocess.TimeoutExpired:
            logger.warning(f"Backend (pid {handle.pid}) ignored terminate, killing it.")
            handle.process.kill()
            handle.process.wait()

    def stop(self) -> None:
        """Terminate the backend if it is running. Safe to call repeatedly."""
        with self._lock:
            handle = self._handle
            self._handle = None
            if handle is not None:
                self._terminate(handle)
