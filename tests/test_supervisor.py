"""Tests for the backend process supervisor, using a fake process."""

import socket
import subprocess
import sys

import pytest

from vaultshell.errors import ProcessLaunchFailure
from vaultshell.supervisor import BackendSupervisor, is_port_open, resolve_interpreter


class FakeProcess:
    _next_pid = 4000

    def __init__(self, cmd, ignore_terminate=False, exit_code=None, **kwargs):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.cmd = cmd
        self.kwargs = kwargs
        self.returncode = exit_code
        self.ignore_terminate = ignore_terminate
        self.terminated = False
        self.killed = False
        self.waits = 0

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        if not self.ignore_terminate:
            self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        self.waits += 1
        if self.returncode is None:
            raise subprocess.TimeoutExpired(self.cmd, timeout)
        return self.returncode


class FakeSpawner:
    def __init__(self, **process_kwargs):
        self.processes = []
        self.process_kwargs = process_kwargs

    def __call__(self, cmd, **kwargs):
        process = FakeProcess(cmd, **self.process_kwargs, **kwargs)
        self.processes.append(process)
        return process


@pytest.fixture
def install_dir(tmp_path):
    (tmp_path / "venv" / "bin").mkdir(parents=True)
    (tmp_path / "venv" / "bin" / "python").write_text("")
    (tmp_path / "venv" / "Scripts").mkdir(parents=True)
    (tmp_path / "venv" / "Scripts" / "python.exe").write_text("")
    backend = tmp_path / "vaultshell" / "backend"
    backend.mkdir(parents=True)
    (backend / "server.py").write_text("")
    return tmp_path


def make_supervisor(install_dir, spawner, **kwargs):
    kwargs.setdefault("probe", lambda host, port: True)
    return BackendSupervisor(install_dir=str(install_dir), spawn=spawner, port=5123, **kwargs)


def test_start_launches_unbuffered_entry_point(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)

    handle = supervisor.start()

    cmd = spawner.processes[0].cmd
    assert cmd[1] == "-u"
    assert cmd[2] == str(install_dir / "vaultshell" / "backend" / "server.py")
    assert cmd[3:] == ["--host", "127.0.0.1", "--port", "5123"]
    assert spawner.processes[0].kwargs["cwd"] == str(install_dir)
    assert handle.is_alive
    assert handle.endpoint == "127.0.0.1:5123"
    assert handle.pid == spawner.processes[0].pid


def test_interpreter_resolved_inside_install_dir(install_dir):
    assert resolve_interpreter(str(install_dir)).startswith(str(install_dir / "venv"))


def test_interpreter_falls_back_to_running_python(tmp_path):
    assert resolve_interpreter(str(tmp_path)) == sys.executable


def test_stop_before_start_is_noop(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)

    supervisor.stop()

    assert spawner.processes == []
    assert supervisor.handle is None


def test_stop_terminates_process(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)
    handle = supervisor.start()

    supervisor.stop()

    assert spawner.processes[0].terminated
    assert not handle.is_alive
    assert not supervisor.is_running()


def test_stop_is_idempotent(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)
    supervisor.start()

    supervisor.stop()
    supervisor.stop()

    assert not spawner.processes[0].killed


def test_stop_kills_process_that_ignores_terminate(install_dir):
    spawner = FakeSpawner(ignore_terminate=True)
    supervisor = make_supervisor(install_dir, spawner, shutdown_grace=0.01)
    handle = supervisor.start()

    supervisor.stop()

    assert spawner.processes[0].killed
    assert not handle.is_alive


def test_double_start_spawns_once(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)

    first = supervisor.start()
    second = supervisor.start()

    assert first is second
    assert len(spawner.processes) == 1


def test_restart_after_process_exit(install_dir):
    spawner = FakeSpawner()
    supervisor = make_supervisor(install_dir, spawner)
    supervisor.start()
    spawner.processes[0].returncode = 1

    supervisor.start()

    assert len(spawner.processes) == 2
    assert sum(p.poll() is None for p in spawner.processes) == 1
    assert spawner.processes[0].waits == 1


def test_missing_interpreter_raises(install_dir):
    supervisor = make_supervisor(install_dir, FakeSpawner(), interpreter=str(install_dir / "nope"))

    with pytest.raises(ProcessLaunchFailure, match="interpreter"):
        supervisor.start()
    assert supervisor.handle is None


def test_missing_entry_point_raises(install_dir):
    supervisor = make_supervisor(install_dir, FakeSpawner(), entry_point="missing.py")

    with pytest.raises(ProcessLaunchFailure, match="entry point"):
        supervisor.start()


def test_spawn_oserror_becomes_launch_failure(install_dir):
    def broken_spawn(cmd, **kwargs):
        raise PermissionError("not executable")

    supervisor = make_supervisor(install_dir, broken_spawn)

    with pytest.raises(ProcessLaunchFailure):
        supervisor.start()
    assert not supervisor.is_running()


class CountingProbe:
    def __init__(self, ready_after):
        self.ready_after = ready_after
        self.calls = []

    def __call__(self, host, port):
        self.calls.append((host, port))
        return len(self.calls) >= self.ready_after


def test_start_returns_only_once_backend_listens(install_dir):
    probe = CountingProbe(ready_after=3)
    supervisor = make_supervisor(install_dir, FakeSpawner(), probe=probe, poll_interval=0)

    handle = supervisor.start()

    assert probe.calls == [("127.0.0.1", 5123)] * 3
    assert handle.is_alive
    assert supervisor.handle is handle


def test_backend_exiting_during_startup_is_launch_failure(install_dir):
    spawner = FakeSpawner(exit_code=1)
    probe = CountingProbe(ready_after=1)
    supervisor = make_supervisor(install_dir, spawner, probe=probe, poll_interval=0)

    with pytest.raises(ProcessLaunchFailure, match="exited with code 1"):
        supervisor.start()

    assert probe.calls == []
    assert spawner.processes[0].waits == 1
    assert supervisor.handle is None


def test_backend_not_listening_by_deadline_is_stopped(install_dir):
    spawner = FakeSpawner()
    probe = CountingProbe(ready_after=float("inf"))
    supervisor = make_supervisor(install_dir, spawner, probe=probe,
                                 startup_timeout=0.05, poll_interval=0.01)

    with pytest.raises(ProcessLaunchFailure, match="did not start listening"):
        supervisor.start()

    assert len(probe.calls) >= 2
    assert spawner.processes[0].terminated
    assert not supervisor.is_running()


def test_is_port_open_tracks_a_real_listener():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        port = server.getsockname()[1]
        assert is_port_open("127.0.0.1", port)

    assert not is_port_open("127.0.0.1", port)
