from __future__ import annotations

import itertools
import signal
import subprocess
import sys
from typing import Callable

import pytest

from loadready.config import ServiceConfig
from loadready.server.supervisor import Supervisor

_pids = itertools.count(1000)


class FakeProcess:
    def __init__(self) -> None:
        self.pid = next(_pids)
        self.returncode: int | None = None
        self.signals: list[int] = []

    def poll(self) -> int | None:
        return self.returncode

    def send_signal(self, sig: int) -> None:
        self.signals.append(sig)


class FakeSpawner:
    def __init__(
        self,
        fail_after: int | None = None,
        on_spawn: Callable[[int], None] | None = None,
    ) -> None:
        self.spawned: list[FakeProcess] = []
        self.fail_after = fail_after
        self.on_spawn = on_spawn

    def __call__(self) -> FakeProcess:
        if self.fail_after is not None and len(self.spawned) >= self.fail_after:
            raise OSError("cannot fork")
        proc = FakeProcess()
        self.spawned.append(proc)
        if self.on_spawn is not None:
            self.on_spawn(len(self.spawned))
        return proc


def _supervisor(workers: int, spawner: FakeSpawner) -> Supervisor:
    return Supervisor(ServiceConfig(workers=workers), spawn=spawner)


def test_start_spawns_one_worker_per_slot() -> None:
    spawner = FakeSpawner()
    supervisor = _supervisor(4, spawner)
    supervisor.start()
    assert len(spawner.spawned) == 4
    assert len(supervisor.live_workers()) == 4


def test_crashed_worker_is_replaced_once() -> None:
    spawner = FakeSpawner()
    supervisor = _supervisor(3, spawner)
    supervisor.start()
    crashed = supervisor.workers[1]
    crashed.returncode = 1

    assert supervisor.reap() == 1
    assert len(spawner.spawned) == 4
    assert crashed not in supervisor.workers
    assert len(supervisor.live_workers()) == 3

    assert supervisor.reap() == 0
    assert len(spawner.spawned) == 4
    assert supervisor.restarts == 1


def test_clean_exit_is_also_restarted_while_running() -> None:
    spawner = FakeSpawner()
    supervisor = _supervisor(2, spawner)
    supervisor.start()
    supervisor.workers[0].returncode = 0
    assert supervisor.reap() == 1
    assert len(supervisor.live_workers()) == 2


def test_shutdown_signals_live_workers_and_stops_restarting() -> None:
    spawner = FakeSpawner()
    supervisor = _supervisor(3, spawner)
    supervisor.start()
    supervisor.workers[2].returncode = 1

    supervisor.shutdown()

    assert [p.signals for p in spawner.spawned] == [[signal.SIGTERM], [signal.SIGTERM], []]
    for proc in spawner.spawned:
        proc.returncode = -signal.SIGTERM
    assert supervisor.reap() == 0
    assert len(spawner.spawned) == 3


def test_signal_handler_forwards_sigterm() -> None:
    spawner = FakeSpawner()
    supervisor = _supervisor(2, spawner)
    supervisor.start()
    supervisor._on_signal(signal.SIGINT, None)
    assert supervisor.shutting_down
    assert all(p.signals == [signal.SIGTERM] for p in spawner.spawned)


def test_failed_initial_spawn_aborts_startup() -> None:
    spawner = FakeSpawner(fail_after=2)
    supervisor = _supervisor(4, spawner)
    with pytest.raises(OSError):
        supervisor.start()
    assert supervisor.shutting_down
    assert all(p.signals == [signal.SIGTERM] for p in spawner.spawned)


def test_real_processes_are_replaced() -> None:
    started: list[subprocess.Popen[bytes]] = []

    def spawn() -> subprocess.Popen[bytes]:
        proc = subprocess.Popen([sys.executable, "-c", "raise SystemExit(3)"])
        started.append(proc)
        return proc

    supervisor = Supervisor(ServiceConfig(workers=2), spawn=spawn)
    supervisor.start()
    for proc in list(started):
        proc.wait(timeout=10)

    assert supervisor.reap() == 2
    assert len(started) == 4
    assert len(supervisor.workers) == 2
    assert all(proc.pid in {p.pid for p in started[2:]} for proc in supervisor.workers)

    supervisor.shutdown()
    for proc in started:
        proc.wait(timeout=10)
    assert supervisor.reap() == 0


def test_signal_during_startup_stops_every_spawned_worker() -> None:
    supervisor: Supervisor

    def signal_on_second(count: int) -> None:
        if count == 2:
            supervisor._on_signal(signal.SIGTERM, None)

    spawner = FakeSpawner(on_spawn=signal_on_second)
    supervisor = _supervisor(4, spawner)
    supervisor.start()

    assert len(spawner.spawned) == 2
    assert [p.signals for p in spawner.spawned] == [[signal.SIGTERM], [signal.SIGTERM]]
    assert supervisor.live_workers() == spawner.spawned


def test_signal_during_restart_stops_the_replacement() -> None:
    supervisor: Supervisor

    def signal_on_replacement(count: int) -> None:
        if count == 4:
            supervisor._on_signal(signal.SIGINT, None)

    spawner = FakeSpawner(on_spawn=signal_on_replacement)
    supervisor = _supervisor(3, spawner)
    supervisor.start()
    supervisor.workers[0].returncode = 1
    supervisor.workers[1].returncode = 1

    assert supervisor.reap() == 1
    assert len(spawner.spawned) == 4
    unstopped = [p.pid for p in supervisor.live_workers() if p.signals != [signal.SIGTERM]]
    assert unstopped == []
