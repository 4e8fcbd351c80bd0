from __future__ import annotations

import pytest
import serial

from mousevr.context import NullOutput
from mousevr.hardware import HardwareManager
from mousevr.io.devices import serial_device
from mousevr.io.world import LoggingWorld
from mousevr.protocols import Vec3
from mousevr.session import Session, create_session
from mousevr.trial import TrialState
from mousevr.utils.config import SessionConfig

from conftest import FakeClock


class RecordingOutput:
    def __init__(self) -> None:
        self.codes: list[str] = []

    def reward(self) -> None:
        self.codes.append("r")

    def punishment_on(self) -> None:
        self.codes.append("p")

    def punishment_off(self) -> None:
        self.codes.append("0")


class FakeHardware(HardwareManager):
    def __init__(self) -> None:
        super().__init__({"com_port": ""})
        self.output = RecordingOutput()
        self.init_calls = 0
        self.shutdown_calls = 0

    def initialize(self) -> None:
        self.init_calls += 1
        self.reward = self.output

    def shutdown(self) -> None:
        self.shutdown_calls += 1


def _config(**overrides) -> SessionConfig:
    raw = {"subject": "m01", "task": "alternation", "n_trial": 3, "enable_socket": False}
    raw.update(overrides)
    return SessionConfig.from_mapping(raw)


def _session(clock, **overrides) -> Session:
    world = LoggingWorld(waypoints={"10": Vec3(0.0, 0.0, 1.0)})
    return Session(_config(**overrides), world, hardware=FakeHardware(), clock=clock)


def test_start_arms_the_task(clock) -> None:
    session = _session(clock)
    session.start()

    assert session.running
    assert session.record.state == TrialState.START
    assert session.listener is None
    assert session.context.device is session.hardware.output
    assert session.sink.parameters.subject == "m01"
    session.shutdown()


def test_missing_device_falls_back_to_null_output(clock) -> None:
    hardware = FakeHardware()
    hardware.output = None
    session = Session(_config(), LoggingWorld(), hardware=hardware, clock=clock)
    session.start()
    assert isinstance(session.context.device, NullOutput)
    session.shutdown()


def test_tick_dispatches_queued_commands(clock) -> None:
    session = _session(clock)
    session.start()
    replies: list[bytes] = []
    session.channel.set_writer(replies.append)

    session.channel.put(b"console.teleport(1,2,3)\nmodel.get_position('player')\nreward\n")
    assert not session.tick()

    assert session.context.world.get_position() == Vec3(1.0, 3.0, 2.0)
    assert replies == [b"1000,2000,3000"]
    assert session.hardware.output.codes == ["r"]
    session.shutdown()


def test_zone_names_drive_the_task(clock) -> None:
    session = _session(clock)
    session.start()

    session.on_zone("_left_r_")
    session.on_zone("wall")
    session.on_zone("_end_r_")

    assert session.record.trial == 1
    assert session.record.correct == 1
    assert session.hardware.output.codes == ["r"]
    session.shutdown()


def test_quit_command_stops_run(clock) -> None:
    session = _session(clock)
    session.channel.put(b"quit")
    sleeps: list[float] = []

    session.run(max_ticks=100, sleep=sleeps.append)

    assert session.quit_requested
    assert sleeps == []
    assert not session.running
    assert session.hardware.shutdown_calls == 1


def test_run_stops_after_max_ticks(clock) -> None:
    session = _session(clock)
    sleeps: list[float] = []

    session.run(max_ticks=3, sleep=sleeps.append)

    assert len(sleeps) == 2
    assert not session.quit_requested


def test_trial_budget_ends_session(clock) -> None:
    session = _session(clock, n_trial=1)
    session.start()
    session.on_zone("_right_r_")
    session.on_zone("_end_r_")
    assert session.tick()
    session.shutdown()


def test_avoidance_cycle_runs_off_the_scheduler(clock) -> None:
    session = _session(clock, task="avoidance", rng_seed=7)
    session.start()
    assert session.record.state == TrialState.DELAY

    clock.advance(20.0)
    session.tick()
    assert session.record.state == TrialState.CUE

    clock.advance(2.0)
    session.tick()
    assert session.record.state == TrialState.FAILURE
    assert session.hardware.output.codes == ["p"]
    session.shutdown()


def test_shutdown_is_idempotent(clock) -> None:
    session = _session(clock)
    session.start()
    session.shutdown()
    session.shutdown()

    assert session.hardware.shutdown_calls == 1
    assert session.channel.closed
    with pytest.raises(RuntimeError):
        session.start()


def test_context_manager(clock) -> None:
    with _session(clock) as session:
        assert session.running
    assert not session.running


def test_create_session_applies_overrides(tmp_path, clock) -> None:
    path = tmp_path / "session.yaml"
    path.write_text("subject: m03\ntask: avoidance\n")

    session = create_session(
        LoggingWorld(),
        config_path=str(path),
        overrides={"enable_socket": False, "n_trial": 7},
        hardware=FakeHardware(),
        clock=clock,
    )

    assert session.parameters.n_trial == 7
    assert session.parameters.task == "avoidance"
    assert session.listener is None

    with pytest.raises(ValueError):
        create_session(LoggingWorld())


def _play(session: Session, clock) -> list[tuple[str, int, int]]:
    session.start()
    for name in ("_left_r_", "_end_r_", "_left_r_", "_end_r_", "_right_r_", "_end_r_"):
        session.on_zone(name)
        session.tick()
    for step in (20.0, 2.0, 4.0, 20.0):
        clock.advance(step)
        session.tick()
    session.on_zone("_target_r_")
    session.tick()
    trials = [(entry.state, entry.trial, entry.correct) for entry in session.sink.trials]
    session.shutdown()
    return trials


@pytest.mark.parametrize("task", ["alternation", "avoidance"])
def test_absent_reward_device_leaves_transitions_unchanged(task, monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(*args, **kwargs):
        raise serial.SerialException("could not open port COM99")

    monkeypatch.setattr(serial_device.serial, "Serial", refuse)
    overrides = {"task": task, "n_trial": 10, "rng_seed": 11}

    bare_clock = FakeClock()
    bare = Session(_config(com_port="COM99", **overrides), LoggingWorld(), clock=bare_clock)
    without_device = _play(bare, bare_clock)
    assert bare.hardware.reward is not None and not bare.hardware.reward.is_open

    wired_clock = FakeClock()
    wired = Session(_config(**overrides), LoggingWorld(), hardware=FakeHardware(), clock=wired_clock)
    with_device = _play(wired, wired_clock)

    assert len(with_device) > 3
    assert without_device == with_device
    assert wired.hardware.output.codes
