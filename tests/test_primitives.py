"""Tests for motion primitives"""

import logging
import math

import pytest
from drivecore.hardware import MockActuatorSink, MockSensorSource
from drivecore.primitives import (
    AlignWithSensors,
    ArcadeDrive,
    DriveForward,
    DriveToTargetDistance,
    FiniteActuatorRun,
    HeldActuatorRun,
    Sequence,
    Turn,
    VelocityRun,
    Wait,
)
from drivecore.subsystems import DistanceSensors, Drivetrain, Mechanism
from drivecore.types import ActuatorHandle, AlignmentConfig, ConfigurationError, DriveConfig


LEFT = ActuatorHandle.DRIVE_LEFT
RIGHT = ActuatorHandle.DRIVE_RIGHT


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def sink():
    return MockActuatorSink()


@pytest.fixture
def sensors():
    return MockSensorSource(left=1.0, right=1.0)


@pytest.fixture
def drive_config():
    """One encoder rotation = one meter, 0.6 m track"""
    return DriveConfig(wheel_diameter_m=1.0 / math.pi, gear_ratio=1.0, track_width_m=0.6)


@pytest.fixture
def drivetrain(sink, drive_config):
    return Drivetrain(sink, drive_config)


@pytest.fixture
def feeder(sink):
    return Mechanism(sink, ActuatorHandle.FEEDER)


@pytest.fixture
def distance_sensors(sensors):
    return DistanceSensors(sensors)


# ArcadeDrive

def test_arcade_drive_follows_axes(drivetrain, sink):
    axes = {"forward": 1.0, "turn": 0.0}
    drive = ArcadeDrive(drivetrain, lambda: axes["forward"], lambda: axes["turn"])

    drive.initialize()
    drive.execute()
    assert sink.output(LEFT) == pytest.approx(0.7)
    assert sink.output(RIGHT) == pytest.approx(0.7)
    assert drive.is_finished() is False

    drive.end(True)
    assert drivetrain.last_output == (0.0, 0.0)


def test_arcade_drive_nan_axis_stops(drivetrain, sink):
    drive = ArcadeDrive(drivetrain, lambda: float("nan"), lambda: 0.0)
    drive.execute()
    assert drivetrain.last_output == (0.0, 0.0)
    assert sink.nonfinite_writes == 0


# DriveForward

def test_drive_forward_until_distance(drivetrain, sink):
    drive = DriveForward(drivetrain, 1.0, speed=0.5)
    drive.initialize()

    assert drive.is_finished() is False
    drive.execute()
    assert drivetrain.last_output == (0.5, 0.5)

    sink.set_position(LEFT, 0.6)
    sink.set_position(RIGHT, 0.6)
    assert drive.is_finished() is False

    sink.set_position(LEFT, 1.05)
    sink.set_position(RIGHT, 1.05)
    assert drive.is_finished() is True

    drive.end(False)
    assert drivetrain.last_output == (0.0, 0.0)


def test_drive_forward_resets_encoders(drivetrain, sink):
    """Test progress is measured from activation"""
    sink.set_position(LEFT, 5.0)
    sink.set_position(RIGHT, 5.0)

    drive = DriveForward(drivetrain, 1.0)
    drive.initialize()
    assert drive.progress() == pytest.approx(0.0)
    assert drive.is_finished() is False


def test_drive_forward_zero_finishes_immediately(drivetrain, sink):
    drive = DriveForward(drivetrain, 0.0)
    drive.initialize()
    assert drive.is_finished() is True
    drive.end(False)

    assert all(value == 0.0 for kind, _, value in sink.history if kind == "output")


def test_drive_forward_timeout(drivetrain, caplog):
    drive = DriveForward(drivetrain, 1.0, timeout_ticks=5)
    drive.initialize()

    with caplog.at_level(logging.WARNING):
        results = [drive.is_finished() for _ in range(6)]

    assert results == [False] * 5 + [True]
    assert "timed out after 5 iterations" in caplog.text


# Turn

def test_turn_scenario(drivetrain, sink):
    """Test 90 deg turn with a 0.6 m track"""
    turn = Turn(drivetrain, 90.0)
    turn.initialize()

    sink.set_position(LEFT, 0.3)
    sink.set_position(RIGHT, -0.3)
    assert turn.rotation_degrees() == pytest.approx(57.2958, abs=1e-3)
    assert turn.is_finished() is False

    sink.set_position(LEFT, 0.5)
    sink.set_position(RIGHT, -0.5)
    assert turn.rotation_degrees() > 90.0
    assert turn.is_finished() is True


def test_turn_direction(drivetrain):
    right = Turn(drivetrain, 45.0, speed=0.4)
    right.execute()
    assert drivetrain.last_output == (0.4, -0.4)

    left = Turn(drivetrain, -45.0, speed=0.4)
    left.execute()
    assert drivetrain.last_output == (-0.4, 0.4)


def test_turn_left_completes(drivetrain, sink):
    turn = Turn(drivetrain, -30.0)
    turn.initialize()

    sink.set_position(LEFT, -0.1)
    sink.set_position(RIGHT, 0.1)
    assert turn.is_finished() is False

    sink.set_position(LEFT, -0.2)
    sink.set_position(RIGHT, 0.2)
    assert turn.is_finished() is True


def test_turn_trivial_finishes_immediately(drivetrain, sink):
    turn = Turn(drivetrain, 0.05)
    turn.initialize()
    assert turn.is_finished() is True
    assert sink.write_count == 0


def test_turn_invalid_track_width(sink):
    """Test zero track width fails at evaluation"""
    drivetrain = Drivetrain(sink, DriveConfig(track_width_m=0.0))
    turn = Turn(drivetrain, 90.0)
    turn.initialize()

    with pytest.raises(ConfigurationError, match="track width"):
        turn.is_finished()


# Construction validation

@pytest.mark.parametrize("factory", [
    lambda dt, mech: DriveForward(dt, float("nan")),
    lambda dt, mech: DriveForward(dt, -1.0),
    lambda dt, mech: DriveForward(dt, float("inf")),
    lambda dt, mech: DriveForward(dt, 0.5, speed=-0.5),
    lambda dt, mech: DriveForward(dt, 0.5, speed=0.0),
    lambda dt, mech: Turn(dt, float("nan")),
    lambda dt, mech: Turn(dt, float("-inf")),
    lambda dt, mech: FiniteActuatorRun(mech, float("nan"), -0.11),
    lambda dt, mech: FiniteActuatorRun(mech, -2.0, -0.11),
    lambda dt, mech: FiniteActuatorRun(mech, 2.0, float("nan")),
])
def test_construction_rejects_without_touching_hardware(factory, drivetrain, feeder, sink):
    with pytest.raises(ConfigurationError):
        factory(drivetrain, feeder)
    assert sink.write_count == 0


# AlignWithSensors

@pytest.fixture
def alignment_config():
    return AlignmentConfig(target_distance_m=0.5)


def test_align_settles_at_target(drivetrain, distance_sensors, sensors, alignment_config):
    sensors.set_distances(0.5, 0.5)
    align = AlignWithSensors(drivetrain, distance_sensors, alignment_config)
    align.initialize()

    align.execute()
    left, right = drivetrain.last_output
    assert left == pytest.approx(0.0, abs=1e-9)
    assert right == pytest.approx(0.0, abs=1e-9)
    assert align.alignment_pid.at_setpoint() is True
    assert align.distance_pid.at_setpoint() is True
    assert align.at_target() is True
    assert align.is_finished() is False


def test_align_turns_toward_skew(drivetrain, distance_sensors, sensors, alignment_config):
    """Left reading larger -> negative turn output"""
    sensors.set_distances(0.55, 0.45)
    align = AlignWithSensors(drivetrain, distance_sensors, alignment_config)
    align.initialize()
    align.execute()

    left, right = drivetrain.last_output
    assert left < right
    assert align.at_target() is False


def test_align_outputs_clamped(drivetrain, distance_sensors, sensors, alignment_config):
    sensors.set_distances(3.0, 3.0)
    align = AlignWithSensors(drivetrain, distance_sensors, alignment_config)
    align.initialize()
    align.execute()

    left, right = drivetrain.last_output
    # Far from target saturates the distance loop
    assert abs(left) == pytest.approx(alignment_config.max_drive_output)
    assert left == pytest.approx(right)


def test_align_invalid_sensor_stops(drivetrain, distance_sensors, sensors, sink,
                                    alignment_config, caplog):
    align = AlignWithSensors(drivetrain, distance_sensors, alignment_config)
    align.initialize()

    sensors.set_distances(0.8, 0.6)
    align.execute()
    assert drivetrain.last_output != (0.0, 0.0)

    sensors.set_distances(-1.0, 0.6)
    with caplog.at_level(logging.WARNING):
        for _ in range(5):
            align.execute()
            assert drivetrain.last_output == (0.0, 0.0)
            assert sink.output(LEFT) == 0.0
            assert sink.output(RIGHT) == 0.0

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1

    # Recovers automatically
    sensors.set_distances(0.8, 0.6)
    align.execute()
    assert drivetrain.last_output != (0.0, 0.0)


def test_align_negative_target_rejected(drivetrain, distance_sensors, alignment_config):
    with pytest.raises(ConfigurationError):
        AlignWithSensors(drivetrain, distance_sensors, alignment_config, target_distance=-0.5)


# DriveToTargetDistance

def test_drive_to_target_direction(drivetrain, distance_sensors, sensors):
    clock = FakeClock()
    command = DriveToTargetDistance(drivetrain, distance_sensors, target_distance=0.5,
                                    tolerance=0.02, speed=0.15, timeout_s=5.0, clock=clock)
    command.initialize()

    sensors.set_distances(1.0, 1.0)
    command.execute()
    assert drivetrain.last_output == (0.15, 0.15)

    sensors.set_distances(0.3, 0.3)
    command.execute()
    assert drivetrain.last_output == (-0.15, -0.15)

    sensors.set_distances(0.51, 0.49)
    command.execute()
    assert drivetrain.last_output == (0.0, 0.0)
    assert command.is_finished() is True


def test_drive_to_target_needs_both_sensors(drivetrain, distance_sensors, sensors):
    clock = FakeClock()
    command = DriveToTargetDistance(drivetrain, distance_sensors, target_distance=0.5,
                                    tolerance=0.02, speed=0.15, timeout_s=5.0, clock=clock)
    command.initialize()

    # Average is on target but one side is not
    sensors.set_distances(0.6, 0.4)
    assert command.is_finished() is False

    sensors.set_distances(-1.0, 0.5)
    command.execute()
    assert drivetrain.last_output == (0.0, 0.0)
    assert command.is_finished() is False


def test_drive_to_target_warning_rearms_on_target(drivetrain, distance_sensors, sensors,
                                                  caplog):
    clock = FakeClock()
    command = DriveToTargetDistance(drivetrain, distance_sensors, target_distance=0.5,
                                    tolerance=0.02, speed=0.15, timeout_s=5.0, clock=clock)
    command.initialize()

    with caplog.at_level(logging.WARNING):
        sensors.set_distances(-1.0, 0.5)
        command.execute()
        command.execute()

        # Recovers while already on target
        sensors.set_distances(0.5, 0.5)
        command.execute()
        assert drivetrain.last_output == (0.0, 0.0)

        sensors.set_distances(-1.0, 0.5)
        command.execute()

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2


def test_drive_to_target_timeout(drivetrain, distance_sensors, sensors, caplog):
    clock = FakeClock()
    command = DriveToTargetDistance.from_config(drivetrain, distance_sensors,
                                                AlignmentConfig(positioning_timeout_s=2.0),
                                                clock=clock)
    command.initialize()
    sensors.set_distances(1.5, 1.5)

    clock.now += 1.9
    assert command.is_finished() is False

    clock.now += 0.2
    with caplog.at_level(logging.WARNING):
        assert command.is_finished() is True
    assert "timed out" in caplog.text


# FiniteActuatorRun

def test_finite_run_scenario(feeder, sink):
    run = FiniteActuatorRun(feeder, rotations=2.0, output=-0.11)
    run.initialize()

    assert run.is_finished() is False
    run.execute()
    assert sink.output(ActuatorHandle.FEEDER) == pytest.approx(-0.11)

    # Direction does not matter, only magnitude
    sink.set_position(ActuatorHandle.FEEDER, -1.5)
    assert run.is_finished() is False

    sink.set_position(ActuatorHandle.FEEDER, -2.0)
    assert run.is_finished() is True

    run.end(False)
    assert sink.output(ActuatorHandle.FEEDER) == 0.0


def test_finite_run_timeout(feeder, caplog):
    run = FiniteActuatorRun(feeder, rotations=2.0, output=-0.11, timeout_ticks=200)
    run.initialize()

    with caplog.at_level(logging.WARNING):
        for _ in range(200):
            assert run.is_finished() is False
            run.execute()
        assert run.is_finished() is True

    assert "timed out after 200 iterations" in caplog.text


def test_finite_run_counter_resets_on_activation(feeder):
    run = FiniteActuatorRun(feeder, rotations=2.0, output=-0.11, timeout_ticks=3)
    run.initialize()
    for _ in range(3):
        run.is_finished()

    run.initialize()
    assert run.is_finished() is False


# Held / velocity runs

def test_held_run(feeder, sink):
    run = HeldActuatorRun(feeder, 0.4)
    run.execute()
    assert sink.output(ActuatorHandle.FEEDER) == 0.4
    assert run.is_finished() is False
    run.end(True)
    assert sink.output(ActuatorHandle.FEEDER) == 0.0


def test_velocity_run(sink):
    shooter = Mechanism(sink, ActuatorHandle.SHOOTER, max_velocity_rps=100.0)
    run = VelocityRun(shooter, -28.0)
    run.initialize()
    run.execute()
    assert sink.velocity_setpoint(ActuatorHandle.SHOOTER) == -28.0

    run.end(True)
    assert sink.velocity_setpoint(ActuatorHandle.SHOOTER) is None
    assert sink.output(ActuatorHandle.SHOOTER) == 0.0


def test_velocity_bounded(sink):
    intake = Mechanism(sink, ActuatorHandle.INTAKE, max_velocity_rps=50.0)
    VelocityRun(intake, 80.0).execute()
    assert sink.velocity_setpoint(ActuatorHandle.INTAKE) == 50.0


# Wait / Sequence

def test_wait():
    clock = FakeClock()
    wait = Wait(0.5, clock=clock)
    wait.initialize()
    assert wait.requirements == frozenset()
    assert wait.is_finished() is False
    clock.now += 0.5
    assert wait.is_finished() is True


def test_sequence_runs_in_order(drivetrain, feeder, sink):
    sequence = Sequence(
        DriveForward(drivetrain, 1.0),
        FiniteActuatorRun(feeder, 1.0, 0.3),
    )
    assert sequence.requirements == frozenset({LEFT, RIGHT, ActuatorHandle.FEEDER})

    sequence.initialize()
    assert sequence.is_finished() is False
    sequence.execute()
    assert drivetrain.last_output == (0.5, 0.5)

    # Drive done -> feeder starts on the same evaluation
    sink.set_position(LEFT, 1.01)
    sink.set_position(RIGHT, 1.01)
    assert sequence.is_finished() is False
    assert drivetrain.last_output == (0.0, 0.0)
    assert isinstance(sequence.current, FiniteActuatorRun)

    sequence.execute()
    assert sink.output(ActuatorHandle.FEEDER) == 0.3

    sink.set_position(ActuatorHandle.FEEDER, 1.0)
    assert sequence.is_finished() is True
    assert sequence.current is None
    assert sink.output(ActuatorHandle.FEEDER) == 0.0


def test_sequence_interrupt_forwards_to_current(drivetrain):
    sequence = Sequence(DriveForward(drivetrain, 1.0), Turn(drivetrain, 90.0))
    sequence.initialize()
    sequence.execute()
    sequence.end(True)
    assert drivetrain.last_output == (0.0, 0.0)


def test_sequence_requires_steps():
    with pytest.raises(ConfigurationError):
        Sequence()
