"""
Motion primitives - the control routines the engine schedules.

Each class satisfies the Primitive protocol on its own (no shared base
class): initialize() captures baselines and resets controllers,
is_finished() is evaluated at the top of every tick, execute() applies one
tick of output, end() applies the terminal output exactly once.

Construction validates parameters and never touches hardware, so a
rejected primitive leaves every actuator exactly as it was.
"""

import logging
import math
import time
from typing import Callable, FrozenSet, Optional

from .mapper import ArcadeMapper
from .pid import PIDController
from .safety import WarningLatch, clamp, require_finite
from .subsystems import DistanceSensors, Drivetrain, Mechanism
from .types import ActuatorHandle, AlignmentConfig, ConfigurationError


logger = logging.getLogger(__name__)

# Turns smaller than this are treated as already complete
MIN_TURN_DEGREES = 0.1


class ArcadeDrive:
    """
    Continuous operator drive. Never finishes on its own.

    Typically registered as the drivetrain default so it resumes whenever
    nothing else owns the drive.
    """

    def __init__(
        self,
        drivetrain: Drivetrain,
        forward: Callable[[], float],
        turn: Callable[[], float],
        mapper: Optional[ArcadeMapper] = None,
    ) -> None:
        """
        Args:
            drivetrain: Drive to control
            forward: Supplier for the forward axis (positive = forward)
            turn: Supplier for the turn axis (positive = right)
            mapper: Shaping pipeline (defaults to the drivetrain's config)
        """
        self.name = "ArcadeDrive"
        self._drivetrain = drivetrain
        self._forward = forward
        self._turn = turn
        self._mapper = mapper or ArcadeMapper(drivetrain.config)

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._drivetrain.handles

    def initialize(self) -> None:
        pass

    def execute(self) -> None:
        left, right = self._mapper.mix(self._forward(), self._turn())
        self._drivetrain.set_motors(left, right)

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool) -> None:
        self._drivetrain.stop()


class DriveForward:
    """Drive straight at a fixed speed until the encoders report the distance"""

    def __init__(self, drivetrain: Drivetrain, distance_m: float,
                 speed: float = 0.5, timeout_ticks: int = 200) -> None:
        """
        Args:
            drivetrain: Drive to control
            distance_m: Distance to travel (must be positive and finite)
            speed: Open-loop output on both sides (must be positive)
            timeout_ticks: Evaluations before giving up

        Raises:
            ConfigurationError: If distance_m is not finite or is negative,
                or speed is not a positive finite number
        """
        self.name = "DriveForward"
        self._drivetrain = drivetrain
        self.distance_m = require_finite("distance", distance_m, allow_negative=False)
        self.speed = require_finite("speed", speed, allow_negative=False)
        if self.speed == 0:
            raise ConfigurationError("speed must be greater than zero")
        self.timeout_ticks = int(require_finite("timeout_ticks", timeout_ticks, allow_negative=False))

        self._baseline = 0.0
        self._ticks = 0

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._drivetrain.handles

    def initialize(self) -> None:
        self._drivetrain.reset_encoders()
        self._baseline = self._drivetrain.average_meters()
        self._ticks = 0
        logger.info(f"{self.name}: driving {self.distance_m:.2f} m")

    def progress(self) -> float:
        """Meters travelled since activation"""
        return self._drivetrain.average_meters() - self._baseline

    def execute(self) -> None:
        self._drivetrain.set_motors(self.speed, self.speed)

    def is_finished(self) -> bool:
        # Safety timeout in case the encoders stop reporting
        self._ticks += 1
        if self._ticks > self.timeout_ticks:
            logger.warning(f"{self.name} timed out after {self.timeout_ticks} iterations")
            return True

        return self.progress() >= self.distance_m

    def end(self, interrupted: bool) -> None:
        self._drivetrain.stop()


class Turn:
    """
    Turn in place by a signed angle measured from encoder deltas.

    Positive degrees = right (clockwise), negative = left.
    """

    def __init__(self, drivetrain: Drivetrain, degrees: float,
                 speed: float = 0.4, timeout_ticks: int = 300) -> None:
        """
        Args:
            drivetrain: Drive to control
            degrees: Angle to turn
            speed: Open-loop output magnitude per side
            timeout_ticks: Evaluations before giving up

        Raises:
            ConfigurationError: If degrees is not finite
        """
        self.name = "Turn"
        self._drivetrain = drivetrain
        self.target_degrees = require_finite("degrees", degrees)
        self.speed = abs(require_finite("speed", speed))
        self.timeout_ticks = int(require_finite("timeout_ticks", timeout_ticks, allow_negative=False))

        self._initial_left = 0.0
        self._initial_right = 0.0
        self._ticks = 0

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._drivetrain.handles

    @property
    def is_trivial(self) -> bool:
        """True when the target is too small to bother moving"""
        return abs(self.target_degrees) < MIN_TURN_DEGREES

    def initialize(self) -> None:
        self._ticks = 0
        if self.is_trivial:
            return
        self._initial_left = self._drivetrain.left_meters()
        self._initial_right = self._drivetrain.right_meters()
        logger.info(f"{self.name}: turning {self.target_degrees:.1f} deg")

    def rotation_degrees(self) -> float:
        """
        Signed rotation since activation.

        Raises:
            ConfigurationError: If the configured track width is not positive
        """
        track_width = self._drivetrain.config.track_width_m
        if not track_width > 0:
            raise ConfigurationError(
                f"Invalid track width {track_width}, cannot calculate rotation"
            )

        left_delta = self._drivetrain.left_meters() - self._initial_left
        right_delta = self._drivetrain.right_meters() - self._initial_right
        return math.degrees((left_delta - right_delta) / track_width)

    def execute(self) -> None:
        turn_speed = self.speed if self.target_degrees > 0 else -self.speed
        self._drivetrain.set_motors(turn_speed, -turn_speed)

    def is_finished(self) -> bool:
        if self.is_trivial:
            return True

        self._ticks += 1
        if self._ticks > self.timeout_ticks:
            logger.warning(f"{self.name} timed out after {self.timeout_ticks} iterations")
            return True

        rotation = self.rotation_degrees()
        if self.target_degrees > 0:
            return rotation >= self.target_degrees
        return rotation <= self.target_degrees

    def end(self, interrupted: bool) -> None:
        self._drivetrain.stop()


class AlignWithSensors:
    """
    Square up to a surface and hold a distance using two range sensors.

    Two PID loops run every tick:
    - alignment: setpoint 0, measurement (left - right), drives the turn
    - distance: setpoint target, measurement average, drives forward/back
    Runs until interrupted (typically while a button is held).
    """

    def __init__(self, drivetrain: Drivetrain, sensors: DistanceSensors,
                 config: AlignmentConfig, target_distance: Optional[float] = None,
                 period: float = 0.02) -> None:
        """
        Args:
            drivetrain: Drive to control
            sensors: Left/right range sensors
            config: Gains, tolerances and output limits
            target_distance: Override for config.target_distance_m
            period: Control loop period in seconds

        Raises:
            ConfigurationError: If the target distance is not finite or negative
        """
        self.name = "AlignWithSensors"
        self._drivetrain = drivetrain
        self._sensors = sensors
        self.config = config

        if target_distance is None:
            target_distance = config.target_distance_m
        self.target_distance = require_finite("target distance", target_distance,
                                              allow_negative=False)
        self.max_turn = abs(require_finite("max turn output", config.max_turn_output))
        self.max_drive = abs(require_finite("max drive output", config.max_drive_output))

        self.alignment_pid = PIDController(
            config.alignment_kp, config.alignment_ki, config.alignment_kd, period=period
        )
        self.alignment_pid.set_tolerance(config.alignment_tolerance_m)
        self.alignment_pid.set_setpoint(0.0)  # Zero difference between sensors

        self.distance_pid = PIDController(
            config.distance_kp, config.distance_ki, config.distance_kd, period=period
        )
        self.distance_pid.set_tolerance(config.distance_tolerance_m)
        self.distance_pid.set_setpoint(self.target_distance)

        self._sensor_warning = WarningLatch(logger)

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        # Sensors are read-only and deliberately not required
        return self._drivetrain.handles

    def initialize(self) -> None:
        self.alignment_pid.reset()
        self.distance_pid.reset()
        self._sensor_warning.clear()
        logger.info(f"{self.name}: aligning to {self.target_distance:.2f} m")

    def execute(self) -> None:
        left, right = self._sensors.read()

        if not (left.valid and right.valid):
            self._sensor_warning.warn("Distance sensors not reading valid values, stopping")
            self._drivetrain.set_motors(0.0, 0.0)
            return

        self._sensor_warning.clear("Distance sensors recovered")

        # Positive error = left sensor is further away
        alignment_error = left.distance - right.distance
        average = (left.distance + right.distance) / 2.0

        turn_output = self.alignment_pid.calculate(alignment_error)
        drive_output = self.distance_pid.calculate(average)

        turn_output = clamp(turn_output, -self.max_turn, self.max_turn)
        drive_output = clamp(drive_output, -self.max_drive, self.max_drive)

        left_speed, right_speed = ArcadeMapper.arcade(drive_output, turn_output)
        self._drivetrain.set_motors(left_speed, right_speed)

    def at_target(self) -> bool:
        """Both loops within tolerance on the most recent tick"""
        return self.alignment_pid.at_setpoint() and self.distance_pid.at_setpoint()

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool) -> None:
        self._drivetrain.stop()
        if interrupted:
            logger.info(f"{self.name}: interrupted")
        else:
            logger.info(f"{self.name}: alignment complete")


class DriveToTargetDistance:
    """
    Creep forward or backward until both sensors read the target distance.

    Bounded by a wall-clock timeout rather than a tick count.
    """

    def __init__(self, drivetrain: Drivetrain, sensors: DistanceSensors,
                 target_distance: float, tolerance: float, speed: float,
                 timeout_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Args:
            drivetrain: Drive to control
            sensors: Left/right range sensors
            target_distance: Target distance in meters
            tolerance: Tolerance in meters
            speed: Open-loop speed magnitude
            timeout_s: Maximum time to spend positioning
            clock: Monotonic time source in seconds

        Raises:
            ConfigurationError: If any parameter is not finite or is negative
        """
        self.name = "DriveToTargetDistance"
        self._drivetrain = drivetrain
        self._sensors = sensors
        self.target_distance = require_finite("target distance", target_distance,
                                              allow_negative=False)
        self.tolerance = require_finite("tolerance", tolerance, allow_negative=False)
        self.speed = abs(require_finite("speed", speed))
        self.timeout_s = require_finite("timeout", timeout_s, allow_negative=False)
        self._clock = clock

        self._start_time = 0.0
        self._sensor_warning = WarningLatch(logger)

    @classmethod
    def from_config(cls, drivetrain: Drivetrain, sensors: DistanceSensors,
                    config: AlignmentConfig,
                    clock: Callable[[], float] = time.monotonic) -> "DriveToTargetDistance":
        """Create using the alignment configuration defaults"""
        return cls(
            drivetrain,
            sensors,
            target_distance=config.target_distance_m,
            tolerance=config.distance_tolerance_m,
            speed=config.positioning_speed,
            timeout_s=config.positioning_timeout_s,
            clock=clock,
        )

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._drivetrain.handles

    def initialize(self) -> None:
        self._start_time = self._clock()
        self._sensor_warning.clear()
        logger.info(f"{self.name}: positioning to {self.target_distance:.2f} m")

    def execute(self) -> None:
        left, right = self._sensors.read()

        if not (left.valid and right.valid):
            self._sensor_warning.warn("Distance sensors not reading valid values, stopping")
            self._drivetrain.set_motors(0.0, 0.0)
            return

        self._sensor_warning.clear("Distance sensors recovered")

        if left.within(self.target_distance, self.tolerance) and \
                right.within(self.target_distance, self.tolerance):
            self._drivetrain.set_motors(0.0, 0.0)
            return

        average = DistanceSensors.average(left, right)
        if average.distance < self.target_distance - self.tolerance:
            drive_speed = -self.speed   # Too close, back up
        elif average.distance > self.target_distance + self.tolerance:
            drive_speed = self.speed    # Too far, move in
        else:
            drive_speed = 0.0

        self._drivetrain.set_motors(drive_speed, drive_speed)

    def is_finished(self) -> bool:
        if self._clock() - self._start_time >= self.timeout_s:
            logger.warning(f"{self.name} timed out after {self.timeout_s} seconds")
            return True

        return self._sensors.both_at_target(self.target_distance, self.tolerance)

    def end(self, interrupted: bool) -> None:
        self._drivetrain.stop()
        if interrupted:
            logger.info(f"{self.name}: interrupted")
        else:
            logger.info(f"{self.name}: completed positioning")


class FiniteActuatorRun:
    """Run a mechanism at a fixed output for a number of rotations"""

    def __init__(self, mechanism: Mechanism, rotations: float, output: float,
                 timeout_ticks: int = 200) -> None:
        """
        Args:
            mechanism: Mechanism to run
            rotations: Rotations to run (must be positive and finite)
            output: Open-loop output while running
            timeout_ticks: Evaluations before giving up

        Raises:
            ConfigurationError: If rotations is not finite or is negative
        """
        self.name = f"FiniteActuatorRun[{mechanism.handle.value}]"
        self._mechanism = mechanism
        self.rotations = require_finite("rotations", rotations, allow_negative=False)
        self.output = require_finite("output", output)
        self.timeout_ticks = int(require_finite("timeout_ticks", timeout_ticks, allow_negative=False))

        self._baseline = 0.0
        self._ticks = 0

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._mechanism.handles

    def initialize(self) -> None:
        self._mechanism.reset_position()
        self._baseline = self._mechanism.position()
        self._ticks = 0

    def progress(self) -> float:
        """Rotations since activation, regardless of direction"""
        return abs(self._mechanism.position() - self._baseline)

    def execute(self) -> None:
        self._mechanism.set_output(self.output)

    def is_finished(self) -> bool:
        self._ticks += 1
        if self._ticks > self.timeout_ticks:
            logger.warning(f"{self.name} timed out after {self.timeout_ticks} iterations")
            return True

        return self.progress() >= self.rotations

    def end(self, interrupted: bool) -> None:
        self._mechanism.stop()


class HeldActuatorRun:
    """Run a mechanism at a fixed output until released"""

    def __init__(self, mechanism: Mechanism, output: float) -> None:
        self.name = f"HeldActuatorRun[{mechanism.handle.value}]"
        self._mechanism = mechanism
        self.output = require_finite("output", output)

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._mechanism.handles

    def initialize(self) -> None:
        pass

    def execute(self) -> None:
        self._mechanism.set_output(self.output)

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool) -> None:
        self._mechanism.stop()


class VelocityRun:
    """Hold a mechanism at a velocity setpoint until released or toggled off"""

    def __init__(self, mechanism: Mechanism, rps: float) -> None:
        self.name = f"VelocityRun[{mechanism.handle.value}]"
        self._mechanism = mechanism
        self.rps = require_finite("velocity", rps)

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._mechanism.handles

    def initialize(self) -> None:
        logger.info(f"{self.name}: {self.rps:+.1f} rps")

    def execute(self) -> None:
        self._mechanism.set_velocity(self.rps)

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool) -> None:
        self._mechanism.stop()


class Wait:
    """Do nothing for a fixed wall-clock interval (no requirements)"""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.name = "Wait"
        self.seconds = require_finite("seconds", seconds, allow_negative=False)
        self._clock = clock
        self._start_time = 0.0

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return frozenset()

    def initialize(self) -> None:
        self._start_time = self._clock()

    def execute(self) -> None:
        pass

    def is_finished(self) -> bool:
        return self._clock() - self._start_time >= self.seconds

    def end(self, interrupted: bool) -> None:
        pass


class Sequence:
    """
    Run primitives one after another as a single schedulable unit.

    Requires the union of its children's handles for its whole run.
    """

    def __init__(self, *steps, name: str = "Sequence") -> None:
        if not steps:
            raise ConfigurationError("Sequence needs at least one step")
        self.name = name
        self._steps = list(steps)
        self._index = 0
        self._requirements = frozenset().union(*(step.requirements for step in steps))

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        return self._requirements

    @property
    def current(self):
        """The running step, or None once every step has finished"""
        if self._index < len(self._steps):
            return self._steps[self._index]
        return None

    def initialize(self) -> None:
        self._index = 0
        self._steps[0].initialize()

    def execute(self) -> None:
        step = self.current
        if step is not None:
            step.execute()

    def is_finished(self) -> bool:
        # Finished steps hand over to the next one within the same tick
        while self.current is not None:
            step = self.current
            if not step.is_finished():
                return False
            step.end(False)
            logger.info(f"{self.name}: step {self._index + 1}/{len(self._steps)} "
                        f"({step.name}) finished")
            self._index += 1
            if self.current is not None:
                self.current.initialize()
        return True

    def end(self, interrupted: bool) -> None:
        step = self.current
        if step is not None:
            step.end(interrupted)
