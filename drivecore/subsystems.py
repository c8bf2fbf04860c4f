"""
Subsystems - Handle-owning wrappers around the hardware interfaces.

Primitives never talk to an ActuatorSink directly. They go through these
wrappers, which apply the safety layer on every write and turn raw sensor
values into SensorReading objects on every read.
"""

from typing import FrozenSet, Tuple

from .interfaces import ActuatorSink, SensorSource
from .safety import is_valid_distance, sanitize
from .types import ActuatorHandle, DriveConfig, SensorId, SensorReading


class Drivetrain:
    """Two-wheel differential drive (left + right handles)"""

    LEFT = ActuatorHandle.DRIVE_LEFT
    RIGHT = ActuatorHandle.DRIVE_RIGHT

    def __init__(self, sink: ActuatorSink, config: DriveConfig) -> None:
        """
        Args:
            sink: Motor controller access
            config: Geometry and limits
        """
        self._sink = sink
        self.config = config
        self._last_output: Tuple[float, float] = (0.0, 0.0)

    @property
    def handles(self) -> FrozenSet[ActuatorHandle]:
        return frozenset({self.LEFT, self.RIGHT})

    @property
    def last_output(self) -> Tuple[float, float]:
        """Last (left, right) pair forwarded to the sink"""
        return self._last_output

    def set_motors(self, left: float, right: float) -> None:
        """
        Set both sides.

        Args:
            left: Left output (-1.0 to 1.0), sanitized before forwarding
            right: Right output (-1.0 to 1.0), sanitized before forwarding
        """
        left = sanitize(left)
        right = sanitize(right)
        self._sink.set_output(self.LEFT, left)
        self._sink.set_output(self.RIGHT, right)
        self._last_output = (left, right)

    def stop(self) -> None:
        """Zero both sides"""
        self.set_motors(0.0, 0.0)

    def brake(self, power: float) -> None:
        """Apply the same (usually reverse) power to both sides"""
        self.set_motors(power, power)

    def left_meters(self) -> float:
        """Left distance travelled since the last reset"""
        return self._sink.get_position(self.LEFT) * self.config.rotations_to_meters

    def right_meters(self) -> float:
        """Right distance travelled since the last reset"""
        return self._sink.get_position(self.RIGHT) * self.config.rotations_to_meters

    def average_meters(self) -> float:
        """Average distance of both sides"""
        return (self.left_meters() + self.right_meters()) / 2.0

    def reset_encoders(self) -> None:
        self._sink.reset_position(self.LEFT)
        self._sink.reset_position(self.RIGHT)


class Mechanism:
    """Single-axis actuator (feeder, intake, shooter)"""

    def __init__(self, sink: ActuatorSink, handle: ActuatorHandle,
                 max_velocity_rps: float = 100.0) -> None:
        """
        Args:
            sink: Motor controller access
            handle: Which actuator this wraps
            max_velocity_rps: Bound applied to every velocity setpoint
        """
        self._sink = sink
        self.handle = handle
        self.max_velocity_rps = abs(max_velocity_rps)

    @property
    def handles(self) -> FrozenSet[ActuatorHandle]:
        return frozenset({self.handle})

    def set_output(self, value: float) -> None:
        self._sink.set_output(self.handle, sanitize(value))

    def set_velocity(self, rps: float) -> None:
        self._sink.set_velocity_setpoint(self.handle, sanitize(rps, self.max_velocity_rps))

    def stop(self) -> None:
        self._sink.set_output(self.handle, 0.0)

    def brake(self, power: float) -> None:
        self.set_output(power)

    def position(self) -> float:
        """Rotations since the last reset"""
        return self._sink.get_position(self.handle)

    def reset_position(self) -> None:
        self._sink.reset_position(self.handle)


class DistanceSensors:
    """
    Left and right range sensors.

    Read-only: primitives that use the sensors do not require them, so
    several primitives may read them on the same tick.
    """

    def __init__(self, source: SensorSource,
                 left_id: int = SensorId.LEFT,
                 right_id: int = SensorId.RIGHT) -> None:
        self._source = source
        self._left_id = left_id
        self._right_id = right_id

    def _reading(self, sensor_id: int) -> SensorReading:
        raw = self._source.get_distance(sensor_id)
        if not is_valid_distance(raw):
            return SensorReading.invalid()
        return SensorReading(distance=float(raw), valid=True)

    def left(self) -> SensorReading:
        return self._reading(self._left_id)

    def right(self) -> SensorReading:
        return self._reading(self._right_id)

    def read(self) -> Tuple[SensorReading, SensorReading]:
        """Read both sensors once"""
        return self.left(), self.right()

    @staticmethod
    def average(left: SensorReading, right: SensorReading) -> SensorReading:
        """Average of two readings, invalid if either is invalid"""
        if not (left.valid and right.valid):
            return SensorReading.invalid()
        return SensorReading(distance=(left.distance + right.distance) / 2.0, valid=True)

    def both_valid(self) -> bool:
        left, right = self.read()
        return left.valid and right.valid

    def both_at_target(self, target: float, tolerance: float) -> bool:
        """Check if both sensors are individually within tolerance of target"""
        left, right = self.read()
        return left.within(target, tolerance) and right.within(target, tolerance)
