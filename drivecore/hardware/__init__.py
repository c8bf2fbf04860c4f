"""
Mock hardware - For testing without a robot.

Simulates motor controllers and range sensors. Outputs are recorded
instead of driving anything, and positions can either be set directly by
a test or integrated from the last command with advance().
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from ..types import ActuatorHandle


logger = logging.getLogger(__name__)


class MockActuatorSink:
    """
    Mock motor controllers.

    Records every command; get_position() returns simulated rotations.
    """

    def __init__(self, rotations_per_tick: float = 0.5) -> None:
        """
        Initialize mock sink.

        Args:
            rotations_per_tick: Rotations advanced per advance() at full output
        """
        self.rotations_per_tick = rotations_per_tick

        self._outputs: Dict[ActuatorHandle, float] = {h: 0.0 for h in ActuatorHandle}
        self._velocity: Dict[ActuatorHandle, Optional[float]] = {h: None for h in ActuatorHandle}
        self._positions: Dict[ActuatorHandle, float] = {h: 0.0 for h in ActuatorHandle}

        self._history: List[Tuple[str, ActuatorHandle, float]] = []
        self._nonfinite_writes = 0

    def set_output(self, handle: ActuatorHandle, value: float) -> None:
        """Record an open-loop output"""
        self._check(value)
        self._outputs[handle] = value
        self._velocity[handle] = None
        self._history.append(("output", handle, value))
        logger.debug(f"[MOCK] {handle.value} output={value:+.3f}")

    def set_velocity_setpoint(self, handle: ActuatorHandle, rps: float) -> None:
        """Record a closed-loop velocity setpoint"""
        self._check(rps)
        self._velocity[handle] = rps
        self._outputs[handle] = 0.0
        self._history.append(("velocity", handle, rps))
        logger.debug(f"[MOCK] {handle.value} velocity={rps:+.1f} rps")

    def get_position(self, handle: ActuatorHandle) -> float:
        return self._positions[handle]

    def reset_position(self, handle: ActuatorHandle) -> None:
        self._positions[handle] = 0.0

    def _check(self, value: float) -> None:
        if not math.isfinite(value) or abs(value) > 1e6:
            self._nonfinite_writes += 1
            logger.error(f"[MOCK] Non-finite command received: {value}")

    # Simulation helpers (for testing)

    def set_position(self, handle: ActuatorHandle, rotations: float) -> None:
        """Force an encoder reading"""
        self._positions[handle] = rotations

    def advance(self, dt: float = 0.02) -> None:
        """
        Move every actuator by one simulated tick.

        Open-loop outputs advance by output * rotations_per_tick; velocity
        setpoints advance by rps * dt.
        """
        for handle in ActuatorHandle:
            velocity = self._velocity[handle]
            if velocity is not None:
                self._positions[handle] += velocity * dt
            else:
                self._positions[handle] += self._outputs[handle] * self.rotations_per_tick

    def output(self, handle: ActuatorHandle) -> float:
        """Last open-loop output for a handle"""
        return self._outputs[handle]

    def velocity_setpoint(self, handle: ActuatorHandle) -> Optional[float]:
        """Active velocity setpoint, None if the handle is in open-loop mode"""
        return self._velocity[handle]

    @property
    def history(self) -> List[Tuple[str, ActuatorHandle, float]]:
        """Every command received, in order (for testing)"""
        return list(self._history)

    @property
    def write_count(self) -> int:
        """Total commands received (for testing)"""
        return len(self._history)

    @property
    def nonfinite_writes(self) -> int:
        """Commands that should never have reached hardware (for testing)"""
        return self._nonfinite_writes


class MockSensorSource:
    """
    Mock range sensors.

    Distances are set by the test; negative means invalid, as with the
    real driver.
    """

    def __init__(self, left: float = 1.0, right: float = 1.0) -> None:
        self._distances: Dict[int, float] = {0: left, 1: right}
        self._read_count = 0

    def get_distance(self, sensor_id: int) -> float:
        self._read_count += 1
        return self._distances.get(int(sensor_id), -1.0)

    def set_distance(self, sensor_id: int, meters: float) -> None:
        self._distances[int(sensor_id)] = meters

    def set_distances(self, left: float, right: float) -> None:
        """Set both sensors at once"""
        self._distances[0] = left
        self._distances[1] = right

    def approach(self, velocity: float, dt: float = 0.02) -> None:
        """Move both readings by velocity * dt (negative = closer)"""
        for sensor_id, distance in self._distances.items():
            if distance >= 0:
                self._distances[sensor_id] = max(0.0, distance + velocity * dt)

    @property
    def read_count(self) -> int:
        return self._read_count
