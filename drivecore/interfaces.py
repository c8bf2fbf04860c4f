"""
Core interfaces (protocols) for pluggable components.

These define the contracts that all implementations must follow.
Python Protocols are like interfaces in Java/C# - they define
what methods a class must have without forcing inheritance.
"""

from typing import FrozenSet, Protocol
from .types import ActuatorHandle


class ActuatorSink(Protocol):
    """
    Interface for motor controller access (vendor hardware, simulation, etc.).

    The core never forwards a non-finite or out-of-range value to a sink;
    see drivecore.safety.
    """

    def set_output(self, handle: ActuatorHandle, value: float) -> None:
        """
        Command an open-loop output.

        Args:
            handle: Actuator to drive
            value: Output in [-1.0, 1.0]
        """
        ...

    def set_velocity_setpoint(self, handle: ActuatorHandle, rps: float) -> None:
        """
        Command a closed-loop velocity (handled by the motor controller).

        Args:
            handle: Actuator to drive
            rps: Velocity in rotations per second
        """
        ...

    def get_position(self, handle: ActuatorHandle) -> float:
        """
        Read the accumulated encoder position.

        Returns:
            Rotations since the last reset
        """
        ...

    def reset_position(self, handle: ActuatorHandle) -> None:
        """Zero the encoder position"""
        ...


class SensorSource(Protocol):
    """Interface for range sensors"""

    def get_distance(self, sensor_id: int) -> float:
        """
        Read a distance.

        Returns:
            Distance in meters, or a negative value if the reading is invalid
        """
        ...


class TriggerSource(Protocol):
    """
    Interface for operator input devices (gamepad, scripted, etc.).

    poll() is called once per tick before any axis or button is read.
    """

    async def start(self) -> None:
        """Open the device"""
        ...

    async def stop(self) -> None:
        """Release the device"""
        ...

    def poll(self) -> None:
        """Refresh the cached device state for this tick"""
        ...

    def get_axis(self, index: int) -> float:
        """Read a raw axis value in [-1.0, 1.0]"""
        ...

    def get_button(self, index: int) -> bool:
        """Read a button level"""
        ...


class Primitive(Protocol):
    """
    Capability set every motion primitive implements.

    The engine drives these through IDLE -> ACTIVATED -> RUNNING -> TERMINATED:
    initialize() once, then each tick is_finished() followed by execute()
    while unfinished, and end() exactly once.
    """

    name: str

    @property
    def requirements(self) -> FrozenSet[ActuatorHandle]:
        """Actuator handles this primitive must own exclusively"""
        ...

    def initialize(self) -> None:
        """Capture baselines, reset controllers and counters"""
        ...

    def execute(self) -> None:
        """Compute and apply one tick of output"""
        ...

    def is_finished(self) -> bool:
        """Completion predicate, evaluated at the top of every tick"""
        ...

    def end(self, interrupted: bool) -> None:
        """Apply the terminal output"""
        ...
