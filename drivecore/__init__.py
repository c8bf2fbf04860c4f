"""
drivecore - Periodic closed-loop actuator control for a two-wheel-drive robot.

This package contains the control core:
- Types: Handles, sensor readings, modes and configuration dataclasses
- Interfaces: Protocols for pluggable components (actuators, sensors, input)
- Safety: Output sanitizing and parameter validation
- PID: Generic feedback controller
- Primitives: Drive, turn, align and mechanism routines
- Engine: Cooperative scheduler with exclusive actuator ownership
- Supervisor: Mode state machine and fixed-period loop
"""

from .types import (
    ActuatorHandle,
    ConfigurationError,
    PrimitiveState,
    RobotMode,
    RobotSettings,
    SensorReading,
)
from .interfaces import (
    ActuatorSink,
    Primitive,
    SensorSource,
    TriggerSource,
)
from .pid import PIDController
from .engine import CommandEngine
from .triggers import Trigger

__all__ = [
    "ActuatorHandle",
    "ConfigurationError",
    "PrimitiveState",
    "RobotMode",
    "RobotSettings",
    "SensorReading",
    "ActuatorSink",
    "Primitive",
    "SensorSource",
    "TriggerSource",
    "PIDController",
    "CommandEngine",
    "Trigger",
]
