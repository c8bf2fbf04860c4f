"""
Core data types for the drivecore control system.

All the data structures that flow through the system, fully typed.
Configuration lives here too, one dataclass per concern, so that tuning
values are supplied by the caller and never parsed by the core itself.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
import math


class ConfigurationError(ValueError):
    """Raised when a primitive or controller is given unusable parameters"""


class ActuatorHandle(Enum):
    """Physical outputs - each one is an exclusivity token for the engine"""
    DRIVE_LEFT = "drive_left"
    DRIVE_RIGHT = "drive_right"
    FEEDER = "feeder"
    INTAKE = "intake"
    SHOOTER = "shooter"


class SensorId(IntEnum):
    """Range sensors on the front of the robot"""
    LEFT = 0
    RIGHT = 1


class RobotMode(Enum):
    """Supervisor state machine states"""
    DISABLED = "disabled"        # Outputs braked, engine idle
    AUTONOMOUS = "autonomous"    # Autonomous routine scheduled
    TELEOP = "teleop"            # Operator control via bindings/default command
    TEST = "test"                # Engine ticks, nothing scheduled automatically


class PrimitiveState(Enum):
    """Lifecycle of a primitive inside the engine"""
    IDLE = "idle"
    ACTIVATED = "activated"
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class SensorReading:
    """
    One distance measurement.

    Invalid readings are ordinary data: the sensor layer reports them with
    valid=False and a negative distance instead of raising.
    """
    distance: float              # Meters, negative when invalid
    valid: bool

    INVALID_DISTANCE = -1.0

    @classmethod
    def invalid(cls) -> "SensorReading":
        """Create the sentinel invalid reading"""
        return cls(distance=cls.INVALID_DISTANCE, valid=False)

    def within(self, target: float, tolerance: float) -> bool:
        """Check if this reading is valid and within tolerance of target"""
        return self.valid and abs(self.distance - target) <= tolerance


INCH = 0.0254


@dataclass
class DriveConfig:
    """Configuration for the drivetrain and arcade mixing"""
    wheel_diameter_m: float = 2 * INCH     # Wheel diameter (meters)
    gear_ratio: float = 3.0                # Motor rotations per wheel rotation
    track_width_m: float = 24 * INCH       # Distance between wheel centers (meters)
    max_speed_fraction: float = 0.7        # Scale applied to both arcade axes (0-1)
    turn_sensitivity: float = 0.5          # Extra scale on the turn axis only (0-1)
    deadband: float = 0.05                 # Ignore joystick values below this
    curve_exponent: float = 3.0            # Response curve (1.0 = linear, 3.0 = cubic)
    disabled_brake_power: float = 0.15     # Reverse power while disabled (0 = off)

    @property
    def wheel_circumference_m(self) -> float:
        """Wheel circumference in meters"""
        return self.wheel_diameter_m * math.pi

    @property
    def rotations_to_meters(self) -> float:
        """Conversion from motor encoder rotations to meters travelled"""
        return self.gear_ratio * self.wheel_circumference_m


@dataclass
class AutoConfig:
    """Configuration for autonomous motion primitives"""
    forward_distance_m: float = 0.5    # DriveForward target
    drive_speed: float = 0.5           # Open-loop output while driving forward
    turn_speed: float = 0.4            # Open-loop output while turning in place
    turn_degrees: float = 90.0         # Turn target
    drive_timeout_ticks: int = 200     # ~4 s at 50 Hz
    turn_timeout_ticks: int = 300      # ~6 s at 50 Hz


@dataclass
class AlignmentConfig:
    """Configuration for the dual range-sensor routines"""
    target_distance_m: float = 0.5       # Desired distance from the target face
    alignment_kp: float = 1.5            # Turn loop gains (left - right error)
    alignment_ki: float = 0.0
    alignment_kd: float = 0.05
    alignment_tolerance_m: float = 0.01  # |left - right| considered aligned
    distance_kp: float = 1.2             # Drive loop gains (average distance)
    distance_ki: float = 0.0
    distance_kd: float = 0.02
    distance_tolerance_m: float = 0.02   # |average - target| considered arrived
    max_turn_output: float = 0.3         # Clamp on the alignment loop output
    max_drive_output: float = 0.4        # Clamp on the distance loop output
    positioning_speed: float = 0.15      # DriveToTargetDistance open-loop speed
    positioning_timeout_s: float = 5.0   # DriveToTargetDistance wall-clock limit


@dataclass
class MechanismConfig:
    """Configuration for the single-axis mechanisms"""
    feeder_output: float = -0.11         # Feeder percent output
    feeder_rotations: float = 2.0        # Rotations per feed cycle
    feeder_timeout_ticks: int = 200      # ~4 s at 50 Hz
    intake_velocity_rps: float = 20.0    # Intake velocity setpoint
    shooter_velocity_rps: float = -28.0  # Shooter velocity setpoint (negative = reverse)
    max_velocity_rps: float = 100.0      # Bound on any velocity setpoint


@dataclass
class ControlsConfig:
    """Joystick axis and button assignments"""
    forward_axis: int = 1         # Y-axis, pushed forward reads negative
    turn_axis: int = 0            # X-axis
    intake_button: int = 6
    shooter_button: int = 5
    align_button: int = 7
    feeder_button: int = 8


@dataclass
class SupervisorConfig:
    """Configuration for the Supervisor"""
    loop_interval: float = 0.02        # Main loop interval (50Hz)
    warn_on_overrun: bool = True       # Warn once when an update exceeds loop_interval


@dataclass
class RobotSettings:
    """Everything the container needs, grouped"""
    drive: DriveConfig = field(default_factory=DriveConfig)
    auto: AutoConfig = field(default_factory=AutoConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    mechanism: MechanismConfig = field(default_factory=MechanismConfig)
    controls: ControlsConfig = field(default_factory=ControlsConfig)
    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
