"""
RobotContainer - Wires subsystems, default command, bindings and routines.

Everything the robot is made of is created here and passed by reference;
nothing in drivecore reaches for a global.
"""

import logging
import time
from typing import Callable, Optional

from .engine import CommandEngine
from .interfaces import ActuatorSink, SensorSource, TriggerSource
from .mapper import ArcadeMapper
from .primitives import (
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
from .subsystems import DistanceSensors, Drivetrain, Mechanism
from .triggers import Trigger
from .types import ActuatorHandle, RobotSettings


logger = logging.getLogger(__name__)


class RobotContainer:
    """
    Robot wiring.

    Mechanisms:
    - feeder: open-loop, runs while its button is held or for a fixed
      number of rotations during the shooting routine
    - intake: velocity setpoint while its button is held
    - shooter: velocity setpoint, toggled on/off by its button
    """

    def __init__(
        self,
        sink: ActuatorSink,
        sensor_source: SensorSource,
        controls: Optional[TriggerSource] = None,
        config: Optional[RobotSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Build the robot.

        Args:
            sink: Motor controller access
            sensor_source: Range sensor access
            controls: Operator input; None leaves the drive without a default
            config: Tuning values (defaults if omitted)
            clock: Monotonic time source for time-bounded primitives
        """
        self.config = config or RobotSettings()
        self.clock = clock

        self.drivetrain = Drivetrain(sink, self.config.drive)
        max_rps = self.config.mechanism.max_velocity_rps
        self.feeder = Mechanism(sink, ActuatorHandle.FEEDER, max_rps)
        self.intake = Mechanism(sink, ActuatorHandle.INTAKE, max_rps)
        self.shooter = Mechanism(sink, ActuatorHandle.SHOOTER, max_rps)
        self.sensors = DistanceSensors(sensor_source)
        self.mechanisms = (self.feeder, self.intake, self.shooter)

        self.mapper = ArcadeMapper(self.config.drive)
        self.engine = CommandEngine()
        self.controls = controls

        if controls is not None:
            self._configure_default_command(controls)
            self._configure_bindings(controls)

    def _configure_default_command(self, controls: TriggerSource) -> None:
        """Arcade drive resumes whenever nothing else owns the drive"""
        axes = self.config.controls
        self.engine.set_default(lambda: ArcadeDrive(
            self.drivetrain,
            # Stick forward reads negative
            forward=lambda: -controls.get_axis(axes.forward_axis),
            turn=lambda: controls.get_axis(axes.turn_axis),
            mapper=self.mapper,
        ))

    def _configure_bindings(self, controls: TriggerSource) -> None:
        buttons = self.config.controls
        mechanism = self.config.mechanism

        self.engine.bind(Trigger.button(controls, buttons.intake_button).while_true(
            lambda: VelocityRun(self.intake, mechanism.intake_velocity_rps)
        ))
        self.engine.bind(Trigger.button(controls, buttons.shooter_button).toggle_on_true(
            lambda: VelocityRun(self.shooter, mechanism.shooter_velocity_rps)
        ))
        self.engine.bind(Trigger.button(controls, buttons.align_button).while_true(
            self.make_align_command
        ))
        self.engine.bind(Trigger.button(controls, buttons.feeder_button).while_true(
            lambda: HeldActuatorRun(self.feeder, mechanism.feeder_output)
        ))

        logger.info(
            f"Bindings: intake={buttons.intake_button} shooter={buttons.shooter_button} "
            f"align={buttons.align_button} feeder={buttons.feeder_button}"
        )

    def make_align_command(self) -> AlignWithSensors:
        return AlignWithSensors(
            self.drivetrain,
            self.sensors,
            self.config.alignment,
            period=self.config.supervisor.loop_interval,
        )

    def get_autonomous_command(self) -> Sequence:
        """
        Drive forward, then turn in place.

        Returns:
            A fresh Sequence each call
        """
        auto = self.config.auto
        return Sequence(
            DriveForward(self.drivetrain, auto.forward_distance_m,
                         speed=auto.drive_speed, timeout_ticks=auto.drive_timeout_ticks),
            Turn(self.drivetrain, auto.turn_degrees,
                 speed=auto.turn_speed, timeout_ticks=auto.turn_timeout_ticks),
            name="Autonomous",
        )

    def get_position_and_shoot_command(self) -> Sequence:
        """
        Back off to the target distance, let the shooter spin up, then feed.
        """
        mechanism = self.config.mechanism
        return Sequence(
            DriveToTargetDistance.from_config(self.drivetrain, self.sensors,
                                              self.config.alignment, clock=self.clock),
            Wait(0.5, clock=self.clock),
            FiniteActuatorRun(self.feeder, mechanism.feeder_rotations, mechanism.feeder_output,
                              timeout_ticks=mechanism.feeder_timeout_ticks),
            name="PositionAndShoot",
        )

    def stop_all(self) -> None:
        """Zero every actuator directly (bypasses the engine)"""
        self.drivetrain.stop()
        for mech in self.mechanisms:
            mech.stop()

    def brake_all(self, power: float) -> None:
        """
        Apply reverse power to the drive, feeder and shooter.

        The intake is left alone; it has no momentum worth braking.
        """
        power = -abs(power)
        self.drivetrain.brake(power)
        self.feeder.brake(power)
        self.shooter.brake(power)
