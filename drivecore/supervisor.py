"""
Supervisor - Mode state machine and fixed-period scheduling driver.

The Supervisor is the main control loop. It:
- Manages mode transitions (disabled -> autonomous -> teleop -> etc.)
- Ticks the command engine once per period while enabled
- Brakes every actuator while disabled
- Watches for loop overruns
- Enters failsafe when anything in a tick raises

This is safety-critical code.
"""

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional

from .container import RobotContainer
from .interfaces import Primitive
from .safety import WarningLatch
from .types import RobotMode, SupervisorConfig


logger = logging.getLogger(__name__)


class Supervisor:
    """
    Main control loop and safety supervisor.

    update() is synchronous and runs exactly one tick; run() is the asyncio
    loop that calls it once per loop_interval.
    """

    def __init__(
        self,
        container: RobotContainer,
        config: Optional[SupervisorConfig] = None,
        autonomous: Optional[Callable[[], Primitive]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize supervisor.

        Args:
            container: Wired robot (engine, subsystems, controls)
            config: Supervisor configuration (container's if omitted)
            autonomous: Factory for the autonomous routine
                (defaults to container.get_autonomous_command)
            clock: Monotonic time source used for overrun detection
        """
        self.container = container
        self.engine = container.engine
        self.input = container.controls
        self.config = config or container.config.supervisor
        self._autonomous_factory = autonomous or container.get_autonomous_command
        self._clock = clock

        self.mode = RobotMode.DISABLED
        self._requested_mode: Optional[RobotMode] = None
        self._autonomous_command: Optional[Primitive] = None

        self._running = False
        self._update_count = 0
        self._overrun = WarningLatch(logger)

        # State change callbacks
        self._state_callbacks: List[Callable[[RobotMode, RobotMode], Any]] = []

    def add_state_callback(self, callback: Callable[[RobotMode, RobotMode], Any]) -> None:
        """
        Register callback for mode changes.

        Callback signature: callback(old_mode, new_mode)
        """
        self._state_callbacks.append(callback)

    def request_mode(self, mode: RobotMode) -> None:
        """Request a mode change; applied at the start of the next update"""
        self._requested_mode = mode

    async def run(self, max_updates: Optional[int] = None) -> None:
        """
        Main control loop - runs until stopped.

        Args:
            max_updates: Stop after this many updates (None = until stop())
        """
        logger.info("Supervisor starting")
        self._running = True

        try:
            if self.input is not None:
                await self.input.start()

            updates = 0
            while self._running:
                started = self._clock()
                try:
                    self.update()
                except Exception as e:
                    logger.error(f"Error in supervisor update: {e}", exc_info=True)
                    self._enter_failsafe(f"Update error: {e}")

                updates += 1
                if max_updates is not None and updates >= max_updates:
                    break

                elapsed = self._clock() - started
                await asyncio.sleep(max(0.0, self.config.loop_interval - elapsed))

        finally:
            logger.info("Supervisor stopping")
            await self._cleanup()

    def stop(self) -> None:
        """Stop the supervisor (call from outside async context)"""
        self._running = False

    def update(self) -> None:
        """
        Single iteration of the control loop.

        Raises:
            Exception: Whatever a primitive raised during the engine tick
        """
        started = self._clock()
        self._update_count += 1

        if self._requested_mode is not None:
            requested, self._requested_mode = self._requested_mode, None
            self._transition_to(requested)

        if self.input is not None:
            self.input.poll()

        if self.mode == RobotMode.DISABLED:
            self._handle_disabled()
        else:
            self.engine.tick()

        self._check_overrun(self._clock() - started)

    def _handle_disabled(self) -> None:
        """DISABLED - engine idle, reverse power on everything with momentum"""
        power = self.container.config.drive.disabled_brake_power
        if power:
            self.container.brake_all(power)
        else:
            self.container.stop_all()

    def _check_overrun(self, elapsed: float) -> None:
        if not self.config.warn_on_overrun:
            return

        budget = self.config.loop_interval
        if elapsed > budget:
            self._overrun.warn(
                f"Loop overrun: update took {elapsed * 1000:.1f} ms "
                f"(budget {budget * 1000:.1f} ms)"
            )
        else:
            self._overrun.clear("Loop timing recovered")

    def _enter_failsafe(self, reason: str) -> None:
        """Stop everything and drop to DISABLED"""
        logger.critical(f"Entering FAILSAFE: {reason}")
        self._requested_mode = None
        self.engine.cancel_all()
        self.container.stop_all()
        self._autonomous_command = None
        self._transition_to(RobotMode.DISABLED)

    def _transition_to(self, new_mode: RobotMode) -> None:
        """
        Transition to new mode and run its entry actions.

        Args:
            new_mode: Mode to transition to
        """
        if new_mode == self.mode:
            return

        old_mode = self.mode
        logger.info(f"Mode transition: {old_mode.value} -> {new_mode.value}")
        self.mode = new_mode

        if new_mode in (RobotMode.DISABLED, RobotMode.TEST):
            self.engine.cancel_all()
            self._autonomous_command = None

        elif new_mode == RobotMode.AUTONOMOUS:
            self._autonomous_command = self._autonomous_factory()
            logger.info(f"Scheduling autonomous routine {self._autonomous_command.name}")
            self.engine.schedule(self._autonomous_command)

        elif new_mode == RobotMode.TELEOP:
            # Autonomous never carries over into operator control
            if self._autonomous_command is not None:
                self.engine.cancel(self._autonomous_command)
                self._autonomous_command = None

        # Notify callbacks
        for callback in self._state_callbacks:
            try:
                callback(old_mode, new_mode)
            except Exception as e:
                logger.error(f"Error in state callback: {e}", exc_info=True)

    async def _cleanup(self) -> None:
        """Cleanup on shutdown"""
        try:
            self.engine.cancel_all()
            self.container.stop_all()

            if self.input is not None:
                await self.input.stop()

        except Exception as e:
            logger.error(f"Error during cleanup: {e}", exc_info=True)

    # Public properties for UI/monitoring

    @property
    def is_enabled(self) -> bool:
        return self.mode != RobotMode.DISABLED

    @property
    def autonomous_command(self) -> Optional[Primitive]:
        """Autonomous routine scheduled on the last AUTONOMOUS entry"""
        return self._autonomous_command

    @property
    def update_count(self) -> int:
        return self._update_count
