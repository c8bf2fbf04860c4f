"""
Gamepad Input Source

Reads sticks and buttons from USB/wireless game controllers via pygame.
"""

import logging
from typing import List, Optional

try:
    import pygame
    HAS_PYGAME = True
except ImportError:
    HAS_PYGAME = False


logger = logging.getLogger(__name__)


class GamepadInput:
    """
    Game controller input source.

    poll() pumps the pygame event queue once and caches every axis and
    button, so all reads within a tick see the same controller state.
    """

    def __init__(self, joystick_index: int = 0, log_state: bool = False) -> None:
        """
        Initialize gamepad input.

        Args:
            joystick_index: Which controller to open
            log_state: Log pressed buttons and axes on every poll (debugging)
        """
        if not HAS_PYGAME:
            raise RuntimeError(
                "pygame not installed. Install with: pip install pygame"
            )

        self._joystick_index = joystick_index
        self._log_state = log_state

        self._joystick: Optional["pygame.joystick.Joystick"] = None
        self._running = False

        self._axes: List[float] = []
        self._buttons: List[bool] = []

    async def start(self) -> None:
        """Initialize pygame and connect to controller"""
        if self._running:
            return

        logger.info("Initializing gamepad input...")

        pygame.init()
        pygame.joystick.init()

        joystick_count = pygame.joystick.get_count()
        logger.info(f"Found {joystick_count} game controller(s)")

        if joystick_count <= self._joystick_index:
            raise RuntimeError("No game controllers found")

        self._joystick = pygame.joystick.Joystick(self._joystick_index)
        self._joystick.init()
        logger.info(f"Selected: {self._joystick.get_name()}")
        logger.info(f"Axes: {self._joystick.get_numaxes()}")
        logger.info(f"Buttons: {self._joystick.get_numbuttons()}")

        self._running = True

    async def stop(self) -> None:
        """Disconnect from controller"""
        logger.info("Stopping gamepad input")
        self._running = False

        if self._joystick:
            self._joystick.quit()
            self._joystick = None

        pygame.joystick.quit()
        pygame.quit()

    def poll(self) -> None:
        """Read current controller state"""
        if not self._running or not self._joystick:
            self._axes = []
            self._buttons = []
            return

        # Process pygame events (required to update joystick state)
        pygame.event.pump()

        self._axes = [self._joystick.get_axis(i) for i in range(self._joystick.get_numaxes())]
        self._buttons = [bool(self._joystick.get_button(i))
                         for i in range(self._joystick.get_numbuttons())]

        if self._log_state:
            self._log_controller_state()

    def get_axis(self, index: int) -> float:
        if 0 <= index < len(self._axes):
            return self._axes[index]
        return 0.0

    def get_button(self, index: int) -> bool:
        # Button numbers on the controller label start at 1
        if 1 <= index <= len(self._buttons):
            return self._buttons[index - 1]
        return False

    def _log_controller_state(self) -> None:
        """Log controller state for debugging"""
        pressed = [str(i + 1) for i, down in enumerate(self._buttons) if down]
        axes = " ".join(f"{i}={v:+.2f}" for i, v in enumerate(self._axes))
        logger.debug(f"Axes: {axes} | Buttons: [{', '.join(pressed) if pressed else 'none'}]")
