"""Operator input sources"""

from controls.mock_input import MockInput, InputFrame, TestScripts
from controls.gamepad_input import GamepadInput, HAS_PYGAME

__all__ = ["MockInput", "InputFrame", "TestScripts", "GamepadInput", "HAS_PYGAME"]
