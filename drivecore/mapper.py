"""
Mapper - Transforms joystick axes into safe differential drive outputs.

This is safety-critical code. The Mapper enforces:
- Sanitized inputs (NaN/Infinity treated as centered stick)
- Deadband to prevent drift
- Response curve for fine control near center
- Max speed fraction and turn sensitivity
- Arcade mixing with clamping to [-1, 1]
"""

import math
from typing import Tuple

from .safety import clamp, sanitize
from .types import DriveConfig


class ArcadeMapper:
    """
    Transforms (forward, turn) axis values into (left, right) outputs.

    Stateless apart from its configuration, so the same input always gives
    the same output.
    """

    def __init__(self, config: DriveConfig) -> None:
        """
        Initialize mapper with configuration.

        Args:
            config: Drive configuration (deadband, curve, limits)
        """
        self.config = config

    def mix(self, forward: float, turn: float) -> Tuple[float, float]:
        """
        Convert axis values to left/right outputs with all shaping applied.

        Args:
            forward: Forward/backward axis (-1.0 to 1.0, positive = forward)
            turn: Turn axis (-1.0 to 1.0, positive = right)

        Returns:
            (left, right) in range -1.0 to 1.0
        """
        forward = sanitize(forward)
        turn = sanitize(turn)

        forward = self._apply_deadband(forward)
        turn = self._apply_deadband(turn)

        forward = self._apply_curve(forward)
        turn = self._apply_curve(turn)

        forward *= self.config.max_speed_fraction
        turn *= self.config.max_speed_fraction * self.config.turn_sensitivity

        return self.arcade(forward, turn)

    @staticmethod
    def arcade(forward: float, turn: float) -> Tuple[float, float]:
        """
        Standard arcade mix: left = forward + turn, right = forward - turn.

        Both sides are clamped independently, so a saturated side does not
        rescale the other.
        """
        left = sanitize(forward + turn)
        right = sanitize(forward - turn)
        return left, right

    def _apply_deadband(self, value: float) -> float:
        """
        Apply deadband to eliminate drift and small movements.

        Input below the threshold returns 0. Input above it is rescaled so
        the deadband edge maps to 0 and 1.0 stays 1.0.
        """
        deadband = clamp(self.config.deadband, 0.0, 0.99)
        if abs(value) < deadband:
            return 0.0

        magnitude = (abs(value) - deadband) / (1.0 - deadband)
        return math.copysign(magnitude, value)

    def _apply_curve(self, value: float) -> float:
        """
        Apply sign-preserving power curve.

        With exponent 3 the output is value^3: small stick movements are
        gentler while +/-1.0 still reaches full range.
        """
        if value == 0.0:
            return 0.0
        return math.copysign(math.pow(abs(value), self.config.curve_exponent), value)
