"""
Safety - The validation boundary between control math and hardware.

Every actuator write goes through sanitize(); every distance reading goes
through is_valid_distance() before it reaches a control law. Nothing in
here raises at runtime except parameter validation, which is meant to fail
at construction.
"""

import logging
import math
from typing import Optional

from .types import ConfigurationError


logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value to range [low, high]"""
    return max(low, min(high, value))


def sanitize(value: float, limit: float = 1.0) -> float:
    """
    Make a value safe to forward to an actuator.

    Args:
        value: Raw command from upstream computation
        limit: Symmetric bound (1.0 for open-loop output)

    Returns:
        0.0 for NaN/Infinity, otherwise value clamped to [-limit, limit]
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return clamp(value, -limit, limit)


def is_valid_distance(value: Optional[float]) -> bool:
    """Negative (or non-finite) distance is the invalid-reading sentinel"""
    return value is not None and math.isfinite(value) and value >= 0


def require_finite(name: str, value: float, allow_negative: bool = True) -> float:
    """
    Validate a configuration parameter.

    Args:
        name: Parameter name for the error message
        value: Value to check
        allow_negative: If False, negative values are rejected too

    Returns:
        The value as float

    Raises:
        ConfigurationError: If the value is not usable
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got: {value!r}") from None
    if not math.isfinite(number):
        raise ConfigurationError(f"{name} must be finite, got: {value}")
    if not allow_negative and number < 0:
        raise ConfigurationError(f"{name} must be a positive finite number, got: {value}")
    return number


class WarningLatch:
    """
    One-shot warning per fault episode.

    warn() logs only the first time after construction or clear(), so a
    fault that persists for hundreds of ticks produces one console line.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._active = False

    @property
    def active(self) -> bool:
        """True while a fault episode is in progress"""
        return self._active

    def warn(self, message: str) -> bool:
        """
        Report a fault.

        Returns:
            True if the warning was emitted, False if suppressed
        """
        if self._active:
            return False
        self._active = True
        self._log.warning(message)
        return True

    def clear(self, message: Optional[str] = None) -> None:
        """End the fault episode and re-arm"""
        if self._active and message:
            self._log.info(message)
        self._active = False
