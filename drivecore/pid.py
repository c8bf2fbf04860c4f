"""
PID controller - generic feedback law.

Setpoint-based: calculate() takes a measurement, not an error. The
controller never clamps its own output; callers clamp to whatever range
their actuator accepts.
"""

from typing import Optional, Tuple

from .safety import clamp, require_finite
from .types import ConfigurationError


class PIDController:
    """
    Proportional/integral/derivative controller with an at-setpoint tolerance.

    One tick of the control loop is one call to calculate(); the integral
    accumulates error * period and the derivative is the error change over
    one period.
    """

    def __init__(self, kp: float, ki: float, kd: float, period: float = 0.02) -> None:
        """
        Initialize controller.

        Args:
            kp, ki, kd: Gains (non-negative by convention)
            period: Seconds per calculate() call
        """
        if require_finite("period", period, allow_negative=False) == 0:
            raise ConfigurationError("period must be greater than zero")
        self.period = float(period)
        self.configure(kp, ki, kd)

        self._setpoint = 0.0
        self._tolerance = 0.05
        self._integrator_range: Optional[Tuple[float, float]] = None

        self._integral = 0.0
        self._prev_error: Optional[float] = None
        self._error: Optional[float] = None

    def configure(self, kp: float, ki: float, kd: float) -> None:
        """Replace the gains"""
        self.kp = require_finite("kp", kp)
        self.ki = require_finite("ki", ki)
        self.kd = require_finite("kd", kd)

    @property
    def setpoint(self) -> float:
        return self._setpoint

    def set_setpoint(self, value: float) -> None:
        self._setpoint = require_finite("setpoint", value)

    @property
    def tolerance(self) -> float:
        return self._tolerance

    def set_tolerance(self, value: float) -> None:
        """Set the |error| band considered at setpoint"""
        self._tolerance = require_finite("tolerance", value, allow_negative=False)

    def set_integrator_range(self, minimum: float, maximum: float) -> None:
        """Bound the integral accumulator (anti-windup)"""
        minimum = require_finite("integrator minimum", minimum)
        maximum = require_finite("integrator maximum", maximum)
        if minimum > maximum:
            raise ConfigurationError(
                f"integrator range is empty: [{minimum}, {maximum}]"
            )
        self._integrator_range = (minimum, maximum)

    @property
    def error(self) -> Optional[float]:
        """Error from the most recent calculate(), None after reset"""
        return self._error

    def reset(self) -> None:
        """Clear integral and derivative state (setpoint and gains are kept)"""
        self._integral = 0.0
        self._prev_error = None
        self._error = None

    def calculate(self, measurement: float) -> float:
        """
        Advance the controller one period.

        Args:
            measurement: Current process value

        Returns:
            kP*e + kI*integral(e) + kD*de/dt
        """
        error = self._setpoint - measurement

        self._integral += error * self.period
        if self._integrator_range is not None:
            self._integral = clamp(self._integral, *self._integrator_range)

        # No derivative kick on the first call after reset
        derivative = 0.0
        if self._prev_error is not None:
            derivative = (error - self._prev_error) / self.period

        self._prev_error = error
        self._error = error

        return self.kp * error + self.ki * self._integral + self.kd * derivative

    def at_setpoint(self) -> bool:
        """True iff |error| <= tolerance for the most recent calculate()"""
        if self._error is None:
            return False
        return abs(self._error) <= self._tolerance
