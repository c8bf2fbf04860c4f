#!/usr/bin/env python3
"""
drivecore Environment Configuration Helper

Loads a .env file and builds RobotSettings from DRIVECORE_* variables.
Anything not set keeps the dataclass default.
"""

import math
import os
from dataclasses import fields
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from drivecore.types import RobotSettings


# Environment prefix per settings section
SECTION_PREFIXES = {
    "drive": "DRIVECORE_DRIVE_",
    "auto": "DRIVECORE_AUTO_",
    "alignment": "DRIVECORE_ALIGN_",
    "mechanism": "DRIVECORE_MECH_",
    "controls": "DRIVECORE_CONTROLS_",
    "supervisor": "DRIVECORE_SUPERVISOR_",
}

_TRUE_VALUES = ("1", "true", "yes", "on")


class RobotConfig:
    """Configuration manager for drivecore tools"""

    def __init__(self, env_file: Optional[str] = None):
        """
        Initialize configuration

        Args:
            env_file: Path to .env file (default: .env in current directory)
        """
        self._loaded = False
        self._errors: list[str] = []

        if env_file is None:
            env_file = Path(".env")
        else:
            env_file = Path(env_file)

        if env_file.exists():
            load_dotenv(env_file)
            self._loaded = True

        self.settings = self._build_settings()

    @staticmethod
    def env_name(section: str, field_name: str) -> str:
        """Environment variable name for a settings field"""
        return SECTION_PREFIXES[section] + field_name.upper()

    def _build_settings(self) -> RobotSettings:
        settings = RobotSettings()
        for section in SECTION_PREFIXES:
            group = getattr(settings, section)
            for f in fields(group):
                raw = os.getenv(self.env_name(section, f.name))
                if raw is None:
                    continue
                value = self._parse(raw, getattr(group, f.name), self.env_name(section, f.name))
                if value is not None:
                    setattr(group, f.name, value)
        return settings

    def _parse(self, raw: str, default, name: str):
        """Convert raw text to the type of the default; record an error on failure"""
        raw = raw.strip()
        try:
            if isinstance(default, bool):
                return raw.lower() in _TRUE_VALUES
            if isinstance(default, int):
                return int(raw)
            return float(raw)
        except ValueError:
            self._errors.append(f"{name} has invalid value {raw!r}")
            return None

    @property
    def loaded(self) -> bool:
        """True if a .env file was found and loaded"""
        return self._loaded

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration

        Returns:
            (is_valid, list_of_errors)
        """
        errors = list(self._errors)
        s = self.settings

        for section in SECTION_PREFIXES:
            group = getattr(s, section)
            for f in fields(group):
                value = getattr(group, f.name)
                if isinstance(value, float) and not math.isfinite(value):
                    errors.append(f"{self.env_name(section, f.name)} must be finite")

        if not s.drive.track_width_m > 0:
            errors.append("Track width must be greater than zero")
        if not s.drive.wheel_diameter_m > 0:
            errors.append("Wheel diameter must be greater than zero")
        if not 0.0 <= s.drive.deadband < 1.0:
            errors.append("Deadband must be in [0, 1)")
        if not 0.0 <= s.drive.max_speed_fraction <= 1.0:
            errors.append("Max speed fraction must be in [0, 1]")
        if not 0.0 <= s.drive.disabled_brake_power <= 1.0:
            errors.append("Disabled brake power must be in [0, 1]")
        if not s.auto.drive_speed > 0:
            errors.append("Autonomous drive speed must be greater than zero")
        if s.auto.forward_distance_m < 0:
            errors.append("Autonomous forward distance must not be negative")
        if s.alignment.target_distance_m < 0:
            errors.append("Alignment target distance must not be negative")
        if s.mechanism.feeder_rotations < 0:
            errors.append("Feeder rotations must not be negative")
        if not s.supervisor.loop_interval > 0:
            errors.append("Loop interval must be greater than zero")

        return len(errors) == 0, errors

    def print_status(self):
        """Print configuration status"""
        s = self.settings
        print("drivecore Configuration Status:")
        print(f"  .env loaded:    {'Yes' if self._loaded else 'No'}")
        print(f"  Track width:    {s.drive.track_width_m:.4f} m")
        print(f"  Wheel diameter: {s.drive.wheel_diameter_m:.4f} m")
        print(f"  Gear ratio:     {s.drive.gear_ratio}")
        print(f"  Max speed:      {s.drive.max_speed_fraction:.0%}")
        print(f"  Deadband:       {s.drive.deadband}")
        print(f"  Brake power:    {s.drive.disabled_brake_power}")
        print(f"  Auto:           {s.auto.forward_distance_m} m, then {s.auto.turn_degrees} deg")
        print(f"  Align target:   {s.alignment.target_distance_m} m")
        print(f"  Loop interval:  {s.supervisor.loop_interval * 1000:.0f} ms")

        is_valid, errors = self.validate()
        if is_valid:
            print("\n  Status: Configuration is valid")
        else:
            print("\n  Status: Configuration has errors:")
            for error in errors:
                print(f"    - {error}")


# Global config instance
_config = None

def get_config(reload: bool = False, env_file: Optional[str] = None) -> RobotConfig:
    """
    Get the global configuration instance

    Args:
        reload: Force reload of .env file
        env_file: Path to .env file (used on first load or reload)

    Returns:
        RobotConfig instance
    """
    global _config
    if _config is None or reload:
        _config = RobotConfig(env_file)
    return _config


def main():
    """Command-line utility to check configuration"""
    import argparse

    parser = argparse.ArgumentParser(
        description="drivecore Configuration Utility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Check current configuration:
    python robot_config.py

  Validate configuration:
    python robot_config.py --validate

  Use custom .env file:
    python robot_config.py --env-file /path/to/.env
        """
    )

    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument("--validate", action="store_true",
                       help="Validate configuration and exit with error if invalid")

    args = parser.parse_args()

    config = RobotConfig(args.env_file)
    config.print_status()

    if args.validate:
        is_valid, errors = config.validate()
        if not is_valid:
            print("\nValidation failed!")
            import sys
            sys.exit(1)
        else:
            print("\nValidation passed!")


if __name__ == "__main__":
    main()
