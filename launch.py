#!/usr/bin/env python3
"""
drivecore Launcher - Run the control loop against simulated hardware

Usage:
    python launch.py                          # Autonomous routine, scripted input
    python launch.py --mode teleop --gamepad  # Drive with a controller
    python launch.py --mode teleop --script toggle_shooter
    python launch.py --routine shoot          # Position-and-shoot routine
"""

import sys
import argparse
import asyncio
import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure logging"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )


def build_controls(use_gamepad: bool, script: str, settings):
    """Create the operator input source"""
    if use_gamepad:
        from controls.gamepad_input import GamepadInput, HAS_PYGAME
        if not HAS_PYGAME:
            print("\nERROR: pygame not installed")
            print("Install with: pip install pygame")
            sys.exit(1)
        return GamepadInput()

    from controls.mock_input import MockInput
    controls = MockInput()
    controls.load_script(script, settings.controls)
    return controls


def launch(args) -> None:
    """Wire the robot against mock hardware and run the supervisor"""
    from robot_config import RobotConfig
    from drivecore.container import RobotContainer
    from drivecore.hardware import MockActuatorSink, MockSensorSource
    from drivecore.supervisor import Supervisor
    from drivecore.types import RobotMode

    config = RobotConfig(args.env_file)
    is_valid, errors = config.validate()
    if not is_valid:
        for error in errors:
            logging.getLogger(__name__).error(f"Configuration error: {error}")
        sys.exit(1)

    settings = config.settings
    print("Using MOCK hardware (no actual motors or sensors)")
    sink = MockActuatorSink()
    sensors = MockSensorSource(left=1.2, right=1.1)

    controls = build_controls(args.gamepad, args.script, settings)
    container = RobotContainer(sink, sensors, controls, settings)

    autonomous = container.get_autonomous_command
    if args.routine == "shoot":
        autonomous = container.get_position_and_shoot_command

    supervisor = Supervisor(container, autonomous=autonomous)
    interval = settings.supervisor.loop_interval
    max_updates = int(args.duration / interval) if args.duration else None

    async def simulate():
        """Advance simulated encoders and sensors once per loop"""
        while True:
            await asyncio.sleep(interval)
            sink.advance(interval)
            left, _ = container.drivetrain.last_output
            sensors.approach(-left * 0.5, interval)

    async def run():
        sim_task = asyncio.create_task(simulate())
        supervisor.request_mode(RobotMode(args.mode))
        try:
            await supervisor.run(max_updates=max_updates)
        finally:
            sim_task.cancel()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        print("\nShutting down...")
        supervisor.stop()

    print(f"Done after {supervisor.update_count} updates, "
          f"{sink.write_count} actuator commands")


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="drivecore - Two-wheel-drive robot control loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python launch.py                              Run autonomous for 10 s
  python launch.py --mode teleop --gamepad      Drive with a controller
  python launch.py --routine shoot --duration 8 Position and shoot
        """
    )

    parser.add_argument(
        "--mode",
        default="autonomous",
        choices=["autonomous", "teleop", "test"],
        help="Mode to enable after start"
    )
    parser.add_argument(
        "--routine",
        default="drive",
        choices=["drive", "shoot"],
        help="Autonomous routine (drive = forward then turn)"
    )
    parser.add_argument(
        "--gamepad",
        action="store_true",
        help="Use gamepad control (requires pygame)"
    )
    parser.add_argument(
        "--script",
        default="drive_forward",
        choices=["drive_forward", "hold_intake", "toggle_shooter", "align"],
        help="Scripted input when no gamepad is used"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to run (0 = until Ctrl+C)"
    )
    parser.add_argument("--env-file", help="Path to .env file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level"
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    launch(args)


if __name__ == "__main__":
    main()
