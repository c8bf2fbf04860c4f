"""
Mock (test) input source.

Provides scripted stick and button input for testing without a controller.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from drivecore.types import ControlsConfig


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputFrame:
    """Controller state for one tick"""
    axes: Dict[int, float] = field(default_factory=dict)   # Raw axis values (-1.0 to 1.0)
    buttons: FrozenSet[int] = frozenset()                  # Indices of pressed buttons


class MockInput:
    """
    Mock input source for testing.

    Each poll() advances to the next scripted frame; after the script runs
    out the last frame is held. Tests can also set axes and buttons
    directly between polls.
    """

    def __init__(self, frames: Optional[List[InputFrame]] = None) -> None:
        """
        Initialize mock input.

        Args:
            frames: Frames to play back, one per poll().
                   If None, the controller stays centered with nothing pressed.
        """
        self._frames = frames or []
        self._index = 0
        self._running = False

        self._axes: Dict[int, float] = {}
        self._buttons: set = set()

    async def start(self) -> None:
        """Start the input source"""
        logger.info(f"[MOCK INPUT] Started - Script mode ({len(self._frames)} frames)")
        self._running = True
        self._index = 0

    async def stop(self) -> None:
        """Stop the input source"""
        logger.info("[MOCK INPUT] Stopped")
        self._running = False

    def poll(self) -> None:
        """Load the next scripted frame"""
        if self._index < len(self._frames):
            frame = self._frames[self._index]
            self._axes = dict(frame.axes)
            self._buttons = set(frame.buttons)
            self._index += 1

    def get_axis(self, index: int) -> float:
        return self._axes.get(index, 0.0)

    def get_button(self, index: int) -> bool:
        return index in self._buttons

    # Direct control (for testing)

    def set_axis(self, index: int, value: float) -> None:
        self._axes[index] = value

    def press(self, index: int) -> None:
        self._buttons.add(index)

    def release(self, index: int) -> None:
        self._buttons.discard(index)

    def reset(self) -> None:
        """Reset to beginning of script"""
        self._index = 0
        self._axes = {}
        self._buttons = set()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def frames_remaining(self) -> int:
        return max(0, len(self._frames) - self._index)

    def load_script(self, script_name: str, controls: Optional[ControlsConfig] = None) -> None:
        """
        Load a predefined test script.

        Args:
            script_name: Name of script to load from TestScripts
            controls: Axis/button layout (defaults if omitted)
        """
        controls = controls or ControlsConfig()
        script_map = {
            "drive_forward": TestScripts.drive_forward,
            "hold_intake": TestScripts.hold_intake,
            "toggle_shooter": TestScripts.toggle_shooter,
            "align": TestScripts.align,
        }

        if script_name in script_map:
            self._frames = script_map[script_name](controls)
            self._index = 0
            logger.info(f"Loaded script '{script_name}' with {len(self._frames)} frames")
        else:
            logger.warning(f"Unknown script '{script_name}'")


class TestScripts:
    """Pre-defined test scripts"""

    __test__ = False  # Not a pytest class

    @staticmethod
    def _idle(count: int) -> List[InputFrame]:
        return [InputFrame() for _ in range(count)]

    @staticmethod
    def drive_forward(controls: ControlsConfig) -> List[InputFrame]:
        """Stick forward (reads negative), then back to center"""
        forward = controls.forward_axis
        return (
            TestScripts._idle(2)
            + [InputFrame(axes={forward: -0.3})] * 3
            + [InputFrame(axes={forward: -0.8})] * 10
            + [InputFrame(axes={forward: -0.4})] * 3
            + TestScripts._idle(2)
        )

    @staticmethod
    def hold_intake(controls: ControlsConfig) -> List[InputFrame]:
        """Hold the intake button for 10 ticks"""
        pressed = InputFrame(buttons=frozenset({controls.intake_button}))
        return TestScripts._idle(2) + [pressed] * 10 + TestScripts._idle(3)

    @staticmethod
    def toggle_shooter(controls: ControlsConfig) -> List[InputFrame]:
        """Tap the shooter button twice: on, then off"""
        pressed = InputFrame(buttons=frozenset({controls.shooter_button}))
        return (
            TestScripts._idle(2)
            + [pressed] * 2
            + TestScripts._idle(10)
            + [pressed] * 2
            + TestScripts._idle(3)
        )

    @staticmethod
    def align(controls: ControlsConfig) -> List[InputFrame]:
        """Hold the align button while driving, then let go"""
        forward = controls.forward_axis
        return (
            [InputFrame(axes={forward: -0.5})] * 3
            + [InputFrame(axes={forward: -0.5},
                          buttons=frozenset({controls.align_button}))] * 20
            + TestScripts._idle(3)
        )
