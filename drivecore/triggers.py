"""
Triggers - Map operator buttons onto primitive activation.

A Trigger wraps a boolean condition and remembers its previous level so
edges can be detected. The engine polls every bound trigger at the start
of each tick, before admission.
"""

import logging
from typing import Callable, List, Optional

from .interfaces import Primitive, TriggerSource


logger = logging.getLogger(__name__)

PrimitiveFactory = Callable[[], Primitive]


class _Binding:
    """One action attached to a trigger"""

    def __init__(self, kind: str, factory: PrimitiveFactory) -> None:
        self.kind = kind
        self.factory = factory
        self.instance: Optional[Primitive] = None


class Trigger:
    """
    Edge/level detector for a boolean condition.

    Usage:
        Trigger.button(gamepad, 6).while_true(lambda: HeldActuatorRun(...))
    """

    WHILE_TRUE = "while_true"
    ON_TRUE = "on_true"
    TOGGLE_ON_TRUE = "toggle_on_true"

    def __init__(self, condition: Callable[[], bool]) -> None:
        """
        Args:
            condition: Level supplier, read once per tick
        """
        self._condition = condition
        self._last = False
        self._bindings: List[_Binding] = []

    @classmethod
    def button(cls, source: TriggerSource, index: int) -> "Trigger":
        """Create a trigger that follows a button level"""
        return cls(lambda: source.get_button(index))

    def while_true(self, factory: PrimitiveFactory) -> "Trigger":
        """Schedule on press, cancel on release"""
        self._bindings.append(_Binding(self.WHILE_TRUE, factory))
        return self

    def on_true(self, factory: PrimitiveFactory) -> "Trigger":
        """Schedule on press; the primitive runs until it finishes"""
        self._bindings.append(_Binding(self.ON_TRUE, factory))
        return self

    def toggle_on_true(self, factory: PrimitiveFactory) -> "Trigger":
        """Each press starts the primitive if stopped, stops it if running"""
        self._bindings.append(_Binding(self.TOGGLE_ON_TRUE, factory))
        return self

    @property
    def level(self) -> bool:
        """Level seen on the most recent poll"""
        return self._last

    def poll(self, engine) -> None:
        """
        Sample the condition and act on edges.

        Args:
            engine: CommandEngine to schedule on / cancel from
        """
        current = bool(self._condition())
        pressed = current and not self._last
        released = self._last and not current
        self._last = current

        for binding in self._bindings:
            if pressed:
                self._on_pressed(binding, engine)
            elif released and binding.kind == self.WHILE_TRUE:
                if binding.instance is not None:
                    engine.cancel(binding.instance)
                    binding.instance = None

    def _on_pressed(self, binding: _Binding, engine) -> None:
        if binding.kind == self.TOGGLE_ON_TRUE and binding.instance is not None:
            running = engine.is_scheduled(binding.instance) or engine.is_pending(binding.instance)
            if running:
                engine.cancel(binding.instance)
                binding.instance = None
                return

        binding.instance = binding.factory()
        logger.debug(f"Trigger {binding.kind} -> {binding.instance.name}")
        engine.schedule(binding.instance)
