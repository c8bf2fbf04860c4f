"""
CommandEngine - Cooperative scheduler for motion primitives.

The engine is the only thing that calls primitive lifecycle methods. Each
tick() it:
- Polls bound triggers (which schedule or cancel primitives)
- Admits queued primitives, interrupting whoever holds their handles
- Evaluates every active primitive's completion predicate, then steps it
- Starts registered defaults on handles nobody owns

Single-threaded and run-to-completion: nothing in a tick blocks or sleeps,
and admission always happens before any control law runs in that tick.
"""

import logging
import weakref
from typing import Callable, Dict, List, Optional, Tuple

from .interfaces import Primitive
from .types import ActuatorHandle, ConfigurationError, PrimitiveState


logger = logging.getLogger(__name__)

PrimitiveFactory = Callable[[], Primitive]


class CommandEngine:
    """
    Owns the active set of primitives and the handle -> owner map.

    Create one per robot and pass it to whatever needs to schedule or
    cancel; there is no global instance.
    """

    def __init__(self) -> None:
        self._active: List[Primitive] = []
        self._owners: Dict[ActuatorHandle, Primitive] = {}
        self._pending: List[Primitive] = []
        self._states: "weakref.WeakKeyDictionary[Primitive, PrimitiveState]" = \
            weakref.WeakKeyDictionary()

        # One factory may cover several handles (e.g. both drive sides)
        self._defaults: Dict[ActuatorHandle, PrimitiveFactory] = {}
        self._default_instances: "weakref.WeakSet[Primitive]" = weakref.WeakSet()

        self._triggers: list = []
        self._tick_count = 0

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def set_default(self, factory: PrimitiveFactory) -> None:
        """
        Register a default primitive.

        The factory is called whenever every handle the primitive requires
        is free, so continuous control resumes between discrete commands.

        Args:
            factory: Zero-arg callable creating a fresh primitive

        Raises:
            ConfigurationError: If the primitive has no requirements
        """
        sample = factory()
        handles = sample.requirements
        if not handles:
            raise ConfigurationError(f"Default primitive {sample.name} has no requirements")

        # A replaced factory is dropped from every handle it covered
        replaced = [self._defaults[h] for h in handles if h in self._defaults]
        for handle, existing in list(self._defaults.items()):
            if any(existing is old for old in replaced):
                del self._defaults[handle]

        for handle in handles:
            self._defaults[handle] = factory

        logger.info(f"Default primitive {sample.name} registered for "
                    f"{sorted(h.value for h in handles)}")

    def default_for(self, handle: ActuatorHandle) -> Optional[PrimitiveFactory]:
        """Get the default factory registered for a handle"""
        return self._defaults.get(handle)

    def bind(self, trigger) -> None:
        """Register a trigger to be polled at the start of every tick"""
        self._triggers.append(trigger)

    # ------------------------------------------------------------------
    # Scheduling API
    # ------------------------------------------------------------------

    def schedule(self, primitive: Primitive) -> None:
        """
        Queue a primitive for admission at the start of the next tick.

        Already active or already queued primitives are ignored.
        """
        if self.is_scheduled(primitive) or self.is_pending(primitive):
            return
        self._pending.append(primitive)
        self._states[primitive] = PrimitiveState.IDLE

    def cancel(self, primitive: Primitive) -> None:
        """Interrupt a primitive immediately (or drop it from the queue)"""
        if self.is_pending(primitive):
            self._pending = [p for p in self._pending if p is not primitive]
            return
        if self.is_scheduled(primitive):
            self._terminate(primitive, interrupted=True)

    def cancel_all(self) -> None:
        """
        Interrupt every active primitive and clear the queue.

        A primitive whose end() raises is logged and the rest are still
        interrupted.
        """
        self._pending.clear()
        if self._active:
            logger.info(f"Cancelling {len(self._active)} active primitive(s)")
        for primitive in list(self._active):
            try:
                self._terminate(primitive, interrupted=True)
            except Exception as e:
                logger.error(f"Error ending {primitive.name}: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """
        Run one scheduling pass.

        Raises:
            Exception: Whatever a primitive raised, after that primitive has
                been stopped and its handles released
        """
        self._tick_count += 1

        for trigger in self._triggers:
            trigger.poll(self)

        # Admission and interruption before any control law runs
        pending, self._pending = self._pending, []
        for primitive in pending:
            self._admit(primitive)

        for primitive in list(self._active):
            if self.is_scheduled(primitive):
                self._step(primitive)

        for primitive in self._start_defaults():
            if self.is_scheduled(primitive):
                self._step(primitive)

    def _admit(self, primitive: Primitive) -> None:
        """Take ownership of the primitive's handles and initialize it"""
        for handle in primitive.requirements:
            holder = self._owners.get(handle)
            if holder is not None and holder is not primitive:
                logger.info(f"{primitive.name} takes {handle.value} from {holder.name}")
                self._terminate(holder, interrupted=True)

        self._active.append(primitive)
        for handle in primitive.requirements:
            self._owners[handle] = primitive

        try:
            primitive.initialize()
        except Exception:
            logger.error(f"{primitive.name} failed to initialize", exc_info=True)
            self._terminate(primitive, interrupted=True)
            raise

        self._states[primitive] = PrimitiveState.ACTIVATED
        logger.debug(f"{primitive.name} activated (tick {self._tick_count})")

    def _step(self, primitive: Primitive) -> None:
        """Evaluate the completion predicate, then run one control step"""
        try:
            if primitive.is_finished():
                self._terminate(primitive, interrupted=False)
                return
            primitive.execute()
        except Exception:
            logger.error(f"{primitive.name} raised, stopping it", exc_info=True)
            if self.is_scheduled(primitive):
                self._terminate(primitive, interrupted=True)
            raise

        self._states[primitive] = PrimitiveState.RUNNING

    def _start_defaults(self) -> List[Primitive]:
        """Admit a fresh default on every group of handles nobody owns"""
        factories: List[PrimitiveFactory] = []
        for factory in self._defaults.values():
            if not any(factory is seen for seen in factories):
                factories.append(factory)

        started = []
        for factory in factories:
            handles = [h for h, f in self._defaults.items() if f is factory]
            if any(h in self._owners for h in handles):
                continue

            primitive = factory()
            self._default_instances.add(primitive)
            self._admit(primitive)
            started.append(primitive)
        return started

    def _terminate(self, primitive: Primitive, interrupted: bool) -> None:
        """Apply the terminal step exactly once and release handles"""
        self._active = [p for p in self._active if p is not primitive]
        for handle, owner in list(self._owners.items()):
            if owner is primitive:
                del self._owners[handle]
        self._states[primitive] = PrimitiveState.TERMINATED

        primitive.end(interrupted)
        if interrupted:
            logger.info(f"{primitive.name} interrupted")
        elif primitive not in self._default_instances:
            logger.info(f"{primitive.name} finished")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_scheduled(self, primitive: Primitive) -> bool:
        """Check if a primitive is currently active"""
        return any(p is primitive for p in self._active)

    def is_pending(self, primitive: Primitive) -> bool:
        """Check if a primitive is queued for the next tick"""
        return any(p is primitive for p in self._pending)

    def requiring(self, handle: ActuatorHandle) -> Optional[Primitive]:
        """Get the primitive currently holding a handle"""
        return self._owners.get(handle)

    def state_of(self, primitive: Primitive) -> PrimitiveState:
        """Lifecycle state of a primitive (IDLE if the engine never saw it)"""
        return self._states.get(primitive, PrimitiveState.IDLE)

    def is_default(self, primitive: Primitive) -> bool:
        """Check if a primitive was started as a default"""
        return primitive in self._default_instances

    @property
    def active(self) -> Tuple[Primitive, ...]:
        return tuple(self._active)

    @property
    def tick_count(self) -> int:
        return self._tick_count
