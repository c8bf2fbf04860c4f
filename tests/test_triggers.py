"""Tests for Trigger bindings"""

import pytest
from controls.mock_input import MockInput
from drivecore.engine import CommandEngine
from drivecore.triggers import Trigger
from drivecore.types import ActuatorHandle, PrimitiveState


class Held:
    """Never finishes; records end()"""

    def __init__(self, handle=ActuatorHandle.INTAKE):
        self.name = "Held"
        self.handle = handle
        self.ended = None

    @property
    def requirements(self):
        return frozenset({self.handle})

    def initialize(self):
        pass

    def execute(self):
        pass

    def is_finished(self):
        return False

    def end(self, interrupted):
        self.ended = interrupted


@pytest.fixture
def engine():
    return CommandEngine()


@pytest.fixture
def controls():
    return MockInput()


def make_factory(created):
    def factory():
        primitive = Held()
        created.append(primitive)
        return primitive
    return factory


def test_button_trigger_reads_source(controls):
    trigger = Trigger.button(controls, 3)
    engine = CommandEngine()

    trigger.poll(engine)
    assert trigger.level is False

    controls.press(3)
    trigger.poll(engine)
    assert trigger.level is True


def test_while_true(engine, controls):
    created = []
    engine.bind(Trigger.button(controls, 6).while_true(make_factory(created)))

    engine.tick()
    assert created == []

    controls.press(6)
    engine.tick()
    assert len(created) == 1
    assert engine.state_of(created[0]) == PrimitiveState.RUNNING

    # Held: no new instance
    engine.tick()
    assert len(created) == 1

    controls.release(6)
    engine.tick()
    assert created[0].ended is True
    assert engine.requiring(ActuatorHandle.INTAKE) is None


def test_on_true_runs_past_release(engine, controls):
    created = []
    engine.bind(Trigger.button(controls, 1).on_true(make_factory(created)))

    controls.press(1)
    engine.tick()
    controls.release(1)
    engine.tick()

    assert engine.is_scheduled(created[0]) is True
    assert created[0].ended is None


def test_toggle_on_true(engine, controls):
    created = []
    engine.bind(Trigger.button(controls, 5).toggle_on_true(make_factory(created)))

    controls.press(5)
    engine.tick()
    controls.release(5)
    engine.tick()
    assert engine.is_scheduled(created[0]) is True

    controls.press(5)
    engine.tick()
    assert created[0].ended is True
    assert len(created) == 1

    controls.release(5)
    engine.tick()
    controls.press(5)
    engine.tick()
    assert len(created) == 2
    assert engine.is_scheduled(created[1]) is True


def test_toggle_restarts_after_interruption(engine, controls):
    """Test toggle starts fresh if something else took the handle"""
    created = []
    engine.bind(Trigger.button(controls, 5).toggle_on_true(make_factory(created)))

    controls.press(5)
    engine.tick()
    controls.release(5)
    engine.cancel(created[0])

    engine.tick()
    controls.press(5)
    engine.tick()
    assert len(created) == 2


def test_custom_condition(engine):
    state = {"armed": False}
    created = []
    engine.bind(Trigger(lambda: state["armed"]).while_true(make_factory(created)))

    engine.tick()
    state["armed"] = True
    engine.tick()
    assert len(created) == 1
