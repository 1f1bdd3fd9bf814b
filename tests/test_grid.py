import pytest

from qcomposer.circuit import Circuit, GateKind, gate_at
from qcomposer.grid import CircuitLockedError, GridController, on_cell_activated
from qcomposer.presets import INITIAL_CIRCUIT


def test_empty_cell_with_tool_places_gate():
    out = on_cell_activated(INITIAL_CIRCUIT, GateKind.X, 0, 4)
    assert gate_at(out, 0, 4).kind == GateKind.X


def test_empty_cell_without_tool_is_noop():
    out = on_cell_activated(INITIAL_CIRCUIT, None, 0, 4)
    assert out is INITIAL_CIRCUIT


@pytest.mark.parametrize("selected", [None, GateKind.H, GateKind.M, GateKind.CX])
def test_occupied_cell_is_removed_whatever_the_tool(selected):
    out = on_cell_activated(INITIAL_CIRCUIT, selected, 1, 1)
    assert gate_at(out, 1, 1) is None
    assert len(out) == len(INITIAL_CIRCUIT) - 1


def test_cell_toggles_empty_gate_empty():
    c = Circuit(num_qubits=2, steps=2)
    once = on_cell_activated(c, GateKind.Y, 1, 0)
    twice = on_cell_activated(once, GateKind.Y, 1, 0)
    assert len(once) == 1
    assert len(twice) == 0


def test_clicking_a_control_dot_places_a_gate():
    """Controls do not occupy a slot, so the click places rather than removes."""
    out = on_cell_activated(INITIAL_CIRCUIT, GateKind.Z, 0, 1)
    assert gate_at(out, 0, 1).kind == GateKind.Z
    assert gate_at(out, 1, 1).kind == GateKind.CX


def test_controller_rejects_edits_while_locked():
    locked = {"value": True}
    ctrl = GridController(GateKind.H, is_locked=lambda: locked["value"])
    with pytest.raises(CircuitLockedError):
        ctrl.activate(INITIAL_CIRCUIT, 0, 5)

    locked["value"] = False
    out = ctrl.activate(INITIAL_CIRCUIT, 0, 5)
    assert gate_at(out, 0, 5).kind == GateKind.H


@pytest.mark.parametrize("value,expected", [("x", GateKind.X), ("", None), (None, None), (GateKind.M, GateKind.M)])
def test_select(value, expected):
    ctrl = GridController()
    assert ctrl.select(value) == expected
    assert ctrl.selected == expected
