import pytest

from qcomposer.circuit import (
    Circuit,
    GateKind,
    clear_gates,
    control_at,
    gate_at,
    parse_gate_kind,
    place_gate,
    remove_gate,
)
from qcomposer.presets import INITIAL_CIRCUIT


@pytest.mark.parametrize("kind", list(GateKind))
def test_place_gate_leaves_exactly_one_gate_in_slot(kind: GateKind):
    """Placing on an occupied slot replaces, placing on an empty one adds."""
    circuit = INITIAL_CIRCUIT
    for target, step in [(0, 0), (2, 5), (1, 1)]:
        out = place_gate(circuit, target, step, kind)
        in_slot = [g for g in out if g.target == target and g.step == step]
        assert len(in_slot) == 1
        assert in_slot[0].kind == kind


def test_place_gate_is_copy_on_write():
    before = INITIAL_CIRCUIT.to_dict()
    out = place_gate(INITIAL_CIRCUIT, 0, 3, "X")
    assert INITIAL_CIRCUIT.to_dict() == before
    assert len(out) == len(INITIAL_CIRCUIT) + 1


def test_place_twice_keeps_one_gate():
    c = Circuit(num_qubits=2, steps=2)
    c = place_gate(c, 1, 1, GateKind.H)
    c = place_gate(c, 1, 1, GateKind.H)
    assert len(c) == 1


def test_gate_ids_are_unique():
    c = Circuit(num_qubits=3, steps=4)
    for q in range(3):
        for s in range(4):
            c = place_gate(c, q, s, GateKind.Z)
    assert len({g.id for g in c}) == 12


def test_remove_unknown_id_is_noop():
    out = remove_gate(INITIAL_CIRCUIT, "does-not-exist")
    assert out == INITIAL_CIRCUIT


def test_remove_gate():
    gate = gate_at(INITIAL_CIRCUIT, 1, 1)
    out = remove_gate(INITIAL_CIRCUIT, gate.id)
    assert gate_at(out, 1, 1) is None
    assert len(out) == 2


def test_clear_keeps_dimensions():
    out = clear_gates(INITIAL_CIRCUIT)
    assert len(out) == 0
    assert (out.num_qubits, out.steps) == (3, 6)


def test_cx_control_on_qubit_zero_goes_below():
    c = place_gate(Circuit(num_qubits=2, steps=3), 0, 0, GateKind.CX)
    assert gate_at(c, 0, 0).control == 1


def test_cx_control_goes_above_when_possible():
    c = place_gate(Circuit(num_qubits=3, steps=3), 2, 1, GateKind.CX)
    assert gate_at(c, 2, 1).control == 1
    assert control_at(c, 1, 1).target == 2


def test_cx_in_single_qubit_circuit_has_no_control():
    c = place_gate(Circuit(num_qubits=1, steps=3), 0, 0, GateKind.CX)
    gate = gate_at(c, 0, 0)
    assert gate.kind == GateKind.CX
    assert gate.control is None


def test_single_qubit_gates_never_get_a_control():
    c = place_gate(Circuit(num_qubits=3, steps=3), 1, 0, GateKind.H)
    assert gate_at(c, 1, 0).control is None


def test_control_does_not_occupy_the_slot():
    """The exclusive slot is per target: a gate may target a qubit used as a control."""
    c = place_gate(Circuit(num_qubits=2, steps=2), 1, 0, GateKind.CX)  # control on q0
    c = place_gate(c, 0, 0, GateKind.H)
    assert len(c) == 2


@pytest.mark.parametrize("target,step", [(-1, 0), (3, 0), (0, 6), (0, -1)])
def test_out_of_range_placement_rejected(target, step):
    with pytest.raises(ValueError):
        place_gate(INITIAL_CIRCUIT, target, step, GateKind.H)


@pytest.mark.parametrize("name,kind", [("h", GateKind.H), ("cnot", GateKind.CX), ("Measure", GateKind.M)])
def test_parse_gate_kind(name, kind):
    assert parse_gate_kind(name) == kind


def test_parse_gate_kind_rejects_unknown():
    with pytest.raises(ValueError):
        parse_gate_kind("SWAP")


def test_from_dict_normalizes_invalid_control():
    data = {
        "num_qubits": 2,
        "steps": 2,
        "gates": [
            {"id": "a", "kind": "CX", "target": 0, "control": 0, "step": 0},
            {"id": "b", "kind": "H", "target": 1, "control": 0, "step": 0},
            {"id": "c", "kind": "CX", "target": 1, "control": 5, "step": 1},
        ],
    }
    c = Circuit.from_dict(data)
    assert all(g.control is None for g in c)
    assert Circuit.from_dict(c.to_dict()) == c
