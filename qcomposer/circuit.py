# qcomposer/circuit.py
from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Dict, Iterator, List, Optional


class GateKind(StrEnum):
    """Gates the composer grid can place."""

    H = "H"
    X = "X"
    Y = "Y"
    Z = "Z"
    CX = "CX"
    M = "M"  # Measure


GATE_NAMES: dict[GateKind, str] = {
    GateKind.H: "Hadamard",
    GateKind.X: "Pauli-X",
    GateKind.Y: "Pauli-Y",
    GateKind.Z: "Pauli-Z",
    GateKind.CX: "CNOT",
    GateKind.M: "Measure",
}

GATE_DESCRIPTIONS: dict[GateKind, str] = {
    GateKind.H: "Hadamard (Superposition): puts a definite state (0 or 1) into a 50/50 mix of both.",
    GateKind.X: "Pauli-X (NOT): flips the bit. Turns 0 into 1, and 1 into 0.",
    GateKind.Y: "Pauli-Y: combines a bit flip and a phase rotation.",
    GateKind.Z: "Pauli-Z (Phase Flip): leaves 0 alone but flips the phase of 1. Crucial for interference.",
    GateKind.CX: "CNOT (Entangle): if the control qubit is 1, it flips the target qubit.",
    GateKind.M: "Measure: collapses the quantum state of the qubit into a classical 0 or 1.",
}

# Gate ids only need to be unique within one circuit's lifetime.
_GATE_IDS = itertools.count(1)


def new_gate_id() -> str:
    return f"g{next(_GATE_IDS)}"


def parse_gate_kind(kind: str | GateKind) -> GateKind:
    """Normalize a gate name (case-insensitive, 'MEASURE' accepted) to GateKind."""
    if isinstance(kind, GateKind):
        return kind
    name = kind.strip().upper()
    if name in ("MEASURE", "MZ"):
        name = "M"
    if name == "CNOT":
        name = "CX"
    try:
        return GateKind(name)
    except ValueError:
        raise ValueError(f"Unsupported gate: {kind}")


@dataclass(frozen=True)
class Gate:
    """
    A gate placed on the grid.

    Attributes
    ----------
    id : str
        Opaque token, unique within the circuit.
    kind : GateKind
        Gate type.
    target : int
        Target qubit index.
    step : int
        Time step (column) index.
    control : Optional[int]
        Control qubit; only ever set for CX.
    """

    id: str
    kind: GateKind
    target: int
    step: int
    control: Optional[int] = None

    def describe(self) -> str:
        return f"{self.kind.value} on qubit {self.target} at step {self.step}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "target": self.target,
            "control": self.control,
            "step": self.step,
        }


@dataclass(frozen=True)
class Circuit:
    """
    Immutable qubits x steps grid of gates.

    Mutating helpers in this module return a new Circuit; a reference held by a
    run is therefore a stable snapshot.
    """

    num_qubits: int
    steps: int
    gates: tuple[Gate, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.num_qubits < 1:
            raise ValueError("num_qubits must be >= 1")
        if self.steps < 1:
            raise ValueError("steps must be >= 1")
        for g in self.gates:
            self._check_slot(g.target, g.step)

    # ---------- geometry ----------
    def _check_slot(self, target: int, step: int) -> None:
        if not 0 <= target < self.num_qubits:
            raise ValueError(f"qubit {target} out of range [0, {self.num_qubits})")
        if not 0 <= step < self.steps:
            raise ValueError(f"step {step} out of range [0, {self.steps})")

    def __iter__(self) -> Iterator[Gate]:
        return iter(self.gates)

    def __len__(self) -> int:
        return len(self.gates)

    def get(self, gate_id: str) -> Optional[Gate]:
        return next((g for g in self.gates if g.id == gate_id), None)

    def gates_at_step(self, step: int) -> List[Gate]:
        """Gates in column `step`, ordered by target qubit."""
        return sorted((g for g in self.gates if g.step == step), key=lambda g: g.target)

    def ordered_gates(self) -> List[Gate]:
        """All gates in execution order (step, then target)."""
        return sorted(self.gates, key=lambda g: (g.step, g.target))

    # ---------- serialization ----------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_qubits": self.num_qubits,
            "steps": self.steps,
            "gates": [g.to_dict() for g in self.gates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Circuit:
        n = int(data["num_qubits"])
        gates = []
        for raw in data.get("gates", []):
            kind = parse_gate_kind(raw["kind"])
            target = int(raw["target"])
            control = raw.get("control")
            gates.append(
                Gate(
                    id=str(raw.get("id") or new_gate_id()),
                    kind=kind,
                    target=target,
                    step=int(raw["step"]),
                    control=_normalize_control(kind, target, control, n),
                )
            )
        return cls(num_qubits=n, steps=int(data["steps"]), gates=tuple(gates))


def _normalize_control(kind: GateKind, target: int, control: Optional[int], num_qubits: int) -> Optional[int]:
    """Drop a control that is not CX, collides with the target, or is out of range."""
    if kind != GateKind.CX or control is None:
        return None
    control = int(control)
    if control == target or not 0 <= control < num_qubits:
        return None
    return control


def derive_control(target: int, num_qubits: int) -> Optional[int]:
    """Neighbouring control for a CX placed on `target` (above if possible, else below)."""
    control = target - 1 if target > 0 else target + 1
    if control >= num_qubits:
        return None
    return control


# ---------- mutations ----------
def gate_at(circuit: Circuit, target: int, step: int) -> Optional[Gate]:
    """Return the gate targeting (target, step), if any. Controls do not occupy a slot."""
    return next((g for g in circuit.gates if g.target == target and g.step == step), None)


def control_at(circuit: Circuit, qubit: int, step: int) -> Optional[Gate]:
    """Return the CX gate whose control sits on (qubit, step), if any."""
    return next((g for g in circuit.gates if g.control == qubit and g.step == step), None)


def place_gate(circuit: Circuit, target: int, step: int, kind: GateKind | str) -> Circuit:
    """
    Place a new gate on (target, step), replacing whatever targeted that slot.

    A CX gets its control on the neighbouring qubit; when there is none
    (1-qubit circuit) the gate is placed without a control.
    """
    kind = parse_gate_kind(kind)
    circuit._check_slot(target, step)

    control = derive_control(target, circuit.num_qubits) if kind == GateKind.CX else None
    gate = Gate(id=new_gate_id(), kind=kind, target=target, step=step, control=control)

    kept = tuple(g for g in circuit.gates if not (g.target == target and g.step == step))
    return replace(circuit, gates=kept + (gate,))


def remove_gate(circuit: Circuit, gate_id: str) -> Circuit:
    """Remove gate `gate_id`; unknown ids leave the circuit unchanged."""
    if circuit.get(gate_id) is None:
        return circuit
    return replace(circuit, gates=tuple(g for g in circuit.gates if g.id != gate_id))


def clear_gates(circuit: Circuit) -> Circuit:
    """Same dimensions, no gates."""
    return replace(circuit, gates=())
