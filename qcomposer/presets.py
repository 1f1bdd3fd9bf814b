# qcomposer/presets.py
from __future__ import annotations

from dataclasses import dataclass

from qcomposer.circuit import Circuit, Gate, GateKind


class PresetNotFoundError(KeyError):
    """Raised when a preset name is not in the catalog."""


@dataclass(frozen=True)
class Preset:
    name: str
    description: str
    circuit: Circuit


def _g(gid: str, kind: GateKind, target: int, step: int, control: int | None = None) -> Gate:
    return Gate(id=gid, kind=kind, target=target, step=step, control=control)


INITIAL_CIRCUIT = Circuit(
    num_qubits=3,
    steps=6,
    gates=(
        _g("1", GateKind.H, 0, 0),
        _g("2", GateKind.CX, 1, 1, control=0),
        _g("3", GateKind.CX, 2, 2, control=0),
    ),
)


# Catalog: name -> Preset (ordered as shown to the user)
PRESETS: dict[str, Preset] = {
    p.name: p
    for p in (
        Preset(
            name="Bell State",
            description="Entangle two qubits: H then CNOT. Measurements always agree (00 or 11).",
            circuit=Circuit(
                num_qubits=2,
                steps=4,
                gates=(
                    _g("b1", GateKind.H, 0, 0),
                    _g("b2", GateKind.CX, 1, 1, control=0),
                    _g("b3", GateKind.M, 0, 2),
                    _g("b4", GateKind.M, 1, 2),
                ),
            ),
        ),
        Preset(
            name="GHZ State",
            description="Three-qubit entanglement: all qubits end up 000 or 111.",
            circuit=Circuit(
                num_qubits=3,
                steps=5,
                gates=(
                    _g("ghz1", GateKind.H, 0, 0),
                    _g("ghz2", GateKind.CX, 1, 1, control=0),
                    _g("ghz3", GateKind.CX, 2, 2, control=0),
                    _g("ghz4", GateKind.M, 0, 3),
                    _g("ghz5", GateKind.M, 1, 3),
                    _g("ghz6", GateKind.M, 2, 3),
                ),
            ),
        ),
        Preset(
            name="Superposition",
            description="A single Hadamard: a fair quantum coin.",
            circuit=Circuit(
                num_qubits=1,
                steps=3,
                gates=(
                    _g("s1", GateKind.H, 0, 0),
                    _g("s2", GateKind.M, 0, 1),
                ),
            ),
        ),
        Preset(
            name="Bit Flip",
            description="Pauli-X turns |0> into |1> deterministically.",
            circuit=Circuit(
                num_qubits=1,
                steps=3,
                gates=(
                    _g("x1", GateKind.X, 0, 0),
                    _g("x2", GateKind.M, 0, 1),
                ),
            ),
        ),
        Preset(
            name="Phase Kickback",
            description="H-Z-H: a phase flip sandwiched by Hadamards becomes a bit flip (interference).",
            circuit=Circuit(
                num_qubits=1,
                steps=4,
                gates=(
                    _g("p1", GateKind.H, 0, 0),
                    _g("p2", GateKind.Z, 0, 1),
                    _g("p3", GateKind.H, 0, 2),
                    _g("p4", GateKind.M, 0, 3),
                ),
            ),
        ),
    )
}


def get_preset(name: str) -> Preset:
    """Look up a preset by name (exact first, then case-insensitive)."""
    if name in PRESETS:
        return PRESETS[name]
    for key, preset in PRESETS.items():
        if key.lower() == name.strip().lower():
            return preset
    raise PresetNotFoundError(name)


def load_preset(preset: Preset | str) -> Circuit:
    """
    Circuit that replaces the current one wholesale.

    Callers must also drop any result computed for the previous circuit.
    """
    if isinstance(preset, str):
        preset = get_preset(preset)
    return preset.circuit
