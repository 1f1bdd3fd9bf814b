# qcomposer/stim_oracle.py
from __future__ import annotations

import time

import numpy as np
import stim

from qcomposer.circuit import Circuit, GateKind
from qcomposer.oracle import (
    Amplitude,
    Probability,
    SimulationOracle,
    SimulationResult,
    basis_labels,
)

# Composer gate -> Stim instruction name
STIM_NAMES: dict[GateKind, str] = {
    GateKind.H: "H",
    GateKind.X: "X",
    GateKind.Y: "Y",
    GateKind.Z: "Z",
    GateKind.CX: "CX",
    GateKind.M: "M",
}


def to_stim_circuit(circuit: Circuit, *, include_measurements: bool = True) -> stim.Circuit:
    """
    Translate the grid into a Stim circuit, one TICK per non-empty step.

    A CX without a control has nothing to act on and is skipped.
    """
    out = stim.Circuit()
    for step in range(circuit.steps):
        emitted = False
        for gate in circuit.gates_at_step(step):
            if gate.kind == GateKind.M:
                if include_measurements:
                    out.append("M", [gate.target])
                    emitted = True
                continue
            if gate.kind == GateKind.CX:
                if gate.control is None:
                    continue
                out.append("CX", [gate.control, gate.target])
            else:
                out.append(STIM_NAMES[gate.kind], [gate.target])
            emitted = True
        if emitted:
            out.append("TICK")
    return out


def amplitudes_to_result(
    vec: np.ndarray, n_qubits: int, *, code: str, elapsed: float, fidelity: float = 1.0
) -> SimulationResult:
    """Package a big-endian state vector (qubit 0 most significant) as a SimulationResult."""
    labels = basis_labels(n_qubits)
    vec = np.asarray(vec, dtype=complex)
    probs = np.abs(vec) ** 2
    total = float(np.sum(probs))
    if total > 0:
        probs = probs / total

    state_vector = tuple(
        Amplitude(real=round(float(a.real), 6) + 0.0, imag=round(float(a.imag), 6) + 0.0, label=lab)
        for a, lab in zip(vec, labels)
    )
    probabilities = tuple(
        Probability(state=lab, probability=round(float(p), 6)) for p, lab in zip(probs, labels)
    )
    return SimulationResult(
        state_vector=state_vector,
        probabilities=probabilities,
        generated_code=code,
        execution_time=f"{elapsed:.4f}s",
        fidelity=fidelity,
    )


class StimOracle(SimulationOracle):
    """Stim tableau simulation of the composer gate set (all gates are Clifford)."""

    async def simulate(self, circuit: Circuit) -> SimulationResult:
        t0 = time.perf_counter()

        program = to_stim_circuit(circuit, include_measurements=True)
        # Deferred measurement: report the pre-measurement state.
        unitary_part = to_stim_circuit(circuit, include_measurements=False)

        tab = stim.TableauSimulator()
        tab.set_num_qubits(circuit.num_qubits)
        tab.do(unitary_part)
        vec = tab.state_vector(endian="big")

        elapsed = time.perf_counter() - t0
        return amplitudes_to_result(vec, circuit.num_qubits, code=str(program), elapsed=elapsed)
