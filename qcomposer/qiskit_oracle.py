# qcomposer/qiskit_oracle.py
from __future__ import annotations

import time

from qiskit import QuantumCircuit, qasm2
from qiskit.quantum_info import Statevector

from qcomposer.circuit import Circuit, GateKind
from qcomposer.oracle import SimulationOracle, SimulationResult
from qcomposer.stim_oracle import amplitudes_to_result


def to_qiskit_circuit(circuit: Circuit, *, include_measurements: bool = True) -> QuantumCircuit:
    """
    Build the Qiskit circuit for the grid.

    Parameters
    ----------
    circuit : Circuit
        Composer circuit.
    include_measurements : bool, default=True
        If False, Measure gates are left out and no classical register is
        allocated, so the result can be fed to `Statevector`.

    Returns
    -------
    QuantumCircuit
        One barrier between consecutive steps that hold gates.
    """
    n = circuit.num_qubits
    qc = QuantumCircuit(n, n) if include_measurements else QuantumCircuit(n)

    first = True
    for step in range(circuit.steps):
        gates = circuit.gates_at_step(step)
        if not gates:
            continue
        if not first:
            qc.barrier()
        first = False

        for gate in gates:
            t = gate.target
            if gate.kind == GateKind.H:
                qc.h(t)
            elif gate.kind == GateKind.X:
                qc.x(t)
            elif gate.kind == GateKind.Y:
                qc.y(t)
            elif gate.kind == GateKind.Z:
                qc.z(t)
            elif gate.kind == GateKind.CX:
                if gate.control is not None:
                    qc.cx(gate.control, t)
            elif gate.kind == GateKind.M:
                if include_measurements:
                    qc.measure(t, t)
            else:
                raise ValueError(f"Unsupported gate: {gate.kind}")
    return qc


class QiskitOracle(SimulationOracle):
    """Dense state-vector simulation with qiskit.quantum_info."""

    async def simulate(self, circuit: Circuit) -> SimulationResult:
        t0 = time.perf_counter()

        program = to_qiskit_circuit(circuit, include_measurements=True)
        sv = Statevector(to_qiskit_circuit(circuit, include_measurements=False))
        # Qiskit is little-endian; flip so qubit 0 is the most significant bit.
        vec = sv.reverse_qargs().data

        elapsed = time.perf_counter() - t0
        return amplitudes_to_result(vec, circuit.num_qubits, code=qasm2.dumps(program), elapsed=elapsed)
