# qcomposer/oracle.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from qcomposer.circuit import Circuit

log = logging.getLogger(__name__)

ERROR_CODE_MARKER = "# Error connecting to the simulation engine.\n# Check the oracle configuration and logs."
ERROR_TIME_LABEL = "ERR"


class OracleUnavailableError(RuntimeError):
    """The oracle cannot be called at all (e.g. missing credentials)."""


@dataclass(frozen=True)
class Amplitude:
    real: float
    imag: float
    label: str


@dataclass(frozen=True)
class Probability:
    state: str
    probability: float


@dataclass(frozen=True)
class SimulationResult:
    """
    Outcome of one simulation call.

    Attributes
    ----------
    state_vector : Tuple[Amplitude, ...]
        Amplitudes for all 2^n basis labels.
    probabilities : Tuple[Probability, ...]
        Squared magnitudes, same order as `state_vector`.
    generated_code : str
        Program text the oracle built for the circuit.
    execution_time : str
        Short duration label, e.g. "0.0042s". Doubles as the identity token
        used to avoid explaining the same result twice.
    fidelity : float
        In [0, 1].
    """

    state_vector: Tuple[Amplitude, ...]
    probabilities: Tuple[Probability, ...]
    generated_code: str
    execution_time: str
    fidelity: float

    @property
    def degraded(self) -> bool:
        return self.execution_time == ERROR_TIME_LABEL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state_vector": [{"real": a.real, "imag": a.imag, "label": a.label} for a in self.state_vector],
            "probabilities": [{"state": p.state, "probability": p.probability} for p in self.probabilities],
            "generated_code": self.generated_code,
            "execution_time": self.execution_time,
            "fidelity": self.fidelity,
        }


def degraded_result() -> SimulationResult:
    """Clearly-marked placeholder used when the simulation oracle fails."""
    return SimulationResult(
        state_vector=(),
        probabilities=(),
        generated_code=ERROR_CODE_MARKER,
        execution_time=ERROR_TIME_LABEL,
        fidelity=0.0,
    )


def basis_labels(n_qubits: int) -> List[str]:
    """|q0 q1 ...> labels in ascending order; qubit 0 is the leftmost character."""
    return [f"|{i:0{n_qubits}b}>" for i in range(2**n_qubits)]


# ---------- conversation payloads ----------
@dataclass(frozen=True)
class ChatTurn:
    role: str  # "user" | "assistant"
    text: str


@dataclass(frozen=True)
class ConversationRequest:
    """Everything the conversation oracle sees for one turn."""

    system: str
    history: Tuple[ChatTurn, ...]
    context: str


@dataclass(frozen=True)
class ChatReply:
    text: str
    sources: List[Optional[str]] = field(default_factory=list)


# ---------- oracle interfaces ----------
class SimulationOracle(ABC):
    """Computes the final state of a circuit snapshot."""

    @abstractmethod
    async def simulate(self, circuit: Circuit) -> SimulationResult:
        """
        Return the result for `circuit`.

        Implementations may raise; callers decide how to degrade. Raise
        OracleUnavailableError when the call cannot be attempted.
        """
        ...


class ConversationOracle(ABC):
    """Produces natural-language replies for the tutor chat."""

    @abstractmethod
    async def reply(self, request: ConversationRequest) -> ChatReply:
        """Answer the last instruction in `request.context`, given the history."""
        ...


async def safe_simulate(oracle: SimulationOracle, circuit: Circuit) -> SimulationResult:
    """
    Call `oracle`, substituting the degraded result when the call fails or
    returns something that is not a SimulationResult.

    Raises
    ------
    OracleUnavailableError
        Propagated unchanged: no call was attempted, so there is nothing to degrade.
    """
    try:
        result = await oracle.simulate(circuit)
        if not isinstance(result, SimulationResult):
            raise TypeError(f"Malformed oracle response: {type(result).__name__}")
        return result
    except OracleUnavailableError:
        raise
    except Exception as e:
        log.exception(f"Simulation failed: {e}")
        return degraded_result()


def make_simulation_oracle(name: str) -> SimulationOracle:
    """Factory for the configured simulation oracle ("stim" | "qiskit")."""
    chosen = name.strip().lower()
    if chosen == "stim":
        from qcomposer.stim_oracle import StimOracle

        return StimOracle()
    if chosen == "qiskit":
        from qcomposer.qiskit_oracle import QiskitOracle

        return QiskitOracle()
    raise ValueError(f"Invalid oracle '{name}', choose 'stim' or 'qiskit'")
