import asyncio
from typing import List, Optional

import pytest

from qcomposer.circuit import Circuit
from qcomposer.oracle import (
    Amplitude,
    ChatReply,
    ConversationOracle,
    ConversationRequest,
    Probability,
    SimulationOracle,
    SimulationResult,
)


def make_result(label: str = "0.0042s", probs: Optional[dict] = None) -> SimulationResult:
    probs = probs or {"|0>": 1.0, "|1>": 0.0}
    return SimulationResult(
        state_vector=tuple(Amplitude(real=p ** 0.5, imag=0.0, label=s) for s, p in probs.items()),
        probabilities=tuple(Probability(state=s, probability=p) for s, p in probs.items()),
        generated_code="H 0",
        execution_time=label,
        fidelity=1.0,
    )


class FakeSimulator(SimulationOracle):
    """Records every call; optionally waits on `release` and/or fails."""

    def __init__(self, labels: Optional[List[str]] = None, *, fail: bool = False, gated: bool = False):
        self.calls: List[Circuit] = []
        self.labels = list(labels or ["0.0042s"])
        self.fail = fail
        self.release: Optional[asyncio.Event] = asyncio.Event() if gated else None

    async def simulate(self, circuit: Circuit) -> SimulationResult:
        self.calls.append(circuit)
        if self.release is not None:
            await self.release.wait()
        if self.fail:
            raise RuntimeError("oracle down")
        label = self.labels[min(len(self.calls), len(self.labels)) - 1]
        return make_result(label)


class FakeTutor(ConversationOracle):
    def __init__(self, text: str = "Nice circuit!", sources=None, *, fail: bool = False):
        self.requests: List[ConversationRequest] = []
        self.text = text
        self.sources = list(sources or [])
        self.fail = fail

    async def reply(self, request: ConversationRequest) -> ChatReply:
        self.requests.append(request)
        if self.fail:
            raise RuntimeError("tutor down")
        return ChatReply(text=self.text, sources=self.sources)


@pytest.fixture
def simulator() -> FakeSimulator:
    return FakeSimulator()


@pytest.fixture
def tutor() -> FakeTutor:
    return FakeTutor()
