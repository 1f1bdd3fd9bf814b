# qcomposer/openai_oracle.py
from __future__ import annotations

import logging
from typing import List, Optional

from openai import AsyncOpenAI

from qcomposer.circuit import GATE_DESCRIPTIONS, GateKind
from qcomposer.oracle import ChatReply, ConversationOracle, ConversationRequest

log = logging.getLogger(__name__)


class OpenAIConversationOracle(ConversationOracle):
    """Chat-completions backed tutor. Web citations, when the model returns them, become sources."""

    def __init__(self, *, api_key: Optional[str] = None, model: str = "gpt-4o-mini-search-preview", client=None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key)

    @staticmethod
    def to_messages(request: ConversationRequest) -> list[dict]:
        msgs = [
            {"role": "system", "content": request.system},
            {"role": "assistant", "content": "Understood. I am your Quantum Tutor, ready to help."},
        ]
        msgs.extend({"role": turn.role, "content": turn.text} for turn in request.history)
        msgs.append({"role": "user", "content": request.context})
        return msgs

    async def reply(self, request: ConversationRequest) -> ChatReply:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=self.to_messages(request),
        )
        message = response.choices[0].message
        sources: List[Optional[str]] = []
        for ann in getattr(message, "annotations", None) or []:
            citation = getattr(ann, "url_citation", None)
            sources.append(getattr(citation, "url", None))
        return ChatReply(text=(message.content or "").strip(), sources=sources)


class OfflineTutorOracle(ConversationOracle):
    """
    Deterministic tutor used when no API key is configured.

    It reads the context block it is given: explains each gate kind that
    appears in the circuit and lists the most likely outcomes.
    """

    async def reply(self, request: ConversationRequest) -> ChatReply:
        ctx = request.context
        lines: list[str] = []

        seen = [k for k in GateKind if f'"{k.value} on qubit' in ctx]
        if seen:
            lines.append("**Gates in your circuit:**")
            lines.extend(f"- {GATE_DESCRIPTIONS[k]}" for k in seen)
        else:
            lines.append("Your circuit is empty: every qubit stays in |0>.")

        if "Not run yet" in ctx:
            lines.append("Run the simulation to see the measurement probabilities.")
        elif "Simulation failed" in ctx:
            lines.append("The last simulation failed, so there is no data to explain yet. Try running it again.")
        else:
            probs = _parse_probabilities(ctx)
            likely = [(s, p) for s, p in probs if p > 1e-9]
            if likely:
                lines.append("**Likely outcomes:** " + ", ".join(f"{s} ({p:.0%})" for s, p in likely))
                if len(likely) == 1:
                    lines.append("A single outcome means the result is deterministic.")
                elif len(likely) == 2 and len(likely[0][0]) > len("|0>"):
                    lines.append("Two correlated outcomes across several qubits is the signature of entanglement.")
                else:
                    lines.append("Several outcomes share the probability: the register is in superposition.")
        return ChatReply(text="\n".join(lines))


def _parse_probabilities(ctx: str) -> list[tuple[str, float]]:
    """Read 'label: p' pairs from the 'Simulation Result:' line of a context block."""
    out: list[tuple[str, float]] = []
    for line in ctx.splitlines():
        line = line.strip()
        if not line.startswith("Simulation Result:"):
            continue
        for part in line.split(":", 1)[1].split(","):
            if ":" not in part:
                continue
            label, value = part.rsplit(":", 1)
            try:
                out.append((label.strip(), float(value)))
            except ValueError:
                log.debug(f"Unparsable probability entry '{part}'")
    return out
