# qcomposer/tutor.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, List, Optional, Sequence

from markupsafe import Markup, escape

from qcomposer.circuit import Circuit
from qcomposer.oracle import (
    ChatTurn,
    ConversationOracle,
    ConversationRequest,
    SimulationResult,
)

log = logging.getLogger(__name__)

TUTOR_PERSONA = """
You are a friendly, expert Quantum Physics Tutor embedded in a circuit composer.

Guidelines:
- Explain concepts simply and interpret results clearly
  (e.g. "The 50/50 split means the qubit is in a perfect superposition").
- Relate interference to waves: quantum states carry a phase that can add up or cancel out.
- If asked about imperfections, relate them to quantum noise or phase errors.
- Reference the user's specific circuit design when explaining.
- Keep answers concise and helpful.
""".strip()

GREETING = (
    "Hello! I'm your Quantum Tutor. I can help you design circuits, explain what specific gates do, "
    "or interpret your simulation results. Try running a 'Bell State' to see entanglement in action!"
)

EXPLAIN_PROMPT = (
    "The user just ran a new simulation. Briefly explain the results shown in the 'probabilities' "
    "and 'stateVector' to a beginner. Explain WHY the quantum state ended up this way based on the "
    "gates used. Suggest one cool thing to try next."
)

APOLOGY = "I'm having trouble connecting to the quantum realm right now. Please try again."
EMPTY_REPLY = "I didn't catch that."
NOT_RUN_YET = "Not run yet"
SIMULATION_FAILED = "Simulation failed (no data)"


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    role: Role
    text: str

    def to_dict(self) -> dict:
        return {"role": self.role.value, "text": self.text}


# ---------- formatting ----------
def summarize_circuit(circuit: Circuit) -> List[str]:
    return [g.describe() for g in circuit.ordered_gates()]


def summarize_result(result: Optional[SimulationResult]) -> str:
    if result is None:
        return NOT_RUN_YET
    if result.degraded:
        return SIMULATION_FAILED
    return ", ".join(f"{p.state}: {p.probability:g}" for p in result.probabilities)


def build_context(circuit: Circuit, result: Optional[SimulationResult], instruction: str) -> str:
    return (
        "[CURRENT APP STATE]\n"
        f"Circuit Gates: {json.dumps(summarize_circuit(circuit))}\n"
        f"Simulation Result: {summarize_result(result)}\n"
        "\n"
        "[USER QUESTION]\n"
        f"{instruction}"
    )


def format_sources(sources: Iterable[Optional[str]]) -> str:
    """Numbered source list (empty entries skipped), or '' when nothing is left."""
    urls = [s.strip() for s in sources if s and s.strip()]
    if not urls:
        return ""
    return "\n\n**Sources:**\n" + "\n".join(f"[{i}] {u}" for i, u in enumerate(urls, start=1))


_BOLD = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)


def render_markup(text: str) -> Markup:
    """
    Render untrusted oracle text as HTML.

    Everything is escaped; only **bold** and line breaks are turned into markup.
    """
    escaped = str(escape(text))
    html = _BOLD.sub(r"<strong>\1</strong>", escaped)
    html = html.replace("\r\n", "\n").replace("\n", "<br/>")
    return Markup(html)


# ---------- assembler ----------
class TutorAssembler:
    """
    Owns the chat log and decides when the tutor speaks up on its own.

    `last_explained` holds the execution-time label of the last result that
    triggered an explanation; it is set before the oracle is called and never
    rolled back, so a failed explanation is not retried for that result.
    """

    def __init__(self, oracle: ConversationOracle, *, greeting: Optional[str] = GREETING):
        self.oracle = oracle
        self._messages: List[Message] = []
        if greeting:
            self._messages.append(Message(Role.ASSISTANT, greeting))
        self.last_explained: Optional[str] = None
        self.pending = 0

    @property
    def messages(self) -> Sequence[Message]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self.pending > 0

    def _append(self, role: Role, text: str) -> Message:
        msg = Message(role, text)
        self._messages.append(msg)
        return msg

    def build_request(self, circuit: Circuit, result: Optional[SimulationResult], instruction: str) -> ConversationRequest:
        history = tuple(ChatTurn(role=m.role.value, text=m.text) for m in self._messages)
        return ConversationRequest(
            system=TUTOR_PERSONA,
            history=history,
            context=build_context(circuit, result, instruction),
        )

    def should_explain(self, result: Optional[SimulationResult]) -> bool:
        if result is None or not result.execution_time:
            return False
        return result.execution_time != self.last_explained

    async def on_result(self, circuit: Circuit, result: Optional[SimulationResult]) -> bool:
        """
        React to a newly adopted result.

        Returns True when a proactive explanation was requested.
        """
        if not self.should_explain(result):
            return False
        self.last_explained = result.execution_time
        log.info(f"Explaining result {result.execution_time}")
        await self._ask(self.build_request(circuit, result, EXPLAIN_PROMPT))
        return True

    async def send(self, text: str, circuit: Circuit, result: Optional[SimulationResult]) -> Optional[Message]:
        """
        User turn: log the user's message, then the tutor's reply.

        Blank input is ignored (returns None).
        """
        if not text or not text.strip():
            return None
        # Request is built from the history *before* this message; the message
        # itself travels in the context block.
        request = self.build_request(circuit, result, text)
        self._append(Role.USER, text)
        return await self._ask(request)

    async def _ask(self, request: ConversationRequest) -> Message:
        self.pending += 1
        try:
            reply = await self.oracle.reply(request)
        except Exception as e:
            log.exception(f"Conversation oracle failed: {e}")
            return self._append(Role.ASSISTANT, APOLOGY)
        finally:
            self.pending -= 1

        text = reply.text or EMPTY_REPLY
        return self._append(Role.ASSISTANT, text + format_sources(reply.sources))
