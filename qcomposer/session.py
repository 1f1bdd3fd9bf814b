# qcomposer/session.py
from __future__ import annotations

import logging
from typing import Optional

from qcomposer.circuit import Circuit, GateKind, clear_gates
from qcomposer.grid import CircuitLockedError, GridController
from qcomposer.openai_oracle import OfflineTutorOracle, OpenAIConversationOracle
from qcomposer.oracle import ConversationOracle, SimulationOracle, SimulationResult, make_simulation_oracle
from qcomposer.orchestrator import RunOrchestrator, RunState
from qcomposer.presets import INITIAL_CIRCUIT, get_preset, load_preset
from qcomposer.settings import Settings, get_settings
from qcomposer.tutor import Message, TutorAssembler

log = logging.getLogger(__name__)


class ComposerSession:
    """
    One user's composer: circuit + tool selection + run state machine + tutor chat.

    Thin rules layer:
      - every circuit edit goes through the grid controller (read-only while running)
      - loading a preset replaces the circuit and drops the stale result
      - adopted results are forwarded to the tutor (when auto-explain is on)
    """

    def __init__(
        self,
        simulator: SimulationOracle,
        tutor_oracle: ConversationOracle,
        *,
        circuit: Circuit = INITIAL_CIRCUIT,
        step_delay: float = 0.6,
        auto_explain: bool = True,
    ):
        self.circuit = circuit
        self.orchestrator = RunOrchestrator(simulator, step_delay=step_delay)
        self.grid = GridController(GateKind.H, is_locked=lambda: self.orchestrator.is_running)
        self.tutor = TutorAssembler(tutor_oracle)
        if auto_explain:
            self.orchestrator.add_result_listener(self._explain)

    # ---------- views ----------
    @property
    def result(self) -> Optional[SimulationResult]:
        return self.orchestrator.current_result

    @property
    def state(self) -> RunState:
        return self.orchestrator.state

    @property
    def running(self) -> bool:
        return self.orchestrator.is_running

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self.tutor.messages)

    @property
    def estimated_time(self) -> str:
        """Rough cost label shown before running: fixed overhead plus a per-gate term."""
        return f"{0.015 + len(self.circuit) * 0.0042:.4f}s"

    # ---------- commands ----------
    def cmd_select(self, kind: GateKind | str | None) -> Optional[GateKind]:
        return self.grid.select(kind)

    def cmd_activate(self, target: int, step: int) -> Circuit:
        """
        Toggle cell (target, step) with the selected tool.

        Raises
        ------
        CircuitLockedError
            If a run is in progress.
        """
        self.circuit = self.grid.activate(self.circuit, target, step)
        return self.circuit

    def cmd_clear(self) -> Circuit:
        if self.running:
            raise CircuitLockedError("Cannot clear the circuit while a run is in progress")
        self.circuit = clear_gates(self.circuit)
        return self.circuit

    def cmd_load_preset(self, name: str) -> Circuit:
        """
        Replace the circuit with preset `name` and forget the current result.

        Raises
        ------
        PresetNotFoundError
            Unknown preset.
        CircuitLockedError
            If a run is in progress.
        """
        if self.running:
            raise CircuitLockedError("Cannot load a preset while a run is in progress")
        preset = get_preset(name)
        self.circuit = load_preset(preset)
        self.orchestrator.invalidate_result()
        log.info(f"Loaded preset '{preset.name}'")
        return self.circuit

    def cmd_request_run(self) -> bool:
        """Start a background run on the current loop; False if one is already running."""
        return self.orchestrator.request_run(self.circuit)

    async def cmd_run(self) -> Optional[SimulationResult]:
        """Run to completion (animation + oracle) and return the adopted result."""
        return await self.orchestrator.run(self.circuit)

    async def cmd_ask(self, text: str) -> Optional[Message]:
        return await self.tutor.send(text, self.circuit, self.result)

    async def _explain(self, result: SimulationResult) -> None:
        await self.tutor.on_result(self.circuit, result)

    def snapshot(self) -> dict:
        """JSON-friendly view of the whole session."""
        return {
            "circuit": self.circuit.to_dict(),
            "selected": self.grid.selected.value if self.grid.selected else None,
            "state": {"phase": self.state.phase.value, "step": self.state.step},
            "result": self.result.to_dict() if self.result else None,
            "estimated_time": self.estimated_time,
            "tutor_busy": self.tutor.busy,
        }


def make_tutor_oracle(settings: Settings) -> ConversationOracle:
    """OpenAI-backed tutor when a key is configured, else the offline one."""
    if settings.OPENAI_API_KEY:
        return OpenAIConversationOracle(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    log.info("No OpenAI key configured: using the offline tutor")
    return OfflineTutorOracle()


def build_session(settings: Optional[Settings] = None, *, oracle: Optional[str] = None) -> ComposerSession:
    settings = settings or get_settings()
    return ComposerSession(
        make_simulation_oracle(oracle or settings.ORACLE),
        make_tutor_oracle(settings),
        step_delay=settings.step_delay,
        auto_explain=settings.AUTO_EXPLAIN,
    )
