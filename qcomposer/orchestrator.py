# qcomposer/orchestrator.py
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Union

from qcomposer.circuit import Circuit
from qcomposer.oracle import OracleUnavailableError, SimulationOracle, SimulationResult, safe_simulate

log = logging.getLogger(__name__)


class RunPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True)
class RunState:
    phase: RunPhase
    step: Optional[int] = None

    @classmethod
    def idle(cls) -> RunState:
        return cls(RunPhase.IDLE)

    @classmethod
    def running(cls, step: int) -> RunState:
        return cls(RunPhase.RUNNING, step)

    @property
    def is_running(self) -> bool:
        return self.phase == RunPhase.RUNNING


StateListener = Callable[[RunState], None]
ResultListener = Callable[[SimulationResult], Union[None, Awaitable[None]]]


class RunOrchestrator:
    """
    Idle -> Running(0..steps-1) -> Idle state machine for one session.

    A run issues the simulation call once, as a task started before the step
    animation, then scans the time axis at a fixed cadence. The result is only
    adopted after both the animation and the oracle call have settled; a failed
    call is adopted as the degraded result. Only one run may be in flight;
    further requests are ignored.
    """

    def __init__(self, oracle: SimulationOracle, *, step_delay: float = 0.6):
        self.oracle = oracle
        self.step_delay = float(step_delay)
        self._state = RunState.idle()
        self._result: Optional[SimulationResult] = None
        self._task: Optional[asyncio.Task] = None
        self._state_listeners: List[StateListener] = []
        self._result_listeners: List[ResultListener] = []

    # ---------- observers ----------
    def add_state_listener(self, cb: StateListener) -> None:
        self._state_listeners.append(cb)

    def remove_state_listener(self, cb: StateListener) -> None:
        self._state_listeners.remove(cb)

    def add_result_listener(self, cb: ResultListener) -> None:
        """`cb` is called once per adopted result; coroutine functions are awaited."""
        self._result_listeners.append(cb)

    # ---------- state ----------
    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def current_result(self) -> Optional[SimulationResult]:
        return self._result

    def invalidate_result(self) -> None:
        """Forget the last result (the circuit it described has been replaced)."""
        self._result = None

    def _set_state(self, state: RunState) -> None:
        self._state = state
        log.debug(f"Run state -> {state.phase.value} step={state.step}")
        for cb in list(self._state_listeners):
            try:
                cb(state)
            except Exception as e:
                log.exception(f"State listener failed: {e}")

    # ---------- commands ----------
    def request_run(self, circuit: Circuit) -> bool:
        """
        Start a run in the background on the running event loop.

        Returns False, and does nothing else, when a run is already in flight.
        """
        if self.is_running:
            log.info("Run requested while running: ignored")
            return False
        loop = asyncio.get_running_loop()
        # Enter Running(0) before yielding so a second request sees it.
        snapshot = self._begin(circuit)
        self._task = loop.create_task(self._execute(snapshot))
        return True

    async def wait(self) -> Optional[SimulationResult]:
        """Await the background run started by `request_run`, if any."""
        if self._task is None:
            return self._result
        return await self._task

    async def run(self, circuit: Circuit) -> Optional[SimulationResult]:
        """
        Perform one full run over `circuit` and return the adopted result.

        Returns None when a run is already in flight or the oracle is
        unavailable; in the latter case the previous result stays current.
        """
        if self.is_running:
            log.info("Run requested while running: ignored")
            return None
        return await self._execute(self._begin(circuit))

    def _begin(self, circuit: Circuit) -> Circuit:
        # Circuit values are immutable: the reference is the snapshot.
        self._set_state(RunState.running(0))
        log.info(f"Run started: {circuit.num_qubits} qubits, {circuit.steps} steps, {len(circuit)} gates")
        return circuit

    async def _execute(self, snapshot: Circuit) -> Optional[SimulationResult]:
        oracle_call = asyncio.ensure_future(safe_simulate(self.oracle, snapshot))
        result: Optional[SimulationResult] = None
        try:
            await self._animate(snapshot.steps)
            result = await oracle_call
        except OracleUnavailableError as e:
            log.error(f"Simulation oracle unavailable, result unchanged: {e}")
        finally:
            if not oracle_call.done():
                oracle_call.cancel()
            if result is not None:
                self._result = result
            self._set_state(RunState.idle())

        if result is None:
            return None
        if result.degraded:
            log.warning("Run finished with a degraded result")
        else:
            log.info(f"Run finished in {result.execution_time} (fidelity={result.fidelity})")
        await self._emit_result(result)
        return result

    async def _animate(self, steps: int) -> None:
        for i in range(steps):
            if i > 0:
                self._set_state(RunState.running(i))
            await asyncio.sleep(self.step_delay)

    async def _emit_result(self, result: SimulationResult) -> None:
        for cb in self._result_listeners:
            out = cb(result)
            if inspect.isawaitable(out):
                await out
