# qcomposer/grid.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from qcomposer.circuit import Circuit, GateKind, gate_at, parse_gate_kind, place_gate, remove_gate

log = logging.getLogger(__name__)


class CircuitLockedError(RuntimeError):
    """Raised when the grid is edited while a run is in flight."""


def on_cell_activated(
    circuit: Circuit,
    selected: Optional[GateKind],
    target: int,
    step: int,
) -> Circuit:
    """
    Apply a single cell click to `circuit`.

    Occupied slot -> gate removed, whatever tool is selected.
    Empty slot + selected tool -> gate placed.
    Empty slot, no tool -> unchanged.
    """
    existing = gate_at(circuit, target, step)
    if existing is not None:
        return remove_gate(circuit, existing.id)
    if selected is not None:
        return place_gate(circuit, target, step, selected)
    return circuit


class GridController:
    """
    Tool selection + cell activation, read-only while a run is in flight.

    `is_locked` is polled on each interaction (typically the orchestrator's
    `is_running`).
    """

    def __init__(self, selected: Optional[GateKind] = GateKind.H, *, is_locked: Callable[[], bool] = lambda: False):
        self.selected: Optional[GateKind] = selected
        self._is_locked = is_locked

    @property
    def locked(self) -> bool:
        return bool(self._is_locked())

    def select(self, kind: GateKind | str | None) -> Optional[GateKind]:
        """Select a tool; None or an empty string deselects."""
        if kind is None or (isinstance(kind, str) and not kind.strip()):
            self.selected = None
        else:
            self.selected = parse_gate_kind(kind)
        return self.selected

    def activate(self, circuit: Circuit, target: int, step: int) -> Circuit:
        if self.locked:
            raise CircuitLockedError("Circuit is read-only while a run is in progress")
        updated = on_cell_activated(circuit, self.selected, target, step)
        if updated is circuit:
            log.debug(f"Cell ({target},{step}) activated with no tool selected: no-op")
        return updated
