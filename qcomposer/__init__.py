# qcomposer/__init__.py
import importlib.metadata

from .circuit import Circuit, Gate, GateKind, clear_gates, place_gate, remove_gate
from .grid import CircuitLockedError, GridController, on_cell_activated
from .orchestrator import RunOrchestrator, RunPhase, RunState
from .presets import INITIAL_CIRCUIT, PRESETS, Preset, load_preset
from .tutor import Message, Role, TutorAssembler

__version__ = importlib.metadata.version("qcomposer")
