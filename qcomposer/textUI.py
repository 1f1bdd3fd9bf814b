# qcomposer/textUI.py
from __future__ import annotations

import asyncio
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from qcomposer.circuit import GATE_DESCRIPTIONS, GATE_NAMES, GateKind, control_at, gate_at, parse_gate_kind
from qcomposer.grid import CircuitLockedError
from qcomposer.orchestrator import RunState
from qcomposer.presets import PRESETS, PresetNotFoundError
from qcomposer.session import ComposerSession
from qcomposer.tutor import Role

console = Console()

GATE_STYLE = {
    GateKind.H: "bold cyan",
    GateKind.X: "bold red",
    GateKind.Y: "bold green",
    GateKind.Z: "bold blue",
    GateKind.CX: "bold magenta",
    GateKind.M: "bold yellow",
}


# ---------- rendering ----------
def render_grid(session: ComposerSession, scan: Optional[int] = None) -> Table:
    circuit = session.circuit
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 1))
    table.add_column(" ", justify="right")
    for s in range(circuit.steps):
        style = "reverse" if s == scan else ""
        table.add_column(Text(str(s), style=style), justify="center")

    for q in range(circuit.num_qubits):
        row = [Text(f"q{q}")]
        for s in range(circuit.steps):
            gate = gate_at(circuit, q, s)
            ctrl = control_at(circuit, q, s)
            if gate is not None:
                cell = Text(gate.kind.value, style=GATE_STYLE[gate.kind])
            elif ctrl is not None:
                cell = Text("●", style="magenta")
            else:
                cell = Text("─", style="dim")
            if s == scan:
                cell.stylize("on grey23")
            row.append(cell)
        table.add_row(*row)
    return table


def render_result(session: ComposerSession) -> None:
    result = session.result
    if result is None:
        console.print(f"[dim]Ready to simulate. Estimated compute time: ~{session.estimated_time}[/dim]")
        return
    if result.degraded:
        console.print("[red]Simulation failed:[/] showing no data.")
        return

    table = Table(title=f"Result ({result.execution_time}, fidelity {result.fidelity:.2f})", box=None)
    table.add_column("State")
    table.add_column("Amplitude", justify="right")
    table.add_column("P", justify="right")
    table.add_column("")
    for amp, prob in zip(result.state_vector, result.probabilities):
        bar = "█" * int(round(prob.probability * 20))
        table.add_row(amp.label, f"{amp.real:+.3f}{amp.imag:+.3f}i", f"{prob.probability:.3f}", Text(bar, style="cyan"))
    console.print(table)


def render_chat(session: ComposerSession, last: int = 2) -> None:
    for msg in session.messages[-last:]:
        who = "[bold cyan]Tutor[/]" if msg.role == Role.ASSISTANT else "[bold]You[/]"
        console.print(f"{who}: {msg.text}\n")


def render(session: ComposerSession, scan: Optional[int] = None) -> None:
    console.clear()
    sel = f"{session.grid.selected.value} ({GATE_NAMES[session.grid.selected]})" if session.grid.selected else "none"
    console.print(f"[bold magenta]Quantum Circuit Composer[/]    tool: [bold]{sel}[/]")
    console.print(render_grid(session, scan))
    console.print()


# ---------- commands ----------
HELP = (
    "[bold]Commands:[/] "
    "[cyan]H X Y Z CX M[/] select tool · [cyan]q,s[/] toggle cell · "
    "[cyan]RUN[/] · [cyan]CLEAR[/] · [cyan]LOAD <preset>[/] · [cyan]PRESETS[/] · "
    "[cyan]ASK <question>[/] · [cyan]INFO <gate>[/] · [cyan]Q[/] quit"
)


def run_with_animation(session: ComposerSession, runner: asyncio.Runner) -> None:
    def on_state(state: RunState) -> None:
        if state.is_running:
            render(session, scan=state.step)
            console.print(f"[yellow]Running... step {state.step + 1}/{session.circuit.steps}[/]")

    session.orchestrator.add_state_listener(on_state)
    try:
        runner.run(session.cmd_run())
    finally:
        session.orchestrator.remove_state_listener(on_state)


def handle(session: ComposerSession, raw: str, runner: asyncio.Runner) -> bool:
    """
    Apply one command line; returns False when the user quits.

    Coroutines run on `runner`; its loop is shared by every command of a TUI
    session (the tutor client is bound to it).
    """
    u = raw.strip()
    if not u:
        return True
    cmd, _, rest = u.partition(" ")
    cmd_u = cmd.upper()

    if cmd_u in ("Q", "QUIT", "EXIT"):
        return False
    if cmd_u in {k.value for k in GateKind} or cmd_u in ("MEASURE", "CNOT", "NONE"):
        session.cmd_select(None if cmd_u == "NONE" else cmd_u)
        return True
    if cmd_u == "RUN":
        run_with_animation(session, runner)
        return True
    if cmd_u == "CLEAR":
        session.cmd_clear()
        return True
    if cmd_u == "PRESETS":
        for p in PRESETS.values():
            console.print(f"[bold]{p.name}[/]: {p.description}")
        console.input("[dim](enter to continue)[/] ")
        return True
    if cmd_u == "LOAD":
        session.cmd_load_preset(rest)
        return True
    if cmd_u == "INFO":
        console.print(GATE_DESCRIPTIONS[parse_gate_kind(rest)])
        console.input("[dim](enter to continue)[/] ")
        return True
    if cmd_u == "ASK":
        runner.run(session.cmd_ask(rest))
        return True

    try:
        q_str, s_str = u.split(",", 1)
        q, s = int(q_str), int(s_str)
    except ValueError:
        raise ValueError(f"Unknown command: '{raw}'")
    session.cmd_activate(q, s)
    return True


def run_tui(session: ComposerSession, *, initial_run: bool = False) -> None:
    with asyncio.Runner() as runner:
        if initial_run:
            run_with_animation(session, runner)
        while True:
            render(session)
            render_result(session)
            render_chat(session)
            console.print(HELP)
            try:
                raw = console.input("[yellow]>[/] ")
                if not handle(session, raw, runner):
                    console.print("[italic]Bye.[/]")
                    return
            except PresetNotFoundError as e:
                console.print(f"[red]Unknown preset:[/] {e}")
                console.input("[dim](enter to continue)[/] ")
            except (ValueError, KeyError, CircuitLockedError) as e:
                console.print(f"[red]Invalid input:[/] {e}")
                console.input("[dim](enter to continue)[/] ")
