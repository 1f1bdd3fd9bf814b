# qcomposer/__main__.py
from __future__ import annotations

import asyncio
import os

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from qcomposer.logging_config import setup_logging
from qcomposer.oracle import OracleUnavailableError, make_simulation_oracle, safe_simulate
from qcomposer.presets import PRESETS, PresetNotFoundError, get_preset
from qcomposer.session import build_session
from qcomposer.settings import get_settings
from qcomposer.textUI import run_tui

# Initialize logging once (uvicorn still prints its own access logs)
setup_logging()

app = typer.Typer(help="Quantum Circuit Composer CLI")
console = Console()


def _check_oracle(oracle: str | None) -> str:
    chosen = (oracle or get_settings().ORACLE).strip().lower()
    if chosen not in {"stim", "qiskit"}:
        raise typer.BadParameter("Invalid oracle, choose 'stim' or 'qiskit'")
    return chosen


@app.command()
def tui(oracle: str | None = typer.Option(None, help="Simulation oracle: stim or qiskit")):
    """
    Run the Text User Interface (TUI).
    Uses settings.ORACLE by default; --oracle overrides for this run.
    """
    run_tui(build_session(oracle=_check_oracle(oracle)), initial_run=get_settings().INITIAL_RUN)


@app.command()
def webui(
    host: str | None = typer.Option(None, help="Bind host (default: 127.0.0.1)"),
    port: int | None = typer.Option(None, help="Port (default: $PORT or 8080)"),
    reload: bool = typer.Option(False, help="Auto-reload (default: False)"),
    oracle: str | None = typer.Option(None, help="Simulation oracle: stim or qiskit (default: settings.ORACLE)"),
):
    """
    Serve the JSON web API with uvicorn.
    """
    settings = get_settings()
    if oracle is not None:
        settings.ORACLE = _check_oracle(oracle)

    uvicorn.run(
        "qcomposer.webapp:app",
        host=host or "127.0.0.1",
        port=port or int(os.getenv("PORT", "8080")),
        reload=reload,
    )


@app.command()
def presets():
    """List the built-in circuits."""
    for p in PRESETS.values():
        c = p.circuit
        console.print(f"[bold]{p.name}[/] ({c.num_qubits} qubits, {c.steps} steps): {p.description}")


@app.command()
def simulate(
    preset: str = typer.Argument(..., help="Preset name, e.g. 'Bell State'"),
    oracle: str | None = typer.Option(None, help="Simulation oracle: stim or qiskit"),
    code: bool = typer.Option(False, help="Also print the generated program"),
):
    """One-shot simulation of a preset, without animation."""
    try:
        circuit = get_preset(preset).circuit
    except PresetNotFoundError:
        raise typer.BadParameter(f"Unknown preset '{preset}'")

    try:
        result = asyncio.run(safe_simulate(make_simulation_oracle(_check_oracle(oracle)), circuit))
    except OracleUnavailableError as e:
        console.print(f"[red]Simulation oracle unavailable:[/] {e}")
        raise typer.Exit(code=1)
    if result.degraded:
        console.print("[red]Simulation failed.[/]")
        raise typer.Exit(code=1)

    table = Table(title=f"{preset} ({result.execution_time})", box=None)
    table.add_column("State")
    table.add_column("P", justify="right")
    for p in result.probabilities:
        table.add_row(p.state, f"{p.probability:.4f}")
    console.print(table)
    if code:
        console.print(result.generated_code)


if __name__ == "__main__":
    app()
