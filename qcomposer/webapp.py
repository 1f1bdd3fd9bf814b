# qcomposer/webapp.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fastapi import FastAPI, Form, HTTPException, Query
from fastapi.responses import PlainTextResponse

from qcomposer import __version__
from qcomposer.auth import enable_basic_auth
from qcomposer.grid import CircuitLockedError
from qcomposer.logging_config import setup_logging
from qcomposer.presets import PRESETS, PresetNotFoundError
from qcomposer.session import ComposerSession, build_session
from qcomposer.settings import get_settings
from qcomposer.tutor import render_markup

# --------- Logging ---------
setup_logging()
log = logging.getLogger("qcomposer.web")

# --------- Settings ---------
settings = get_settings()

# --------- App ---------
app = FastAPI(title="Quantum Circuit Composer", version=__version__)
enable_basic_auth(app, exclude_paths=["/health"])

# --------- In-memory session store ---------
# session_id -> {"session": ComposerSession, "last_seen": datetime}
SESSIONS: dict[str, dict] = {}


def new_session() -> ComposerSession:
    return build_session(settings)


def prune_stale_sessions() -> None:
    """Drop idle sessions older than the abandonment threshold (never one that is running)."""
    cutoff = datetime.now(timezone.utc) - timedelta(minutes=settings.ABANDON_THRESHOLD_MIN)
    stale = [
        sid
        for sid, rec in SESSIONS.items()
        if rec["last_seen"] < cutoff and not rec["session"].running
    ]
    for sid in stale:
        SESSIONS.pop(sid, None)
    if stale:
        log.info(f"Pruned {len(stale)} abandoned sessions")


def get_session(session_id: str) -> ComposerSession:
    rec = SESSIONS.get(session_id)
    if rec is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    rec["last_seen"] = datetime.now(timezone.utc)
    return rec["session"]


def session_view(session_id: str, session: ComposerSession) -> dict:
    view = session.snapshot()
    view["session_id"] = session_id
    view["messages"] = [
        {**m.to_dict(), "html": str(render_markup(m.text))} for m in session.messages
    ]
    return view


# --------- Routes ---------
@app.get("/health")
def health():
    return PlainTextResponse("ok")


@app.get("/presets")
def list_presets():
    return [
        {"name": p.name, "description": p.description, "circuit": p.circuit.to_dict()}
        for p in PRESETS.values()
    ]


@app.post("/sessions", status_code=201)
async def create_session():
    prune_stale_sessions()
    sid = str(uuid4())
    session = new_session()
    SESSIONS[sid] = {"session": session, "last_seen": datetime.now(timezone.utc)}
    log.info(f"New session sid={sid}")
    if settings.INITIAL_RUN:
        session.cmd_request_run()
    return session_view(sid, session)


@app.get("/sessions/{session_id}")
async def read_session(session_id: str):
    return session_view(session_id, get_session(session_id))


@app.post("/sessions/{session_id}/select")
async def select_gate(session_id: str, gate: str = Form("")):
    session = get_session(session_id)
    try:
        session.cmd_select(gate or None)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session_view(session_id, session)


@app.post("/sessions/{session_id}/cells")
async def activate_cell(session_id: str, qubit: int = Form(...), step: int = Form(...)):
    """
    Toggle one grid cell with the selected gate.

    409 while a run is in progress, 400 for a cell outside the grid.
    """
    session = get_session(session_id)
    if not (0 <= qubit < session.circuit.num_qubits and 0 <= step < session.circuit.steps):
        raise HTTPException(status_code=400, detail=f"Cell ({qubit},{step}) outside the grid")
    try:
        session.cmd_activate(qubit, step)
    except CircuitLockedError as e:
        log.info(f"CELL rejected sid={session_id} q={qubit} s={step}: {e}")
        raise HTTPException(status_code=409, detail=str(e))
    return session_view(session_id, session)


@app.post("/sessions/{session_id}/clear")
async def clear_circuit(session_id: str):
    session = get_session(session_id)
    try:
        session.cmd_clear()
    except CircuitLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_view(session_id, session)


@app.post("/sessions/{session_id}/preset")
async def load_preset(session_id: str, name: str = Form(...)):
    session = get_session(session_id)
    try:
        session.cmd_load_preset(name)
    except PresetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Unknown preset '{name}'")
    except CircuitLockedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session_view(session_id, session)


@app.post("/sessions/{session_id}/run", status_code=202)
async def run_circuit(session_id: str, wait: bool = Query(False)):
    """
    Start a run. With `wait=true` the response is sent once the run (and any
    automatic explanation) has finished.
    """
    session = get_session(session_id)
    if not session.cmd_request_run():
        raise HTTPException(status_code=409, detail="A run is already in progress")
    log.info(f"RUN sid={session_id} gates={len(session.circuit)}")
    if wait:
        await session.orchestrator.wait()
    return session_view(session_id, session)


@app.post("/sessions/{session_id}/chat")
async def chat(session_id: str, text: str = Form(...)):
    session = get_session(session_id)
    if session.tutor.busy:
        raise HTTPException(status_code=409, detail="The tutor is still answering")
    reply = await session.cmd_ask(text)
    if reply is None:
        raise HTTPException(status_code=400, detail="Empty message")
    return session_view(session_id, session)


@app.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    get_session(session_id)
    SESSIONS.pop(session_id, None)
