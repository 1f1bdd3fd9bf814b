import base64

import pytest
from conftest import FakeSimulator, FakeTutor
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from qcomposer import auth, webapp
from qcomposer.session import ComposerSession
from qcomposer.settings import Settings


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(
        webapp,
        "new_session",
        lambda: ComposerSession(FakeSimulator(), FakeTutor(text="**Hi** <b>there</b>"), step_delay=0),
    )
    monkeypatch.setattr(webapp.settings, "INITIAL_RUN", False)
    webapp.SESSIONS.clear()
    with TestClient(webapp.app) as c:
        yield c
    webapp.SESSIONS.clear()


def new_sid(client) -> str:
    resp = client.post("/sessions")
    assert resp.status_code == 201
    return resp.json()["session_id"]


def test_health(client):
    assert client.get("/health").text == "ok"


def test_presets_listed(client):
    names = [p["name"] for p in client.get("/presets").json()]
    assert "Bell State" in names


def test_new_session_has_default_circuit(client):
    data = client.get(f"/sessions/{new_sid(client)}").json()
    assert data["circuit"]["num_qubits"] == 3
    assert len(data["circuit"]["gates"]) == 3
    assert data["state"]["phase"] == "idle"
    assert data["result"] is None
    assert data["messages"][0]["role"] == "assistant"


def test_cell_toggle_and_select(client):
    sid = new_sid(client)
    client.post(f"/sessions/{sid}/select", data={"gate": "x"})
    gates = client.post(f"/sessions/{sid}/cells", data={"qubit": 0, "step": 4}).json()["circuit"]["gates"]
    assert any(g["kind"] == "X" and g["target"] == 0 and g["step"] == 4 for g in gates)

    gates = client.post(f"/sessions/{sid}/cells", data={"qubit": 0, "step": 4}).json()["circuit"]["gates"]
    assert len(gates) == 3


def test_bad_requests(client):
    sid = new_sid(client)
    assert client.post(f"/sessions/{sid}/cells", data={"qubit": 9, "step": 0}).status_code == 400
    assert client.post(f"/sessions/{sid}/select", data={"gate": "SWAP"}).status_code == 400
    assert client.post(f"/sessions/{sid}/preset", data={"name": "nope"}).status_code == 404
    assert client.get("/sessions/unknown").status_code == 404


def test_preset_run_and_explain(client):
    sid = new_sid(client)
    client.post(f"/sessions/{sid}/preset", data={"name": "Bell State"})
    resp = client.post(f"/sessions/{sid}/run", params={"wait": "true"})
    assert resp.status_code == 202
    data = resp.json()
    assert data["result"]["execution_time"] == "0.0042s"
    assert data["state"]["phase"] == "idle"
    last = data["messages"][-1]
    assert last["text"] == "**Hi** <b>there</b>"
    assert last["html"] == "<strong>Hi</strong> &lt;b&gt;there&lt;/b&gt;"

    data = client.post(f"/sessions/{sid}/preset", data={"name": "GHZ State"}).json()
    assert data["result"] is None


def test_chat(client):
    sid = new_sid(client)
    data = client.post(f"/sessions/{sid}/chat", data={"text": "hello"}).json()
    assert [m["role"] for m in data["messages"]] == ["assistant", "user", "assistant"]
    assert client.post(f"/sessions/{sid}/chat", data={"text": "  "}).status_code == 400


def test_delete_session(client):
    sid = new_sid(client)
    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.get(f"/sessions/{sid}").status_code == 404


def test_new_session_starts_initial_run(client, monkeypatch):
    monkeypatch.setattr(webapp.settings, "INITIAL_RUN", True)
    data = client.post("/sessions").json()
    assert data["state"] == {"phase": "running", "step": 0}


def test_chat_rejected_while_tutor_busy(client):
    sid = new_sid(client)
    webapp.SESSIONS[sid]["session"].tutor.pending = 1
    assert client.post(f"/sessions/{sid}/chat", data={"text": "hello"}).status_code == 409


# ---------- basic auth ----------
def auth_settings(**kw) -> Settings:
    return Settings(**{"ENABLE_AUTH": True, "USER": "alice", "PASS": "s3cret", **kw})


@pytest.fixture
def auth_client(monkeypatch):
    monkeypatch.setattr(auth, "get_settings", auth_settings)
    app = FastAPI()

    @app.get("/health")
    def health():
        return PlainTextResponse("ok")

    @app.get("/private")
    def private():
        return {"ok": True}

    assert auth.enable_basic_auth(app, exclude_paths=["/health", "/docs*"])
    return TestClient(app)


def test_auth_rejects_missing_credentials(auth_client):
    resp = auth_client.get("/private")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"].startswith("Basic realm=")


@pytest.mark.parametrize(
    "header",
    [
        "Basic !!!not-base64",
        "Bearer abc",
        "Basic " + base64.b64encode(b"alice:wrong").decode(),
        "Basic " + base64.b64encode(b"no-colon").decode(),
    ],
)
def test_auth_rejects_bad_headers(auth_client, header):
    assert auth_client.get("/private", headers={"Authorization": header}).status_code == 401


def test_auth_accepts_valid_credentials(auth_client):
    resp = auth_client.get("/private", auth=("alice", "s3cret"))
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_auth_excluded_paths(auth_client):
    assert auth_client.get("/health").status_code == 200
    assert auth_client.get("/docs").status_code == 200


def test_enable_basic_auth_off_or_misconfigured(monkeypatch):
    monkeypatch.setattr(auth, "get_settings", lambda: auth_settings(ENABLE_AUTH=False))
    assert auth.enable_basic_auth(FastAPI()) is False

    monkeypatch.setattr(auth, "get_settings", lambda: auth_settings(USER=None, PASS=None))
    with pytest.raises(RuntimeError):
        auth.enable_basic_auth(FastAPI())
