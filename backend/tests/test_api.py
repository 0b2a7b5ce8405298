"""HTTP and WebSocket API tests against an isolated session."""

import pytest
from fastapi.testclient import TestClient

from piezosim import main
from piezosim.config import Settings
from piezosim.main import app
from piezosim.services.session import SimulationSession, get_session


# ─── Fixtures ───


@pytest.fixture
def session():
    return SimulationSession(Settings(frame_period=0.01))


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as test_client:
        yield test_client
        test_client.post("/api/simulation/stop")
    app.dependency_overrides.clear()


def _point(component_id: str, point_id: str) -> dict:
    return {"component_id": component_id, "point_id": point_id}


def _pair(client) -> None:
    client.post("/api/circuit/components", json={"kind": "piezo_single", "x": 80, "y": 100})
    client.post("/api/circuit/components", json={"kind": "bridge_rectifier", "x": 260, "y": 100})


# ═══════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════


class TestCatalogApi:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_list(self, client):
        body = client.get("/api/catalog/").json()
        assert len(body) == 16
        assert body[0]["kind"] == "piezo_single"

    def test_by_role(self, client):
        body = client.get("/api/catalog/roles/storage").json()
        assert [s["kind"] for s in body] == [
            "capacitor_100uf",
            "capacitor_1mf",
            "capacitor_10mf",
        ]

    def test_unknown_kind(self, client):
        response = client.get("/api/catalog/warp_core")
        assert response.status_code == 404
        assert response.json()["code"] == "E_UNKNOWN_KIND"


# ═══════════════════════════════════════════════════════════
# Circuit editing
# ═══════════════════════════════════════════════════════════


class TestCircuitApi:
    def test_add_component_snaps(self, client):
        response = client.post(
            "/api/circuit/components",
            json={"kind": "capacitor_1mf", "x": 93, "y": 47},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["id"] == "comp_1"
        assert (body["x"], body["y"]) == (100, 40)

    def test_add_unknown_kind(self, client):
        response = client.post(
            "/api/circuit/components", json={"kind": "warp_core", "x": 0, "y": 0}
        )
        assert response.status_code == 404
        assert client.get("/api/circuit/state").json()["components"] == []

    def test_connect_and_reject_duplicate(self, client):
        _pair(client)
        wire = {"start": _point("comp_1", "ac1"), "end": _point("comp_2", "ac1")}
        response = client.post("/api/circuit/wires", json=wire)
        assert response.status_code == 201
        assert response.json()["polarity"] == "ac"

        reverse = {"start": wire["end"], "end": wire["start"]}
        response = client.post("/api/circuit/wires", json=reverse)
        assert response.status_code == 409
        assert response.json()["code"] == "E_DUPLICATE_WIRE"

    def test_reject_self_connection(self, client):
        _pair(client)
        response = client.post(
            "/api/circuit/wires",
            json={"start": _point("comp_2", "ac1"), "end": _point("comp_2", "dc_pos")},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "E_SELF_CONNECTION"

    def test_move_and_remove(self, client):
        _pair(client)
        response = client.put(
            "/api/circuit/components/comp_1/position", json={"x": 201, "y": 299}
        )
        assert (response.json()["x"], response.json()["y"]) == (200, 300)

        assert client.delete("/api/circuit/components/comp_1").status_code == 204
        assert client.delete("/api/circuit/components/comp_1").status_code == 404

    def test_delete_wire_is_idempotent(self, client):
        _pair(client)
        client.post(
            "/api/circuit/wires",
            json={"start": _point("comp_1", "ac1"), "end": _point("comp_2", "ac1")},
        )
        assert client.delete("/api/circuit/wires/wire_1").status_code == 204
        assert client.delete("/api/circuit/wires/wire_1").status_code == 204
        assert client.get("/api/circuit/state").json()["wires"] == []

    def test_queries(self, client):
        _pair(client)
        point = client.get("/api/circuit/query/point", params={"x": 105, "y": 143}).json()
        assert (point["component_id"], point["point_id"]) == ("comp_1", "ac1")
        component = client.get("/api/circuit/query/component", params={"x": 300, "y": 150}).json()
        assert component["id"] == "comp_2"
        assert client.get("/api/circuit/query/wire", params={"x": 140, "y": 140}).json() is None

    def test_wire_mode_clicks(self, client):
        _pair(client)
        assert client.post("/api/circuit/wire-mode").json()["wire_mode"] is True
        client.post("/api/circuit/click", json={"x": 100, "y": 140})
        state = client.post("/api/circuit/click", json={"x": 270, "y": 150}).json()
        assert len(state["wires"]) == 1
        assert state["wire_start"] is None

    def test_remove_at(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        body = client.post("/api/circuit/remove-at", json={"x": 150, "y": 140}).json()
        assert body["wire"]["id"] == "wire_1"
        assert body["component"] is None


# ═══════════════════════════════════════════════════════════
# Simulation control
# ═══════════════════════════════════════════════════════════


class TestSimulationApi:
    def test_activate_requires_running(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        response = client.post("/api/simulation/generators/comp_1/activate")
        assert response.status_code == 409
        assert response.json()["code"] == "E_SIMULATION_STOPPED"

    def test_start_and_activate(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        assert client.post("/api/simulation/start").json()["running"] is True

        response = client.post(
            "/api/simulation/generators/comp_1/activate", json={"pressure": 0.5}
        )
        assert response.status_code == 200
        assert response.json()["state"]["voltage"] == pytest.approx(7.5)

        state = client.get("/api/circuit/state").json()
        assert state["measurements"]["rectifier_voltage"] > 0

    def test_activate_non_generator(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        client.post("/api/simulation/start")
        response = client.post("/api/simulation/generators/comp_3/activate")
        assert response.status_code == 409
        assert response.json()["code"] == "E_NOT_A_GENERATOR"

    def test_pressure_validation(self, client):
        assert client.put("/api/simulation/pressure", json={"pressure": 2}).status_code == 422
        state = client.put("/api/simulation/pressure", json={"pressure": 0.25}).json()
        assert state["pressure"] == 0.25

    def test_auto_step(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        client.post("/api/simulation/start")
        state = client.post("/api/simulation/auto-step", json={"frequency_hz": 5}).json()
        assert state["auto_stepping"] is True
        assert state["auto_step_hz"] == 5
        state = client.delete("/api/simulation/auto-step").json()
        assert state["auto_stepping"] is False

    def test_stop_resets(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        client.post("/api/simulation/start")
        client.post("/api/simulation/step")
        state = client.post("/api/simulation/stop").json()
        assert state["running"] is False
        assert all(c["state"]["voltage"] == 0 for c in state["components"])

    def test_templates(self, client):
        names = [t["name"] for t in client.get("/api/simulation/templates").json()]
        assert names == ["basic_harvester", "regulated_system"]

        state = client.post("/api/simulation/templates/regulated_system").json()
        assert len(state["components"]) == 5
        assert len(state["wires"]) == 8

        response = client.post("/api/simulation/templates/nope")
        assert response.status_code == 404


class TestFrameStream:
    def test_full_state_on_connect(self, client):
        client.post("/api/simulation/templates/basic_harvester")
        with client.websocket_connect("/api/frames/ws") as ws:
            message = ws.receive_json()
            assert message["type"] == "SIM_FULL_STATE"
            assert len(message["state"]["components"]) == 4

            ws.send_json({"type": "STATE_REQUEST_FULL"})
            assert ws.receive_json()["type"] == "SIM_FULL_STATE"

    def test_frames_while_running(self, client):
        with client.websocket_connect("/api/frames/ws") as ws:
            ws.receive_json()
            client.post("/api/simulation/start")
            message = ws.receive_json()
            assert message["type"] == "SIM_FRAME"
            assert message["state"]["running"] is True


class TestServerEntryPoint:
    def test_reload_off_by_default(self, monkeypatch):
        calls = []
        monkeypatch.setattr(main.uvicorn, "run", lambda *a, **kw: calls.append((a, kw)))
        main.run()
        args, kwargs = calls[0]
        assert args == ("piezosim.main:app",)
        assert kwargs["reload"] is False

    def test_reload_from_environment(self, monkeypatch):
        calls = []
        monkeypatch.setattr(main.uvicorn, "run", lambda *a, **kw: calls.append(kw))
        monkeypatch.setenv("PIEZOSIM_RELOAD", "true")
        main.get_settings.cache_clear()
        try:
            main.run()
        finally:
            main.get_settings.cache_clear()
        assert calls[0]["reload"] is True
