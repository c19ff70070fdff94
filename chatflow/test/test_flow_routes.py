import pytest
from fastapi.testclient import TestClient

from chatflow.server.main import app
from chatflow.server.notifications.notification_types import (
    CONNECTION_LIMIT_TITLE,
    SAVE_FAILED_TITLE,
    SAVE_OK_TITLE,
)


class TestFlowRoutes:

    @pytest.fixture
    def client(self):
        client = TestClient(app)
        client.delete("/api/flow")
        yield client
        client.delete("/api/flow")

    def place(self, client, x=0, y=0):
        response = client.post("/api/flow/nodes", json={"type": "textNode", "position": {"x": x, "y": y}})
        assert response.status_code == 201
        return response.json()

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_node_types_catalog(self, client):
        catalog = client.get("/api/node-types").json()
        text = next(t for t in catalog if t["type"] == "textNode")
        assert text["title"] == "Message"
        assert text["defaultData"] == {"label": "New message"}
        assert sorted(h["type"] for h in text["handles"]) == ["source", "target"]

    def test_place_node(self, client):
        node = self.place(client, 120, 80)
        assert node["id"].startswith("textNode_")
        assert node["data"] == {"label": "New message"}
        assert node["position"] == {"x": 120, "y": 80}
        assert client.get("/api/flow").json()["nodes"] == [node]

    def test_place_unknown_type(self, client):
        response = client.post("/api/flow/nodes", json={"type": "gifNode", "position": {"x": 0, "y": 0}})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "UNKNOWN_NODE_TYPE"

    def test_update_node_data(self, client):
        node = self.place(client)
        response = client.patch(f"/api/flow/nodes/{node['id']}/data", json={"label": "Hi there"})
        assert response.status_code == 200
        assert response.json()["data"] == {"label": "Hi there"}

        assert client.patch("/api/flow/nodes/missing/data", json={"label": "x"}).status_code == 404
        assert client.patch(f"/api/flow/nodes/{node['id']}/data", json={"label": None}).status_code == 422

    def test_connect_and_limit(self, client):
        a, b, c = self.place(client), self.place(client), self.place(client)

        response = client.post("/api/flow/connect", json={"source": a["id"], "target": b["id"],
                                                           "sourceHandle": "h1", "targetHandle": None})
        assert response.status_code == 201
        assert response.json()["sourceHandle"] == "h1"

        rejected = client.post("/api/flow/connect", json={"source": a["id"], "target": c["id"], "sourceHandle": "h1"})
        assert rejected.status_code == 409
        detail = rejected.json()["detail"]
        assert detail["code"] == "CONNECTION_LIMIT_EXCEEDED"
        assert detail["notification"]["title"] == CONNECTION_LIMIT_TITLE
        assert len(client.get("/api/flow").json()["edges"]) == 1

        accepted = client.post("/api/flow/connect", json={"source": a["id"], "target": c["id"], "sourceHandle": "h2"})
        assert accepted.status_code == 201
        assert len(client.get("/api/flow").json()["edges"]) == 2

    def test_connect_to_missing_node(self, client):
        a = self.place(client)
        response = client.post("/api/flow/connect", json={"source": a["id"], "target": None})
        assert response.status_code == 404

    def test_node_changes_remove_cascades(self, client):
        a, b = self.place(client), self.place(client)
        client.post("/api/flow/connect", json={"source": a["id"], "target": b["id"]})

        response = client.post("/api/flow/node-changes", json={"changes": [
            {"type": "position", "id": a["id"], "position": {"x": 5, "y": 6}, "dragging": True},
            {"type": "position", "id": a["id"], "dragging": False},
            {"type": "dimensions", "id": a["id"]},
            {"type": "remove", "id": b["id"]},
        ]})

        assert response.status_code == 200
        body = response.json()
        assert body["applied"] == 2
        assert [n["id"] for n in body["nodes"]] == [a["id"]]
        assert body["nodes"][0]["position"] == {"x": 5, "y": 6}
        assert body["edges"] == []

    def test_edge_changes(self, client):
        a, b = self.place(client), self.place(client)
        edge = client.post("/api/flow/connect", json={"source": a["id"], "target": b["id"]}).json()

        body = client.post("/api/flow/edge-changes", json={"changes": [
            {"type": "select", "id": edge["id"], "selected": True},
        ]}).json()
        assert body["edges"][0]["selected"] is True

        body = client.post("/api/flow/edge-changes", json={"changes": [{"type": "remove", "id": edge["id"]}]}).json()
        assert body["edges"] == []
        assert len(body["nodes"]) == 2

    def test_save_success(self, client):
        a, b = self.place(client), self.place(client)
        client.post("/api/flow/connect", json={"source": a["id"], "target": b["id"]})

        response = client.post("/api/flow/save")
        assert response.status_code == 200
        body = response.json()
        assert body["validation"]["valid"] is True
        assert body["notification"]["title"] == SAVE_OK_TITLE
        assert len(body["flow"]["nodes"]) == 2

    def test_save_empty_flow(self, client):
        response = client.post("/api/flow/save")
        assert response.status_code == 200
        assert response.json()["validation"] == {
            "checked": True, "valid": True, "rule": None, "code": None, "offendingNodeIds": [],
        }

    def test_save_failure(self, client):
        a, b = self.place(client), self.place(client)

        response = client.post("/api/flow/save")
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "FLOW_VALIDATION_FAILED"
        assert detail["validation"]["offendingNodeIds"] == [a["id"], b["id"]]
        assert detail["notification"]["title"] == SAVE_FAILED_TITLE

    def test_status(self, client):
        status = client.get("/api/flow/status").json()
        assert status["status"] == "hidden"
        assert status["lastValidation"]["checked"] is False

        a, b = self.place(client), self.place(client)
        assert client.get("/api/flow/status").json()["status"] == "invalid"

        client.post("/api/flow/connect", json={"source": a["id"], "target": b["id"]})
        client.post("/api/flow/save")
        status = client.get("/api/flow/status").json()
        assert status["status"] == "valid"
        assert status["startNodeIds"] == [a["id"]]
        assert status["lastValidation"]["valid"] is True

    def test_selection(self, client):
        node = self.place(client)
        assert client.get("/api/flow/selection").json() == {"node": None}

        response = client.put("/api/flow/selection", json={"nodeId": node["id"]})
        assert response.status_code == 200
        assert client.get("/api/flow/selection").json()["node"]["id"] == node["id"]

        assert client.put("/api/flow/selection", json={"nodeId": "missing"}).status_code == 404

        assert client.delete("/api/flow/selection").status_code == 204
        assert client.get("/api/flow/selection").json() == {"node": None}
