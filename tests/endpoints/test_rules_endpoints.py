from __future__ import annotations

import copy
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from query_builder import singletons
from query_builder.api.dependencies import get_builder_config, get_builder_settings
from query_builder.config import BuilderSettings
from query_builder.main import app
from tests.helpers import SAMPLE_FILTERS, SAMPLE_RULES


@pytest.fixture
def document() -> Dict[str, Any]:
    return {"filters": copy.deepcopy(SAMPLE_FILTERS)}


@pytest.fixture
def client(document: Dict[str, Any]) -> Iterator[TestClient]:
    app.dependency_overrides[get_builder_config] = lambda: document
    app.dependency_overrides[get_builder_settings] = lambda: BuilderSettings()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class TestFiltersRoutes:
    def test_list_filters(self, client: TestClient) -> None:
        response = client.get("/filters")
        assert response.status_code == 200
        body = response.json()
        assert [f["id"] for f in body] == [f["id"] for f in SAMPLE_FILTERS]
        assert body[1]["input"] == "number"

    def test_filter_operators(self, client: TestClient) -> None:
        response = client.get("/filters/category/operators")
        assert response.status_code == 200
        assert [op["type"] for op in response.json()] == ["not_equal", "equal"]

    def test_unknown_filter(self, client: TestClient) -> None:
        response = client.get("/filters/ghost/operators")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "FILTER_NOT_FOUND"

    def test_broken_config(self, client: TestClient, document: Dict[str, Any]) -> None:
        document["filters"].append({"id": "name"})
        response = client.get("/filters")
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "BUILDER_CONFIG_INVALID"
        assert "already defined" in detail["context"]["reason"]


class TestRulesRoutes:
    def test_validate(self, client: TestClient) -> None:
        response = client.post("/rules/validate", json={"rules": SAMPLE_RULES})
        assert response.status_code == 200
        assert response.json() == {"valid": True, "errors": []}

    def test_validate_with_errors(self, client: TestClient) -> None:
        payload = {"rules": [{"id": "age", "operator": "between", "value": [70, 20]}]}
        response = client.post("/rules/validate", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is False
        assert body["errors"][0]["error"] == ["integer_between_invalid", 70, 20]

    def test_validate_unknown_operator(self, client: TestClient) -> None:
        payload = {"rules": [{"id": "age", "operator": "like", "value": 1}]}
        response = client.post("/rules/validate", json=payload)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "RULES_INVALID"
        assert "like" in detail["context"]["reason"]

    def test_normalize(self, client: TestClient) -> None:
        response = client.post(
            "/rules/normalize",
            json={"rules": SAMPLE_RULES, "get_flags": "all"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["valid"] is True
        assert body["rules"][0]["field"] == "age"
        assert body["flags"]["no_add_rule"] is False

    def test_normalize_invalid(self, client: TestClient) -> None:
        payload = {"rules": [{"id": "price", "operator": "equal", "value": "x"}]}
        response = client.post("/rules/normalize", json=payload)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "RULES_NOT_VALID"
        assert detail["context"]["errors"][0]["error"] == ["number_nan"]

        allowed = client.post(
            "/rules/normalize", json={**payload, "allow_invalid": True}
        )
        assert allowed.status_code == 200
        assert allowed.json()["valid"] is False

    def test_request_validation(self, client: TestClient) -> None:
        response = client.post("/rules/normalize", json={"get_flags": "some"})
        assert response.status_code == 422


def test_missing_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("", encoding="utf-8")
    monkeypatch.setenv("QB_ENV_FILE", str(env_file))
    monkeypatch.delenv("QB_CONFIG_PATH", raising=False)
    singletons.reset()
    try:
        response = TestClient(app).get("/filters")
    finally:
        singletons.reset()
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "CONFIG_INVALID"
