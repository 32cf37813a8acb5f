"""Tests for knowledge graph endpoints."""

import pytest

from thotnet.db import kg_repository


@pytest.fixture
def entities(db):
    openai = kg_repository.insert_entity(db, "OpenAI", "organization", "AI lab", ["Open AI"])
    gpt4 = kg_repository.insert_entity(db, "GPT-4", "model", "Large language model")
    transformer = kg_repository.insert_entity(db, "Transformer", "concept")
    kg_repository.insert_relation(db, openai.id, gpt4.id, "developed", 3.0)
    kg_repository.insert_relation(db, gpt4.id, transformer.id, "based_on", 0.5)
    return {"openai": openai, "gpt4": gpt4, "transformer": transformer}


class TestEntities:
    """Tests for /api/kg/entities."""

    def test_search_by_alias(self, client, entities):
        response = client.get("/api/kg/entities", params={"q": "open ai"})
        body = response.json()
        assert [e["name"] for e in body["data"]] == ["OpenAI"]
        assert body["data"][0]["aliases"] == ["Open AI"]
        assert body["pagination"]["total"] == 1

    def test_search_folds_accented_capitals(self, client, db):
        kg_repository.insert_entity(db, "Ñandú Labs", "organization", aliases=["ÉLITE IA"])

        by_name = client.get("/api/kg/entities", params={"q": "ñandú"}).json()["data"]
        by_alias = client.get("/api/kg/entities", params={"q": "élite"}).json()["data"]

        assert [e["name"] for e in by_name] == ["Ñandú Labs"]
        assert [e["name"] for e in by_alias] == ["Ñandú Labs"]

    def test_filter_by_type(self, client, entities):
        data = client.get("/api/kg/entities", params={"type": "model"}).json()["data"]
        assert [e["name"] for e in data] == ["GPT-4"]

    def test_fetch_id_list(self, client, entities):
        ids = f"{entities['openai'].id}, {entities['transformer'].id}"
        data = client.get("/api/kg/entities", params={"ids": ids}).json()["data"]
        assert [e["name"] for e in data] == ["OpenAI", "Transformer"]

    def test_get_one(self, client, entities):
        response = client.get(f"/api/kg/entities/{entities['gpt4'].id}")
        assert response.json()["data"]["type"] == "model"
        assert client.get("/api/kg/entities/missing").status_code == 404

    def test_create(self, client, auth_headers):
        response = client.post(
            "/api/kg/entities",
            json={"name": " Anthropic ", "type": "Organization", "aliases": ["", "Anthropic PBC"]},
            headers=auth_headers,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Anthropic"
        assert data["type"] == "organization"
        assert data["aliases"] == ["Anthropic PBC"]

    def test_create_requires_auth(self, client):
        response = client.post("/api/kg/entities", json={"name": "X", "type": "concept"})
        assert response.status_code == 401


class TestRelations:
    """Tests for /api/kg/relations and /api/kg/graph."""

    def test_list_by_source(self, client, entities):
        data = client.get("/api/kg/relations", params={"source_id": entities["openai"].id}).json()["data"]
        assert [r["rel_type"] for r in data] == ["developed"]

    def test_create(self, client, auth_headers, entities):
        response = client.post(
            "/api/kg/relations",
            json={"sourceId": entities["openai"].id, "targetId": entities["transformer"].id, "relType": "uses"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        assert response.json()["data"]["weight"] == 1.0

    def test_duplicate_conflicts(self, client, auth_headers, entities):
        response = client.post(
            "/api/kg/relations",
            json={"sourceId": entities["openai"].id, "targetId": entities["gpt4"].id, "relType": "developed"},
            headers=auth_headers,
        )
        assert response.status_code == 409

    def test_unknown_endpoint(self, client, auth_headers, entities):
        response = client.post(
            "/api/kg/relations",
            json={"sourceId": entities["openai"].id, "targetId": "ghost", "relType": "uses"},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_graph_min_weight(self, client, entities):
        data = client.get("/api/kg/graph", params={"minWeight": 1}).json()["data"]
        assert len(data["entities"]) == 3
        assert data["entities"][0]["name"] == "GPT-4"
        assert [r["rel_type"] for r in data["relations"]] == ["developed"]
