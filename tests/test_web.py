"""Tests for the HTTP service."""

import pytest
from fastapi.testclient import TestClient

from dmbinder.config import load_config
from dmbinder.web.app import create_app


@pytest.fixture
def client(settings_file):
    return TestClient(create_app(load_config(settings_file)))


class TestGeneratorEndpoints:
    def test_list_generators(self, client):
        response = client.get("/api/generators")

        assert response.status_code == 200
        assert sorted(response.json()) == ["npc", "tavern"]

    def test_generate(self, client):
        response = client.get("/api/generators/npc")

        assert response.status_code == 200
        assert response.text == "Aldo the Bold"

    def test_query_args_answer_switches(self, client):
        response = client.get("/api/generators/tavern", params={"mood": "angry", "generator": "greeting"})

        assert response.status_code == 200
        assert response.text == "We're closed."

    def test_seed_makes_output_repeatable(self, client):
        first = client.get("/api/generators/tavern", params={"mood": "calm", "seed": 3})
        second = client.get("/api/generators/tavern", params={"mood": "calm", "seed": 3})

        assert first.text == second.text == "The Gilded Goose\nWelcome, traveller."

    def test_unknown_generator_is_404(self, client):
        response = client.get("/api/generators/dragon")

        assert response.status_code == 404

    def test_unknown_named_generator_is_404(self, client):
        response = client.get("/api/generators/tavern", params={"generator": "cellar"})

        assert response.status_code == 404

    def test_unmatched_switch_is_422(self, client, log_events):
        response = client.get("/api/generators/tavern")

        assert response.status_code == 422
        assert any(event["event"] == "generation_failed" for event in log_events)


class TestMapEndpoint:
    LAYOUT = {
        "width": 2,
        "height": 1,
        "tiles": [0, 1],
        "doors": [{"tileId": 1, "doorType": "arch"}],
    }

    def test_renders_svg(self, client):
        response = client.post("/api/map", json=self.LAYOUT)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert response.text.startswith("<svg ")
        assert 'id="dungeonDoors" d="M24,24m24,0m0,11v2h4v-2z' in response.text

    def test_renders_html_with_style(self, client):
        response = client.post("/api/map", params={"html": "true", "style": "classic"}, json=self.LAYOUT)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.text.startswith("<html>")
        assert "#3A5FCD" in response.text

    def test_cell_size_override(self, client):
        response = client.post("/api/map", params={"cell_size": 10}, json=self.LAYOUT)

        assert 'width="40" height="30"' in response.text

    def test_invalid_layout_is_422(self, client):
        response = client.post("/api/map", json={"width": 2, "height": 1, "tiles": [7]})

        assert response.status_code == 422

    def test_door_outside_grid_is_422(self, client):
        layout = dict(self.LAYOUT, doors=[{"tileId": -1}, {"tileId": 1, "doorType": "arch"}])

        response = client.post("/api/map", json=layout)

        assert response.status_code == 422

    def test_too_small_cell_size_is_422(self, client):
        response = client.post("/api/map", params={"cell_size": 2}, json=self.LAYOUT)

        assert response.status_code == 422

    def test_unknown_style_is_422(self, client):
        response = client.post("/api/map", params={"style": "neon"}, json=self.LAYOUT)

        assert response.status_code == 422
