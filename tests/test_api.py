"""
Rhythm Chart Generator - API Tests

Tests for the JSON endpoints in src/routes/api.py using FastAPI's
TestClient. Validates:
- Health check
- Chart generation: seeded determinism, structure handling, error mapping
- Onset times bounded to the song, duration bounded by MAX_SONG_DURATION
- Chart rating for client-supplied notes
- Difficulty parameter lookup by level or tier name
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.main import create_app


@pytest.fixture
def client():
    return TestClient(create_app())


@pytest.fixture
def onset_payload(mock_onset_stream):
    return [o.to_dict() for o in mock_onset_stream]


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert "version" in body


class TestGenerateChart:
    def test_generate_default_structure(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": onset_payload, "duration": 60.0, "seed": 1},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["noteCount"] == len(body["notes"]) > 0
        assert body["difficultyRating"] >= 1.0
        assert body["laneCount"] == 4

    def test_seeded_requests_match(self, client, onset_payload, structure_payload):
        request = {
            "onsets": onset_payload,
            "duration": 60.0,
            "structure": structure_payload,
            "difficulty": 14,
            "lane_count": 6,
            "play_style": "MULTI",
            "seed": 99,
        }
        first = client.post("/api/charts/generate", json=request).json()
        second = client.post("/api/charts/generate", json=request).json()
        assert first["notes"] == second["notes"]
        assert all(0 <= n["lane"] < 6 for n in first["notes"])

    def test_tier_name_difficulty(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": onset_payload, "duration": 60.0, "difficulty": "TITAN", "seed": 3},
        )
        assert resp.status_code == 200
        assert resp.json()["difficultyLevel"] == 20.0

    def test_no_features_is_422(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate",
            json={
                "onsets": onset_payload,
                "duration": 60.0,
                "features": {"normal": False, "holds": False, "catch": False},
            },
        )
        assert resp.status_code == 422
        assert "No notes generated" in resp.json()["detail"]

    def test_bad_lane_count_is_400(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": onset_payload, "duration": 60.0, "lane_count": 5},
        )
        assert resp.status_code == 400

    def test_bad_play_style_is_400(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": onset_payload, "duration": 60.0, "play_style": "FEET"},
        )
        assert resp.status_code == 400

    def test_energy_out_of_range_rejected(self, client):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": [{"time": 0.0, "energy": 2.0}], "duration": 10.0},
        )
        assert resp.status_code == 422

    def test_zero_duration_rejected(self, client, onset_payload):
        resp = client.post(
            "/api/charts/generate", json={"onsets": onset_payload, "duration": 0}
        )
        assert resp.status_code == 422

    def test_negative_onset_time_rejected(self, client):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": [{"time": -0.5, "energy": 0.5}], "duration": 10.0},
        )
        assert resp.status_code == 422

    def test_onset_after_song_end_rejected(self, client):
        resp = client.post(
            "/api/charts/generate",
            json={
                "onsets": [{"time": 1.0, "energy": 0.5}, {"time": 2e7, "energy": 0.5}],
                "duration": 10.0,
            },
        )
        assert resp.status_code == 422

    def test_overlong_duration_rejected(self, client):
        resp = client.post(
            "/api/charts/generate",
            json={"onsets": [{"time": 1.0, "energy": 0.5}], "duration": 2e7},
        )
        assert resp.status_code == 422


class TestRateChart:
    def test_rate_notes(self, client):
        notes = [{"time": 0.1 * i, "lane": i % 4} for i in range(1, 40)]
        resp = client.post("/api/charts/rate", json={"notes": notes, "duration": 4.0})
        assert resp.status_code == 200
        body = resp.json()
        assert body["rating"] >= 1.0
        assert body["note_count"] == 39

    def test_rate_empty(self, client):
        resp = client.post("/api/charts/rate", json={"notes": [], "duration": 4.0})
        assert resp.json()["rating"] == 0.0

    def test_rate_invalid_note(self, client):
        resp = client.post(
            "/api/charts/rate", json={"notes": [{"lane": 1}], "duration": 4.0}
        )
        assert resp.status_code == 400

    def test_rate_far_note_time(self, client):
        resp = client.post(
            "/api/charts/rate", json={"notes": [{"time": 2e7, "lane": 0}], "duration": 1.0}
        )
        assert resp.status_code == 200
        assert resp.json()["rating"] == 1.0


class TestDifficultyLookup:
    def test_numeric_level(self, client):
        body = client.get("/api/difficulty/1").json()
        assert body["level"] == 1.0
        assert body["max_polyphony"] == 1
        assert body["min_gap"] == pytest.approx(0.4)

    def test_tier_name(self, client):
        body = client.get("/api/difficulty/expert").json()
        assert body["level"] == 16.0
        assert body["max_polyphony"] == 4
