"""
API tests with the call log repository swapped for an in-memory fake.
"""

import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from backend.dependencies import get_average_mode, get_excluded_users, get_repository, get_thresholds
from backend.exceptions import DataSourceError
from backend.main import app
from lag_analysis import Call
from lag_analysis.models import LagThresholds

from conftest import assistant_turn, user_turn


def _transcript(*items):
    return json.dumps({"items": list(items)})


CALL_ROWS = [
    {
        "call_id": "c2",
        "user_id": "u2",
        "initiated_at": datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc),
        "duration_seconds": 95,
        "language": "en",
        "is_user_initiated": False,
        "is_new_user": False,
        "transcript": _transcript(
            user_turn("u1", transcription_delay=0.4),
            assistant_turn("a1", llm_node_ttft=4.0, tts_node_ttfb=0.3, e2e_latency=6.5),
        ),
    },
    {
        "call_id": "c1",
        "user_id": "u1",
        "initiated_at": datetime(2025, 6, 10, 9, 0, tzinfo=timezone.utc),
        "duration_seconds": 12,
        "language": "de",
        "is_user_initiated": True,
        "is_new_user": True,
        "transcript": _transcript(assistant_turn("a1", e2e_latency=1.1)),
    },
]


class FakeRepository:
    def __init__(self, rows=None, fail=False):
        self.rows = rows if rows is not None else CALL_ROWS
        self.fail = fail
        self.requests = []

    async def fetch_calls_for_lag(self, start, end, exclude_users=None, limit=500):
        if self.fail:
            raise DataSourceError("connection refused")
        self.requests.append((start, end, exclude_users))
        return [Call.model_validate(row) for row in self.rows]

    async def get_daily_metrics(self, start, end, exclude_users=None):
        return [{"date": "2025-06-10", "total_calls": len(self.rows), "unique_users": 2}]

    async def get_summary(self, start, end, exclude_users=None):
        return {"total_calls": len(self.rows), "unique_users": 2}

    async def list_calls(self, day, call_type, exclude_users=None, limit=100):
        return [dict(row) for row in self.rows][:limit], len(self.rows)

    async def get_call(self, call_id):
        return next((dict(row) for row in self.rows if row["call_id"] == call_id), None)


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_thresholds] = lambda: LagThresholds()
    app.dependency_overrides[get_average_mode] = lambda: "biased"
    app.dependency_overrides[get_excluded_users] = lambda: []
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestLagEndpoint:
    """GET /analytics/lag"""

    def test_report_shape(self, client):
        response = client.get("/analytics/lag", params={"start_date": "2025-06-01", "end_date": "2025-06-10"})
        body = response.json()

        assert response.status_code == 200
        assert body["dateRange"] == {"startDate": "2025-06-01", "endDate": "2025-06-10"}
        assert body["callsAnalyzed"] == 2
        assert [e["lag_type"] for e in body["lagEpisodes"]] == ["llm_ttft", "e2e_latency"]
        assert body["lagEpisodes"][1]["severity"] == "critical"
        assert set(body["languageBreakdown"]) == {"en", "de"}

        day = body["dailyStats"][0]
        assert day["date"] == "2025-06-10"
        assert day["high_latency_count"] == 1
        assert day["dropoff_count"] == 1
        assert day["max_e2e_latency"] == 6.5

    def test_default_range_is_last_week(self, client, repository):
        client.get("/analytics/lag")
        start, end, _ = repository.requests[0]
        assert (end - start).days == 7

    def test_inverted_range_rejected(self, client):
        response = client.get("/analytics/lag", params={"start_date": "2025-06-10", "end_date": "2025-06-01"})
        assert response.status_code == 400

    def test_bad_date_is_validation_error(self, client):
        response = client.get("/analytics/lag", params={"start_date": "yesterday"})
        assert response.status_code == 422
        assert response.json()["error"] == "Validation failed"

    def test_empty_range(self, client, repository):
        repository.rows = []
        body = client.get("/analytics/lag").json()

        assert body["lagEpisodes"] == []
        assert body["dailyStats"] == []
        assert body["componentBreakdown"]["e2e"]["count"] == 0

    def test_data_source_failure_is_503(self):
        app.dependency_overrides[get_repository] = lambda: FakeRepository(fail=True)
        app.dependency_overrides[get_excluded_users] = lambda: []
        try:
            response = TestClient(app).get("/analytics/lag")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert "connection refused" not in response.text


def test_summary_endpoint(client):
    body = client.get("/analytics/summary", params={"start_date": "2025-06-10", "end_date": "2025-06-10"}).json()

    assert body["summary"]["total_calls"] == 2
    assert body["dailyMetrics"][0]["date"] == "2025-06-10"
    assert body["lagThresholds"]["e2e_latency"] == 4.0


class TestCallEndpoints:
    """GET /calls and /calls/{call_id}"""

    def test_listing_has_lag_columns(self, client):
        body = client.get("/calls", params={"date": "2025-06-10"}).json()
        rows = {row["call_id"]: row for row in body["calls"]}

        assert body["total"] == 2
        assert body["date"] == "2025-06-10"
        assert rows["c2"]["max_lag"] == 6.5
        assert rows["c2"]["lag_type"] == "e2e"
        assert rows["c2"]["lag_episodes"] == 2
        assert rows["c1"]["lag_episodes"] == 0
        assert "transcript" not in rows["c1"]

    def test_listing_limit_bounds(self, client):
        assert client.get("/calls", params={"limit": 0}).status_code == 422
        assert client.get("/calls", params={"limit": 501}).status_code == 422

    def test_call_detail(self, client):
        body = client.get("/calls/c2").json()

        assert body["transcript_status"] == "ok"
        assert [item["id"] for item in body["items"]] == ["u1", "a1"]
        assert body["turn_lag"][1]["severity"] == "critical"
        assert body["lag_summary"]["lag_episodes"] == 2

    def test_call_detail_with_broken_transcript(self, client, repository):
        repository.rows = [{"call_id": "c9", "transcript": "{oops"}]
        body = client.get("/calls/c9").json()

        assert body["transcript_status"] == "invalid_json"
        assert body["items"] == []
        assert body["turn_lag"] == []

    def test_unknown_call_is_404(self, client):
        response = client.get("/calls/missing")
        assert response.status_code == 404
        assert response.json()["error"] == "Call not found: missing"


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["endpoints"]["lag"] == "/analytics/lag"
