"""Tests for API routes."""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from groundwork.errors import NoSourcesFoundError
from groundwork.models.sources import GroundingSource, Provider
from groundwork.services import streaming


@pytest.fixture
def app():
    from groundwork.main import app
    yield app


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient
    return TestClient(app)


def _source() -> GroundingSource:
    return GroundingSource(
        uri="https://pubmed.ncbi.nlm.nih.gov/1/",
        title="Paper",
        origin=Provider.PUBMED,
        content="Summary.",
        reliability=0.9,
        reliability_justification="Peer reviewed.",
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "groundwork"


def test_list_providers(client):
    response = client.get("/api/providers")
    assert response.status_code == 200
    ids = [p["id"] for p in response.json()["providers"]]
    assert ids == [p.value for p in Provider]


def test_post_sources_returns_scored_sources(client):
    pipeline = MagicMock()
    pipeline.discover = AsyncMock(return_value=[_source()])

    with patch("groundwork.api.deps.build_pipeline", return_value=pipeline) as build:
        response = client.post("/api/sources", json={"topic": "senolytics", "providers": ["pubmed"]})

    assert response.status_code == 200
    body = response.json()
    assert body["topic"] == "senolytics"
    assert body["sources"][0]["reliabilityJustification"] == "Peer reviewed."
    build.assert_called_once_with(None)
    assert pipeline.discover.await_args.kwargs["providers"] == [Provider.PUBMED]


def test_post_sources_reports_checkpoint_failure(client):
    pipeline = MagicMock()
    pipeline.discover = AsyncMock(side_effect=NoSourcesFoundError("No sources found."))

    with patch("groundwork.api.deps.build_pipeline", return_value=pipeline):
        response = client.post("/api/sources", json={"topic": "senolytics"})

    assert response.status_code == 422
    assert response.json()["detail"] == {"checkpoint": "search", "message": "No sources found."}


def test_post_sources_rejects_empty_topic(client):
    assert client.post("/api/sources", json={"topic": ""}).status_code == 422


def test_post_sources_rejects_whitespace_topic_before_running(client):
    with patch("groundwork.api.deps.build_pipeline") as build:
        response = client.post("/api/sources", json={"topic": "   \t "})

    assert response.status_code == 422
    build.assert_not_called()


def test_stream_sources_rejects_whitespace_topic(client):
    with patch("groundwork.api.deps.build_pipeline") as build:
        response = client.get("/api/sources/stream", params={"topic": "   "})

    assert response.status_code == 422
    build.assert_not_called()


def test_stream_sources_emits_progress_then_result(client):
    async def fake_discover(topic, *, providers=None, progress=None, **_kwargs):
        progress(streaming.stage_started("search", query=topic))
        sources = [_source()]
        progress(streaming.sources_ready([s.model_dump(mode="json", by_alias=True) for s in sources], runtime_ms=5))
        return sources

    pipeline = MagicMock()
    pipeline.discover = fake_discover

    with patch("groundwork.api.deps.build_pipeline", return_value=pipeline):
        with client.stream("GET", "/api/sources/stream", params={"topic": "senolytics"}) as response:
            assert response.status_code == 200
            body = "".join(response.iter_text())

    events = [line.split(":", 1)[1].strip() for line in body.splitlines() if line.startswith("event:")]
    assert events == ["stage_started", "sources_ready"]
    payloads = [json.loads(line.split(":", 1)[1]) for line in body.splitlines() if line.startswith("data:")]
    assert payloads[-1]["sources"][0]["uri"] == "https://pubmed.ncbi.nlm.nih.gov/1/"


def test_pipeline_event_formats_as_sse_frame():
    frame = streaming.error("No sources found.", checkpoint="search").format()
    assert frame.startswith("event: error\ndata: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame.split("data: ", 1)[1]) == {"message": "No sources found.", "checkpoint": "search"}
