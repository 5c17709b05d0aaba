from __future__ import annotations

import json
import random
from datetime import datetime, timezone
from typing import Optional

from fastapi.testclient import TestClient

from smartstudy import main
from smartstudy.ai_generator import AIGenerator
from smartstudy.errors import UpstreamError
from smartstudy.orchestrator import StudyOrchestrator
from smartstudy.providers import ModelClientCache
from smartstudy.rule_based import RuleBasedGenerator
from smartstudy.schemas import SourceAttribution, SourceDocument
from smartstudy.settings import Settings

PHOTOSYNTHESIS = SourceDocument(
    title="Photosynthesis",
    description="Biological process",
    extract=(
        "Photosynthesis is a system of biological processes by which organisms convert light into chemical energy. "
        "Most plants, algae and cyanobacteria perform it. "
        "Oxygen is released as a waste product. "
        "The process usually takes place in chloroplasts."
    ),
    content_url="https://en.wikipedia.org/wiki/Photosynthesis",
    attribution=SourceAttribution(
        source="Wikipedia",
        url="https://en.wikipedia.org/wiki/Photosynthesis",
        license="https://creativecommons.org/licenses/by-sa/3.0/",
        retrieved_at=datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
    ),
)


def _unconfigured_ai() -> AIGenerator:
    return AIGenerator(Settings(ai_provider="gemini", gemini_api_key=""))


def _client(monkeypatch, source: Optional[SourceDocument], orchestrator=None, fetch_error=None) -> TestClient:
    calls = []

    async def fake_fetch(topic: str):
        calls.append(topic)
        if fetch_error is not None:
            raise fetch_error
        return source

    monkeypatch.setattr(main, "fetch_topic_summary", fake_fetch)
    monkeypatch.setattr(
        main,
        "orchestrator",
        orchestrator or StudyOrchestrator(ai=_unconfigured_ai(), rule_based=RuleBasedGenerator(random.Random(3))),
    )
    return TestClient(main.app)


def test_health(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_standard_study_package_end_to_end(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    resp = client.post("/study", json={"topic": "Photosynthesis", "mode": "standard"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["topic"] == "Photosynthesis"
    assert body["mode"] == "standard"
    assert body["generatedAt"].endswith("Z")
    assert len(body["summary"]) == 3
    assert len(body["quiz"]) == 3
    for q in body["quiz"]:
        assert len(q["options"]) == 4
        assert 0 <= q["correctIndex"] < 4
        assert q["prompt"]
        assert q["explanation"]
    assert isinstance(body["studyTip"], str) and body["studyTip"]
    assert body["sourceAttribution"]["source"] == "Wikipedia"
    assert body["sourceAttribution"]["url"] == "https://en.wikipedia.org/wiki/Photosynthesis"
    assert body["sourceAttribution"]["retrievedAt"].startswith("2026-10-19T12:00:00")
    assert "payload" not in body


def test_mode_defaults_to_standard(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    resp = client.post("/study", json={"topic": "photosynthesis"})
    assert resp.status_code == 200
    assert resp.json()["mode"] == "standard"


def test_ai_tier_output_is_served_when_configured(monkeypatch) -> None:
    reply = {
        "summary": ["One.", "Two.", "Three."],
        "quiz": [
            {"prompt": f"Q{n}?", "options": ["a", "b", "c", "d"], "correctIndex": 2, "explanation": "c is right."}
            for n in (1, 2, 3)
        ],
        "studyTip": "Teach it.",
    }

    class _Client:
        provider = "gemini"
        model = "fake"

        def generate(self, prompt: str):
            return {"text": "```json\n" + json.dumps(reply) + "\n```"}

    ai = AIGenerator(
        Settings(ai_provider="gemini", gemini_api_key="k"),
        ModelClientCache(factory=lambda p, k, m: _Client()),
    )
    client = _client(monkeypatch, PHOTOSYNTHESIS, StudyOrchestrator(ai=ai, rule_based=RuleBasedGenerator()))
    body = client.post("/study", json={"topic": "Photosynthesis"}).json()

    assert body["summary"] == ["One.", "Two.", "Three."]
    assert body["studyTip"] == "Teach it."
    assert body["topic"] == "Photosynthesis"


def test_unknown_topic_is_404(monkeypatch) -> None:
    client = _client(monkeypatch, None)
    resp = client.post("/study", json={"topic": "XyZ123AbC999InvalidTopic", "mode": "standard"})
    assert resp.status_code == 404
    assert "could not find any information" in resp.json()["error"]


def test_math_without_credential_is_503(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    resp = client.post("/study", json={"topic": "Photosynthesis", "mode": "math"})
    assert resp.status_code == 503
    assert "Math mode requires" in resp.json()["error"]


def test_upstream_failure_is_generic_500(monkeypatch) -> None:
    client = _client(monkeypatch, None, fetch_error=UpstreamError("Wikipedia exploded with secret", status_code=502))
    resp = client.post("/study", json={"topic": "Photosynthesis"})
    assert resp.status_code == 500
    assert resp.json() == {"error": main.GENERIC_FAILURE}
    assert "secret" not in resp.text


def test_unexpected_failure_is_generic_500(monkeypatch) -> None:
    class _Broken:
        async def generate(self, topic, mode, source):
            raise ValueError("internal detail")

    client = _client(monkeypatch, PHOTOSYNTHESIS, orchestrator=_Broken())
    resp = client.post("/study", json={"topic": "Photosynthesis"})
    assert resp.status_code == 500
    assert "internal detail" not in resp.text


def test_invalid_requests_are_400(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    for payload in ({}, {"topic": "   "}, {"topic": 42}, {"topic": "Photosynthesis", "mode": "poetry"}):
        resp = client.post("/study", json=payload)
        assert resp.status_code == 400, payload
        assert resp.json()["error"] == main.INVALID_REQUEST


def test_cors_preflight_allows_browser_origin(monkeypatch) -> None:
    client = _client(monkeypatch, PHOTOSYNTHESIS)
    resp = client.options(
        "/study",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "POST"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] in ("http://localhost:5173", "*")
