from __future__ import annotations

import logging
import random
from datetime import datetime, timezone

import anyio
import pytest

from smartstudy.ai_generator import AIGenerator
from smartstudy.errors import MathModeRequiresAI
from smartstudy.orchestrator import OutcomeKind, StudyOrchestrator
from smartstudy.rule_based import RuleBasedGenerator
from smartstudy.schemas import MathPayload, SourceAttribution, SourceDocument, StudyPackage
from smartstudy.settings import Settings


def _source() -> SourceDocument:
    return SourceDocument(
        title="Photosynthesis",
        extract="Light is absorbed. Sugar is made. Oxygen is released. Plants grow.",
        attribution=SourceAttribution(
            source="Wikipedia",
            url="https://en.wikipedia.org/wiki/Photosynthesis",
            license="https://creativecommons.org/licenses/by-sa/3.0/",
            retrieved_at=datetime.now(timezone.utc),
        ),
    )


class _FailingAI:
    available = True

    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, topic, mode, source):
        self.calls += 1
        raise RuntimeError("quota exceeded for key sk-secret-detail")


class _MathAI:
    available = True

    async def generate(self, topic, mode, source):
        return StudyPackage(
            topic="Photosynthesis",
            mode=mode,
            generated_at=datetime.now(timezone.utc),
            payload=MathPayload(question="2 + 4?", answer="6", explanation="Add them."),
        )


class _UnconfiguredAI:
    available = False

    async def generate(self, topic, mode, source):
        raise AssertionError("AI tier must be skipped without a credential")


def _run(orchestrator: StudyOrchestrator, mode: str = "standard"):
    return anyio.run(orchestrator.generate, "photosynthesis", mode, _source())


def test_ai_success_is_returned_directly() -> None:
    outcome = _run(StudyOrchestrator(ai=_MathAI(), rule_based=RuleBasedGenerator()), mode="math")
    assert outcome.kind is OutcomeKind.OK
    assert outcome.tier == "ai"
    assert outcome.unwrap().payload.answer == "6"


def test_ai_failure_falls_back_to_rule_based_output(caplog) -> None:
    ai = _FailingAI()
    orchestrator = StudyOrchestrator(ai=ai, rule_based=RuleBasedGenerator(random.Random(5)))
    expected = RuleBasedGenerator(random.Random(5)).generate("photosynthesis", "standard", _source())

    with caplog.at_level(logging.WARNING, logger="smartstudy.orchestrator"):
        outcome = _run(orchestrator)

    assert ai.calls == 1
    assert outcome.ok
    assert outcome.tier == "rule_based"
    assert outcome.error is None
    assert outcome.package.payload == expected.payload
    assert outcome.package.topic == expected.topic
    assert "sk-secret-detail" not in outcome.package.model_dump_json()
    assert any("ai_tier_failed" in r.getMessage() for r in caplog.records)


def test_unconfigured_ai_is_skipped() -> None:
    outcome = _run(StudyOrchestrator(ai=_UnconfiguredAI(), rule_based=RuleBasedGenerator()))
    assert outcome.ok
    assert outcome.tier == "rule_based"


def test_real_generator_without_credential_is_skipped(monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    ai = AIGenerator(Settings(ai_provider="gemini", gemini_api_key=""))
    outcome = _run(StudyOrchestrator(ai=ai, rule_based=RuleBasedGenerator()))
    assert outcome.tier == "rule_based"
    assert len(outcome.unwrap().payload.quiz) == 3


def test_no_ai_tier_at_all() -> None:
    outcome = _run(StudyOrchestrator(ai=None, rule_based=RuleBasedGenerator()))
    assert outcome.ok


def test_math_without_ai_is_terminal() -> None:
    outcome = _run(StudyOrchestrator(ai=None, rule_based=RuleBasedGenerator()), mode="math")
    assert outcome.kind is OutcomeKind.RULE_BASED_FAILED
    assert outcome.error_code == "MATH_MODE_REQUIRES_AI"
    assert outcome.package is None
    with pytest.raises(MathModeRequiresAI):
        outcome.unwrap()


def test_math_with_failing_ai_is_not_retried() -> None:
    ai = _FailingAI()
    outcome = _run(StudyOrchestrator(ai=ai, rule_based=RuleBasedGenerator()), mode="math")
    assert ai.calls == 1
    assert outcome.kind is OutcomeKind.RULE_BASED_FAILED
    assert outcome.error_code == "MATH_MODE_REQUIRES_AI"


def test_try_ai_reports_failure_as_a_tagged_outcome() -> None:
    orchestrator = StudyOrchestrator(ai=_FailingAI(), rule_based=RuleBasedGenerator())
    outcome = anyio.run(orchestrator.try_ai, "photosynthesis", "standard", _source())
    assert outcome.kind is OutcomeKind.AI_FAILED
    assert outcome.error_code == "UNEXPECTED"
    assert isinstance(outcome.error, RuntimeError)
