from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import anyio
from pydantic import ValidationError

from .errors import AIInvalidResponse, AIUnavailable
from .prompts import build_prompt
from .providers import ModelClientCache, extract_response_text
from .rule_based import display_topic
from .schemas import MATH, MathPayload, Mode, QuizQuestion, SourceDocument, StandardPayload, StudyPackage
from .settings import Settings, settings as default_settings

logger = logging.getLogger("smartstudy.ai")

SUMMARY_ITEMS = 3
QUIZ_QUESTIONS = 3
QUIZ_OPTIONS = 4

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------
def _safe_json_loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def parse_json_reply(raw_text: Optional[str]) -> Optional[Any]:
    """
    Tries, in order: a ```json fenced block, the whole text, then the span
    from the first "{" to the last "}". None if none of them parse.
    """
    if not raw_text:
        return None
    trimmed = raw_text.strip()

    fenced = _FENCED_JSON.search(trimmed)
    if fenced:
        parsed = _safe_json_loads(fenced.group(1))
        if parsed is not None:
            return parsed

    parsed = _safe_json_loads(trimmed)
    if parsed is not None:
        return parsed

    first = trimmed.find("{")
    last = trimmed.rfind("}")
    if first != -1 and last > first:
        return _safe_json_loads(trimmed[first : last + 1])
    return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def require_string(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise AIInvalidResponse(message)
    return value.strip()


def require_strings(value: Any, min_length: int, message: str) -> List[str]:
    if not isinstance(value, list) or len(value) < min_length:
        raise AIInvalidResponse(message)
    return [require_string(item, message) for item in value]


def normalize_quiz(raw_quiz: Any) -> List[QuizQuestion]:
    if not isinstance(raw_quiz, list) or len(raw_quiz) < QUIZ_QUESTIONS:
        raise AIInvalidResponse("AI response missing quiz questions.")

    questions: List[QuizQuestion] = []
    for n, raw in enumerate(raw_quiz[:QUIZ_QUESTIONS], start=1):
        if not isinstance(raw, dict):
            raise AIInvalidResponse(f"Quiz question {n} is not an object.")
        prompt = require_string(raw.get("prompt"), f"Quiz question {n} missing prompt.")
        options = require_strings(raw.get("options"), QUIZ_OPTIONS, f"Quiz question {n} missing options.")[:QUIZ_OPTIONS]

        correct_index = raw.get("correctIndex")
        # bool is an int subclass; reject it explicitly.
        if isinstance(correct_index, bool) or not isinstance(correct_index, int):
            raise AIInvalidResponse(f"Quiz question {n} has an invalid correctIndex.")
        if not 0 <= correct_index < len(options):
            raise AIInvalidResponse(f"Quiz question {n} has an invalid correctIndex.")

        explanation = require_string(raw.get("explanation"), f"Quiz question {n} missing explanation.")
        questions.append(
            QuizQuestion(prompt=prompt, options=options, correct_index=correct_index, explanation=explanation)
        )
    return questions


def validate_math_payload(data: Dict[str, Any]) -> MathPayload:
    return MathPayload(
        question=require_string(data.get("question"), "AI response missing math question."),
        answer=require_string(data.get("answer"), "AI response missing math answer."),
        explanation=require_string(data.get("explanation"), "AI response missing math explanation."),
    )


def validate_standard_payload(data: Dict[str, Any]) -> StandardPayload:
    summary = require_strings(data.get("summary"), SUMMARY_ITEMS, "AI response missing summary items.")
    quiz = normalize_quiz(data.get("quiz"))
    study_tip = require_string(data.get("studyTip"), "AI response missing studyTip.")
    return StandardPayload(summary=summary[:SUMMARY_ITEMS], quiz=quiz, study_tip=study_tip)


def build_package(topic: str, mode: Mode, source: Optional[SourceDocument], data: Any) -> StudyPackage:
    if not isinstance(data, dict):
        raise AIInvalidResponse("AI response JSON is not an object.")
    try:
        payload = validate_math_payload(data) if mode == MATH else validate_standard_payload(data)
        return StudyPackage(
            topic=display_topic(topic, source),
            mode=mode,
            generated_at=datetime.now(timezone.utc),
            payload=payload,
        )
    except ValidationError as e:
        raise AIInvalidResponse(f"AI response failed schema validation: {e.error_count()} error(s).") from e


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------
class AIGenerator:
    def __init__(self, settings: Optional[Settings] = None, clients: Optional[ModelClientCache] = None) -> None:
        self.settings = settings or default_settings
        self.clients = clients or ModelClientCache()

    @property
    def available(self) -> bool:
        return self.settings.ai_credential() is not None

    async def generate(self, topic: str, mode: Mode, source: Optional[SourceDocument]) -> StudyPackage:
        client = self.clients.from_settings(self.settings)
        if client is None:
            raise AIUnavailable(f"No API key configured for AI provider '{self.settings.ai_provider}'.")

        logger.info("ai_generate_start provider=%s model=%s mode=%s", client.provider, client.model, mode)
        prompt = build_prompt(mode, topic, source)
        response = await anyio.to_thread.run_sync(client.generate, prompt)

        data = parse_json_reply(extract_response_text(response))
        if data is None:
            raise AIInvalidResponse("AI response did not include valid JSON content.")

        package = build_package(topic, mode, source, data)
        logger.info("ai_generate_done provider=%s model=%s mode=%s", client.provider, client.model, mode)
        return package
