from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .ai_generator import AIGenerator
from .errors import AIUnavailable, StudyError
from .rule_based import RuleBasedGenerator
from .schemas import Mode, SourceDocument, StudyPackage
from .settings import Settings

logger = logging.getLogger("smartstudy.orchestrator")


class OutcomeKind(str, Enum):
    OK = "ok"
    AI_FAILED = "ai_failed"
    RULE_BASED_FAILED = "rule_based_failed"


@dataclass(frozen=True)
class GenerationOutcome:
    kind: OutcomeKind
    tier: str
    package: Optional[StudyPackage] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def error_code(self) -> Optional[str]:
        if self.error is None:
            return None
        return getattr(self.error, "code", "UNEXPECTED")

    def unwrap(self) -> StudyPackage:
        if self.package is not None:
            return self.package
        if isinstance(self.error, StudyError):
            raise self.error
        raise StudyError(f"{self.tier} tier failed: {self.error}") from self.error


class StudyOrchestrator:
    """
    TRY_AI -> DONE, or TRY_AI -> TRY_RULE_BASED -> DONE | FAILED.
    The AI tier is skipped when it has no credential. Its failures are never
    returned; the rule-based tier's failure is.
    """

    def __init__(self, ai: Optional[AIGenerator], rule_based: RuleBasedGenerator) -> None:
        self.ai = ai
        self.rule_based = rule_based

    async def try_ai(self, topic: str, mode: Mode, source: Optional[SourceDocument]) -> GenerationOutcome:
        try:
            if self.ai is None:
                raise AIUnavailable("AI tier is not configured.")
            package = await self.ai.generate(topic, mode, source)
        except Exception as e:
            return GenerationOutcome(kind=OutcomeKind.AI_FAILED, tier="ai", error=e)
        return GenerationOutcome(kind=OutcomeKind.OK, tier="ai", package=package)

    def try_rule_based(self, topic: str, mode: Mode, source: Optional[SourceDocument]) -> GenerationOutcome:
        try:
            package = self.rule_based.generate(topic, mode, source)
        except Exception as e:
            return GenerationOutcome(kind=OutcomeKind.RULE_BASED_FAILED, tier="rule_based", error=e)
        return GenerationOutcome(kind=OutcomeKind.OK, tier="rule_based", package=package)

    async def generate(self, topic: str, mode: Mode, source: Optional[SourceDocument]) -> GenerationOutcome:
        if self.ai is not None and self.ai.available:
            outcome = await self.try_ai(topic, mode, source)
            if outcome.ok:
                logger.info("study_package_generated tier=ai topic=%r mode=%s", topic, mode)
                return outcome
            logger.warning(
                "ai_tier_failed topic=%r mode=%s code=%s error=%s, falling back to rule-based generator",
                topic,
                mode,
                outcome.error_code,
                outcome.error,
            )

        outcome = self.try_rule_based(topic, mode, source)
        if outcome.ok:
            logger.info("study_package_generated tier=rule_based topic=%r mode=%s", topic, mode)
        else:
            logger.error(
                "rule_based_tier_failed topic=%r mode=%s code=%s error=%s",
                topic,
                mode,
                outcome.error_code,
                outcome.error,
            )
        return outcome


def build_orchestrator(settings: Settings) -> StudyOrchestrator:
    return StudyOrchestrator(ai=AIGenerator(settings), rule_based=RuleBasedGenerator())
