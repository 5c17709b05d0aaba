from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import List, Optional

from .errors import MathModeRequiresAI
from .schemas import MATH, Mode, QuizQuestion, SourceDocument, StandardPayload, StudyPackage
from .text import force_sentence_case, truncate

SUMMARY_ITEMS = 3
SUMMARY_MAX_CHARS = 220
DISTRACTORS_PER_QUESTION = 3

# "It" is swapped for the topic name when a statement is used.
WRONG_DOMAIN_STATEMENTS = (
    "It is primarily a concept from modern pop culture.",
    "It deals exclusively with culinary arts and cooking techniques.",
    "It is mostly focused on professional sports trivia.",
    "It originated as a fictional idea in a popular novel.",
    "It is known chiefly as a style of contemporary music.",
    "It refers to a recent social media trend.",
    "It is concerned only with interior design aesthetics.",
)

FILLER_DISTRACTORS = (
    "{topic} still has more to explore.",
    "{topic} has no documented history or sources.",
    "{topic} was abandoned and is no longer studied.",
)

QUIZ_PROMPTS = (
    "Which statement about {topic} is accurate?",
    "What is a key takeaway about {topic}?",
    "Which of these facts correctly relates to {topic}?",
)


def display_topic(topic: str, source: Optional[SourceDocument]) -> str:
    title = source.title if source is not None and source.title else topic
    return force_sentence_case(title)


class RuleBasedGenerator:
    """
    Builds a study package from the source text alone. Only distractor
    choice and option order depend on `rng`.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def generate(self, topic: str, mode: Mode, source: Optional[SourceDocument]) -> StudyPackage:
        if mode == MATH:
            raise MathModeRequiresAI(
                "Math mode requires a configured AI provider. Set GEMINI_API_KEY to enable quantitative generation."
            )

        name = display_topic(topic, source)
        summary = self.build_summary(source, name)
        return StudyPackage(
            topic=name,
            mode=mode,
            generated_at=datetime.now(timezone.utc),
            payload=StandardPayload(
                summary=summary,
                quiz=self.build_quiz(summary, name),
                study_tip=self.build_study_tip(summary, name),
            ),
        )

    def build_summary(self, source: Optional[SourceDocument], topic: str) -> List[str]:
        sentences = source.sentences if source is not None else []

        if not sentences:
            extract = source.extract.strip() if source is not None else ""
            first = truncate(extract, SUMMARY_MAX_CHARS) if extract else f"{topic} is an area worth exploring further."
            return [
                first,
                f"Start by identifying the core ideas that define {topic}.",
                f"Look for examples of {topic} applied in real situations.",
            ]

        padded = list(sentences[:SUMMARY_ITEMS])
        while len(padded) < SUMMARY_ITEMS:
            padded.append(f"Explore additional aspects of {topic} to reinforce this point.")
        return [truncate(s.strip(), SUMMARY_MAX_CHARS) for s in padded]

    def build_quiz(self, summary: List[str], topic: str) -> List[QuizQuestion]:
        pool = list(WRONG_DOMAIN_STATEMENTS)
        questions: List[QuizQuestion] = []

        for i in range(SUMMARY_ITEMS):
            fact = summary[i] if i < len(summary) else summary[-1]
            candidates = [fact, *self._draw_distractors(pool, topic)]

            order = list(range(len(candidates)))
            self.rng.shuffle(order)
            options = [candidates[j] for j in order]

            questions.append(
                QuizQuestion(
                    prompt=QUIZ_PROMPTS[i % len(QUIZ_PROMPTS)].format(topic=topic),
                    options=options,
                    correct_index=order.index(0),
                    explanation=(
                        f"The accurate statement is “{fact}”. "
                        f"This detail reflects what reliable sources say about {topic}."
                    ),
                )
            )
        return questions

    def build_study_tip(self, summary: List[str], topic: str) -> str:
        primary = summary[0] if summary else f"the central ideas of {topic}"
        return (
            f"Create a quick concept map that links “{primary}” to supporting examples. "
            f"Teaching {topic} aloud to a friend or an empty room consolidates your understanding."
        )

    def _draw_distractors(self, pool: List[str], topic: str) -> List[str]:
        """Draws without replacement from `pool`, then pads with fillers."""
        name = force_sentence_case(topic)
        out: List[str] = []
        while len(out) < DISTRACTORS_PER_QUESTION and pool:
            statement = pool.pop(self.rng.randrange(len(pool)))
            out.append(statement.replace("It", name, 1).replace(" it ", f" {topic} ", 1))

        filler = 0
        while len(out) < DISTRACTORS_PER_QUESTION:
            out.append(FILLER_DISTRACTORS[filler % len(FILLER_DISTRACTORS)].format(topic=name))
            filler += 1
        return out
