from __future__ import annotations

from typing import Optional

from .schemas import MATH, Mode, SourceDocument
from .text import truncate

CONTEXT_EXTRACT_CHARS = 2400
EMPTY_CONTEXT = "No additional reference material provided."


def build_context(source: Optional[SourceDocument]) -> str:
    if source is None:
        return EMPTY_CONTEXT

    parts = []
    if source.description:
        parts.append(f"Description: {source.description}")
    if source.extract.strip():
        parts.append(f"Extract: {truncate(source.extract, CONTEXT_EXTRACT_CHARS)}")
    return "\n".join(parts) or EMPTY_CONTEXT


def build_standard_prompt(topic: str, source: Optional[SourceDocument]) -> str:
    return f"""You are Smart Study Assistant, an educational AI that creates concise study materials.
Using ONLY the reference material provided, produce JSON that matches this schema exactly:
{{
  "summary": ["", "", ""],
  "quiz": [
    {{
      "prompt": "",
      "options": ["", "", "", ""],
      "correctIndex": 0,
      "explanation": ""
    }},
    {{ ... second question ... }},
    {{ ... third question ... }}
  ],
  "studyTip": ""
}}
Rules:
- Return exactly 3 summary bullet points, each under 200 characters.
- Quiz must contain exactly 3 multiple-choice questions.
- Each quiz entry needs exactly 4 distinct answer options and a zero-based "correctIndex".
- The explanation should reference why the correct option is true.
- Respond with STRICT JSON only, without markdown fences or commentary.

Topic: {topic}
Reference material: {build_context(source)}
"""


def build_math_prompt(topic: str, source: Optional[SourceDocument]) -> str:
    return f"""You are Smart Study Assistant, an AI that creates quantitative or logic practice.
Create a JSON object that follows this schema exactly:
{{
  "question": "",
  "answer": "",
  "explanation": ""
}}
Requirements:
- Provide exactly ONE well-posed quantitative or logic question tied to the topic theme.
- Give the correct answer as a concise string.
- Provide a step-by-step explanation that justifies the answer.
- Respond with STRICT JSON only, without markdown fences or commentary.

Topic: {topic}
Reference material: {build_context(source)}
"""


def build_prompt(mode: Mode, topic: str, source: Optional[SourceDocument]) -> str:
    if mode == MATH:
        return build_math_prompt(topic, source)
    return build_standard_prompt(topic, source)
