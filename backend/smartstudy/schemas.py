from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator
from pydantic.alias_generators import to_camel

from .text import split_sentences

Mode = Literal["standard", "math"]
STANDARD: Mode = "standard"
MATH: Mode = "math"

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudyRequest(CamelModel):
    topic: NonEmptyStr
    mode: Mode = STANDARD


class SourceAttribution(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    source: str
    url: str
    license: str
    retrieved_at: datetime


class SourceDocument(CamelModel):
    """Reference material for one topic. `sentences` is always derived from `extract`."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    description: str = ""
    extract: str = ""
    content_url: Optional[str] = None
    attribution: SourceAttribution

    @property
    def sentences(self) -> List[str]:
        return split_sentences(self.extract)


class QuizQuestion(CamelModel):
    prompt: NonEmptyStr
    options: List[NonEmptyStr] = Field(min_length=4, max_length=4)
    correct_index: int = Field(ge=0, lt=4)
    explanation: NonEmptyStr

    @model_validator(mode="after")
    def _index_in_options(self) -> "QuizQuestion":
        if self.correct_index >= len(self.options):
            raise ValueError("correctIndex must index into options")
        return self


class StandardPayload(CamelModel):
    summary: List[NonEmptyStr] = Field(min_length=3, max_length=3)
    quiz: List[QuizQuestion] = Field(min_length=3, max_length=3)
    study_tip: NonEmptyStr


class MathPayload(CamelModel):
    question: NonEmptyStr
    answer: NonEmptyStr
    explanation: NonEmptyStr


class StudyPackage(CamelModel):
    topic: str
    mode: Mode
    generated_at: datetime
    payload: Union[StandardPayload, MathPayload]

    @model_validator(mode="after")
    def _payload_matches_mode(self) -> "StudyPackage":
        expected = MathPayload if self.mode == MATH else StandardPayload
        if not isinstance(self.payload, expected):
            raise ValueError(f"{self.mode} package requires a {expected.__name__}")
        return self

    def to_response(self, source: SourceDocument) -> Dict[str, Any]:
        """Flattened wire shape: package metadata, payload fields and attribution."""
        return {
            "topic": self.topic,
            "mode": self.mode,
            "generatedAt": self.generated_at.isoformat().replace("+00:00", "Z"),
            **self.payload.model_dump(mode="json", by_alias=True),
            "sourceAttribution": source.attribution.model_dump(mode="json", by_alias=True),
        }
