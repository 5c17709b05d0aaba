from __future__ import annotations

from typing import Optional

NOT_FOUND = "NOT_FOUND"
UPSTREAM_ERROR = "UPSTREAM_ERROR"
AI_UNAVAILABLE = "AI_UNAVAILABLE"
AI_INVALID_RESPONSE = "AI_INVALID_RESPONSE"
MATH_MODE_REQUIRES_AI = "MATH_MODE_REQUIRES_AI"


class StudyError(Exception):
    code = "STUDY_ERROR"


class UpstreamError(StudyError):
    code = UPSTREAM_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AIUnavailable(StudyError):
    code = AI_UNAVAILABLE


class AIInvalidResponse(StudyError):
    code = AI_INVALID_RESPONSE


class MathModeRequiresAI(StudyError):
    code = MATH_MODE_REQUIRES_AI

