from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .errors import MATH_MODE_REQUIRES_AI, UpstreamError
from .logging_utils import configure_logging
from .orchestrator import build_orchestrator
from .schemas import StudyRequest
from .settings import settings
from .wiki import fetch_topic_summary

logger = logging.getLogger("smartstudy.api")

GENERIC_FAILURE = "Something went wrong while preparing your study materials. Please try again."
MATH_UNAVAILABLE = "Math mode requires a configured AI API key. Please set GEMINI_API_KEY and try again."
INVALID_REQUEST = "A non-empty string topic is required, and mode must be either 'standard' or 'math'."

orchestrator = build_orchestrator(settings)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging("smartstudy.api")
    origins = settings.allowed_origin_list
    logger.info(
        "startup ai_provider=%s ai_credential=%s",
        settings.ai_provider,
        "yes" if settings.ai_credential() else "no",
    )
    logger.info("startup cors=%s", f"restricted origins={len(origins)}" if origins else "all_origins")
    yield


app = FastAPI(title="Smart Study Assistant API", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origin_list or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_request(_request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": INVALID_REQUEST})


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/study")
async def study(req: StudyRequest):
    try:
        source = await fetch_topic_summary(req.topic)
        if source is None:
            return JSONResponse(
                status_code=404,
                content={"error": f"We could not find any information for “{req.topic}”."},
            )

        outcome = await orchestrator.generate(req.topic, req.mode, source)
        if outcome.ok and outcome.package is not None:
            return outcome.package.to_response(source)

        if outcome.error_code == MATH_MODE_REQUIRES_AI:
            return JSONResponse(status_code=503, content={"error": MATH_UNAVAILABLE})

        logger.error("study_failed topic=%r mode=%s code=%s", req.topic, req.mode, outcome.error_code)
    except UpstreamError as e:
        logger.error("study_upstream_failed topic=%r status=%s error=%s", req.topic, e.status_code, e)
    except Exception:
        logger.exception("study_unexpected_failure topic=%r mode=%s", req.topic, req.mode)

    return JSONResponse(status_code=500, content={"error": GENERIC_FAILURE})
