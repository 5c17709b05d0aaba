from __future__ import annotations

import argparse
import asyncio
import logging
import textwrap
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from smartstudy.answers import answers_equivalent
from smartstudy.errors import MATH_MODE_REQUIRES_AI, UpstreamError
from smartstudy.logging_utils import configure_logging
from smartstudy.orchestrator import StudyOrchestrator, build_orchestrator
from smartstudy.schemas import MathPayload, QuizQuestion, SourceDocument, StandardPayload, StudyPackage
from smartstudy.settings import settings
from smartstudy.wiki import fetch_topic_summary

logger = logging.getLogger("smartstudy.cli")

OPTION_LETTERS = "ABCD"
MODES = ("standard", "math")

Fetch = Callable[[str], Awaitable[Optional[SourceDocument]]]
Ask = Callable[[str], str]


@dataclass
class StudyConfig:
    mode: str = "standard"
    wrap: int = 100
    show_sources: bool = True


HELP_TEXT = """
Type a topic to study it.

Commands:
  /help
  /quit
  /mode <mode>                  standard | math
  /wrap <width>
  /sources on|off
"""


def _wrap(text: str, width: int) -> str:
    return "\n".join(
        textwrap.fill(line, width=width) if line.strip() else ""
        for line in text.splitlines()
    )


def _print_banner(cfg: StudyConfig) -> None:
    print("\n" + "=" * 72)
    print("Smart Study Assistant — Terminal")
    print(
        f"Mode: {cfg.mode} | AI provider: {settings.ai_provider} "
        f"({'configured' if settings.ai_credential() else 'not configured, using built-in generator'})"
    )
    print("Type /help for commands. Type /quit to exit.")
    print("=" * 72 + "\n")


def _ask(ask: Ask, prompt: str) -> str:
    try:
        return ask(prompt).strip()
    except EOFError:
        return ""


def parse_choice(raw: str) -> Optional[int]:
    s = (raw or "").strip().upper()
    if len(s) == 1 and s in OPTION_LETTERS:
        return OPTION_LETTERS.index(s)
    if s.isdigit() and 1 <= int(s) <= len(OPTION_LETTERS):
        return int(s) - 1
    return None


def format_question(n: int, question: QuizQuestion) -> str:
    lines = [f"Q{n}. {question.prompt}"]
    for letter, option in zip(OPTION_LETTERS, question.options):
        lines.append(f"  {letter}) {option}")
    return "\n".join(lines)


def run_quiz(quiz: List[QuizQuestion], cfg: StudyConfig, ask: Ask = input) -> int:
    score = 0
    for n, question in enumerate(quiz, start=1):
        print(_wrap(format_question(n, question), cfg.wrap))
        choice = parse_choice(_ask(ask, "Your answer (A-D): "))
        correct_letter = OPTION_LETTERS[question.correct_index]
        if choice == question.correct_index:
            score += 1
            print("✅ Correct!")
        else:
            print(f"❌ Not quite. The answer is {correct_letter}.")
        print(_wrap(question.explanation, cfg.wrap))
        print()
    print(f"Score: {score}/{len(quiz)}")
    return score


def run_math(payload: MathPayload, cfg: StudyConfig, ask: Ask = input) -> bool:
    print(_wrap(f"QUESTION: {payload.question}", cfg.wrap))
    user_answer = _ask(ask, "Your answer: ")
    correct = bool(user_answer) and answers_equivalent(user_answer, payload.answer)
    print("✅ Correct!" if correct else "❌ Not quite.")
    print(_wrap(f"Answer: {payload.answer}", cfg.wrap))
    print(_wrap(f"Explanation: {payload.explanation}", cfg.wrap))
    return correct


def render_package(package: StudyPackage, source: SourceDocument, cfg: StudyConfig, ask: Ask = input) -> None:
    print("\n" + "-" * 72)
    print(f"{package.topic} ({package.mode})\n")

    if isinstance(package.payload, StandardPayload):
        print("SUMMARY:")
        for item in package.payload.summary:
            print(_wrap(f"  - {item}", cfg.wrap))
        print()
        run_quiz(package.payload.quiz, cfg, ask)
        print()
        print(_wrap(f"STUDY TIP: {package.payload.study_tip}", cfg.wrap))
    else:
        run_math(package.payload, cfg, ask)

    if cfg.show_sources:
        a = source.attribution
        print()
        print(_wrap(f"Source: {a.source} — {a.url} (license: {a.license})", cfg.wrap))
    print("-" * 72 + "\n")


async def study_topic(
    topic: str,
    cfg: StudyConfig,
    orchestrator: StudyOrchestrator,
    fetch: Fetch = fetch_topic_summary,
    ask: Ask = input,
) -> str:
    """Runs one topic end to end. Returns ok | not_found | math_requires_ai | failed."""
    print(f"⏳ Preparing study materials for: {topic}")
    try:
        source = await fetch(topic)
    except UpstreamError as e:
        logger.error("cli_upstream_failed topic=%r status=%s", topic, e.status_code)
        print("⚠️ Could not reach the reference service. Please try again.")
        return "failed"

    if source is None:
        print(f"🤷 We could not find any information for “{topic}”.")
        return "not_found"

    outcome = await orchestrator.generate(topic, cfg.mode, source)  # type: ignore[arg-type]
    if not outcome.ok or outcome.package is None:
        if outcome.error_code == MATH_MODE_REQUIRES_AI:
            print("⚠️ Math mode requires a configured AI API key. Set GEMINI_API_KEY and try again.")
            return "math_requires_ai"
        print("⚠️ Something went wrong while preparing your study materials.")
        return "failed"

    render_package(outcome.package, source, cfg, ask)
    return "ok"


async def repl(cfg: StudyConfig) -> None:
    orchestrator = build_orchestrator(settings)
    _print_banner(cfg)

    while True:
        try:
            line = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye 👋")
            return

        if not line:
            continue

        if line.startswith("/"):
            parts = [p for p in line.split(" ") if p]
            cmd = parts[0].lower()

            if cmd in ("/quit", "/exit"):
                print("Bye 👋")
                return

            if cmd == "/help":
                print(_wrap(HELP_TEXT.strip(), cfg.wrap))
                continue

            if cmd == "/mode" and len(parts) >= 2:
                m = parts[1].strip().lower()
                if m not in MODES:
                    print("⚠️ mode must be: standard | math")
                    continue
                cfg.mode = m
                print(f"✅ Mode set to: {cfg.mode}")
                continue

            if cmd == "/wrap" and len(parts) >= 2:
                try:
                    cfg.wrap = max(20, int(parts[1]))
                    print(f"✅ wrap set to: {cfg.wrap}")
                except ValueError:
                    print("⚠️ wrap must be an integer")
                continue

            if cmd == "/sources" and len(parts) >= 2:
                v = parts[1].strip().lower()
                if v not in ("on", "off"):
                    print("⚠️ /sources on|off")
                    continue
                cfg.show_sources = (v == "on")
                print(f"✅ sources: {'on' if cfg.show_sources else 'off'}")
                continue

            print("⚠️ Unknown command. Type /help")
            continue

        await study_topic(line, cfg, orchestrator)


def main() -> None:
    parser = argparse.ArgumentParser(description="Smart Study Assistant Terminal")
    parser.add_argument("--mode", default="standard", choices=list(MODES))
    parser.add_argument("--wrap", type=int, default=100, help="Wrap width (default: 100)")
    parser.add_argument("--no-sources", action="store_true", help="Hide source attribution")
    args = parser.parse_args()

    configure_logging("smartstudy.cli")
    cfg = StudyConfig(mode=args.mode, wrap=args.wrap, show_sources=not args.no_sources)
    asyncio.run(repl(cfg))


if __name__ == "__main__":
    main()
