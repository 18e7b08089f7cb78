#!/usr/bin/env python3
"""Review a plain-text document with a persona set from the command line.

Runs every enabled persona of the chosen set, prints per-persona scores and
comments (anchored ones with their character range) and optionally retries
personas that failed.

Usage:
    # Default set (cross-functional) with the provider from the environment
    python scripts/run_review.py --file memo.txt

    # Local Ollama model, marketing personas, retry failures twice
    python scripts/run_review.py --file memo.txt --set marketing-focus \
        --provider ollama --model llama3.1:8b --retry-failed 2

    # Custom persona sets from a JSON file, machine-readable output
    python scripts/run_review.py --file memo.txt --personas-file sets.json \
        --set my-set --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from persona_review.config import ModelConfig, ReviewSettings
from persona_review.llm import LLMClient
from persona_review.models.persona import (
    DEFAULT_PERSONA_SETS,
    PersonaSet,
    load_persona_sets,
)
from persona_review.models.review import RunSession, RunStatus
from persona_review.services import (
    PreconditionError,
    ReviewObserver,
    ReviewOrchestrator,
    TextDocumentSurface,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class ConsoleObserver(ReviewObserver):
    """Logs persona status changes and overall progress."""

    def on_status(self, persona_id: str, status: RunStatus, note: Optional[str] = None) -> None:
        if note:
            logger.info(f"[{persona_id}] {status.value}: {note}")
        else:
            logger.info(f"[{persona_id}] {status.value}")

    def on_progress(self, fraction: float) -> None:
        logger.info(f"Progress: {fraction:.0%}")


def pick_persona_set(set_id: str, personas_file: Optional[Path]) -> PersonaSet:
    """Find ``set_id`` among the built-in sets or those in ``personas_file``."""
    sets: List[PersonaSet] = list(DEFAULT_PERSONA_SETS)
    if personas_file:
        sets = load_persona_sets(personas_file) + sets
    for persona_set in sets:
        if persona_set.id == set_id:
            return persona_set
    available = ", ".join(s.id for s in sets)
    raise SystemExit(f"Unknown persona set '{set_id}'. Available: {available}")


def build_model_config(args: argparse.Namespace) -> ModelConfig:
    config = ModelConfig.from_env()
    update: dict = {}
    if args.provider and args.provider != config.provider:
        update.update(provider=args.provider, api_key=None, base_url=None, model="")
    if args.model:
        update["model"] = args.model
    return config.model_copy(update=update) if update else config


def print_report(session: RunSession, surface: TextDocumentSurface) -> None:
    """Print a human-readable summary of the session."""
    for result in session.ordered_results:
        print(f"\n=== {result.persona_name} ({result.persona_id}): {result.status.value} ===")
        if result.status == RunStatus.error:
            print(f"  error: {result.error_message}")
            continue
        if result.feedback is None:
            continue

        scores = result.feedback.scores
        print(f"  clarity={scores.clarity} tone={scores.tone} alignment={scores.alignment}")
        if result.feedback.global_feedback:
            print(f"  {result.feedback.global_feedback}")
        for item in result.matched or []:
            print(f"  [{item.location.start}-{item.location.end}] \"{item.quote}\": {item.comment}")
        for item in result.unmatched or []:
            print(f"  [unanchored] \"{item.quote}\": {item.comment}")

    print(f"\nDone: {session.done_count}/{session.total_enabled}, "
          f"{len(surface.comments)} comment(s) inserted")


async def run(args: argparse.Namespace) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    persona_set = pick_persona_set(args.set, Path(args.personas_file) if args.personas_file else None)

    client = LLMClient(config=build_model_config(args))
    surface = TextDocumentSurface(text)
    settings = ReviewSettings(
        max_document_chars=args.max_chars,
        insert_summary_comment=args.summary_comments,
    )
    orchestrator = ReviewOrchestrator(client, surface, observer=ConsoleObserver(), settings=settings)

    try:
        session = await orchestrator.run(persona_set.personas)
        for attempt in range(args.retry_failed):
            failed = session.failed_or_missing([p.id for p in persona_set.enabled_personas()])
            if not failed:
                break
            logger.info(f"Retry {attempt + 1}/{args.retry_failed} for: {', '.join(failed)}")
            session = await orchestrator.retry_failed(persona_set.personas)
    except PreconditionError as e:
        logger.error(e.message)
        return 2
    finally:
        await client.aclose()

    if args.json:
        print(json.dumps({
            "session": session.model_dump(mode="json"),
            "comments": [c.model_dump(mode="json") for c in surface.comments],
        }, indent=2))
    else:
        print_report(session, surface)

    return 0 if session.done_count == session.total_enabled else 1


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Review a text document with a set of AI personas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--file", required=True, help="Plain-text document to review")
    parser.add_argument("--set", default="cross-functional", help="Persona set id")
    parser.add_argument("--personas-file", help="JSON file with extra persona sets")
    parser.add_argument(
        "--provider",
        choices=["openrouter", "ollama", "anthropic"],
        help="Override REVIEW_PROVIDER",
    )
    parser.add_argument("--model", help="Override REVIEW_MODEL")
    parser.add_argument(
        "--retry-failed",
        type=int,
        default=0,
        metavar="N",
        help="Retry failed personas up to N times",
    )
    parser.add_argument("--max-chars", type=int, default=15000, help="Document chars sent per prompt")
    parser.add_argument(
        "--summary-comments",
        action="store_true",
        help="Also insert each persona's overall feedback at the document start",
    )
    parser.add_argument("--json", action="store_true", help="Print the session as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
