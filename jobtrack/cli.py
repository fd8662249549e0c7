"""
CLI Entry Point: ask the local model from a shell

Usage:
    jobtrack-ai config
    jobtrack-ai extract "List three follow-up questions for a data role"
    jobtrack-ai extract "Write a short thank-you note" --text
    jobtrack-ai analyze "When our deploys kept failing I rebuilt the pipeline" --question-type behavioral
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import httpx

from jobtrack.common.config import Config
from jobtrack.common.errors import StructuredOutputError
from jobtrack.common.logger import get_logger, setup_logging
from jobtrack.common.structured_output import StructuredOutputClient
from jobtrack.services.response_coach_service import ResponseCoachService

logger = get_logger(__name__, service="cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobtrack-ai",
        description="Structured output from a local Ollama model",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("config", help="Print the resolved configuration")

    extract = subparsers.add_parser("extract", help="Send a prompt and print the parsed reply")
    extract.add_argument("prompt", help="Prompt text")
    extract.add_argument(
        "--text",
        action="store_true",
        help="Return the reply as prose instead of parsing JSON",
    )
    extract.add_argument(
        "--retry",
        action="store_true",
        help="Retry the whole request on failure (LLM_MAX_ATTEMPTS attempts)",
    )

    analyze = subparsers.add_parser("analyze", help="Score an interview answer")
    analyze.add_argument("answer", help="Answer text")
    analyze.add_argument(
        "--question-type",
        default="behavioral",
        help="Question category used in the prompt (default: behavioral)",
    )
    return parser


async def run_extract(args: argparse.Namespace) -> str:
    async with StructuredOutputClient() as extractor:
        if args.text:
            return await extractor.extract_text(args.prompt, retry=args.retry)
        result = await extractor.extract_structured(args.prompt, retry=args.retry)
        return json.dumps(result, indent=2)


async def run_analyze(args: argparse.Namespace) -> str:
    async with ResponseCoachService() as coach:
        result = await coach.analyze_response(args.answer, args.question_type)
        return json.dumps(result, indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        Config.validate()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(Config.LOG_LEVEL, Config.LOG_FORMAT)

    if args.command == "config":
        print(Config.summary())
        return 0

    runner = run_extract if args.command == "extract" else run_analyze
    try:
        print(asyncio.run(runner(args)))
    except (StructuredOutputError, httpx.HTTPError) as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
