"""
Run the pipeline once from the command line and print the outcome.

Exit codes follow the API status: 0 (200), 1 (207), 2 (502).
"""

import argparse
import asyncio
import json
import logging
import sys

from fastapi.encoders import jsonable_encoder

from api.routes.pipeline import status_for_outcome
from core.database import build_engine, build_session_factory
from core.logging import setup_logging
from pipeline.factory import build_runner
from schemas.api import PipelineOutcomeResponse

logger = logging.getLogger(__name__)

EXIT_CODES = {200: 0, 207: 1, 502: 2}


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the contact pipeline against one source")
    parser.add_argument("source_endpoint", help="Absolute http(s) URI of the upstream source")
    parser.add_argument("--timeout-ms", type=int, default=None, help="Per-attempt extract timeout")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return parser.parse_args(argv)


async def run_once(source_endpoint: str, timeout_ms=None) -> int:
    engine = build_engine()
    try:
        runner = build_runner(build_session_factory(engine))
        outcome = await runner.run(
            source_endpoint,
            timeout=timeout_ms / 1000 if timeout_ms else None
        )
    finally:
        await engine.dispose()

    body = jsonable_encoder(PipelineOutcomeResponse.from_outcome(outcome), by_alias=True)
    print(json.dumps(body, indent=2))
    return EXIT_CODES[status_for_outcome(outcome)]


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(run_once(args.source_endpoint, args.timeout_ms))


if __name__ == "__main__":
    sys.exit(main())
