"""
Batch entry points.

    moodsignal-train            train, score the trailing window, print the summary
    moodsignal-aggregate DAY    rebuild daily_features for every user on DAY

Connection settings come from the environment (DATABASE_URL). The result
goes to stdout as JSON; errors go to stderr with a non-zero exit code.
"""
import argparse
import asyncio
import json
import logging
import sys
from datetime import date

from moodsignal.core.config import settings
from moodsignal.core.database import engine, get_session_factory
from moodsignal.core.logging import setup_logging
from moodsignal.pipeline.aggregator import aggregate_all_users_for_day
from moodsignal.pipeline.runner import run_training
from moodsignal.repositories import event_and_feature_stores

logger = logging.getLogger(__name__)


async def _train() -> dict:
    try:
        run = await run_training(get_session_factory())
        return run.summary()
    finally:
        await engine.dispose()


async def _aggregate(day: date) -> dict:
    try:
        rows = await aggregate_all_users_for_day(
            day,
            get_session_factory(),
            event_and_feature_stores,
            workers=settings.AGGREGATION_WORKERS,
            collapse_zero_counts=settings.COLLAPSE_ZERO_COUNTS,
        )
        return {"day": day.isoformat(), "users": len(rows)}
    finally:
        await engine.dispose()


def _run(coro) -> int:
    try:
        result = asyncio.run(coro)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


def train(argv=None) -> int:
    """Console entry for `moodsignal-train` (takes no arguments)."""
    setup_logging()
    argparse.ArgumentParser(prog="moodsignal-train", description="Train a new mood model version").parse_args(argv)
    return _run(_train())


def aggregate(argv=None) -> int:
    setup_logging()
    parser = argparse.ArgumentParser(prog="moodsignal-aggregate", description="Aggregate daily features for one day")
    parser.add_argument("day", type=date.fromisoformat, help="Day to aggregate, YYYY-MM-DD")
    args = parser.parse_args(argv)
    return _run(_aggregate(args.day))


def main() -> None:
    sys.exit(train())


if __name__ == "__main__":
    main()
