"""Run one of the cron-triggered jobs from the command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from compliance.db import database
from compliance.services.reminder_jobs import JOBS


logger = logging.getLogger("compliance.scripts.run_job")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a scheduled compliance job once")
    parser.add_argument("job", choices=sorted(JOBS), help="Job name, as exposed under /api/jobs/{name}")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def run(job_name: str) -> dict:
    session = database.SessionLocal()
    try:
        return JOBS[job_name](session)
    finally:
        session.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        result = run(args.job)
    except Exception:
        logger.exception("Job %s failed", args.job)
        return 1

    print(json.dumps(result, default=str, indent=2))
    return 0 if result.get("ok", True) else 1


if __name__ == "__main__":
    sys.exit(main())
