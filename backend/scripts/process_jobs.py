"""Poll for due resume jobs and replay them through the runtime."""
from __future__ import annotations

import argparse
import pathlib
import sys
import time

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.bizflow import create_app
from backend.bizflow.automation.engine import build_engine
from backend.bizflow.automation.scheduler import process_due_jobs


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--once", action="store_true", help="process due jobs once and exit")
    parser.add_argument("--interval", type=float, default=15.0, help="seconds between polls")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        limit = int(app.config.get("AUTOMATION_JOB_BATCH_LIMIT", 50))
        while True:
            engine = build_engine(app)
            results = process_due_jobs(engine.clock(), engine.invoke, limit=limit)
            if results:
                app.logger.info("Processed %s scheduled job(s)", len(results))
            if args.once:
                break
            time.sleep(args.interval)


if __name__ == "__main__":
    main()
