"""Run the no-show / completion / pending-expiry sweeps against the database.

python scripts/run_sweeper.py          # every SWEEP_INTERVAL_SECONDS
python scripts/run_sweeper.py --once   # a single pass
"""
import logging
import sys

from courtbook.bootstrap import build_engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv):
    engine = build_engine()
    if "--once" in argv:
        for report in engine.scheduler.run_once():
            if report.error:
                print(f"{report.name}: failed ({report.error})")
            else:
                print(f"{report.name}: {report.total} processed")
        return
    engine.scheduler.start()
    try:
        while engine.scheduler.running:
            engine.scheduler.join(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping sweeper")
    finally:
        engine.scheduler.stop(timeout=5)


if __name__ == "__main__":
    main(sys.argv[1:])
