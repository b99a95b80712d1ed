"""
Queue lifecycle controller - main entry point.

Runs the reconcile worker in the foreground until SIGINT/SIGTERM, or serves
the HTTP command surface with the worker running in the background.
"""

import argparse
import logging
import signal
import sys
import threading

from dotenv import load_dotenv

# Load environment variables BEFORE reading configuration
load_dotenv()

from src.infra.logging_config import setup_logging
from src.queue_controller.config import ControllerConfig
from src.queue_controller.service import QueueControllerService


logger = logging.getLogger("src.main")

shutdown_requested = threading.Event()


def signal_handler(signum, frame):
    """SIGINT / SIGTERM handler - stop after in-flight reconciles finish."""
    signal_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    logger.info(f"{signal_name} received - stopping after in-flight reconciles")
    shutdown_requested.set()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Queue lifecycle controller",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reconcile queues until interrupted
  python main.py

  # Sync every queue once and exit
  python main.py --once

  # Serve the HTTP API with the worker in the background
  python main.py --serve --port 8000
        """
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="SQLite store path. Default: QUEUE_CONTROLLER_DB_PATH or ./data/queue_controller.db"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads. Default: QUEUE_CONTROLLER_WORKERS or 1"
    )
    parser.add_argument(
        "--once",
        action="store_true",
        default=False,
        help="Request a sync of every queue, process until idle, then exit"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Serve the HTTP API (uvicorn) instead of running headless"
    )
    parser.add_argument("--host", type=str, default="127.0.0.1", help="API bind host")
    parser.add_argument("--port", type=int, default=8000, help="API bind port")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    config = ControllerConfig.from_env()
    if args.db_path:
        config.db_path = args.db_path
    if args.workers:
        config.workers = max(1, args.workers)

    setup_logging(config.log_level)

    if args.serve:
        import os
        import uvicorn

        os.environ["QUEUE_CONTROLLER_DB_PATH"] = str(config.db_path)
        os.environ["QUEUE_CONTROLLER_WORKERS"] = str(config.workers)
        uvicorn.run("src.api.main:app", host=args.host, port=args.port)
        return 0

    service = QueueControllerService.create(config=config)

    if args.once:
        service.group_index.rebuild()
        requested = service.controller.resync_all()
        handled = service.worker.drain()
        logger.info(f"Synced {requested} queues ({handled} requests handled)")
        return 0

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Queue controller starting (store: {config.db_path}, workers: {config.workers})")
    service.start(blocking=False)

    while not shutdown_requested.wait(1.0):
        pass
    service.stop()
    logger.info("Queue controller stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
