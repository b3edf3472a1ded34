#!/usr/bin/env python3
"""Daylog server entry point."""

import argparse
import logging
import signal
import sys

from daylog.api import create_app
from daylog.config import load_config
from daylog.retention import RetentionScheduler

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Daily-partitioned log server")
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file (default: $CONFIG_PATH or config.yaml)",
    )
    parser.add_argument("--host", default=None, help="Bind address")
    parser.add_argument("--port", type=int, default=None, help="Listen port")
    parser.add_argument("--logs-dir", default=None, help="Directory holding log-YYYY-MM-DD.txt files")
    parser.add_argument(
        "--no-scheduler", action="store_true",
        help="Disable the startup and daily retention cleanup",
    )
    return parser


def main(argv=None):
    args = build_cli_parser().parse_args(argv)

    config = load_config(args.config)
    if args.host:
        config.set("server", "host", args.host)
    if args.port:
        config.set("server", "port", args.port)
    if args.logs_dir:
        config.set("storage", "logs_dir", args.logs_dir)
    if args.no_scheduler:
        config.set("retention", "enabled", False)

    logging.basicConfig(
        level=getattr(logging, str(config["logging"]["level"]).upper(), logging.INFO),
        format="%(asctime)s [daylog] %(levelname)s %(message)s",
        stream=sys.stderr,
    )

    app = create_app(config)
    components = app.config["components"]
    retention_cfg = config["retention"]

    scheduler = None
    if retention_cfg["enabled"]:
        scheduler = RetentionScheduler(
            components["retention"],
            hour=retention_cfg["schedule_hour"],
            minute=retention_cfg["schedule_minute"],
            startup_delay=retention_cfg["startup_delay_seconds"],
            timezone=retention_cfg["timezone"],
        )
        scheduler.start()

    def _signal_handler(sig, _frame):
        logger.info("Shutdown signal received (signal %d), stopping...", sig)
        if scheduler is not None:
            scheduler.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    server = config["server"]
    logger.info("Server running at http://%s:%d", server["host"], server["port"])
    logger.info("Logs directory: %s", config["storage"]["logs_dir"])
    try:
        app.run(host=server["host"], port=server["port"], debug=server["debug"],
                threaded=True, use_reloader=False)
    finally:
        if scheduler is not None:
            scheduler.stop()


if __name__ == "__main__":
    main()
