"""
Command entry point.

    resize-worker httpserver   receive JSON job payloads over HTTP and run them inline
    resize-worker watcher      watch the configured queues and run jobs on the worker pool
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import List, Optional

import uvicorn

from . import config
from .collector import Collector
from .dispatcher import Dispatcher
from .exceptions import ConfigurationError, QueueError
from .queues import SqsQueueClient, build_sqs_client
from .storage import S3ObjectStore, build_s3_client

logger = logging.getLogger(__name__)

USAGE = """
usage: resize-worker <command>

the commands are:

    httpserver  Work as HTTP server and receive JSON messages and process it
    watcher     Watch SQS queues and retrieve messages and process it
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="resize-worker", add_help=True)
    parser.add_argument("command", nargs="?", choices=["httpserver", "watcher"])
    return parser.parse_args(argv)


def run_httpserver(settings: config.Settings) -> None:
    settings.require_aws()
    logger.info("as httpserver on %s:%d", settings.host, settings.port)
    uvicorn.run("resize_worker.api:app", host=settings.host, port=settings.port, log_config=None)


def run_watcher(settings: config.Settings, store=None, queue_client=None) -> None:
    if not settings.queues:
        raise ConfigurationError("no queues configured; set QUEUES to a JSON list of queue names")
    store = store or S3ObjectStore(build_s3_client(settings))
    queue_client = queue_client or SqsQueueClient(build_sqs_client(settings))

    collector = Collector(
        queue_client,
        settings.queues,
        polling_interval=settings.polling_interval_seconds,
        visibility_timeout=settings.visibility_timeout_seconds,
    )
    logger.info("as watcher.. queues=%s", ", ".join(q.url for q in collector.queues))

    def handler(signum, frame):
        logger.info("Received signal %s, shutting down gracefully...", signum)
        collector.stop()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)

    dispatcher = Dispatcher.create(
        settings.workers,
        store,
        queue_client,
        ack_policy=settings.ack_policy,
        inbox_size=settings.worker_inbox_size,
        quality=settings.jpeg_quality,
    )
    dispatcher.start()
    for job in collector:
        dispatcher.assign(job)
    dispatcher.stop()
    logger.info("terminated")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.command is None:
        print(USAGE)
        return 0

    try:
        settings = config.get_settings()
        logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
        if args.command == "httpserver":
            run_httpserver(settings)
        else:
            run_watcher(settings)
    except (ConfigurationError, QueueError) as exc:
        logging.getLogger(__name__).critical("fatal: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
