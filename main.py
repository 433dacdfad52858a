"""CLI entry point: python main.py --port 3000 --dependencies db queue"""

import argparse
import asyncio
import logging
import sys
import time

from src.lifecycle import LifecycleController, define_lifecycle
from src.logging_config import LoggingConfig, configure_logging

logger = logging.getLogger(__name__)


def build_lifecycle(args: argparse.Namespace) -> LifecycleController:
    """Wire a demo service whose only work is counting health pings."""
    state = {"started_at": 0.0, "pings": 0}

    async def on_init():
        state["started_at"] = time.time()
        logger.info("Demo service initialized")

    async def on_ping():
        state["pings"] += 1
        return {
            "pings": state["pings"],
            "uptimeSeconds": round(time.time() - state["started_at"], 3),
        }

    async def on_shutdown():
        logger.info("Demo service served %d health pings", state["pings"])

    lifecycle = define_lifecycle(
        service_name=args.service_name,
        dependencies=args.dependencies,
        health_port=args.port,
        health_host=args.host,
        on_init=on_init,
        on_ping=on_ping,
        on_shutdown=on_shutdown,
    )
    lifecycle.on("ready", lambda: logger.info("Service ready on port %d", args.port))
    return lifecycle


async def run(args: argparse.Namespace) -> None:
    lifecycle = build_lifecycle(args)
    await lifecycle.init()
    await lifecycle.wait_until_done()


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run a demo service under the lifecycle orchestrator"
    )
    parser.add_argument(
        "--port", type=int, default=3000,
        help="Health check port (default: 3000)"
    )
    parser.add_argument(
        "--host", default="0.0.0.0",
        help="Health check bind address (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--dependencies", nargs="*", default=[],
        help="Dependency names to track"
    )
    parser.add_argument(
        "--service-name", default="demo-service",
        help="Service name used in logs"
    )
    args = parser.parse_args()

    configure_logging(LoggingConfig(service_name=args.service_name))

    try:
        asyncio.run(run(args))
    except Exception:
        logger.exception("Service failed to start")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
