#!/usr/bin/env python3
"""
Resilience run against a running cluster.

Usage:
    python scripts/run_resilience.py /ip4/127.0.0.1/tcp/9191 /ip4/127.0.0.1/tcp/9193
    python scripts/run_resilience.py --duration 120 --clients 3 <addresses...>
    python scripts/run_resilience.py --collect-logs --log-level DEBUG <addresses...>
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import httpx

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from raft_resilience.client.errors import ResilienceError
from raft_resilience.config import Settings, get_settings
from raft_resilience.diagnostics import (
    CollectorHandler,
    LogCollector,
    LogTransmitter,
    TransmitterHandler,
)
from raft_resilience.logging import get_logger, setup_logging
from raft_resilience.runtime import ResilienceOrchestrator, RunReport


async def run_clients(addresses: list[str], settings: Settings, clients: int) -> list[RunReport]:
    """Run independent clients side by side; the first failure fails all."""
    orchestrators = [ResilienceOrchestrator(addresses, settings) for _ in range(clients)]
    return await asyncio.gather(*(o.run() for o in orchestrators))


async def main_async(args: argparse.Namespace) -> int:
    overrides: dict = {"log_level": args.log_level.upper()}
    if args.duration is not None:
        overrides["duration_ms"] = int(args.duration * 1000)
    settings = get_settings().model_copy(update=overrides)

    collector: LogCollector | None = None
    handlers: list[logging.Handler] = []
    if args.collect_logs:
        collector = LogCollector.from_settings(settings)
        host, port = await collector.start()
        handlers.append(CollectorHandler(collector))
        print(f"Collecting logs on {host}:{port}", file=sys.stderr)
    elif settings.has_log_server:
        handlers.append(TransmitterHandler(LogTransmitter.from_settings(settings)))

    setup_logging(settings.log_level, settings.log_json, extra_handlers=handlers)
    logger = get_logger("run_resilience")

    exit_code = 0
    try:
        reports = await run_clients(args.addresses, settings, args.clients)
        print(json.dumps([r.to_dict() for r in reports], indent=2))
    # malformed addresses raise ValueError, unexpected HTTP failures httpx.HTTPError
    except (ResilienceError, ValueError, httpx.HTTPError) as e:
        logger.error("Resilience run FAILED: %s", e)
        exit_code = 1
        if collector is not None:
            await collector.dump()
    finally:
        if collector is not None:
            await collector.close()

    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a resilience test against a cluster")
    parser.add_argument("addresses", nargs="+", help="Cluster addresses, e.g. /ip4/127.0.0.1/tcp/9191")
    parser.add_argument("--duration", type=float, help="Run duration in seconds")
    parser.add_argument("--clients", type=int, default=1, help="Number of concurrent clients")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument(
        "--collect-logs",
        action="store_true",
        help="Capture logs and dump the backlog when the run fails",
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
