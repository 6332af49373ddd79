"""Entry point for one ingestion invocation.

Meant to be fired periodically (cron, scheduler): each run loads the
persisted progress, processes the next slice of symbols and exits.

Component wiring order (in _build_components):
1. RetryPolicy (from RetrySettings)
2. ResilientFetcher + BinanceClient (market data)
3. CandleStore, ProgressTracker (persistence)
4. GapDetector, MonthlyAggregator
5. IngestionOrchestrator
"""

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any

import httpx

from seasonal.config import AppSettings
from seasonal.data.database import CandleDatabase
from seasonal.data.gaps import GapDetector
from seasonal.data.monthly import MonthlyAggregator
from seasonal.data.progress import ProgressTracker
from seasonal.data.store import CandleStore
from seasonal.exchange.binance_client import BinanceClient
from seasonal.exchange.fetch import ResilientFetcher
from seasonal.logging import get_logger, setup_logging
from seasonal.models import RunStatus
from seasonal.orchestrator import IngestionOrchestrator


def _build_components(
    settings: AppSettings,
    database: CandleDatabase,
    http: httpx.AsyncClient,
) -> dict[str, Any]:
    """Build the ingestion dependency graph from settings.

    Returns:
        Dict mapping component names to instances.
    """
    policy = settings.retry.to_policy()

    fetcher = ResilientFetcher(http, policy)
    client = BinanceClient(fetcher, settings.exchange)

    store = CandleStore(database)
    tracker = ProgressTracker(
        database,
        stale_after_ms=settings.ingestion.stale_run_minutes * 60 * 1000,
        atomic_claim=settings.ingestion.atomic_claim,
    )

    orchestrator = IngestionOrchestrator(
        client=client,
        store=store,
        tracker=tracker,
        gap_detector=GapDetector(store, policy),
        aggregator=MonthlyAggregator(store, policy),
        settings=settings.ingestion,
        policy=policy,
        quote_asset=settings.exchange.quote_asset,
    )

    return {
        "policy": policy,
        "client": client,
        "store": store,
        "tracker": tracker,
        "orchestrator": orchestrator,
    }


async def run(status_only: bool = False) -> int:
    """Run one ingestion slice (or report status). Returns a process exit code."""
    settings = AppSettings()
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("seasonal.main")

    async with CandleDatabase(settings.ingestion.db_path) as database:
        async with httpx.AsyncClient(timeout=settings.exchange.request_timeout) as http:
            components = _build_components(settings, database, http)
            orchestrator: IngestionOrchestrator = components["orchestrator"]

            if status_only:
                status = await orchestrator.get_processing_status()
                print(json.dumps(asdict(status), indent=2))
                return 0

            result = await orchestrator.run_ingestion_slice()

    logger.info("ingestion_invocation_finished", **result.to_dict())
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.status is RunStatus.FAILED else 0


def main() -> None:
    """Synchronous entry point."""
    parser = argparse.ArgumentParser(
        prog="seasonal",
        description="Ingest daily candles and roll them up into monthly returns.",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="print the persisted processing status and exit",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(run(status_only=args.status)))


if __name__ == "__main__":
    main()
