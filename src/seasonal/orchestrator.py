"""Ingestion orchestrator -- one resumable slice of daily-candle ingestion per call.

Each call of run_ingestion_slice() walks the run state machine:

    ClaimingRun -> FetchingUniverse -> UpdatingRegistry -> CheckingBootstrap
    -> SelectingSymbols -> ProcessingSymbol (x N) -> Done | Paused

and persists ProcessingState after every symbol, so the next periodic
invocation resumes at last_processed_index + 1. Only a bounded number of
symbols (symbols_per_invocation) is processed per call to keep each
invocation short.

Error policy:
- Failures local to one symbol, gap or month are logged and counted.
- Failures listing the instrument universe or counting stored candles are
  fatal to the run: state is released and a FAILED result returned.
- Any other unexpected exception also releases the state first, so a
  crash never holds the run beyond the staleness window.
"""

import asyncio
import time
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from functools import partial

import structlog

from seasonal.analytics.seasonality import SeasonalityReport, build_seasonality
from seasonal.config import IngestionSettings
from seasonal.data.gaps import DAY_MS, GapDetector
from seasonal.data.models import DailyCandle, MonthlyCandle, ProcessingState, Symbol
from seasonal.data.monthly import MonthlyAggregator
from seasonal.data.progress import ProgressTracker
from seasonal.data.store import CandleStore
from seasonal.data.universe import select_bootstrap, select_universe
from seasonal.exceptions import StorageError
from seasonal.exchange.client import MarketDataClient
from seasonal.exchange.types import Instrument
from seasonal.logging import get_logger
from seasonal.models import IngestionResult, ProcessingStatus, RunStatus, SymbolOutcome
from seasonal.retry import RetryPolicy, Sleep, with_storage_retry

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def years_before(now_ms: int, years: int) -> int:
    """The same UTC instant `years` calendar years earlier (Feb 29 -> Feb 28)."""
    now = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
    try:
        then = now.replace(year=now.year - years)
    except ValueError:
        then = now.replace(year=now.year - years, day=28)
    return int(then.timestamp() * 1000)


def instrument_to_symbol(instrument: Instrument) -> Symbol:
    return Symbol(
        symbol=instrument.symbol,
        base_asset=instrument.base_asset,
        quote_asset=instrument.quote_asset,
    )


def _outcome(ok: bool) -> SymbolOutcome:
    return SymbolOutcome.SUCCESS if ok else SymbolOutcome.ERROR


def _round_half_up(value: Decimal, places: str) -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _percent(done: int, total: int) -> float:
    if total <= 0:
        return 100.0
    return float(_round_half_up(Decimal(done) * 100 / Decimal(total), "0.1"))


class IngestionOrchestrator:
    """Top-level control loop of the ingestion engine.

    All collaborators are injected; the orchestrator holds no run state of
    its own between calls. ProcessingState is loaded from and written back
    to the ProgressTracker on every invocation.
    """

    def __init__(
        self,
        client: MarketDataClient,
        store: CandleStore,
        tracker: ProgressTracker,
        gap_detector: GapDetector,
        aggregator: MonthlyAggregator,
        settings: IngestionSettings,
        policy: RetryPolicy,
        quote_asset: str = "USDT",
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._client = client
        self._store = store
        self._tracker = tracker
        self._gap_detector = gap_detector
        self._aggregator = aggregator
        self._settings = settings
        self._policy = policy
        self._quote_asset = quote_asset
        self._sleep = sleep
        self._clock = clock

    # ──────────────────────────────────────────────
    # Run state machine
    # ──────────────────────────────────────────────

    async def run_ingestion_slice(self) -> IngestionResult:
        """Process the next slice of symbols and report progress.

        Never raises: fatal problems are returned as a FAILED result.
        """
        now = self._clock()

        # ClaimingRun
        try:
            state = await self._tracker.load()
        except Exception as e:
            logger.error("processing_state_load_failed", error=str(e), exc_info=True)
            return IngestionResult(status=RunStatus.FAILED, error=f"Failed to load processing state: {e}")

        if state.is_processing:
            if not self._tracker.is_stale(state, now):
                logger.info(
                    "ingestion_already_running",
                    started_at=state.started_at,
                    last_processed_index=state.last_processed_index,
                )
                percent = (
                    _percent(state.last_processed_index + 1, state.total_symbols)
                    if state.total_symbols > 0
                    else 0.0
                )
                return IngestionResult(status=RunStatus.ALREADY_RUNNING, percent_complete=percent)
            logger.warning(
                "stale_run_takeover",
                started_at=state.started_at,
                age_seconds=round((now - (state.started_at or now)) / 1000),
            )
            state.is_processing = False

        try:
            claimed = await self._tracker.claim(state, now)
        except Exception as e:
            logger.error("processing_claim_failed", error=str(e), exc_info=True)
            return IngestionResult(status=RunStatus.FAILED, error=f"Failed to claim run: {e}")
        if not claimed:
            return IngestionResult(status=RunStatus.ALREADY_RUNNING)

        try:
            return await self._run_claimed(state)
        except Exception as e:
            logger.error("ingestion_run_failed", error=str(e), exc_info=True)
            await self._tracker.release(state)
            return IngestionResult(status=RunStatus.FAILED, error=str(e))

    async def _run_claimed(self, state: ProcessingState) -> IngestionResult:
        # FetchingUniverse
        try:
            instruments = await self._client.list_instruments()
        except Exception as e:
            logger.error("universe_fetch_failed", error=str(e))
            await self._tracker.release(state)
            return IngestionResult(
                status=RunStatus.FAILED,
                error=f"Failed to fetch instrument universe: {e}",
            )
        universe = select_universe(instruments, self._quote_asset)
        logger.info("universe_selected", listed=len(instruments), selected=len(universe))

        # UpdatingRegistry
        await self._update_registry(universe)

        # CheckingBootstrap
        try:
            existing = await with_storage_retry(
                self._policy,
                self._store.count_daily_candles,
                sleep=self._sleep,
                label="count_daily_candles",
            )
        except Exception as e:
            logger.error("bootstrap_check_failed", error=str(e))
            await self._tracker.release(state)
            return IngestionResult(
                status=RunStatus.FAILED,
                error=f"Failed to check existing data: {e}",
            )
        is_bootstrap = existing == 0

        # SelectingSymbols
        working = (
            select_bootstrap(universe, self._settings.popular_symbols)
            if is_bootstrap
            else universe
        )
        total = len(working)
        start = self.resume_index(state, total)
        end = min(start + max(1, self._settings.symbols_per_invocation), total)
        state.total_symbols = total
        await self._tracker.save(state)

        logger.info(
            "symbol_slice_selected",
            is_bootstrap=is_bootstrap,
            total_symbols=total,
            start_index=start,
            end_index=end,
        )

        if total == 0:
            await self._tracker.reset(state)
            return IngestionResult(
                status=RunStatus.COMPLETED,
                percent_complete=100.0,
                is_bootstrap=is_bootstrap,
            )

        # ProcessingSymbol
        result = IngestionResult(status=RunStatus.PAUSED, is_bootstrap=is_bootstrap)
        for index in range(start, end):
            symbol = working[index].symbol
            outcome = await self._process_symbol_safely(symbol, is_bootstrap)

            result.processed_count += 1
            if outcome is SymbolOutcome.SUCCESS:
                result.success_count += 1
            elif outcome is SymbolOutcome.SKIPPED:
                result.skipped_count += 1
            else:
                result.error_count += 1

            state.last_processed_symbol = symbol
            state.last_processed_index = index
            await self._tracker.save(state)

            if index < end - 1:
                await self._sleep(self._settings.symbol_delay)

        # Done / Paused
        result.percent_complete = _percent(end, total)
        if end >= total:
            await self._tracker.reset(state)
            result.status = RunStatus.COMPLETED
        else:
            state.is_processing = False
            await self._tracker.save(state)

        logger.info(
            "ingestion_slice_complete",
            status=result.status.value,
            processed=result.processed_count,
            succeeded=result.success_count,
            errors=result.error_count,
            skipped=result.skipped_count,
            percent_complete=result.percent_complete,
        )
        return result

    @staticmethod
    def resume_index(state: ProcessingState, total: int) -> int:
        """Index to start this invocation at: one past the last completed symbol."""
        candidate = state.last_processed_index + 1
        if 0 <= candidate < total:
            return candidate
        return 0

    async def _update_registry(self, universe: list[Instrument]) -> None:
        """Upsert the universe into the symbol registry in small paced batches."""
        batch_size = max(1, self._settings.registry_batch_size)
        total_batches = (len(universe) + batch_size - 1) // batch_size
        failed = 0

        for batch_number, offset in enumerate(range(0, len(universe), batch_size), 1):
            logger.debug(
                "registry_batch",
                batch=batch_number,
                total_batches=total_batches,
            )
            for instrument in universe[offset : offset + batch_size]:
                try:
                    await self._store.upsert_symbol(instrument_to_symbol(instrument))
                except Exception as e:
                    failed += 1
                    logger.error(
                        "symbol_registry_update_failed",
                        symbol=instrument.symbol,
                        error=str(e),
                    )
                    if isinstance(e, StorageError) and e.rate_limited:
                        await self._sleep(self._policy.storage_cooldown)
                await self._sleep(self._settings.registry_item_delay)

            if batch_number < total_batches:
                await self._sleep(self._settings.registry_batch_delay)

        logger.info("symbol_registry_updated", symbols=len(universe), failed=failed)

    # ──────────────────────────────────────────────
    # Per-symbol processing
    # ──────────────────────────────────────────────

    async def _process_symbol_safely(self, symbol: str, is_bootstrap: bool) -> SymbolOutcome:
        try:
            return await self.process_symbol(symbol, is_bootstrap)
        except Exception as e:
            logger.error("symbol_processing_failed", symbol=symbol, error=str(e), exc_info=True)
            return SymbolOutcome.ERROR

    async def process_symbol(self, symbol: str, is_bootstrap: bool = False) -> SymbolOutcome:
        """Bring one symbol's daily candles up to date and rebuild its months.

        - no stored data, or bootstrap mode: fetch the full lookback window
        - newest candle within the freshness threshold: skip
        - otherwise backfill detected gaps, or the small incremental window
          since the newest candle when no gap is found
        Fetch errors propagate to the caller. A failed gap fetch, a candle
        batch that could not be stored or a failed monthly rebuild is logged,
        the remaining work still runs, and the outcome is ERROR.
        """
        with structlog.contextvars.bound_contextvars(symbol=symbol):
            now = self._clock()
            lookback_start = years_before(now, self._settings.lookback_years)
            last_ts = await self._last_timestamp(symbol)

            if last_ts is None or is_bootstrap:
                logger.info("fetching_full_history", since_ms=lookback_start, is_bootstrap=is_bootstrap)
                candles = await self._client.fetch_daily_history(
                    symbol, lookback_start, now, self._settings.history_page_limit
                )
                stored = await self._store_candles(symbol, candles)
                rebuilt = await self._rebuild_monthly(symbol)
                return _outcome(stored and rebuilt)

            if last_ts >= now - self._settings.fresh_threshold_days * DAY_MS:
                logger.info("symbol_up_to_date", last_timestamp=last_ts)
                return SymbolOutcome.SKIPPED

            gaps = await self._gap_detector.find_gaps(symbol, max(lookback_start, last_ts), now)

            if not gaps:
                logger.info("fetching_incremental", since_ms=last_ts + 1)
                candles = await self._client.fetch_daily_candles(
                    symbol, last_ts + 1, None, self._settings.incremental_limit
                )
                stored = await self._store_candles(symbol, candles)
                rebuilt = await self._rebuild_monthly(symbol)
                return _outcome(stored and rebuilt)

            failed_gaps = 0
            all_stored = True
            for gap in gaps:
                logger.info("filling_gap", start_ms=gap.start, end_ms=gap.end)
                try:
                    candles = await self._client.fetch_daily_history(
                        symbol, gap.start, gap.end, self._settings.history_page_limit
                    )
                except Exception as e:
                    failed_gaps += 1
                    logger.error("gap_fill_failed", start_ms=gap.start, end_ms=gap.end, error=str(e))
                    continue
                if not await self._store_candles(symbol, candles):
                    all_stored = False

            rebuilt = await self._rebuild_monthly(symbol)
            return _outcome(failed_gaps == 0 and all_stored and rebuilt)

    async def _last_timestamp(self, symbol: str) -> int | None:
        try:
            return await self._store.get_last_daily_timestamp(symbol)
        except StorageError as e:
            logger.error("last_timestamp_lookup_failed", error=str(e))
            if e.rate_limited:
                await self._sleep(self._policy.storage_cooldown)
            return None

    async def _store_candles(self, symbol: str, candles: list[DailyCandle]) -> bool:
        """Upsert candles in paced batches. True iff every candle was stored.

        A throttled batch waits once and retries; other failed batches are
        logged and skipped.
        """
        batch_size = max(1, self._settings.candle_batch_size)
        stored = 0

        for offset in range(0, len(candles), batch_size):
            batch = candles[offset : offset + batch_size]
            try:
                stored += await with_storage_retry(
                    self._policy,
                    partial(self._store.upsert_daily_candles, batch),
                    sleep=self._sleep,
                    label="upsert_daily_candles",
                )
            except StorageError as e:
                logger.error(
                    "candle_batch_store_failed",
                    first_timestamp=batch[0].timestamp,
                    size=len(batch),
                    error=str(e),
                )
            if offset + batch_size < len(candles):
                await self._sleep(self._settings.candle_batch_delay)

        logger.info("daily_candles_stored", fetched=len(candles), stored=stored)
        return stored == len(candles)

    async def _rebuild_monthly(self, symbol: str) -> bool:
        try:
            await self._aggregator.rebuild_monthly(symbol)
        except StorageError as e:
            logger.error("monthly_rebuild_failed", error=str(e))
            if e.rate_limited:
                await self._sleep(self._policy.storage_cooldown)
            return False
        return True

    # ──────────────────────────────────────────────
    # Read-only queries
    # ──────────────────────────────────────────────

    async def get_processing_status(self) -> ProcessingStatus:
        """Summarize the persisted processing state without modifying it."""
        state = await self._tracker.peek()
        if state is None:
            return ProcessingStatus(exists=False)

        now = self._clock()
        done = state.last_processed_index + 1
        percent = (
            int(_round_half_up(Decimal(done) * 100 / Decimal(state.total_symbols), "1"))
            if state.total_symbols > 0
            else 0
        )

        duration = None
        last_updated = None
        if state.started_at is not None:
            if state.is_processing:
                duration = round((now - state.started_at) / 1000)
            elif state.updated_at is not None:
                duration = round((state.updated_at - state.started_at) / 1000)
                last_updated = round((now - state.updated_at) / 1000)

        return ProcessingStatus(
            exists=True,
            is_processing=state.is_processing,
            last_processed_symbol=state.last_processed_symbol,
            last_processed_index=state.last_processed_index,
            total_symbols=state.total_symbols,
            percent_complete=percent,
            started_at=state.started_at,
            updated_at=state.updated_at,
            duration_seconds=duration,
            last_updated_seconds=last_updated,
            remaining_symbols=state.total_symbols - done,
        )

    async def get_symbol_status(self, symbol: str) -> int | None:
        """Open time of the newest stored daily candle for symbol, or None."""
        return await self._store.get_last_daily_timestamp(symbol)

    async def list_active_symbols(self) -> list[str]:
        """Names of all active registered symbols, ascending."""
        return [s.symbol for s in await self._store.get_symbols(active_only=True)]

    async def get_monthly_history(self, symbol: str) -> list[MonthlyCandle]:
        """All monthly candles of symbol, ascending by (year, month)."""
        return await self._store.get_monthly_candles(symbol)

    async def get_seasonality(self, symbol: str) -> SeasonalityReport:
        """Per-month average returns and heatmap for symbol."""
        return build_seasonality(await self.get_monthly_history(symbol))
