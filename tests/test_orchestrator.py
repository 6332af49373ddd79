"""Tests for the ingestion orchestrator.

Runs against a real SQLite store and an in-memory FakeMarketData exchange,
with sleep replaced by an AsyncMock and the clock pinned to NOW_MS.

Tests verify:
- a paused run resumes at last_processed_index + 1
- a run held for longer than the stale window is taken over; a live one is not
- universe fetch or existing-data check failure returns FAILED and releases the run
- a lost atomic claim returns ALREADY_RUNNING; a live run with no symbols reports 0%
- registry write errors are skipped, throttled ones wait the storage cooldown
- bootstrap mode only processes the popular-symbol allowlist
- reaching the end of the list resets progress to -1
- the universe keeps trading pairs in the quote asset only
- fresh symbols are skipped; stale ones are gap-filled or caught up incrementally
- per-symbol and per-gap errors are counted without stopping the run
- a throttled candle batch is retried once; unstored batches or a failed
  monthly rebuild make the symbol outcome ERROR
- an unexpected exception mid-run returns FAILED and releases the run
- a full BTCUSDT ingestion yields two years of days and chained monthly returns
- get_processing_status summarizes the persisted state without creating it,
  rounding percent half-up
"""

from collections.abc import Callable
from decimal import Decimal
from unittest.mock import AsyncMock, call, patch

import pytest

from seasonal.config import IngestionSettings
from seasonal.data.database import CandleDatabase
from seasonal.data.gaps import DAY_MS, GapDetector
from seasonal.data.models import Gap, ProcessingState
from seasonal.data.monthly import MonthlyAggregator
from seasonal.data.progress import ProgressTracker
from seasonal.data.store import CandleStore
from seasonal.exceptions import ServerError, StorageError
from seasonal.exchange.types import Instrument
from seasonal.models import RunStatus, SymbolOutcome
from seasonal.orchestrator import IngestionOrchestrator, years_before
from seasonal.retry import RetryPolicy


MINUTE_MS = 60_000
NOW_MS = 1_768_435_200_000  # 2026-01-15T00:00:00Z


def _instrument(symbol: str, quote: str = "USDT", status: str = "TRADING") -> Instrument:
    return Instrument(
        symbol=symbol,
        base_asset=symbol.removesuffix(quote),
        quote_asset=quote,
        status=status,
    )


TEN_SYMBOLS = [_instrument(f"S{i:02d}USDT") for i in range(10)]


@pytest.fixture
def make_orchestrator(
    database: CandleDatabase,
    store: CandleStore,
    policy: RetryPolicy,
    ingestion_settings: IngestionSettings,
    sleep: AsyncMock,
) -> Callable[..., IngestionOrchestrator]:
    """Factory wiring an orchestrator around the given fake exchange."""

    def _make(
        market,
        settings: IngestionSettings | None = None,
        gap_detector: GapDetector | None = None,
    ) -> IngestionOrchestrator:
        tracker = ProgressTracker(database, stale_after_ms=10 * MINUTE_MS, clock=lambda: NOW_MS)
        return IngestionOrchestrator(
            client=market,
            store=store,
            tracker=tracker,
            gap_detector=gap_detector or GapDetector(store, policy, sleep=sleep),
            aggregator=MonthlyAggregator(store, policy, sleep=sleep),
            settings=settings or ingestion_settings,
            policy=policy,
            sleep=sleep,
            clock=lambda: NOW_MS,
        )

    return _make


@pytest.fixture
def tracker(database: CandleDatabase) -> ProgressTracker:
    return ProgressTracker(database, stale_after_ms=10 * MINUTE_MS, clock=lambda: NOW_MS)


@pytest.fixture
def seed_candles(store: CandleStore, candle_factory) -> Callable:
    """Store one candle per day for symbol over [first_ms, last_ms]."""

    async def _seed(symbol: str, first_ms: int, last_ms: int) -> None:
        await store.upsert_daily_candles(
            [candle_factory(symbol, ts) for ts in range(first_ms, last_ms + 1, DAY_MS)]
        )

    return _seed


async def _set_state(tracker: ProgressTracker, **fields) -> None:
    state = await tracker.load()
    for name, value in fields.items():
        setattr(state, name, value)
    await tracker.save(state)


# ---------------------------------------------------------------------------
# Run state machine
# ---------------------------------------------------------------------------


class TestRunSlice:
    @pytest.mark.asyncio
    async def test_resumes_after_last_processed_index(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        tracker: ProgressTracker,
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)
        await seed_candles("S00USDT", NOW_MS, NOW_MS)
        await _set_state(tracker, last_processed_index=4, total_symbols=10)

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.PAUSED
        assert result.is_bootstrap is False
        assert result.processed_count == 1
        assert result.percent_complete == 60.0
        assert [call[0] for call in market.history_calls] == ["S05USDT"]
        state = await tracker.load()
        assert state.last_processed_index == 5
        assert state.last_processed_symbol == "S05USDT"
        assert state.is_processing is False

    @pytest.mark.asyncio
    async def test_takes_over_stale_run(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        tracker: ProgressTracker,
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)
        await seed_candles("S00USDT", NOW_MS, NOW_MS)
        await _set_state(
            tracker,
            is_processing=True,
            started_at=NOW_MS - 15 * MINUTE_MS,
            last_processed_index=2,
            total_symbols=10,
        )

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.PAUSED
        assert [call[0] for call in market.history_calls] == ["S03USDT"]
        assert (await tracker.load()).last_processed_index == 3

    @pytest.mark.asyncio
    async def test_live_run_is_left_alone(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)
        await _set_state(
            tracker,
            is_processing=True,
            started_at=NOW_MS - 5 * MINUTE_MS,
            last_processed_index=2,
            total_symbols=10,
        )

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.ALREADY_RUNNING
        assert result.success is True
        assert result.percent_complete == 30.0
        assert market.history_calls == []
        state = await tracker.load()
        assert state.is_processing is True
        assert state.started_at == NOW_MS - 5 * MINUTE_MS

    @pytest.mark.asyncio
    async def test_universe_failure_releases_run(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)
        market.list_error = ServerError("https://example.test/exchangeInfo", 503, 6)

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.FAILED
        assert result.success is False
        assert "instrument universe" in result.error
        assert (await tracker.load()).is_processing is False

    @pytest.mark.asyncio
    async def test_bootstrap_processes_popular_subset(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        market = fake_market_factory(
            [_instrument(s) for s in ("XRPUSDT", "BTCUSDT", "SOLUSDT", "ETHUSDT")]
        )

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.is_bootstrap is True
        assert result.status is RunStatus.PAUSED
        assert result.percent_complete == 50.0
        assert [call[0] for call in market.history_calls] == ["BTCUSDT"]
        state = await tracker.load()
        assert state.total_symbols == 2
        assert state.last_processed_index == 0

    @pytest.mark.asyncio
    async def test_completion_resets_progress(
        self,
        make_orchestrator,
        fake_market_factory,
        ingestion_settings: IngestionSettings,
        tracker: ProgressTracker,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT"), _instrument("ETHUSDT")])
        settings = ingestion_settings.model_copy(update={"symbols_per_invocation": 5})

        result = await make_orchestrator(market, settings=settings).run_ingestion_slice()

        assert result.status is RunStatus.COMPLETED
        assert result.processed_count == 2
        assert result.success_count == 2
        assert result.percent_complete == 100.0
        state = await tracker.load()
        assert state.last_processed_index == -1
        assert state.is_processing is False

    @pytest.mark.asyncio
    async def test_empty_universe_completes(
        self, make_orchestrator, fake_market_factory
    ) -> None:
        result = await make_orchestrator(fake_market_factory([])).run_ingestion_slice()

        assert result.status is RunStatus.COMPLETED
        assert result.percent_complete == 100.0
        assert result.processed_count == 0

    @pytest.mark.asyncio
    async def test_universe_filtering_feeds_registry(
        self, make_orchestrator, fake_market_factory
    ) -> None:
        market = fake_market_factory(
            [
                _instrument("BTCUSDT"),
                _instrument("ETHBTC", quote="BTC"),
                _instrument("LUNAUSDT", status="BREAK"),
            ]
        )
        orchestrator = make_orchestrator(market)

        await orchestrator.run_ingestion_slice()

        assert await orchestrator.list_active_symbols() == ["BTCUSDT"]

    @pytest.mark.asyncio
    async def test_symbol_error_is_counted_and_index_advances(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        tracker: ProgressTracker,
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)
        market.fail_symbols = {"S00USDT"}
        await seed_candles("S09USDT", NOW_MS, NOW_MS)

        result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.PAUSED
        assert result.error_count == 1
        assert result.success_count == 0
        assert (await tracker.load()).last_processed_index == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_releases_run(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)

        with patch.object(
            IngestionOrchestrator, "resume_index", side_effect=RuntimeError("boom")
        ):
            result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.FAILED
        assert result.error == "boom"
        assert (await tracker.load()).is_processing is False

    @pytest.mark.asyncio
    async def test_live_run_without_symbols_reports_zero(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        await _set_state(
            tracker, is_processing=True, started_at=NOW_MS - MINUTE_MS, total_symbols=0
        )

        result = await make_orchestrator(fake_market_factory(TEN_SYMBOLS)).run_ingestion_slice()

        assert result.status is RunStatus.ALREADY_RUNNING
        assert result.percent_complete == 0.0

    @pytest.mark.asyncio
    async def test_lost_atomic_claim_is_already_running(
        self, make_orchestrator, fake_market_factory
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)

        with patch.object(ProgressTracker, "claim", AsyncMock(return_value=False)):
            result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.ALREADY_RUNNING
        assert market.history_calls == []

    @pytest.mark.asyncio
    async def test_bootstrap_check_failure_releases_run(
        self,
        make_orchestrator,
        fake_market_factory,
        store: CandleStore,
        tracker: ProgressTracker,
    ) -> None:
        market = fake_market_factory(TEN_SYMBOLS)

        with patch.object(
            store, "count_daily_candles", AsyncMock(side_effect=StorageError("disk I/O error"))
        ):
            result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.FAILED
        assert "existing data" in result.error
        assert market.history_calls == []
        assert (await tracker.load()).is_processing is False

    @pytest.mark.asyncio
    async def test_throttled_registry_write_waits_and_run_continues(
        self,
        make_orchestrator,
        fake_market_factory,
        store: CandleStore,
        policy: RetryPolicy,
        sleep: AsyncMock,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT"), _instrument("ETHUSDT")])
        upsert = AsyncMock(side_effect=[StorageError("database is locked", rate_limited=True), None])

        with patch.object(store, "upsert_symbol", upsert):
            result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.PAUSED
        assert result.success_count == 1
        assert upsert.await_count == 2
        sleep.assert_any_await(policy.storage_cooldown)

    @pytest.mark.asyncio
    async def test_failed_registry_write_is_skipped_without_cooldown(
        self,
        make_orchestrator,
        fake_market_factory,
        store: CandleStore,
        policy: RetryPolicy,
        sleep: AsyncMock,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT"), _instrument("ETHUSDT")])
        upsert = AsyncMock(side_effect=StorageError("constraint failed"))

        with patch.object(store, "upsert_symbol", upsert):
            result = await make_orchestrator(market).run_ingestion_slice()

        assert result.status is RunStatus.PAUSED
        assert upsert.await_count == 2
        assert call(policy.storage_cooldown) not in sleep.await_args_list

    def test_resume_index_wraps_out_of_range(self) -> None:
        def resume(index: int, total: int) -> int:
            return IngestionOrchestrator.resume_index(
                ProcessingState(last_processed_index=index), total
            )

        assert resume(-1, 5) == 0
        assert resume(2, 5) == 3
        assert resume(4, 5) == 0
        assert resume(12, 5) == 0


# ---------------------------------------------------------------------------
# Per-symbol processing
# ---------------------------------------------------------------------------


class TestProcessSymbol:
    @pytest.mark.asyncio
    async def test_skips_fresh_symbol(
        self, make_orchestrator, fake_market_factory, seed_candles
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        await seed_candles("BTCUSDT", NOW_MS - 5 * DAY_MS, NOW_MS - DAY_MS)

        outcome = await make_orchestrator(market).process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.SKIPPED
        assert market.history_calls == []
        assert market.page_calls == []

    @pytest.mark.asyncio
    async def test_fills_trailing_gap(
        self, make_orchestrator, fake_market_factory, seed_candles, store: CandleStore
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        last = NOW_MS - 10 * DAY_MS
        await seed_candles("BTCUSDT", NOW_MS - 40 * DAY_MS, last)

        outcome = await make_orchestrator(market).process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.SUCCESS
        assert market.history_calls == [("BTCUSDT", last + DAY_MS, NOW_MS)]
        assert await store.get_last_daily_timestamp("BTCUSDT") == NOW_MS
        assert await store.count_daily_candles() == 41
        assert len(await store.get_monthly_candles("BTCUSDT")) == 2

    @pytest.mark.asyncio
    async def test_incremental_fetch_when_no_gaps(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        store: CandleStore,
        ingestion_settings: IngestionSettings,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        last = NOW_MS - 3 * DAY_MS
        await seed_candles("BTCUSDT", last, last)
        detector = AsyncMock(spec=GapDetector)
        detector.find_gaps.return_value = []

        orchestrator = make_orchestrator(market, gap_detector=detector)
        outcome = await orchestrator.process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.SUCCESS
        detector.find_gaps.assert_awaited_once_with(
            "BTCUSDT", max(years_before(NOW_MS, 2), last), NOW_MS
        )
        assert market.page_calls == [
            ("BTCUSDT", last + 1, None, ingestion_settings.incremental_limit)
        ]
        assert await store.get_last_daily_timestamp("BTCUSDT") == NOW_MS

    @pytest.mark.asyncio
    async def test_failed_gap_does_not_stop_other_gaps(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        candle_factory,
        store: CandleStore,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        await seed_candles("BTCUSDT", NOW_MS - 30 * DAY_MS, NOW_MS - 30 * DAY_MS)
        first = Gap(start=NOW_MS - 29 * DAY_MS, end=NOW_MS - 20 * DAY_MS)
        second = Gap(start=NOW_MS - 10 * DAY_MS, end=NOW_MS)
        detector = AsyncMock(spec=GapDetector)
        detector.find_gaps.return_value = [first, second]
        second_fill = [
            candle_factory("BTCUSDT", ts) for ts in range(second.start, second.end + 1, DAY_MS)
        ]
        failing_then_ok = AsyncMock(
            side_effect=[ServerError("https://example.test", 503, 6), second_fill]
        )

        with patch.object(market, "fetch_daily_history", failing_then_ok):
            orchestrator = make_orchestrator(market, gap_detector=detector)
            outcome = await orchestrator.process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.ERROR
        assert failing_then_ok.await_count == 2
        assert await store.count_daily_candles() == 1 + len(second_fill)
        assert await store.get_monthly_candles("BTCUSDT") != []

    @pytest.mark.asyncio
    async def test_full_history_for_new_symbol(
        self, make_orchestrator, fake_market_factory, store: CandleStore
    ) -> None:
        """Two years of BTCUSDT: 732 daily candles, 25 months, returns chained."""
        market = fake_market_factory([_instrument("BTCUSDT")])
        start = years_before(NOW_MS, 2)
        orchestrator = make_orchestrator(market)

        outcome = await orchestrator.process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.SUCCESS
        assert market.history_calls == [("BTCUSDT", start, NOW_MS)]
        timestamps = await store.get_daily_timestamps("BTCUSDT", 0, NOW_MS)
        assert len(timestamps) == 732
        assert timestamps[0] == start
        assert timestamps[-1] == NOW_MS

        months = await orchestrator.get_monthly_history("BTCUSDT")
        assert len(months) == 25
        assert (months[0].year, months[0].month) == (2024, 1)
        assert (months[-1].year, months[-1].month) == (2026, 1)
        assert months[0].return_pct is None
        assert all(m.return_pct is not None for m in months[1:])
        # Jan 31 2024 closes at 1031, Feb 29 2024 at 1060
        assert months[0].close == Decimal("1031")
        assert months[1].return_pct == (Decimal("1060") - Decimal("1031")) / Decimal("1031")

        assert await orchestrator.get_symbol_status("BTCUSDT") == NOW_MS
        report = await orchestrator.get_seasonality("BTCUSDT")
        assert report.years == [2024, 2025, 2026]

    @pytest.mark.asyncio
    async def test_unstored_candles_report_error(
        self, make_orchestrator, fake_market_factory, store: CandleStore
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])

        with patch.object(
            store,
            "upsert_daily_candles",
            AsyncMock(side_effect=StorageError("disk I/O error")),
        ):
            outcome = await make_orchestrator(market).process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.ERROR
        assert await store.count_daily_candles() == 0

    @pytest.mark.asyncio
    async def test_throttled_batch_waits_and_retries_once(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        store: CandleStore,
        policy: RetryPolicy,
        sleep: AsyncMock,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        await seed_candles("BTCUSDT", NOW_MS - 40 * DAY_MS, NOW_MS - 10 * DAY_MS)
        real_upsert = store.upsert_daily_candles
        attempts: list[int] = []

        async def locked_once(batch):
            attempts.append(len(batch))
            if len(attempts) == 1:
                raise StorageError("database is locked", rate_limited=True)
            return await real_upsert(batch)

        with patch.object(store, "upsert_daily_candles", AsyncMock(side_effect=locked_once)):
            outcome = await make_orchestrator(market).process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.SUCCESS
        assert attempts == [10, 10]
        sleep.assert_any_await(policy.storage_cooldown)
        assert await store.count_daily_candles() == 41

    @pytest.mark.asyncio
    async def test_failed_batch_is_skipped_and_reported(
        self,
        make_orchestrator,
        fake_market_factory,
        seed_candles,
        store: CandleStore,
        ingestion_settings: IngestionSettings,
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])
        await seed_candles("BTCUSDT", NOW_MS - 40 * DAY_MS, NOW_MS - 10 * DAY_MS)
        settings = ingestion_settings.model_copy(update={"candle_batch_size": 5})
        real_upsert = store.upsert_daily_candles
        attempts: list[int] = []

        async def first_batch_fails(batch):
            attempts.append(len(batch))
            if len(attempts) == 1:
                raise StorageError("disk I/O error")
            return await real_upsert(batch)

        with patch.object(
            store, "upsert_daily_candles", AsyncMock(side_effect=first_batch_fails)
        ):
            orchestrator = make_orchestrator(market, settings=settings)
            outcome = await orchestrator.process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.ERROR
        assert attempts == [5, 5]
        assert await store.count_daily_candles() == 31 + 5
        assert await store.get_last_daily_timestamp("BTCUSDT") == NOW_MS

    @pytest.mark.asyncio
    async def test_failed_monthly_rebuild_reports_error(
        self, make_orchestrator, fake_market_factory, store: CandleStore
    ) -> None:
        market = fake_market_factory([_instrument("BTCUSDT")])

        with patch.object(
            MonthlyAggregator,
            "rebuild_monthly",
            AsyncMock(side_effect=StorageError("disk I/O error")),
        ):
            outcome = await make_orchestrator(market).process_symbol("BTCUSDT")

        assert outcome is SymbolOutcome.ERROR
        assert await store.count_daily_candles() == 732
        assert await store.get_monthly_candles("BTCUSDT") == []


# ---------------------------------------------------------------------------
# Read-only queries
# ---------------------------------------------------------------------------


class TestProcessingStatus:
    @pytest.mark.asyncio
    async def test_no_state_row(
        self, make_orchestrator, fake_market_factory, database: CandleDatabase
    ) -> None:
        status = await make_orchestrator(fake_market_factory([])).get_processing_status()

        assert status.exists is False
        rows = await database.execute("SELECT COUNT(*) AS n FROM processing_state")
        assert rows[0]["n"] == 0

    @pytest.mark.asyncio
    async def test_active_run(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        await _set_state(
            tracker,
            is_processing=True,
            started_at=NOW_MS - 90_000,
            last_processed_symbol="ETHUSDT",
            last_processed_index=4,
            total_symbols=20,
        )

        status = await make_orchestrator(fake_market_factory([])).get_processing_status()

        assert status.exists is True
        assert status.is_processing is True
        assert status.last_processed_symbol == "ETHUSDT"
        assert status.percent_complete == 25
        assert status.remaining_symbols == 15
        assert status.duration_seconds == 90
        assert status.last_updated_seconds is None

    @pytest.mark.asyncio
    async def test_paused_run(
        self, make_orchestrator, fake_market_factory, database: CandleDatabase
    ) -> None:
        paused_at = NOW_MS - 120_000
        writer = ProgressTracker(database, clock=lambda: paused_at)
        state = await writer.load()
        state.started_at = paused_at - 30_000
        state.last_processed_index = 0
        state.total_symbols = 3
        await writer.save(state)

        status = await make_orchestrator(fake_market_factory([])).get_processing_status()

        assert status.is_processing is False
        assert status.percent_complete == 33
        assert status.duration_seconds == 30
        assert status.last_updated_seconds == 120
        assert status.remaining_symbols == 2

    @pytest.mark.asyncio
    async def test_percent_rounds_half_up(
        self, make_orchestrator, fake_market_factory, tracker: ProgressTracker
    ) -> None:
        """1 of 40 symbols is 2.5%, reported as 3."""
        await _set_state(tracker, last_processed_index=0, total_symbols=40)

        status = await make_orchestrator(fake_market_factory([])).get_processing_status()

        assert status.percent_complete == 3
        assert status.remaining_symbols == 39
