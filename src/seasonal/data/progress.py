"""Persisted progress tracking for resumable ingestion runs.

A single processing_state row (the latest id) records which symbol index
of the current run last completed and whether a run is active. Each
periodic invocation loads it, claims the run, advances it and releases it,
so a stateless process resumes exactly where the previous one stopped.

The default claim is a cooperative check-then-set: two invocations that
both read an idle state before either writes can run concurrently. The
opt-in atomic claim closes that window with a conditional UPDATE.
"""

import time
from collections.abc import Callable

from seasonal.data.database import CandleDatabase
from seasonal.data.models import ProcessingState
from seasonal.logging import get_logger

logger = get_logger(__name__)

_SELECT_LATEST_SQL = (
    "SELECT id, last_processed_symbol, last_processed_index, total_symbols, "
    "is_processing, started_at, updated_at "
    "FROM processing_state ORDER BY id DESC LIMIT 1"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _row_to_state(row: dict) -> ProcessingState:
    return ProcessingState(
        id=row["id"],
        last_processed_symbol=row["last_processed_symbol"],
        last_processed_index=(
            row["last_processed_index"] if row["last_processed_index"] is not None else -1
        ),
        total_symbols=row["total_symbols"] or 0,
        is_processing=bool(row["is_processing"]),
        started_at=row["started_at"],
        updated_at=row["updated_at"],
    )


class ProgressTracker:
    """Loads, saves and claims the persisted ProcessingState.

    Args:
        database: Connected CandleDatabase.
        stale_after_ms: Age after which a claimed run counts as abandoned.
        atomic_claim: Use a compare-and-swap UPDATE instead of the
            cooperative check when claiming a run.
        clock: Returns the current time in Unix milliseconds.
    """

    def __init__(
        self,
        database: CandleDatabase,
        stale_after_ms: int = 10 * 60 * 1000,
        atomic_claim: bool = False,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._database = database
        self._stale_after_ms = stale_after_ms
        self._atomic_claim = atomic_claim
        self._clock = clock

    async def load(self) -> ProcessingState:
        """Return the latest state, creating the table and a zeroed row if absent."""
        await self._database.ensure_processing_state_table()
        rows = await self._database.execute(_SELECT_LATEST_SQL)
        if rows:
            return _row_to_state(rows[0])

        state = ProcessingState(updated_at=self._clock())
        await self._database.execute(
            "INSERT INTO processing_state "
            "(last_processed_symbol, last_processed_index, total_symbols, "
            "is_processing, started_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
            (None, -1, 0, 0, None, state.updated_at),
        )
        rows = await self._database.execute(_SELECT_LATEST_SQL)
        logger.info("processing_state_initialized")
        return _row_to_state(rows[0])

    async def peek(self) -> ProcessingState | None:
        """Read the latest state without creating anything. None if absent."""
        rows = await self._database.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'processing_state'"
        )
        if not rows:
            return None
        rows = await self._database.execute(_SELECT_LATEST_SQL)
        if not rows:
            return None
        return _row_to_state(rows[0])

    async def save(self, state: ProcessingState) -> None:
        """Persist state into its row, stamping updated_at."""
        if state.id is None:
            loaded = await self.load()
            state.id = loaded.id

        state.updated_at = self._clock()
        await self._database.execute(
            "UPDATE processing_state SET last_processed_symbol = ?, "
            "last_processed_index = ?, total_symbols = ?, is_processing = ?, "
            "started_at = ?, updated_at = ? WHERE id = ?",
            (
                state.last_processed_symbol,
                state.last_processed_index,
                state.total_symbols,
                1 if state.is_processing else 0,
                state.started_at,
                state.updated_at,
                state.id,
            ),
        )

    def is_stale(self, state: ProcessingState, now_ms: int | None = None) -> bool:
        """True iff a run is marked active but started too long ago.

        An active run without a start time cannot be aged and is stale.
        """
        if not state.is_processing:
            return False
        if state.started_at is None:
            return True
        now = self._clock() if now_ms is None else now_ms
        return now - state.started_at > self._stale_after_ms

    async def claim(self, state: ProcessingState, now_ms: int | None = None) -> bool:
        """Mark the run as active. Returns False if another invocation holds it.

        Cooperative mode always succeeds; the caller has already checked
        is_processing/is_stale on the state it loaded.
        """
        now = self._clock() if now_ms is None else now_ms

        if not self._atomic_claim:
            state.is_processing = True
            state.started_at = now
            await self.save(state)
            return True

        if state.id is None:
            state.id = (await self.load()).id
        claimed = await self._database.execute_update(
            "UPDATE processing_state SET is_processing = 1, started_at = ?, updated_at = ? "
            "WHERE id = ? AND (is_processing = 0 OR started_at IS NULL OR started_at < ?)",
            (now, now, state.id, now - self._stale_after_ms),
        )
        if claimed != 1:
            logger.info("processing_claim_lost", state_id=state.id)
            return False

        state.is_processing = True
        state.started_at = now
        state.updated_at = now
        return True

    async def reset(self, state: ProcessingState) -> None:
        """Return the run to idle: nothing processed, not processing."""
        state.last_processed_index = -1
        state.is_processing = False
        await self.save(state)

    async def release(self, state: ProcessingState) -> None:
        """Best-effort clear of is_processing; never raises."""
        state.is_processing = False
        try:
            await self.save(state)
        except Exception as e:
            logger.error("processing_state_release_failed", error=str(e))
