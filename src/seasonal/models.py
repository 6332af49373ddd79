"""Run-level result models returned by the ingestion orchestrator."""

from dataclasses import dataclass
from enum import Enum


class RunStatus(str, Enum):
    """Terminal status of one ingestion invocation."""

    COMPLETED = "completed"  # reached the end of the symbol list
    PAUSED = "paused"  # slice done, next invocation resumes
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"


class SymbolOutcome(str, Enum):
    """Result of processing one symbol."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class IngestionResult:
    """Summary of one run_ingestion_slice() invocation."""

    status: RunStatus
    processed_count: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    percent_complete: float = 0.0
    is_bootstrap: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status is not RunStatus.FAILED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "success": self.success,
            "processed_count": self.processed_count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "skipped_count": self.skipped_count,
            "percent_complete": self.percent_complete,
            "is_bootstrap": self.is_bootstrap,
            "error": self.error,
        }


@dataclass
class ProcessingStatus:
    """Read-only summary of the persisted processing state."""

    exists: bool
    is_processing: bool = False
    last_processed_symbol: str | None = None
    last_processed_index: int = -1
    total_symbols: int = 0
    percent_complete: int = 0
    started_at: int | None = None
    updated_at: int | None = None
    duration_seconds: int | None = None
    last_updated_seconds: int | None = None
    remaining_symbols: int = 0
