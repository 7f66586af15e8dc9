"""Core engine and utilities for rate-limited batch processing."""

from batchcall.core.aggregator import ResultAggregator
from batchcall.core.cancel import CancelSignal
from batchcall.core.engine import BatchScheduler, run_batch, run_batch_from_file
from batchcall.core.errors import (
    BatchCallError,
    ErrorKind,
    ItemResolutionError,
    ServiceError,
    ValidationError,
)
from batchcall.core.io import JsonlReportStore, ReportStore
from batchcall.core.models import (
    ExecutionOutcome,
    FilesConfig,
    JobReport,
    JobState,
    ProcessingStats,
    ProgressSnapshot,
    WorkItem,
)
from batchcall.core.progress import ProgressTracker
from batchcall.core.rate_limit import FREE, PAID, RATE_LIMIT_PRESETS, RateLimitPolicy, get_policy
from batchcall.core.worker import ExecutionWorker

__all__ = [
    # Processing functions
    "run_batch",
    "run_batch_from_file",
    # Components
    "BatchScheduler",
    "ExecutionWorker",
    "ProgressTracker",
    "ResultAggregator",
    "CancelSignal",
    # Configuration
    "RateLimitPolicy",
    "FREE",
    "PAID",
    "RATE_LIMIT_PRESETS",
    "get_policy",
    "FilesConfig",
    # Data model
    "WorkItem",
    "ExecutionOutcome",
    "ProgressSnapshot",
    "JobReport",
    "JobState",
    "ProcessingStats",
    # Persistence
    "ReportStore",
    "JsonlReportStore",
    # Errors
    "BatchCallError",
    "ErrorKind",
    "ValidationError",
    "ItemResolutionError",
    "ServiceError",
]
