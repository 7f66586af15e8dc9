"""
batchcall: Analyze long lists of items against a rate-limited service, in calm groups.

A Python library for bulk calls to an external analysis service with:
- Group-based rate limiting (max concurrent calls and a delay between groups)
- Named rate limit presets for free and paid API tiers
- Per-item failure isolation with typed error outcomes
- Progress callbacks and cooperative cancellation
- Results reported in input order, optionally saved as JSONL

Example:
    >>> from batchcall import run_batch
    >>> from batchcall.services import GeminiService, HttpResolver
    >>>
    >>> service = GeminiService(api_key="...", model="gemini-flash-latest")
    >>>
    >>> report = await run_batch(
    ...     items=["https://example.com/a.png", "https://example.com/b.png"],
    ...     instruction="Describe the product in the image as JSON",
    ...     service=service,
    ...     policy="free",
    ...     resolver=HttpResolver(),
    ... )
"""

from batchcall.core.cancel import CancelSignal
from batchcall.core.engine import run_batch, run_batch_from_file
from batchcall.core.errors import (
    ErrorKind,
    ItemResolutionError,
    ServiceError,
    ValidationError,
)
from batchcall.core.models import (
    ExecutionOutcome,
    FilesConfig,
    JobReport,
    JobState,
    ProcessingStats,
    ProgressSnapshot,
)
from batchcall.core.rate_limit import RateLimitPolicy, get_policy
from batchcall.services import AnalysisService, get_service, register_service

__version__ = "0.1.0"

__all__ = [
    # Main processing functions
    "run_batch",
    "run_batch_from_file",
    # Configuration
    "RateLimitPolicy",
    "get_policy",
    "FilesConfig",
    "CancelSignal",
    # Result models
    "JobReport",
    "JobState",
    "ExecutionOutcome",
    "ProcessingStats",
    "ProgressSnapshot",
    # Errors
    "ErrorKind",
    "ValidationError",
    "ItemResolutionError",
    "ServiceError",
    # Service interface
    "AnalysisService",
    "get_service",
    "register_service",
    # Version
    "__version__",
]
