from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, overload

from batchcall.core.errors import ErrorKind
from batchcall.utils import JSONValue


class JobState(str, Enum):
    """Lifecycle of one job: NOT_STARTED -> RUNNING -> COMPLETED | CANCELLED."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WorkItem:
    """
    One unit of input for the analysis service.

    Attributes:
        ref (str): Opaque reference to the thing being analyzed (identifier or URL)
        instruction (str): Instruction text applied to the item
        position (int): Index of the item in the caller's input list
    """

    ref: str
    instruction: str
    position: int


@dataclass
class FilesConfig:
    """
    Configuration for output file paths.

    Attributes:
        save_file (str): Path to save successful outcomes (JSONL format)
        error_file (str): Path to save failed and cancelled outcomes (JSONL format)
    """

    save_file: str
    error_file: str


@dataclass(frozen=True)
class ExecutionOutcome:
    """
    Result of processing a single work item.

    Exactly one of ``result`` (on success) or ``error_kind``/``error_message``
    (on failure) is set.

    Attributes:
        item (str): Reference of the originating work item
        position (int): Index of the work item in the input list
        success (bool): Whether the analysis call succeeded
        result (JSONValue): Opaque service result (success only)
        error_kind (Optional[str]): One of the ErrorKind values (failure only)
        error_message (Optional[str]): Human readable failure description
        duration_seconds (float): Time spent on the item
        rate_limited (bool): Whether the service rejected the call with a rate limit
    """

    item: str
    position: int
    success: bool
    result: JSONValue = None
    error_kind: str | None = None
    error_message: str | None = None
    duration_seconds: float = 0.0
    rate_limited: bool = False

    @classmethod
    def succeeded(
        cls, item: WorkItem, result: JSONValue, duration_seconds: float = 0.0
    ) -> "ExecutionOutcome":
        return cls(
            item=item.ref,
            position=item.position,
            success=True,
            result=result,
            duration_seconds=duration_seconds,
        )

    @classmethod
    def failed(
        cls,
        item: WorkItem,
        kind: ErrorKind,
        message: str,
        duration_seconds: float = 0.0,
        rate_limited: bool = False,
    ) -> "ExecutionOutcome":
        return cls(
            item=item.ref,
            position=item.position,
            success=False,
            error_kind=kind.value,
            error_message=message,
            duration_seconds=duration_seconds,
            rate_limited=rate_limited,
        )

    @classmethod
    def cancelled(cls, item: WorkItem) -> "ExecutionOutcome":
        return cls.failed(item, ErrorKind.CANCELLED, "Job cancelled before the item started")

    def to_dict(self) -> dict[str, Any]:
        """Render the outcome as a plain JSON-compatible dict."""
        if self.success:
            return {"item": self.item, "success": True, "result": self.result}
        return {
            "item": self.item,
            "success": False,
            "errorKind": self.error_kind,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class ProgressSnapshot:
    """
    Progress of a job at one group boundary.

    Attributes:
        completed (int): Number of items with a final outcome
        total (int): Number of items in the job
        in_flight (tuple[str, ...]): References of items currently running
        group_index (int): Index of the group the snapshot refers to
    """

    completed: int
    total: int
    in_flight: tuple[str, ...] = ()
    group_index: int = 0


@dataclass
class ProcessingStats:
    """
    Statistics from a job.

    Attributes:
        total_items (int): Number of items submitted
        successful (int): Number of items that succeeded
        failed (int): Number of items that failed (excluding cancelled ones)
        cancelled (int): Number of items never started because of cancellation
        resolution_errors (int): Failures caused by item resolution
        service_errors (int): Failures caused by the analysis service
        rate_limit_errors (int): Service failures reported as rate limits
        groups_run (int): Number of groups actually executed
        duration_seconds (float): Total wall clock time
    """

    total_items: int = 0
    successful: int = 0
    failed: int = 0
    cancelled: int = 0
    resolution_errors: int = 0
    service_errors: int = 0
    rate_limit_errors: int = 0
    groups_run: int = 0
    duration_seconds: float = 0.0


@dataclass
class JobReport:
    """
    Ordered outcomes of a job, one per input item in input order.

    Attributes:
        outcomes (list[ExecutionOutcome]): Outcomes in input order
        state (JobState): Final state of the job
        stats (ProcessingStats): Job statistics
    """

    outcomes: list[ExecutionOutcome] = field(default_factory=list)
    state: JobState = JobState.COMPLETED
    stats: ProcessingStats = field(default_factory=ProcessingStats)

    def __len__(self) -> int:
        return len(self.outcomes)

    def __iter__(self) -> Iterator[ExecutionOutcome]:
        return iter(self.outcomes)

    @overload
    def __getitem__(self, index: int) -> ExecutionOutcome: ...

    @overload
    def __getitem__(self, index: slice) -> list[ExecutionOutcome]: ...

    def __getitem__(self, index: int | slice) -> ExecutionOutcome | list[ExecutionOutcome]:
        return self.outcomes[index]

    @property
    def successes(self) -> list[ExecutionOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failures(self) -> list[ExecutionOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def cancelled(self) -> bool:
        return self.state is JobState.CANCELLED

    def to_dicts(self) -> list[dict[str, Any]]:
        return [o.to_dict() for o in self.outcomes]
