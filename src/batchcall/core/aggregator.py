from __future__ import annotations

from collections.abc import Callable, Sequence

from loguru import logger

from batchcall.core.errors import ErrorKind
from batchcall.core.io import ReportStore
from batchcall.core.models import (
    ExecutionOutcome,
    JobReport,
    JobState,
    ProcessingStats,
    WorkItem,
)

StatsCallback = Callable[[ProcessingStats], None]


class ResultAggregator:
    """
    Collects one outcome per work item and builds the ordered JobReport.

    Each input position owns one slot. Workers of one group write disjoint
    slots and groups run one after another, so no locking is needed.
    """

    def __init__(self, items: Sequence[WorkItem]) -> None:
        self.items = list(items)
        self._slots: list[ExecutionOutcome | None] = [None] * len(self.items)

    @property
    def num_recorded(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def record(self, outcome: ExecutionOutcome) -> None:
        """
        Store the outcome in its item's slot.

        Raises:
            IndexError: If the outcome's position is outside the job
            ValueError: If the slot already holds an outcome
        """
        if not 0 <= outcome.position < len(self._slots):
            raise IndexError(f"Outcome position {outcome.position} outside job of {len(self._slots)}")
        if self._slots[outcome.position] is not None:
            raise ValueError(f"Outcome for position {outcome.position} recorded twice")
        self._slots[outcome.position] = outcome

    def mark_cancelled(self) -> int:
        """Fill every empty slot with a Cancelled outcome and return how many were filled."""
        count = 0
        for index, slot in enumerate(self._slots):
            if slot is None:
                self._slots[index] = ExecutionOutcome.cancelled(self.items[index])
                count += 1
        return count

    def build_report(self, state: JobState, groups_run: int, duration_seconds: float) -> JobReport:
        """
        Build the report in input order.

        Raises:
            RuntimeError: If any item has no outcome
        """
        missing = [index for index, slot in enumerate(self._slots) if slot is None]
        if missing:
            raise RuntimeError(f"No outcome recorded for positions {missing}")
        outcomes = [slot for slot in self._slots if slot is not None]
        return JobReport(
            outcomes=outcomes,
            state=state,
            stats=self._compute_stats(outcomes, groups_run, duration_seconds),
        )

    def _compute_stats(
        self,
        outcomes: list[ExecutionOutcome],
        groups_run: int,
        duration_seconds: float,
    ) -> ProcessingStats:
        stats = ProcessingStats(
            total_items=len(outcomes),
            groups_run=groups_run,
            duration_seconds=duration_seconds,
        )
        for outcome in outcomes:
            if outcome.rate_limited:
                stats.rate_limit_errors += 1
            if outcome.success:
                stats.successful += 1
            elif outcome.error_kind == ErrorKind.CANCELLED.value:
                stats.cancelled += 1
            else:
                stats.failed += 1
                if outcome.error_kind == ErrorKind.ITEM_RESOLUTION.value:
                    stats.resolution_errors += 1
                elif outcome.error_kind == ErrorKind.SERVICE.value:
                    stats.service_errors += 1
        return stats

    @staticmethod
    def publish(
        report: JobReport,
        store: ReportStore | None = None,
        on_stats: StatsCallback | None = None,
    ) -> None:
        """
        Hand the report to the persistence and statistics collaborators.

        Failures raised by either collaborator propagate and are not retried.
        """
        if store is not None:
            logger.debug(f"Saving report of {len(report)} outcomes with {type(store).__name__}")
            store.save(report)
        if on_stats is not None:
            on_stats(report.stats)
