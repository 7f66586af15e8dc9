from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from aiohttp import ClientSession
from loguru import logger
from tqdm import tqdm

from batchcall.core.aggregator import ResultAggregator, StatsCallback
from batchcall.core.cancel import CancelSignal
from batchcall.core.errors import ErrorKind, ValidationError
from batchcall.core.io import JsonlReportStore, ReportStore, read_item_refs
from batchcall.core.models import (
    ExecutionOutcome,
    FilesConfig,
    JobReport,
    JobState,
    WorkItem,
)
from batchcall.core.progress import ProgressCallback, ProgressTracker
from batchcall.core.rate_limit import RateLimitPolicy, resolve_policy
from batchcall.core.worker import ExecutionWorker
from batchcall.services.base import AnalysisService
from batchcall.services.resolvers import ItemResolver
from batchcall.utils import partition, validate_jsonl_file

"""
Core async engine for rate-limited batch processing.

This module implements the job loop that:
- Splits the ordered work list into groups of ``max_concurrent`` items
- Runs each group concurrently and waits for all of its items
- Pauses between groups as the rate limit policy requires
- Reports progress and honors cancellation at group boundaries
- Returns one outcome per item, in input order

The engine is service-agnostic and works with any AnalysisService implementation.
"""

SleepFunction = Callable[[float], Awaitable[None]]


class Worker(Protocol):
    async def execute(self, item: WorkItem) -> ExecutionOutcome: ...


class BatchScheduler:
    """
    Runs one job as a sequence of bounded-parallelism groups.

    State moves from NOT_STARTED to RUNNING while groups execute, then to
    COMPLETED or CANCELLED. A scheduler runs a single job.

    Attributes:
        worker (Worker): Executes one item and never raises for item failures
        policy (RateLimitPolicy): Group size and inter-group delay
        sleep (SleepFunction): Awaitable used for the inter-group delay
        state (JobState): Current lifecycle state
        current_group (Optional[int]): Index of the group running or last run
        num_delays (int): Number of inter-group delays taken so far
    """

    def __init__(
        self,
        worker: Worker,
        policy: RateLimitPolicy,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        self.worker = worker
        self.policy = policy
        self.sleep = sleep
        self.state = JobState.NOT_STARTED
        self.current_group: int | None = None
        self.num_delays = 0

    async def run(
        self,
        items: Sequence[WorkItem],
        on_progress: ProgressCallback | None = None,
        cancel_signal: CancelSignal | None = None,
        show_progress: bool = True,
    ) -> JobReport:
        """
        Execute all items and return the ordered report.

        Args:
            items (Sequence[WorkItem]): Work items in input order
            on_progress (Optional[ProgressCallback]): Called with (completed, total, in_flight)
                before each group starts and after it finishes
            cancel_signal (Optional[CancelSignal]): Checked before every group
            show_progress (bool): Show a tqdm progress bar

        Returns:
            JobReport: One outcome per item, in input order
        """
        if self.state is not JobState.NOT_STARTED:
            raise RuntimeError("A BatchScheduler can only run one job")

        start_time = time.monotonic()
        aggregator = ResultAggregator(items)
        if not items:
            self.state = JobState.COMPLETED
            return aggregator.build_report(self.state, groups_run=0, duration_seconds=0.0)

        groups = partition(items, self.policy.max_concurrent)
        tracker = ProgressTracker(len(items), on_progress=on_progress, show_progress=show_progress)
        groups_run = 0
        self.state = JobState.RUNNING

        try:
            for group_index, group in enumerate(groups):
                if cancel_signal is not None and cancel_signal.cancelled:
                    reason = f" ({cancel_signal.reason})" if cancel_signal.reason else ""
                    logger.warning(
                        f"Job cancelled{reason} before group {group_index + 1}/{len(groups)}"
                    )
                    self.state = JobState.CANCELLED
                    tracker.group_finished(group_index, aggregator.mark_cancelled())
                    break

                self.current_group = group_index
                logger.debug(
                    f"Group {group_index + 1}/{len(groups)}: starting {len(group)} items"
                )
                tracker.group_started(group_index, [item.ref for item in group])

                outcomes = await self._run_group(group)
                for outcome in outcomes:
                    aggregator.record(outcome)
                groups_run += 1
                tracker.group_finished(group_index, len(outcomes))

                is_last = group_index == len(groups) - 1
                if is_last or (cancel_signal is not None and cancel_signal.cancelled):
                    continue
                logger.debug(f"Waiting {self.policy.delay_between_groups}s before next group")
                await self.sleep(self.policy.delay_between_groups)
                self.num_delays += 1
        finally:
            tracker.close()

        if self.state is JobState.RUNNING:
            self.state = JobState.COMPLETED
        return aggregator.build_report(
            self.state,
            groups_run=groups_run,
            duration_seconds=time.monotonic() - start_time,
        )

    async def _run_group(self, group: Sequence[WorkItem]) -> list[ExecutionOutcome]:
        """Launch every item of the group at once and wait for all of them."""
        results = await asyncio.gather(
            *(self.worker.execute(item) for item in group), return_exceptions=True
        )

        outcomes: list[ExecutionOutcome] = []
        for item, result in zip(group, results):
            if isinstance(result, ExecutionOutcome):
                outcomes.append(result)
            elif isinstance(result, Exception):
                # Workers should never raise; keep the job alive if one does
                logger.error(f"Item {item.position} ({item.ref}): worker raised {result!r}")
                outcomes.append(ExecutionOutcome.failed(item, ErrorKind.SERVICE, str(result)))
            else:
                raise result
        return outcomes


def _setup_logger(logging_level: int) -> None:
    """
    Configure logger with clean format.

    Args:
        logging_level (int): Loguru logging level (20=INFO, 10=DEBUG)
    """
    logger.remove()

    # Show module info only at DEBUG level (10 or lower)
    if logging_level <= 10:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
    else:
        log_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<level>{message}</level>"
        )

    logger.add(
        lambda msg: tqdm.write(msg, end=""),
        format=log_format,
        colorize=True,
        level=logging_level,
    )


def _build_work_items(items: Sequence[str], instruction: str) -> list[WorkItem]:
    if isinstance(items, (str, bytes)):
        raise ValidationError("items must be a sequence of references, not a single string")
    if not isinstance(instruction, str):
        raise ValidationError(f"instruction must be a string, got {type(instruction).__name__}")

    work_items: list[WorkItem] = []
    for position, ref in enumerate(items):
        if not isinstance(ref, str):
            raise ValidationError(
                f"Item {position} must be a string reference, got {type(ref).__name__}"
            )
        work_items.append(WorkItem(ref=ref, instruction=instruction, position=position))
    return work_items


def _log_summary(report: JobReport, output_description: str = "Processing complete") -> None:
    """
    Log job summary and statistics.

    Args:
        report: The finished job report
        output_description: Description of where results went
    """
    stats = report.stats
    logger.info(f"Batch processing {report.state.value}. {output_description}")
    logger.info(
        f"Successfully completed {stats.successful:,} / {stats.total_items:,} items "
        f"in {stats.groups_run:,} groups, {stats.duration_seconds:.1f}s"
    )

    if stats.failed > 0:
        logger.warning(
            f"{stats.failed:,} / {stats.total_items:,} items failed "
            f"({stats.resolution_errors:,} resolution, {stats.service_errors:,} service)"
        )
    if stats.cancelled > 0:
        logger.warning(f"{stats.cancelled:,} items were cancelled before they started")
    if stats.rate_limit_errors > 0:
        logger.warning(
            f"{stats.rate_limit_errors:,} rate limit errors received. "
            f"Consider a more conservative rate limit policy."
        )


async def run_batch(
    items: Sequence[str],
    instruction: str,
    service: AnalysisService,
    policy: RateLimitPolicy | str | None = None,
    *,
    resolver: ItemResolver | None = None,
    on_progress: ProgressCallback | None = None,
    cancel_signal: CancelSignal | None = None,
    store: ReportStore | None = None,
    on_stats: StatsCallback | None = None,
    item_timeout: float | None = None,
    show_progress: bool = True,
    logging_level: int = 20,
    sleep: SleepFunction = asyncio.sleep,
) -> JobReport:
    """
    Analyze a list of items in rate-limited groups.

    This is the main entry point for the library. Items are processed in
    consecutive groups of ``policy.max_concurrent``; all items of a group run
    concurrently, and the engine waits ``policy.delay_between_groups`` seconds
    between groups. Failures are isolated per item and reported in the
    returned JobReport, which lists one outcome per input item in input order.

    Args:
        items (Sequence[str]): Work item references (identifiers or URLs), duplicates allowed
        instruction (str): Instruction applied to every item
        service (AnalysisService): The external analysis service
        policy (RateLimitPolicy | str | None): Policy or preset name ("free", "paid");
            defaults to the free preset
        resolver (Optional[ItemResolver]): Turns references into payloads (defaults to
            passing the reference through)
        on_progress (Optional[ProgressCallback]): Called with (completed, total, in_flight)
        cancel_signal (Optional[CancelSignal]): Cooperative cancellation flag
        store (Optional[ReportStore]): Persistence collaborator receiving the final report
        on_stats (Optional[StatsCallback]): Receives the job statistics
        item_timeout (Optional[float]): Timeout in seconds for each service call
        show_progress (bool): Show a tqdm progress bar
        logging_level (int): Loguru logging level (20=INFO, 10=DEBUG)
        sleep (SleepFunction): Awaitable used for the inter-group delay

    Returns:
        JobReport: Ordered outcomes, final state and statistics

    Raises:
        ValidationError: If the policy, items or instruction are malformed

    Example:
        >>> service = GeminiService(api_key="...")
        >>> report = await run_batch(
        ...     items=["https://example.com/a.png", "https://example.com/b.png"],
        ...     instruction="Describe the image as JSON",
        ...     service=service,
        ...     policy="free",
        ...     resolver=HttpResolver(),
        ... )
        >>> print(f"Processed: {report.stats.successful}/{report.stats.total_items}")
    """
    _setup_logger(logging_level)

    policy = resolve_policy(policy)
    work_items = _build_work_items(items, instruction)
    if item_timeout is not None and item_timeout <= 0:
        raise ValidationError(f"item_timeout must be > 0, got {item_timeout}")

    if not work_items:
        logger.info("No items to process")
        report = ResultAggregator([]).build_report(
            JobState.COMPLETED, groups_run=0, duration_seconds=0.0
        )
        ResultAggregator.publish(report, store, on_stats)
        return report

    logger.info(
        f"Starting batch of {len(work_items):,} items in "
        f"{policy.num_groups(len(work_items)):,} groups "
        f"(policy '{policy.name}': {policy.max_concurrent} concurrent, "
        f"{policy.delay_between_groups}s between groups)"
    )

    async with ClientSession() as session:
        worker = ExecutionWorker(
            service=service,
            session=session,
            resolver=resolver,
            item_timeout=item_timeout,
        )
        scheduler = BatchScheduler(worker, policy, sleep=sleep)
        report = await scheduler.run(
            work_items,
            on_progress=on_progress,
            cancel_signal=cancel_signal,
            show_progress=show_progress,
        )

    _log_summary(report)
    ResultAggregator.publish(report, store, on_stats)
    return report


async def run_batch_from_file(
    requests_file: str,
    instruction: str,
    service: AnalysisService,
    policy: RateLimitPolicy | str | None = None,
    *,
    files: FilesConfig | None = None,
    **kwargs: Any,
) -> JobReport:
    """
    Analyze item references listed in a JSONL file and save outcomes to JSONL files.

    Each line of ``requests_file`` is a JSON string or an object with an
    ``"item"`` key. Successful outcomes are appended to ``files.save_file``,
    failed and cancelled ones to ``files.error_file``.

    Args:
        requests_file (str): Path to input JSONL file with item references
        instruction (str): Instruction applied to every item
        service (AnalysisService): The external analysis service
        policy (RateLimitPolicy | str | None): Policy or preset name
        files (Optional[FilesConfig]): Output paths (derived from requests_file if None)
        **kwargs: Forwarded to run_batch()

    Returns:
        JobReport: Ordered outcomes, final state and statistics

    Raises:
        ValueError: If file paths don't end with .jsonl
        FileNotFoundError: If requests_file doesn't exist
    """
    validate_jsonl_file(requests_file, "Requests file")
    if not os.path.exists(requests_file):
        raise FileNotFoundError(f"Requests file not found: {requests_file}")

    if files is None:
        stem = os.path.splitext(requests_file)[0]
        files = FilesConfig(save_file=f"{stem}_results.jsonl", error_file=f"{stem}_errors.jsonl")
    else:
        validate_jsonl_file(files.save_file, "Save file")
        validate_jsonl_file(files.error_file, "Error file")

    if "store" in kwargs:
        raise ValidationError("run_batch_from_file() stores results itself; pass files instead")

    items = read_item_refs(requests_file)
    report = await run_batch(
        items,
        instruction,
        service,
        policy,
        store=JsonlReportStore(files),
        **kwargs,
    )
    description = f"Results saved to {files.save_file}"
    description += f" and {files.error_file}" if report.failures else ""
    logger.info(description)
    return report
