from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger
from tqdm import tqdm

from batchcall.core.models import ProgressSnapshot

ProgressCallback = Callable[[int, int, list[str]], None]


class ProgressTracker:
    """
    Reports job progress at group boundaries.

    The caller's callback is invoked synchronously with
    ``(completed, total, in_flight)``; the engine does not move on until it
    returns, so callbacks should stay fast (e.g. enqueue and return).
    Exceptions raised by the callback are logged and do not stop the job.

    Attributes:
        total (int): Number of items in the job
        completed (int): Number of items with a final outcome so far
        snapshots (list[ProgressSnapshot]): Every snapshot emitted, in order
    """

    def __init__(
        self,
        total: int,
        on_progress: ProgressCallback | None = None,
        show_progress: bool = True,
    ) -> None:
        self.total = total
        self.completed = 0
        self.on_progress = on_progress
        self.snapshots: list[ProgressSnapshot] = []
        self._pbar: Any = None  # tqdm progress bar (no type stubs available)
        if show_progress and total > 0:
            self._pbar = tqdm(total=total, desc="Completed items", unit="item")

    def group_started(self, group_index: int, refs: Sequence[str]) -> None:
        """Announce the items of a group that is about to run."""
        self._emit(group_index, tuple(refs))

    def group_finished(self, group_index: int, num_finished: int) -> None:
        """Record ``num_finished`` more items with a final outcome."""
        self._advance(num_finished)
        self._emit(group_index, ())

    def _advance(self, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Progress cannot go backwards (got {amount})")
        if self.completed + amount > self.total:
            raise ValueError(
                f"Progress overflow: {self.completed} + {amount} exceeds total {self.total}"
            )
        self.completed += amount
        if self._pbar is not None:
            self._pbar.update(amount)

    def _emit(self, group_index: int, in_flight: tuple[str, ...]) -> None:
        snapshot = ProgressSnapshot(
            completed=self.completed,
            total=self.total,
            in_flight=in_flight,
            group_index=group_index,
        )
        self.snapshots.append(snapshot)
        logger.debug(
            f"Group {group_index}: {snapshot.completed}/{snapshot.total} completed, "
            f"{len(in_flight)} in flight"
        )
        if self.on_progress is None:
            return
        try:
            self.on_progress(snapshot.completed, snapshot.total, list(snapshot.in_flight))
        except Exception:
            logger.exception(
                f"Progress callback failed at {snapshot.completed}/{snapshot.total}; continuing job"
            )

    def close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None
