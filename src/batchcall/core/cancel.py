from __future__ import annotations


class CancelSignal:
    """
    Cooperative cancellation flag for a running job.

    The engine checks the flag before starting each group. Groups already
    running are allowed to finish.

    Example:
        >>> signal = CancelSignal()
        >>> task = asyncio.create_task(run_batch(items, "Describe", service, cancel_signal=signal))
        >>> signal.cancel("user pressed stop")
    """

    def __init__(self) -> None:
        self._cancel_requested = False
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if not self._cancel_requested:
            self._reason = reason
        self._cancel_requested = True
