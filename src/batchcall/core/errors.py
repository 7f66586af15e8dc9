from __future__ import annotations

from enum import Enum

"""
Error taxonomy for batch processing.

Only ValidationError is fatal to a job. The other kinds are raised inside
an execution worker and converted to failure outcomes at its boundary.
"""


class ErrorKind(str, Enum):
    """Outcome kinds recorded for failed items."""

    ITEM_RESOLUTION = "ItemResolutionError"
    SERVICE = "ServiceError"
    CANCELLED = "Cancelled"


class BatchCallError(Exception):
    """Base class for all batchcall errors."""


class ValidationError(BatchCallError, ValueError):
    """Malformed input to the engine itself. The job never starts."""


class ItemResolutionError(BatchCallError):
    """The payload for a work item could not be obtained."""

    def __init__(self, ref: str, message: str) -> None:
        super().__init__(message)
        self.ref = ref


class ServiceError(BatchCallError):
    """
    The external analysis call failed or returned unusable content.

    Attributes:
        status (int | None): HTTP status of the response, when there was one
        rate_limited (bool): Whether the service reported a rate limit
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        rate_limited: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.rate_limited = rate_limited
