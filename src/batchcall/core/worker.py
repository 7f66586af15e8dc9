from __future__ import annotations

import asyncio
import time

from aiohttp import ClientSession
from loguru import logger

from batchcall.core.errors import ErrorKind, ItemResolutionError, ServiceError
from batchcall.core.models import ExecutionOutcome, WorkItem
from batchcall.services.base import AnalysisService
from batchcall.services.resolvers import ItemResolver, PassthroughResolver

"""
Execution worker for a single work item.

The worker resolves the item's payload, calls the analysis service, and
turns every failure into a typed failure outcome so that one bad item can
never abort its group or the job.
"""


def _describe(error: BaseException) -> str:
    message = str(error)
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


class ExecutionWorker:
    """
    Runs exactly one work item against the analysis service.

    Attributes:
        service (AnalysisService): The external analysis service
        resolver (ItemResolver): Turns item references into service payloads
        session (ClientSession): Aiohttp session shared by the job
        item_timeout (Optional[float]): Timeout in seconds for the service call
    """

    def __init__(
        self,
        service: AnalysisService,
        session: ClientSession,
        resolver: ItemResolver | None = None,
        item_timeout: float | None = None,
    ) -> None:
        self.service = service
        self.session = session
        self.resolver = resolver or PassthroughResolver()
        self.item_timeout = item_timeout

    async def execute(self, item: WorkItem) -> ExecutionOutcome:
        """
        Resolve and analyze one item.

        Never raises for item failures: resolution problems become
        ItemResolutionError outcomes, everything that goes wrong in the
        service call becomes a ServiceError outcome.

        Args:
            item (WorkItem): The item to process

        Returns:
            ExecutionOutcome: Success with the service result, or a typed failure
        """
        start_time = time.monotonic()

        try:
            payload = await self.resolver.resolve(self.session, item.ref)
        except Exception as e:
            logger.warning(f"Item {item.position} ({item.ref}): resolution failed: {_describe(e)}")
            message = str(e) if isinstance(e, ItemResolutionError) else _describe(e)
            return ExecutionOutcome.failed(
                item, ErrorKind.ITEM_RESOLUTION, message, time.monotonic() - start_time
            )

        try:
            call = self.service.call(self.session, payload, item.instruction)
            if self.item_timeout is not None:
                result = await asyncio.wait_for(call, timeout=self.item_timeout)
            else:
                result = await call
        except asyncio.TimeoutError as e:
            message = (
                f"Timed out after {self.item_timeout}s"
                if self.item_timeout is not None
                else _describe(e)
            )
            logger.warning(f"Item {item.position} ({item.ref}): {self.service.name}: {message}")
            return ExecutionOutcome.failed(
                item, ErrorKind.SERVICE, message, time.monotonic() - start_time
            )
        except Exception as e:
            rate_limited = isinstance(e, ServiceError) and e.rate_limited
            if rate_limited:
                logger.warning(f"Item {item.position} ({item.ref}): rate limited by {self.service.name}")
            else:
                logger.warning(
                    f"Item {item.position} ({item.ref}): error from {self.service.name}: {_describe(e)}"
                )
            message = str(e) if isinstance(e, ServiceError) else _describe(e)
            return ExecutionOutcome.failed(
                item,
                ErrorKind.SERVICE,
                message,
                time.monotonic() - start_time,
                rate_limited=rate_limited,
            )

        duration = time.monotonic() - start_time
        logger.debug(f"Item {item.position} ({item.ref}): completed in {duration:.2f}s")
        return ExecutionOutcome.succeeded(item, result, duration)
