from __future__ import annotations

import asyncio
from typing import Any

import pytest

from batchcall.services import FunctionService


class RecordingSleep:
    """Stands in for asyncio.sleep and records every requested delay."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeAnalysis:
    """
    Async analysis function that records calls and concurrency.

    Items listed in ``failing`` raise ``error``; items in ``delays`` take that
    many seconds to finish.
    """

    def __init__(
        self,
        failing: set[str] | None = None,
        delays: dict[str, float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.failing = failing or set()
        self.delays = delays or {}
        self.error = error or RuntimeError("analysis failed")
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, payload: Any, instruction: str) -> dict[str, Any]:
        self.calls.append(payload)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(payload, 0))
            if payload in self.failing:
                raise self.error
            return {"item": payload, "instruction": instruction}
        finally:
            self.active -= 1

    def service(self) -> FunctionService:
        return FunctionService(self, name="fake")


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def analysis() -> FakeAnalysis:
    return FakeAnalysis()
