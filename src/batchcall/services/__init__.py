"""Analysis service implementations, item resolvers and lookup by name."""

from typing import Any, Callable

from batchcall.services.base import AnalysisService, FunctionService, HttpAnalysisService
from batchcall.services.gemini import GeminiService
from batchcall.services.openai import OpenAIService
from batchcall.services.resolvers import (
    FunctionResolver,
    HttpResolver,
    ItemResolver,
    PassthroughResolver,
    ResolvedItem,
)

ServiceFactory = Callable[..., AnalysisService]

_SERVICES: dict[str, ServiceFactory] = {
    "gemini": GeminiService,
    "openai": OpenAIService,
}


def get_service(name: str, **kwargs: Any) -> AnalysisService:
    """Build a named analysis service, e.g. ``get_service("gemini", api_key=...)``."""
    factory = _SERVICES.get(name.lower())
    if factory is None:
        raise ValueError(f"Unknown service: {name} (available: {', '.join(sorted(_SERVICES))})")
    return factory(**kwargs)


def register_service(name: str, factory: ServiceFactory) -> None:
    key = name.lower()
    if key in _SERVICES:
        raise ValueError(f"Service already registered: {name}")
    _SERVICES[key] = factory


__all__ = [
    "AnalysisService",
    "FunctionService",
    "HttpAnalysisService",
    "GeminiService",
    "OpenAIService",
    "ItemResolver",
    "PassthroughResolver",
    "FunctionResolver",
    "HttpResolver",
    "ResolvedItem",
    "ServiceFactory",
    "get_service",
    "register_service",
]
