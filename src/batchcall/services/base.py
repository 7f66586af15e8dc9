from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Mapping, Optional, Tuple

from aiohttp import ClientSession, ContentTypeError

from batchcall.core.errors import ServiceError
from batchcall.utils import JSONValue


class AnalysisService(ABC):
    """
    The external analysis capability: given an item payload and an
    instruction, return a structured result or raise.

    The engine treats any raised exception as a per-item service failure and
    never looks inside the returned value.

    Attributes:
        name (str): Human-readable service identifier (e.g., "gemini", "openai")
    """

    name: str = "service"

    @abstractmethod
    async def call(
        self, session: ClientSession, payload: Any, instruction: str
    ) -> JSONValue:
        """
        Analyze one item.

        Args:
            session (ClientSession): Aiohttp session shared by the current job
            payload (Any): The resolved item payload
            instruction (str): The instruction to apply

        Returns:
            JSONValue: The opaque analysis result

        Raises:
            ServiceError: If the service reports an error or the response is unusable
        """
        ...


class FunctionService(AnalysisService):
    """
    Wrap a plain async function ``fn(payload, instruction)`` as a service.

    Example:
        >>> async def classify(payload, instruction):
        ...     return {"label": "cat"}
        >>> service = FunctionService(classify)
    """

    def __init__(
        self,
        fn: Callable[[Any, str], Awaitable[JSONValue]],
        name: str = "function",
    ) -> None:
        self.fn = fn
        self.name = name

    async def call(
        self, session: ClientSession, payload: Any, instruction: str
    ) -> JSONValue:
        return await self.fn(payload, instruction)


class HttpAnalysisService(AnalysisService):
    """
    Base class for JSON-over-HTTP analysis services.

    Default implementations provided:
    - Bearer token authentication (build_headers)
    - POSTing the request body and decoding JSON (send)
    - Common rate limit detection (is_rate_limited)
    - The call template: build request, send, check error, parse result

    Subclasses must implement:
    - build_request: Service-specific request body for one item
    - parse_error: Service-specific error message extraction
    - parse_result: Service-specific extraction of the structured result

    Attributes:
        api_key (str): API authentication key
        model (str): Model identifier
        request_url (str): Full API endpoint URL
    """

    api_key: str
    model: str
    request_url: str

    def build_headers(self) -> dict[str, str]:
        """
        Build authentication headers for API requests.

        Returns:
            dict[str, str]: HTTP headers including authentication
        """
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def send(
        self,
        session: ClientSession,
        headers: Mapping[str, str],
        request_json: dict[str, Any],
    ) -> Tuple[int, Any, Optional[Mapping[str, str]]]:
        """
        Perform the HTTP request to the service's API.

        Args:
            session (ClientSession): Aiohttp client session
            headers (Mapping[str, str]): HTTP headers from build_headers()
            request_json (dict[str, Any]): Request payload

        Returns:
            Tuple of (status, response_payload, response_headers)

        Raises:
            ServiceError: If the response body is not JSON
            aiohttp.ClientError: For network/connection errors
        """
        async with session.post(
            self.request_url, headers=headers, json=request_json
        ) as response:
            try:
                data = await response.json()
            except (ContentTypeError, ValueError) as e:
                raise ServiceError(
                    f"{self.name} returned a non-JSON response (HTTP {response.status})",
                    status=response.status,
                    rate_limited=response.status == 429,
                ) from e
            return response.status, data, response.headers

    def is_rate_limited(self, status: int, payload: Any) -> bool:
        """
        Determine if the response indicates rate limiting.

        Checks the HTTP status and then the error message content.
        """
        if status == 429:
            return True
        error_msg = (self.parse_error(payload) or "").lower()
        return "rate limit" in error_msg or "too many requests" in error_msg or "quota" in error_msg

    async def call(
        self, session: ClientSession, payload: Any, instruction: str
    ) -> JSONValue:
        request_json = self.build_request(payload, instruction)
        status, data, _ = await self.send(
            session=session, headers=self.build_headers(), request_json=request_json
        )
        parsed_error = self.parse_error(data)
        if parsed_error or status >= 400:
            raise ServiceError(
                f"{self.name} error (HTTP {status}): {parsed_error or data}",
                status=status,
                rate_limited=self.is_rate_limited(status, data),
            )
        return self.parse_result(data)

    @abstractmethod
    def build_request(self, payload: Any, instruction: str) -> dict[str, Any]:
        """
        Build the request body for one item.

        Args:
            payload (Any): The resolved item payload (a string or ResolvedItem)
            instruction (str): The instruction to apply

        Returns:
            dict[str, Any]: JSON request body
        """
        ...

    @abstractmethod
    def parse_error(self, payload: Any) -> Optional[str]:
        """
        Extract error message from API response payload.

        Returns:
            Optional[str]: Error message if present, None if successful response
        """
        ...

    @abstractmethod
    def parse_result(self, payload: Any) -> JSONValue:
        """
        Extract the structured analysis result from a successful response.

        Raises:
            ServiceError: If the response cannot be parsed into the expected structure
        """
        ...
