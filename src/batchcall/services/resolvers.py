from __future__ import annotations

import base64
import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from aiohttp import ClientSession, ClientTimeout

from batchcall.core.errors import ItemResolutionError

_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ResolvedItem:
    """
    Binary content fetched for a work item.

    Attributes:
        ref (str): The work item reference the content was fetched for
        data (bytes): Raw content
        mime_type (str): Content type reported by the server or guessed from the ref
    """

    ref: str
    data: bytes
    mime_type: str

    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


class ItemResolver(ABC):
    """Turns a work item reference into the payload the analysis service needs."""

    @abstractmethod
    async def resolve(self, session: ClientSession, ref: str) -> Any: ...


class PassthroughResolver(ItemResolver):
    """Use the reference itself as the payload."""

    async def resolve(self, session: ClientSession, ref: str) -> Any:
        return ref


class FunctionResolver(ItemResolver):
    """Wrap a plain async function ``fn(ref)`` as a resolver."""

    def __init__(self, fn: Callable[[str], Awaitable[Any]]) -> None:
        self.fn = fn

    async def resolve(self, session: ClientSession, ref: str) -> Any:
        return await self.fn(ref)


class HttpResolver(ItemResolver):
    """
    Download the content behind a URL reference.

    Args:
        max_bytes (int): Refuse content larger than this
        timeout_seconds (float): Total timeout for the download
    """

    def __init__(self, max_bytes: int = 20 * 1024 * 1024, timeout_seconds: float = 30.0) -> None:
        self.max_bytes = max_bytes
        self.timeout = ClientTimeout(total=timeout_seconds)

    async def resolve(self, session: ClientSession, ref: str) -> ResolvedItem:
        if not ref.startswith(("http://", "https://")):
            raise ItemResolutionError(ref, f"Not an http(s) URL: {ref}")

        async with session.get(ref, timeout=self.timeout) as response:
            if response.status >= 400:
                raise ItemResolutionError(ref, f"Fetching {ref} failed with HTTP {response.status}")
            if response.content_length is not None and response.content_length > self.max_bytes:
                raise self._too_large(ref, response.content_length)
            data = bytearray()
            async for chunk in response.content.iter_chunked(_CHUNK_SIZE):
                data.extend(chunk)
                if len(data) > self.max_bytes:
                    raise self._too_large(ref, len(data))
            content_type = response.headers.get("Content-Type", "")

        if not data:
            raise ItemResolutionError(ref, f"Empty content at {ref}")

        mime_type = content_type.split(";")[0].strip()
        if not mime_type or mime_type == "application/octet-stream":
            mime_type = mimetypes.guess_type(ref)[0] or "application/octet-stream"
        return ResolvedItem(ref=ref, data=bytes(data), mime_type=mime_type)

    def _too_large(self, ref: str, size: int) -> ItemResolutionError:
        return ItemResolutionError(
            ref, f"Content at {ref} exceeds the limit ({size:,} > {self.max_bytes:,} bytes)"
        )
