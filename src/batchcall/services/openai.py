from __future__ import annotations

from typing import Any, Optional

from batchcall.core.errors import ServiceError
from batchcall.services.base import HttpAnalysisService
from batchcall.services.resolvers import ResolvedItem
from batchcall.utils import JSONValue, extract_json

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIService(HttpAnalysisService):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        request_url: str = OPENAI_CHAT_URL,
        use_azure: bool = False,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.request_url = request_url
        self.use_azure = use_azure

    def build_headers(self) -> dict[str, str]:
        if self.use_azure:
            return {"api-key": self.api_key, "Content-Type": "application/json"}
        return super().build_headers()

    def build_request(self, payload: Any, instruction: str) -> dict[str, Any]:
        content: list[dict[str, Any]] = [{"type": "text", "text": instruction}]
        if isinstance(payload, ResolvedItem):
            url = f"data:{payload.mime_type};base64,{payload.b64()}"
            content.append({"type": "image_url", "image_url": {"url": url}})
        elif isinstance(payload, str) and payload.startswith(("http://", "https://")):
            content.append({"type": "image_url", "image_url": {"url": payload}})
        else:
            content.append({"type": "text", "text": str(payload)})

        request: dict[str, Any] = {
            "messages": [{"role": "user", "content": content}],
            "response_format": {"type": "json_object"},
        }
        if not self.use_azure:
            request["model"] = self.model
        return request

    def parse_error(self, payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if not error:
            return None
        if isinstance(error, dict):
            return str(error.get("message") or error)
        return str(error)

    def parse_result(self, payload: Any) -> JSONValue:
        try:
            message = payload["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise ServiceError(f"Unexpected openai response: {payload!r}") from e

        if message.get("refusal"):
            raise ServiceError(f"openai refused the request: {message['refusal']}")
        text = message.get("content") or ""
        try:
            return extract_json(text)
        except ValueError as e:
            raise ServiceError(f"Could not parse openai answer as JSON: {e}") from e
