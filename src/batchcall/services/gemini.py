from __future__ import annotations

from typing import Any, Optional

from batchcall.core.errors import ServiceError
from batchcall.services.base import HttpAnalysisService
from batchcall.services.resolvers import ResolvedItem
from batchcall.utils import JSONValue, extract_json

GEMINI_URL_TEMPLATE = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiService(HttpAnalysisService):
    """
    Google Gemini ``generateContent`` analysis service.

    Text payloads are sent as a text part; ``ResolvedItem`` payloads are sent
    as inline data. The model is asked for a JSON response and the first
    candidate's text is parsed as JSON.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-flash-latest",
        request_url: str | None = None,
        temperature: float = 0.0,
        response_schema: dict[str, Any] | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.request_url = request_url or GEMINI_URL_TEMPLATE.format(model=model)
        self.temperature = temperature
        self.response_schema = response_schema

    def build_headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def build_request(self, payload: Any, instruction: str) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": instruction}]
        if isinstance(payload, ResolvedItem):
            parts.append({"inline_data": {"mime_type": payload.mime_type, "data": payload.b64()}})
        else:
            parts.append({"text": str(payload)})

        generation_config: dict[str, Any] = {
            "temperature": self.temperature,
            "responseMimeType": "application/json",
        }
        if self.response_schema is not None:
            generation_config["responseJsonSchema"] = self.response_schema

        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }

    def parse_error(self, payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        error = payload.get("error")
        if not error:
            return None
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or error)
        return str(error)

    def parse_result(self, payload: Any) -> JSONValue:
        if not isinstance(payload, dict):
            raise ServiceError(f"Unexpected gemini response: {payload!r}")
        candidates = payload.get("candidates") or []
        if not candidates:
            feedback = payload.get("promptFeedback", {})
            raise ServiceError(f"gemini returned no candidates: {feedback or payload}")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            reason = candidates[0].get("finishReason", "unknown")
            raise ServiceError(f"gemini returned an empty answer (finishReason={reason})")

        try:
            return extract_json(text)
        except ValueError as e:
            raise ServiceError(f"Could not parse gemini answer as JSON: {e}") from e
