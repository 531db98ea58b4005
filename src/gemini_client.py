"""Async client for the Google Gemini ``generateContent`` REST API.

Wraps ``POST /v1beta/models/{model}:generateContent`` with timeout handling
and structured responses. Transport and HTTP failures never raise: they come
back as a ``GeminiResponse`` with ``success=False`` and an error message, and
callers decide how to surface them.

Typical usage::

    client = GeminiClient(api_key="...")
    resp = await client.generate_content(
        "Explain index.tsx", model="gemini-2.5-flash-lite-latest"
    )
    print(resp.text)
"""

from __future__ import annotations

import base64
import time
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field


class InlineImage(BaseModel):
    """Raw image bytes sent inline with a request."""

    data: bytes
    mime_type: str = "image/jpeg"

    def to_part(self) -> dict[str, Any]:
        return {
            "inline_data": {
                "mime_type": self.mime_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            }
        }


class GeminiResponse(BaseModel):
    """Structured response from a Gemini generation call."""

    text: str = Field(default="", description="Concatenated text of the first candidate")
    model: str = Field(default="", description="Model that produced the response")
    duration_ms: float = Field(default=0.0, description="Client-side round-trip time in ms")
    grounding_chunks: list[dict[str, Any]] = Field(
        default_factory=list, description="Search grounding chunks, if any"
    )
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class GeminiClient:
    """Async client for the Gemini REST API.

    Uses ``httpx.AsyncClient`` for non-blocking HTTP. A fresh client is opened
    per request so the object holds no connection state.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: int = 120,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with base URL, key and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-goog-api-key": self.api_key},
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    @staticmethod
    def _extract_text(data: dict) -> str:
        """Join the text parts of the first candidate.

        Parts flagged as model "thoughts" are skipped.
        """
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(
            p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought")
        )

    @staticmethod
    def _extract_grounding(data: dict) -> list[dict[str, Any]]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        metadata = candidates[0].get("groundingMetadata") or {}
        return list(metadata.get("groundingChunks") or [])

    @staticmethod
    def build_payload(
        contents: str | list[str | InlineImage],
        *,
        system_instruction: str = "",
        response_schema: Optional[dict[str, Any]] = None,
        use_search: bool = False,
        thinking_budget: Optional[int] = None,
        history: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        """Assemble a ``generateContent`` request body.

        Args:
            contents: A prompt string, or a list mixing text and inline images
                that form a single user turn.
            system_instruction: Optional system prompt.
            response_schema: When given, JSON output conforming to this schema
                is requested.
            use_search: Enable the Google Search grounding tool.
            thinking_budget: Optional thinking-token hint.
            history: Prior turns (``{"role", "parts"}`` dicts) placed before
                the new user turn.
        """
        items = [contents] if isinstance(contents, str) else contents
        parts: list[dict[str, Any]] = []
        for item in items:
            if isinstance(item, InlineImage):
                parts.append(item.to_part())
            else:
                parts.append({"text": item})

        payload: dict[str, Any] = {
            "contents": [*(history or []), {"role": "user", "parts": parts}],
        }
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if use_search:
            payload["tools"] = [{"google_search": {}}]

        generation_config: dict[str, Any] = {}
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        if thinking_budget is not None:
            generation_config["thinkingConfig"] = {"thinkingBudget": thinking_budget}
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_content(
        self,
        contents: str | list[str | InlineImage],
        model: str = "gemini-3-flash-preview",
        *,
        system_instruction: str = "",
        response_schema: Optional[dict[str, Any]] = None,
        use_search: bool = False,
        thinking_budget: Optional[int] = None,
        history: Optional[list[dict[str, Any]]] = None,
    ) -> GeminiResponse:
        """Issue exactly one ``generateContent`` request.

        Returns:
            A ``GeminiResponse`` with the generated text or an error.
        """
        payload = self.build_payload(
            contents,
            system_instruction=system_instruction,
            response_schema=response_schema,
            use_search=use_search,
            thinking_budget=thinking_budget,
            history=history,
        )
        started = time.monotonic()

        try:
            async with self._client() as client:
                response = await client.post(
                    f"/v1beta/models/{model}:generateContent", json=payload
                )
                response.raise_for_status()
                data = response.json()
                return GeminiResponse(
                    text=self._extract_text(data),
                    model=data.get("modelVersion", model),
                    duration_ms=(time.monotonic() - started) * 1000.0,
                    grounding_chunks=self._extract_grounding(data),
                    success=True,
                )
        except httpx.ConnectError:
            return GeminiResponse(
                model=model,
                success=False,
                error=f"Cannot connect to the Gemini API at {self.base_url}.",
            )
        except httpx.TimeoutException:
            return GeminiResponse(
                model=model,
                success=False,
                error=f"Request to Gemini timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return GeminiResponse(
                model=model,
                success=False,
                error=f"Gemini returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            )
        except Exception as exc:  # noqa: BLE001
            return GeminiResponse(
                model=model,
                success=False,
                error=f"Unexpected error during Gemini request: {exc}",
            )
