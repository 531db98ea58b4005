"""AI-backed operations of the builder.

Each operation sends exactly one request through :class:`GeminiClient` and
returns plain data. Any failure (transport, HTTP, or an unusable response)
is raised as a :class:`GenerationError` carrying a user-facing message; there
is no retry.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import textwrap
from typing import Any, Optional

from pydantic import ValidationError

from src.config import GeminiConfig
from src.gemini_client import GeminiClient, GeminiResponse, InlineImage
from src.models import GeneratedApp, ProjectFile, ResearchResult


class GenerationError(Exception):
    """Raised when a request to the generation service fails."""


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_ARCHITECT_PROMPT = textwrap.dedent("""\
    Task: Architect a high-performance, production-ready web application.
    User Request: {prompt}

    Performance Requirements:
    1. Use lightweight functional patterns and avoid heavy external dependencies.
    2. Implement efficient Tailwind CSS structures to keep the generated bundle small.
    3. Ensure component modularity for optimal tree-shaking.
    4. index.tsx must be the entry point.
    5. Code should favor native browser APIs where possible for speed.

    Architecture: Modern UI with deep dark mode (slate-950).

    The output MUST be a valid JSON object matching the schema.""")

SUPPORT_BOT_INSTRUCTION = (
    "You are the NexusAI Support Bot. Help users with coding, architectural "
    "decisions, and platform usage. Be concise and professional."
)

QA_INSTRUCTION = "QA Engine: Be precise."

DEFAULT_IMAGE_PROMPT = "Analyze this image for UI/UX patterns and architectural inspiration."

GENERATION_FAILED_MESSAGE = "Architecture generation failed. Please refine your prompt."

APP_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "description": {"type": "STRING"},
        "files": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "path": {"type": "STRING"},
                    "content": {"type": "STRING"},
                },
                "required": ["name", "path", "content"],
            },
        },
    },
    "required": ["description", "files"],
}

_FENCE_OPEN = re.compile(r"^```[a-z]*\n", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n```$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang line and a trailing ``` line, then trim."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text)).strip()


def parse_generated_app(raw: str) -> GeneratedApp:
    """Parse the architect response into a :class:`GeneratedApp`.

    Raises:
        GenerationError: If *raw* is not JSON of the expected shape.
    """
    try:
        return GeneratedApp.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise GenerationError(GENERATION_FAILED_MESSAGE) from exc


def split_data_url(data: str) -> tuple[str, Optional[str]]:
    """Split ``data:<mime>;base64,<payload>`` into ``(payload, mime)``.

    A bare base64 string is returned unchanged with ``mime`` set to ``None``.
    """
    if "," not in data:
        return data, None
    header, _, payload = data.partition(",")
    mime = None
    if header.startswith("data:"):
        mime = header[len("data:"):].split(";", 1)[0] or None
    return payload or data, mime


def build_code_context(files: list[ProjectFile]) -> str:
    """Render every file as a ``File:``/``Content:`` block for QA prompts."""
    return "\n\n---\n\n".join(
        f"File: {f.path}\nContent:\n{f.content}" for f in files
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class GenerationService:
    """The generation-service boundary used by the editor and the chatbot.

    Attributes:
        client: Wire client for the Gemini API.
        config: Per-operation model names and thinking budgets.
    """

    def __init__(self, client: GeminiClient, config: GeminiConfig | None = None) -> None:
        self.client = client
        self.config = config or GeminiConfig()

    @classmethod
    def from_config(cls, config: GeminiConfig) -> "GenerationService":
        client = GeminiClient(
            api_key=config.api_key, base_url=config.url, timeout=config.timeout
        )
        return cls(client, config)

    @staticmethod
    def _require(response: GeminiResponse, failure: str) -> GeminiResponse:
        if not response.success:
            raise GenerationError(f"{failure} {response.error or ''}".strip())
        return response

    async def generate_app_code(self, prompt: str, model: str) -> GeneratedApp:
        """Ask the architect model for a complete multi-file project."""
        response = await self.client.generate_content(
            _ARCHITECT_PROMPT.format(prompt=prompt),
            model=model,
            response_schema=APP_SCHEMA,
            thinking_budget=self.config.architect_thinking_budget,
        )
        if not response.success:
            raise GenerationError(response.error or GENERATION_FAILED_MESSAGE)
        return parse_generated_app(response.text)

    async def search_grounding(self, query: str) -> ResearchResult:
        """Run a search-grounded research query."""
        response = self._require(
            await self.client.generate_content(
                query, model=self.config.research_model, use_search=True
            ),
            "Research failed.",
        )
        return ResearchResult.from_chunks(
            response.text or "No response generated.", response.grounding_chunks
        )

    async def chat(self, message: str, history: list[dict[str, Any]] | None = None) -> str:
        """Send one support-chat turn.

        *history* holds prior turns as ``{"role": "user"|"model", "parts": [...]}``.
        """
        response = self._require(
            await self.client.generate_content(
                message,
                model=self.config.chat_model,
                system_instruction=SUPPORT_BOT_INSTRUCTION,
                thinking_budget=self.config.chat_thinking_budget,
                history=history,
            ),
            "Chat failed.",
        )
        return response.text

    async def analyze_image(
        self, image: str | bytes, prompt: str = "", mime_type: str = "image/jpeg"
    ) -> str:
        """Analyse an image for UI/UX patterns.

        *image* is raw bytes, a base64 string, or a ``data:`` URL (whose MIME
        type wins over *mime_type*).
        """
        if isinstance(image, bytes):
            inline = InlineImage(data=image, mime_type=mime_type)
        else:
            payload, detected = split_data_url(image)
            try:
                raw = base64.b64decode(payload, validate=True)
            except (ValueError, binascii.Error) as exc:
                raise GenerationError("Image analysis failed. Invalid image data.") from exc
            inline = InlineImage(data=raw, mime_type=detected or mime_type)

        response = self._require(
            await self.client.generate_content(
                [inline, prompt or DEFAULT_IMAGE_PROMPT],
                model=self.config.vision_model,
                thinking_budget=self.config.vision_thinking_budget,
            ),
            "Image analysis failed.",
        )
        return response.text or "No analysis provided."

    async def run_auto_qa(self, files: list[ProjectFile]) -> str:
        """Produce a bug/security report for the whole project."""
        response = self._require(
            await self.client.generate_content(
                f"Analyze for bugs/security:\n\n{build_code_context(files)}",
                model=self.config.qa_model,
                system_instruction=QA_INSTRUCTION,
            ),
            "QA analysis failed.",
        )
        return response.text

    async def explain_code(self, file_name: str, content: str) -> str:
        response = self._require(
            await self.client.generate_content(
                f"Explain {file_name}:\n\n{content}", model=self.config.explain_model
            ),
            "Explanation failed.",
        )
        return response.text

    async def refactor_code(self, file_name: str, content: str, instruction: str) -> str:
        """Return the refactored file content with markdown fences removed."""
        response = self._require(
            await self.client.generate_content(
                f"Refactor {file_name} for: {instruction}. Raw code only.\n\n{content}",
                model=self.config.refactor_model,
            ),
            "Refactor failed.",
        )
        return strip_code_fences(response.text)
