"""Shared pytest fixtures for the Nexus App Builder test suite.

Provides reusable fixtures for:
- Temporary local storage files
- Sample projects and a generated-app payload
- Mocked Gemini HTTP responses
- A session/editor pair wired to a mocked generation service
"""

from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config import GeminiConfig
from src.deployment import DeploymentSimulator
from src.editor import EditorController
from src.gemini_client import GeminiClient
from src.generation import GenerationService
from src.models import GeneratedApp, Project, ProjectFile, ProjectStatus
from src.session import Session
from src.storage import LocalStore, ProjectRepository


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    """Location of the local-storage JSON file (not created yet)."""
    return tmp_path / ".nexus" / "local-storage.json"


@pytest.fixture
def repository(storage_path: Path) -> ProjectRepository:
    return ProjectRepository(LocalStore(storage_path))


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

SAMPLE_FILES: list[dict[str, str]] = [
    {
        "name": "index.tsx",
        "path": "src/index.tsx",
        "content": "import { createRoot } from 'react-dom/client';\nimport App from './App';\n",
    },
    {
        "name": "App.tsx",
        "path": "src/App.tsx",
        "content": "export default function App() {\n  return <main>Todo</main>;\n}\n",
    },
    {
        "name": "TodoList.tsx",
        "path": "src/components/TodoList.tsx",
        "content": "export const TodoList = () => <ul />;\n",
    },
]


def make_project(project_id: str = "abc123xyz", name: str = "Todo App", **overrides: Any) -> Project:
    data: dict[str, Any] = {
        "id": project_id,
        "name": name,
        "description": "A minimal todo application.",
        "files": [ProjectFile(**f) for f in SAMPLE_FILES],
        "status": ProjectStatus.DRAFT,
        "created_at": "2026-01-15T10:30:00+00:00",
    }
    data.update(overrides)
    return Project(**data)


@pytest.fixture
def project_factory():
    """``make_project(project_id=..., name=..., **overrides)`` builder."""
    return make_project


@pytest.fixture
def sample_project() -> Project:
    return make_project()


@pytest.fixture
def generated_app_json() -> str:
    """Architect response text as the model would return it."""
    return json.dumps({"description": "A minimal todo application.", "files": SAMPLE_FILES})


@pytest.fixture
def generated_app(generated_app_json: str) -> GeneratedApp:
    return GeneratedApp.model_validate_json(generated_app_json)


# ---------------------------------------------------------------------------
# Mock Gemini HTTP
# ---------------------------------------------------------------------------

def make_gemini_payload(text: str, chunks: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Build a realistic ``generateContent`` response body."""
    candidate: dict[str, Any] = {
        "content": {"role": "model", "parts": [{"text": text}]},
        "finishReason": "STOP",
    }
    if chunks is not None:
        candidate["groundingMetadata"] = {"groundingChunks": chunks}
    return {
        "candidates": [candidate],
        "modelVersion": "gemini-3-flash-preview",
        "usageMetadata": {"promptTokenCount": 42, "candidatesTokenCount": 128},
    }


def make_http_client(payload: dict[str, Any] | None = None, *, side_effect: Any = None) -> AsyncMock:
    """An ``httpx.AsyncClient`` stand-in usable as an async context manager."""
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = payload or {}
    mock_response.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post = AsyncMock(side_effect=side_effect)
    else:
        mock_client.post = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


@pytest.fixture
def mock_gemini():
    """Patch ``httpx.AsyncClient`` so every request returns a short text answer.

    Usage:
        def test_something(mock_gemini):
            with mock_gemini as client_cls:
                ...
    """
    return patch(
        "httpx.AsyncClient",
        return_value=make_http_client(make_gemini_payload("Mocked Gemini answer.")),
    )


# ---------------------------------------------------------------------------
# Session / editor
# ---------------------------------------------------------------------------

@pytest.fixture
def service() -> GenerationService:
    """A generation service whose operations are AsyncMocks."""
    svc = GenerationService(GeminiClient(api_key="test-key"), GeminiConfig())
    svc.generate_app_code = AsyncMock()
    svc.search_grounding = AsyncMock()
    svc.chat = AsyncMock()
    svc.analyze_image = AsyncMock()
    svc.run_auto_qa = AsyncMock()
    svc.explain_code = AsyncMock()
    svc.refactor_code = AsyncMock()
    return svc


@pytest.fixture
def session(repository: ProjectRepository) -> Session:
    s = Session(repository=repository, rng=random.Random(7))
    return s


@pytest.fixture
def editor(session: Session, service: GenerationService) -> EditorController:
    deployment = DeploymentSimulator(
        session, log_interval=0, finalize_delay=0, rng=random.Random(1)
    )
    return EditorController(session, service, deployment=deployment, rng=random.Random(3))


@pytest.fixture
def gemini_payload():
    """``make_gemini_payload(text, chunks=None)`` builder."""
    return make_gemini_payload


@pytest.fixture
def http_client_factory():
    """``make_http_client(payload, side_effect=...)`` builder."""
    return make_http_client
