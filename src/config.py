"""Nexus App Builder configuration.

Centralised, typed configuration for the builder. All settings use Pydantic v2
models so they can be validated at construction time and serialised to/from
JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from src.models import SystemConfig


class GeminiConfig(BaseModel):
    """Connection settings and per-operation models for the Gemini API."""

    api_key: str = Field(default="", repr=False)
    url: str = Field(default="https://generativelanguage.googleapis.com")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")

    research_model: str = Field(default="gemini-3-flash-preview")
    chat_model: str = Field(default="gemini-3-pro-preview")
    vision_model: str = Field(default="gemini-3-pro-preview")
    qa_model: str = Field(default="gemini-3-flash-preview")
    explain_model: str = Field(default="gemini-2.5-flash-lite-latest")
    refactor_model: str = Field(default="gemini-3-flash-preview")

    architect_thinking_budget: int = Field(default=32768, ge=0)
    chat_thinking_budget: int = Field(default=2000, ge=0)
    vision_thinking_budget: int = Field(default=4000, ge=0)


class DeploymentConfig(BaseModel):
    """Timing of the simulated deployment sequence."""

    log_interval: float = Field(
        default=0.45, ge=0.0, description="Seconds between two deployment log lines"
    )
    finalize_delay: float = Field(
        default=1.0, ge=0.0, description="Seconds between the last log line and go-live"
    )


class Config(BaseModel):
    """Global Nexus configuration.

    Instances are typically created once by the CLI entry point and then
    passed to the session, the editor and the generation service.
    """

    storage_path: Path = Field(default=Path("./.nexus/local-storage.json"))
    projects_key: str = Field(default="nexus_projects")
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    deployment: DeploymentConfig = Field(default_factory=DeploymentConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        The API key is never written out.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            self.model_dump_json(indent=2, exclude={"gemini": {"api_key"}}),
            encoding="utf-8",
        )
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            NEXUS_API_KEY (or API_KEY), NEXUS_GEMINI_URL, NEXUS_GEMINI_TIMEOUT,
            NEXUS_STORAGE_PATH, NEXUS_DEPLOY_INTERVAL, NEXUS_AI_MODEL.
        """
        gemini_kwargs: dict[str, Any] = {
            "api_key": os.environ.get("NEXUS_API_KEY") or os.environ.get("API_KEY", ""),
        }
        if os.environ.get("NEXUS_GEMINI_URL"):
            gemini_kwargs["url"] = os.environ["NEXUS_GEMINI_URL"]
        if os.environ.get("NEXUS_GEMINI_TIMEOUT"):
            gemini_kwargs["timeout"] = int(os.environ["NEXUS_GEMINI_TIMEOUT"])

        deployment_kwargs: dict[str, Any] = {}
        if os.environ.get("NEXUS_DEPLOY_INTERVAL"):
            deployment_kwargs["log_interval"] = float(os.environ["NEXUS_DEPLOY_INTERVAL"])

        system_kwargs: dict[str, Any] = {}
        if os.environ.get("NEXUS_AI_MODEL"):
            system_kwargs["ai_model"] = os.environ["NEXUS_AI_MODEL"]

        return cls(
            storage_path=Path(
                os.environ.get("NEXUS_STORAGE_PATH", "./.nexus/local-storage.json")
            ),
            gemini=GeminiConfig(**gemini_kwargs),
            deployment=DeploymentConfig(**deployment_kwargs),
            system=SystemConfig(**system_kwargs),
        )
