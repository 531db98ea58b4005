"""Pydantic v2 models for the Nexus App Builder.

Defines the session-level data model: users and roles, projects and their
files, the synthetic performance stats attached by a deployment, the admin
system configuration, and the payloads returned by the generation service.

Persisted models serialise with camelCase aliases (``createdAt``,
``testReport``, ...) and accept snake_case names on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UserRole(str, Enum):
    """Privilege tier. USER < ADMIN < SUPER_ADMIN."""
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def outranks(self, other: "UserRole") -> bool:
        """True when this role is strictly more privileged than *other*."""
        return self.rank > other.rank


_ROLE_RANK: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.ADMIN: 1,
    UserRole.SUPER_ADMIN: 2,
}


class ProjectStatus(str, Enum):
    """Informational project status. No transitions are enforced."""
    DRAFT = "draft"
    BUILDING = "building"
    TESTING = "testing"
    STABLE = "stable"


class OptimizationLevel(str, Enum):
    STANDARD = "Standard"
    AGGRESSIVE = "Aggressive"
    ULTRA = "Ultra"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

class User(BaseModel):
    """The (mock) authenticated identity. Never persisted."""
    id: str = Field(..., description="Opaque identifier")
    email: str = Field(..., description="Display e-mail")
    role: UserRole = Field(default=UserRole.USER)
    credits: int = Field(default=0, description="Compute credit balance")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

class ProjectFile(_CamelModel):
    """One generated source file. Paths are not required to be unique."""
    name: str = Field(..., description="File name, e.g. 'App.tsx'")
    path: str = Field(..., description="Path inside the project, e.g. 'src/App.tsx'")
    content: str = Field(default="", description="Full text content")


class PerformanceStats(_CamelModel):
    """Synthetic stats produced at the end of a simulated deployment."""
    score: int = Field(..., ge=0, le=100)
    bundle_size: str = Field(..., description="e.g. '1.42 KB'")
    ttfb: str = Field(..., description="Time to first byte, e.g. '17ms'")
    fcp: str = Field(..., description="First contentful paint, e.g. '0.2s'")
    optimization_level: OptimizationLevel = Field(default=OptimizationLevel.STANDARD)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Project(_CamelModel):
    """A generated application owned by the session."""
    id: str = Field(..., description="Unique project identifier")
    name: str = Field(..., description="Short display name")
    description: str = Field(default="")
    files: list[ProjectFile] = Field(default_factory=list)
    status: ProjectStatus = Field(default=ProjectStatus.DRAFT)
    created_at: str = Field(default_factory=_now_iso, description="ISO-8601 timestamp")
    test_report: Optional[str] = Field(default=None, description="Free-text QA report")
    preview_url: Optional[str] = Field(default=None)
    performance: Optional[PerformanceStats] = Field(default=None)

    @property
    def file_count(self) -> int:
        return len(self.files)


# ---------------------------------------------------------------------------
# Admin configuration
# ---------------------------------------------------------------------------

class SystemConfig(BaseModel):
    """Process-wide settings edited from the admin view.

    ``max_user_projects`` is display-only; nothing enforces it.
    """
    ai_model: str = Field(default="gemini-3-pro-preview")
    monetization_enabled: bool = Field(default=True)
    auto_test_enabled: bool = Field(default=True)
    max_user_projects: int = Field(default=5, ge=1)


# ---------------------------------------------------------------------------
# Generation payloads
# ---------------------------------------------------------------------------

class GeneratedApp(BaseModel):
    """Structured output of the architect prompt."""
    description: str
    files: list[ProjectFile]


class GroundingWeb(BaseModel):
    uri: str = ""
    title: str = ""


class GroundingSource(BaseModel):
    """A single grounding chunk returned alongside a search-grounded answer."""
    model_config = ConfigDict(extra="allow")

    web: Optional[GroundingWeb] = None


class ResearchResult(BaseModel):
    text: str = Field(default="")
    sources: list[GroundingSource] = Field(default_factory=list)

    @classmethod
    def from_chunks(cls, text: str, chunks: list[dict[str, Any]]) -> "ResearchResult":
        return cls(text=text, sources=[GroundingSource.model_validate(c) for c in chunks])


class ChatMessage(BaseModel):
    role: Literal["user", "bot"]
    text: str
