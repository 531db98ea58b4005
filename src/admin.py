"""Admin panel operations.

Every operation checks that the session's role outranks the baseline role
and raises :class:`AdminAccessError` otherwise. Config changes replace the
session's :class:`SystemConfig` wholesale.
"""

from __future__ import annotations

from pydantic import BaseModel

from src.models import SystemConfig
from src.navigation import View, can_access
from src.session import Session

AVAILABLE_MODELS: dict[str, str] = {
    "gemini-3-pro-preview": "Gemini 3 Pro Preview",
    "gemini-3-flash-preview": "Gemini 3 Flash Preview",
}


class AdminAccessError(PermissionError):
    """Raised when a non-admin session calls an admin operation."""


class MonitorRow(BaseModel):
    """One line of the active-projects monitor."""

    project_id: str
    name: str
    owner: str
    status: str


class AdminPanel:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _require_admin(self) -> None:
        if not can_access(self.session.role, View.ADMIN):
            raise AdminAccessError("Admin access requires an ADMIN or SUPER_ADMIN role.")

    def _update(self, **changes: object) -> None:
        self._require_admin()
        merged = {**self.session.config.model_dump(), **changes}
        self.session.update_config(SystemConfig.model_validate(merged))

    def set_model(self, model: str) -> None:
        if model not in AVAILABLE_MODELS:
            raise ValueError(
                f"Unknown model {model!r}; choose one of {', '.join(AVAILABLE_MODELS)}"
            )
        self._update(ai_model=model)

    def set_max_projects(self, limit: int) -> None:
        self._update(max_user_projects=limit)

    def toggle_monetization(self) -> bool:
        self._update(monetization_enabled=not self.session.config.monetization_enabled)
        return self.session.config.monetization_enabled

    def toggle_auto_test(self) -> bool:
        self._update(auto_test_enabled=not self.session.config.auto_test_enabled)
        return self.session.config.auto_test_enabled

    def project_monitor(self) -> list[MonitorRow]:
        self._require_admin()
        return [
            MonitorRow(
                project_id=p.id,
                name=p.name,
                owner=f"User_{p.id[:4]}",
                status=p.status.value.upper(),
            )
            for p in self.session.projects
        ]
