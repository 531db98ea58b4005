"""Top-level views, editor tabs and role-based view access."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from src.models import UserRole


class View(str, Enum):
    DASHBOARD = "dashboard"
    EDITOR = "editor"
    ADMIN = "admin"
    SETTINGS = "settings"


class EditorTab(str, Enum):
    CODE = "code"
    QA = "qa"
    RESEARCH = "research"
    VISUAL = "visual"
    PREVIEW = "preview"
    AI = "ai"


BASELINE_ROLE = UserRole.USER

# Views that need a role strictly above the baseline.
_GATED_VIEWS: frozenset[View] = frozenset({View.ADMIN})


def can_access(role: Optional[UserRole], view: View) -> bool:
    """Return True when *role* may open *view*.

    Unauthenticated sessions (``role is None``) may open nothing.
    """
    if role is None:
        return False
    if view in _GATED_VIEWS:
        return role.outranks(BASELINE_ROLE)
    return True


def accessible_views(role: Optional[UserRole]) -> list[View]:
    """All views *role* may open, in menu order."""
    return [v for v in View if can_access(role, v)]
