"""Session state store.

A :class:`Session` is the single application-state object: the (mock)
authenticated user, the shared project list, the selected project, the
current top-level view and the admin :class:`SystemConfig`. It is passed
explicitly to every controller instead of living in module globals.

Every change to the project list is mirrored to durable storage through a
:class:`ProjectRepository`.
"""

from __future__ import annotations

import random
from typing import Optional

from src.models import Project, SystemConfig, User, UserRole
from src.navigation import View, can_access
from src.storage import ProjectRepository
from src.utils import random_id

SUPER_ADMIN_EMAIL = "admin@nexus.ai"
BUILDER_EMAIL = "builder@nexus.ai"
SUPER_ADMIN_CREDITS = 999999
DEFAULT_CREDITS = 50


class Session:
    """Application state for one running builder.

    Attributes:
        user: The logged-in user, or ``None`` while unauthenticated.
        projects: Project list, newest first.
        selected_project: The project open in the editor, if any.
        current_view: The active top-level view.
        config: Admin-editable system configuration.
    """

    def __init__(
        self,
        repository: Optional[ProjectRepository] = None,
        config: Optional[SystemConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.repository = repository
        self.config = config or SystemConfig()
        self.user: Optional[User] = None
        self.projects: list[Project] = []
        self.selected_project: Optional[Project] = None
        self.current_view: View = View.DASHBOARD
        self._rng = rng

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def restore(self) -> None:
        """Load any previously stored project list.

        Deserialisation errors propagate.
        """
        if self.repository is None:
            return
        stored = self.repository.load()
        if stored is not None:
            self.projects = stored

    def _persist(self) -> None:
        if self.repository is not None:
            self.repository.save(self.projects)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[UserRole]:
        return self.user.role if self.user else None

    def login(self, role: UserRole) -> User:
        """Fabricate a user for *role*. No credentials are checked."""
        is_super = role is UserRole.SUPER_ADMIN
        self.user = User(
            id=random_id(rng=self._rng),
            email=SUPER_ADMIN_EMAIL if is_super else BUILDER_EMAIL,
            role=role,
            credits=SUPER_ADMIN_CREDITS if is_super else DEFAULT_CREDITS,
        )
        return self.user

    def logout(self) -> None:
        self.user = None
        self.current_view = View.DASHBOARD

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def navigate(self, view: View) -> bool:
        """Switch to *view* if the current role may open it."""
        if not can_access(self.role, view):
            return False
        self.current_view = view
        return True

    def open_project(self, project_id: str) -> bool:
        """Select an existing project and show it in the editor."""
        project = self.get_project(project_id)
        if project is None:
            return False
        self.selected_project = project
        self.current_view = View.EDITOR
        return True

    def start_new_project(self) -> None:
        """Open an empty editor, ready for a fresh generation."""
        self.selected_project = None
        self.current_view = View.EDITOR

    # ------------------------------------------------------------------
    # Project lifecycle
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.projects if p.id == project_id), None)

    def create_project(self, project: Project) -> None:
        self.projects = [project, *self.projects]
        self.selected_project = project
        self.current_view = View.EDITOR
        self._persist()

    def update_project(self, project: Project) -> None:
        self.projects = [project if p.id == project.id else p for p in self.projects]
        if self.selected_project is not None and self.selected_project.id == project.id:
            self.selected_project = project
        self._persist()

    def delete_project(self, project_id: str) -> None:
        self.projects = [p for p in self.projects if p.id != project_id]
        if self.selected_project is not None and self.selected_project.id == project_id:
            self.selected_project = None
            self.current_view = View.DASHBOARD
        self._persist()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, config: SystemConfig) -> None:
        self.config = config
