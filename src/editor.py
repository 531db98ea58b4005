"""Project editor controller.

Holds the editor's view state (file cursor, active tab, panel outputs) and
runs the AI-backed actions against the :class:`GenerationService`. Every
action follows the same cycle:

1. Check local preconditions; if they fail, do nothing.
2. Mark the action in flight (``is_generating`` / ``is_processing``).
3. Send exactly one request.
4. On success merge the result into the session; on failure set a one-shot
   ``notice`` (or the inline explanation). No retry, no rollback.

Each action carries a request token. A response that comes back after a newer
request of the same kind was issued, or after :meth:`EditorController.close`,
is dropped without touching any state. Replacing the file set through
:meth:`EditorController.generate` also makes in-flight QA, explain and
refactor requests stale.
"""

from __future__ import annotations

import asyncio
import base64
import itertools
import mimetypes
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from src.deployment import DeploymentSimulator
from src.generation import GenerationError, GenerationService
from src.models import Project, ProjectFile, ProjectStatus, ResearchResult
from src.navigation import EditorTab
from src.session import Session
from src.utils import project_name_from_prompt, random_id

DEFAULT_IMAGE_PROMPT = "Analyze this for UI architecture patterns."

_GENERATING_ACTIONS = frozenset({"generate", "qa"})
_PROCESSING_ACTIONS = frozenset({"explain", "refactor", "research", "image"})
# Actions whose result is tied to the file set they were started on.
_FILE_BOUND_ACTIONS = ("qa", "explain", "refactor")


class EditorController:
    """State and actions of the project editor.

    The edited project is always ``session.selected_project``; when it is
    ``None`` the editor is in "new project" mode.
    """

    def __init__(
        self,
        session: Session,
        service: GenerationService,
        deployment: Optional[DeploymentSimulator] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session
        self.service = service
        self.deployment = deployment or DeploymentSimulator(session)
        self._rng = rng

        self.current_file_index = 0
        self.tab = EditorTab.CODE
        self.notice: Optional[str] = None
        self.explanation = ""
        self.search_results: Optional[ResearchResult] = None
        self.image: Optional[str] = None
        self.image_prompt = DEFAULT_IMAGE_PROMPT
        self.image_analysis = ""

        self._counter = itertools.count(1)
        self._tokens: dict[str, int] = {}
        self._inflight: set[str] = set()

    # ------------------------------------------------------------------
    # Request tokens
    # ------------------------------------------------------------------

    def _begin(self, action: str) -> int:
        token = next(self._counter)
        self._tokens[action] = token
        self._inflight.add(action)
        return token

    def _is_current(self, action: str, token: int) -> bool:
        return self._tokens.get(action) == token

    def _finish(self, action: str, token: int) -> None:
        if self._is_current(action, token):
            self._inflight.discard(action)

    def _invalidate(self, *actions: str) -> None:
        """Make any in-flight request of *actions* stale."""
        for action in actions:
            self._tokens.pop(action, None)
            self._inflight.discard(action)

    @property
    def is_generating(self) -> bool:
        return bool(self._inflight & _GENERATING_ACTIONS)

    @property
    def is_processing(self) -> bool:
        return bool(self._inflight & _PROCESSING_ACTIONS)

    def close(self) -> None:
        """Tear the editor down: drop in-flight responses, stop deployment."""
        self._tokens.clear()
        self._inflight.clear()
        self.deployment.cancel()

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    @property
    def project(self) -> Optional[Project]:
        return self.session.selected_project

    @property
    def current_file(self) -> Optional[ProjectFile]:
        project = self.project
        if project is None or not 0 <= self.current_file_index < len(project.files):
            return None
        return project.files[self.current_file_index]

    def set_tab(self, tab: EditorTab) -> None:
        self.tab = tab

    def select_file(self, index: int) -> None:
        """Move the file cursor. Always switches to the code tab."""
        self.current_file_index = index
        self.tab = EditorTab.CODE

    def consume_notice(self) -> Optional[str]:
        notice, self.notice = self.notice, None
        return notice

    def _replace_file(self, project: Project, index: int, content: str) -> Project:
        files = list(project.files)
        files[index] = files[index].model_copy(update={"content": content})
        return project.model_copy(update={"files": files})

    def edit_current_file(self, content: str) -> None:
        """Replace the content of the file under the cursor and save."""
        project, current = self.project, self.current_file
        if project is None or current is None:
            return
        self.session.update_project(
            self._replace_file(project, self.current_file_index, content)
        )

    # ------------------------------------------------------------------
    # AI-backed actions
    # ------------------------------------------------------------------

    async def generate(self, prompt: str) -> Optional[Project]:
        """Generate a project from *prompt*.

        Regenerating while a project is selected keeps its id and replaces
        it; otherwise a new project is created and selected.
        """
        if not prompt.strip():
            return None
        existing = self.project
        token = self._begin("generate")
        self.deployment.reset()
        try:
            app = await self.service.generate_app_code(
                prompt, model=self.session.config.ai_model
            )
        except GenerationError as exc:
            if self._is_current("generate", token):
                self.notice = str(exc) or "Generation failed."
            return None
        finally:
            self._finish("generate", token)

        if not self._is_current("generate", token):
            return None
        if existing is not None and self.session.get_project(existing.id) is None:
            return None

        project = Project(
            id=existing.id if existing else random_id(rng=self._rng),
            name=project_name_from_prompt(prompt),
            description=app.description,
            files=app.files,
            status=ProjectStatus.DRAFT,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        if existing is not None:
            self.session.update_project(project)
        else:
            self.session.create_project(project)
        self._invalidate(*_FILE_BOUND_ACTIONS)
        self.explanation = ""
        self.current_file_index = 0
        self.tab = EditorTab.CODE
        return project

    async def run_qa(self) -> Optional[str]:
        """Audit the whole project and store the report on it."""
        project = self.project
        if project is None:
            return None
        token = self._begin("qa")
        try:
            report = await self.service.run_auto_qa(project.files)
        except GenerationError:
            if self._is_current("qa", token):
                self.notice = "QA analysis failed."
            return None
        finally:
            self._finish("qa", token)

        if not self._is_current("qa", token):
            return None
        latest = self.session.get_project(project.id)
        if latest is None or latest.files != project.files:
            return None
        self.session.update_project(
            latest.model_copy(update={"test_report": report, "status": ProjectStatus.STABLE})
        )
        self.tab = EditorTab.QA
        return report

    async def explain(self) -> Optional[str]:
        """Explain the file under the cursor in the AI tab."""
        current = self.current_file
        if current is None:
            return None
        token = self._begin("explain")
        self.tab = EditorTab.AI
        self.explanation = "Analyzing..."
        try:
            text = await self.service.explain_code(current.name, current.content)
        except GenerationError:
            if self._is_current("explain", token):
                self.explanation = "Error."
            return None
        finally:
            self._finish("explain", token)

        if not self._is_current("explain", token):
            return None
        self.explanation = text
        return text

    async def refactor(self, instruction: str) -> Optional[str]:
        """Rewrite the file under the cursor following *instruction*."""
        project, current = self.project, self.current_file
        if project is None or current is None or not instruction.strip():
            return None
        index = self.current_file_index
        token = self._begin("refactor")
        try:
            content = await self.service.refactor_code(current.name, current.content, instruction)
        except GenerationError:
            if self._is_current("refactor", token):
                self.notice = "Refactor failed."
            return None
        finally:
            self._finish("refactor", token)

        if not self._is_current("refactor", token):
            return None
        latest = self.session.get_project(project.id)
        if latest is None or index >= len(latest.files):
            return None
        target = latest.files[index]
        if target.path != current.path or target.content != current.content:
            return None
        self.session.update_project(self._replace_file(latest, index, content))
        return content

    async def research(self, query: str) -> Optional[ResearchResult]:
        if not query.strip():
            return None
        token = self._begin("research")
        try:
            result = await self.service.search_grounding(query)
        except GenerationError:
            if self._is_current("research", token):
                self.notice = "Research failed."
            return None
        finally:
            self._finish("research", token)

        if not self._is_current("research", token):
            return None
        self.search_results = result
        return result

    def load_image(self, path: str | Path) -> str:
        """Read an image file into a ``data:`` URL and select it for analysis."""
        image_path = Path(path)
        mime = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        self.image = f"data:{mime};base64,{encoded}"
        return self.image

    async def analyze_image(self, prompt: Optional[str] = None) -> Optional[str]:
        if not self.image:
            return None
        if prompt is not None:
            self.image_prompt = prompt
        token = self._begin("image")
        try:
            analysis = await self.service.analyze_image(self.image, self.image_prompt)
        except GenerationError:
            if self._is_current("image", token):
                self.notice = "Image analysis failed."
            return None
        finally:
            self._finish("image", token)

        if not self._is_current("image", token):
            return None
        self.image_analysis = analysis
        return analysis

    # ------------------------------------------------------------------
    # Deployment
    # ------------------------------------------------------------------

    def deploy(self) -> Optional[asyncio.Task]:
        """Start the simulated deployment of the selected project."""
        project = self.project
        if project is None:
            return None
        return self.deployment.start(project)
