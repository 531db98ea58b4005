"""Tests for the interactive shell (src.app).

The shell runs against a real session and local storage file; only the
generation service is mocked.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.app import ROLE_ALIASES, Shell, build_shell
from src.config import Config, DeploymentConfig
from src.models import ProjectStatus, UserRole
from src.navigation import EditorTab, View
from src.utils import console


@pytest.fixture
def shell_config(storage_path: Path) -> Config:
    return Config(
        storage_path=storage_path,
        deployment=DeploymentConfig(log_interval=0, finalize_delay=0),
    )


@pytest.fixture
def shell(shell_config, session, service) -> Shell:
    return Shell(shell_config, session, service)


async def _run(shell: Shell, *lines: str) -> str:
    with console.capture() as capture:
        for line in lines:
            await shell.handle(line)
    return capture.get()


class TestDispatch:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_quit(self, shell):
        assert await shell.handle("quit") is False
        assert await shell.handle("") is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_commands_require_login(self, shell, session):
        output = await _run(shell, "new")
        assert "Log in first" in output
        assert session.current_view is View.DASHBOARD

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_command(self, shell):
        output = await _run(shell, "login user", "frobnicate")
        assert "Unknown command: frobnicate" in output

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_login_aliases(self, shell, session):
        await _run(shell, "login super")
        assert session.role is UserRole.SUPER_ADMIN
        await _run(shell, "logout")
        assert session.user is None
        output = await _run(shell, "login wizard")
        assert "Choose a role" in output
        assert set(ROLE_ALIASES.values()) == set(UserRole)


class TestBuilderFlow:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate_qa_deploy(self, shell, session, service, generated_app):
        service.generate_app_code.return_value = generated_app
        service.run_auto_qa.return_value = "All checks passed."

        output = await _run(shell, "login user", "new", "generate Todo App please")
        assert "Generated 'Todo App please'" in output
        project = session.projects[0]

        await _run(shell, "qa")
        assert session.get_project(project.id).test_report == "All checks passed."
        assert shell.editor.tab is EditorTab.QA

        output = await _run(shell, "deploy")
        deployed = session.get_project(project.id)
        assert deployed.status is ProjectStatus.STABLE
        assert deployed.preview_url in output

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generation_failure_printed(self, shell, session, service):
        from src.generation import GenerationError

        service.generate_app_code.side_effect = GenerationError(
            "Architecture generation failed. Please refine your prompt."
        )
        output = await _run(shell, "login user", "generate Todo")
        assert "refine your prompt" in output
        assert session.projects == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_open_and_delete(self, shell, session, sample_project):
        session.projects = [sample_project]
        await _run(shell, "login user", f"open {sample_project.id}")
        assert session.selected_project == sample_project

        await _run(shell, f"delete {sample_project.id}")
        assert session.projects == []
        assert session.current_view is View.DASHBOARD

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_edit_from_local_file(self, shell, session, sample_project, tmp_path):
        session.create_project(sample_project)
        source = tmp_path / "App.tsx"
        source.write_text("// replaced\n", encoding="utf-8")

        await _run(shell, "login user", "file 1", f"edit {source}")
        assert session.get_project(sample_project.id).files[1].content == "// replaced\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bad_arguments_reported(self, shell, session, sample_project):
        session.create_project(sample_project)
        output = await _run(shell, "login user", "file two", "tab nowhere", "image /no/such.png")
        assert "invalid literal" in output
        assert "nowhere" in output
        assert "No such file" in output

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_chat(self, shell, service):
        service.chat.return_value = "Use a CDN."
        output = await _run(shell, "login user", "chat how to go faster?")
        assert "Use a CDN." in output
        assert len(shell.chatbot.messages) == 3


class TestAdminFlow:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_user_blocked(self, shell, session):
        output = await _run(shell, "login user", "admin", "toggle monetization")
        assert "needs an ADMIN" in output
        assert "Admin access requires" in output
        assert session.config.monetization_enabled is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_admin_changes_config(self, shell, session):
        await _run(
            shell,
            "login admin",
            "admin",
            "set-model gemini-3-flash-preview",
            "set-max 12",
            "toggle autotest",
        )
        assert session.current_view is View.ADMIN
        assert session.config.ai_model == "gemini-3-flash-preview"
        assert session.config.max_user_projects == 12
        assert session.config.auto_test_enabled is False


class TestBuildShell:
    @pytest.mark.unit
    def test_restores_saved_projects(self, shell_config, repository, sample_project):
        repository.save([sample_project])
        shell = build_shell(shell_config)
        assert shell.session.projects == [sample_project]
        assert shell.session.config == shell_config.system
