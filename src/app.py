"""Nexus App Builder interactive shell.

A terminal front-end for the builder: log in with a mock role, generate a
project from a prompt, browse and edit its files, run the AI panels (QA,
explain, refactor, research, visual analysis), replay the simulated
deployment, and chat with the support bot.

Usage::

    python -m src.app
    python -m src.app --role super --storage ./.nexus/local-storage.json
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from src.admin import AVAILABLE_MODELS, AdminAccessError, AdminPanel
from src.chatbot import ChatBot
from src.config import Config
from src.deployment import DeploymentSimulator
from src.editor import EditorController
from src.generation import GenerationService
from src.models import UserRole
from src.navigation import EditorTab, View, accessible_views
from src.session import Session
from src.storage import LocalStore, ProjectRepository
from src.utils import (
    console,
    print_error,
    print_success,
    print_summary_table,
    print_view_header,
    print_warning,
)

ROLE_ALIASES: dict[str, UserRole] = {
    "user": UserRole.USER,
    "builder": UserRole.USER,
    "admin": UserRole.ADMIN,
    "super": UserRole.SUPER_ADMIN,
    "super_admin": UserRole.SUPER_ADMIN,
}

HELP_TEXT = """\
[bold]Session[/bold]     login <user|admin|super>, logout, settings, quit
[bold]Dashboard[/bold]   dashboard, new, open <id>, delete <id>
[bold]Editor[/bold]      generate <prompt>, files, file <n>, show, edit <local-file>,
            tab <code|qa|research|visual|preview|ai>, qa, explain,
            refactor <instruction>, research <query>,
            image <path>, analyze [prompt], deploy, close
[bold]Admin[/bold]       admin, set-model <model>, set-max <n>,
            toggle <monetization|autotest>
[bold]Support[/bold]     chat <message>
"""


class Shell:
    """Command dispatcher over one :class:`Session`.

    ``handle`` returns ``False`` once the user asks to quit.
    """

    def __init__(self, config: Config, session: Session, service: GenerationService) -> None:
        self.config = config
        self.session = session
        self.service = service
        self.editor = EditorController(
            session,
            service,
            deployment=DeploymentSimulator(
                session,
                log_interval=config.deployment.log_interval,
                finalize_delay=config.deployment.finalize_delay,
                on_log=lambda line: console.print(f"  [green]{line}[/green]"),
            ),
        )
        self.chatbot = ChatBot(service)
        self.admin = AdminPanel(session)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def handle(self, line: str) -> bool:
        head, _, rest = line.strip().partition(" ")
        if not head:
            return True
        command, rest = head.lower(), rest.strip()

        if command in ("quit", "exit"):
            self.editor.close()
            return False
        if command == "help":
            console.print(Panel(HELP_TEXT, title="Commands", border_style="cyan"))
            return True
        if command == "login":
            self._login(rest)
            return True
        if not self.session.is_authenticated:
            print_warning("Log in first: login <user|admin|super>")
            return True

        handler = {
            "logout": self._logout,
            "dashboard": self._dashboard,
            "new": self._new,
            "settings": self._settings,
            "admin": self._admin_view,
            "files": self._files,
            "show": self._show,
            "close": self._close,
            "qa": self._qa,
            "explain": self._explain,
            "deploy": self._deploy,
        }.get(command)
        if handler is not None:
            result = handler()
            if asyncio.iscoroutine(result):
                await result
            self._flush_notice()
            return True

        arg_handler = {
            "open": self._open,
            "delete": self._delete,
            "generate": self._generate,
            "file": self._file,
            "edit": self._edit,
            "tab": self._tab,
            "refactor": self._refactor,
            "research": self._research,
            "image": self._image,
            "analyze": self._analyze,
            "chat": self._chat,
            "set-model": self._set_model,
            "set-max": self._set_max,
            "toggle": self._toggle,
        }.get(command)
        if arg_handler is None:
            print_warning(f"Unknown command: {command} (try 'help')")
            return True
        try:
            result = arg_handler(rest)
            if asyncio.iscoroutine(result):
                await result
        except AdminAccessError as exc:
            print_error(str(exc))
        except (OSError, ValueError) as exc:
            print_error(str(exc))
        self._flush_notice()
        return True

    def _flush_notice(self) -> None:
        notice = self.editor.consume_notice()
        if notice:
            print_error(notice)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def _login(self, role_name: str) -> None:
        role = ROLE_ALIASES.get(role_name.strip().lower())
        if role is None:
            print_warning("Choose a role: user, admin or super")
            return
        self.login(role)

    def login(self, role: UserRole) -> None:
        user = self.session.login(role)
        print_success(f"Signed in as {user.email} ({user.role.value})")
        self._dashboard()

    def _logout(self) -> None:
        self.editor.close()
        self.session.logout()
        print_success("Signed out.")

    def _settings(self) -> None:
        self.session.navigate(View.SETTINGS)
        user = self.session.user
        assert user is not None
        print_view_header("User Settings")
        print_summary_table(
            {
                "Authenticated Identity": user.email,
                "Authorization Tier": user.role.value,
                "Available Compute Credits": str(user.credits),
            },
            title="Profile",
        )

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def _dashboard(self) -> None:
        self.session.navigate(View.DASHBOARD)
        print_view_header("Dashboard")
        views = ", ".join(v.value for v in accessible_views(self.session.role))
        console.print(f"[dim]Views: {views}[/dim]")
        if not self.session.projects:
            console.print("No projects yet. Use [bold]generate <prompt>[/bold] to build one.")
            return
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Files", justify="right")
        table.add_column("Description")
        for p in self.session.projects:
            color = {"stable": "green", "testing": "yellow"}.get(p.status.value, "cyan")
            table.add_row(
                p.id,
                p.name,
                f"[{color}]{p.status.value}[/{color}]",
                str(p.file_count),
                p.description[:60],
            )
        console.print(table)

    def _new(self) -> None:
        self.editor.close()
        self.session.start_new_project()
        print_view_header("V1 Platform Builder")
        console.print("Describe your application with [bold]generate <prompt>[/bold].")

    def _open(self, project_id: str) -> None:
        self.editor.close()
        if not self.session.open_project(project_id.strip()):
            print_warning(f"No project with id {project_id!r}")
            return
        self.editor.select_file(0)
        self._files()

    def _delete(self, project_id: str) -> None:
        project_id = project_id.strip()
        if self.session.get_project(project_id) is None:
            print_warning(f"No project with id {project_id!r}")
            return
        if self.session.selected_project and self.session.selected_project.id == project_id:
            self.editor.close()
        self.session.delete_project(project_id)
        print_success(f"Deleted {project_id}")

    # ------------------------------------------------------------------
    # Editor
    # ------------------------------------------------------------------

    async def _generate(self, prompt: str) -> None:
        self.session.navigate(View.EDITOR)
        with console.status("Synthesizing..."):
            project = await self.editor.generate(prompt)
        if project is not None:
            print_success(
                f"Generated {project.name!r} ({project.file_count} files, id {project.id})"
            )
            self._files()

    def _files(self) -> None:
        project = self.editor.project
        if project is None:
            print_warning("No project open.")
            return
        print_view_header(project.name)
        if project.description:
            console.print(project.description)
        for idx, f in enumerate(project.files):
            marker = ">" if idx == self.editor.current_file_index else " "
            console.print(f" {marker} [{idx}] {f.path}")

    def _file(self, index: str) -> None:
        self.editor.select_file(int(index))
        self._show()

    def _show(self) -> None:
        current = self.editor.current_file
        if current is None:
            print_warning("No file selected.")
            return
        lexer = Syntax.guess_lexer(current.path, code=current.content)
        console.print(Panel(Syntax(current.content, lexer, line_numbers=True), title=current.path))

    def _edit(self, local_path: str) -> None:
        if self.editor.current_file is None:
            print_warning("No file selected.")
            return
        self.editor.edit_current_file(Path(local_path).read_text(encoding="utf-8"))
        print_success("Saved.")

    def _tab(self, name: str) -> None:
        self.editor.set_tab(EditorTab(name.strip().lower()))
        self._render_tab()

    def _render_tab(self) -> None:
        tab, project = self.editor.tab, self.editor.project
        if tab is EditorTab.CODE:
            self._show()
        elif tab is EditorTab.QA:
            report = project.test_report if project else None
            console.print(Panel(Markdown(report or "No QA report yet. Run [qa]."), title="QA"))
        elif tab is EditorTab.AI:
            console.print(Panel(self.editor.explanation or "Nothing explained yet.", title="AI"))
        elif tab is EditorTab.RESEARCH:
            self._render_research()
        elif tab is EditorTab.VISUAL:
            body = self.editor.image_analysis or "Awaiting visual data..."
            console.print(Panel(body, title="Visual Analysis"))
        elif tab is EditorTab.PREVIEW:
            self._render_preview()

    def _close(self) -> None:
        self.editor.close()
        self._dashboard()

    async def _qa(self) -> None:
        with console.status("Thinking..."):
            report = await self.editor.run_qa()
        if report is not None:
            self._render_tab()

    async def _explain(self) -> None:
        with console.status("Analyzing..."):
            await self.editor.explain()
        self._render_tab()

    async def _refactor(self, instruction: str) -> None:
        with console.status("Refactoring..."):
            content = await self.editor.refactor(instruction)
        if content is not None:
            self._show()

    async def _research(self, query: str) -> None:
        self.editor.set_tab(EditorTab.RESEARCH)
        with console.status("Researching..."):
            await self.editor.research(query)
        self._render_research()

    def _render_research(self) -> None:
        results = self.editor.search_results
        if results is None:
            console.print("No research yet. Use [bold]research <query>[/bold].")
            return
        console.print(Panel(Markdown(results.text), title="Architectural Research"))
        for source in results.sources:
            if source.web is not None:
                console.print(f"  - {source.web.title or source.web.uri}: {source.web.uri}")

    def _image(self, path: str) -> None:
        self.editor.set_tab(EditorTab.VISUAL)
        self.editor.load_image(path.strip())
        print_success(f"Loaded image {path.strip()}")

    async def _analyze(self, prompt: str) -> None:
        if self.editor.image is None:
            print_warning("Load an image first: image <path>")
            return
        with console.status("Running visual audit..."):
            await self.editor.analyze_image(prompt or None)
        self.editor.set_tab(EditorTab.VISUAL)
        self._render_tab()

    async def _deploy(self) -> None:
        self.editor.set_tab(EditorTab.PREVIEW)
        task = self.editor.deploy()
        if task is None:
            print_warning("No project open.")
            return
        await task
        self._render_preview()

    def _render_preview(self) -> None:
        project = self.editor.project
        if project is None or not project.preview_url:
            console.print("Not deployed yet. Use [bold]deploy[/bold].")
            return
        data = {"Preview URL": project.preview_url, "Status": project.status.value}
        if project.performance is not None:
            perf = project.performance
            data.update(
                {
                    "Score": str(perf.score),
                    "Bundle Size": perf.bundle_size,
                    "TTFB": perf.ttfb,
                    "FCP": perf.fcp,
                    "Optimization": perf.optimization_level.value,
                }
            )
        print_summary_table(data, title="Deployment")

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    def _admin_view(self) -> None:
        if not self.session.navigate(View.ADMIN):
            print_error("The admin console needs an ADMIN or SUPER_ADMIN role.")
            return
        cfg = self.session.config
        print_view_header("Admin Console", color="bright_magenta")
        print_summary_table(
            {
                "AI Model": f"{cfg.ai_model} ({AVAILABLE_MODELS.get(cfg.ai_model, 'custom')})",
                "Max Projects / User": str(cfg.max_user_projects),
                "Monetization Engine": "on" if cfg.monetization_enabled else "off",
                "Automated QA Loop": "on" if cfg.auto_test_enabled else "off",
            },
            title="System Configuration",
        )
        table = Table(title="Active Projects Monitor", header_style="bold cyan")
        for column in ("Project", "Owner", "Status"):
            table.add_column(column)
        for row in self.admin.project_monitor():
            table.add_row(row.name, row.owner, row.status)
        console.print(table)

    def _set_model(self, model: str) -> None:
        self.admin.set_model(model.strip())
        print_success(f"Model set to {model.strip()}")

    def _set_max(self, value: str) -> None:
        self.admin.set_max_projects(int(value))
        print_success(f"Max projects per user set to {value}")

    def _toggle(self, name: str) -> None:
        key = name.strip().lower()
        if key == "monetization":
            state = self.admin.toggle_monetization()
        elif key in ("autotest", "auto-test", "qa"):
            state = self.admin.toggle_auto_test()
        else:
            print_warning("toggle monetization | toggle autotest")
            return
        print_success(f"{key} is now {'on' if state else 'off'}")

    # ------------------------------------------------------------------
    # Support chat
    # ------------------------------------------------------------------

    async def _chat(self, message: str) -> None:
        with console.status("Thinking..."):
            reply = await self.chatbot.send(message)
        if reply is not None:
            console.print(Panel(Markdown(reply.text), title="NexusAI", border_style="magenta"))


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_shell(config: Config) -> Shell:
    """Wire storage, session and service together and restore saved projects."""
    repository = ProjectRepository(LocalStore(config.storage_path), key=config.projects_key)
    session = Session(repository=repository, config=config.system)
    session.restore()
    service = GenerationService.from_config(config.gemini)
    return Shell(config, session, service)


async def run_shell(shell: Shell, role: Optional[UserRole] = None) -> None:
    loop = asyncio.get_running_loop()
    console.print(
        Panel(
            "[bold bright_cyan]NexusAI Platform Builder[/bold bright_cyan]\n"
            "Type [bold]help[/bold] for commands.",
            border_style="bright_cyan",
        )
    )
    if role is not None:
        shell.login(role)
    while True:
        try:
            line = await loop.run_in_executor(None, console.input, "[bold cyan]nexus>[/bold cyan] ")
        except (EOFError, KeyboardInterrupt):
            shell.editor.close()
            break
        if not await shell.handle(line):
            break


def main() -> None:
    """CLI entry point for ``python -m src.app``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="NexusAI Platform Builder -- generate apps from a prompt",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m src.app\n"
            "  python -m src.app --role super\n"
            "  NEXUS_API_KEY=... python -m src.app --storage ./projects.json\n"
        ),
    )
    parser.add_argument(
        "--role",
        choices=sorted(ROLE_ALIASES),
        default=None,
        help="Log in immediately with this mock role",
    )
    parser.add_argument(
        "--storage",
        default=None,
        help="Path of the local storage file (default: ./.nexus/local-storage.json)",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Load settings from a JSON file written by Config.save",
    )

    args = parser.parse_args()

    config = Config.load(Path(args.config)) if args.config else Config.from_env()
    if args.config:
        config.gemini.api_key = Config.from_env().gemini.api_key
    if args.storage:
        config.storage_path = Path(args.storage)
    if not config.gemini.api_key:
        print_warning("No NEXUS_API_KEY / API_KEY set -- AI actions will fail.")

    shell = build_shell(config)
    role = ROLE_ALIASES[args.role] if args.role else None
    asyncio.run(run_shell(shell, role))


if __name__ == "__main__":
    main()
