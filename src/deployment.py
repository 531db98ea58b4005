"""Simulated deployment of a generated project.

Nothing is built or shipped. The simulator replays a fixed list of log lines
on a timer, then stamps the project with a preview URL, randomised (but
bounded) performance stats and the ``stable`` status.

States::

    idle --start()--> deploying --(9 lines + one idle tick + finalize delay)--> deployed

A running sequence can be torn down with :meth:`DeploymentSimulator.cancel`;
after cancellation nothing is written to the session.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from src.models import OptimizationLevel, PerformanceStats, Project, ProjectStatus
from src.session import Session
from src.utils import timestamp


class DeploymentState(str, Enum):
    IDLE = "idle"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"


def deployment_log_lines(file_count: int) -> list[str]:
    """The fixed deployment script for a project with *file_count* files."""
    return [
        "Initializing Nexus-Optimizer Engine...",
        "Analyzing dependency tree for dead code...",
        f"Performing aggressive tree-shaking on {file_count} modules...",
        "Transpiling to optimized ESNext target...",
        "Minifying assets with parallel worker threads...",
        "Compressing with Brotli-11 level...",
        "Generating critical CSS paths...",
        "Warm-starting Global Edge CDN (250+ PoPs)...",
        "SUCCESS: Optimization complete. High-performance instance live.",
    ]


DEPLOYMENT_LOG_COUNT = len(deployment_log_lines(0))


def preview_url(project_id: str) -> str:
    return f"https://nexus-v1-{project_id[:8]}.preview.nexusai.app"


def simulate_performance(rng: Optional[random.Random] = None) -> PerformanceStats:
    """Random stats: score 98-99, bundle 1.20-1.70 KB, TTFB 12-21 ms."""
    source = rng or random
    return PerformanceStats(
        score=98 + source.randrange(2),
        bundle_size=f"{1.2 + source.random() * 0.5:.2f} KB",
        ttfb=f"{12 + source.randrange(10)}ms",
        fcp="0.2s",
        optimization_level=OptimizationLevel.ULTRA,
    )


class DeploymentSimulator:
    """Drives the fake deployment of one editor's project.

    Attributes:
        state: Current :class:`DeploymentState`.
        logs: Time-stamped log lines emitted so far.
    """

    def __init__(
        self,
        session: Session,
        log_interval: float = 0.45,
        finalize_delay: float = 1.0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        on_log: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session = session
        self.log_interval = log_interval
        self.finalize_delay = finalize_delay
        self.rng = rng
        self.clock = clock
        self.on_log = on_log
        self.state = DeploymentState.IDLE
        self.logs: list[str] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def is_deploying(self) -> bool:
        return self.state is DeploymentState.DEPLOYING

    @property
    def is_deployed(self) -> bool:
        return self.state is DeploymentState.DEPLOYED

    def reset(self) -> None:
        """Return to idle. A running sequence is cancelled first."""
        self.cancel()
        self.state = DeploymentState.IDLE
        self.logs = []

    def start(self, project: Project) -> asyncio.Task:
        """Schedule the sequence on the running event loop.

        Starting while a sequence is already running returns that task.
        """
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.ensure_future(self.run(project))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def run(self, project: Project) -> Optional[Project]:
        """Play the whole sequence and return the deployed project.

        Returns ``None`` when the project was deleted before go-live.
        """
        self.state = DeploymentState.DEPLOYING
        self.logs = []
        try:
            for line in deployment_log_lines(project.file_count):
                await asyncio.sleep(self.log_interval)
                entry = f"[{timestamp(self.clock())}] {line}"
                self.logs.append(entry)
                if self.on_log is not None:
                    self.on_log(entry)
            # One more tick passes after the last line before go-live is scheduled.
            await asyncio.sleep(self.log_interval)
            await asyncio.sleep(self.finalize_delay)
        except asyncio.CancelledError:
            self.state = DeploymentState.IDLE
            raise

        self.state = DeploymentState.DEPLOYED
        # Apply to the latest stored version so edits made during the
        # sequence are kept.
        current = self.session.get_project(project.id)
        if current is None:
            return None
        deployed = current.model_copy(
            update={
                "preview_url": preview_url(project.id),
                "status": ProjectStatus.STABLE,
                "performance": simulate_performance(self.rng),
            }
        )
        self.session.update_project(deployed)
        return deployed
