# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Watch every package under a root concurrently.

Run phases::

    discover(root) ──▶ SinglePackage | Workspace
          │
          ▼
    plan: aliases (workspace only) + build configs for EVERY package
          │           (an unresolvable dependency aborts here, before
          │            any session starts)
          ▼
    one RetrySupervisor task per package ──▶ count first-ready firings
          │
          ▼
    all packages ready ──▶ log "watching_started", run() returns
          │
          ▼
    wait() ──▶ blocks until a supervisor fails, raises its cause

Packages become ready in any order; the "watching_started" line is logged
exactly once, after the last one.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from bundlekit.aliases import build_aliases
from bundlekit.auxiliary import AuxiliaryWriter
from bundlekit.backends.engine import BuildEngine
from bundlekit.config import BundleKitConfig
from bundlekit.configs import BuildConfig, resolve_build_configs
from bundlekit.discovery import Workspace, discover
from bundlekit.externals import ExternalClosureResolver
from bundlekit.logging import get_logger
from bundlekit.manifests import ManifestCache, ManifestReader, NodeModulesReader
from bundlekit.package import Package
from bundlekit.supervisor import RetrySupervisor

log = get_logger(__name__)

ReaderFactory = Callable[[Package, ManifestCache], ManifestReader]


def _node_modules_reader(pkg: Package, cache: ManifestCache) -> ManifestReader:
    return NodeModulesReader(pkg.directory, cache)


@dataclass(frozen=True)
class PackagePlan:
    """A package and the build configurations it will be watched with."""

    package: Package
    configs: list[BuildConfig]


class WorkspaceCoordinator:
    """Starts and tracks one supervised watch per package.

    Args:
        engine: Build engine every session uses.
        config: Run configuration.
        writer: Auxiliary file writer; the supervisor's default if None.
        reader_factory: Builds the manifest reader for a package.
    """

    def __init__(
        self,
        engine: BuildEngine,
        *,
        config: BundleKitConfig | None = None,
        writer: AuxiliaryWriter | None = None,
        reader_factory: ReaderFactory = _node_modules_reader,
    ) -> None:
        """Initialize an idle coordinator."""
        self._config = config if config is not None else BundleKitConfig()
        self._supervisor = RetrySupervisor(engine, writer, clean_dist=self._config.clean_dist)
        self._reader_factory = reader_factory
        self._cache = ManifestCache()
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._ready: list[str] = []

    @property
    def cache(self) -> ManifestCache:
        """Manifest lookups shared by every package in this run."""
        return self._cache

    @property
    def ready_packages(self) -> list[str]:
        """Names of packages that have signalled first-ready, in order."""
        return list(self._ready)

    async def plan(self, root: Path) -> list[PackagePlan]:
        """Discover packages under ``root`` and resolve all their build configs.

        Raises:
            BundleKitError: On discovery or external resolution failure.
        """
        discovered = await discover(root)
        packages = discovered.packages
        aliases = build_aliases(packages if isinstance(discovered, Workspace) else ())

        plans: list[PackagePlan] = []
        for pkg in packages:
            resolver = ExternalClosureResolver(
                self._reader_factory(pkg, self._cache),
                allow_unresolved=self._config.allow_unresolved,
            )
            configs = await resolve_build_configs(pkg, resolver, aliases=aliases, production=self._config.production)
            plans.append(PackagePlan(package=pkg, configs=configs))
        log.debug('planned_packages', count=len(plans), cached_manifests=len(self._cache))
        return plans

    def _on_first_ready(self, name: str, total: int, all_ready: asyncio.Future[None]) -> None:
        self._ready.append(name)
        log.info('package_ready', package=name, ready=len(self._ready), total=total)
        if len(self._ready) == total and not all_ready.done():
            log.info('watching_started', packages=total)
            all_ready.set_result(None)

    def _on_supervisor_done(self, all_ready: asyncio.Future[None], task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not all_ready.done():
            all_ready.set_exception(exc)

    async def run(self, root: Path) -> None:
        """Start watching every package under ``root``.

        Returns once every package has become ready.

        Raises:
            BundleKitError: If planning fails; no session is started then.
            BaseException: The cause of the first fatal watch failure.
        """
        if self._tasks:
            raise RuntimeError('coordinator is already running')
        plans = await self.plan(root)

        all_ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        total = len(plans)
        for plan in plans:
            name = plan.package.name
            task = asyncio.create_task(
                self._supervisor.supervise(
                    plan.package,
                    plan.configs,
                    functools.partial(self._on_first_ready, name, total, all_ready),
                ),
                name=f'supervise:{name}',
            )
            task.add_done_callback(functools.partial(self._on_supervisor_done, all_ready))
            self._tasks[name] = task

        try:
            await all_ready
        except BaseException:
            await self.close()
            raise

    async def wait(self) -> None:
        """Block until a supervisor fails, then raise its cause.

        Returns only if every supervisor was cancelled.
        """
        if not self._tasks:
            return
        try:
            done, _ = await asyncio.wait(self._tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None:
                    raise exc
        except BaseException:
            await self.close()
            raise

    async def close(self) -> None:
        """Cancel every supervisor and drop cached manifests. Idempotent."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            log.debug('supervisors_stopped', count=len(tasks))
        self._tasks.clear()
        self._cache.clear()


__all__ = [
    'PackagePlan',
    'ReaderFactory',
    'WorkspaceCoordinator',
]
