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

"""Restart loop that keeps one package's watch session alive.

::

    ┌──▶ start session (depth N)
    │        │
    │        ├── ready ──▶ on_first_ready()   (once, ever)
    │        │
    │        └── failure
    │              ├── Recoverable(wait) ──▶ await wait, close, depth += 1 ─┐
    │              └── Fatal(cause) ──────▶ close, raise cause unchanged    │
    └──────────────────────────────────────────────────────────────────────┘

Retries are unbounded; the engine alone decides which failures are
recoverable. At most one session per package exists at any instant: the
old one is closed before the next is started.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import NoReturn, Union

from bundlekit.auxiliary import AuxiliaryWriter, FlowStubWriter
from bundlekit.backends.engine import BuildEngine
from bundlekit.configs import BuildConfig
from bundlekit.logging import package_logger
from bundlekit.package import Package
from bundlekit.session import Fatal, WatchSession


OnFirstReady = Callable[[], Union[Awaitable[None], None]]


@dataclass
class RetryContext:
    """Per-package restart bookkeeping.

    Attributes:
        depth: Number of restarts so far (0 for the first session).
        ready_fired: Whether the first-ready callback has run.
    """

    depth: int = 0
    ready_fired: bool = False


class RetrySupervisor:
    """Runs watch sessions for a package, restarting on recoverable failures.

    Args:
        engine: Build engine the sessions use.
        writer: Auxiliary file writer the sessions use.
        clean_dist: Remove ``dist/`` before each session starts.
    """

    def __init__(
        self,
        engine: BuildEngine,
        writer: AuxiliaryWriter | None = None,
        *,
        clean_dist: bool = True,
    ) -> None:
        """Initialize the supervisor."""
        self._engine = engine
        self._writer = writer if writer is not None else FlowStubWriter()
        self._clean_dist = clean_dist

    def _new_session(self, pkg: Package, configs: Sequence[BuildConfig]) -> WatchSession:
        return WatchSession(pkg, configs, engine=self._engine, writer=self._writer, clean_dist=self._clean_dist)

    async def supervise(
        self,
        pkg: Package,
        configs: Sequence[BuildConfig],
        on_first_ready: OnFirstReady,
        context: RetryContext | None = None,
    ) -> NoReturn:
        """Watch ``pkg`` until a fatal failure, then raise its cause.

        Args:
            pkg: The package to watch.
            configs: Its build configurations.
            on_first_ready: Called once, the first time any session of
                this package becomes ready. May be sync or async.
            context: Restart bookkeeping; a fresh one by default.

        Raises:
            BaseException: The original cause of the first fatal failure.
        """
        ctx = context if context is not None else RetryContext()
        log = package_logger(__name__, pkg.name)

        while True:
            session = self._new_session(pkg, configs)
            try:
                signals = await session.start()
                await asyncio.wait({signals.ready, signals.failure}, return_when=asyncio.FIRST_COMPLETED)
                if signals.ready.done() and not ctx.ready_fired:
                    ctx.ready_fired = True
                    log.debug('first_ready', depth=ctx.depth)
                    result = on_first_ready()
                    if inspect.isawaitable(result):
                        await result
                outcome = await signals.failure
            except BaseException:
                await session.close()
                raise

            if isinstance(outcome, Fatal):
                await session.close()
                log.error('watch_failed', depth=ctx.depth, error=str(outcome.cause))
                raise outcome.cause

            log.warning('watch_recoverable_error', depth=ctx.depth)
            try:
                await outcome.wait
            finally:
                await session.close()
            ctx.depth += 1
            log.info('watch_restarting', depth=ctx.depth)


__all__ = [
    'OnFirstReady',
    'RetryContext',
    'RetrySupervisor',
]
