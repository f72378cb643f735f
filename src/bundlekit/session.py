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

"""One incremental watch session for one package.

A :class:`WatchSession` wraps a single engine watch handle and turns its
event stream into two signals::

    EngineEvent                   SessionSignals
    ──────────────────────────    ─────────────────────────────────────
    START                    ──▶  ready   resolved (once)
    BUNDLE_START             ──▶  log "bundling"
    BUNDLE_END               ──▶  auxiliary files + log "bundled"
    END                      ──▶  log "waiting_for_changes"
    ERROR / FATAL + retry    ──▶  failure resolved with Recoverable(retry)
    ERROR / FATAL            ──▶  failure resolved with Fatal(error)
    stream ends              ──▶  failure resolved with Fatal(BK-ENGINE-FATAL)

``failure`` never raises: it always resolves to a :data:`FailureOutcome`
and the caller decides what to do with it.

State machine::

    STARTING ──START──▶ RUNNING ──ERROR/FATAL──▶ ERRORED
        │                                           │
        └──────────────── close() ─────────────────┴──▶ TERMINATED

The state follows the ready signal rather than the first BUNDLE_END: a
session is RUNNING exactly when ``ready`` has resolved, so a package counts
as ready only once it is RUNNING. A BUNDLE_END seen before START leaves the
session STARTING.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from bundlekit.auxiliary import AuxiliaryWriter, select_auxiliary_mode
from bundlekit.backends.engine import BuildEngine, EngineEvent, EventCode, WatchHandle
from bundlekit.configs import BuildConfig
from bundlekit.errors import E, BundleKitError
from bundlekit.logging import package_logger
from bundlekit.package import Package


class SessionState(str, Enum):
    """Lifecycle state of a watch session."""

    STARTING = 'starting'
    RUNNING = 'running'
    ERRORED = 'errored'
    TERMINATED = 'terminated'


@dataclass(frozen=True)
class Fatal:
    """A failure that must stop the package's supervision.

    Attributes:
        cause: The original error, propagated unchanged.
    """

    cause: BaseException


@dataclass(frozen=True)
class Recoverable:
    """A failure the engine can recover from.

    Attributes:
        wait: Completes when a fresh session may be started.
    """

    wait: Awaitable[object]


FailureOutcome = Union[Fatal, Recoverable]


@dataclass(frozen=True)
class SessionSignals:
    """The two signals a started session exposes.

    Attributes:
        ready: Resolves once the engine reports its first start.
        failure: Resolves with a :data:`FailureOutcome` on the first
            failure. Never raises.
    """

    ready: asyncio.Future[None]
    failure: asyncio.Future[FailureOutcome]


def _display_path(path: str) -> str:
    try:
        return os.path.relpath(path)
    except ValueError:
        return path


def _display_paths(paths: Sequence[str]) -> str:
    return ', '.join(_display_path(p) for p in paths)


def dist_directory(pkg: Package) -> Path:
    """Return the output directory a session clears before starting."""
    return pkg.directory / 'dist'


def format_duration(ms: float) -> str:
    """Format a build duration the way humans read it (``412ms``, ``1.3s``)."""
    if ms < 1000:
        return f'{ms:.0f}ms'
    seconds = ms / 1000
    if seconds < 60:
        return f'{seconds:.1f}s'
    minutes, rest = divmod(seconds, 60)
    return f'{minutes:.0f}m{rest:.0f}s'


class WatchSession:
    """Drives one engine watch handle for one package.

    Args:
        pkg: The package being watched.
        configs: Its build configurations.
        engine: Build engine that starts the watch.
        writer: Writes auxiliary files after each bundle.
        clean_dist: Remove ``dist/`` before starting.
    """

    def __init__(
        self,
        pkg: Package,
        configs: Sequence[BuildConfig],
        *,
        engine: BuildEngine,
        writer: AuxiliaryWriter,
        clean_dist: bool = True,
    ) -> None:
        """Initialize a session in the ``STARTING`` state."""
        self._pkg = pkg
        self._configs = list(configs)
        self._engine = engine
        self._writer = writer
        self._clean_dist = clean_dist
        self._handle: WatchHandle | None = None
        self._pump: asyncio.Task[None] | None = None
        self._signals: SessionSignals | None = None
        self._log = package_logger(__name__, pkg.name)
        self.state = SessionState.STARTING

    @property
    def package(self) -> Package:
        """The package being watched."""
        return self._pkg

    async def start(self) -> SessionSignals:
        """Start watching and return the session's signals.

        Raises:
            BundleKitError: If the engine cannot be started.
        """
        if self._signals is not None:
            raise RuntimeError(f'watch session for {self._pkg.name} was already started')
        loop = asyncio.get_running_loop()
        self._signals = SessionSignals(ready=loop.create_future(), failure=loop.create_future())

        if self._clean_dist:
            dist = dist_directory(self._pkg)
            await asyncio.to_thread(shutil.rmtree, dist, ignore_errors=True)
            self._log.debug('dist_removed', path=str(dist))

        self._handle = await self._engine.watch(self._pkg, self._configs)
        self._pump = asyncio.create_task(self._consume(self._handle), name=f'watch:{self._pkg.name}')
        return self._signals

    async def _consume(self, handle: WatchHandle) -> None:
        signals = self._signals
        assert signals is not None  # noqa: S101 - set by start()
        try:
            async for event in handle:
                await self._dispatch(event)
                if signals.failure.done():
                    return
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 - surfaced as a Fatal outcome
            self._fail(Fatal(exc))
            return
        self._fail(
            Fatal(
                BundleKitError(
                    code=E.ENGINE_FATAL,
                    message=f'Build engine stopped reporting events for {self._pkg.name}',
                )
            )
        )

    async def _dispatch(self, event: EngineEvent) -> None:
        signals = self._signals
        assert signals is not None  # noqa: S101 - set by start()

        if event.code is EventCode.START:
            if not signals.ready.done():
                self.state = SessionState.RUNNING
                signals.ready.set_result(None)
            return

        if event.code is EventCode.BUNDLE_START:
            self._log.info('bundling', inputs=_display_paths(event.inputs), outputs=_display_paths(event.outputs))
            return

        if event.code is EventCode.BUNDLE_END:
            mode = select_auxiliary_mode(event.metadata)
            try:
                await self._writer.write(self._pkg, mode)
            except BundleKitError as exc:
                self._fail(Fatal(exc))
                return
            except OSError as exc:
                self._fail(
                    Fatal(
                        BundleKitError(
                            code=E.AUXILIARY_WRITE_FAILED,
                            message=f'Failed to write auxiliary files for {self._pkg.name}: {exc}',
                        )
                    )
                )
                return
            duration = event.metadata.duration_ms if event.metadata else 0.0
            self._log.info('bundled', outputs=_display_paths(event.outputs), duration=format_duration(duration))
            return

        if event.code is EventCode.END:
            self._log.info('waiting_for_changes')
            return

        # ERROR / FATAL: the engine decided recoverability by attaching retry.
        if event.retry is not None:
            self._fail(Recoverable(event.retry))
        else:
            cause = event.error or BundleKitError(
                code=E.ENGINE_FATAL,
                message=f'Build engine reported {event.code.value} for {self._pkg.name}',
            )
            self._fail(Fatal(cause))

    def _fail(self, outcome: FailureOutcome) -> None:
        signals = self._signals
        if signals is None or signals.failure.done():
            return
        if self.state is not SessionState.TERMINATED:
            self.state = SessionState.ERRORED
        signals.failure.set_result(outcome)

    async def close(self) -> None:
        """Stop the event pump and the engine watch. Idempotent."""
        if self.state is SessionState.TERMINATED:
            return
        self.state = SessionState.TERMINATED
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            try:
                await self._pump
            except asyncio.CancelledError:
                pass
        if self._handle is not None:
            await self._handle.close()
        if self._signals is not None:
            for future in (self._signals.ready, self._signals.failure):
                if not future.done():
                    future.cancel()
        self._log.debug('session_closed')


__all__ = [
    'FailureOutcome',
    'Fatal',
    'Recoverable',
    'SessionSignals',
    'SessionState',
    'WatchSession',
    'dist_directory',
    'format_duration',
]
