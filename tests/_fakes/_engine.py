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

"""Scripted BuildEngine fake.

Each ``watch()`` call for a package pops the next script (a list of
events) for that package. A handle yields its script and then stays
open until closed, like a real watcher waiting for file changes, unless
the script was created with ``hold=False``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Generator, Sequence

from bundlekit.backends.engine import BundleMetadata, EngineEvent, EventCode
from bundlekit.configs import BuildConfig
from bundlekit.package import Package

_END = None


class RetrySignal:
    """Awaitable retry signal that records whether it was awaited."""

    def __init__(self) -> None:
        """Initialize as not awaited."""
        self.awaited = False

    def __await__(self) -> Generator[None, None, None]:
        """Mark as awaited and complete immediately."""
        self.awaited = True
        yield from ()


def started() -> EngineEvent:
    """A START event."""
    return EngineEvent(code=EventCode.START)


def recoverable(signal: RetrySignal | None = None) -> EngineEvent:
    """An ERROR event the engine can recover from."""
    return EngineEvent(
        code=EventCode.ERROR,
        error=RuntimeError('syntax error'),
        retry=signal if signal is not None else RetrySignal(),
    )


def fatal(error: BaseException, code: EventCode = EventCode.FATAL) -> EngineEvent:
    """A failure event without a retry signal."""
    return EngineEvent(code=code, error=error)


def bundle_end(
    entry_source: str = '',
    exports: Sequence[str] = (),
    outputs: Sequence[str] = ('dist/a.cjs.js',),
) -> EngineEvent:
    """A BUNDLE_END event with metadata."""
    return EngineEvent(
        code=EventCode.BUNDLE_END,
        inputs=('src/index.js',),
        outputs=tuple(outputs),
        metadata=BundleMetadata(entry_source=entry_source, exports=tuple(exports), duration_ms=12.0),
    )


class FakeWatchHandle:
    """A watch handle backed by an event queue."""

    def __init__(self, engine: FakeEngine, name: str, events: Sequence[EngineEvent], *, hold: bool = True) -> None:
        """Queue the scripted events."""
        self._engine = engine
        self._name = name
        self._queue: asyncio.Queue[EngineEvent | None] = asyncio.Queue()
        for event in events:
            self._queue.put_nowait(event)
        if not hold:
            self._queue.put_nowait(_END)
        self.closed = False

    def push(self, event: EngineEvent) -> None:
        """Deliver another event."""
        self._queue.put_nowait(event)

    def __aiter__(self) -> AsyncIterator[EngineEvent]:
        """Iterate queued events until the handle ends."""
        return self._events()

    async def _events(self) -> AsyncIterator[EngineEvent]:
        while True:
            event = await self._queue.get()
            if event is _END:
                return
            yield event

    async def close(self) -> None:
        """End the stream and release the engine slot."""
        if self.closed:
            return
        self.closed = True
        self._engine.active[self._name] -= 1
        self._queue.put_nowait(_END)


class FakeEngine:
    """BuildEngine fake driven by per-package scripts.

    Args:
        scripts: Package name → list of scripts, one per ``watch()`` call.
        default: Script used once a package's scripts run out.
        hold: Keep handles open after their script is exhausted.
    """

    def __init__(
        self,
        scripts: dict[str, list[list[EngineEvent]]] | None = None,
        *,
        default: Sequence[EngineEvent] = (),
        hold: bool = True,
        error: BaseException | None = None,
    ) -> None:
        """Initialize with scripts."""
        self.scripts = {name: list(s) for name, s in (scripts or {}).items()}
        self.default = list(default)
        self.hold = hold
        self.error = error
        self.handles: list[tuple[str, FakeWatchHandle]] = []
        self.configs: dict[str, list[BuildConfig]] = {}
        self.active: dict[str, int] = {}
        self.max_active: dict[str, int] = {}

    def watch_count(self, name: str) -> int:
        """Number of sessions started for ``name``."""
        return sum(1 for n, _ in self.handles if n == name)

    async def watch(self, pkg: Package, configs: Sequence[BuildConfig]) -> FakeWatchHandle:
        """Start a scripted session."""
        if self.error is not None:
            raise self.error
        pending = self.scripts.get(pkg.name)
        events = pending.pop(0) if pending else self.default
        handle = FakeWatchHandle(self, pkg.name, events, hold=self.hold)
        self.handles.append((pkg.name, handle))
        self.configs[pkg.name] = list(configs)
        self.active[pkg.name] = self.active.get(pkg.name, 0) + 1
        self.max_active[pkg.name] = max(self.max_active.get(pkg.name, 0), self.active[pkg.name])
        return handle


__all__ = [
    'FakeEngine',
    'FakeWatchHandle',
    'RetrySignal',
    'bundle_end',
    'fatal',
    'recoverable',
    'started',
]
