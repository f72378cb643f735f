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

"""Build engine protocol for bundlekit.

A :class:`BuildEngine` takes one package's build configurations and
returns a :class:`WatchHandle`: an async stream of lifecycle events that
lasts as long as the engine keeps watching sources. Implementations:

- :class:`~bundlekit.backends.engine.command.CommandEngine` — runs a
  watcher process and reads JSON events from its stdout.

Event lifecycle::

    START ──▶ BUNDLE_START ──▶ BUNDLE_END ──▶ END ──(source change)──┐
      ▲            ▲                                                  │
      │            └──────────────────────────────────────────────────┘
      │
    ERROR / FATAL at any point. The engine alone decides whether a
    failure is recoverable; it says so by attaching a ``retry``
    awaitable to the event.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from bundlekit.configs import BuildConfig
from bundlekit.package import Package


class EventCode(str, Enum):
    """Lifecycle event codes emitted by a watch session."""

    START = 'START'
    BUNDLE_START = 'BUNDLE_START'
    BUNDLE_END = 'BUNDLE_END'
    END = 'END'
    ERROR = 'ERROR'
    FATAL = 'FATAL'


@dataclass(frozen=True)
class BundleMetadata:
    """Build report attached to a ``BUNDLE_END`` event.

    Attributes:
        entry_source: Original source of the bundle's entry module.
        exports: Names the bundle exports.
        duration_ms: Build duration in milliseconds.
    """

    entry_source: str = ''
    exports: tuple[str, ...] = ()
    duration_ms: float = 0.0


@dataclass(frozen=True)
class EngineEvent:
    """One lifecycle event from a watch session.

    Attributes:
        code: What happened.
        inputs: Entry files (``BUNDLE_START`` / ``BUNDLE_END``).
        outputs: Output files (``BUNDLE_START`` / ``BUNDLE_END``).
        metadata: Build report (``BUNDLE_END``).
        error: The failure (``ERROR`` / ``FATAL``).
        retry: Set when the engine classifies the failure as
            recoverable; completes when a fresh session may start.
    """

    code: EventCode
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    metadata: BundleMetadata | None = None
    error: BaseException | None = None
    retry: Awaitable[object] | None = None


@runtime_checkable
class WatchHandle(Protocol):
    """A running watch session inside the engine."""

    def __aiter__(self) -> AsyncIterator[EngineEvent]:
        """Iterate lifecycle events until the session ends."""
        ...

    async def close(self) -> None:
        """Stop watching and release the engine's resources."""
        ...


@runtime_checkable
class BuildEngine(Protocol):
    """Starts incremental watch sessions."""

    async def watch(self, pkg: Package, configs: Sequence[BuildConfig]) -> WatchHandle:
        """Start watching ``pkg`` with the given build configurations."""
        ...


__all__ = [
    'BuildEngine',
    'BundleMetadata',
    'EngineEvent',
    'EventCode',
    'WatchHandle',
]
