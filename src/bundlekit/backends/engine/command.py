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

"""Build engine backed by an external watcher process.

The watcher (by default ``bundlekit-rollup-watch``, a thin Node wrapper
around the bundler's watch API) is started in the package directory. It
receives the build configurations as one JSON document on stdin and
reports lifecycle events as JSON lines on stdout::

    stdin   {"package": "@scope/a", "directory": "/ws/packages/a",
             "configs": [BuildConfig.as_dict(), ...]}

    stdout  {"code": "START"}
            {"code": "BUNDLE_START", "input": [...], "output": [...]}
            {"code": "BUNDLE_END", "input": [...], "output": [...],
             "duration": 412, "exports": ["default", "x"],
             "entrySource": "// @flow\\n..."}
            {"code": "END"}
            {"code": "ERROR", "error": {"message": "...", "recoverable": true}}
            {"code": "FATAL", "error": {"message": "..."}}

An ``ERROR`` marked ``recoverable`` carries a retry awaitable that
completes once the watcher process has exited. Every other failure is
fatal. Lines that are not JSON are the watcher's own chatter and go to
the debug log. The process exiting before :meth:`CommandWatchHandle.close`
was called is reported as a ``FATAL`` event.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

from bundlekit.backends.engine import BundleMetadata, EngineEvent, EventCode
from bundlekit.config import DEFAULT_ENGINE_COMMAND
from bundlekit.configs import BuildConfig
from bundlekit.errors import E, BundleKitError
from bundlekit.logging import get_logger
from bundlekit.package import Package

log = get_logger('bundlekit.backends.engine.command')

# Seconds to wait for the watcher to exit after SIGTERM before SIGKILL.
_TERMINATE_TIMEOUT = 5.0

# Per-line read limit; BUNDLE_END lines carry the entry module source.
_LINE_LIMIT = 16 * 1024 * 1024


def _strings(value: Any) -> tuple[str, ...]:  # noqa: ANN401 - untrusted JSON
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list):
        return tuple(str(v) for v in value)
    return ()


class CommandWatchHandle:
    """One running watcher process."""

    def __init__(self, process: asyncio.subprocess.Process, pkg: Package) -> None:
        """Initialize with a started process."""
        self._process = process
        self._pkg = pkg
        self._closing = False
        self._shutdown: asyncio.Future[None] | None = None

    @property
    def pid(self) -> int:
        """Process ID of the watcher."""
        return self._process.pid

    def __aiter__(self) -> AsyncIterator[EngineEvent]:
        """Iterate lifecycle events from the watcher's stdout."""
        return self._events()

    async def _events(self) -> AsyncIterator[EngineEvent]:
        stdout = self._process.stdout
        if stdout is None:
            raise RuntimeError('watcher process was started without a stdout pipe')

        while True:
            line = await stdout.readline()
            if not line:
                break
            text = line.decode('utf-8', errors='replace').strip()
            if not text:
                continue
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                log.debug('engine_output', package=self._pkg.name, line=text)
                continue
            event = self._decode(data)
            if event is not None:
                yield event

        return_code = await self._process.wait()
        if self._closing:
            return
        yield EngineEvent(
            code=EventCode.FATAL,
            error=BundleKitError(
                code=E.ENGINE_FATAL,
                message=f'Watcher for {self._pkg.name} exited unexpectedly with code {return_code}',
                hint='Check the watcher output above for the underlying error.',
            ),
        )

    def _decode(self, data: Any) -> EngineEvent | None:  # noqa: ANN401 - untrusted JSON
        if not isinstance(data, dict):
            log.debug('engine_output', package=self._pkg.name, line=data)
            return None
        try:
            code = EventCode(data.get('code'))
        except ValueError:
            log.warning('unknown_engine_event', package=self._pkg.name, code=data.get('code'))
            return None

        inputs = _strings(data.get('input'))
        outputs = _strings(data.get('output'))

        if code is EventCode.BUNDLE_END:
            duration = data.get('duration', 0)
            metadata = BundleMetadata(
                entry_source=str(data.get('entrySource') or ''),
                exports=_strings(data.get('exports')),
                duration_ms=float(duration) if isinstance(duration, (int, float)) else 0.0,
            )
            return EngineEvent(code=code, inputs=inputs, outputs=outputs, metadata=metadata)

        if code in (EventCode.ERROR, EventCode.FATAL):
            raw = data.get('error')
            detail = raw if isinstance(raw, dict) else {'message': raw}
            error = BundleKitError(
                code=E.ENGINE_FATAL,
                message=f'{self._pkg.name}: {detail.get("message") or "build failed"}',
            )
            retry = None
            if code is EventCode.ERROR and detail.get('recoverable') is True:
                retry = asyncio.ensure_future(self.close())
            return EngineEvent(code=code, error=error, retry=retry)

        return EngineEvent(code=code, inputs=inputs, outputs=outputs)

    async def close(self) -> None:
        """Stop the watcher, escalating to SIGKILL if it does not exit."""
        self._closing = True
        if self._shutdown is None:
            self._shutdown = asyncio.ensure_future(self._terminate())
        await asyncio.shield(self._shutdown)

    async def _terminate(self) -> None:
        if self._process.returncode is not None:
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._process.wait(), timeout=_TERMINATE_TIMEOUT)
        except asyncio.TimeoutError:
            log.warning('engine_kill', package=self._pkg.name, pid=self._process.pid)
            self._process.kill()
            await self._process.wait()
        log.debug('engine_stopped', package=self._pkg.name, return_code=self._process.returncode)


class CommandEngine:
    """Starts one watcher process per watch session.

    Args:
        command: The watcher command line.
    """

    def __init__(self, command: Sequence[str] = DEFAULT_ENGINE_COMMAND) -> None:
        """Initialize with the watcher command."""
        self._command = tuple(command)

    @property
    def command(self) -> tuple[str, ...]:
        """The watcher command line."""
        return self._command

    async def watch(self, pkg: Package, configs: Sequence[BuildConfig]) -> CommandWatchHandle:
        """Start a watcher for ``pkg`` and send it ``configs``.

        Raises:
            BundleKitError: ``BK-ENGINE-NOT-FOUND`` if the command cannot
                be executed.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                cwd=pkg.directory,
                limit=_LINE_LIMIT,
            )
        except OSError as exc:
            raise BundleKitError(
                code=E.ENGINE_NOT_FOUND,
                message=f'Cannot start build engine {" ".join(self._command)!r}: {exc}',
                hint='Install the watcher, or set engine in bundlekit.toml.',
            ) from exc

        payload = {
            'package': pkg.name,
            'directory': str(pkg.directory),
            'configs': [config.as_dict() for config in configs],
        }
        if process.stdin is not None:
            process.stdin.write(json.dumps(payload).encode('utf-8') + b'\n')
            try:
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                log.debug('engine_stdin_closed', package=pkg.name)
            process.stdin.close()

        log.debug('engine_started', package=pkg.name, pid=process.pid, command=list(self._command))
        return CommandWatchHandle(process, pkg)


__all__ = [
    'CommandEngine',
    'CommandWatchHandle',
]
