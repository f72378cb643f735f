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

"""Structured error system for bundlekit.

Every error has a unique ``BK-NAMED-KEY`` code, a human-readable message,
and an optional hint with a suggested fix.

Code categories::

    BK-CONFIG-*       bundlekit.toml errors
    BK-WORKSPACE-*    Package / workspace discovery errors
    BK-MANIFEST-*     package.json read and parse errors
    BK-DEPENDENCY-*   External closure resolution errors
    BK-ENGINE-*       Build engine errors
    BK-AUXILIARY-*    Declaration file errors

Usage::

    from bundlekit.errors import BundleKitError, E

    raise BundleKitError(
        code=E.DEPENDENCY_UNRESOLVABLE,
        message="Could not find package.json for 'left-pad'",
        hint='Run your package manager install step.',
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all bundlekit diagnostic codes."""

    # Configuration
    CONFIG_INVALID_KEY = 'BK-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'BK-CONFIG-INVALID-VALUE'
    CONFIG_PARSE_ERROR = 'BK-CONFIG-PARSE-ERROR'

    # Discovery
    WORKSPACE_NOT_FOUND = 'BK-WORKSPACE-NOT-FOUND'
    WORKSPACE_NO_MEMBERS = 'BK-WORKSPACE-NO-MEMBERS'
    WORKSPACE_DUPLICATE_PACKAGE = 'BK-WORKSPACE-DUPLICATE-PACKAGE'

    # Manifests
    MANIFEST_READ_ERROR = 'BK-MANIFEST-READ-ERROR'
    MANIFEST_PARSE_ERROR = 'BK-MANIFEST-PARSE-ERROR'
    MANIFEST_MISSING_NAME = 'BK-MANIFEST-MISSING-NAME'

    # Closure resolution
    DEPENDENCY_UNRESOLVABLE = 'BK-DEPENDENCY-UNRESOLVABLE'

    # Build engine
    ENGINE_NOT_FOUND = 'BK-ENGINE-NOT-FOUND'
    ENGINE_FATAL = 'BK-ENGINE-FATAL'

    # Post-build files
    AUXILIARY_WRITE_FAILED = 'BK-AUXILIARY-WRITE-FAILED'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``BK-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class BundleKitError(Exception):
    """Base exception for all bundlekit errors.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.DEPENDENCY_UNRESOLVABLE: ErrorInfo(
        code=E.DEPENDENCY_UNRESOLVABLE,
        message='A dependency has no installed package.json, so its peer dependencies cannot be determined.',
        hint="Install dependencies, or add the name to 'allow_unresolved' in bundlekit.toml.",
    ),
    E.WORKSPACE_NOT_FOUND: ErrorInfo(
        code=E.WORKSPACE_NOT_FOUND,
        message='No package.json found in the target directory.',
        hint='Run bundlekit from a package or workspace root.',
    ),
    E.ENGINE_FATAL: ErrorInfo(
        code=E.ENGINE_FATAL,
        message='The build engine stopped with an unrecoverable error.',
        hint='Fix the reported compilation error and restart the watcher.',
    ),
    E.AUXILIARY_WRITE_FAILED: ErrorInfo(
        code=E.AUXILIARY_WRITE_FAILED,
        message='Writing declaration files next to the build output failed.',
        hint='Check permissions on the dist directory.',
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"BK-ENGINE-FATAL"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def render_error(exc: BundleKitError, *, file: TextIO | None = None) -> None:
    """Render an error in Rust-compiler style with color.

    Output format::

        error[BK-ENGINE-FATAL]: Unexpected token (3:7)
          |
          = hint: Fix the reported compilation error and restart the watcher.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    out = file or sys.stderr

    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(exc.info.message)
        console.print(
            f'[bold red]error[/bold red][bold red]\\[{exc.code.value}][/bold red][bold]: {msg}[/bold]',
        )
        if exc.hint:
            hint = rich_escape(exc.hint)
            console.print('  [dim]|[/dim]')
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {hint}')
        console.print()
    else:
        print(f'error[{exc.code.value}]: {exc.info.message}', file=out)  # noqa: T201 - CLI output
        if exc.hint:
            print('  |', file=out)  # noqa: T201 - CLI output
            print(f'  = hint: {exc.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


__all__ = [
    'E',
    'ERRORS',
    'BundleKitError',
    'ErrorCode',
    'ErrorInfo',
    'explain',
    'render_error',
]
