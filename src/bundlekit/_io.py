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

"""Shared async file I/O helpers.

Manifest reads and declaration-file writes happen while watch sessions
are running on the same event loop, so they go through ``aiofiles``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiofiles

from bundlekit.errors import E, BundleKitError


async def read_file(path: Path) -> str:
    """Read a UTF-8 text file asynchronously via aiofiles."""
    try:
        async with aiofiles.open(path, encoding='utf-8') as f:
            return await f.read()
    except OSError as exc:
        raise BundleKitError(
            code=E.MANIFEST_READ_ERROR,
            message=f'Failed to read {path}: {exc}',
            hint=f'Check that {path} exists and is readable.',
        ) from exc


async def write_file(path: Path, content: str) -> None:
    """Write a UTF-8 text file asynchronously, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
            await f.write(content)
    except OSError as exc:
        raise BundleKitError(
            code=E.AUXILIARY_WRITE_FAILED,
            message=f'Failed to write {path}: {exc}',
            hint=f'Check file permissions for {path}.',
        ) from exc


def parse_json_object(text: str, path: Path) -> dict[str, Any]:  # noqa: ANN401 - JSON values are untyped
    """Parse JSON text that must hold an object, raising BundleKitError otherwise."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BundleKitError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'Failed to parse {path}: {exc}',
            hint=f'Check that {path} contains valid JSON.',
        ) from exc
    if not isinstance(data, dict):
        raise BundleKitError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f'{path} is not a JSON object',
            hint=f'Expected a JSON object (dict) at the top level of {path}.',
        )
    return data


async def read_json_object(path: Path) -> dict[str, Any]:  # noqa: ANN401
    """Read and parse a JSON object file."""
    return parse_json_object(await read_file(path), path)
