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

"""The :class:`Package` model and its ``package.json`` loader.

Only the fields the build orchestration needs are read. Anything else in
the manifest is ignored; schema validation is left to the package
manager.

Manifest fields used::

    name                  → Package.name
    main / module         → CommonJS / ESM output files
    browser               → targets_browser (browser variant is built)
    umd:main              → is_unified_bundle (UMD variant is built)
    dependencies          → Package.dependencies
    peerDependencies      → Package.peer_dependencies
    bundlekit.entrypoints → source entrypoints (default src/index.js)
    bundlekit.umdName     → global name of the UMD bundle
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bundlekit._io import read_json_object
from bundlekit.errors import E, BundleKitError

DEFAULT_ENTRYPOINT = 'src/index.js'

_SCOPE_RE = re.compile(r'^@[^/]+/')


@dataclass(frozen=True)
class Package:
    """A single buildable package.

    Attributes:
        name: The npm package name (e.g. ``"@scope/core"``).
        directory: Absolute path to the package directory.
        entrypoints: Absolute source entrypoint paths.
        dependencies: ``dependencies`` name → version spec.
        peer_dependencies: ``peerDependencies`` name → version spec.
        is_unified_bundle: Dependencies are inlined into one
            self-contained artifact instead of left as runtime imports.
        targets_browser: The output runs in a browser-like host, so
            platform built-in modules are not available as externals.
        main: Relative CommonJS output path from the manifest.
        module: Relative ESM output path from the manifest.
        umd_main: Relative UMD output path from the manifest.
        umd_name: Global variable name for the UMD bundle.
    """

    name: str
    directory: Path
    entrypoints: tuple[Path, ...] = ()
    dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    is_unified_bundle: bool = False
    targets_browser: bool = False
    main: str = ''
    module: str = ''
    umd_main: str = ''
    umd_name: str = ''

    @property
    def dist_name(self) -> str:
        """File stem used for outputs: the name without its npm scope."""
        return _SCOPE_RE.sub('', self.name)

    @property
    def manifest_path(self) -> Path:
        """Path to this package's ``package.json``."""
        return self.directory / 'package.json'


def dependency_map(data: dict[str, Any], key: str, path: Path) -> dict[str, str]:  # noqa: ANN401
    """Return a manifest section as a name → version-spec dict."""
    section = data.get(key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise BundleKitError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f"'{key}' in {path} must be an object, got {type(section).__name__}",
        )
    return {str(k): str(v) for k, v in section.items()}


def package_from_manifest(directory: Path, data: dict[str, Any]) -> Package:  # noqa: ANN401
    """Build a :class:`Package` from already-parsed ``package.json`` data.

    Raises:
        BundleKitError: If the manifest has no ``name``.
    """
    path = directory / 'package.json'
    name = data.get('name')
    if not isinstance(name, str) or not name:
        raise BundleKitError(
            code=E.MANIFEST_MISSING_NAME,
            message=f'{path} has no "name" field',
            hint='Every buildable package needs a name.',
        )

    options = data.get('bundlekit')
    if not isinstance(options, dict):
        options = {}
    raw_entrypoints = options.get('entrypoints') or [DEFAULT_ENTRYPOINT]
    if isinstance(raw_entrypoints, str):
        raw_entrypoints = [raw_entrypoints]
    elif not isinstance(raw_entrypoints, list):
        raise BundleKitError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f"'bundlekit.entrypoints' in {path} must be a string or a list, "
            f'got {type(raw_entrypoints).__name__}',
        )
    entrypoints = tuple((directory / str(entry)).resolve() for entry in raw_entrypoints)

    umd_main = str(data.get('umd:main', '') or '')
    return Package(
        name=name,
        directory=directory.resolve(),
        entrypoints=entrypoints,
        dependencies=dependency_map(data, 'dependencies', path),
        peer_dependencies=dependency_map(data, 'peerDependencies', path),
        is_unified_bundle=bool(umd_main),
        targets_browser='browser' in data,
        main=str(data.get('main', '') or ''),
        module=str(data.get('module', '') or ''),
        umd_main=umd_main,
        umd_name=str(options.get('umdName', '') or ''),
    )


async def load_package(directory: Path) -> Package:
    """Read ``directory/package.json`` and return the :class:`Package`."""
    data = await read_json_object(directory / 'package.json')
    return package_from_manifest(directory, data)


__all__ = [
    'DEFAULT_ENTRYPOINT',
    'Package',
    'dependency_map',
    'load_package',
    'package_from_manifest',
]
