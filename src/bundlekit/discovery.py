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

"""Decide whether a directory is one package or a workspace of many.

A root is a workspace when any of these hold::

    package.json   "workspaces": ["packages/*"]                (npm, yarn, bolt)
    package.json   "workspaces": {"packages": ["packages/*"]}   (yarn)
    pnpm-workspace.yaml                                         (pnpm)

Otherwise the root's own ``package.json`` is the single package.

Member globs are expanded relative to the root; only directories with a
``package.json`` count, and ``!pattern`` entries exclude matches::

    packages:
      - 'packages/*'
      - '!packages/scratch'
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from bundlekit._io import read_file, read_json_object
from bundlekit.errors import E, BundleKitError
from bundlekit.logging import get_logger
from bundlekit.package import Package, package_from_manifest

log = get_logger(__name__)

PNPM_WORKSPACE_FILE = 'pnpm-workspace.yaml'


@dataclass(frozen=True)
class SinglePackage:
    """A root that is itself the only package."""

    package: Package

    @property
    def packages(self) -> list[Package]:
        """The package, as a one-element list."""
        return [self.package]


@dataclass(frozen=True)
class Workspace:
    """A root whose members are built together.

    Attributes:
        root: The workspace root directory.
        packages: Members, sorted by name.
    """

    root: Path
    packages: list[Package]


Discovered = Union[SinglePackage, Workspace]


def _parse_yaml_simple(text: str) -> dict[str, list[str]]:
    """Minimal YAML parser for pnpm-workspace.yaml.

    pnpm-workspace.yaml is always a mapping of flat string lists::

        packages:
          - 'packages/*'
          - '!packages/scratch'
    """
    result: dict[str, list[str]] = {}
    current_key: str | None = None
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith('#'):
            continue
        if stripped.endswith(':') and not stripped.startswith('-'):
            current_key = stripped[:-1].strip()
            result[current_key] = []
            continue
        if stripped.startswith('-') and current_key is not None:
            value = stripped[1:].strip()
            if (value.startswith("'") and value.endswith("'")) or (value.startswith('"') and value.endswith('"')):
                value = value[1:-1]
            result[current_key].append(value)
    return result


def _workspace_globs(data: dict[str, Any]) -> list[str] | None:  # noqa: ANN401
    """Return the ``workspaces`` globs of a root manifest, or None."""
    workspaces = data.get('workspaces')
    if isinstance(workspaces, dict):
        workspaces = workspaces.get('packages')
    if workspaces is None:
        return None
    if not isinstance(workspaces, list):
        raise BundleKitError(
            code=E.MANIFEST_PARSE_ERROR,
            message=f"'workspaces' must be a list of globs, got {type(workspaces).__name__}",
            hint='Use "workspaces": ["packages/*"].',
        )
    return [str(item) for item in workspaces]


def _glob_safe(root: Path, pattern: str) -> list[Path]:
    """Expand one member glob relative to ``root``.

    ``"."`` is the root itself; a leading ``"./"`` is stripped.
    """
    if pattern == '.':
        return [root]
    if pattern.startswith('./'):
        pattern = pattern[2:]
    if not pattern:
        return [root]
    return sorted(root.glob(pattern))


def expand_member_globs(root: Path, members: list[str]) -> list[Path]:
    """Expand member globs to package directories, honouring ``!`` exclusions."""
    include = [p for p in members if not p.startswith('!')]
    exclude = [p[1:] for p in members if p.startswith('!')]

    found: set[Path] = set()
    for pattern in include:
        for candidate in _glob_safe(root, pattern):
            if candidate.is_dir() and (candidate / 'package.json').is_file():
                found.add(candidate.resolve())

    excluded: set[Path] = set()
    for pattern in exclude:
        for candidate in _glob_safe(root, pattern):
            excluded.add(candidate.resolve())

    result = sorted(found - excluded)
    log.debug('expanded_member_globs', include=include, exclude=exclude, count=len(result))
    return result


async def _load_members(root: Path, members: list[str], source: str) -> list[Package]:
    if not members:
        raise BundleKitError(
            code=E.WORKSPACE_NO_MEMBERS,
            message=f'No member globs defined in {source}',
            hint='Add package globs, e.g. "packages/*".',
        )
    directories = expand_member_globs(root, members)

    packages: list[Package] = []
    seen: dict[str, Path] = {}
    for directory in directories:
        data = await read_json_object(directory / 'package.json')
        if not data.get('name'):
            log.debug('skipped_nameless_package', path=str(directory))
            continue
        pkg = package_from_manifest(directory, data)
        if pkg.name in seen:
            raise BundleKitError(
                code=E.WORKSPACE_DUPLICATE_PACKAGE,
                message=f"Duplicate package name '{pkg.name}' at {directory} and {seen[pkg.name]}",
                hint='Each package in the workspace must have a unique name.',
            )
        seen[pkg.name] = directory
        packages.append(pkg)

    if not packages:
        raise BundleKitError(
            code=E.WORKSPACE_NO_MEMBERS,
            message=f'No packages found matching: {members}',
            hint='Check that your globs match directories with package.json files.',
        )
    return sorted(packages, key=lambda p: p.name)


async def discover(root: Path) -> Discovered:
    """Return the single package or the workspace rooted at ``root``.

    Raises:
        BundleKitError: ``BK-WORKSPACE-NOT-FOUND`` if ``root`` has no
            ``package.json``; other ``BK-WORKSPACE-*`` / ``BK-MANIFEST-*``
            codes for malformed workspaces.
    """
    root = root.resolve()
    manifest_path = root / 'package.json'
    if not manifest_path.is_file():
        raise BundleKitError(
            code=E.WORKSPACE_NOT_FOUND,
            message=f'No package.json found in {root}',
            hint='Run bundlekit from a package or workspace root, or pass its directory.',
        )
    data = await read_json_object(manifest_path)

    pnpm_path = root / PNPM_WORKSPACE_FILE
    if pnpm_path.is_file():
        members = _parse_yaml_simple(await read_file(pnpm_path)).get('packages', [])
        packages = await _load_members(root, members, PNPM_WORKSPACE_FILE)
        log.info('discovered_workspace', root=str(root), kind='pnpm', count=len(packages))
        return Workspace(root=root, packages=packages)

    globs = _workspace_globs(data)
    if globs is not None:
        packages = await _load_members(root, globs, str(manifest_path))
        log.info('discovered_workspace', root=str(root), kind='workspaces', count=len(packages))
        return Workspace(root=root, packages=packages)

    pkg = package_from_manifest(root, data)
    log.debug('discovered_package', name=pkg.name, root=str(root))
    return SinglePackage(package=pkg)


__all__ = [
    'PNPM_WORKSPACE_FILE',
    'Discovered',
    'SinglePackage',
    'Workspace',
    'discover',
    'expand_member_globs',
]
