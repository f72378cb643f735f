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

"""Installed-dependency manifest lookup.

The closure resolver needs the ``dependencies`` and ``peerDependencies``
of every module it expands. :class:`NodeModulesReader` finds them the
way Node does: for a module ``left-pad`` requested from ``/repo/pkg``
it tries, in order::

    /repo/pkg/node_modules/left-pad/package.json
    /repo/node_modules/left-pad/package.json
    /node_modules/left-pad/package.json

and reports *not found* (``None``) when none exists.

A transitive module is looked up from the directory of the manifest that
declared it, so versions npm nested below another module are found::

    /repo/pkg/node_modules/a/node_modules/b/package.json   # b, wanted by a
    /repo/pkg/node_modules/a/node_modules/node_modules/... # (walks up)
    /repo/pkg/node_modules/b/package.json

Lookups are memoised in a :class:`ManifestCache` that the caller owns
and clears when its run ends, so two packages in one workspace share
the reads without any process-wide state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, runtime_checkable

from bundlekit._io import read_json_object
from bundlekit.logging import get_logger
from bundlekit.package import dependency_map

log = get_logger(__name__)


@dataclass(frozen=True)
class Manifest:
    """The dependency-related part of an installed module's ``package.json``."""

    name: str
    path: Path
    dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)

    @property
    def directory(self) -> Path:
        """The installed module's directory; its own dependencies resolve from here."""
        return self.path.parent


@runtime_checkable
class ManifestReader(Protocol):
    """Returns a module's manifest, or ``None`` when it cannot be found."""

    async def read(self, name: str, origin: Path | None = None) -> Manifest | None:
        """Look up the manifest for module ``name`` as seen from ``origin``.

        ``origin`` is the directory of the module that declared ``name``;
        ``None`` means the package being built.
        """
        ...


class ManifestCache:
    """Memo of manifest lookups keyed by ``(search start, module name)``.

    Misses are cached too, as ``None``.
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._entries: dict[tuple[Path, str], Manifest | None] = {}
        self.hits = 0

    def get(self, root: Path, name: str) -> tuple[bool, Manifest | None]:
        """Return ``(found, manifest)`` for a cached lookup."""
        key = (root, name)
        if key in self._entries:
            self.hits += 1
            return True, self._entries[key]
        return False, None

    def put(self, root: Path, name: str, manifest: Manifest | None) -> None:
        """Store a lookup result."""
        self._entries[(root, name)] = manifest

    def clear(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()
        self.hits = 0

    def __len__(self) -> int:
        """Return the number of cached lookups."""
        return len(self._entries)


class NodeModulesReader:
    """Reads installed manifests from ``node_modules`` directories.

    Args:
        root: Directory lookups start from when no origin is given
            (usually the package being built).
        cache: Shared lookup cache.
    """

    def __init__(self, root: Path, cache: ManifestCache | None = None) -> None:
        """Initialize with the search root and an optional shared cache."""
        self._root = root.resolve()
        self._cache = cache if cache is not None else ManifestCache()

    @staticmethod
    def _candidates(start: Path, name: str) -> list[Path]:
        return [directory / 'node_modules' / name / 'package.json' for directory in [start, *start.parents]]

    async def read(self, name: str, origin: Path | None = None) -> Manifest | None:
        """Find and parse the nearest installed ``package.json`` for ``name``."""
        start = origin.resolve() if origin is not None else self._root
        cached, manifest = self._cache.get(start, name)
        if cached:
            return manifest

        manifest = None
        for candidate in self._candidates(start, name):
            if not candidate.is_file():
                continue
            data = await read_json_object(candidate)
            manifest = Manifest(
                name=name,
                path=candidate,
                dependencies=dependency_map(data, 'dependencies', candidate),
                peer_dependencies=dependency_map(data, 'peerDependencies', candidate),
            )
            break

        if manifest is None:
            log.debug('manifest_not_found', module=name, root=str(start))
        self._cache.put(start, name, manifest)
        return manifest


__all__ = [
    'Manifest',
    'ManifestCache',
    'ManifestReader',
    'NodeModulesReader',
]
