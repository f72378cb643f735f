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

"""Which imports a bundle must leave external.

Two pieces:

- :class:`ExternalClosureResolver` computes the set of module names that
  must stay runtime imports for one package.
- :func:`compile_external_predicate` turns that set into the predicate
  the build engine asks for every import it discovers.

Closure resolution::

    peerDependencies ──────────────▶ external (consumer supplies them)
    dependencies ─┬─ not unified ──▶ external (left as runtime imports)
                  └─ unified ──────▶ inlined, but expanded:
                                       their peers → external
                                       their deps  → inlined, expanded

    every expanded name: read its manifest, add its peerDependencies,
    queue them; when unified also queue its dependencies.

    not a browser target ──────────▶ + platform built-in modules

Each name is expanded at most once (the visited set), which is also
what makes dependency cycles terminate.

Matching::

    externals = ('lodash',)
    'lodash'      → external
    'lodash/map'  → external
    'lodash-es'   → bundled
"""

from __future__ import annotations

import re
from collections import deque
from collections.abc import Iterable
from pathlib import Path

from bundlekit.errors import E, BundleKitError
from bundlekit.logging import get_logger
from bundlekit.manifests import ManifestReader
from bundlekit.package import Package

log = get_logger(__name__)

# Node.js built-in modules. Subpaths such as ``fs/promises`` are covered
# by the predicate's path-separator rule.
BUILTIN_MODULES: tuple[str, ...] = (
    'assert',
    'async_hooks',
    'buffer',
    'child_process',
    'cluster',
    'console',
    'constants',
    'crypto',
    'dgram',
    'diagnostics_channel',
    'dns',
    'domain',
    'events',
    'fs',
    'http',
    'http2',
    'https',
    'inspector',
    'module',
    'net',
    'os',
    'path',
    'perf_hooks',
    'process',
    'punycode',
    'querystring',
    'readline',
    'repl',
    'stream',
    'string_decoder',
    'sys',
    'timers',
    'tls',
    'trace_events',
    'tty',
    'url',
    'util',
    'v8',
    'vm',
    'wasi',
    'worker_threads',
    'zlib',
)

ExternalNameSet = tuple[str, ...]


class ExternalClosureResolver:
    """Computes the external module names for a package.

    Args:
        reader: Source of installed manifests.
        allow_unresolved: Names whose manifest may be missing without
            failing the resolution.
    """

    def __init__(
        self,
        reader: ManifestReader,
        *,
        allow_unresolved: Iterable[str] = (),
    ) -> None:
        """Initialize with a manifest reader and the allow-list."""
        self._reader = reader
        self._allow_unresolved = frozenset(allow_unresolved)

    async def resolve(self, pkg: Package) -> ExternalNameSet:
        """Return the deduplicated external names for ``pkg``.

        Raises:
            BundleKitError: ``BK-DEPENDENCY-UNRESOLVABLE`` when a name
                outside the allow-list has no manifest.
        """
        external: dict[str, None] = {}

        def add(names: Iterable[str]) -> None:
            for name in names:
                if name != pkg.name:
                    external.setdefault(name, None)

        add(pkg.peer_dependencies)
        if not pkg.is_unified_bundle:
            add(pkg.dependencies)

        # (name, directory of the manifest that declared it)
        frontier: deque[tuple[str, Path | None]] = deque((name, None) for name in pkg.peer_dependencies)
        frontier.extend((name, None) for name in pkg.dependencies)
        visited: set[str] = {pkg.name}

        while frontier:
            name, origin = frontier.popleft()
            if name in visited:
                continue
            visited.add(name)

            manifest = await self._reader.read(name, origin)
            if manifest is None:
                if name in self._allow_unresolved:
                    log.debug('unresolved_dependency_allowed', package=pkg.name, module=name)
                    continue
                raise BundleKitError(
                    code=E.DEPENDENCY_UNRESOLVABLE,
                    message=f"Could not find package.json for '{name}' while resolving externals of {pkg.name}",
                    hint=f"Install dependencies, or add '{name}' to allow_unresolved in bundlekit.toml.",
                )

            add(manifest.peer_dependencies)
            frontier.extend((peer, manifest.directory) for peer in manifest.peer_dependencies)
            if pkg.is_unified_bundle:
                frontier.extend((dep, manifest.directory) for dep in manifest.dependencies)

        if not pkg.targets_browser:
            add(BUILTIN_MODULES)

        log.debug(
            'resolved_externals',
            package=pkg.name,
            unified=pkg.is_unified_bundle,
            browser=pkg.targets_browser,
            count=len(external),
            expanded=len(visited) - 1,
        )
        return tuple(external)


class ExternalPredicate:
    """Decides whether an import identifier is external.

    Args:
        names: The external names the predicate was compiled from.
        pattern: The regex source, or ``None`` when nothing is external.
    """

    def __init__(self, names: ExternalNameSet, pattern: str | None) -> None:
        """Initialize and compile ``pattern``."""
        self.names = names
        self.pattern = pattern
        self._compiled = re.compile(pattern) if pattern is not None else None

    def __call__(self, identifier: str) -> bool:
        """Return True if ``identifier`` names an external module or a path inside one."""
        if self._compiled is None:
            return False
        return self._compiled.match(identifier) is not None

    def __repr__(self) -> str:
        """Return a short debug representation."""
        return f'ExternalPredicate(names={len(self.names)}, pattern={self.pattern!r})'


def compile_external_predicate(names: Iterable[str]) -> ExternalPredicate:
    """Compile external names into a single anchored alternation.

    An identifier matches when it equals one of the names, or starts
    with one followed by ``/``. An empty set matches nothing, which is
    what a fully self-contained bundle needs.
    """
    unique = tuple(dict.fromkeys(names))
    if not unique:
        return ExternalPredicate(names=(), pattern=None)
    alternation = '|'.join(re.escape(name) for name in unique)
    return ExternalPredicate(names=unique, pattern=f'^(?:{alternation})(?:$|/)')


__all__ = [
    'BUILTIN_MODULES',
    'ExternalClosureResolver',
    'ExternalNameSet',
    'ExternalPredicate',
    'compile_external_predicate',
]
