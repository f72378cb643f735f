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

"""Per-package build configurations handed to the build engine.

A package produces up to three variants, each with its own external set::

    ┌─────────┬──────────────────────────────┬─────────┬─────────┐
    │ Variant │ Outputs                      │ Unified │ Browser │
    ├─────────┼──────────────────────────────┼─────────┼─────────┤
    │ node    │ main (cjs), module (esm)     │ no      │ no      │
    │ browser │ *.browser.cjs.js / .esm.js   │ no      │ yes     │
    │ umd     │ umd:main                     │ yes     │ yes     │
    └─────────┴──────────────────────────────┴─────────┴─────────┘

The browser variant exists when the manifest declares ``browser``; the
UMD variant when it declares ``umd:main``. UMD output is always built in
production mode.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from bundlekit.externals import ExternalClosureResolver, ExternalNameSet, ExternalPredicate, compile_external_predicate
from bundlekit.package import Package

_EMPTY_ALIASES: Mapping[str, Path] = MappingProxyType({})


class Variant(str, Enum):
    """Output variant of a package build."""

    NODE = 'node'
    BROWSER = 'browser'
    UMD = 'umd'


@dataclass(frozen=True)
class OutputTarget:
    """One file the engine writes.

    Attributes:
        format: Module format: ``"cjs"``, ``"es"`` or ``"umd"``.
        file: Absolute output path.
        name: Global name (UMD only).
    """

    format: str
    file: Path
    name: str = ''


@dataclass(frozen=True)
class BuildConfig:
    """Everything the build engine needs for one variant of one package.

    Attributes:
        package: Package name.
        variant: Which output variant this is.
        entrypoints: Absolute source entrypoints.
        externals: External module names for this variant.
        external: Predicate the engine calls per discovered import.
        outputs: Files to produce.
        environment_mode: ``"development"`` or ``"production"``.
        aliases: Workspace package name → source entrypoint.
    """

    package: str
    variant: Variant
    entrypoints: tuple[Path, ...]
    externals: ExternalNameSet
    external: ExternalPredicate
    outputs: tuple[OutputTarget, ...]
    environment_mode: str = 'development'
    aliases: Mapping[str, Path] = field(default_factory=lambda: _EMPTY_ALIASES)

    def as_dict(self) -> dict[str, Any]:  # noqa: ANN401 - JSON payload
        """Return a JSON-serialisable view of the configuration."""
        return {
            'package': self.package,
            'variant': self.variant.value,
            'entrypoints': [str(p) for p in self.entrypoints],
            'external': list(self.externals),
            'externalPattern': self.external.pattern,
            'outputs': [{'format': o.format, 'file': str(o.file), 'name': o.name or None} for o in self.outputs],
            'environmentMode': self.environment_mode,
            'aliases': {name: str(path) for name, path in self.aliases.items()},
        }


def _umd_global_name(pkg: Package) -> str:
    if pkg.umd_name:
        return pkg.umd_name
    parts = [p for p in re.split(r'[^A-Za-z0-9]+', pkg.dist_name) if p]
    return parts[0] + ''.join(p[:1].upper() + p[1:] for p in parts[1:]) if parts else 'bundle'


def variant_packages(pkg: Package) -> list[tuple[Variant, Package]]:
    """Return the per-variant views of ``pkg`` with their bundle flags set."""
    views = [(Variant.NODE, dataclasses.replace(pkg, is_unified_bundle=False, targets_browser=False))]
    if pkg.targets_browser:
        views.append((Variant.BROWSER, dataclasses.replace(pkg, is_unified_bundle=False, targets_browser=True)))
    if pkg.is_unified_bundle:
        views.append((Variant.UMD, dataclasses.replace(pkg, is_unified_bundle=True, targets_browser=True)))
    return views


def variant_outputs(pkg: Package, variant: Variant) -> tuple[OutputTarget, ...]:
    """Return the output files for one variant."""
    dist = pkg.directory / 'dist'
    stem = pkg.dist_name
    if variant is Variant.NODE:
        cjs = pkg.directory / pkg.main if pkg.main else dist / f'{stem}.cjs.js'
        esm = pkg.directory / pkg.module if pkg.module else dist / f'{stem}.esm.js'
        return (OutputTarget('cjs', cjs), OutputTarget('es', esm))
    if variant is Variant.BROWSER:
        return (
            OutputTarget('cjs', dist / f'{stem}.browser.cjs.js'),
            OutputTarget('es', dist / f'{stem}.browser.esm.js'),
        )
    umd = pkg.directory / pkg.umd_main if pkg.umd_main else dist / f'{stem}.umd.min.js'
    return (OutputTarget('umd', umd, name=_umd_global_name(pkg)),)


async def resolve_build_configs(
    pkg: Package,
    resolver: ExternalClosureResolver,
    *,
    aliases: Mapping[str, Path] = _EMPTY_ALIASES,
    production: bool = False,
) -> list[BuildConfig]:
    """Resolve externals and build one :class:`BuildConfig` per variant.

    Raises:
        BundleKitError: If external closure resolution fails.
    """
    configs: list[BuildConfig] = []
    for variant, view in variant_packages(pkg):
        externals = await resolver.resolve(view)
        mode = 'production' if production or variant is Variant.UMD else 'development'
        configs.append(
            BuildConfig(
                package=pkg.name,
                variant=variant,
                entrypoints=pkg.entrypoints,
                externals=externals,
                external=compile_external_predicate(externals),
                outputs=variant_outputs(pkg, variant),
                environment_mode=mode,
                aliases=aliases,
            )
        )
    return configs


__all__ = [
    'BuildConfig',
    'OutputTarget',
    'Variant',
    'resolve_build_configs',
    'variant_outputs',
    'variant_packages',
]
