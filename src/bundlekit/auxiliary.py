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

"""Type declaration stubs written next to bundle outputs.

A package whose entry source carries the ``@flow`` pragma gets a
``<output>.flow`` file beside each CommonJS and ESM output, re-exporting
the source entrypoint so type checkers see the original types::

    dist/core.cjs.js.flow
        // @flow
        export * from "../src/index.js";
        export { default } from "../src/index.js";   ← AuxiliaryMode.ALL only
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from bundlekit._io import write_file
from bundlekit.backends.engine import BundleMetadata
from bundlekit.configs import Variant, variant_outputs
from bundlekit.logging import get_logger
from bundlekit.package import DEFAULT_ENTRYPOINT, Package

log = get_logger(__name__)

FLOW_PRAGMA = '@flow'


class AuxiliaryMode(str, Enum):
    """Which re-exports the declaration stubs carry."""

    ALL = 'all'
    NAMED = 'named'
    NONE = 'none'


def select_auxiliary_mode(metadata: BundleMetadata | None) -> AuxiliaryMode:
    """Pick the stub mode from a finished bundle's report."""
    if metadata is None or FLOW_PRAGMA not in metadata.entry_source:
        return AuxiliaryMode.NONE
    if 'default' in metadata.exports:
        return AuxiliaryMode.ALL
    return AuxiliaryMode.NAMED


@runtime_checkable
class AuxiliaryWriter(Protocol):
    """Writes the auxiliary files for a package after a bundle finishes."""

    async def write(self, pkg: Package, mode: AuxiliaryMode) -> None:
        """Write (or skip, for ``NONE``) the auxiliary files of ``pkg``."""
        ...


def _module_specifier(source: Path, output: Path) -> str:
    relative = os.path.relpath(source, output.parent).replace(os.sep, '/')
    return relative if relative.startswith('.') else f'./{relative}'


def flow_stub(source: Path, output: Path, mode: AuxiliaryMode) -> str:
    """Return the contents of the ``.flow`` stub for one output file."""
    specifier = _module_specifier(source, output)
    lines = ['// @flow', f'export * from "{specifier}";']
    if mode is AuxiliaryMode.ALL:
        lines.append(f'export {{ default }} from "{specifier}";')
    return '\n'.join(lines) + '\n'


class FlowStubWriter:
    """Writes ``.flow`` stubs beside the node and browser outputs."""

    async def write(self, pkg: Package, mode: AuxiliaryMode) -> None:
        """Write one stub per CommonJS/ESM output of ``pkg``.

        Raises:
            BundleKitError: ``BK-AUXILIARY-WRITE-FAILED`` on I/O errors.
        """
        if mode is AuxiliaryMode.NONE:
            return
        source = pkg.entrypoints[0] if pkg.entrypoints else pkg.directory / DEFAULT_ENTRYPOINT
        variants = [Variant.NODE]
        if pkg.targets_browser:
            variants.append(Variant.BROWSER)
        written = 0
        for variant in variants:
            for output in variant_outputs(pkg, variant):
                target = output.file.with_name(output.file.name + '.flow')
                await write_file(target, flow_stub(source, output.file, mode))
                written += 1
        log.debug('auxiliary_files_written', package=pkg.name, mode=mode.value, count=written)


__all__ = [
    'FLOW_PRAGMA',
    'AuxiliaryMode',
    'AuxiliaryWriter',
    'FlowStubWriter',
    'flow_stub',
    'select_auxiliary_mode',
]
