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

"""Workspace alias map: package name → source entrypoint.

In watch mode a workspace member importing a sibling resolves it to the
sibling's source instead of its (possibly stale) build output.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from types import MappingProxyType

from bundlekit.package import DEFAULT_ENTRYPOINT, Package


def build_aliases(packages: Iterable[Package]) -> Mapping[str, Path]:
    """Return a read-only map of each package name to its first entrypoint."""
    aliases: dict[str, Path] = {}
    for pkg in packages:
        aliases[pkg.name] = pkg.entrypoints[0] if pkg.entrypoints else pkg.directory / DEFAULT_ENTRYPOINT
    return MappingProxyType(aliases)


__all__ = ['build_aliases']
