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

"""Tests for bundlekit.discovery and bundlekit.aliases."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from bundlekit.aliases import build_aliases
from bundlekit.discovery import SinglePackage, Workspace, _parse_yaml_simple, discover, expand_member_globs
from bundlekit.errors import E, BundleKitError
from bundlekit.package import Package


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding='utf-8')


def _member(root: Path, rel: str, name: str | None, **extra: Any) -> None:  # noqa: ANN401
    data: dict[str, Any] = dict(extra)
    if name is not None:
        data['name'] = name
    _write_json(root / rel / 'package.json', data)


class TestParseYamlSimple:
    """Tests for the pnpm-workspace.yaml reader."""

    def test_quoted_and_bare_items(self) -> None:
        """Single, double and unquoted items are all read."""
        text = "packages:\n  - 'packages/*'\n  - \"plugins/*\"\n  - apps/web\n"
        assert _parse_yaml_simple(text) == {'packages': ['packages/*', 'plugins/*', 'apps/web']}

    def test_comments_and_blank_lines(self) -> None:
        """Comments and blank lines are skipped."""
        text = '# workspace\n\npackages:\n  # core\n  - packages/*\n'
        assert _parse_yaml_simple(text) == {'packages': ['packages/*']}


class TestExpandMemberGlobs:
    """Tests for expand_member_globs()."""

    def test_only_directories_with_manifest(self, tmp_path: Path) -> None:
        """Directories without package.json are ignored."""
        _member(tmp_path, 'packages/a', 'a')
        (tmp_path / 'packages' / 'empty').mkdir(parents=True)
        result = expand_member_globs(tmp_path, ['packages/*'])
        assert result == [(tmp_path / 'packages' / 'a').resolve()]

    def test_exclusion(self, tmp_path: Path) -> None:
        """!pattern removes matches."""
        _member(tmp_path, 'packages/a', 'a')
        _member(tmp_path, 'packages/scratch', 'scratch')
        result = expand_member_globs(tmp_path, ['packages/*', '!packages/scratch'])
        assert [p.name for p in result] == ['a']

    def test_dot_slash_prefix(self, tmp_path: Path) -> None:
        """A leading ./ is accepted."""
        _member(tmp_path, 'packages/a', 'a')
        assert [p.name for p in expand_member_globs(tmp_path, ['./packages/*'])] == ['a']


class TestDiscover:
    """Tests for discover()."""

    @pytest.mark.asyncio
    async def test_single_package(self, tmp_path: Path) -> None:
        """A manifest without workspaces is a single package."""
        _write_json(tmp_path / 'package.json', {'name': 'solo', 'peerDependencies': {'react': '^18'}})
        result = await discover(tmp_path)
        assert isinstance(result, SinglePackage)
        assert result.package.name == 'solo'
        assert result.packages == [result.package]
        assert result.package.peer_dependencies == {'react': '^18'}

    @pytest.mark.asyncio
    async def test_npm_workspaces(self, tmp_path: Path) -> None:
        """workspaces as a list of globs."""
        _write_json(tmp_path / 'package.json', {'private': True, 'workspaces': ['packages/*']})
        _member(tmp_path, 'packages/b', 'b')
        _member(tmp_path, 'packages/a', 'a')
        result = await discover(tmp_path)
        assert isinstance(result, Workspace)
        assert [p.name for p in result.packages] == ['a', 'b']

    @pytest.mark.asyncio
    async def test_yarn_workspaces_object(self, tmp_path: Path) -> None:
        """workspaces as {packages: [...]}."""
        _write_json(tmp_path / 'package.json', {'workspaces': {'packages': ['libs/*'], 'nohoist': []}})
        _member(tmp_path, 'libs/core', '@scope/core')
        result = await discover(tmp_path)
        assert isinstance(result, Workspace)
        assert [p.name for p in result.packages] == ['@scope/core']

    @pytest.mark.asyncio
    async def test_pnpm_workspace(self, tmp_path: Path) -> None:
        """pnpm-workspace.yaml makes the root a workspace."""
        _write_json(tmp_path / 'package.json', {'name': 'root', 'private': True})
        (tmp_path / 'pnpm-workspace.yaml').write_text("packages:\n  - 'packages/*'\n", encoding='utf-8')
        _member(tmp_path, 'packages/a', 'a')
        result = await discover(tmp_path)
        assert isinstance(result, Workspace)
        assert [p.name for p in result.packages] == ['a']

    @pytest.mark.asyncio
    async def test_nameless_member_is_skipped(self, tmp_path: Path) -> None:
        """A member manifest without a name is not a package."""
        _write_json(tmp_path / 'package.json', {'workspaces': ['packages/*']})
        _member(tmp_path, 'packages/a', 'a')
        _member(tmp_path, 'packages/tools', None)
        result = await discover(tmp_path)
        assert [p.name for p in result.packages] == ['a']

    @pytest.mark.asyncio
    async def test_no_manifest(self, tmp_path: Path) -> None:
        """A directory without package.json is an error."""
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.WORKSPACE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_duplicate_names(self, tmp_path: Path) -> None:
        """Two members with one name are rejected."""
        _write_json(tmp_path / 'package.json', {'workspaces': ['packages/*']})
        _member(tmp_path, 'packages/a', 'same')
        _member(tmp_path, 'packages/b', 'same')
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.WORKSPACE_DUPLICATE_PACKAGE

    @pytest.mark.asyncio
    async def test_no_members(self, tmp_path: Path) -> None:
        """Globs matching nothing are rejected."""
        _write_json(tmp_path / 'package.json', {'workspaces': ['packages/*']})
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.WORKSPACE_NO_MEMBERS

    @pytest.mark.asyncio
    async def test_empty_workspaces_list(self, tmp_path: Path) -> None:
        """An empty globs list is rejected."""
        _write_json(tmp_path / 'package.json', {'workspaces': []})
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.WORKSPACE_NO_MEMBERS

    @pytest.mark.asyncio
    async def test_invalid_workspaces_type(self, tmp_path: Path) -> None:
        """workspaces must be a list."""
        _write_json(tmp_path / 'package.json', {'workspaces': 'packages/*'})
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.MANIFEST_PARSE_ERROR

    @pytest.mark.asyncio
    async def test_single_package_without_name(self, tmp_path: Path) -> None:
        """A lone manifest needs a name."""
        _write_json(tmp_path / 'package.json', {'version': '1.0.0'})
        with pytest.raises(BundleKitError) as exc_info:
            await discover(tmp_path)
        assert exc_info.value.code == E.MANIFEST_MISSING_NAME


class TestBuildAliases:
    """Tests for build_aliases()."""

    def test_maps_name_to_first_entrypoint(self) -> None:
        """Each package maps to its first source entrypoint."""
        pkg = Package(
            name='@scope/a',
            directory=Path('/ws/a'),
            entrypoints=(Path('/ws/a/src/index.js'), Path('/ws/a/src/other.js')),
        )
        assert dict(build_aliases([pkg])) == {'@scope/a': Path('/ws/a/src/index.js')}

    def test_default_entrypoint(self) -> None:
        """A package without entrypoints maps to src/index.js."""
        pkg = Package(name='b', directory=Path('/ws/b'))
        assert build_aliases([pkg])['b'] == Path('/ws/b/src/index.js')

    def test_read_only(self) -> None:
        """The alias map cannot be mutated."""
        aliases = build_aliases([Package(name='b', directory=Path('/ws/b'))])
        with pytest.raises(TypeError):
            aliases['c'] = Path('/x')  # type: ignore[index]

    def test_empty(self) -> None:
        """No packages, no aliases."""
        assert dict(build_aliases([])) == {}
