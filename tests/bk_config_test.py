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

"""Tests for bundlekit.config — bundlekit.toml loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from bundlekit.config import CONFIG_FILENAME, DEFAULT_ENGINE_COMMAND, BundleKitConfig, load_config
from bundlekit.errors import E, BundleKitError


def _write_config(root: Path, content: str) -> None:
    (root / CONFIG_FILENAME).write_text(content, encoding='utf-8')


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """No bundlekit.toml → defaults."""
        config = load_config(tmp_path)
        assert config == BundleKitConfig()
        assert config.engine == DEFAULT_ENGINE_COMMAND
        assert config.allow_unresolved == frozenset()
        assert config.clean_dist
        assert config.config_path is None

    def test_all_keys(self, tmp_path: Path) -> None:
        """Every supported key is read."""
        _write_config(
            tmp_path,
            'allow_unresolved = ["nopt"]\n'
            'engine = ["node", "scripts/watch.js"]\n'
            'production = true\n'
            'clean_dist = false\n',
        )
        config = load_config(tmp_path)
        assert config.allow_unresolved == frozenset({'nopt'})
        assert config.engine == ('node', 'scripts/watch.js')
        assert config.production
        assert not config.clean_dist
        assert config.config_path == tmp_path / CONFIG_FILENAME

    def test_unknown_key_suggests(self, tmp_path: Path) -> None:
        """A misspelt key gets a did-you-mean hint."""
        _write_config(tmp_path, 'engin = ["x"]\n')
        with pytest.raises(BundleKitError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == E.CONFIG_INVALID_KEY
        assert "Did you mean 'engine'?" in exc_info.value.hint

    def test_wrong_type(self, tmp_path: Path) -> None:
        """production must be a bool."""
        _write_config(tmp_path, 'production = "yes"\n')
        with pytest.raises(BundleKitError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_non_string_list_item(self, tmp_path: Path) -> None:
        """allow_unresolved items must be strings."""
        _write_config(tmp_path, 'allow_unresolved = ["nopt", 3]\n')
        with pytest.raises(BundleKitError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_empty_engine(self, tmp_path: Path) -> None:
        """engine must name a command."""
        _write_config(tmp_path, 'engine = []\n')
        with pytest.raises(BundleKitError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == E.CONFIG_INVALID_VALUE

    def test_parse_error(self, tmp_path: Path) -> None:
        """Malformed TOML is a parse error."""
        _write_config(tmp_path, 'engine = [\n')
        with pytest.raises(BundleKitError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code == E.CONFIG_PARSE_ERROR
