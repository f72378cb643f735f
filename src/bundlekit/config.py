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

"""Configuration reader for bundlekit.

Reads ``bundlekit.toml`` from the package or workspace root and returns a
validated, frozen :class:`BundleKitConfig`. A missing file means
defaults.

Supported keys::

    allow_unresolved = ["nopt"]          # may lack an installed package.json
    engine           = ["bundlekit-rollup-watch"]  # watcher command
    production       = false             # build node/browser variants in production mode
    clean_dist       = true              # remove dist/ before each session starts

Unknown keys are rejected with a "did you mean" hint::

    engin = [...]   →  BK-CONFIG-INVALID-KEY: Unknown key 'engin'
                       hint: Did you mean 'engine'?
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from bundlekit.errors import E, BundleKitError
from bundlekit.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = 'bundlekit.toml'

DEFAULT_ENGINE_COMMAND: tuple[str, ...] = ('bundlekit-rollup-watch',)

VALID_KEYS: frozenset[str] = frozenset({
    'allow_unresolved',
    'clean_dist',
    'engine',
    'production',
})

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'allow_unresolved': list,
    'clean_dist': bool,
    'engine': list,
    'production': bool,
}


@dataclass(frozen=True)
class BundleKitConfig:
    """Validated configuration for a bundlekit run.

    Attributes:
        allow_unresolved: Module names allowed to have no installed
            manifest during external closure resolution.
        engine: Command that starts the build engine's watch process.
        production: Build the node and browser variants in production
            mode (the UMD variant always is).
        clean_dist: Remove each package's ``dist`` directory before a
            watch session starts.
        config_path: Path to the file that was loaded, if any.
    """

    allow_unresolved: frozenset[str] = frozenset()
    engine: tuple[str, ...] = DEFAULT_ENGINE_COMMAND
    production: bool = False
    clean_dist: bool = True
    config_path: Path | None = field(default=None, compare=False)


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP.get(key)
    if expected is None:
        return
    if not isinstance(value, expected):
        type_name = expected.__name__ if isinstance(expected, type) else str(expected)
        raise BundleKitError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )


def _validate_string_list(key: str, items: list[object]) -> list[str]:
    """Raise if any item in a list is not a string."""
    for item in items:
        if not isinstance(item, str):
            raise BundleKitError(
                code=E.CONFIG_INVALID_VALUE,
                message=f"'{key}' items must be strings, got {type(item).__name__}: {item!r}",
                hint=f'Each {key} entry should be a string in {CONFIG_FILENAME}.',
            )
    return [str(item) for item in items]


def load_config(root: Path) -> BundleKitConfig:
    """Load and validate ``bundlekit.toml`` from ``root``.

    Args:
        root: Directory that may contain ``bundlekit.toml``.

    Returns:
        A validated :class:`BundleKitConfig`.

    Raises:
        BundleKitError: If the file cannot be parsed or holds invalid keys.
    """
    config_path = root / CONFIG_FILENAME

    if not config_path.is_file():
        logger.debug('no_bundlekit_config', path=str(config_path))
        return BundleKitConfig()

    try:
        text = config_path.read_text(encoding='utf-8')
        doc = tomlkit.parse(text)
    except OSError as exc:
        raise BundleKitError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to read {config_path}: {exc}',
        ) from exc
    except tomlkit.exceptions.TOMLKitError as exc:
        raise BundleKitError(
            code=E.CONFIG_PARSE_ERROR,
            message=f'Failed to parse {config_path}: {exc}',
        ) from exc

    raw: dict[str, Any] = doc.unwrap()  # noqa: ANN401

    for key in raw:
        if key not in VALID_KEYS:
            suggestion = difflib.get_close_matches(key, VALID_KEYS, n=1, cutoff=0.6)
            hint = f"Did you mean '{suggestion[0]}'?" if suggestion else f'Valid keys: {", ".join(sorted(VALID_KEYS))}.'
            raise BundleKitError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in {CONFIG_FILENAME}",
                hint=hint,
            )

    for key, value in raw.items():
        _validate_value_type(key, value)

    kwargs: dict[str, Any] = {}  # noqa: ANN401
    if 'allow_unresolved' in raw:
        kwargs['allow_unresolved'] = frozenset(_validate_string_list('allow_unresolved', raw['allow_unresolved']))
    if 'engine' in raw:
        command = _validate_string_list('engine', raw['engine'])
        if not command:
            raise BundleKitError(
                code=E.CONFIG_INVALID_VALUE,
                message="'engine' must not be empty",
                hint='Set engine to the watcher command, e.g. ["bundlekit-rollup-watch"].',
            )
        kwargs['engine'] = tuple(command)
    for flag in ('production', 'clean_dist'):
        if flag in raw:
            kwargs[flag] = raw[flag]

    logger.debug('loaded_bundlekit_config', path=str(config_path), keys=sorted(raw))
    return BundleKitConfig(**kwargs, config_path=config_path)


__all__ = [
    'CONFIG_FILENAME',
    'DEFAULT_ENGINE_COMMAND',
    'VALID_KEYS',
    'BundleKitConfig',
    'load_config',
]
