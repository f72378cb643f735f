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

"""Structured logging for bundlekit.

A workspace watch interleaves progress from many packages on one stream,
so every line a session or supervisor emits carries the package it is
about. Loggers for that come from :func:`package_logger`, which binds
``package=<name>``; the :class:`PackageTag` processor then puts the tag
where a reader looks for it:

- **Console** (default): the tag leads the event text::

      2026-10-19T09:12:03Z [info ] [@scope/core] bundled   duration=412ms

- **JSON** (``--json-log``): the tag stays a ``"package"`` field so log
  shippers can filter on it::

      {"package": "@scope/core", "event": "bundled", "duration": "412ms", ...}

Everything goes to stderr; stdout is reserved for command output such
as ``bundlekit externals --format json``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

PACKAGE_KEY = 'package'


class PackageTag:
    """structlog processor that renders the bound package for one output mode.

    Args:
        inline: Move the package into the event text (console mode)
            instead of keeping it as a separate key (JSON mode).
    """

    def __init__(self, *, inline: bool) -> None:
        """Initialize for console (``inline=True``) or JSON output."""
        self.inline = inline

    def __call__(
        self,
        logger: Any,  # noqa: ANN401 - structlog processor signature
        method_name: str,
        event_dict: MutableMapping[str, Any],  # noqa: ANN401
    ) -> MutableMapping[str, Any]:  # noqa: ANN401
        """Tag the event with its package."""
        package = event_dict.get(PACKAGE_KEY)
        if not package or not self.inline:
            return event_dict
        del event_dict[PACKAGE_KEY]
        event_dict['event'] = f'[{package}] {event_dict.get("event", "")}'
        return event_dict


def _level(*, verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.WARNING
    return logging.DEBUG if verbose else logging.INFO


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_log: bool = False,
) -> None:
    """Configure structlog for bundlekit.

    Call once at startup, before the first log line. ``quiet`` wins over
    ``verbose``.

    Args:
        verbose: Enable debug-level output (engine chatter, cache misses).
        quiet: Only warnings and errors.
        json_log: One JSON object per line instead of console output.
    """
    logging.basicConfig(
        format='%(message)s',
        stream=sys.stderr,
        level=_level(verbose=verbose, quiet=quiet),
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt='iso'),
        PackageTag(inline=not json_log),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if json_log:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    for handler in logging.root.handlers:
        handler.setFormatter(formatter)


def get_logger(name: str = 'bundlekit') -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named ``name``."""
    return structlog.get_logger(name)


def package_logger(name: str, package: str) -> structlog.stdlib.BoundLogger:
    """Return a logger whose every line is tagged with ``package``."""
    return get_logger(name).bind(**{PACKAGE_KEY: package})


__all__ = [
    'PACKAGE_KEY',
    'PackageTag',
    'configure_logging',
    'get_logger',
    'package_logger',
]
