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

"""Tests for bundlekit.logging — package-tagged output."""

from __future__ import annotations

import io
import json
import logging

from bundlekit.logging import PackageTag, configure_logging, package_logger


def _capture() -> io.StringIO:
    """Point the root handler configured by configure_logging at a buffer."""
    stream = io.StringIO()
    handler = logging.root.handlers[0]
    assert isinstance(handler, logging.StreamHandler)
    handler.setStream(stream)
    return stream


class TestPackageTag:
    """Tests for the PackageTag processor."""

    def test_inline_moves_package_into_event(self) -> None:
        """Console mode leads the event with the package."""
        event = PackageTag(inline=True)(None, 'info', {'event': 'bundled', 'package': '@scope/core', 'duration': '1s'})
        assert event == {'event': '[@scope/core] bundled', 'duration': '1s'}

    def test_json_keeps_package_field(self) -> None:
        """JSON mode leaves the package as its own key."""
        event = PackageTag(inline=False)(None, 'info', {'event': 'bundled', 'package': '@scope/core'})
        assert event == {'event': 'bundled', 'package': '@scope/core'}

    def test_untagged_event_unchanged(self) -> None:
        """Lines without a package pass through."""
        event = PackageTag(inline=True)(None, 'info', {'event': 'watching_started'})
        assert event == {'event': 'watching_started'}


class TestConfigureLogging:
    """Tests for configure_logging() and package_logger()."""

    def test_levels(self) -> None:
        """verbose → DEBUG, default → INFO, quiet wins over verbose."""
        configure_logging(verbose=True)
        assert logging.root.level == logging.DEBUG
        configure_logging()
        assert logging.root.level == logging.INFO
        configure_logging(verbose=True, quiet=True)
        assert logging.root.level == logging.WARNING

    def test_console_line_leads_with_package(self) -> None:
        """Console output shows the package ahead of the event."""
        configure_logging()
        stream = _capture()
        package_logger('bundlekit.tests.console', '@scope/core').info('bundled', duration='412ms')
        line = stream.getvalue()
        assert '[@scope/core] bundled' in line
        assert 'package=' not in line

    def test_json_line_has_package_field(self) -> None:
        """JSON output carries the package as a field."""
        configure_logging(json_log=True)
        stream = _capture()
        package_logger('bundlekit.tests.json', '@scope/util').warning('watch_recoverable_error', depth=1)
        record = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert record['package'] == '@scope/util'
        assert record['event'] == 'watch_recoverable_error'
        assert record['depth'] == 1
