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

"""Shared test fakes for bundlekit.

Provides fake implementations of the BuildEngine, ManifestReader and
AuxiliaryWriter protocols so that individual test modules don't need to
duplicate boilerplate classes.

Usage::

    from tests._fakes import FakeEngine, FakeReader, started, recoverable

    engine = FakeEngine({'a': [[started()], [started()]]})
    reader = FakeReader({'react': manifest('react')})
"""

from tests._fakes._engine import (
    FakeEngine as FakeEngine,
    FakeWatchHandle as FakeWatchHandle,
    RetrySignal as RetrySignal,
    bundle_end as bundle_end,
    fatal as fatal,
    recoverable as recoverable,
    started as started,
)
from tests._fakes._reader import FakeReader as FakeReader, manifest as manifest
from tests._fakes._writer import FakeWriter as FakeWriter

__all__ = [
    'FakeEngine',
    'FakeReader',
    'FakeWatchHandle',
    'FakeWriter',
    'RetrySignal',
    'bundle_end',
    'fatal',
    'manifest',
    'recoverable',
    'started',
]
