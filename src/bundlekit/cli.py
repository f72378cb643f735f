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

"""Command-line interface for bundlekit.

Subcommands::

    bundlekit watch [DIR]       Watch a package or workspace and rebuild on change
    bundlekit externals [DIR]   Print each package's external modules per variant
    bundlekit explain CODE      Explain a BK-* error code

Global flags: ``--verbose``, ``--quiet``, ``--json-log``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from rich_argparse import RichHelpFormatter

from bundlekit import __version__
from bundlekit.backends.engine.command import CommandEngine
from bundlekit.config import load_config
from bundlekit.coordinator import WorkspaceCoordinator
from bundlekit.errors import BundleKitError, explain, render_error
from bundlekit.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def _cmd_watch(args: argparse.Namespace) -> int:
    """Handle the ``watch`` subcommand."""
    root = Path(args.directory).resolve()
    config = load_config(root)
    engine = CommandEngine(config.engine)
    coordinator = WorkspaceCoordinator(engine, config=config)
    try:
        await coordinator.run(root)
        await coordinator.wait()
    finally:
        await coordinator.close()
    return 0


async def _cmd_externals(args: argparse.Namespace) -> int:
    """Handle the ``externals`` subcommand."""
    root = Path(args.directory).resolve()
    config = load_config(root)
    coordinator = WorkspaceCoordinator(CommandEngine(config.engine), config=config)
    try:
        plans = await coordinator.plan(root)
    finally:
        await coordinator.close()

    if args.format == 'json':
        data = {
            plan.package.name: {build.variant.value: list(build.externals) for build in plan.configs}
            for plan in plans
        }
        print(json.dumps(data, indent=2))  # noqa: T201 - CLI output
        return 0

    for plan in plans:
        print(plan.package.name)  # noqa: T201 - CLI output
        for build in plan.configs:
            names = ', '.join(build.externals) if build.externals else '(none)'
            print(f'  {build.variant.value:<8} {names}')  # noqa: T201 - CLI output
    return 0


def _cmd_explain(args: argparse.Namespace) -> int:
    """Handle the ``explain`` subcommand."""
    result = explain(args.code)
    if result is None:
        print(f'Unknown error code: {args.code}')  # noqa: T201 - CLI output
        return 1
    print(result)  # noqa: T201 - CLI output
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured :class:`argparse.ArgumentParser`.
    """
    RichHelpFormatter.styles['argparse.groups'] = 'bold yellow'
    parser = argparse.ArgumentParser(
        prog='bundlekit',
        description='Incremental watch builds for JavaScript packages and workspaces.',
        formatter_class=RichHelpFormatter,
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}',
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging.')
    parser.add_argument('--quiet', '-q', action='store_true', help='Only log warnings and errors.')
    parser.add_argument('--json-log', action='store_true', help='Emit structured JSON log lines.')

    subparsers = parser.add_subparsers(dest='command')

    watch_parser = subparsers.add_parser(
        'watch',
        help='Watch a package or workspace and rebuild on change.',
        formatter_class=RichHelpFormatter,
    )
    watch_parser.add_argument(
        'directory',
        nargs='?',
        default='.',
        help='Package or workspace root (default: current directory).',
    )

    externals_parser = subparsers.add_parser(
        'externals',
        help='Print the external modules of every package and variant.',
        formatter_class=RichHelpFormatter,
    )
    externals_parser.add_argument(
        'directory',
        nargs='?',
        default='.',
        help='Package or workspace root (default: current directory).',
    )
    externals_parser.add_argument(
        '--format',
        choices=['table', 'json'],
        default='table',
        help='Output format (default: table).',
    )

    explain_parser = subparsers.add_parser(
        'explain',
        help='Explain an error code.',
        formatter_class=RichHelpFormatter,
    )
    explain_parser.add_argument('code', help='Error code, e.g. BK-DEPENDENCY-UNRESOLVABLE.')

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet, json_log=args.json_log)

    try:
        command = args.command
        if command == 'watch':
            return asyncio.run(_cmd_watch(args))
        if command == 'externals':
            return asyncio.run(_cmd_externals(args))
        if command == 'explain':
            return _cmd_explain(args)
        parser.print_help()
        return 1
    except BundleKitError as exc:
        render_error(exc)
        return 1
    except KeyboardInterrupt:
        logger.info('interrupted')
        return 130


def _main() -> None:
    """Wrapper for pyproject.toml [project.scripts] entry point."""
    sys.exit(main())


__all__ = [
    'build_parser',
    'main',
]
