# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
CLI wrapper for workflow_telemetry.

The CI host calls one subcommand per job-lifecycle point:
  workflow-telemetry start    # pre-job: launch the background sampler
  workflow-telemetry finish   # post-job: flush trailing samples
  workflow-telemetry report   # post-job: print (or append) the Markdown report
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from . import sampler
from .collector import StatCollector
from .config import TelemetryConfig, parse_metric_frequency

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-telemetry",
        description="Collect CPU/memory telemetry during a CI job and render a Markdown report.",
        epilog="Examples:\n"
               "  %(prog)s start --metric-frequency 5\n"
               "  %(prog)s finish\n"
               "  %(prog)s report --output \"$GITHUB_STEP_SUMMARY\"",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--stat-server-url", default=None, help="Control-plane base URL (default: http://localhost:7777)")

    sub = parser.add_subparsers(dest="command", required=True)

    p_start = sub.add_parser("start", help="Launch the background sampler")
    p_start.add_argument("--metric-frequency", default=None, help="Sampling interval in seconds (default: $INPUT_METRIC_FREQUENCY)")

    sub.add_parser("finish", help="Trigger a final collect on the sampler")

    p_report = sub.add_parser("report", help="Render the report fragment")
    p_report.add_argument("--theme", default=None, help="light or dark (default: $INPUT_THEME)")
    p_report.add_argument("--remote-charts", action="store_true", help="Also render network/disk charts via the chart service")
    p_report.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Append the report to this file instead of stdout (default: $GITHUB_STEP_SUMMARY when set)",
    )

    sub.add_parser("sampler", help="Run the sampler in the foreground", add_help=False)
    return parser


def _config_from_args(args: argparse.Namespace) -> TelemetryConfig:
    config = TelemetryConfig.from_env()
    if args.stat_server_url:
        config = replace(config, stat_server_url=args.stat_server_url)
    if getattr(args, "metric_frequency", None) is not None:
        config = replace(config, metric_frequency_ms=parse_metric_frequency(args.metric_frequency))
    if getattr(args, "theme", None) is not None:
        config = replace(config, theme=args.theme)
    if getattr(args, "remote_charts", False):
        config = replace(config, remote_charts=True)
    return config


def _write_report(content: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(content)
        if content and not content.endswith("\n"):
            sys.stdout.write("\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "a", encoding="utf-8") as fh:
        fh.write(content)
        fh.write("\n")
    logger.info("Wrote report to %s", output)


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(argv) if argv is not None else sys.argv[1:]
    # The sampler owns its own argument parsing.
    if argv and argv[0] == "sampler":
        return sampler.main(argv[1:])

    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    collector = StatCollector(_config_from_args(args))
    if args.command == "start":
        return 0 if collector.start() else 1
    if args.command == "finish":
        return 0 if collector.finish() else 1
    if args.command == "report":
        content = collector.report()
        if content is None:
            return 1
        output = args.output
        if output is None and os.environ.get("GITHUB_STEP_SUMMARY"):
            output = Path(os.environ["GITHUB_STEP_SUMMARY"])
        _write_report(content, output)
        return 0
    parser.error(f"unknown command: {args.command}")
    return 2


def main() -> None:
    raise SystemExit(_cli())
