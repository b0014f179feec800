# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Stat collector lifecycle: start the sampler, flush it at job end, report.

Every public operation returns a success indicator (bool, or None for report)
and logs failures; telemetry must never abort the job it is watching.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import urllib.parse
from typing import Callable, Dict, List, Optional, Sequence

from . import render, series
from .chartgen import ChartGenClient
from .client import StatServerClient
from .config import DEFAULT_STAT_SERVER_PORT, STAT_FREQ_ENV, TelemetryConfig
from .models import CollectorState, LineSpec, MetricFamily

logger = logging.getLogger(__name__)

READ_COLOR = "#be4d25"
WRITE_COLOR = "#6c25be"
DISK_USED_COLOR = "#377eb8"


def sampler_command(port: int) -> List[str]:
    return [sys.executable, "-m", "workflow_telemetry.sampler", "--port", str(int(port))]


def _port_of(url: str) -> int:
    try:
        return urllib.parse.urlsplit(url).port or DEFAULT_STAT_SERVER_PORT
    except ValueError:
        return DEFAULT_STAT_SERVER_PORT


class StatCollector:
    def __init__(
        self,
        config: Optional[TelemetryConfig] = None,
        *,
        client: Optional[StatServerClient] = None,
        chartgen: Optional[ChartGenClient] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.config = config or TelemetryConfig.from_env()
        self.client = client or StatServerClient(
            self.config.stat_server_url, timeout=self.config.request_timeout_s
        )
        self._chartgen = chartgen
        self._popen = popen
        self.state = CollectorState.NOT_STARTED

    @property
    def chartgen(self) -> ChartGenClient:
        if self._chartgen is None:
            self._chartgen = ChartGenClient(self.config.chartgen_url)
        return self._chartgen

    def _sampler_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.config.metric_frequency_ms:
            env[STAT_FREQ_ENV] = str(self.config.metric_frequency_ms)
        else:
            env.pop(STAT_FREQ_ENV, None)
        return env

    def start(self) -> bool:
        logger.info("Starting stat collector ...")
        try:
            # Detached: own session, no pipes, never waited on. It outlives this process.
            self._popen(
                sampler_command(_port_of(self.config.stat_server_url)),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=self._sampler_env(),
                start_new_session=True,
                close_fds=True,
            )
        except Exception:
            logger.exception("Unable to start stat collector")
            return False
        self.state = CollectorState.STARTED
        logger.info("Started stat collector")
        return True

    def finish(self) -> bool:
        logger.info("Finishing stat collector ...")
        try:
            # Pick up whatever accumulated since the last scheduled sample.
            self.client.trigger_collect()
        except Exception:
            logger.exception("Unable to finish stat collector")
            return False
        if self.state is not CollectorState.REPORTED:
            self.state = CollectorState.FINISHED
        logger.info("Finished stat collector")
        return True

    def report(self) -> Optional[str]:
        logger.info("Reporting stat collector result ...")
        if self.state is CollectorState.REPORTED:
            logger.warning("Stat collector result was already reported for this job")
            return None
        try:
            content = self._report_workflow_metrics()
        except Exception:
            logger.exception("Unable to report stat collector result")
            return None
        self.state = CollectorState.REPORTED
        logger.info("Reported stat collector result")
        return content

    def _report_workflow_metrics(self) -> str:
        theme = render.resolve_theme(self.config.theme)

        cpu = series.normalize(self.client.get_cpu_stats(), MetricFamily.CPU)
        memory = series.normalize(self.client.get_memory_stats(), MetricFamily.MEMORY)

        extra: Sequence[str] = ()
        if self.config.remote_charts:
            extra = self._remote_chart_sections()

        return render.render_report(
            cpu=series.cpu_chart(cpu),
            memory=series.memory_chart(memory),
            theme=theme,
            extra_sections=extra,
        )

    def _remote_chart_sections(self) -> List[str]:
        """Image sections for network/disk; failures here only drop these sections."""
        sections: List[str] = []

        for family, title, label in (
            (MetricFamily.NETWORK, "Network I/O", "Network I/O (MB)"),
            (MetricFamily.DISK, "Disk I/O", "Disk I/O (MB)"),
        ):
            try:
                pair = series.normalize(self.client.get_stats(family), family)
                if not pair.first:
                    continue
                graph = self.chartgen.stacked_area_graph(
                    label,
                    [
                        LineSpec(label="Read", color=READ_COLOR, points=series.to_chart_points(pair.first)),
                        LineSpec(label="Write", color=WRITE_COLOR, points=series.to_chart_points(pair.second)),
                    ],
                )
            except Exception as e:
                logger.error("Unable to build %s chart: %s", family.value, e)
                continue
            if graph is not None:
                sections.append(render.render_image_section(title, graph))

        try:
            disk_size = series.normalize(self.client.get_disk_size_stats(), MetricFamily.DISK_SIZE)
            if not disk_size.second:
                return sections
            graph = self.chartgen.line_graph(
                "Used Disk Size (MB)",
                LineSpec(label="Used", color=DISK_USED_COLOR, points=series.to_chart_points(disk_size.second)),
            )
        except Exception as e:
            logger.error("Unable to build %s chart: %s", MetricFamily.DISK_SIZE.value, e)
            return sections
        if graph is not None:
            sections.append(render.render_image_section("Disk Usage", graph))
        return sections


def start(config: Optional[TelemetryConfig] = None) -> bool:
    return StatCollector(config).start()


def finish(config: Optional[TelemetryConfig] = None) -> bool:
    return StatCollector(config).finish()


def report(config: Optional[TelemetryConfig] = None) -> Optional[str]:
    return StatCollector(config).report()
