# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Runtime configuration.

The CI host passes action inputs as `INPUT_<NAME>` environment variables; the
remaining knobs are plain environment variables so tests can point the clients
at a fake endpoint.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_STAT_SERVER_PORT = 7777
DEFAULT_STAT_SERVER_URL = f"http://localhost:{DEFAULT_STAT_SERVER_PORT}"
DEFAULT_CHARTGEN_URL = "https://api.globadge.com/v1/chartgen"

# Sampling interval handed to the sampler process, in milliseconds.
STAT_FREQ_ENV = "WORKFLOW_TELEMETRY_STAT_FREQ"


def _get_input(environ: Mapping[str, str], name: str) -> str:
    key = "INPUT_" + name.replace(" ", "_").upper()
    return str(environ.get(key, "") or "").strip()


def parse_metric_frequency(value: Optional[str]) -> Optional[int]:
    """Convert a metric frequency in seconds ("30") into milliseconds (30000).

    Empty input means "sampler default" and returns None. Anything that is not a
    positive integer is warned about and also falls back to None.
    """
    raw = str(value or "").strip()
    if not raw:
        return None
    try:
        seconds = int(raw)
    except ValueError:
        logger.warning("Invalid metric frequency: %r (using sampler default)", raw)
        return None
    if seconds <= 0:
        logger.warning("Invalid metric frequency: %r (using sampler default)", raw)
        return None
    return seconds * 1000


def _parse_bool(value: str) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TelemetryConfig:
    theme: str = "dark"
    metric_frequency_ms: Optional[int] = None
    stat_server_url: str = DEFAULT_STAT_SERVER_URL
    chartgen_url: str = DEFAULT_CHARTGEN_URL
    remote_charts: bool = False
    # None means no client-side timeout, a hung sampler hangs the request.
    request_timeout_s: Optional[float] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TelemetryConfig":
        env = os.environ if environ is None else environ
        timeout_raw = str(env.get("WORKFLOW_TELEMETRY_TIMEOUT_SECONDS", "") or "").strip()
        timeout_s: Optional[float] = None
        if timeout_raw:
            try:
                timeout_s = float(timeout_raw)
            except ValueError:
                logger.warning("Invalid WORKFLOW_TELEMETRY_TIMEOUT_SECONDS: %r (ignored)", timeout_raw)
        return cls(
            theme=_get_input(env, "theme"),
            metric_frequency_ms=parse_metric_frequency(_get_input(env, "metric_frequency")),
            stat_server_url=str(env.get("WORKFLOW_TELEMETRY_STAT_SERVER_URL") or DEFAULT_STAT_SERVER_URL),
            chartgen_url=str(env.get("WORKFLOW_TELEMETRY_CHARTGEN_URL") or DEFAULT_CHARTGEN_URL),
            remote_charts=_parse_bool(_get_input(env, "remote_charts")),
            request_timeout_s=timeout_s,
        )
