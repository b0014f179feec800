"""
Workflow telemetry: resource usage charts for CI job summaries.

This package contains:
- a detached background sampler with a loopback HTTP control plane (`sampler`)
- the control-plane client (`client`)
- series normalization + "total vs. component" aggregation (`series`)
- Markdown/Mermaid rendering and the optional remote chart client (`render`, `chartgen`)
- the start/finish/report lifecycle used by the CI host (`collector`)

Public API is re-exported from:
- `workflow_telemetry.collector` for the lifecycle
- `workflow_telemetry.config` for configuration
"""

from .collector import (  # noqa: F401
    StatCollector,
    finish,
    report,
    start,
)
from .config import TelemetryConfig  # noqa: F401
from .exceptions import (  # noqa: F401
    ChartGenError,
    StatServerError,
    TelemetryError,
)
from .models import MetricFamily, Theme  # noqa: F401

__all__ = [
    "ChartGenError",
    "MetricFamily",
    "StatCollector",
    "StatServerError",
    "TelemetryConfig",
    "TelemetryError",
    "Theme",
    "finish",
    "report",
    "start",
]
