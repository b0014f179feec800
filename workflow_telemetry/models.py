# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared enums/types used by the control-plane client, the series helpers and the renderers.

This module MUST NOT import any other `workflow_telemetry` module to avoid cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

# Raw sample as decoded from the control plane, e.g. {"time": 1700000000000, "userLoad": 12.5}
RawSample = Dict[str, Any]


class MetricFamily(str, Enum):
    """One category of resource measurement. The value is the control-plane path."""

    CPU = "cpu"
    MEMORY = "memory"
    NETWORK = "network"
    DISK = "disk"
    DISK_SIZE = "disk_size"

    @property
    def fields(self) -> Tuple[str, str]:
        """The two raw sub-metric keys every sample of this family carries."""
        return _FAMILY_FIELDS[self]


_FAMILY_FIELDS: Dict[MetricFamily, Tuple[str, str]] = {
    MetricFamily.CPU: ("userLoad", "systemLoad"),
    MetricFamily.MEMORY: ("activeMemoryMb", "availableMemoryMb"),
    MetricFamily.NETWORK: ("rxMb", "txMb"),
    MetricFamily.DISK: ("rxMb", "wxMb"),
    MetricFamily.DISK_SIZE: ("availableSizeMb", "usedSizeMb"),
}

TIME_FIELD = "time"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class CollectorState(str, Enum):
    """Lifecycle of a stat collector for a single job."""

    NOT_STARTED = "not_started"
    STARTED = "started"
    FINISHED = "finished"
    REPORTED = "reported"


@dataclass(frozen=True)
class ProcessedPoint:
    x: int
    y: float


# Ordered, sanitized series (every y >= 0)
ProcessedSeries = List[ProcessedPoint]


@dataclass(frozen=True)
class SeriesPair:
    """The two index-aligned sub-series produced for one metric family."""

    family: MetricFamily
    first: ProcessedSeries
    second: ProcessedSeries


@dataclass(frozen=True)
class CompositeChart:
    """Chart-ready "total vs. component" aggregate."""

    x: List[int]
    total: List[float]
    component: List[float]


@dataclass
class LineSpec:
    """One line (or stacked area) handed to the remote chart service."""

    label: str
    color: str
    points: List[Dict[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "color": self.color, "points": list(self.points)}


@dataclass(frozen=True)
class GraphResponse:
    """Remote chart service reply."""

    id: Optional[str]
    url: str
