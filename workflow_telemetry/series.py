# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Turn raw control-plane samples into chart-ready series.

- `normalize()` splits one metric family into its two sanitized sub-series.
  Missing, null, non-numeric, non-finite and negative values become 0 (the
  first sampler tick usually has no delta yet). Timestamps pass through
  unchanged, no resampling.
- `composite()` sums two aligned sub-series into a "total vs. component" chart.
  If either side is empty, or the lengths disagree, there is no chart at all.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .models import (
    TIME_FIELD,
    CompositeChart,
    MetricFamily,
    ProcessedPoint,
    ProcessedSeries,
    RawSample,
    SeriesPair,
)

logger = logging.getLogger(__name__)


def _clamp(value: Any) -> float:
    # bool is an int subclass; a stray true/false is not a measurement.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    # inf/nan cannot be drawn; treat them like a missing value.
    if not math.isfinite(value):
        return 0
    return value if value > 0 else 0


def _timestamp(sample: RawSample) -> int:
    t = sample.get(TIME_FIELD)
    if isinstance(t, bool) or not isinstance(t, (int, float)):
        return 0
    return int(t)


def normalize_fields(
    samples: Iterable[RawSample], first_field: str, second_field: str
) -> Tuple[ProcessedSeries, ProcessedSeries]:
    first: ProcessedSeries = []
    second: ProcessedSeries = []
    for sample in samples:
        x = _timestamp(sample)
        first.append(ProcessedPoint(x=x, y=_clamp(sample.get(first_field))))
        second.append(ProcessedPoint(x=x, y=_clamp(sample.get(second_field))))
    return first, second


def normalize(samples: Iterable[RawSample], family: MetricFamily) -> SeriesPair:
    first_field, second_field = family.fields
    first, second = normalize_fields(samples, first_field, second_field)
    return SeriesPair(family=family, first=first, second=second)


def sum_series(a: Sequence[ProcessedPoint], b: Sequence[ProcessedPoint]) -> Optional[ProcessedSeries]:
    """Pointwise a + b (x taken from `a`), or None when the inputs can't be summed."""
    if not a or not b:
        return None
    if len(a) != len(b):
        logger.warning("Series length mismatch (%d vs %d); skipping aggregate", len(a), len(b))
        return None
    return [ProcessedPoint(x=pa.x, y=pa.y + pb.y) for pa, pb in zip(a, b)]


def composite(component: Sequence[ProcessedPoint], other: Sequence[ProcessedPoint]) -> Optional[CompositeChart]:
    """Total (component + other) alongside the component itself."""
    total = sum_series(component, other)
    if total is None:
        return None
    return CompositeChart(
        x=[p.x for p in component],
        total=[p.y for p in total],
        component=[p.y for p in component],
    )


def cpu_chart(pair: SeriesPair) -> Optional[CompositeChart]:
    """Total CPU load vs. user share."""
    return composite(pair.first, pair.second)


def memory_chart(pair: SeriesPair) -> Optional[CompositeChart]:
    """Total memory (active + available) vs. active share."""
    return composite(pair.first, pair.second)


def to_chart_points(series: Sequence[ProcessedPoint]) -> List[dict]:
    """Remote chart service point shape."""
    return [{"x": p.x, "y": p.y} for p in series]
