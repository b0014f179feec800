# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Report rendering (Markdown for the job summary).

Two kinds of sections:
- inline Mermaid `xychart` blocks (always attempted, purely local string building)
- image references for charts rendered by the remote chart service (see `chartgen.py`)

Sections are joined with blank lines; no sections means an empty string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .models import CompositeChart, GraphResponse, Theme

logger = logging.getLogger(__name__)

BLACK = "#000000"
WHITE = "#FFFFFF"

_AXIS_COLORS = {
    Theme.LIGHT: BLACK,
    Theme.DARK: WHITE,
}


@dataclass(frozen=True)
class ChartStyle:
    section_title: str
    chart_title: str
    palette: str


CPU_STYLE = ChartStyle(section_title="CPU Metrics", chart_title="CPU Load (%)", palette="#5ABFBF, #F86886")
MEMORY_STYLE = ChartStyle(section_title="Memory Metrics", chart_title="Memory Usage (MB)", palette="#F5F5F5, #F86886")


def resolve_theme(value: Optional[str]) -> Theme:
    """Map a user-supplied theme to a Theme.

    Only the exact strings "light" and "dark" are recognized; anything else
    (including other casings or surrounding whitespace) warns and falls back to dark.
    """
    try:
        return Theme(str(value or ""))
    except ValueError:
        logger.warning("Invalid theme: %s", value or "")
        return Theme.DARK


def axis_color(theme: Theme) -> str:
    return _AXIS_COLORS.get(theme, WHITE)


def _fmt(value: float) -> str:
    v = round(float(value), 2)
    return str(int(v)) if v.is_integer() else repr(v)


def _values(values: Sequence[float]) -> str:
    return ", ".join(_fmt(v) for v in values)


def render_xychart(chart: CompositeChart, style: ChartStyle, theme: Theme) -> str:
    """One `### title` line plus a fenced Mermaid bar chart (total first, then component)."""
    color = axis_color(theme)
    lines = [
        f"### {style.section_title}",
        "```mermaid",
        "---",
        "config:",
        "    xyChart:",
        "        xAxis:",
        "            showLabel: false",
        "    themeVariables:",
        "        xyChart:",
        f"            titleColor: '{color}'",
        f"            xAxisLineColor: '{color}'",
        f"            yAxisLineColor: '{color}'",
        f"            yAxisLabelColor: '{color}'",
        f"            yAxisTickColor: '{color}'",
        f"            plotColorPalette: '{style.palette}'",
        "---",
        "xychart",
        f'    title "{style.chart_title}"',
        f"    x-axis [{', '.join(str(x) for x in chart.x)}]",
        f"    bar [{_values(chart.total)}]",
        f"    bar [{_values(chart.component)}]",
        "```",
    ]
    return "\n".join(lines)


def render_image_section(title: str, graph: GraphResponse) -> str:
    return f"### {title}\n![{title}]({graph.url})"


def join_sections(sections: Sequence[Optional[str]]) -> str:
    parts: List[str] = [s for s in sections if s]
    return "\n\n".join(parts)


def render_report(
    *,
    cpu: Optional[CompositeChart],
    memory: Optional[CompositeChart],
    theme: Theme,
    extra_sections: Sequence[str] = (),
) -> str:
    """Assemble the report fragment; charts that are None are left out entirely."""
    sections: List[Optional[str]] = []
    if cpu is not None:
        sections.append(render_xychart(cpu, CPU_STYLE, theme))
    if memory is not None:
        sections.append(render_xychart(memory, MEMORY_STYLE, theme))
    sections.extend(extra_sections)
    return join_sections(sections)
