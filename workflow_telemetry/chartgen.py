# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Client for the remote chart-image service.

Charts from here are an optional enhancement: every public method returns None
on failure (after logging the error and the payload) instead of raising.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import DEFAULT_CHARTGEN_URL
from .exceptions import ChartGenError
from .models import GraphResponse, LineSpec

logger = logging.getLogger(__name__)

CHART_WIDTH = 1000
CHART_HEIGHT = 500


def _options(y_label: str) -> Dict[str, Any]:
    return {
        "width": CHART_WIDTH,
        "height": CHART_HEIGHT,
        "xAxis": {"label": "Time"},
        "yAxis": {"label": y_label},
        "timeTicks": {"unit": "auto"},
    }


def line_graph_payload(label: str, line: LineSpec) -> Dict[str, Any]:
    return {"options": _options(label), "lines": [line.to_dict()]}


def stacked_area_graph_payload(label: str, areas: Sequence[LineSpec]) -> Dict[str, Any]:
    return {"options": _options(label), "areas": [a.to_dict() for a in areas]}


class ChartGenClient:
    def __init__(
        self,
        base_url: str = DEFAULT_CHARTGEN_URL,
        *,
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = str(base_url or DEFAULT_CHARTGEN_URL).rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _put(self, endpoint: str, payload: Dict[str, Any]) -> GraphResponse:
        status_code: Optional[int] = None
        try:
            response = self._session.put(f"{self.base_url}{endpoint}", json=payload, timeout=self.timeout)
            status_code = int(response.status_code)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ChartGenError(
                status_code=int(status_code or 0),
                endpoint=endpoint,
                message=f"Chart service request failed for {endpoint}: {e}",
            ) from e
        if not isinstance(data, dict) or not data.get("url"):
            raise ChartGenError(
                status_code=int(status_code or 0),
                endpoint=endpoint,
                message=f"Chart service returned no url for {endpoint}",
            )
        return GraphResponse(id=(str(data["id"]) if data.get("id") is not None else None), url=str(data["url"]))

    def _render(self, name: str, endpoint: str, payload: Dict[str, Any]) -> Optional[GraphResponse]:
        try:
            return self._put(endpoint, payload)
        except ChartGenError as e:
            logger.error("%s", e)
            logger.error("%s %s", name, json.dumps(payload, default=str))
            return None

    def line_graph(self, label: str, line: LineSpec) -> Optional[GraphResponse]:
        return self._render("line_graph", "/line/time", line_graph_payload(label, line))

    def stacked_area_graph(self, label: str, areas: List[LineSpec]) -> Optional[GraphResponse]:
        return self._render("stacked_area_graph", "/stacked-area/time", stacked_area_graph_payload(label, areas))
