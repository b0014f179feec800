# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Control-plane client for the background stat sampler.

The sampler listens on a loopback port and exposes:
- POST /collect          flush the in-memory buffer (take a sample now)
- GET  /<metric-family>  raw samples accumulated since the sampler started

Errors are NOT swallowed here; callers decide whether a failed fetch fails the
whole report.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import requests

from .config import DEFAULT_STAT_SERVER_URL
from .exceptions import StatServerError
from .models import MetricFamily, RawSample

logger = logging.getLogger(__name__)


class StatServerClient:
    def __init__(
        self,
        base_url: str = DEFAULT_STAT_SERVER_URL,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = str(base_url or DEFAULT_STAT_SERVER_URL).rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}" if endpoint.startswith("/") else f"{self.base_url}/{endpoint}"

    def _request(self, method: str, endpoint: str) -> requests.Response:
        status_code: Optional[int] = None
        try:
            response = self._session.request(method, self._url(endpoint), timeout=self.timeout)
            status_code = int(response.status_code)
            response.raise_for_status()
            return response
        except requests.exceptions.RequestException as e:
            raise StatServerError(
                status_code=int(status_code or 0),
                endpoint=endpoint,
                message=f"Stat server request failed for {method} {endpoint}: {e}",
            ) from e

    def trigger_collect(self) -> Any:
        """Ask the sampler to flush now. Returns the (opaque) response body."""
        logger.debug("Triggering stat collect ...")
        response = self._request("POST", "/collect")
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Triggered stat collect: %s", json.dumps(body, default=str))
        return body

    def get_stats(self, family: MetricFamily) -> List[RawSample]:
        """Fetch the raw sample array for one metric family."""
        endpoint = f"/{family.value}"
        logger.debug("Getting %s stats ...", family.value)
        response = self._request("GET", endpoint)
        try:
            data = response.json()
        except ValueError as e:
            raise StatServerError(
                status_code=response.status_code,
                endpoint=endpoint,
                message=f"Stat server returned non-JSON body for {endpoint}: {e}",
            ) from e
        if not isinstance(data, list):
            raise StatServerError(
                status_code=response.status_code,
                endpoint=endpoint,
                message=f"Stat server returned {type(data).__name__} for {endpoint}, expected a list",
            )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Got %s stats: %s", family.value, json.dumps(data, default=str))
        return [s for s in data if isinstance(s, dict)]

    def get_cpu_stats(self) -> List[RawSample]:
        return self.get_stats(MetricFamily.CPU)

    def get_memory_stats(self) -> List[RawSample]:
        return self.get_stats(MetricFamily.MEMORY)

    def get_network_stats(self) -> List[RawSample]:
        return self.get_stats(MetricFamily.NETWORK)

    def get_disk_stats(self) -> List[RawSample]:
        return self.get_stats(MetricFamily.DISK)

    def get_disk_size_stats(self) -> List[RawSample]:
        return self.get_stats(MetricFamily.DISK_SIZE)
