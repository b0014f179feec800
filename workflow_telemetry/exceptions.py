# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Telemetry error types.

These are intentionally lightweight so the lifecycle layer can catch them at its
boundary without importing the HTTP clients.
"""

from __future__ import annotations


class TelemetryError(Exception):
    pass


class StatServerError(TelemetryError):
    """Control-plane request failed (unreachable, non-2xx, or malformed body)."""

    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")


class ChartGenError(TelemetryError):
    def __init__(self, *, status_code: int, endpoint: str, message: str):
        super().__init__(message)
        self.status_code = int(status_code)
        self.endpoint = str(endpoint or "")
