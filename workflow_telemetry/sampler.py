#!/usr/bin/env python3
# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""
Background stat sampler that periodically samples:
- System CPU load (user / system %)
- Memory (active / available MB)
- Network IO and disk IO (MB transferred since the previous sample)
- Disk occupancy of the root filesystem (available / used MB)

Samples are kept in memory and served on a loopback HTTP control plane:
  GET  /cpu, /memory, /network, /disk, /disk_size
  POST /collect   take a sample right now

Launched detached by `StatCollector.start()`; lives until the job's process tree ends.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import threading
import time
from collections import deque
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

import psutil

from .config import DEFAULT_STAT_SERVER_PORT, STAT_FREQ_ENV
from .models import TIME_FIELD, MetricFamily, RawSample

LOGGER = logging.getLogger("workflow_telemetry.sampler")

DEFAULT_INTERVAL_MS = 5000
# Per-family cap: a 6h job sampled every second stays well under this.
DEFAULT_MAX_SAMPLES = 100_000
_MB = 1024 * 1024


def _now_ms() -> int:
    return int(time.time() * 1000)


def interval_from_env(environ: Optional[Dict[str, str]] = None) -> float:
    """Sampling interval in seconds; falls back to the default on unset/garbage."""
    env = os.environ if environ is None else environ
    raw = str(env.get(STAT_FREQ_ENV, "") or "").strip()
    if not raw:
        return DEFAULT_INTERVAL_MS / 1000.0
    try:
        ms = int(raw)
    except ValueError:
        LOGGER.warning("Invalid %s=%r; using %d ms", STAT_FREQ_ENV, raw, DEFAULT_INTERVAL_MS)
        return DEFAULT_INTERVAL_MS / 1000.0
    if ms <= 0:
        LOGGER.warning("Invalid %s=%r; using %d ms", STAT_FREQ_ENV, raw, DEFAULT_INTERVAL_MS)
        return DEFAULT_INTERVAL_MS / 1000.0
    return ms / 1000.0


def _get_disk_io() -> Optional[Any]:
    try:
        return psutil.disk_io_counters()
    except Exception:
        return None


def _delta_mb(cur: Optional[int], prev: Optional[int]) -> Optional[float]:
    if cur is None or prev is None:
        return None
    return (cur - prev) / _MB


class StatStore:
    """Thread-safe per-family sample buffers.

    Each buffer holds at most `max_samples` entries; once full, the oldest
    sample is dropped for every new one.
    """

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES):
        if max_samples <= 0:
            raise ValueError(f"max_samples must be positive, got {max_samples}")
        self.max_samples = max_samples
        self._lock = threading.Lock()
        self._samples: Dict[MetricFamily, Deque[RawSample]] = {
            f: deque(maxlen=max_samples) for f in MetricFamily
        }

    def append(self, samples: Dict[MetricFamily, RawSample]) -> None:
        with self._lock:
            for family, sample in samples.items():
                self._samples[family].append(sample)

    def snapshot(self, family: MetricFamily) -> List[RawSample]:
        with self._lock:
            return list(self._samples[family])

    def count(self) -> int:
        with self._lock:
            return len(self._samples[MetricFamily.CPU])


class Sampler:
    def __init__(self, *, store: StatStore, disk_path: str = "/"):
        self.store = store
        self.disk_path = disk_path
        self._lock = threading.Lock()
        self._prev_net: Optional[Tuple[int, int]] = None
        self._prev_disk: Optional[Tuple[int, int]] = None

        # Prime cpu_times_percent so the next call has meaning.
        try:
            psutil.cpu_times_percent(None)
        except Exception:
            pass

    def sample(self) -> Dict[MetricFamily, RawSample]:
        """Take one sample of every family and append it to the store."""
        with self._lock:
            ts = _now_ms()
            out: Dict[MetricFamily, RawSample] = {}

            cpu: RawSample = {TIME_FIELD: ts}
            try:
                times = psutil.cpu_times_percent(None)
                cpu["userLoad"] = float(times.user)
                cpu["systemLoad"] = float(times.system)
            except Exception as e:
                LOGGER.debug("cpu sample failed: %s", e)
            out[MetricFamily.CPU] = cpu

            memory: RawSample = {TIME_FIELD: ts}
            try:
                mem = psutil.virtual_memory()
                # `active` is not reported on every platform.
                memory["activeMemoryMb"] = float(getattr(mem, "active", mem.used)) / _MB
                memory["availableMemoryMb"] = float(mem.available) / _MB
            except Exception as e:
                LOGGER.debug("memory sample failed: %s", e)
            out[MetricFamily.MEMORY] = memory

            network: RawSample = {TIME_FIELD: ts}
            try:
                net = psutil.net_io_counters()
                cur_net = (int(net.bytes_recv), int(net.bytes_sent))
            except Exception:
                cur_net = None
            if cur_net is not None and self._prev_net is not None:
                network["rxMb"] = _delta_mb(cur_net[0], self._prev_net[0])
                network["txMb"] = _delta_mb(cur_net[1], self._prev_net[1])
            self._prev_net = cur_net
            out[MetricFamily.NETWORK] = network

            disk: RawSample = {TIME_FIELD: ts}
            disk_io = _get_disk_io()
            cur_disk = (int(disk_io.read_bytes), int(disk_io.write_bytes)) if disk_io is not None else None
            if cur_disk is not None and self._prev_disk is not None:
                disk["rxMb"] = _delta_mb(cur_disk[0], self._prev_disk[0])
                disk["wxMb"] = _delta_mb(cur_disk[1], self._prev_disk[1])
            self._prev_disk = cur_disk
            out[MetricFamily.DISK] = disk

            disk_size: RawSample = {TIME_FIELD: ts}
            try:
                usage = psutil.disk_usage(self.disk_path)
                disk_size["availableSizeMb"] = float(usage.free) / _MB
                disk_size["usedSizeMb"] = float(usage.used) / _MB
            except Exception as e:
                LOGGER.debug("disk size sample failed: %s", e)
            out[MetricFamily.DISK_SIZE] = disk_size

            self.store.append(out)

        LOGGER.debug(
            "sample: cpu=%.1f/%.1f%% mem=%.1f MB net=%s disk=%s",
            cpu.get("userLoad") or 0.0,
            cpu.get("systemLoad") or 0.0,
            memory.get("activeMemoryMb") or 0.0,
            network.get("rxMb"),
            disk.get("rxMb"),
        )
        return out


class StatRequestHandler(BaseHTTPRequestHandler):
    sampler: Sampler

    def _send_json(self, status: int, payload: Any) -> None:
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802
        name = self.path.split("?", 1)[0].strip("/")
        try:
            family = MetricFamily(name)
        except ValueError:
            self._send_json(404, {"error": f"unknown metric family: {name}"})
            return
        self._send_json(200, self.sampler.store.snapshot(family))

    def do_POST(self) -> None:  # noqa: N802
        if self.path.split("?", 1)[0].rstrip("/") != "/collect":
            self._send_json(404, {"error": f"unknown endpoint: {self.path}"})
            return
        self.sampler.sample()
        self._send_json(200, {"collected": True, "samples": self.sampler.store.count()})

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        LOGGER.debug("%s - %s", self.address_string(), format % args)


def make_server(host: str, port: int, sampler: Sampler) -> ThreadingHTTPServer:
    class Handler(StatRequestHandler):
        pass

    Handler.sampler = sampler
    return ThreadingHTTPServer((host, port), Handler)


class SampleLoop:
    def __init__(self, sampler: Sampler, interval_s: float):
        self.sampler = sampler
        self.interval_s = interval_s
        self._stop = threading.Event()

    def request_stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        while not self._stop.wait(self.interval_s):
            try:
                self.sampler.sample()
            except Exception as e:
                LOGGER.exception("Failed to take sample: %s", e)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Background stat sampler with a loopback HTTP control plane")
    p.add_argument("--host", default="127.0.0.1", help="Bind address (loopback only)")
    p.add_argument("--port", type=int, default=DEFAULT_STAT_SERVER_PORT, help="Control-plane port")
    p.add_argument("--disk-path", default="/", help="Filesystem to report occupancy for")
    p.add_argument(
        "--max-samples",
        type=int,
        default=DEFAULT_MAX_SAMPLES,
        help="Samples kept per metric family; the oldest are dropped beyond this",
    )
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="[%(levelname)s] %(message)s")

    interval_s = interval_from_env()
    sampler = Sampler(store=StatStore(max_samples=args.max_samples), disk_path=args.disk_path)
    server = make_server(args.host, int(args.port), sampler)
    loop = SampleLoop(sampler, interval_s)

    def _handle_sig(_signum, _frame) -> None:
        LOGGER.warning("signal received; stopping...")
        loop.request_stop()
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGINT, _handle_sig)
    signal.signal(signal.SIGTERM, _handle_sig)

    thread = threading.Thread(target=loop.run, daemon=True)
    thread.start()
    LOGGER.info("Stat sampler on %s:%d, interval=%.3fs", args.host, int(args.port), interval_s)
    try:
        server.serve_forever()
    finally:
        loop.request_stop()
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
