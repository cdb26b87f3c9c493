#!/usr/bin/env python3
"""Benchmark suite for pysqlstore: single puts vs bulk import, reads and scans."""

import argparse
import asyncio
import json
import os
import time
from pathlib import Path
from typing import Dict, List

import numpy as np
import plotly.graph_objects as go
from tqdm import tqdm

from pysqlstore import SQLStore

class Metrics:
    def __init__(self):
        self.write_latencies: List[float] = []
        self.read_latencies: List[float] = []
        self.scan_latencies: List[float] = []
        self.import_time: float = 0.0
        self.size_on_disk: int = 0

    def to_dict(self) -> Dict:
        return {
            "write_latencies": self._percentiles(self.write_latencies),
            "read_latencies": self._percentiles(self.read_latencies),
            "scan_latencies": self._percentiles(self.scan_latencies),
            "import_total_ms": self.import_time,
            "size_on_disk": self.size_on_disk,
        }

    @staticmethod
    def _percentiles(samples: List[float]) -> Dict:
        if not samples:
            return {}
        return {
            "p50": float(np.percentile(samples, 50)),
            "p95": float(np.percentile(samples, 95)),
            "p99": float(np.percentile(samples, 99)),
        }

    def plot_latencies(self, title: str, output_path: Path):
        fig = go.Figure()
        for name, samples in (
            ("Put Latency", self.write_latencies),
            ("Get Latency", self.read_latencies),
            ("Scan Latency", self.scan_latencies),
        ):
            fig.add_trace(go.Box(y=samples, name=name, boxpoints="outliers"))
        fig.update_layout(title=title, yaxis_title="Latency (ms)", boxmode="group")
        fig.write_html(output_path)

class BenchmarkSuite:
    def __init__(self, db_path: Path, num_entries: int, value_size: int, scan_limit: int):
        self.db_path = db_path
        self.num_entries = num_entries
        self.scan_limit = scan_limit
        self.metrics = Metrics()
        self._keys = [f"key_{i:08d}" for i in range(num_entries)]
        self._values = [os.urandom(value_size // 2).hex() for _ in range(num_entries)]

    async def run(self):
        async with SQLStore("bench", datadir=self.db_path) as db:
            kv = db.datastore("single")
            await kv.delete_db()
            for i in tqdm(range(self.num_entries), desc="Put"):
                start = time.perf_counter()
                await kv.put(self._keys[i], self._values[i])
                self.metrics.write_latencies.append((time.perf_counter() - start) * 1000)

            for i in tqdm(range(self.num_entries), desc="Get"):
                start = time.perf_counter()
                await kv.get(self._keys[i])
                self.metrics.read_latencies.append((time.perf_counter() - start) * 1000)

            for i in tqdm(range(0, self.num_entries, self.scan_limit), desc="Scan"):
                start = time.perf_counter()
                await kv.list(gt=self._keys[i], limit=self.scan_limit, values=True)
                self.metrics.scan_latencies.append((time.perf_counter() - start) * 1000)

            bulk = db.datastore("bulk")
            await bulk.delete_db()
            # bound variables per statement are capped by the engine
            start = time.perf_counter()
            for i in range(0, self.num_entries, 1000):
                await bulk.import_db(list(zip(self._keys[i:i + 1000], self._values[i:i + 1000])))
            self.metrics.import_time = (time.perf_counter() - start) * 1000

        self.metrics.size_on_disk = sum(f.stat().st_size for f in self.db_path.glob("*") if f.is_file())

async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--size", type=int, default=10000, help="Number of entries")
    parser.add_argument("--value-size", type=int, default=256, help="Size of values in bytes")
    parser.add_argument("--scan-limit", type=int, default=100, help="Rows per range scan")
    parser.add_argument("--output", type=Path, default=Path("benchmark_results"), help="Output directory")
    args = parser.parse_args()

    args.output.mkdir(parents=True, exist_ok=True)

    suite = BenchmarkSuite(args.output, args.size, args.value_size, args.scan_limit)
    await suite.run()

    suite.metrics.plot_latencies("pysqlstore Latency Distribution", args.output / "latencies.html")

    with open(args.output / "metrics.json", "w") as f:
        json.dump(suite.metrics.to_dict(), f, indent=2)

if __name__ == "__main__":
    asyncio.run(main())
