#!/usr/bin/env python3
"""
Benchmark a running dirserve instance.
- Issues N concurrent GET requests and records per-request latency.
- Summarises latency (avg/median/p95/p99) over one or more trials.
- Optional CSV export of the per-trial summaries and a latency histogram.
"""

import argparse
import csv
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
import requests

logger = logging.getLogger(__name__)

FIELDNAMES = ["trial", "requests", "concurrency", "ok", "total_s", "avg_ms", "median_ms", "p95_ms", "p99_ms"]


def fetch(url: str, timeout: float = 5.0) -> tuple[int, float]:
    """GET `url`; returns (status, latency in ms). Status is -1 on a network error."""
    t0 = time.perf_counter()
    try:
        status = requests.get(url, timeout=timeout).status_code
    except requests.RequestException as e:
        logger.warning(f"Request to {url} failed: {e}")
        status = -1
    return status, (time.perf_counter() - t0) * 1000


def run_once(url: str, concurrency: int, num_requests: int) -> tuple[float, list[int], list[float]]:
    t0 = time.perf_counter()
    statuses = []
    latencies = []
    with ThreadPoolExecutor(max_workers=concurrency) as ex:
        futs = [ex.submit(fetch, url) for _ in range(num_requests)]
        for f in as_completed(futs):
            status, latency = f.result()
            statuses.append(status)
            latencies.append(latency)
    return time.perf_counter() - t0, statuses, latencies


def summarize(latencies: list[float]) -> dict[str, float]:
    if not latencies:
        return {"avg_ms": 0.0, "median_ms": 0.0, "p95_ms": 0.0, "p99_ms": 0.0}
    arr = np.asarray(latencies, dtype=float)
    return {
        "avg_ms": float(np.mean(arr)),
        "median_ms": float(np.median(arr)),
        "p95_ms": float(np.percentile(arr, 95)),
        "p99_ms": float(np.percentile(arr, 99)),
    }


def write_csv(path: str, rows: list[dict]) -> None:
    with open(path, "w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        for row in rows:
            w.writerow({k: f"{v:.4f}" if isinstance(v, float) else v for k, v in row.items()})


def plot_latencies(path: str, latencies: list[float], title: str = "Request latency") -> None:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    plt.figure(figsize=(8, 5))
    plt.hist(latencies, bins=30, alpha=0.7, color="skyblue", edgecolor="navy")
    stats = summarize(latencies)
    plt.axvline(stats["median_ms"], color="green", linestyle="--", label="Median")
    plt.axvline(stats["p95_ms"], color="red", linestyle="--", label="P95")
    plt.xlabel("Latency (ms)", fontsize=12)
    plt.ylabel("Requests", fontsize=12)
    plt.title(title, fontsize=14, fontweight="bold")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="dirserve-bench", description="Benchmark a dirserve server")
    parser.add_argument("url", help="URL to request, e.g. http://localhost:8000/")
    parser.add_argument("--concurrency", type=int, default=10)
    parser.add_argument("--requests", type=int, default=100)
    parser.add_argument("--trials", type=int, default=1, help="Repeat benchmark this many times")
    parser.add_argument("--csv", type=str, default="", help="Optional CSV output path")
    parser.add_argument("--plot", type=str, default="", help="Optional latency histogram output path (PNG)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    rows = []
    all_latencies = []
    for i in range(args.trials):
        dt, statuses, latencies = run_once(args.url, args.concurrency, args.requests)
        ok = statuses.count(200)
        stats = summarize(latencies)
        all_latencies += latencies
        rows.append({"trial": i + 1, "requests": args.requests, "concurrency": args.concurrency,
                     "ok": ok, "total_s": dt, **stats})
        print(
            f"Trial {i+1}/{args.trials}: {args.requests} req @ {args.concurrency} conc -> {dt:.2f}s; "
            f"200 OK: {ok}; avg {stats['avg_ms']:.1f}ms | p95 {stats['p95_ms']:.1f}ms"
        )

    overall = summarize(all_latencies)
    print(
        f"Summary: avg {overall['avg_ms']:.1f}ms | median {overall['median_ms']:.1f}ms | "
        f"p95 {overall['p95_ms']:.1f}ms | p99 {overall['p99_ms']:.1f}ms"
    )

    if args.csv:
        write_csv(args.csv, rows)
        print(f"CSV written: {args.csv}")
    if args.plot:
        plot_latencies(args.plot, all_latencies)
        print(f"Plot written: {args.plot}")


if __name__ == "__main__":
    main()
