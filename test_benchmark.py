import csv

import pytest

from dirserve.benchmark import plot_latencies, run_once, summarize, write_csv


def test_summarize():
    stats = summarize([float(i) for i in range(1, 101)])
    assert stats["avg_ms"] == pytest.approx(50.5)
    assert stats["median_ms"] == pytest.approx(50.5)
    assert stats["p95_ms"] == pytest.approx(95.05)
    assert stats["p99_ms"] == pytest.approx(99.01)


def test_summarize_empty():
    assert summarize([]) == {"avg_ms": 0.0, "median_ms": 0.0, "p95_ms": 0.0, "p99_ms": 0.0}


def test_run_once_against_server(running_server):
    elapsed, statuses, latencies = run_once(f"{running_server}/index.html", concurrency=4, num_requests=12)
    assert statuses == [200] * 12
    assert len(latencies) == 12
    assert elapsed > 0


def test_csv_and_plot(tmp_path):
    rows = [{"trial": 1, "requests": 3, "concurrency": 1, "ok": 3, "total_s": 0.5,
             "avg_ms": 1.0, "median_ms": 1.0, "p95_ms": 2.0, "p99_ms": 2.0}]
    write_csv(str(tmp_path / "out.csv"), rows)
    with open(tmp_path / "out.csv", newline="") as f:
        written = list(csv.DictReader(f))
    assert written[0]["total_s"] == "0.5000"
    assert written[0]["ok"] == "3"

    plot_latencies(str(tmp_path / "latency.png"), [1.0, 2.0, 2.5, 3.0, 10.0])
    assert (tmp_path / "latency.png").stat().st_size > 0
