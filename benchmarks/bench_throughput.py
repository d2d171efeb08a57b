"""
Benchmark: request throughput (operations per second) against the reference server.
Measures sequential vs concurrent sets and gets as concurrency grows.
"""

import asyncio
import os
import shutil
import subprocess
import sys
import tempfile
import time

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from remotestore import RemoteStoreClient

TOKEN = "bench-token"


async def _measure(url: str, num_ops: int, concurrency: int) -> tuple[float, float]:
    """Returns (sets/sec, gets/sec) with `concurrency` requests in flight."""
    sem = asyncio.Semaphore(concurrency)
    async with RemoteStoreClient(TOKEN, url) as store:

        async def one_set(i: int) -> None:
            async with sem:
                await store.set(f"bench/{concurrency}/k{i}.json", {"i": i, "pad": "x" * 64})

        async def one_get(i: int) -> None:
            async with sem:
                await store.get(f"bench/{concurrency}/k{i}.json")

        t0 = time.perf_counter()
        await asyncio.gather(*(one_set(i) for i in range(num_ops)))
        t1 = time.perf_counter()
        await asyncio.gather(*(one_get(i) for i in range(num_ops)))
        t2 = time.perf_counter()
    return num_ops / (t1 - t0), num_ops / (t2 - t1)


def run_throughput_benchmark(port: int, data_dir: str, num_ops: int, concurrency: int) -> tuple[float, float]:
    """Start server, then measure set/get throughput."""
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    proc = subprocess.Popen(
        [sys.executable, "-m", "remotestore.server", "--port", str(port), "--data-dir", data_dir, "--token", TOKEN],
        cwd=root,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    time.sleep(0.8)
    try:
        return asyncio.run(_measure(f"http://127.0.0.1:{port}", num_ops, concurrency))
    finally:
        proc.terminate()
        try:
            proc.wait(timeout=3)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait(timeout=2)


def main():
    port_base = 29000
    num_ops = 1000
    print("Throughput (ops/sec) vs requests in flight")
    print("-" * 50)
    for i, concurrency in enumerate([1, 4, 16, 64]):
        data_dir = tempfile.mkdtemp(prefix="bench_")
        try:
            sps, gps = run_throughput_benchmark(port_base + i, data_dir, num_ops, concurrency)
            print(f"  concurrency {concurrency:3d} -> {sps:8.1f} sets/sec  {gps:8.1f} gets/sec")
        finally:
            shutil.rmtree(data_dir, ignore_errors=True)
    print("Done.")


if __name__ == "__main__":
    main()
