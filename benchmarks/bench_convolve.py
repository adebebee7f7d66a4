import argparse
import statistics
import time
from typing import Callable, Iterable, Tuple

import numpy as np

import numstride as ns


def time_many(
    fn: Callable[[], None], repeats: int, warmup: int = 1
) -> Tuple[float, float, float]:
    for _ in range(warmup):
        fn()
    times = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        fn()
        t1 = time.perf_counter()
        times.append((t1 - t0) * 1000.0)  # ms
    return min(times), statistics.median(times), max(times)


def numpy_baseline_time(
    n: int, k: int, repeats: int, warmup: int
) -> Tuple[float, float, float]:
    x = np.random.randn(n)
    w = np.random.randn(k)

    def run() -> None:
        _ = np.convolve(x, w, mode="valid")[0]

    return time_many(run, repeats=repeats, warmup=warmup)


def convolve_time(
    method: str, shape: Tuple[int, ...], kernel: Tuple[int, ...], repeats: int, warmup: int
) -> Tuple[float, float, float]:
    x = ns.array(np.random.randn(*shape))
    w = ns.array(np.random.randn(*kernel))
    fn = getattr(ns, method)

    def run() -> None:
        _ = fn(x, w).numpy()

    return time_many(run, repeats=repeats, warmup=warmup)


def parse_sizes(s: str) -> Iterable[int]:
    """Parse space-separated edge lengths, e.g. ``"32 64 128"``."""
    for g in s.strip().split():
        size = int(g)
        if size <= 0:
            raise ValueError(f"Invalid size: {g}")
        yield size


def _cell(t: Tuple[float, float, float]) -> str:
    return f"{t[0]:7.2f}/{t[1]:7.2f}/{t[2]:7.2f}"


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark 'valid' convolution: direct vs FFT"
    )
    parser.add_argument(
        "--sizes",
        type=str,
        default="32 64 128",
        help='Space-separated signal edge lengths. Example: "64 128".',
    )
    parser.add_argument("--kernel", type=int, default=5, help="Kernel edge length")
    parser.add_argument(
        "--repeats", type=int, default=5, help="Number of timed runs per case"
    )
    parser.add_argument("--warmup", type=int, default=1, help="Warmup runs per case")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    args = parser.parse_args()

    np.random.seed(args.seed)
    k = args.kernel

    header = (
        f"{'Case':>18} | {'NumPy ms (min/med/max)':>25}"
        f" | {'convolve ms (min/med/max)':>25}"
        f" | {'fftconvolve ms (min/med/max)':>28} | {'speedup (med)':>13}"
    )
    print(header)
    print("-" * len(header))

    for n in parse_sizes(args.sizes):
        if n < k:
            print(f"{f'{n}x{n} * {k}x{k}':>18} | skipped: kernel larger than signal")
            continue
        for shape, kernel in [((n * n,), (k,)), ((n, n), (k, k))]:
            label = "x".join(map(str, shape)) + " * " + "x".join(map(str, kernel))
            if len(shape) == 1:
                baseline = _cell(
                    numpy_baseline_time(n * n, k, repeats=args.repeats, warmup=args.warmup)
                )
            else:
                baseline = "n/a"
            direct = convolve_time(
                "convolve", shape, kernel, repeats=args.repeats, warmup=args.warmup
            )
            spectral = convolve_time(
                "fftconvolve", shape, kernel, repeats=args.repeats, warmup=args.warmup
            )
            speedup = direct[1] / spectral[1] if spectral[1] > 0 else float("inf")
            print(
                f"{label:>18} | {baseline:>25} | {_cell(direct):>25}"
                f" | {_cell(spectral):>28} | {speedup:>12.2f}x"
            )


if __name__ == "__main__":
    main()
