"""
Performance Benchmark
=====================

Times every phase of the protocol and every work-distribution strategy:
- plaintext and naive-hashing baselines (also the correctness oracle)
- setup, client signing, server signing
- each Interaction strategy; bounded strategies across worker counts
- the Joux key exchange, averaged over many runs

Every strategy's output is checked against the plaintext intersection.

Usage:
    dual-apsi-bench --sizes 10 100 1000 --output benchmark_results.json
"""

import argparse
import cProfile
import gc
import json
import logging
import os
import sys
import time
from typing import Dict, List, Tuple

import numpy as np

from .config import Config
from .elements import generate_random_set, same_elements, sort_elements
from .joux import benchmark_joux
from .oracle import insecure_intersection, naive_hashing_intersection
from .scheme import Party, setup

logger = logging.getLogger(__name__)

DEFAULT_SIZES = [10, 100, 1000]


def worker_counts(size: int, start: int) -> List[int]:
    """Powers of two from ``start`` while below ``size``, then ``size`` itself."""
    counts = []
    n = start
    while n < size:
        counts.append(n)
        n *= 2
    counts.append(max(size, 1))
    return counts


class Benchmark:
    """Benchmark runner; results accumulate in ``self.results``."""

    def __init__(self, config: Config = None, gc_between_runs: bool = False, debug: bool = False):
        self.config = config or Config()
        self.gc_between_runs = gc_between_runs
        self.debug = debug
        self.results = {}
        self.failures = []

    def measure_time(self, func, *args, num_runs=1, **kwargs) -> Tuple[float, float, object]:
        """
        Average and standard deviation of ``func``'s wall time in seconds.

        Returns
        -------
        (mean, std, last result)
        """
        times = []
        result = None
        for _ in range(num_runs):
            start = time.perf_counter()
            result = func(*args, **kwargs)
            times.append(time.perf_counter() - start)
        return float(np.mean(times)), float(np.std(times)), result

    def _collect(self):
        """Force a collection before a timed phase so earlier garbage is not charged to it."""
        if self.gc_between_runs:
            gc.collect()

    def _show(self, label, elements):
        if self.debug:
            logger.debug("%s: %s", label, [e.hex() for e in sort_elements(elements)])

    def _check(self, size, label, expected, result):
        if not same_elements(expected, result):
            logger.error("size=%d %s: intersection differs from the oracle", size, label)
            self.failures.append((size, label))
            return False
        return True

    def benchmark_size(self, size: int, num_runs: int = 1, worker_start: int = 2) -> Dict:
        """Run every phase for one client/server set size."""
        width = self.config.element_width
        client_set = generate_random_set(size, width)
        server_set = generate_random_set(size, width)
        row = {'client_size': len(client_set), 'server_size': len(server_set)}

        self._collect()
        insecure_time, expected = insecure_intersection(client_set, server_set)
        self._show("Insecure intersection", expected)
        self._collect()
        naive_time, naive = naive_hashing_intersection(client_set, server_set)
        self._show("Naive hashing intersection", naive)
        self._check(size, 'naive', expected, naive)
        row['insecure'] = insecure_time
        row['naive'] = naive_time

        self._collect()
        scheme = setup(config=self.config)
        row['setup'] = scheme.setup_time

        self._collect()
        client_signing, client_signatures = scheme.sign_set(client_set, Party.CLIENT)
        self._collect()
        server_signing, server_signatures = scheme.sign_set(server_set, Party.SERVER)
        row['signing_client'] = client_signing
        row['signing_server'] = server_signing

        args = (client_set, client_signatures, server_set, server_signatures)
        for name, method in (('sequential', scheme.interaction),
                             ('threaded', scheme.threaded_interaction)):
            self._collect()
            mean, std, result = self.measure_time(method, *args, num_runs=num_runs)
            self._check(size, name, expected, result)
            self._show(f"{name} intersection", result)
            row[name] = mean
            row[name + '_std'] = std

        precomputed = scheme.precompute_server(server_signatures)
        row['precompute_offline'] = precomputed.elapsed
        elapsed = []
        for _ in range(num_runs):
            self._collect()
            result = scheme.precompute_interaction(*args, precomputed=precomputed)
            self._check(size, 'precompute', expected, result)
            elapsed.append(result.elapsed)
        row['precompute'] = float(np.mean(elapsed))

        for name, method in (('queue', scheme.queue_interaction),
                             ('atomic', scheme.atomic_interaction),
                             ('partition', scheme.partition_interaction)):
            row[name] = {}
            for num_workers in worker_counts(len(client_set), worker_start):
                self._collect()
                result = method(*args, num_workers=num_workers)
                self._check(size, f"{name}/{num_workers}", expected, result)
                row[name][num_workers] = result.elapsed

        return row

    def run_all(self, sizes: List[int] = None, num_runs: int = 1, worker_start: int = 2):
        for size in sizes or DEFAULT_SIZES:
            print(f"Running benchmark for {size} elements...", flush=True)
            self.results[size] = self.benchmark_size(size, num_runs, worker_start)
        return self.results

    def run_joux(self, runs: int = 100):
        print(f"Running Joux key exchange with {runs} runs...", flush=True)
        self.results['joux'] = benchmark_joux(runs, self.config.r_bits, self.config.q_bits)
        return self.results['joux']

    def save_results(self, filename='benchmark_results.json'):
        os.makedirs(os.path.dirname(filename) or '.', exist_ok=True)
        data = {
            'config': {
                'r_bits': self.config.r_bits,
                'q_bits': self.config.q_bits,
                'element_width': self.config.element_width,
            },
            'timing': {str(k): v for k, v in self.results.items()},
            'failures': [f"{size}:{label}" for size, label in self.failures],
        }
        with open(filename, 'w') as f:
            json.dump(data, f, indent=2, default=str)
        print(f"\nResults saved to {filename}")

    def print_summary(self):
        columns = ['insecure', 'naive', 'setup', 'signing_client', 'signing_server',
                   'sequential', 'threaded', 'precompute']
        header = ['size'] + columns
        print("\n" + " | ".join(f"{h:>14}" for h in header))
        print("-" * (17 * len(header)))
        for size, row in self.results.items():
            if size == 'joux':
                continue
            cells = [f"{size:>14}"] + [f"{row[c] * 1000:>11.2f} ms" for c in columns]
            print(" | ".join(cells))

        for size, row in self.results.items():
            if size == 'joux':
                continue
            for name in ('queue', 'atomic', 'partition'):
                timings = ", ".join(f"{n}w: {t * 1000:.2f} ms" for n, t in row[name].items())
                print(f"  n={size} {name}: {timings}")

        if 'joux' in self.results:
            joux = self.results['joux']
            print(f"\nJoux ({joux['runs']} runs): setup {joux['setup_time'] * 1000:.2f} ms, "
                  f"online {joux['online_time'] * 1000:.2f} ms")

        if self.failures:
            print(f"\nINCORRECT RESULTS: {self.failures}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Benchmark the dual authorized PSI protocol.")
    parser.add_argument('--sizes', type=int, nargs='+', default=DEFAULT_SIZES,
                        help="Client and server set sizes")
    parser.add_argument('--runs', type=int, default=1, help="Repetitions per strategy")
    parser.add_argument('--workers', type=int, default=2,
                        help="Smallest worker count for the bounded strategies")
    parser.add_argument('--element-width', type=int, default=None, help="Element width in bytes")
    parser.add_argument('--output', default='benchmark_results.json', help="JSON output file")
    parser.add_argument('--profile', metavar='FILE', default=None, help="Write a cProfile dump")
    parser.add_argument('--joux-runs', type=int, default=100, help="Joux runs (0 to skip)")
    parser.add_argument('--gc', action='store_true',
                        help="Force garbage collection before every timed phase")
    parser.add_argument('--debug', action='store_true',
                        help="Log the oracle and protocol intersections")
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, args.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    benchmark = Benchmark(Config(element_width=args.element_width),
                          gc_between_runs=args.gc, debug=args.debug)

    profiler = None
    if args.profile:
        print("Running with profiling mode.")
        profiler = cProfile.Profile()
        profiler.enable()

    try:
        print("Testing Dual-APSI...")
        benchmark.run_all(args.sizes, args.runs, args.workers)
        if args.joux_runs > 0:
            benchmark.run_joux(args.joux_runs)
    finally:
        if profiler is not None:
            profiler.disable()
            profiler.dump_stats(args.profile)

    benchmark.print_summary()
    benchmark.save_results(args.output)
    return 1 if benchmark.failures else 0


if __name__ == '__main__':
    sys.exit(main())
