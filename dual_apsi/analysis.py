"""
Performance Analysis and Visualization
======================================

Draws charts from a benchmark JSON file written by ``dual-apsi-bench``:
- interaction time per strategy against set size
- bounded strategies against worker count
- phase breakdown (setup, signing, interaction)

Usage:
    dual-apsi-plot benchmark_results.json --out-dir plots
"""

import argparse
import json
import os
from typing import Dict, List

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

STRATEGY_COLORS = {
    'sequential': '#2E86AB',
    'threaded': '#A23B72',
    'queue': '#F18F01',
    'atomic': '#C73E1D',
    'partition': '#6A994E',
    'precompute': '#3B1F2B',
}


class PerformanceAnalyzer:
    """Loads benchmark results and writes PNG charts."""

    def __init__(self, results_file='benchmark_results.json', out_dir='.'):
        with open(results_file, 'r') as f:
            data = json.load(f)
        self.timing_results = {k: v for k, v in data.get('timing', {}).items() if k != 'joux'}
        self.out_dir = out_dir
        os.makedirs(out_dir, exist_ok=True)

    def _sizes(self) -> List[int]:
        return sorted(int(k) for k in self.timing_results)

    def _save(self, fig, name) -> str:
        path = os.path.join(self.out_dir, name)
        fig.tight_layout()
        fig.savefig(path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return path

    def _best_bounded(self, row: Dict, name: str) -> float:
        timings = row.get(name) or {}
        return min(timings.values()) if timings else float('nan')

    def plot_strategies(self) -> str:
        """Interaction time (ms) for every strategy, log-log against set size."""
        sizes = self._sizes()
        fig, ax = plt.subplots(figsize=(10, 6))
        for name, color in STRATEGY_COLORS.items():
            if name in ('queue', 'atomic', 'partition'):
                times = [self._best_bounded(self.timing_results[str(n)], name) for n in sizes]
                label = f"{name} (best worker count)"
            else:
                times = [self.timing_results[str(n)][name] for n in sizes]
                label = name
            ax.plot(sizes, np.array(times) * 1000, 'o-', color=color, linewidth=2, label=label)

        ax.set_xscale('log')
        ax.set_yscale('log')
        ax.set_xlabel('Set Size', fontsize=12, fontweight='bold')
        ax.set_ylabel('Interaction Time (ms)', fontsize=12, fontweight='bold')
        ax.set_title('Interaction Time by Strategy', fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=10)
        return self._save(fig, 'perf_strategies.png')

    def plot_worker_scaling(self) -> str:
        """Bounded strategies against worker count for the largest set size."""
        size = self._sizes()[-1]
        row = self.timing_results[str(size)]
        fig, ax = plt.subplots(figsize=(10, 6))
        for name in ('queue', 'atomic', 'partition'):
            timings = row.get(name) or {}
            workers = sorted(int(k) for k in timings)
            times = [timings[str(w)] * 1000 for w in workers]
            ax.plot(workers, times, 'o-', color=STRATEGY_COLORS[name], linewidth=2, label=name)

        ax.set_xscale('log', base=2)
        ax.set_xlabel('Workers', fontsize=12, fontweight='bold')
        ax.set_ylabel('Interaction Time (ms)', fontsize=12, fontweight='bold')
        ax.set_title(f'Worker Scaling (n={size})', fontsize=14, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=11)
        return self._save(fig, 'perf_workers.png')

    def plot_phases(self) -> str:
        """Stacked bars: setup, client signing, server signing, sequential interaction."""
        sizes = self._sizes()
        phases = ['setup', 'signing_client', 'signing_server', 'sequential']
        x = np.arange(len(sizes))
        bottom = np.zeros(len(sizes))

        fig, ax = plt.subplots(figsize=(10, 6))
        for phase in phases:
            values = np.array([self.timing_results[str(n)][phase] for n in sizes]) * 1000
            ax.bar(x, values, bottom=bottom, label=phase)
            bottom += values

        ax.set_xticks(x)
        ax.set_xticklabels([str(n) for n in sizes])
        ax.set_xlabel('Set Size', fontsize=12, fontweight='bold')
        ax.set_ylabel('Time (ms)', fontsize=12, fontweight='bold')
        ax.set_title('Protocol Phase Breakdown', fontsize=14, fontweight='bold')
        ax.legend(fontsize=11)
        return self._save(fig, 'perf_phases.png')

    def generate_all_plots(self) -> List[str]:
        if not self.timing_results:
            print("No timing data to plot")
            return []
        return [self.plot_strategies(), self.plot_worker_scaling(), self.plot_phases()]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Plot dual-apsi benchmark results.")
    parser.add_argument('results', nargs='?', default='benchmark_results.json')
    parser.add_argument('--out-dir', default='.')
    args = parser.parse_args(argv)

    for path in PerformanceAnalyzer(args.results, args.out_dir).generate_all_plots():
        print(f"Saved: {path}")


if __name__ == '__main__':
    main()
