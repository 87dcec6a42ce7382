"""
Tests for the benchmark harness, its CLI, and the plotting script.
"""

import json
import logging
import os

import pytest

from dual_apsi import Config
from dual_apsi import benchmark as benchmark_module
from dual_apsi.analysis import PerformanceAnalyzer
from dual_apsi.analysis import main as plot_main
from dual_apsi.benchmark import Benchmark, main, parse_args, worker_counts


def test_worker_counts():
    assert worker_counts(10, 2) == [2, 4, 8, 10]
    assert worker_counts(8, 2) == [2, 4, 8]
    assert worker_counts(1, 2) == [1]
    assert worker_counts(0, 2) == [1]


def test_measure_time():
    benchmark = Benchmark(Config(element_width=2))
    mean, std, result = benchmark.measure_time(sum, [1, 2, 3], num_runs=3)
    assert result == 6
    assert mean >= 0 and std >= 0


@pytest.fixture(scope="module")
def results_file(tmp_path_factory):
    benchmark = Benchmark(Config(element_width=2))
    benchmark.run_all([4, 8], num_runs=1, worker_start=2)
    benchmark.run_joux(1)
    assert benchmark.failures == []
    benchmark.print_summary()

    path = str(tmp_path_factory.mktemp("bench") / "results.json")
    benchmark.save_results(path)
    return path


def test_results_contents(results_file):
    with open(results_file) as f:
        data = json.load(f)
    assert data['failures'] == []
    assert data['config']['element_width'] == 2
    row = data['timing']['8']
    for key in ('insecure', 'naive', 'setup', 'signing_client', 'signing_server',
                'sequential', 'threaded', 'precompute', 'precompute_offline'):
        assert row[key] >= 0
    assert set(row['queue']) == {str(n) for n in worker_counts(row['client_size'], 2)}
    assert data['timing']['joux']['runs'] == 1


def test_plots(results_file, tmp_path):
    paths = PerformanceAnalyzer(results_file, str(tmp_path)).generate_all_plots()
    assert len(paths) == 3
    assert all(os.path.getsize(p) > 0 for p in paths)


def test_plot_cli(results_file, tmp_path):
    plot_main([results_file, '--out-dir', str(tmp_path)])
    assert os.path.exists(tmp_path / 'perf_strategies.png')


def test_parse_args_defaults():
    args = parse_args([])
    assert args.sizes == [10, 100, 1000]
    assert args.profile is None
    assert args.joux_runs == 100


def test_cli_with_profile(tmp_path):
    output = str(tmp_path / "out.json")
    profile = str(tmp_path / "cpu.prof")
    code = main(['--sizes', '3', '--element-width', '2', '--joux-runs', '0',
                 '--output', output, '--profile', profile])
    assert code == 0
    assert os.path.exists(output)
    assert os.path.getsize(profile) > 0


def test_gc_between_runs(monkeypatch):
    calls = []
    monkeypatch.setattr(benchmark_module.gc, 'collect', lambda *a: calls.append(1) or 0)

    Benchmark(Config(element_width=2)).benchmark_size(3, worker_start=2)
    assert calls == []

    Benchmark(Config(element_width=2), gc_between_runs=True).benchmark_size(3, worker_start=2)
    assert len(calls) >= 8


def test_debug_logs_intersections(caplog):
    caplog.set_level(logging.DEBUG, logger='dual_apsi.benchmark')
    Benchmark(Config(element_width=2), debug=True).benchmark_size(4, worker_start=2)
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Insecure intersection: [") for m in messages)
    assert any(m.startswith("Naive hashing intersection: [") for m in messages)


def test_no_intersection_logs_without_debug(caplog):
    caplog.set_level(logging.DEBUG, logger='dual_apsi.benchmark')
    Benchmark(Config(element_width=2)).benchmark_size(4, worker_start=2)
    assert not any("intersection:" in r.getMessage() for r in caplog.records)


def test_cli_gc_and_debug_flags(tmp_path):
    args = parse_args(['--gc', '--debug'])
    assert args.gc and args.debug
    assert not parse_args([]).gc
    output = str(tmp_path / "out.json")
    assert main(['--sizes', '3', '--element-width', '2', '--joux-runs', '0',
                 '--gc', '--debug', '--output', output]) == 0
    assert os.path.exists(output)
