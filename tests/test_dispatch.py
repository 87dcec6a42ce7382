"""
Tests for the work-distribution policies, independent of any pairing work.

Each policy must visit every index exactly once, act as a barrier, and
propagate a worker failure instead of dropping that worker's items.
"""

import threading
from collections import Counter

import pytest

from dual_apsi import dispatch
from dual_apsi.dispatch import (
    AtomicCounter, AtomicDispatcher, DISPATCHERS, PartitionDispatcher, QueueDispatcher,
    SequentialDispatcher, UnboundedDispatcher, make_dispatcher, partition_ranges
)
from dual_apsi.errors import PreconditionError


def run_recording(dispatcher, items):
    seen = Counter()
    lock = threading.Lock()

    def task(index, item):
        assert items[index] == item
        with lock:
            seen[index] += 1

    dispatcher.run(items, task)
    return seen


ALL = [
    SequentialDispatcher(),
    UnboundedDispatcher(),
    QueueDispatcher(1), QueueDispatcher(3), QueueDispatcher(16),
    AtomicDispatcher(1), AtomicDispatcher(3), AtomicDispatcher(16),
    PartitionDispatcher(1), PartitionDispatcher(3), PartitionDispatcher(16),
]


@pytest.mark.parametrize("dispatcher", ALL, ids=repr)
@pytest.mark.parametrize("size", [0, 1, 10, 257])
def test_every_index_visited_once(dispatcher, size):
    items = [f"item-{i}" for i in range(size)]
    seen = run_recording(dispatcher, items)
    assert seen == Counter(range(size))


@pytest.mark.parametrize("count,workers", [(10, 3), (10, 4), (7, 16), (0, 2), (100, 7), (5, 5)])
def test_partition_ranges_disjoint_and_complete(count, workers):
    ranges = partition_ranges(count, workers)
    assert len(ranges) == workers
    covered = [i for start, end in ranges for i in range(start, end)]
    assert covered == list(range(count))
    chunk = -(-count // workers)
    assert all(end - start <= chunk for start, end in ranges)


def test_atomic_counter_is_unique_across_threads():
    counter = AtomicCounter()
    claimed = []
    lock = threading.Lock()

    def claim_many():
        local = [counter.claim() for _ in range(1000)]
        with lock:
            claimed.extend(local)

    threads = [threading.Thread(target=claim_many) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(claimed) == list(range(8000))


@pytest.mark.parametrize("name", ['threaded', 'queue', 'atomic', 'partition'])
def test_worker_failure_propagates(name):
    dispatcher = make_dispatcher(name, None if name == 'threaded' else 4)

    def task(index, item):
        if index == 5:
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        dispatcher.run(list(range(50)), task)


def test_failure_stops_remaining_queue_work():
    processed = []
    lock = threading.Lock()

    def task(index, item):
        if index == 0:
            raise RuntimeError("first item fails")
        with lock:
            processed.append(index)

    with pytest.raises(RuntimeError):
        QueueDispatcher(1).run(list(range(100)), task)
    assert processed == []


def test_run_is_a_barrier():
    done = []

    def task(index, item):
        threading.Event().wait(0.001)
        done.append(index)

    AtomicDispatcher(4).run(list(range(40)), task)
    assert len(done) == 40


@pytest.mark.parametrize("bad", [0, -1, None, 2.5, True])
@pytest.mark.parametrize("cls", [QueueDispatcher, AtomicDispatcher, PartitionDispatcher])
def test_bad_worker_counts_rejected(cls, bad):
    with pytest.raises(PreconditionError):
        cls(bad)


def test_registry_and_unknown_name():
    assert set(DISPATCHERS) == {'sequential', 'threaded', 'queue', 'atomic', 'partition'}
    assert isinstance(make_dispatcher('queue', 2), QueueDispatcher)
    with pytest.raises(PreconditionError):
        make_dispatcher('round-robin', 2)


class WorkerDied(BaseException):
    """Not an Exception subclass, like SystemExit."""


@pytest.mark.parametrize("dispatcher", [
    UnboundedDispatcher(), QueueDispatcher(4), AtomicDispatcher(4), PartitionDispatcher(4),
], ids=repr)
def test_base_exception_in_worker_is_not_dropped(dispatcher):
    processed = Counter()
    lock = threading.Lock()

    def task(index, item):
        if index == 3:
            raise WorkerDied()
        with lock:
            processed[index] += 1

    with pytest.raises(WorkerDied):
        dispatcher.run(list(range(20)), task)
    assert 3 not in processed


@pytest.mark.parametrize("locked", [True, False])
def test_atomic_counter_both_claim_paths(locked):
    counter = AtomicCounter(locked=locked)
    assert counter.locked is locked
    claimed = []
    lock = threading.Lock()

    def claim_many():
        local = [counter.claim() for _ in range(500)]
        with lock:
            claimed.extend(local)

    threads = [threading.Thread(target=claim_many) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(claimed) == list(range(3000))


def test_atomic_counter_locks_without_gil(monkeypatch):
    monkeypatch.setattr(dispatch.sys, '_is_gil_enabled', lambda: False, raising=False)
    assert AtomicCounter().locked
    monkeypatch.setattr(dispatch.sys, '_is_gil_enabled', lambda: True, raising=False)
    assert not AtomicCounter().locked
