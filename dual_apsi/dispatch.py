"""
Work Distribution Policies
==========================

Every pass of the protocol is "apply ``task(index, item)`` to each item of a
list". A dispatcher decides how that work is scheduled onto OS threads:

- SequentialDispatcher: one item at a time on the calling thread
- UnboundedDispatcher: one thread per item
- QueueDispatcher: N workers draining a pre-loaded, closed queue.Queue
- AtomicDispatcher: N workers claiming the next index from a shared counter
- PartitionDispatcher: N workers, each over a disjoint contiguous range

``run()`` returns only after every worker has finished, so it doubles as the
barrier between the server pass and the client pass. If any task raises, a
shared abort flag stops the remaining workers from taking new work, all
threads are joined, and the first exception is re-raised to the caller.
"""

import itertools
import logging
import queue
import sys
import threading
from typing import Callable, List, Sequence, Tuple

from .errors import PreconditionError

logger = logging.getLogger(__name__)

Task = Callable[[int, object], None]


def gil_enabled() -> bool:
    check = getattr(sys, '_is_gil_enabled', None)
    return check is None or check()


def check_num_workers(num_workers) -> int:
    if not isinstance(num_workers, int) or isinstance(num_workers, bool) or num_workers < 1:
        raise PreconditionError(f"num_workers must be a positive integer, got {num_workers!r}")
    return num_workers


def partition_ranges(count: int, num_workers: int) -> List[Tuple[int, int]]:
    """
    Split ``range(count)`` into ``num_workers`` contiguous, disjoint
    ``(start, end)`` ranges of ceil(count / num_workers) items. Trailing ranges
    may be empty.
    """
    chunk = -(-count // num_workers)
    ranges = []
    for worker in range(num_workers):
        start = min(worker * chunk, count)
        end = min(start + chunk, count)
        ranges.append((start, end))
    return ranges


class AtomicCounter:
    """
    Shared index counter. With the GIL, ``claim()`` is a single ``next()`` on
    an ``itertools.count``, which CPython executes atomically, so no lock is
    taken. Free-threaded builds give no such guarantee; there the claim is
    made under a lock.
    """

    def __init__(self, start: int = 0, locked: bool = None):
        self._counter = itertools.count(start)
        self.locked = not gil_enabled() if locked is None else locked
        self._lock = threading.Lock() if self.locked else None

    def claim(self) -> int:
        if self._lock is None:
            return next(self._counter)
        with self._lock:
            return next(self._counter)


class Dispatcher:
    """Base class. Subclasses build the worker callables."""

    name = None

    def __init__(self, num_workers: int = None):
        self.num_workers = num_workers

    def run(self, items: Sequence, task: Task):
        abort = threading.Event()
        workers = self._workers(items, task, abort)
        logger.debug("%s: %d items on %d workers", self.name, len(items), len(workers))
        _join_all(workers, abort)

    def _workers(self, items, task, abort) -> List[Callable[[], None]]:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}(num_workers={self.num_workers})"


def _join_all(workers, abort):
    failures = []
    failures_lock = threading.Lock()

    def guarded(worker):
        try:
            worker()
        except BaseException as e:
            # BaseException too: a dead worker must never drop its items silently
            abort.set()
            with failures_lock:
                failures.append(e)
            logger.error("worker %s failed: %r", threading.current_thread().name, e)

    threads = []
    try:
        for worker in workers:
            thread = threading.Thread(target=guarded, args=(worker,))
            thread.start()
            threads.append(thread)
    except RuntimeError:
        # could not start a thread; stop the ones already running
        abort.set()
        for thread in threads:
            thread.join()
        raise

    for thread in threads:
        thread.join()

    if failures:
        raise failures[0]


class SequentialDispatcher(Dispatcher):
    """Single-threaded baseline."""

    name = 'sequential'

    def __init__(self, num_workers: int = None):
        super().__init__(1)

    def run(self, items, task):
        for index, item in enumerate(items):
            task(index, item)


class UnboundedDispatcher(Dispatcher):
    """One thread per item; the thread count equals the set size."""

    name = 'threaded'

    def __init__(self, num_workers: int = None):
        super().__init__(None)

    def _workers(self, items, task, abort):
        def one(index, item):
            if not abort.is_set():
                task(index, item)

        return [lambda index=index, item=item: one(index, item)
                for index, item in enumerate(items)]


class QueueDispatcher(Dispatcher):
    """N workers draining a shared queue pre-loaded with every ``(index, item)``."""

    name = 'queue'

    def __init__(self, num_workers: int):
        super().__init__(check_num_workers(num_workers))

    def _workers(self, items, task, abort):
        jobs = queue.Queue(maxsize=len(items))
        for job in enumerate(items):
            jobs.put_nowait(job)

        # Nothing is added after this point, so an empty queue means done.
        def drain():
            while not abort.is_set():
                try:
                    index, item = jobs.get_nowait()
                except queue.Empty:
                    return
                task(index, item)

        return [drain] * self.num_workers


class AtomicDispatcher(Dispatcher):
    """N workers; each claims the next unprocessed index from a shared counter."""

    name = 'atomic'

    def __init__(self, num_workers: int):
        super().__init__(check_num_workers(num_workers))

    def _workers(self, items, task, abort):
        counter = AtomicCounter()
        stop = len(items)

        def claim_loop():
            while not abort.is_set():
                index = counter.claim()
                if index >= stop:
                    return
                task(index, items[index])

        return [claim_loop] * self.num_workers


class PartitionDispatcher(Dispatcher):
    """N workers over disjoint index ranges; no shared index at all."""

    name = 'partition'

    def __init__(self, num_workers: int):
        super().__init__(check_num_workers(num_workers))

    def _workers(self, items, task, abort):
        def over(start, end):
            for index in range(start, end):
                if abort.is_set():
                    return
                task(index, items[index])

        return [lambda start=start, end=end: over(start, end)
                for start, end in partition_ranges(len(items), self.num_workers)]


DISPATCHERS = {
    cls.name: cls
    for cls in (SequentialDispatcher, UnboundedDispatcher, QueueDispatcher,
                AtomicDispatcher, PartitionDispatcher)
}

BOUNDED = ('queue', 'atomic', 'partition')


def make_dispatcher(name: str, num_workers: int = None) -> Dispatcher:
    """Instantiate the dispatcher registered under ``name``."""
    try:
        cls = DISPATCHERS[name]
    except KeyError:
        raise PreconditionError(
            f"unknown dispatch policy {name!r}; choose from {sorted(DISPATCHERS)}") from None
    return cls(num_workers)
