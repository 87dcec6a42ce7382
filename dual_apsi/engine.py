"""
Intersection Engine
===================

Runs the matching protocol between a client set and a server set, each
already signed (sigma = H(elt)^key).

Protocol:
---------
1. Sample a fresh blinding factor r; compute rxP = xP^r and ryP = yP^r.
2. Server pass: t_i = e(H(s_i)^y, rxP), fingerprint it, add it to the
   FingerprintSet.
3. Client pass: u_j = e(H(c_j)^x, ryP), fingerprint it; on a hit record
   client index j.
4. Return the client elements at the recorded indices.

By bilinearity both t_i and u_j equal e(H(.), P)^{xyr}, so they coincide
exactly when the underlying elements are equal.

The precompute variant moves e(H(s_i)^y, xP) out of the timed path; the
online server pass is then one GT exponentiation by r per element.

Shared State:
-------------
Only the FingerprintSet and the result accumulator are written by workers;
each has its own lock. r, rxP and ryP are computed before any worker starts
and are read-only afterwards.
"""

import hashlib
import logging
import threading
import time
from typing import List, Sequence

from charm.toolbox.pairinggroup import PairingGroup, ZR, G1, GT, pair

from .digest import fingerprint
from .dispatch import Dispatcher, UnboundedDispatcher
from .errors import InteractionAborted, PreconditionError, PrimitiveError

logger = logging.getLogger(__name__)


class FingerprintSet:
    """Fingerprints contributed by the server pass."""

    def __init__(self):
        self._fingerprints = set()
        self._lock = threading.Lock()

    def add(self, fp: bytes):
        with self._lock:
            self._fingerprints.add(fp)

    def __contains__(self, fp) -> bool:
        # Only read after the server pass has been joined.
        return fp in self._fingerprints

    def __len__(self):
        return len(self._fingerprints)


class ResultAccumulator:
    """Client indices whose fingerprint matched, guarded by one lock."""

    def __init__(self):
        self._indices = []
        self._lock = threading.Lock()

    def record(self, index: int):
        with self._lock:
            self._indices.append(index)

    def elements(self, client_set: Sequence[bytes]) -> List[bytes]:
        """Matched elements in client order."""
        return [client_set[index] for index in sorted(self._indices)]


class IntersectionResult:
    """
    Outcome of one Interaction run.

    Attributes
    ----------
    elements : list of bytes
        Matched client elements, in client-set order
    strategy : str
        Name of the strategy that produced it
    elapsed : float
        Seconds spent in the timed critical path
    num_workers : int or None
        Worker count for bounded strategies
    """

    def __init__(self, elements, strategy, elapsed, num_workers=None):
        self.elements = elements
        self.strategy = strategy
        self.elapsed = elapsed
        self.num_workers = num_workers

    def sorted_elements(self) -> List[bytes]:
        return sorted(self.elements)

    def __iter__(self):
        return iter(self.elements)

    def __len__(self):
        return len(self.elements)

    def __contains__(self, element):
        return element in self.elements

    def __repr__(self):
        return (f"IntersectionResult(strategy={self.strategy!r}, size={len(self.elements)}, "
                f"elapsed={self.elapsed:.6f})")


class PrecomputedServerSet:
    """
    Offline pairings e(sigma_i, xP) for a server signature list. They do not
    depend on r and may be reused across any number of runs.

    Tagged with the serialized xP and a digest of the signatures it was built
    from, so it cannot be replayed against another scheme or server set.
    """

    def __init__(self, pairings: List[GT], xP_bytes: bytes, signatures_digest: bytes, elapsed: float):
        self.pairings = pairings
        self.xP_bytes = xP_bytes
        self.signatures_digest = signatures_digest
        self.elapsed = elapsed

    def __len__(self):
        return len(self.pairings)


def digest_signatures(group: PairingGroup, signatures: Sequence[G1]) -> bytes:
    """SHA-256 over the length-prefixed serializations of a signature list."""
    h = hashlib.sha256()
    for signature in signatures:
        encoded = group.serialize(signature)
        h.update(len(encoded).to_bytes(4, 'big'))
        h.update(encoded)
    return h.digest()


def check_lengths(elements: Sequence, signatures: Sequence, side: str):
    if len(elements) != len(signatures):
        raise PreconditionError(
            f"{side} set has {len(elements)} elements but {len(signatures)} signatures")


class IntersectionEngine:
    """The matching protocol, parameterised by a dispatcher."""

    def __init__(self, group: PairingGroup, xP: G1, yP: G1):
        self.group = group
        self.xP = xP
        self.yP = yP

    def sample_blinding(self):
        """Fresh r with its derived points. Never reused across runs."""
        try:
            r = self.group.random(ZR)
        except Exception as e:
            raise PrimitiveError(f"could not sample a blinding factor: {e}") from e
        return r, self.xP ** r, self.yP ** r

    def _dispatch(self, dispatcher: Dispatcher, items, task, strategy, phase):
        try:
            dispatcher.run(items, task)
        except Exception as e:
            raise InteractionAborted(strategy, phase, repr(e)) from e

    def server_pass(self, dispatcher: Dispatcher, server_signatures: Sequence[G1],
                    rxP: G1, strategy: str) -> FingerprintSet:
        fingerprints = FingerprintSet()
        group = self.group

        def contribute(index, signature):
            # Recall that signature = H(s_i)^y.
            fingerprints.add(fingerprint(group, pair(signature, rxP)))

        self._dispatch(dispatcher, server_signatures, contribute, strategy, 'server')
        return fingerprints

    def precomputed_server_pass(self, dispatcher: Dispatcher, precomputed: PrecomputedServerSet,
                                r, strategy: str) -> FingerprintSet:
        fingerprints = FingerprintSet()
        group = self.group

        def contribute(index, paired):
            # paired = e(H(s_i)^y, xP), missing r
            fingerprints.add(fingerprint(group, paired ** r))

        self._dispatch(dispatcher, precomputed.pairings, contribute, strategy, 'server')
        return fingerprints

    def client_pass(self, dispatcher: Dispatcher, client_signatures: Sequence[G1], ryP: G1,
                    fingerprints: FingerprintSet, strategy: str) -> ResultAccumulator:
        matches = ResultAccumulator()
        group = self.group

        def test(index, signature):
            # Recall that signature = H(c_j)^x.
            if fingerprint(group, pair(signature, ryP)) in fingerprints:
                matches.record(index)

        self._dispatch(dispatcher, client_signatures, test, strategy, 'client')
        return matches

    def run(self, dispatcher: Dispatcher, client_set, client_signatures,
            server_set, server_signatures, strategy: str = None) -> IntersectionResult:
        strategy = strategy or dispatcher.name
        check_lengths(client_set, client_signatures, 'client')
        check_lengths(server_set, server_signatures, 'server')

        start = time.perf_counter()

        r, rxP, ryP = self.sample_blinding()
        fingerprints = self.server_pass(dispatcher, server_signatures, rxP, strategy)
        matches = self.client_pass(dispatcher, client_signatures, ryP, fingerprints, strategy)
        elements = matches.elements(client_set)

        elapsed = time.perf_counter() - start
        logger.debug("%s: %d server fingerprints, %d matches in %.4fs",
                     strategy, len(fingerprints), len(elements), elapsed)
        return IntersectionResult(elements, strategy, elapsed, dispatcher.num_workers)

    def precompute(self, server_signatures: Sequence[G1],
                   dispatcher: Dispatcher = None) -> PrecomputedServerSet:
        """Offline phase: e(sigma_i, xP) for every server signature, concurrently."""
        dispatcher = dispatcher or UnboundedDispatcher()
        pairings = [None] * len(server_signatures)
        xP = self.xP

        def pair_one(index, signature):
            pairings[index] = pair(signature, xP)

        start = time.perf_counter()
        self._dispatch(dispatcher, server_signatures, pair_one, 'precompute', 'offline')
        elapsed = time.perf_counter() - start
        logger.debug("precomputed %d server pairings in %.4fs", len(pairings), elapsed)
        return PrecomputedServerSet(pairings, self.group.serialize(xP),
                                    digest_signatures(self.group, server_signatures), elapsed)

    def run_precomputed(self, dispatcher: Dispatcher, precomputed: PrecomputedServerSet,
                        client_set, client_signatures, server_set, server_signatures,
                        strategy: str = 'precompute') -> IntersectionResult:
        check_lengths(client_set, client_signatures, 'client')
        check_lengths(server_set, server_signatures, 'server')
        check_lengths(server_set, precomputed.pairings, 'server')
        if precomputed.xP_bytes != self.group.serialize(self.xP):
            raise PreconditionError("precomputed server set belongs to a different scheme")
        if precomputed.signatures_digest != digest_signatures(self.group, server_signatures):
            raise PreconditionError("precomputed server set was built from different signatures")

        start = time.perf_counter()

        r, _, ryP = self.sample_blinding()
        fingerprints = self.precomputed_server_pass(dispatcher, precomputed, r, strategy)
        matches = self.client_pass(dispatcher, client_signatures, ryP, fingerprints, strategy)
        elements = matches.elements(client_set)

        elapsed = time.perf_counter() - start
        logger.debug("%s: %d matches in %.4fs (offline %.4fs excluded)",
                     strategy, len(elements), elapsed, precomputed.elapsed)
        return IntersectionResult(elements, strategy, elapsed, dispatcher.num_workers)
