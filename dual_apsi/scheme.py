"""
Dual Authorized PSI Scheme
==========================

Setup publishes:
    - e : G1 x G1 -> GT
    - PK = (P, xP, yP)
    - SK = (x, y): x authorizes client elements, y server elements

Authorize(elt, party) = H(elt)^{sk_party}

Each Interaction entry point runs the same protocol (see engine.py) under a
different work-distribution policy. All of them return the same set of
elements; they differ only in scheduling.
"""

import copy
import enum
import logging
import time
from typing import List, Sequence, Tuple

from charm.toolbox.pairinggroup import ZR, G1

from .config import Config
from .digest import hash_to_group
from .dispatch import BOUNDED, UnboundedDispatcher, make_dispatcher
from .elements import check_element
from .engine import IntersectionEngine, IntersectionResult, PrecomputedServerSet, check_lengths
from .errors import PreconditionError, PrimitiveError
from .groups import load_group

logger = logging.getLogger(__name__)

STRATEGIES = ('sequential', 'threaded', 'queue', 'atomic', 'partition', 'precompute')


class Party(enum.Enum):
    CLIENT = 0
    SERVER = 1


class DualAPSIScheme:
    """
    One protocol session: group, generator and both parties' keys.

    Use ``setup()`` to build one. The keys are never mutated after setup, so a
    scheme may be shared by concurrent Interaction runs.
    """

    def __init__(self, config: Config, params: dict, P, x, y, setup_time: float = 0.0):
        self.config = config
        self.params = params
        self.group = params['group']
        self.P = P
        self._x = x
        self._y = y
        self.xP = P ** x
        self.yP = P ** y
        self.setup_time = setup_time
        self.engine = IntersectionEngine(self.group, self.xP, self.yP)

    @property
    def public_key(self) -> Tuple:
        return self.P, self.xP, self.yP

    def _secret_key(self, party: Party):
        if party is Party.CLIENT:
            return self._x
        if party is Party.SERVER:
            return self._y
        raise PreconditionError(f"unknown party {party!r}")

    def authorize(self, element: bytes, party: Party) -> G1:
        """
        Sign one element for ``party``.

        Parameters
        ----------
        element : bytes
            Raw element of ``config.element_width`` bytes
        party : Party
            CLIENT signs with x, SERVER with y

        Returns
        -------
        G1
            H(element)^{sk}; deterministic for a given scheme
        """
        secret_key = self._secret_key(party)
        element = check_element(element, self.config.element_width)
        return hash_to_group(self.group, element) ** secret_key

    def sign_set(self, elements: Sequence[bytes], party: Party) -> Tuple[float, List[G1]]:
        """Sequentially authorize a whole set. Returns (elapsed, signatures)."""
        start = time.perf_counter()
        signatures = [self.authorize(element, party) for element in elements]
        elapsed = time.perf_counter() - start
        logger.info("Signed %d %s elements in %.4fs", len(signatures), party.name.lower(), elapsed)
        return elapsed, signatures

    # Interaction entry points, one per strategy.

    def interaction(self, client_set, client_signatures, server_set, server_signatures) -> IntersectionResult:
        """Sequential baseline."""
        return self.engine.run(make_dispatcher('sequential'), client_set, client_signatures,
                               server_set, server_signatures)

    def threaded_interaction(self, client_set, client_signatures, server_set,
                             server_signatures) -> IntersectionResult:
        """One thread per element on both passes."""
        return self.engine.run(make_dispatcher('threaded'), client_set, client_signatures,
                               server_set, server_signatures)

    def queue_interaction(self, client_set, client_signatures, server_set, server_signatures,
                          num_workers: int = None) -> IntersectionResult:
        """``num_workers`` threads draining a shared job queue."""
        return self._bounded('queue', client_set, client_signatures,
                             server_set, server_signatures, num_workers)

    def atomic_interaction(self, client_set, client_signatures, server_set, server_signatures,
                           num_workers: int = None) -> IntersectionResult:
        """``num_workers`` threads claiming indices from a shared counter."""
        return self._bounded('atomic', client_set, client_signatures,
                             server_set, server_signatures, num_workers)

    def partition_interaction(self, client_set, client_signatures, server_set, server_signatures,
                              num_workers: int = None) -> IntersectionResult:
        """``num_workers`` threads over disjoint contiguous ranges."""
        return self._bounded('partition', client_set, client_signatures,
                             server_set, server_signatures, num_workers)

    def _bounded(self, name, client_set, client_signatures, server_set, server_signatures, num_workers):
        if num_workers is None:
            num_workers = self.config.num_workers
        return self.engine.run(make_dispatcher(name, num_workers), client_set, client_signatures,
                               server_set, server_signatures)

    def precompute_server(self, server_signatures: Sequence[G1]) -> PrecomputedServerSet:
        """Offline phase of the precompute strategy: e(sigma_i, xP) per signature."""
        return self.engine.precompute(server_signatures)

    def precompute_interaction(self, client_set, client_signatures, server_set, server_signatures,
                               precomputed: PrecomputedServerSet = None) -> IntersectionResult:
        """
        Precompute strategy. Runs the offline phase first unless ``precomputed``
        is given; its time is excluded from ``IntersectionResult.elapsed``.
        """
        check_lengths(client_set, client_signatures, 'client')
        check_lengths(server_set, server_signatures, 'server')
        if precomputed is None:
            precomputed = self.precompute_server(server_signatures)
        return self.engine.run_precomputed(UnboundedDispatcher(), precomputed, client_set,
                                           client_signatures, server_set, server_signatures)

    def run_strategy(self, name: str, client_set, client_signatures, server_set, server_signatures,
                     num_workers: int = None) -> IntersectionResult:
        """Dispatch to the Interaction entry point registered as ``name``."""
        if name == 'sequential':
            return self.interaction(client_set, client_signatures, server_set, server_signatures)
        if name == 'threaded':
            return self.threaded_interaction(client_set, client_signatures, server_set, server_signatures)
        if name == 'precompute':
            return self.precompute_interaction(client_set, client_signatures, server_set, server_signatures)
        if name in BOUNDED:
            return self._bounded(name, client_set, client_signatures,
                                 server_set, server_signatures, num_workers)
        raise PreconditionError(f"unknown strategy {name!r}; choose from {STRATEGIES}")


def setup(r_bits: int = None, q_bits: int = None, config: Config = None) -> DualAPSIScheme:
    """
    Generate public parameters and both parties' keys.

    Parameters
    ----------
    r_bits, q_bits : int, optional
        Group order and field sizes; override the values in ``config``
    config : Config, optional
        Scheme configuration; defaults from the environment

    Raises
    ------
    ConfigurationError
        The requested group cannot be built.
    PrimitiveError
        Sampling P, x or y failed.
    """
    config = copy.copy(config) if config is not None else Config()
    if r_bits is not None:
        config.r_bits = r_bits
    if q_bits is not None:
        config.q_bits = q_bits
    config.validate()

    start = time.perf_counter()
    params = load_group(config.r_bits, config.q_bits, curve=config.curve,
                        param_file=config.param_file, verbose=config.verbose_primitives)
    group = params['group']
    try:
        P = group.random(G1)
        x = group.random(ZR)
        y = group.random(ZR)
    except Exception as e:
        raise PrimitiveError(f"could not sample scheme keys: {e}") from e
    scheme = DualAPSIScheme(config, params, P, x, y)
    scheme.setup_time = time.perf_counter() - start

    logger.info("Setup complete on %s in %.4fs", params['group_name'], scheme.setup_time)
    return scheme
