"""
Dual Authorized Private Set Intersection
========================================

Two parties learn the intersection of their sets of fixed-width identifiers
without revealing the other elements. Each element must first be authorized
(signed) under its party's secret key; only mutually authorized elements can
match. Built on a symmetric bilinear pairing via charm-crypto.

Modules:
--------
- groups: Symmetric pairing group initialization
- config: Scheme configuration
- digest: Pinned hash-to-group and GT fingerprints
- scheme: Setup, authorization, Interaction entry points
- engine: The matching protocol and its shared structures
- dispatch: Work-distribution policies
- elements, oracle: Set helpers and plaintext intersections
- joux: Standalone three-party key exchange
- benchmark: Benchmark harness and CLI

Usage:
------
    from dual_apsi import setup, Party

    scheme = setup(160, 512)
    _, client_sigs = scheme.sign_set(client_set, Party.CLIENT)
    _, server_sigs = scheme.sign_set(server_set, Party.SERVER)
    result = scheme.atomic_interaction(client_set, client_sigs,
                                       server_set, server_sigs, num_workers=8)
    print(result.sorted_elements())
"""

__version__ = "0.1.0"

from .config import Config
from .errors import (
    APSIError, ConfigurationError, InteractionAborted, PreconditionError, PrimitiveError
)
from .engine import IntersectionResult, PrecomputedServerSet
from .scheme import STRATEGIES, DualAPSIScheme, Party, setup

__all__ = [
    'setup', 'DualAPSIScheme', 'Party', 'STRATEGIES', 'Config',
    'IntersectionResult', 'PrecomputedServerSet',
    'APSIError', 'ConfigurationError', 'PreconditionError', 'PrimitiveError', 'InteractionAborted',
]
