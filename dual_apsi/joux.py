"""
Joux Three-Party Key Exchange
=============================

A one-round, unauthenticated key agreement between A, B and C over a
symmetric pairing. It only shares the pairing group with the APSI scheme.

    A publishes aP, B publishes bP, C publishes cP
    K_A = e(bP, cP)^a,  K_B = e(aP, cP)^b,  K_C = e(aP, bP)^c

All three equal e(P, P)^{abc}.
"""

import time

from charm.toolbox.pairinggroup import PairingGroup, ZR, G1, pair

from .errors import PrimitiveError
from .groups import load_group


def joux_key_exchange(group: PairingGroup) -> dict:
    """
    Run one exchange on an existing group.

    Returns
    -------
    dict
        'P', 'aP', 'bP', 'cP', the three keys 'key_a', 'key_b', 'key_c',
        'match' (all keys equal) and 'online_time' in seconds
    """
    start = time.perf_counter()

    P = group.random(G1)
    a, b, c = group.random(ZR), group.random(ZR), group.random(ZR)
    aP, bP, cP = P ** a, P ** b, P ** c

    key_a = pair(bP, cP) ** a
    key_b = pair(aP, cP) ** b
    key_c = pair(aP, bP) ** c

    online_time = time.perf_counter() - start
    return {
        'P': P, 'aP': aP, 'bP': bP, 'cP': cP,
        'key_a': key_a, 'key_b': key_b, 'key_c': key_c,
        'match': key_a == key_b and key_a == key_c,
        'online_time': online_time,
    }


def benchmark_joux(runs: int = 100, r_bits: int = 160, q_bits: int = 512) -> dict:
    """Average setup and online time over ``runs`` fresh exchanges."""
    total_setup = 0.0
    total_online = 0.0
    for _ in range(runs):
        start = time.perf_counter()
        group = load_group(r_bits, q_bits)['group']
        total_setup += time.perf_counter() - start

        result = joux_key_exchange(group)
        if not result['match']:
            raise PrimitiveError("Joux keys do not match")
        total_online += result['online_time']

    return {
        'runs': runs,
        'setup_time': total_setup / runs,
        'online_time': total_online / runs,
    }
