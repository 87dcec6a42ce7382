"""
Correctness oracle: plaintext intersections used to validate the protocol.
"""

import hashlib
import time
from typing import List, Tuple


def insecure_intersection(client_set: List[bytes], server_set: List[bytes]) -> Tuple[float, List[bytes]]:
    """Plain lookup-table intersection. Returns (elapsed, intersection)."""
    start = time.perf_counter()

    lookup = set(client_set)
    intersection = [element for element in server_set if element in lookup]

    return time.perf_counter() - start, intersection


def naive_hashing_intersection(client_set: List[bytes], server_set: List[bytes]) -> Tuple[float, List[bytes]]:
    """
    The server publishes SHA-256 of each element and the client looks its own
    hashes up. Leaks everything to a dictionary attack; kept as a baseline.
    """
    start = time.perf_counter()

    # Server sends hashes to client
    lookup = {hashlib.sha256(element).digest() for element in server_set}

    # Client does a naive lookup on hashes
    intersection = [element for element in client_set
                    if hashlib.sha256(element).digest() in lookup]

    return time.perf_counter() - start, intersection
