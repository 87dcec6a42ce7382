"""
Raw Elements and Sets
=====================

An element is a fixed-width ``bytes`` value; a set is a list of unique
elements. Order is kept because signatures are stored in lists parallel to
the element lists.
"""

import os
from collections import Counter
from typing import Iterable, List, Tuple

from .errors import PreconditionError


def element_from_int(value: int, width: int) -> bytes:
    """Big-endian encoding of ``value`` as a ``width``-byte element."""
    try:
        return value.to_bytes(width, 'big')
    except OverflowError as e:
        raise PreconditionError(f"{value} does not fit in {width} bytes") from e


def element_to_int(element: bytes) -> int:
    return int.from_bytes(element, 'big')


def check_element(element, width: int) -> bytes:
    """Validate and normalise one element. Returns it as ``bytes``."""
    if not isinstance(element, (bytes, bytearray, memoryview)):
        raise PreconditionError(f"element must be bytes, got {type(element).__name__}")
    element = bytes(element)
    if len(element) != width:
        raise PreconditionError(f"element {element.hex()} is {len(element)} bytes, expected {width}")
    return element


def remove_duplicates(elements: Iterable[bytes]) -> List[bytes]:
    """Drop repeated elements, keeping the first occurrence of each."""
    seen = set()
    result = []
    for element in elements:
        if element not in seen:
            seen.add(element)
            result.append(element)
    return result


def generate_random_set(size: int, width: int) -> List[bytes]:
    """
    Draw ``size`` random elements and deduplicate them.

    The returned set may be smaller than ``size`` when the draw collides,
    which is likely for narrow widths.
    """
    return remove_duplicates(os.urandom(width) for _ in range(size))


def make_sets(client_size: int, server_size: int, overlap: int,
              width: int) -> Tuple[List[bytes], List[bytes], List[bytes]]:
    """
    Build a client and a server set whose intersection has exactly
    ``overlap`` elements.

    Returns
    -------
    client_set, server_set, expected
        ``expected`` is the intersection in client order
    """
    if overlap > min(client_size, server_size) or overlap < 0:
        raise PreconditionError(
            f"overlap {overlap} impossible for sets of {client_size} and {server_size}")
    total = client_size + server_size - overlap
    if total > 256 ** width:
        raise PreconditionError(f"{total} distinct elements do not fit in {width} bytes")

    values = [element_from_int(i, width) for i in range(total)]
    shared = values[:overlap]
    client_set = shared + values[overlap:client_size]
    server_set = shared + values[client_size:]
    return client_set, server_set, list(shared)


def disjoint_sets(client_size: int, server_size: int, width: int) -> Tuple[List[bytes], List[bytes]]:
    """Two sets drawn from disjoint integer ranges."""
    client_set, server_set, _ = make_sets(client_size, server_size, 0, width)
    return client_set, server_set


def sort_elements(elements: Iterable[bytes]) -> List[bytes]:
    return sorted(elements)


def same_elements(x: Iterable[bytes], y: Iterable[bytes]) -> bool:
    """Multiset equality, ignoring order."""
    return Counter(x) == Counter(y)
