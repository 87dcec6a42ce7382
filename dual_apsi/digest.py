"""
Hash-to-Group and Fingerprints
==============================

Both functions are pinned and versioned so that signatures and fingerprints
produced by independent runs (or independent implementations) agree.

Hash-to-group, version 1:
    H(elt) = group.hash(SHA-256(b"DAPSI-H2G-v1" || elt), G1)

Fingerprint, version 1:
    F(t) = SHA-256(b"DAPSI-FP-v1" || group.serialize(t))   (32 bytes)

Domain Separation:
------------------
Each function uses its own prefix so a fingerprint can never collide with a
hash-to-group input.

The same fingerprint function must be applied on the server pass and the
client pass; a mismatch in serialization breaks correctness silently.
"""

import hashlib

from charm.toolbox.pairinggroup import PairingGroup, G1, GT

HASH_TO_GROUP_VERSION = 1
FINGERPRINT_VERSION = 1

HASH_TO_GROUP_PREFIX = b"DAPSI-H2G-v%d" % HASH_TO_GROUP_VERSION
FINGERPRINT_PREFIX = b"DAPSI-FP-v%d" % FINGERPRINT_VERSION

FINGERPRINT_SIZE = 32


def hash_to_group(group: PairingGroup, element: bytes) -> G1:
    """
    Map a raw element to a canonical point of G1.

    Parameters
    ----------
    group : PairingGroup
        The pairing group
    element : bytes
        Raw element bytes

    Returns
    -------
    G1
        H(element)
    """
    digest = hashlib.sha256(HASH_TO_GROUP_PREFIX + bytes(element)).digest()
    return group.hash(digest, G1)


def fingerprint(group: PairingGroup, value: GT) -> bytes:
    """Reduce a GT element to its 32-byte fingerprint."""
    return hashlib.sha256(FINGERPRINT_PREFIX + group.serialize(value)).digest()
