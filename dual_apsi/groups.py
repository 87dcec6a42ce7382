"""
Group Initialization and Setup
===============================

This module builds the symmetric pairing group the protocol runs over.

The protocol pairs two G1 elements, e: G1 x G1 -> GT, so only symmetric
(PBC "type a") curves are usable:
- PairingGroup('SS512') is a type A supersingular curve with a 160-bit group
  order r and a 512-bit base field q. These are the sizes suggested by the PBC
  manual: generic discrete log must be infeasible in groups of order r, and
  finite field discrete log infeasible in F_{q^2}.
- Asymmetric curves ('MNT224', 'BN254', ...) are rejected.
- A custom PBC parameter file may be supplied instead of a named curve.

According to charm-crypto documentation:
- group.random(G1) / group.random(ZR) sample uniformly
- elements compose multiplicatively: P ** x is scalar multiplication
- pair(a, b) evaluates the pairing, group.hash(data, G1) hashes into G1
- group.serialize(elem) returns a canonical byte encoding
"""

import logging

from charm.toolbox.pairinggroup import PairingGroup, ZR, G1, GT, pair

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# (r_bits, q_bits) -> charm curve identifier
SYMMETRIC_CURVES = {
    (160, 512): 'SS512',
}

CURVE_SIZES = {name: sizes for sizes, name in SYMMETRIC_CURVES.items()}

ASYMMETRIC_CURVES = ('MNT159', 'MNT201', 'MNT224', 'BN254', 'BN256', 'BLS12-381')


def read_param_file(path: str) -> dict:
    """
    Parse a PBC parameter file into a dict of ``key -> value`` strings.

    Parameters
    ----------
    path : str
        Path to a file in PBC's ``key value`` line format

    Returns
    -------
    dict
        e.g. ``{'type': 'a', 'q': '8780...', 'r': '7307...', ...}``
    """
    params = {}
    try:
        with open(path) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                key, _, value = line.partition(' ')
                params[key] = value.strip()
    except OSError as e:
        raise ConfigurationError(f"cannot read pairing parameters from {path}: {e}") from e
    return params


def _check_param_file(path, r_bits, q_bits):
    params = read_param_file(path)
    if params.get('type') != 'a':
        raise ConfigurationError(
            f"{path}: need symmetric type a parameters, got type {params.get('type')!r}")
    try:
        q = int(params['q'])
        r = int(params['r'])
    except (KeyError, ValueError) as e:
        raise ConfigurationError(f"{path}: malformed q/r parameters") from e
    if q.bit_length() != q_bits or r.bit_length() != r_bits:
        raise ConfigurationError(
            f"{path}: parameters are r={r.bit_length()} bits, q={q.bit_length()} bits; "
            f"requested r={r_bits}, q={q_bits}")


def load_group(r_bits: int = 160, q_bits: int = 512, curve: str = None,
               param_file: str = None, verbose: bool = False) -> dict:
    """
    Initialize a symmetric pairing group of the requested size.

    Parameters
    ----------
    r_bits : int
        Bit length of the prime group order r
    q_bits : int
        Bit length of the base field q
    curve : str, optional
        Explicit charm curve identifier; must be a known symmetric curve of
        exactly the requested sizes
    param_file : str, optional
        Path to a PBC type a parameter file; overrides ``curve``
    verbose : bool
        Forwarded to the pairing library

    Returns
    -------
    dict
        A dictionary containing:
        - 'group': The PairingGroup object
        - 'group_name': The curve identifier (or parameter file path)
        - 'G1', 'GT', 'ZR': group type constants
        - 'pair': The pairing function

    Raises
    ------
    ConfigurationError
        If no symmetric group of that size can be constructed. There is no
        fallback: parameters are a precondition of the whole session.
    """
    if param_file:
        _check_param_file(param_file, r_bits, q_bits)
        group_name = param_file
    else:
        group_name = curve or SYMMETRIC_CURVES.get((r_bits, q_bits))
        if group_name is None:
            raise ConfigurationError(
                f"no symmetric pairing curve with r={r_bits} bits and q={q_bits} bits; "
                f"known sizes: {sorted(SYMMETRIC_CURVES)}")
        if group_name in ASYMMETRIC_CURVES:
            raise ConfigurationError(f"{group_name} is asymmetric; e(G1, G1) is undefined")
        sizes = CURVE_SIZES.get(group_name)
        if sizes is None:
            raise ConfigurationError(
                f"field size of {group_name} is unknown; pass a PBC param_file instead")
        if sizes != (r_bits, q_bits):
            raise ConfigurationError(
                f"{group_name} has r={sizes[0]} bits, q={sizes[1]} bits; "
                f"requested r={r_bits}, q={q_bits}")

    try:
        group = PairingGroup(group_name, param_file=bool(param_file), verbose=verbose)
    except Exception as e:
        raise ConfigurationError(f"pairing library rejected {group_name}: {e}") from e

    order_bits = int(group.order()).bit_length()
    if order_bits != r_bits:
        raise ConfigurationError(
            f"{group_name} has a {order_bits}-bit group order, requested {r_bits} bits")

    logger.info("Loaded pairing group %s (r=%d bits, q=%d bits)", group_name, r_bits, q_bits)
    return {
        'group': group,
        'group_name': group_name,
        'G1': G1,
        'GT': GT,
        'ZR': ZR,
        'pair': pair,
    }
