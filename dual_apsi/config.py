"""
Scheme configuration
Defaults for group size, element width and worker counts.
"""

import os

from .errors import ConfigurationError

# 默认配置 / defaults, overridable from the environment
DEFAULT_R_BITS = int(os.getenv('APSI_R_BITS', 160))
DEFAULT_Q_BITS = int(os.getenv('APSI_Q_BITS', 512))
DEFAULT_PAIRING_CURVE = os.getenv('APSI_PAIRING_CURVE') or None
DEFAULT_PARAM_FILE = os.getenv('APSI_PARAM_FILE') or None

# Width of a raw element in bytes
DEFAULT_ELEMENT_WIDTH = int(os.getenv('APSI_ELEMENT_WIDTH', 4))

# Worker count used by the bounded strategies when none is given
DEFAULT_NUM_WORKERS = int(os.getenv('APSI_NUM_WORKERS', os.cpu_count() or 4))

# Passed to the pairing library; it prints its own diagnostics when set
VERBOSE_PRIMITIVES = os.getenv('APSI_VERBOSE_PRIMITIVES', 'false').lower() == 'true'


class Config:
    """配置类 / Scheme configuration, handed explicitly to ``setup()``."""

    def __init__(self, r_bits=None, q_bits=None, curve=None, param_file=None,
                 element_width=None, num_workers=None, verbose_primitives=None):
        self.r_bits = DEFAULT_R_BITS if r_bits is None else r_bits
        self.q_bits = DEFAULT_Q_BITS if q_bits is None else q_bits
        self.curve = DEFAULT_PAIRING_CURVE if curve is None else curve
        self.param_file = DEFAULT_PARAM_FILE if param_file is None else param_file
        self.element_width = DEFAULT_ELEMENT_WIDTH if element_width is None else element_width
        self.num_workers = DEFAULT_NUM_WORKERS if num_workers is None else num_workers
        self.verbose_primitives = VERBOSE_PRIMITIVES if verbose_primitives is None else verbose_primitives

    def validate(self):
        for name in ('r_bits', 'q_bits', 'element_width', 'num_workers'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.r_bits >= self.q_bits:
            raise ConfigurationError(
                f"group order ({self.r_bits} bits) must be smaller than the field ({self.q_bits} bits)")
        return self

    def __repr__(self):
        return (f"Config(r_bits={self.r_bits}, q_bits={self.q_bits}, curve={self.curve!r}, "
                f"param_file={self.param_file!r}, element_width={self.element_width}, "
                f"num_workers={self.num_workers}, verbose_primitives={self.verbose_primitives})")
