"""
Error Taxonomy
==============

Every failure raised by the scheme derives from ``APSIError``:

- ConfigurationError: unsupported group parameters or an invalid Config.
  Fatal, surfaced at Setup.
- PreconditionError: caller error detected before any cryptographic work
  (length mismatch between a set and its signatures, wrong element width,
  unknown strategy, bad worker count).
- PrimitiveError: the pairing library failed to produce a value.
- InteractionAborted: a worker task failed during an Interaction run. The
  original exception is chained as ``__cause__``.
"""


class APSIError(Exception):
    """Base class for all errors raised by dual_apsi."""


class ConfigurationError(APSIError):
    """Invalid or unsupported group / scheme configuration."""


class PreconditionError(APSIError, ValueError):
    """A caller-supplied input violates a precondition."""


class PrimitiveError(APSIError):
    """The algebraic primitive layer failed to produce a value."""


class InteractionAborted(APSIError):
    """A worker failed; the whole Interaction run was abandoned."""

    def __init__(self, strategy, phase, message):
        super().__init__(f"{strategy} interaction aborted during {phase} pass: {message}")
        self.strategy = strategy
        self.phase = phase
