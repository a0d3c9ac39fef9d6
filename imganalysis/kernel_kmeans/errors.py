"""
Exceptions raised by the Kernel Power K-Means engine.
"""


class InvalidConfigurationError(ValueError):
    """Raised before any computation when clustering parameters are invalid."""


class NumericalDegeneracyError(FloatingPointError):
    """
    Raised when the refinement produces NaN distances or non-finite weights.

    Happens once the power exponent is sharp enough that the power sums
    overflow or underflow for a whole row; the partition can no longer be
    refined from that state.
    """
