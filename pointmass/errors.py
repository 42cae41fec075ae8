"""Exceptions raised by the pointmass core.

The classes derive from the builtin exceptions they specialise, so code that
already catches ``ValueError`` or ``IndexError`` keeps working.

Numerical degeneracies (a force law evaluated at coincident points) are not
represented here: they propagate as NaN/Inf through the trajectory samples and
are left to the author of the field function.
"""


class InvalidArgument(ValueError):
    """Bad construction or call parameter (capacity, step size, array length)."""


class InvalidStep(InvalidArgument):
    """Integration step requested with a non-positive time step."""


class OutOfRange(IndexError):
    """Integer index or abscissa outside the stored samples."""
