"""Private helpers for checking user-provided values."""
import math
from collections.abc import Sequence
from numbers import Integral, Real

import numpy as np

from rtkit.errors import InvalidArgument


def _check_numeric_vector(
    value: Sequence[float] | np.ndarray,
    name: str,
    length: int | None = None,
) -> np.ndarray:
    """Convert a sequence of numbers into a one-dimensional float array.

    Parameters
    ----------
    value: Union[Sequence[float], numpy.ndarray]
        Values to convert
    name: str
        Name of the argument, used in error messages
    length: Union[int, None], optional
        Required number of values. Any length is accepted if ``None``.

    Returns
    -------
    numpy.ndarray
        Array of ``float`` values

    Raises
    ------
    rtkit.errors.InvalidArgument
        When `value` is not a one-dimensional sequence of numbers, contains
        values that are not finite (NaN or infinity) or has the wrong length.

    """
    if isinstance(value, (str, bytes)) or not isinstance(
        value, (Sequence, np.ndarray)
    ):
        raise InvalidArgument(
            f'Argument "{name}" must be a sequence of numbers, '
            f'got {type(value).__name__}.'
        )
    array = np.asarray(value)
    if array.ndim != 1:
        raise InvalidArgument(
            f'Argument "{name}" must be one-dimensional.'
        )
    if array.size > 0 and array.dtype.kind not in ('u', 'i', 'f'):
        raise InvalidArgument(
            f'Argument "{name}" must contain numbers only.'
        )
    if not np.all(np.isfinite(array)):
        raise InvalidArgument(
            f'Argument "{name}" must contain finite values only.'
        )
    if length is not None and array.size != length:
        raise InvalidArgument(
            f'Argument "{name}" must have length {length}.'
        )
    return array.astype(np.float64)


def _check_real(value: float, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidArgument(
            f'Argument "{name}" must be a number, '
            f'got {type(value).__name__}.'
        )
    if not math.isfinite(value):
        raise InvalidArgument(f'Argument "{name}" must be finite.')
    return float(value)


def _check_extent(value: int, name: str, allow_zero: bool = True) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidArgument(
            f'Argument "{name}" must be an integer, '
            f'got {type(value).__name__}.'
        )
    if value < 0 or (value == 0 and not allow_zero):
        qualifier = 'non-negative' if allow_zero else 'positive'
        raise InvalidArgument(
            f'Argument "{name}" must be a {qualifier} integer.'
        )
    return int(value)
