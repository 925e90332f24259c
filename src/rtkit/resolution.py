"""Coordinate-consistent cropping and padding of image pixel arrays."""
import logging
from enum import Enum

import numpy as np

from rtkit._utils import _check_extent
from rtkit.enum import HorizontalAlignmentValues, VerticalAlignmentValues
from rtkit.errors import InvalidArgument
from rtkit.geometry import ImageGeometry


logger = logging.getLogger(__name__)


def _normalize_alignment(
    value: Enum | str,
    enum_type: type[Enum],
    name: str,
) -> Enum:
    if isinstance(value, str):
        value = value.upper()
    try:
        return enum_type(value)
    except ValueError as e:
        options = ', '.join(f'"{v.value}"' for v in enum_type)
        raise InvalidArgument(
            f'Argument "{name}" must be one of {options}, got "{value}".'
        ) from e


def _get_leading_and_trailing_change(
    delta: int,
    leading_only: bool,
    trailing_only: bool,
) -> tuple[int, int]:
    """Split the change in extent along one axis between its two edges.

    Parameters
    ----------
    delta: int
        Number of elements to add (positive) or remove (negative)
    leading_only: bool
        Whether the whole change is applied at the start of the axis
    trailing_only: bool
        Whether the whole change is applied at the end of the axis

    Returns
    -------
    Tuple[int, int]
        Number of elements added (positive) or removed (negative) at the start
        and at the end of the axis. For a centered change of odd size, the
        start receives the larger share, both when cropping and when padding.

    """
    size = abs(delta)
    if leading_only:
        leading = size
    elif trailing_only:
        leading = 0
    else:
        leading = size - size // 2
    trailing = size - leading
    sign = 1 if delta > 0 else -1
    return sign * leading, sign * trailing


def resize_pixel_array(
    array: np.ndarray,
    geometry: ImageGeometry,
    columns: int,
    rows: int,
    horizontal: HorizontalAlignmentValues | str = (
        HorizontalAlignmentValues.CENTERED
    ),
    vertical: VerticalAlignmentValues | str = (
        VerticalAlignmentValues.CENTERED
    ),
    constant_value: float = 0,
) -> tuple[np.ndarray, ImageGeometry]:
    """Crop and/or pad the pixel array of an image to a new resolution.

    Columns and rows are removed or added at the edges selected by the
    alignments. The geometry is updated such that every pixel retained from
    the original array keeps its position in the patient coordinate system.

    Parameters
    ----------
    array: numpy.ndarray
        Pixel array of shape ``(columns, rows)``, i.e. the first axis is
        indexed by the column index and the second axis by the row index
    geometry: rtkit.ImageGeometry
        Geometry of the image, whose extents must match the shape of `array`
    columns: int
        Number of columns of the resized array
    rows: int
        Number of rows of the resized array
    horizontal: Union[rtkit.HorizontalAlignmentValues, str], optional
        Edge at which columns are removed or added. ``"CENTERED"`` splits the
        change between both edges, where the left edge receives the extra
        column if the change is odd.
    vertical: Union[rtkit.VerticalAlignmentValues, str], optional
        Edge at which rows are removed or added. ``"CENTERED"`` splits the
        change between both edges, where the top edge receives the extra row
        if the change is odd.
    constant_value: float, optional
        Value of added pixels

    Returns
    -------
    numpy.ndarray
        Resized pixel array of shape ``(columns, rows)`` with the data type of
        `array`
    rtkit.ImageGeometry
        Geometry of the resized image

    Raises
    ------
    rtkit.errors.InvalidArgument
        When the target extents are not positive integers, the alignments are
        unknown or the shape of `array` does not match `geometry`.

    Examples
    --------
    >>> geometry = ImageGeometry(
    ...     position=(-5.0, -3.0),
    ...     slice_position=50.0,
    ...     spacing=(3.0, 2.0),
    ...     orientation=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0),
    ...     columns=4,
    ...     rows=4,
    ... )
    >>> array = np.ones((4, 4), dtype=np.int16)
    >>> resized, new_geometry = resize_pixel_array(
    ...     array, geometry, columns=5, rows=4
    ... )
    >>> resized[:, 0].tolist()
    [0, 1, 1, 1, 1]
    >>> new_geometry.position
    (-7.0, -3.0)

    """
    if not isinstance(geometry, ImageGeometry):
        raise InvalidArgument(
            'Argument "geometry" must be of type rtkit.ImageGeometry.'
        )
    if not isinstance(array, np.ndarray) or array.ndim != 2:
        raise InvalidArgument(
            'Argument "array" must be a two-dimensional numpy array.'
        )
    if array.shape != (geometry.columns, geometry.rows):
        raise InvalidArgument(
            f'Argument "array" has shape {array.shape}, which does not match '
            f'the {geometry.columns} columns and {geometry.rows} rows of the '
            'geometry.'
        )
    columns = _check_extent(columns, 'columns', allow_zero=False)
    rows = _check_extent(rows, 'rows', allow_zero=False)
    horizontal = _normalize_alignment(
        horizontal, HorizontalAlignmentValues, 'horizontal'
    )
    vertical = _normalize_alignment(
        vertical, VerticalAlignmentValues, 'vertical'
    )

    column_change = _get_leading_and_trailing_change(
        columns - geometry.columns,
        leading_only=horizontal == HorizontalAlignmentValues.LEFT,
        trailing_only=horizontal == HorizontalAlignmentValues.RIGHT,
    )
    row_change = _get_leading_and_trailing_change(
        rows - geometry.rows,
        leading_only=vertical == VerticalAlignmentValues.TOP,
        trailing_only=vertical == VerticalAlignmentValues.BOTTOM,
    )

    crop_vals = []
    pad_width = []
    for (leading, trailing), insize in zip(
        (column_change, row_change),
        array.shape,
    ):
        crop_vals.append((max(-leading, 0), insize - max(-trailing, 0)))
        pad_width.append((max(leading, 0), max(trailing, 0)))
    logger.debug(
        f'resize pixel array from {array.shape} to {(columns, rows)}: '
        f'crop {crop_vals}, pad {pad_width}'
    )

    cropped = array[
        crop_vals[0][0]:crop_vals[0][1],
        crop_vals[1][0]:crop_vals[1][1],
    ]
    resized = np.pad(
        cropped,
        pad_width=pad_width,
        mode='constant',
        constant_values=constant_value,
    ).astype(array.dtype, copy=False)

    # Former index of the pixel that becomes (0, 0)
    column_offset = -column_change[0]
    row_offset = -row_change[0]
    row_step = geometry.row_direction * geometry.col_spacing
    column_step = geometry.column_direction * geometry.row_spacing
    displacement = column_offset * row_step + row_offset * column_step
    x0, y0 = geometry.position
    new_geometry = geometry._derive(
        position=(x0 + displacement[0], y0 + displacement[1]),
        slice_position=float(geometry.slice_position + displacement[2]),
        columns=columns,
        rows=rows,
    )
    return resized, new_geometry
