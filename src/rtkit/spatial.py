import logging
from collections.abc import Sequence
from typing_extensions import Self

import numpy as np
from pydicom import Dataset

from rtkit._utils import _check_numeric_vector
from rtkit.errors import InvalidArgument, InvalidGeometry
from rtkit.geometry import ImageGeometry


logger = logging.getLogger(__name__)


_DETERMINANT_TOLERANCE = 1e-12

# Pairs of physical axes (x = 0, y = 1, z = 2) onto which the image plane may
# be projected to invert the image plane equation. The first pair is
# preferred if it is as well conditioned as any other.
_PROJECTION_AXES = ((0, 1), (0, 2), (1, 2))


def _check_geometry(geometry: ImageGeometry) -> None:
    if not isinstance(geometry, ImageGeometry):
        raise InvalidArgument(
            'Argument "geometry" must be of type rtkit.ImageGeometry.'
        )


def _round_half_away_from_zero(values: np.ndarray) -> np.ndarray:
    """Round real-valued indices to the nearest integer.

    Ties are rounded away from zero (e.g. 2.5 becomes 3 and -2.5 becomes -3),
    unlike :func:`numpy.around`, which rounds ties to the nearest even value.

    """
    rounded = np.sign(values) * np.floor(np.abs(values) + 0.5)
    return rounded.astype(np.int64)


def _select_projection_axes(
    geometry: ImageGeometry,
) -> tuple[tuple[int, int], np.ndarray]:
    """Select the pair of physical axes used to invert the plane equation.

    Parameters
    ----------
    geometry: rtkit.ImageGeometry
        Geometry of the image

    Returns
    -------
    Tuple[int, int]
        Indices of the two physical axes
    numpy.ndarray
        Inverse of the 2 x 2 matrix obtained by projecting the scaled row and
        column direction vectors onto these axes. Multiplying a physical
        offset (along the two axes) by this matrix gives the (column, row)
        index.

    Raises
    ------
    rtkit.errors.InvalidGeometry
        When the projection onto every pair of axes is singular.

    """
    scaled_row_direction = geometry.row_direction * geometry.col_spacing
    scaled_column_direction = (
        geometry.column_direction * geometry.row_spacing
    )
    best_axes = _PROJECTION_AXES[0]
    best_matrix = None
    best_determinant = 0.0
    for axes in _PROJECTION_AXES:
        matrix = np.array([
            [scaled_row_direction[axes[0]], scaled_column_direction[axes[0]]],
            [scaled_row_direction[axes[1]], scaled_column_direction[axes[1]]],
        ])
        determinant = abs(
            matrix[0, 0] * matrix[1, 1] - matrix[0, 1] * matrix[1, 0]
        )
        if determinant > best_determinant:
            best_axes = axes
            best_matrix = matrix
            best_determinant = determinant

    if best_matrix is None or best_determinant <= _DETERMINANT_TOLERANCE:
        raise InvalidGeometry(
            'Image orientation and pixel spacing do not define an invertible '
            'mapping between pixel indices and coordinates.'
        )
    if best_axes != _PROJECTION_AXES[0]:
        logger.debug(
            f'invert image plane equation along axes {best_axes}'
        )
    return best_axes, np.linalg.inv(best_matrix)


def indices_to_coordinates(
    column_indices: Sequence[float] | np.ndarray,
    row_indices: Sequence[float] | np.ndarray,
    geometry: ImageGeometry,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Map pixel indices of an image into patient coordinates.

    Applies the image plane equation: starting from the position of pixel
    (0, 0), each column step moves by the column spacing along the row
    direction cosines and each row step moves by the row spacing along the
    column direction cosines.

    Parameters
    ----------
    column_indices: Union[Sequence[float], numpy.ndarray]
        Zero-based column indices
    row_indices: Union[Sequence[float], numpy.ndarray]
        Zero-based row indices, one for each column index
    geometry: rtkit.ImageGeometry
        Geometry of the image

    Returns
    -------
    x: numpy.ndarray
        x coordinates
    y: numpy.ndarray
        y coordinates
    z: numpy.ndarray
        z coordinates

    Raises
    ------
    rtkit.errors.InvalidArgument
        When the indices are not sequences of numbers or differ in length.

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
    >>> x, y, z = indices_to_coordinates([3, 1], [3, 1], geometry)
    >>> x.tolist(), y.tolist(), z.tolist()
    ([1.0, -3.0], [6.0, 0.0], [50.0, 50.0])

    """
    _check_geometry(geometry)
    columns = _check_numeric_vector(column_indices, 'column_indices')
    rows = _check_numeric_vector(row_indices, 'row_indices')
    if columns.size != rows.size:
        raise InvalidArgument(
            'Arguments "column_indices" and "row_indices" must have '
            'equal length.'
        )

    row_step = geometry.row_direction * geometry.col_spacing
    column_step = geometry.column_direction * geometry.row_spacing
    x0, y0 = geometry.position
    origin = (x0, y0, geometry.slice_position)
    x, y, z = (
        origin[i] + columns * row_step[i] + rows * column_step[i]
        for i in range(3)
    )
    return x, y, z


def coordinates_to_indices(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    z: Sequence[float] | np.ndarray,
    geometry: ImageGeometry,
    round_output: bool = True,
) -> tuple[np.ndarray, np.ndarray]:
    """Map patient coordinates into pixel indices of an image.

    This is the inverse of :func:`indices_to_coordinates`. The coordinates
    are projected onto the pair of physical axes along which the image plane
    equation is best conditioned, which is the (x, y) pair for axial images.
    The third coordinate is then not needed to resolve the in-plane indices.

    Parameters
    ----------
    x: Union[Sequence[float], numpy.ndarray]
        x coordinates
    y: Union[Sequence[float], numpy.ndarray]
        y coordinates
    z: Union[Sequence[float], numpy.ndarray]
        z coordinates
    geometry: rtkit.ImageGeometry
        Geometry of the image
    round_output: bool, optional
        If True, indices are rounded to the nearest integer (ties away from
        zero). Otherwise, they are returned as float.

    Returns
    -------
    column_indices: numpy.ndarray
        Zero-based column indices
    row_indices: numpy.ndarray
        Zero-based row indices

    Note
    ----
    The returned indices may be negative or exceed the extent of the image
    if the coordinates fall outside of the pixel matrix.

    Raises
    ------
    rtkit.errors.InvalidArgument
        When the coordinates are not sequences of numbers or differ in length.
    rtkit.errors.InvalidGeometry
        When the geometry does not define an invertible mapping.

    """
    _check_geometry(geometry)
    components = [
        _check_numeric_vector(x, 'x'),
        _check_numeric_vector(y, 'y'),
        _check_numeric_vector(z, 'z'),
    ]
    if len({c.size for c in components}) != 1:
        raise InvalidArgument(
            'Arguments "x", "y" and "z" must have equal length.'
        )
    coordinates = np.vstack(components)

    axes, inverse = _select_projection_axes(geometry)
    x0, y0 = geometry.position
    origin = np.array([x0, y0, geometry.slice_position])
    offsets = coordinates[list(axes), :] - origin[list(axes)].reshape(2, 1)
    columns, rows = np.dot(inverse, offsets)
    if round_output:
        return (
            _round_half_away_from_zero(columns),
            _round_half_away_from_zero(rows),
        )
    return columns, rows


class PixelToPatientTransformer:

    """Class for transforming pixel indices to patient coordinates.

    Pixel indices are (column, row) pairs of zero-based values, where the
    (0, 0) index is located at the **center** of the top left hand corner
    pixel of the pixel matrix.

    Examples
    --------

    >>> import numpy as np
    >>>
    >>> transformer = PixelToPatientTransformer(
    ...     ImageGeometry(
    ...         position=(56.0, 34.2),
    ...         slice_position=1.0,
    ...         spacing=(0.5, 0.5),
    ...         orientation=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0),
    ...         columns=512,
    ...         rows=512,
    ...     )
    ... )
    >>> print(transformer(np.array([[0, 10], [5, 5]])))
    [[56.  39.2  1. ]
     [58.5 36.7  1. ]]

    """

    def __init__(self, geometry: ImageGeometry):
        """Construct transformation object.

        Parameters
        ----------
        geometry: rtkit.ImageGeometry
            Geometry of the image

        """
        _check_geometry(geometry)
        self._geometry = geometry.copy()

    @property
    def affine(self) -> np.ndarray:
        """numpy.ndarray: 4x4 affine transformation matrix"""
        return self._geometry.affine

    def __call__(self, indices: np.ndarray) -> np.ndarray:
        """Transform pixel indices to patient coordinates.

        Parameters
        ----------
        indices: numpy.ndarray
            Array of shape ``(n, 2)``, where the first column holds the
            column indices and the second column the row indices

        Returns
        -------
        numpy.ndarray
            Array of (x, y, z) coordinates with shape ``(n, 3)``

        Raises
        ------
        rtkit.errors.InvalidArgument
            When `indices` has incorrect shape.

        """
        indices = np.asarray(indices)
        if indices.ndim != 2 or indices.shape[1] != 2:
            raise InvalidArgument(
                'Argument "indices" must be a two-dimensional array '
                'with shape [n, 2].'
            )
        x, y, z = indices_to_coordinates(
            indices[:, 0],
            indices[:, 1],
            self._geometry,
        )
        return np.column_stack([x, y, z])

    @classmethod
    def for_image(cls, dataset: Dataset) -> Self:
        """Construct a transformer for a given image.

        Parameters
        ----------
        dataset: pydicom.Dataset
            Dataset representing an image.

        Returns
        -------
        rtkit.spatial.PixelToPatientTransformer:
            Transformer object for the given image.

        """
        return cls(ImageGeometry.from_dataset(dataset))


class PatientToPixelTransformer:

    """Class for transforming patient coordinates to pixel indices.

    Examples
    --------

    >>> transformer = PatientToPixelTransformer(
    ...     ImageGeometry(
    ...         position=(56.0, 34.2),
    ...         slice_position=1.0,
    ...         spacing=(0.5, 0.5),
    ...         orientation=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0),
    ...         columns=512,
    ...         rows=512,
    ...     )
    ... )
    >>> print(transformer(np.array([[56., 39.2, 1.], [58.5, 36.7, 1.]])))
    [[ 0 10]
     [ 5  5]]

    """

    def __init__(self, geometry: ImageGeometry, round_output: bool = True):
        """Construct transformation object.

        Parameters
        ----------
        geometry: rtkit.ImageGeometry
            Geometry of the image
        round_output: bool, optional
            If True, outputs are rounded to the nearest integer. Otherwise,
            they are returned as float.

        Raises
        ------
        rtkit.errors.InvalidGeometry
            When the geometry does not define an invertible mapping.

        """
        _check_geometry(geometry)
        _select_projection_axes(geometry)
        self._geometry = geometry.copy()
        self._round_output = round_output

    def __call__(self, coordinates: np.ndarray) -> np.ndarray:
        """Transform patient coordinates into pixel indices.

        Parameters
        ----------
        coordinates: numpy.ndarray
            Array of (x, y, z) coordinates with shape ``(n, 3)``

        Returns
        -------
        numpy.ndarray
            Array of (column, row) indices with shape ``(n, 2)``

        Raises
        ------
        rtkit.errors.InvalidArgument
            When `coordinates` has incorrect shape.

        """
        coordinates = np.asarray(coordinates)
        if coordinates.ndim != 2 or coordinates.shape[1] != 3:
            raise InvalidArgument(
                'Argument "coordinates" must be a two-dimensional array '
                'with shape [n, 3].'
            )
        columns, rows = coordinates_to_indices(
            coordinates[:, 0],
            coordinates[:, 1],
            coordinates[:, 2],
            self._geometry,
            round_output=self._round_output,
        )
        return np.column_stack([columns, rows])

    @classmethod
    def for_image(
        cls,
        dataset: Dataset,
        round_output: bool = True,
    ) -> Self:
        """Construct a transformer for a given image.

        Parameters
        ----------
        dataset: pydicom.Dataset
            Dataset representing an image.
        round_output: bool, optional
            If True, outputs are rounded to the nearest integer. Otherwise,
            they are returned as float.

        Returns
        -------
        rtkit.spatial.PatientToPixelTransformer:
            Transformer object for the given image.

        """
        return cls(
            ImageGeometry.from_dataset(dataset),
            round_output=round_output,
        )
