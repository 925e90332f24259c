import logging
from collections.abc import Sequence
from typing_extensions import Self

import numpy as np
from pydicom import Dataset
from pydicom.valuerep import DS

from rtkit._utils import _check_extent, _check_numeric_vector, _check_real
from rtkit.enum import ImageModalityValues
from rtkit.errors import DicomAttributeError, InvalidArgument


logger = logging.getLogger(__name__)


DEFAULT_RT_IMAGE_ORIENTATION = (1.0, 0.0, 0.0, 0.0, -1.0, 0.0)
"""Orientation of RT Images that do not specify RT Image Orientation.

Rows run along +X and columns along -Y of the IEC X-RAY IMAGE RECEPTOR
coordinate system.

"""

_UNIT_LENGTH_TOLERANCE = 1e-3


class ImageGeometry:

    """Geometry of a single image plane.

    Describes how the pixel grid of one image (or one frame) is placed in the
    patient coordinate system: the position of the center of the top left
    pixel, the position of the plane along its normal, the spacing between
    rows and columns, and the direction cosines of the row and column axes.

    The direction cosines are used exactly as given. They are neither
    normalized nor made orthogonal, so skewed geometries found in real data
    are reproduced faithfully.

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
    >>> geometry.col_spacing
    2.0

    """

    def __init__(
        self,
        position: Sequence[float],
        slice_position: float,
        spacing: Sequence[float],
        orientation: Sequence[float],
        columns: int,
        rows: int,
    ):
        """
        Parameters
        ----------
        position: Sequence[float]
            Physical (x, y) coordinate of the center of pixel (0, 0)
        slice_position: float
            Physical coordinate of the image plane along its normal axis
        spacing: Sequence[float]
            Spacing between rows (first value) and between columns (second
            value), in the order of the DICOM attribute "PixelSpacing"
        orientation: Sequence[float]
            Cosines of the row direction (first triplet: increasing column
            index) and the column direction (second triplet: increasing row
            index) in the patient coordinate system
        columns: int
            Number of columns of the pixel grid
        rows: int
            Number of rows of the pixel grid

        Raises
        ------
        rtkit.errors.InvalidArgument
            When any of the arguments has the wrong type, length or value.

        """
        self.position = position
        self._slice_position = _check_real(slice_position, 'slice_position')
        self.spacing = spacing
        self._orientation = _check_numeric_vector(
            orientation, 'orientation', 6
        )
        self.columns = columns
        self.rows = rows

        for name, cosines in (
            ('row', self._orientation[:3]),
            ('column', self._orientation[3:]),
        ):
            norm = np.linalg.norm(cosines)
            if abs(norm - 1.0) > _UNIT_LENGTH_TOLERANCE:
                logger.warning(
                    f'{name} direction cosines have length {norm:.4f}, '
                    'they are used without normalization'
                )

    @property
    def position(self) -> tuple[float, float]:
        """Tuple[float, float]: (x, y) coordinate of pixel (0, 0)"""
        return (float(self._position[0]), float(self._position[1]))

    @position.setter
    def position(self, value: Sequence[float]) -> None:
        self._position = _check_numeric_vector(value, 'position', 2)

    @property
    def slice_position(self) -> float:
        """float: Position of the image plane along its normal axis"""
        return self._slice_position

    @property
    def spacing(self) -> tuple[float, float]:
        """Tuple[float, float]: Row spacing and column spacing"""
        return (float(self._spacing[0]), float(self._spacing[1]))

    @spacing.setter
    def spacing(self, value: Sequence[float]) -> None:
        spacing = _check_numeric_vector(value, 'spacing', 2)
        if np.any(spacing <= 0.0):
            raise InvalidArgument(
                'Argument "spacing" must contain positive values.'
            )
        self._spacing = spacing

    @property
    def row_spacing(self) -> float:
        """float: Distance between the centers of adjacent rows"""
        return float(self._spacing[0])

    @property
    def col_spacing(self) -> float:
        """float: Distance between the centers of adjacent columns"""
        return float(self._spacing[1])

    @property
    def orientation(self) -> tuple[float, ...]:
        """Tuple[float, ...]: Row and column direction cosines"""
        return tuple(float(v) for v in self._orientation)

    @property
    def row_direction(self) -> np.ndarray:
        """numpy.ndarray: Direction of increasing column index"""
        return self._orientation[:3].copy()

    @property
    def column_direction(self) -> np.ndarray:
        """numpy.ndarray: Direction of increasing row index"""
        return self._orientation[3:].copy()

    @property
    def columns(self) -> int:
        """int: Number of columns"""
        return self._columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._columns = _check_extent(value, 'columns')

    @property
    def rows(self) -> int:
        """int: Number of rows"""
        return self._rows

    @rows.setter
    def rows(self, value: int) -> None:
        self._rows = _check_extent(value, 'rows')

    @property
    def affine(self) -> np.ndarray:
        """numpy.ndarray: 4 x 4 affine matrix

        Pre-multiplying a pixel index in format (column index, row index, 0,
        1) as a column vector by this matrix gives the (x, y, z, 1) position
        in the patient coordinate system. The third column holds the
        (unnormalized) cross product of the two direction vectors.

        """
        row_direction = self._orientation[:3]
        column_direction = self._orientation[3:]
        affine = np.eye(4, dtype=np.float64)
        affine[:3, 0] = row_direction * self.col_spacing
        affine[:3, 1] = column_direction * self.row_spacing
        affine[:3, 2] = np.cross(row_direction, column_direction)
        affine[:3, 3] = [
            self._position[0],
            self._position[1],
            self._slice_position,
        ]
        return affine

    def copy(self) -> Self:
        """Create an independent copy of the geometry.

        Returns
        -------
        rtkit.ImageGeometry
            Copy of the geometry

        """
        return self._derive()

    def _derive(
        self,
        position: Sequence[float] | None = None,
        slice_position: float | None = None,
        columns: int | None = None,
        rows: int | None = None,
    ) -> Self:
        # Direction cosines were checked when this geometry was created and
        # are taken over as they are.
        geometry = self.__class__.__new__(self.__class__)
        geometry.position = self.position if position is None else position
        geometry._slice_position = _check_real(
            self.slice_position if slice_position is None else slice_position,
            'slice_position',
        )
        geometry.spacing = self.spacing
        geometry._orientation = self._orientation.copy()
        geometry.columns = self.columns if columns is None else columns
        geometry.rows = self.rows if rows is None else rows
        return geometry

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageGeometry):
            return NotImplemented
        return (
            self.position == other.position and
            self.slice_position == other.slice_position and
            self.spacing == other.spacing and
            self.orientation == other.orientation and
            self.columns == other.columns and
            self.rows == other.rows
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}(position={self.position}, '
            f'slice_position={self.slice_position}, '
            f'spacing={self.spacing}, orientation={self.orientation}, '
            f'columns={self.columns}, rows={self.rows})'
        )

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> Self:
        """Extract the geometry of an image from a DICOM dataset.

        RT Images are described by the attributes "RTImagePosition",
        "ImagePlanePixelSpacing" and (optionally) "RTImageOrientation" and
        are assigned a slice position of zero. All other images are
        described by "ImagePositionPatient", "ImageOrientationPatient" and
        "PixelSpacing".

        Parameters
        ----------
        dataset: pydicom.Dataset
            Dataset representing a single-frame image or a multi-frame RT
            Dose instance (the geometry of the first frame is returned)

        Returns
        -------
        rtkit.ImageGeometry
            Geometry of the image

        Raises
        ------
        rtkit.errors.DicomAttributeError
            When a required attribute is missing from `dataset`.

        """
        if not isinstance(dataset, Dataset):
            raise InvalidArgument(
                'Argument "dataset" must be a pydicom.Dataset.'
            )
        modality = dataset.get('Modality')
        if modality == ImageModalityValues.RTIMAGE.value:
            position = _get_attribute(dataset, 'RTImagePosition')
            spacing = _get_attribute(dataset, 'ImagePlanePixelSpacing')
            # Type 2C, may be present without a value
            orientation = dataset.get('RTImageOrientation')
            if not orientation:
                orientation = DEFAULT_RT_IMAGE_ORIENTATION
            slice_position = 0.0
        else:
            image_position = _get_attribute(dataset, 'ImagePositionPatient')
            position = image_position[:2]
            slice_position = float(image_position[2])
            spacing = _get_attribute(dataset, 'PixelSpacing')
            orientation = _get_attribute(dataset, 'ImageOrientationPatient')

        return cls(
            position=[float(v) for v in position],
            slice_position=slice_position,
            spacing=[float(v) for v in spacing],
            orientation=[float(v) for v in orientation],
            columns=int(_get_attribute(dataset, 'Columns')),
            rows=int(_get_attribute(dataset, 'Rows')),
        )

    def add_to_dataset(self, dataset: Dataset, modality: str) -> None:
        """Write the geometry attributes into a DICOM dataset.

        Parameters
        ----------
        dataset: pydicom.Dataset
            Dataset that should be updated in place
        modality: str
            Modality of the image, which determines the attributes that are
            used (see :meth:`from_dataset`)

        """
        dataset.Rows = self.rows
        dataset.Columns = self.columns
        if modality == ImageModalityValues.RTIMAGE.value:
            dataset.RTImagePosition = [
                DS(v, auto_format=True) for v in self.position
            ]
            dataset.ImagePlanePixelSpacing = [
                DS(v, auto_format=True) for v in self.spacing
            ]
            dataset.RTImageOrientation = [
                DS(v, auto_format=True) for v in self.orientation
            ]
        else:
            dataset.ImagePositionPatient = [
                DS(v, auto_format=True)
                for v in (*self.position, self.slice_position)
            ]
            dataset.ImageOrientationPatient = [
                DS(v, auto_format=True) for v in self.orientation
            ]
            dataset.PixelSpacing = [
                DS(v, auto_format=True) for v in self.spacing
            ]


def _get_attribute(dataset: Dataset, keyword: str):
    try:
        value = getattr(dataset, keyword)
    except AttributeError as e:
        raise DicomAttributeError(
            f'Dataset lacks attribute "{keyword}" required to determine '
            'the image geometry.'
        ) from e
    if value is None:
        raise DicomAttributeError(
            f'Attribute "{keyword}" of the dataset is empty.'
        )
    return value
