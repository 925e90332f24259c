"""Images with coordinate-aware pixel arrays."""
import logging
from collections.abc import Sequence
from os import PathLike
from typing import BinaryIO
from typing_extensions import Self

import numpy as np
import pydicom
from pydicom import Dataset
from pydicom.dataset import FileMetaDataset
from pydicom.uid import (
    CTImageStorage,
    ExplicitVRLittleEndian,
    MRImageStorage,
    PositronEmissionTomographyImageStorage,
    RTDoseStorage,
    RTImageStorage,
)

from rtkit._utils import _check_extent
from rtkit.enum import (
    HorizontalAlignmentValues,
    ImageModalityValues,
    VerticalAlignmentValues,
)
from rtkit.errors import DicomAttributeError, InvalidArgument
from rtkit.geometry import ImageGeometry
from rtkit.resolution import resize_pixel_array
from rtkit.spatial import coordinates_to_indices, indices_to_coordinates
from rtkit.uid import UID


logger = logging.getLogger(__name__)


_SOP_CLASS_UIDS = {
    ImageModalityValues.CT: CTImageStorage,
    ImageModalityValues.MR: MRImageStorage,
    ImageModalityValues.PT: PositronEmissionTomographyImageStorage,
    ImageModalityValues.RTDOSE: RTDoseStorage,
    ImageModalityValues.RTIMAGE: RTImageStorage,
}


class Image:

    """A single image plane with its pixel array and geometry.

    The pixel array is indexed by (column, row), i.e. it has shape
    ``(columns, rows)``, so that it can be indexed directly with the indices
    returned by :meth:`coordinates_to_indices`.

    """

    def __init__(
        self,
        sop_instance_uid: str,
        geometry: ImageGeometry,
        pixel_array: np.ndarray | None = None,
        modality: ImageModalityValues | str = ImageModalityValues.CT,
    ):
        """
        Parameters
        ----------
        sop_instance_uid: str
            UID that uniquely identifies the image
        geometry: rtkit.ImageGeometry
            Geometry of the image. Setters of the image update this object,
            whereas :meth:`set_resolution` replaces it.
        pixel_array: Union[numpy.ndarray, None], optional
            Pixel array of shape ``(columns, rows)``
        modality: Union[rtkit.ImageModalityValues, str], optional
            Modality of the image

        """
        if not isinstance(sop_instance_uid, str):
            raise InvalidArgument(
                'Argument "sop_instance_uid" must be a string.'
            )
        if not isinstance(geometry, ImageGeometry):
            raise InvalidArgument(
                'Argument "geometry" must be of type rtkit.ImageGeometry.'
            )
        try:
            self._modality = ImageModalityValues(modality)
        except ValueError as e:
            raise InvalidArgument(
                f'Argument "modality" has unsupported value "{modality}".'
            ) from e
        self._sop_instance_uid = UID(sop_instance_uid)
        self._geometry = geometry
        self._pixel_array = None
        if pixel_array is not None:
            self.pixel_array = pixel_array

    @property
    def sop_instance_uid(self) -> UID:
        """rtkit.UID: SOP Instance UID of the image"""
        return self._sop_instance_uid

    @property
    def modality(self) -> ImageModalityValues:
        """rtkit.ImageModalityValues: Modality of the image"""
        return self._modality

    @property
    def geometry(self) -> ImageGeometry:
        """rtkit.ImageGeometry: Geometry of the image"""
        return self._geometry

    @property
    def columns(self) -> int:
        """int: Number of columns"""
        return self._geometry.columns

    @columns.setter
    def columns(self, value: int) -> None:
        self._check_extent_change('columns', value, self.columns)
        self._geometry.columns = value

    @property
    def rows(self) -> int:
        """int: Number of rows"""
        return self._geometry.rows

    @rows.setter
    def rows(self, value: int) -> None:
        self._check_extent_change('rows', value, self.rows)
        self._geometry.rows = value

    def _check_extent_change(
        self,
        name: str,
        value: int,
        current: int,
    ) -> None:
        # The pixel array fixes the extents of the image.
        value = _check_extent(value, name)
        if self._pixel_array is not None and value != current:
            raise InvalidArgument(
                f'Argument "{name}" cannot be changed from {current} to '
                f'{value} while the image has a pixel array. Use '
                'set_resolution() to crop or pad the pixel array instead.'
            )

    @property
    def position(self) -> tuple[float, float]:
        """Tuple[float, float]: (x, y) coordinate of pixel (0, 0)"""
        return self._geometry.position

    @position.setter
    def position(self, value: Sequence[float]) -> None:
        self._geometry.position = value

    @property
    def slice_position(self) -> float:
        """float: Position of the image plane along its normal axis"""
        return self._geometry.slice_position

    @property
    def spacing(self) -> tuple[float, float]:
        """Tuple[float, float]: Row spacing and column spacing"""
        return self._geometry.spacing

    @spacing.setter
    def spacing(self, value: Sequence[float]) -> None:
        self._geometry.spacing = value

    @property
    def orientation(self) -> tuple[float, ...]:
        """Tuple[float, ...]: Row and column direction cosines"""
        return self._geometry.orientation

    @property
    def pixel_array(self) -> np.ndarray | None:
        """Union[numpy.ndarray, None]: Pixel array of shape (columns, rows)"""
        return self._pixel_array

    @pixel_array.setter
    def pixel_array(self, value: np.ndarray) -> None:
        if not isinstance(value, np.ndarray) or value.ndim != 2:
            raise InvalidArgument(
                'Argument "pixel_array" must be a two-dimensional numpy array.'
            )
        if value.shape != (self.columns, self.rows):
            raise InvalidArgument(
                f'Argument "pixel_array" has shape {value.shape}, expected '
                f'({self.columns}, {self.rows}) to match the columns and '
                'rows of the image.'
            )
        self._pixel_array = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Image):
            return NotImplemented
        if self._pixel_array is None or other._pixel_array is None:
            same_pixels = self._pixel_array is other._pixel_array
        else:
            same_pixels = np.array_equal(self._pixel_array, other._pixel_array)
        return (
            self.sop_instance_uid == other.sop_instance_uid and
            self.modality == other.modality and
            self.geometry == other.geometry and
            same_pixels
        )

    def __repr__(self) -> str:
        return (
            f'{self.__class__.__name__}('
            f'sop_instance_uid="{self.sop_instance_uid}", '
            f'modality={self.modality.value}, geometry={self.geometry!r})'
        )

    def coordinates_from_indices(
        self,
        column_indices: Sequence[float] | np.ndarray,
        row_indices: Sequence[float] | np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Map pixel indices of the image into patient coordinates.

        See :func:`rtkit.spatial.indices_to_coordinates`.

        """
        return indices_to_coordinates(
            column_indices,
            row_indices,
            self._geometry,
        )

    def coordinates_to_indices(
        self,
        x: Sequence[float] | np.ndarray,
        y: Sequence[float] | np.ndarray,
        z: Sequence[float] | np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Map patient coordinates into pixel indices of the image.

        See :func:`rtkit.spatial.coordinates_to_indices`.

        """
        return coordinates_to_indices(x, y, z, self._geometry)

    def set_resolution(
        self,
        columns: int,
        rows: int,
        horizontal: HorizontalAlignmentValues | str = (
            HorizontalAlignmentValues.CENTERED
        ),
        vertical: VerticalAlignmentValues | str = (
            VerticalAlignmentValues.CENTERED
        ),
    ) -> None:
        """Crop and/or pad the image in place to a new resolution.

        Position, extents and pixel array are updated together, so retained
        pixels keep their patient coordinates. See
        :func:`rtkit.resolution.resize_pixel_array`.

        Parameters
        ----------
        columns: int
            New number of columns
        rows: int
            New number of rows
        horizontal: Union[rtkit.HorizontalAlignmentValues, str], optional
            Edge at which columns are removed or added
        vertical: Union[rtkit.VerticalAlignmentValues, str], optional
            Edge at which rows are removed or added

        """
        if self._pixel_array is None:
            raise InvalidArgument(
                'Resolution of an image without pixel array cannot be '
                'changed.'
            )
        array, geometry = resize_pixel_array(
            self._pixel_array,
            self._geometry,
            columns=columns,
            rows=rows,
            horizontal=horizontal,
            vertical=vertical,
        )
        self._geometry = geometry
        self._pixel_array = array

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> Self:
        """Create an image from a single-frame DICOM dataset.

        Parameters
        ----------
        dataset: pydicom.Dataset
            Dataset representing a single-frame image

        Returns
        -------
        rtkit.Image
            Image with the geometry and (if present) the pixels of `dataset`

        Raises
        ------
        rtkit.errors.DicomAttributeError
            When a required attribute is missing from `dataset`.

        """
        if not isinstance(dataset, Dataset):
            raise InvalidArgument(
                'Argument "dataset" must be a pydicom.Dataset.'
            )
        if int(dataset.get('NumberOfFrames', 1)) > 1:
            raise InvalidArgument(
                'Argument "dataset" must be a single-frame image. Use '
                'rtkit.get_dose_images() for multi-frame RT Dose instances.'
            )
        if 'SOPInstanceUID' not in dataset:
            raise DicomAttributeError(
                'Dataset lacks attribute "SOPInstanceUID".'
            )
        if 'Modality' not in dataset:
            raise DicomAttributeError('Dataset lacks attribute "Modality".')
        geometry = ImageGeometry.from_dataset(dataset)
        pixel_array = None
        if 'PixelData' in dataset:
            pixel_array = dataset.pixel_array.T
        return cls(
            sop_instance_uid=dataset.SOPInstanceUID,
            geometry=geometry,
            pixel_array=pixel_array,
            modality=dataset.Modality,
        )

    def to_dataset(self) -> Dataset:
        """Create a DICOM dataset describing the image.

        The dataset carries the UIDs, the modality, the geometry attributes
        and, if the image has a pixel array, uncompressed 16 bit pixel data.

        Returns
        -------
        pydicom.Dataset
            Dataset representing the image

        Raises
        ------
        rtkit.errors.InvalidArgument
            When the pixel array does not contain integers that can be
            represented with 16 bits.

        """
        sop_class_uid = _SOP_CLASS_UIDS[self.modality]
        dataset = Dataset()
        dataset.file_meta = FileMetaDataset()
        dataset.file_meta.MediaStorageSOPClassUID = sop_class_uid
        dataset.file_meta.MediaStorageSOPInstanceUID = self.sop_instance_uid
        dataset.file_meta.TransferSyntaxUID = ExplicitVRLittleEndian
        dataset.SOPClassUID = sop_class_uid
        dataset.SOPInstanceUID = self.sop_instance_uid
        dataset.Modality = self.modality.value
        self._geometry.add_to_dataset(dataset, self.modality.value)

        if self._pixel_array is not None:
            array = self._pixel_array
            if array.dtype.kind not in ('u', 'i'):
                raise InvalidArgument(
                    'Pixel array must have an integer data type to be '
                    'stored in a dataset.'
                )
            signed = array.dtype.kind == 'i'
            stored_dtype = np.int16 if signed else np.uint16
            info = np.iinfo(stored_dtype)
            if array.size > 0 and (
                array.min() < info.min or array.max() > info.max
            ):
                raise InvalidArgument(
                    'Pixel values exceed the range of 16 bit integers.'
                )
            dataset.SamplesPerPixel = 1
            dataset.PhotometricInterpretation = 'MONOCHROME2'
            dataset.BitsAllocated = 16
            dataset.BitsStored = 16
            dataset.HighBit = 15
            dataset.PixelRepresentation = int(signed)
            # Stored row by row
            dataset.PixelData = np.ascontiguousarray(
                array.T.astype(stored_dtype)
            ).tobytes()
        return dataset


def imread(fp: str | bytes | PathLike | BinaryIO) -> Image:
    """Read an image stored in DICOM File Format.

    Parameters
    ----------
    fp: Union[str, bytes, os.PathLike]
        Any file-like object representing a DICOM file containing a
        single-frame image.

    Returns
    -------
    rtkit.Image:
        Image read from the file.

    """
    return Image.from_dataset(pydicom.dcmread(fp))


def _get_frame_slice_positions(
    dataset: Dataset,
    number_of_frames: int,
    first_slice_position: float,
) -> list[float]:
    if 'GridFrameOffsetVector' not in dataset:
        raise DicomAttributeError(
            'Dataset lacks attribute "GridFrameOffsetVector" required to '
            'position the frames of a multi-frame RT Dose instance.'
        )
    value = dataset.GridFrameOffsetVector
    if isinstance(value, Sequence):
        offsets = [float(v) for v in value]
    else:
        offsets = [float(value)]
    if len(offsets) != number_of_frames:
        raise DicomAttributeError(
            f'Attribute "GridFrameOffsetVector" has {len(offsets)} values, '
            f'but the dataset has {number_of_frames} frames.'
        )
    if offsets[0] == 0.0:
        # Relative to the first frame
        return [first_slice_position + o for o in offsets]
    return offsets


def get_dose_images(dataset: Dataset) -> list[Image]:
    """Split a multi-frame RT Dose instance into one image per frame.

    All frames share the in-plane geometry of the instance. The slice
    position of each frame is derived from the "GridFrameOffsetVector": if
    its first value is zero the offsets are relative to the z coordinate of
    "ImagePositionPatient", otherwise they are absolute positions.

    Parameters
    ----------
    dataset: pydicom.Dataset
        Dataset of an RT Dose instance

    Returns
    -------
    List[rtkit.Image]
        Images in the order of the frames, with SOP Instance UIDs derived from
        the UID of the instance and the frame number

    Raises
    ------
    rtkit.errors.DicomAttributeError
        When a required attribute is missing from `dataset`.

    """
    if not isinstance(dataset, Dataset):
        raise InvalidArgument(
            'Argument "dataset" must be a pydicom.Dataset.'
        )
    if dataset.get('Modality') != ImageModalityValues.RTDOSE.value:
        raise InvalidArgument(
            'Argument "dataset" must be an RT Dose instance.'
        )
    if 'SOPInstanceUID' not in dataset:
        raise DicomAttributeError('Dataset lacks attribute "SOPInstanceUID".')
    number_of_frames = _check_extent(
        int(dataset.get('NumberOfFrames', 1)),
        'NumberOfFrames',
        allow_zero=False,
    )
    geometry = ImageGeometry.from_dataset(dataset)
    if number_of_frames > 1:
        slice_positions = _get_frame_slice_positions(
            dataset,
            number_of_frames,
            geometry.slice_position,
        )
    else:
        slice_positions = [geometry.slice_position]

    frames = None
    if 'PixelData' in dataset:
        frames = dataset.pixel_array
        if number_of_frames == 1:
            frames = frames[np.newaxis]

    images = []
    for i, slice_position in enumerate(slice_positions):
        frame_geometry = geometry._derive(slice_position=slice_position)
        images.append(
            Image(
                sop_instance_uid=UID.for_frame(dataset.SOPInstanceUID, i + 1),
                geometry=frame_geometry,
                pixel_array=None if frames is None else frames[i].T,
                modality=ImageModalityValues.RTDOSE,
            )
        )
    logger.info(
        f'split RT Dose instance "{dataset.SOPInstanceUID}" into '
        f'{len(images)} images'
    )
    return images
