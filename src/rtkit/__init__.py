from rtkit import spatial
from rtkit.enum import (
    HorizontalAlignmentValues,
    ImageModalityValues,
    VerticalAlignmentValues,
)
from rtkit.errors import (
    DicomAttributeError,
    InvalidArgument,
    InvalidGeometry,
)
from rtkit.geometry import ImageGeometry
from rtkit.image import (
    Image,
    get_dose_images,
    imread,
)
from rtkit.resolution import resize_pixel_array
from rtkit.spatial import (
    PatientToPixelTransformer,
    PixelToPatientTransformer,
    coordinates_to_indices,
    indices_to_coordinates,
)
from rtkit.uid import UID
from rtkit.version import __version__


__all__ = [
    'DicomAttributeError',
    'HorizontalAlignmentValues',
    'Image',
    'ImageGeometry',
    'ImageModalityValues',
    'InvalidArgument',
    'InvalidGeometry',
    'PatientToPixelTransformer',
    'PixelToPatientTransformer',
    'UID',
    'VerticalAlignmentValues',
    '__version__',
    'coordinates_to_indices',
    'get_dose_images',
    'imread',
    'indices_to_coordinates',
    'resize_pixel_array',
    'spatial',
]
