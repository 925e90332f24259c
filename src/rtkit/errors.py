"""Errors raised by rtkit processes."""


class DicomAttributeError(Exception):
    """DICOM standard compliance error.

    Exception indicating that a user-provided DICOM dataset lacks an attribute
    that is required to determine the geometry of an image.

    """
    pass


class InvalidArgument(ValueError):
    """Invalid argument error.

    Exception indicating that an argument has the wrong type, the wrong
    length or an otherwise unacceptable value (for example index sequences of
    unequal length or a non-positive target resolution).

    """
    pass


class InvalidGeometry(ValueError):
    """Degenerate image geometry error.

    Exception indicating that the direction cosines and pixel spacing of an
    image do not define an invertible mapping between pixel indices and
    physical coordinates.

    """
    pass
