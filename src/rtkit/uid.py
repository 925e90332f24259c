import logging
from typing import Optional, Type, TypeVar

import pydicom

logger = logging.getLogger(__name__)


T = TypeVar('T', bound='UID')

_MAX_UID_LENGTH = 64


class UID(pydicom.uid.UID):

    """Unique DICOM identifier.

    If an object is constructed without a value being provided, a value will be
    automatically generated using pydicom's root.
    """

    def __new__(cls: Type[T], value: Optional[str] = None) -> T:
        if value is None:
            value = pydicom.uid.generate_uid()
        return super().__new__(cls, value)

    @classmethod
    def for_frame(cls, uid: str, frame_number: int) -> 'UID':
        """Derive the UID of a single frame from the UID of its instance.

        Parameters
        ----------
        uid: str
            SOP Instance UID of the multi-frame instance
        frame_number: int
            One-based number of the frame

        Returns
        -------
        rtkit.UID
            UID

        Note
        ----
        The frame number is appended as an additional component of `uid`.
        If the result would exceed the maximum length of a UID, a new UID is
        generated instead, deterministically from `uid` and `frame_number`.

        Examples
        --------
        >>> import rtkit
        >>> uid = rtkit.UID.for_frame('1.2.3', 2)
        >>> print(uid)
        1.2.3.2

        """
        if frame_number < 1:
            raise ValueError('Argument "frame_number" must be positive.')
        value = '{}.{}'.format(uid, frame_number)
        if len(value) > _MAX_UID_LENGTH:
            logger.debug(
                f'frame UID derived from "{uid}" is too long, '
                'generating a new one'
            )
            value = pydicom.uid.generate_uid(
                entropy_srcs=[str(uid), str(frame_number)]
            )
        return cls(value)
