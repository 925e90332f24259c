"""Enumerate values specific to rtkit."""
from enum import Enum


class HorizontalAlignmentValues(Enum):

    """Enumerated values for the edge that absorbs a change in columns.

    When the number of columns of an image is reduced or increased, the
    alignment determines where columns are removed (cropping) or added
    (padding).

    """

    CENTERED = 'CENTERED'
    """Split the change between both edges.

    If the change is odd, the extra column is removed from or added at the
    left edge.

    """

    LEFT = 'LEFT'
    """Remove or add all columns at the left edge (lowest column indices)."""

    RIGHT = 'RIGHT'
    """Remove or add all columns at the right edge (highest column indices)."""


class VerticalAlignmentValues(Enum):

    """Enumerated values for the edge that absorbs a change in rows."""

    CENTERED = 'CENTERED'
    """Split the change between both edges.

    If the change is odd, the extra row is removed from or added at the top
    edge.

    """

    TOP = 'TOP'
    """Remove or add all rows at the top edge (lowest row indices)."""

    BOTTOM = 'BOTTOM'
    """Remove or add all rows at the bottom edge (highest row indices)."""


class ImageModalityValues(Enum):

    """Enumerated values for the modality of images handled by rtkit."""

    CT = 'CT'
    MR = 'MR'
    PT = 'PT'
    RTDOSE = 'RTDOSE'
    RTIMAGE = 'RTIMAGE'
