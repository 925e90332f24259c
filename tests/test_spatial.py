import numpy as np
import pydicom
from pydicom.data import get_testdata_file
import pytest

from rtkit import ImageGeometry, InvalidArgument, InvalidGeometry
from rtkit.spatial import (
    PatientToPixelTransformer,
    PixelToPatientTransformer,
    _round_half_away_from_zero,
    coordinates_to_indices,
    indices_to_coordinates,
)


STANDARD = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)
NEGATIVE = (-1.0, 0.0, 0.0, 0.0, -1.0, 0.0)
ROTATED = (0.0, 0.0, 1.0, 1.0, 0.0, 0.0)
NON_ORTHOGONAL = (0.9953, -0.03130, 0.09128, 0.0, 0.9459, 0.3244)


@pytest.mark.parametrize(
    'orientation',
    [STANDARD, NEGATIVE, ROTATED, NON_ORTHOGONAL],
)
def test_indices_to_coordinates_zero_index(make_geometry, orientation):
    geometry = make_geometry(orientation)
    x, y, z = indices_to_coordinates([0], [0], geometry)
    assert x.tolist() == [-5.0]
    assert y.tolist() == [-3.0]
    assert z.tolist() == [50.0]


@pytest.mark.parametrize(
    'orientation,expected_x,expected_y,expected_z',
    [
        (STANDARD, [1.0, -3.0], [6.0, 0.0], [50.0, 50.0]),
        (NEGATIVE, [-11.0, -7.0], [-12.0, -6.0], [50.0, 50.0]),
        (ROTATED, [4.0, -2.0], [-3.0, -3.0], [56.0, 52.0]),
    ]
)
def test_indices_to_coordinates(
    make_geometry,
    orientation,
    expected_x,
    expected_y,
    expected_z,
):
    geometry = make_geometry(orientation)
    x, y, z = indices_to_coordinates(
        np.array([3, 1]),
        np.array([3, 1]),
        geometry
    )
    assert x.tolist() == expected_x
    assert y.tolist() == expected_y
    assert z.tolist() == expected_z


def test_indices_to_coordinates_non_orthogonal(make_geometry):
    geometry = make_geometry(NON_ORTHOGONAL)
    x, y, z = indices_to_coordinates([3, 1], [3, 1], geometry)
    assert np.round(x, 2).tolist() == [0.97, -3.01]
    assert np.round(y, 2).tolist() == [5.33, -0.22]
    assert np.round(z, 2).tolist() == [53.47, 51.16]


def test_indices_to_coordinates_distinguishes_columns_and_rows(
    make_geometry
):
    geometry = make_geometry(STANDARD)
    x, y, z = indices_to_coordinates([3], [1], geometry)
    # one column step is 2.0 along x, one row step is 3.0 along y
    assert x.tolist() == [1.0]
    assert y.tolist() == [0.0]
    assert z.tolist() == [50.0]


def test_indices_to_coordinates_float_indices(make_geometry):
    geometry = make_geometry(STANDARD)
    x, y, _ = indices_to_coordinates([0.5], [0.5], geometry)
    assert x.tolist() == [-4.0]
    assert y.tolist() == [-1.5]


def test_indices_to_coordinates_empty(make_geometry):
    x, y, z = indices_to_coordinates([], [], make_geometry())
    assert x.shape == (0, )
    assert y.shape == (0, )
    assert z.shape == (0, )


def test_indices_to_coordinates_unequal_length(make_geometry):
    with pytest.raises(InvalidArgument, match='equal'):
        indices_to_coordinates([0, 1, 2, 3], [0, 1], make_geometry())


@pytest.mark.parametrize(
    'column_indices,row_indices,name',
    [
        ('not-an-array', [0, 1, 2], 'column_indices'),
        ([0, 1, 2], 'not-an-array', 'row_indices'),
        (5, [0], 'column_indices'),
        ([[0, 1]], [0, 1], 'column_indices'),
        (['a', 'b'], [0, 1], 'column_indices'),
    ]
)
def test_indices_to_coordinates_invalid(
    make_geometry,
    column_indices,
    row_indices,
    name,
):
    with pytest.raises(InvalidArgument, match=name):
        indices_to_coordinates(column_indices, row_indices, make_geometry())


def test_indices_to_coordinates_invalid_geometry():
    with pytest.raises(InvalidArgument, match='geometry'):
        indices_to_coordinates([0], [0], 'not-a-geometry')


@pytest.mark.parametrize(
    'orientation',
    [STANDARD, NEGATIVE, ROTATED, NON_ORTHOGONAL],
)
def test_coordinates_to_indices_position(make_geometry, orientation):
    geometry = make_geometry(orientation)
    columns, rows = coordinates_to_indices([-5.0], [-3.0], [50.0], geometry)
    assert columns.tolist() == [0]
    assert rows.tolist() == [0]


@pytest.mark.parametrize(
    'orientation,x,y,z',
    [
        (STANDARD, [1.0, -3.0], [6.0, 0.0], [50.0, 50.0]),
        (NEGATIVE, [-11.0, -7.0], [-12.0, -6.0], [50.0, 50.0]),
        (ROTATED, [4.0, -2.0], [-3.0, -3.0], [56.0, 52.0]),
        (NON_ORTHOGONAL, [0.97, -3.01], [5.93, -0.22], [53.47, 51.16]),
    ]
)
def test_coordinates_to_indices(make_geometry, orientation, x, y, z):
    geometry = make_geometry(orientation)
    columns, rows = coordinates_to_indices(
        np.array(x),
        np.array(y),
        np.array(z),
        geometry
    )
    assert columns.tolist() == [3, 1]
    assert rows.tolist() == [3, 1]
    assert columns.dtype.kind == 'i'
    assert rows.dtype.kind == 'i'


def test_coordinates_to_indices_axial_ignores_z(make_geometry):
    geometry = make_geometry(STANDARD)
    columns, rows = coordinates_to_indices([1.0], [6.0], [-999.0], geometry)
    assert columns.tolist() == [3]
    assert rows.tolist() == [3]


def test_coordinates_to_indices_without_rounding(make_geometry):
    geometry = make_geometry(STANDARD)
    columns, rows = coordinates_to_indices(
        [-4.0],
        [-1.5],
        [50.0],
        geometry,
        round_output=False
    )
    assert columns.tolist() == pytest.approx([0.5])
    assert rows.tolist() == pytest.approx([0.5])


def test_coordinates_to_indices_outside_of_image(make_geometry):
    geometry = make_geometry(STANDARD)
    columns, rows = coordinates_to_indices([-9.0], [30.0], [50.0], geometry)
    assert columns.tolist() == [-2]
    assert rows.tolist() == [11]


def test_coordinates_to_indices_unequal_length(make_geometry):
    with pytest.raises(InvalidArgument, match='equal'):
        coordinates_to_indices([0.0] * 4, [0.0] * 2, [0.0] * 4, make_geometry())


@pytest.mark.parametrize('name', ['x', 'y', 'z'])
def test_coordinates_to_indices_not_a_sequence(make_geometry, name):
    coordinates = {'x': [0.0, 1.0], 'y': [0.0, 1.0], 'z': [0.0, 1.0]}
    coordinates[name] = 'not-an-array'
    with pytest.raises(InvalidArgument, match=f'"{name}"'):
        coordinates_to_indices(geometry=make_geometry(), **coordinates)


@pytest.mark.parametrize('name', ['x', 'y', 'z'])
@pytest.mark.parametrize('value', [np.nan, np.inf, -np.inf])
def test_coordinates_to_indices_not_finite(make_geometry, name, value):
    coordinates = {'x': [0.0, 1.0], 'y': [0.0, 1.0], 'z': [50.0, 50.0]}
    coordinates[name] = [0.0, value]
    with pytest.raises(InvalidArgument, match=f'"{name}".*finite'):
        coordinates_to_indices(geometry=make_geometry(), **coordinates)


def test_indices_to_coordinates_not_finite(make_geometry):
    with pytest.raises(InvalidArgument, match='"column_indices".*finite'):
        indices_to_coordinates([0.0, np.nan], [0, 1], make_geometry())


@pytest.mark.parametrize(
    'orientation',
    [
        (0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
        (1.0, 0.0, 0.0, 1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0, 0.0, -1.0, 0.0),
    ]
)
def test_coordinates_to_indices_degenerate_geometry(make_geometry, orientation):
    geometry = make_geometry(orientation)
    with pytest.raises(InvalidGeometry):
        coordinates_to_indices([0.0], [0.0], [0.0], geometry)


@pytest.mark.parametrize(
    'orientation',
    [
        STANDARD,
        NEGATIVE,
        ROTATED,
        NON_ORTHOGONAL,
        # coronal
        (1.0, 0.0, 0.0, 0.0, 0.0, -1.0),
        # sagittal
        (0.0, 1.0, 0.0, 0.0, 0.0, -1.0),
        # oblique
        (0.8660254, 0.5, 0.0, -0.5, 0.8660254, 0.0),
    ]
)
def test_round_trip(make_geometry, orientation):
    geometry = make_geometry(orientation, spacing=(0.976, 1.25))
    column_indices, row_indices = np.meshgrid(
        np.arange(-3, 40),
        np.arange(-2, 35),
    )
    column_indices = column_indices.flatten()
    row_indices = row_indices.flatten()
    x, y, z = indices_to_coordinates(column_indices, row_indices, geometry)
    columns, rows = coordinates_to_indices(x, y, z, geometry)
    np.testing.assert_array_equal(columns, column_indices)
    np.testing.assert_array_equal(rows, row_indices)


@pytest.mark.parametrize(
    'values,expected',
    [
        ([0.4, 0.5, 0.6], [0, 1, 1]),
        ([1.5, 2.5, -0.5, -1.5], [2, 3, -1, -2]),
        ([-0.4, -2.6, 3.0], [0, -3, 3]),
    ]
)
def test_round_half_away_from_zero(values, expected):
    assert _round_half_away_from_zero(np.array(values)).tolist() == expected


def test_pixel_to_patient_transformer(make_geometry):
    transformer = PixelToPatientTransformer(make_geometry(STANDARD))
    coordinates = transformer(np.array([[3, 3], [1, 1]]))
    np.testing.assert_array_equal(
        coordinates,
        np.array([[1.0, 6.0, 50.0], [-3.0, 0.0, 50.0]])
    )


def test_pixel_to_patient_transformer_affine(make_geometry):
    transformer = PixelToPatientTransformer(make_geometry(ROTATED))
    affine = transformer.affine
    assert affine.shape == (4, 4)
    index = np.array([3.0, 3.0, 0.0, 1.0])
    np.testing.assert_array_equal(
        np.dot(affine, index)[:3],
        np.array([4.0, -3.0, 56.0])
    )


def test_pixel_to_patient_transformer_is_independent_of_geometry(
    make_geometry
):
    geometry = make_geometry(STANDARD)
    transformer = PixelToPatientTransformer(geometry)
    geometry.position = (100.0, 100.0)
    coordinates = transformer(np.array([[0, 0]]))
    np.testing.assert_array_equal(coordinates, np.array([[-5.0, -3.0, 50.0]]))


def test_pixel_to_patient_transformer_wrong_shape(make_geometry):
    transformer = PixelToPatientTransformer(make_geometry())
    with pytest.raises(InvalidArgument):
        transformer(np.array([[0, 0, 0]]))


def test_patient_to_pixel_transformer(make_geometry):
    transformer = PatientToPixelTransformer(make_geometry(NEGATIVE))
    indices = transformer(np.array([[-11.0, -12.0, 50.0], [-7.0, -6.0, 50.0]]))
    np.testing.assert_array_equal(indices, np.array([[3, 3], [1, 1]]))


def test_patient_to_pixel_transformer_degenerate(make_geometry):
    geometry = make_geometry((1.0, 0.0, 0.0, 1.0, 0.0, 0.0))
    with pytest.raises(InvalidGeometry):
        PatientToPixelTransformer(geometry)


def test_transformers_for_image():
    dataset = pydicom.dcmread(get_testdata_file('CT_small.dcm'))
    forward = PixelToPatientTransformer.for_image(dataset)
    inverse = PatientToPixelTransformer.for_image(dataset)
    coordinates = forward(np.array([[0, 0], [10, 20]]))
    np.testing.assert_allclose(
        coordinates[0],
        [float(v) for v in dataset.ImagePositionPatient]
    )
    np.testing.assert_array_equal(
        inverse(coordinates),
        np.array([[0, 0], [10, 20]])
    )


def test_geometry_affine_matches_indices_to_coordinates(make_geometry):
    geometry = make_geometry(NON_ORTHOGONAL)
    indices = np.array([[3.0, 1.0], [3.0, 1.0], [0.0, 0.0], [1.0, 1.0]])
    expected = np.dot(geometry.affine, indices)[:3]
    x, y, z = indices_to_coordinates([3, 1], [3, 1], geometry)
    np.testing.assert_allclose(np.vstack([x, y, z]), expected)


def test_geometry_is_not_modified(make_geometry):
    geometry = make_geometry(NON_ORTHOGONAL)
    expected = ImageGeometry(
        position=(-5.0, -3.0),
        slice_position=50.0,
        spacing=(3.0, 2.0),
        orientation=NON_ORTHOGONAL,
        columns=4,
        rows=4,
    )
    x, y, z = indices_to_coordinates([3, 1], [3, 1], geometry)
    coordinates_to_indices(x, y, z, geometry)
    assert geometry == expected
